"""Custom exceptions for configuration management."""


class ConfigError(Exception):
    """Raised when configuration data cannot be processed."""


class InvalidPolicy(ConfigError):
    """Raised when retention limits violate the policy invariants."""
