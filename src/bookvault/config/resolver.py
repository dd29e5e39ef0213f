"""Layered configuration resolution.

Layers apply in the order defaults, file, environment, CLI. Every layer is
normalized to a nested mapping first, so dotted keys such as
``retention.max_unarchived`` and nested YAML sections can be mixed freely.
"""

from __future__ import annotations

from collections.abc import Mapping
from copy import deepcopy
from typing import Any, Iterable

import yaml
from pydantic import ValidationError

from .exceptions import ConfigError
from .models import BookvaultConfig

ENV_PREFIX = "BOOKVAULT__"
ENV_SEPARATOR = "__"


def resolve_with_precedence(
    *,
    defaults: BookvaultConfig,
    file_overrides: Mapping[str, Any] | None = None,
    env_overrides: Mapping[str, Any] | None = None,
    cli_overrides: Mapping[str, Any] | None = None,
) -> BookvaultConfig:
    """Return ``defaults`` with each override layer applied on top.

    Raises:
        ConfigError: If a layer is malformed or the merged values fail validation.
    """
    layers = (
        ("file", file_overrides),
        ("environment", env_overrides),
        ("cli", cli_overrides),
    )
    merged = defaults.model_dump(mode="python")
    for source, layer in layers:
        if layer:
            merged = merge_layers(merged, expand_dotted(layer, source=source))

    try:
        return BookvaultConfig.model_validate(merged)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration values: {_describe(exc)}") from exc


def env_overrides(env: Mapping[str, str]) -> dict[str, Any]:
    """Collect ``BOOKVAULT__SECTION__KEY`` variables into a nested mapping.

    Values are parsed as YAML scalars so ``"4"`` becomes ``4`` and ``"[json]"``
    becomes a list; unparseable values are kept as plain strings.
    """
    dotted: dict[str, Any] = {}
    for name, raw in env.items():
        if not name.startswith(ENV_PREFIX):
            continue
        segments = [part.lower() for part in name[len(ENV_PREFIX) :].split(ENV_SEPARATOR) if part]
        if not segments:
            continue
        try:
            value = yaml.safe_load(raw)
        except yaml.YAMLError:
            value = raw
        dotted[".".join(segments)] = value
    return expand_dotted(dotted, source="environment")


def flatten_for_env(config: BookvaultConfig) -> dict[str, str]:
    """Render ``config`` as the environment variables that would reproduce it."""
    flat: dict[str, str] = {}
    pending: list[tuple[tuple[str, ...], Any]] = [((), config.model_dump(mode="python"))]
    while pending:
        path, value = pending.pop()
        if isinstance(value, dict):
            pending.extend((path + (str(key),), child) for key, child in value.items())
            continue
        name = ENV_PREFIX + ENV_SEPARATOR.join(part.upper() for part in path)
        if isinstance(value, list):
            flat[name] = yaml.safe_dump(value, default_flow_style=True).strip()
        elif value is None:
            flat[name] = "null"
        else:
            flat[name] = str(value)
    return dict(sorted(flat.items()))


def expand_dotted(layer: Mapping[str, Any], *, source: str) -> dict[str, Any]:
    """Turn dotted keys into nested sections.

    Raises:
        ConfigError: If a key is not a string or a dotted path runs through a
            scalar value set by the same layer.
    """
    if not isinstance(layer, Mapping):
        raise ConfigError(f"{source.capitalize()} overrides must be a mapping.")

    expanded: dict[str, Any] = {}
    for key, value in layer.items():
        if not isinstance(key, str):
            raise ConfigError(f"{source.capitalize()} override keys must be strings.")
        *parents, leaf = key.split(".")
        node = expanded
        for segment in parents:
            child = node.setdefault(segment, {})
            if not isinstance(child, dict):
                raise ConfigError(
                    f"{source.capitalize()} override '{key}' conflicts with the value "
                    f"already set for '{segment}'."
                )
            node = child
        if isinstance(value, Mapping):
            value = expand_dotted(value, source=source)
            current = node.get(leaf)
            node[leaf] = merge_layers(current, value) if isinstance(current, dict) else value
        else:
            node[leaf] = value
    return expanded


def merge_layers(base: Mapping[str, Any], top: Mapping[str, Any]) -> dict[str, Any]:
    """Return ``base`` updated by ``top``; nested sections merge key by key."""
    result = deepcopy(dict(base))
    for key, value in top.items():
        current = result.get(key)
        if isinstance(current, dict) and isinstance(value, Mapping):
            result[key] = merge_layers(current, value)
        else:
            result[key] = deepcopy(value)
    return result


def _describe(exc: ValidationError) -> str:
    problems: Iterable[str] = (
        f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
        for error in exc.errors()
    )
    return "; ".join(problems)


__all__ = [
    "ENV_PREFIX",
    "env_overrides",
    "expand_dotted",
    "flatten_for_env",
    "merge_layers",
    "resolve_with_precedence",
]
