"""Bookmark source errors."""


class BookmarkError(Exception):
    """Base exception for bookmark source handling."""


class BookmarkSourceError(BookmarkError):
    """Raised when the browser bookmarks file cannot be located or read."""


class BookmarkParseError(BookmarkError):
    """Raised when bookmark data is not a valid Chromium bookmarks document."""
