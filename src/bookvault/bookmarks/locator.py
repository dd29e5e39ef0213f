"""Locate the native bookmarks file of Chromium-family browsers."""

from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import Mapping

from .errors import BookmarkSourceError

_PROFILE_DIRS: dict[str, dict[str, tuple[str, ...]]] = {
    "chrome": {
        "windows": ("Google", "Chrome", "User Data"),
        "macos": ("Google", "Chrome"),
        "linux": ("google-chrome",),
    },
    "edge": {
        "windows": ("Microsoft", "Edge", "User Data"),
        "macos": ("Microsoft Edge",),
        "linux": ("microsoft-edge",),
    },
    "brave": {
        "windows": ("BraveSoftware", "Brave-Browser", "User Data"),
        "macos": ("BraveSoftware", "Brave-Browser"),
        "linux": ("BraveSoftware", "Brave-Browser"),
    },
    "chromium": {
        "windows": ("Chromium", "User Data"),
        "macos": ("Chromium",),
        "linux": ("chromium",),
    },
}

SUPPORTED_BROWSERS = tuple(_PROFILE_DIRS)


def _platform_family(platform: str) -> str:
    if platform.startswith(("win", "cygwin")):
        return "windows"
    if platform == "darwin":
        return "macos"
    return "linux"


def bookmarks_path(
    browser: str,
    profile: str = "Default",
    *,
    platform: str | None = None,
    env: Mapping[str, str] | None = None,
    home: Path | None = None,
) -> Path:
    """Return where ``browser`` keeps the bookmarks file for ``profile``.

    Args:
        browser: One of :data:`SUPPORTED_BROWSERS`.
        profile: Profile directory name.
        platform: ``sys.platform`` style identifier; defaults to the current one.
        env: Environment used for ``LOCALAPPDATA`` / ``XDG_CONFIG_HOME``.
        home: Home directory; defaults to ``Path.home()``.

    Raises:
        BookmarkSourceError: If the browser is not supported.
    """
    key = browser.lower()
    if key not in _PROFILE_DIRS:
        raise BookmarkSourceError(
            f"Unsupported browser '{browser}'. Choose one of: {', '.join(SUPPORTED_BROWSERS)}."
        )
    family = _platform_family(platform or sys.platform)
    env = env if env is not None else os.environ
    home = home if home is not None else Path.home()

    if family == "windows":
        base = Path(env.get("LOCALAPPDATA") or home / "AppData" / "Local")
    elif family == "macos":
        base = home / "Library" / "Application Support"
    else:
        base = Path(env.get("XDG_CONFIG_HOME") or home / ".config")

    return base.joinpath(*_PROFILE_DIRS[key][family], profile, "Bookmarks")


def locate_bookmarks_file(
    browser: str,
    profile: str = "Default",
    *,
    platform: str | None = None,
    env: Mapping[str, str] | None = None,
    home: Path | None = None,
) -> Path:
    """Return the existing bookmarks file for ``browser``/``profile``.

    Raises:
        BookmarkSourceError: If the file does not exist.
    """
    path = bookmarks_path(browser, profile, platform=platform, env=env, home=home)
    if not path.is_file():
        raise BookmarkSourceError(f"No {browser} bookmarks file found at {path}")
    return path


__all__ = ["SUPPORTED_BROWSERS", "bookmarks_path", "locate_bookmarks_file"]
