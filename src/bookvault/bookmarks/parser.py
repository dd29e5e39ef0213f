"""Parse Chromium `Bookmarks` JSON documents and walk the resulting tree."""

from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Iterator, Optional

from .errors import BookmarkParseError, BookmarkSourceError
from .models import BookmarkCounts, BookmarkNode, BookmarkTree, WalkEvent

# Chromium stores timestamps as microseconds since 1601-01-01 UTC.
_CHROMIUM_EPOCH = datetime(1601, 1, 1, tzinfo=timezone.utc)

ROOT_ORDER = ("bookmark_bar", "other", "synced")
ROOT_LABELS = {
    "bookmark_bar": "Bookmarks Bar",
    "other": "Other Bookmarks",
    "synced": "Mobile Bookmarks",
    "account": "Account Bookmarks",
}


def chromium_time(value: Any) -> Optional[datetime]:
    """Convert a Chromium timestamp string to an aware UTC datetime."""
    try:
        micros = int(value)
    except (TypeError, ValueError):
        return None
    if micros <= 0:
        return None
    try:
        return _CHROMIUM_EPOCH + timedelta(microseconds=micros)
    except OverflowError:
        return None


def load_bookmarks(path: Path) -> BookmarkTree:
    """Read and parse the bookmarks file at ``path``.

    Raises:
        BookmarkSourceError: If the file cannot be read.
        BookmarkParseError: If the content is not a bookmarks document.
    """
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise BookmarkSourceError(f"Unable to read bookmarks file {path}: {exc}") from exc
    return parse_bookmarks(text)


def parse_bookmarks(text: str) -> BookmarkTree:
    """Parse the JSON text of a Chromium bookmarks file."""
    try:
        payload = json.loads(text)
    except json.JSONDecodeError as exc:
        raise BookmarkParseError(f"Invalid bookmarks JSON: {exc}") from exc

    if not isinstance(payload, dict) or not isinstance(payload.get("roots"), dict):
        raise BookmarkParseError("Bookmarks document has no 'roots' mapping.")

    roots_data: dict[str, Any] = payload["roots"]
    ordered_keys = [key for key in ROOT_ORDER if key in roots_data]
    ordered_keys.extend(key for key in roots_data if key not in ROOT_ORDER)

    tree = BookmarkTree(version=_as_int(payload.get("version"), default=1))
    for key in ordered_keys:
        raw = roots_data[key]
        if not isinstance(raw, dict) or raw.get("type", "folder") != "folder":
            continue
        root = _build_folder(raw)
        if not root.name:
            root.name = ROOT_LABELS.get(key, key)
        tree.roots.append(root)
    return tree


def _as_int(value: Any, *, default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _make_node(raw: dict[str, Any]) -> BookmarkNode:
    kind = "url" if raw.get("type") == "url" else "folder"
    return BookmarkNode(
        name=str(raw.get("name") or ""),
        kind=kind,
        url=str(raw["url"]) if kind == "url" and raw.get("url") else None,
        date_added=chromium_time(raw.get("date_added")),
    )


def _build_folder(raw: dict[str, Any]) -> BookmarkNode:
    root = _make_node(raw)
    pending = [(root, raw)]
    while pending:
        node, data = pending.pop()
        for child_raw in data.get("children") or []:
            if not isinstance(child_raw, dict):
                continue
            child = _make_node(child_raw)
            node.children.append(child)
            if child.is_folder:
                pending.append((child, child_raw))
    return root


def walk(tree: BookmarkTree) -> Iterator[WalkEvent]:
    """Yield depth-first enter/url/exit events in browser order."""
    stack: list[tuple[bool, tuple[str, ...], BookmarkNode]] = [
        (False, (), root) for root in reversed(tree.roots)
    ]
    while stack:
        closing, path, node = stack.pop()
        if closing:
            yield WalkEvent("exit", path, node)
            continue
        if not node.is_folder:
            yield WalkEvent("url", path, node)
            continue
        yield WalkEvent("enter", path, node)
        stack.append((True, path, node))
        child_path = (*path, node.name)
        stack.extend((False, child_path, child) for child in reversed(node.children))


def iter_bookmarks(tree: BookmarkTree) -> Iterator[tuple[tuple[str, ...], BookmarkNode]]:
    """Yield ``(folder_path, link)`` pairs for every link in the tree."""
    for event in walk(tree):
        if event.kind == "url":
            yield event.path, event.node


def count_nodes(tree: BookmarkTree) -> BookmarkCounts:
    """Return the number of folders and links, root folders included."""
    folders = urls = 0
    for event in walk(tree):
        if event.kind == "enter":
            folders += 1
        elif event.kind == "url":
            urls += 1
    return BookmarkCounts(folders=folders, urls=urls)


__all__ = [
    "chromium_time",
    "load_bookmarks",
    "parse_bookmarks",
    "walk",
    "iter_bookmarks",
    "count_nodes",
]
