"""In-memory bookmark tree."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Literal, NamedTuple, Optional


@dataclass(slots=True)
class BookmarkNode:
    """A folder or link in the bookmark tree.

    Attributes:
        name: Display title.
        kind: ``folder`` or ``url``.
        url: Target address for links.
        date_added: Creation time in UTC when the browser recorded one.
        children: Child nodes of a folder, in browser order.
    """

    name: str
    kind: Literal["folder", "url"]
    url: Optional[str] = None
    date_added: Optional[datetime] = None
    children: list["BookmarkNode"] = field(default_factory=list)

    @property
    def is_folder(self) -> bool:
        return self.kind == "folder"


@dataclass(slots=True)
class BookmarkTree:
    """Top-level bookmark folders (bookmarks bar, other, mobile, ...)."""

    roots: list[BookmarkNode] = field(default_factory=list)
    version: int = 1


class WalkEvent(NamedTuple):
    """Step of a depth-first walk.

    ``kind`` is ``enter`` and ``exit`` around folders and ``url`` for links;
    ``path`` holds the names of the enclosing folders.
    """

    kind: Literal["enter", "exit", "url"]
    path: tuple[str, ...]
    node: BookmarkNode

    @property
    def depth(self) -> int:
        return len(self.path)


class BookmarkCounts(NamedTuple):
    folders: int
    urls: int
