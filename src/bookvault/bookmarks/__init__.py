"""Bookmark source discovery, parsing, and rendering."""

from .errors import BookmarkError, BookmarkParseError, BookmarkSourceError
from .locator import SUPPORTED_BROWSERS, bookmarks_path, locate_bookmarks_file
from .models import BookmarkCounts, BookmarkNode, BookmarkTree, WalkEvent
from .parser import count_nodes, iter_bookmarks, load_bookmarks, parse_bookmarks, walk
from .render import render_csv, render_html, render_markdown

__all__ = [
    "BookmarkError",
    "BookmarkParseError",
    "BookmarkSourceError",
    "SUPPORTED_BROWSERS",
    "bookmarks_path",
    "locate_bookmarks_file",
    "BookmarkCounts",
    "BookmarkNode",
    "BookmarkTree",
    "WalkEvent",
    "count_nodes",
    "iter_bookmarks",
    "load_bookmarks",
    "parse_bookmarks",
    "walk",
    "render_csv",
    "render_html",
    "render_markdown",
]
