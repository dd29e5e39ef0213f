"""Render bookmark trees as HTML, CSV, and Markdown text."""

from __future__ import annotations

import csv
import html
import io
from datetime import datetime

from .models import BookmarkNode, BookmarkTree
from .parser import iter_bookmarks, walk

CSV_COLUMNS = ("Folder", "Title", "URL", "Date Added")
FOLDER_SEPARATOR = " / "

_NETSCAPE_HEADER = """\
<!DOCTYPE NETSCAPE-Bookmark-file-1>
<!-- This is an automatically generated file.
     It will be read and overwritten.
     DO NOT EDIT! -->
<META HTTP-EQUIV="Content-Type" CONTENT="text/html; charset=UTF-8">
<TITLE>Bookmarks</TITLE>
<H1>Bookmarks</H1>
<DL><p>
"""


def _add_date(node: BookmarkNode) -> str:
    if node.date_added is None:
        return ""
    return f' ADD_DATE="{int(node.date_added.timestamp())}"'


def _display_date(value: datetime | None) -> str:
    return value.strftime("%Y-%m-%d %H:%M:%S") if value is not None else ""


def render_html(tree: BookmarkTree) -> str:
    """Render ``tree`` in the Netscape bookmark file format browsers import."""
    lines = [_NETSCAPE_HEADER.rstrip("\n")]
    for event in walk(tree):
        indent = "    " * (event.depth + 1)
        node = event.node
        if event.kind == "enter":
            lines.append(f"{indent}<DT><H3{_add_date(node)}>{html.escape(node.name)}</H3>")
            lines.append(f"{indent}<DL><p>")
        elif event.kind == "exit":
            lines.append(f"{indent}</DL><p>")
        else:
            href = html.escape(node.url or "", quote=True)
            title = html.escape(node.name or node.url or "")
            lines.append(f'{indent}<DT><A HREF="{href}"{_add_date(node)}>{title}</A>')
    lines.append("</DL><p>")
    return "\n".join(lines) + "\n"


def render_csv(tree: BookmarkTree) -> str:
    """Render one CSV row per link with its folder path."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_COLUMNS)
    for path, node in iter_bookmarks(tree):
        writer.writerow(
            (FOLDER_SEPARATOR.join(path), node.name, node.url or "", _display_date(node.date_added))
        )
    return buffer.getvalue()


def _markdown_text(value: str) -> str:
    return value.replace("\\", "\\\\").replace("[", "\\[").replace("]", "\\]")


def render_markdown(tree: BookmarkTree) -> str:
    """Render a heading per folder followed by its links as a bullet list."""
    lines = ["# Bookmarks", ""]
    for event in walk(tree):
        node = event.node
        if event.kind == "enter":
            level = min(event.depth + 2, 6)
            if lines[-1] != "":
                lines.append("")
            lines.append(f"{'#' * level} {_markdown_text(node.name)}")
            lines.append("")
        elif event.kind == "url":
            title = _markdown_text(node.name or node.url or "")
            target = (node.url or "").replace(" ", "%20").replace(")", "%29")
            lines.append(f"- [{title}]({target})")
    return "\n".join(lines).rstrip("\n") + "\n"


__all__ = ["CSV_COLUMNS", "render_html", "render_csv", "render_markdown"]
