"""Decide how a file document should be opened."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from urllib.parse import quote

OBJECT_STORAGE_HOST = "r2.dev"
OFFICE_VIEWER_URL = "https://docs.google.com/viewer?url={url}&embedded=true"


class ViewerMode(str, Enum):
    EMBED = "embed"      # inline video player
    DIRECT = "direct"    # open the URL as-is
    OFFICE = "office"    # route through the hosted document viewer


@dataclass(frozen=True)
class ViewerTarget:
    mode: ViewerMode
    url: str


def _is_youtube(url: str, mime_type: str) -> bool:
    return "youtube" in mime_type or "youtube.com" in url or "youtu.be" in url


def resolve_viewer(url: str, mime_type: str = "") -> ViewerTarget:
    """
    YouTube links embed; PDFs and external links open directly; files on
    object storage that are not PDFs go through the office viewer.
    """
    mime_type = mime_type or ""
    if _is_youtube(url, mime_type):
        return ViewerTarget(ViewerMode.EMBED, url)
    if ".pdf" in url or "pdf" in mime_type:
        return ViewerTarget(ViewerMode.DIRECT, url)
    if url.startswith("http") and OBJECT_STORAGE_HOST not in url:
        return ViewerTarget(ViewerMode.DIRECT, url)
    return ViewerTarget(ViewerMode.OFFICE, OFFICE_VIEWER_URL.format(url=quote(url, safe="")))
