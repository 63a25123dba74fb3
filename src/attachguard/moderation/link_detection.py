"""
Media link detection for message text.

GIF-hosting links and video links are recognised by URL shape only and
checked independently, so a guild can allow one family while blocking the
other.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable, List, Literal, Optional

from attachguard.datatypes.attachment_types import AttachmentType

LinkCategory = Literal["gif", "video", "media"]

GIF_LINK_PATTERNS: List[re.Pattern[str]] = [
    # Direct .gif links
    re.compile(r"https?://\S+\.gif(?:\?\S*)?", re.IGNORECASE),
    # Imgur
    re.compile(r"https?://(?:i\.)?imgur\.com/[a-zA-Z0-9]+\.gif", re.IGNORECASE),
    # Tenor
    re.compile(r"https?://tenor\.com/view/\S+", re.IGNORECASE),
    re.compile(r"https?://c\.tenor\.com/\S+", re.IGNORECASE),
    re.compile(r"https?://media\.tenor\.com/\S+", re.IGNORECASE),
    # Giphy
    re.compile(r"https?://giphy\.com/gifs/\S+", re.IGNORECASE),
    re.compile(r"https?://media\.giphy\.com/media/[a-zA-Z0-9]+/giphy\.gif", re.IGNORECASE),
    re.compile(r"https?://i\.giphy\.com/[a-zA-Z0-9]+\.gif", re.IGNORECASE),
    # Discord CDN
    re.compile(r"https?://cdn\.discordapp\.com/attachments/[0-9]+/[0-9]+/\S+\.gif", re.IGNORECASE),
    re.compile(r"https?://media\.discordapp\.net/attachments/[0-9]+/[0-9]+/\S+\.gif", re.IGNORECASE),
    # Reddit
    re.compile(r"https?://i\.redd\.it/\S+\.gif", re.IGNORECASE),
    # Gfycat and Redgifs are always animated
    re.compile(r"https?://gfycat\.com/[a-zA-Z0-9]+", re.IGNORECASE),
    re.compile(r"https?://thumbs\.gfycat\.com/\S+", re.IGNORECASE),
    re.compile(r"https?://(?:www\.)?redgifs\.com/watch/[a-zA-Z0-9]+", re.IGNORECASE),
    # .gifv
    re.compile(r"https?://\S*\.gifv(?:\?\S*)?", re.IGNORECASE),
]

VIDEO_LINK_PATTERNS: List[re.Pattern[str]] = [
    re.compile(r"https?://\S+\.(?:mp4|webm|mov|avi|mkv|flv|wmv)(?:\?\S*)?", re.IGNORECASE),
    # Imgur galleries and albums may hold videos
    re.compile(r"https?://imgur\.com/gallery/[a-zA-Z0-9]+", re.IGNORECASE),
    re.compile(r"https?://imgur\.com/a/[a-zA-Z0-9]+", re.IGNORECASE),
]

# Checked in order; the first host fragment found in a link names its source.
_HOST_LABELS = [
    ("imgur.com", "Imgur"),
    ("tenor.com", "Tenor"),
    ("giphy.com", "Giphy"),
    ("gfycat.com", "Gfycat"),
    ("redgifs.com", "Redgifs"),
    ("discord", "Discord"),
    ("redd.it", "Reddit"),
]
_GIF_SUFFIX = re.compile(r"\.gifv?(\?|$)", re.IGNORECASE)
_VIDEO_SUFFIX = re.compile(r"\.(mp4|webm|mov|avi|mkv)(\?|$)", re.IGNORECASE)


@dataclass(slots=True, frozen=True)
class DisallowedLinks:
    links: List[str]
    category: LinkCategory


def _unique(links: Iterable[str]) -> List[str]:
    return list(dict.fromkeys(links))


def _scan(content: str, patterns: List[re.Pattern[str]]) -> List[str]:
    found: List[str] = []
    for pattern in patterns:
        found.extend(pattern.findall(content))
    return _unique(found)


def detect_gif_links(content: str) -> List[str]:
    """Deduplicated GIF-hosting links in ``content``, in pattern order."""
    return _scan(content or "", GIF_LINK_PATTERNS)


def detect_video_links(content: str) -> List[str]:
    """Deduplicated video links in ``content``, in pattern order."""
    return _scan(content or "", VIDEO_LINK_PATTERNS)


def detect_media_links(content: str) -> List[str]:
    return _unique([*detect_gif_links(content), *detect_video_links(content)])


def detect_disallowed_links(
    content: str, allowed_types: Iterable[AttachmentType]
) -> Optional[DisallowedLinks]:
    """
    Find media links whose family is not in ``allowed_types``.

    An empty ``allowed_types`` flags every detected link (used when the
    policy is ``NONE``). Returns None when nothing is disallowed.

    ``category`` is ``"gif"`` or ``"video"`` when only one family matched and
    ``"media"`` when both did.
    """
    allowed = set(allowed_types)
    gif_allowed = AttachmentType.GIF in allowed or AttachmentType.ALL in allowed
    video_allowed = AttachmentType.VIDEO in allowed or AttachmentType.ALL in allowed
    if gif_allowed and video_allowed:
        return None

    blocked: List[str] = []
    category: LinkCategory = "media"

    if not gif_allowed:
        gif_links = detect_gif_links(content)
        if gif_links:
            blocked.extend(gif_links)
            category = "gif"

    if not video_allowed:
        video_links = detect_video_links(content)
        if video_links:
            category = "media" if blocked else "video"
            blocked.extend(video_links)

    if not blocked:
        return None
    return DisallowedLinks(links=_unique(blocked), category=category)


def _link_source(link: str) -> str:
    for fragment, label in _HOST_LABELS:
        if fragment in link:
            return label
    if _GIF_SUFFIX.search(link):
        return "GIF"
    if _VIDEO_SUFFIX.search(link):
        return "Video"
    return "Media"


def describe_link_types(links: List[str]) -> str:
    """
    User-facing label for a set of detected links.

    A single source gives "<Source> link" (or "links" when several links
    were found); mixed sources give "Media links".
    """
    sources = _unique(_link_source(link) for link in links)
    if len(sources) == 1:
        return f"{sources[0]} link{'s' if len(links) > 1 else ''}"
    return "Media links"
