"""
Attachment categories and the MIME/extension tables used to classify content.

Classification never inspects file bytes. A declared content type is the
primary signal; a file extension taken from the filename or URL is the
fallback. Anything that resolves to neither is "unknown" and is never
blocked.
"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, Dict, Iterable, Optional
from urllib.parse import urlsplit

if TYPE_CHECKING:
    from attachguard.datatypes.message_content import ForwardedEmbed


class AttachmentType(str, Enum):
    """Coarse content category used for policy matching."""

    IMAGE = "image"
    VIDEO = "video"
    GIF = "gif"
    AUDIO = "audio"
    ALL = "all"
    NONE = "none"


AttachmentTypeLabels: Dict[AttachmentType, str] = {
    AttachmentType.IMAGE: "Images",
    AttachmentType.VIDEO: "Videos",
    AttachmentType.GIF: "GIFs",
    AttachmentType.AUDIO: "Audio",
    AttachmentType.ALL: "All Attachments",
    AttachmentType.NONE: "No Attachments",
}

# Declared content types with a known category. Keys are lower-case.
MIME_TYPE_CATEGORIES: Dict[str, AttachmentType] = {
    "image/gif": AttachmentType.GIF,
    "image/apng": AttachmentType.IMAGE,
    "image/png": AttachmentType.IMAGE,
    "image/jpeg": AttachmentType.IMAGE,
    "image/jpg": AttachmentType.IMAGE,
    "image/webp": AttachmentType.IMAGE,
    "image/bmp": AttachmentType.IMAGE,
    "image/svg+xml": AttachmentType.IMAGE,
    "image/tiff": AttachmentType.IMAGE,
    "image/avif": AttachmentType.IMAGE,
    "image/heic": AttachmentType.IMAGE,
    "video/mp4": AttachmentType.VIDEO,
    "video/webm": AttachmentType.VIDEO,
    "video/quicktime": AttachmentType.VIDEO,
    "video/x-matroska": AttachmentType.VIDEO,
    "video/x-msvideo": AttachmentType.VIDEO,
    "video/mpeg": AttachmentType.VIDEO,
    "video/ogg": AttachmentType.VIDEO,
    "audio/mpeg": AttachmentType.AUDIO,
    "audio/mp3": AttachmentType.AUDIO,
    "audio/wav": AttachmentType.AUDIO,
    "audio/x-wav": AttachmentType.AUDIO,
    "audio/ogg": AttachmentType.AUDIO,
    "audio/flac": AttachmentType.AUDIO,
    "audio/x-flac": AttachmentType.AUDIO,
    "audio/x-m4a": AttachmentType.AUDIO,
    "audio/mp4": AttachmentType.AUDIO,
    "audio/aac": AttachmentType.AUDIO,
    "audio/opus": AttachmentType.AUDIO,
    "audio/webm": AttachmentType.AUDIO,
}

# File extension (without the dot) to the MIME type it implies.
EXTENSION_MIME_TYPES: Dict[str, str] = {
    "gif": "image/gif",
    "apng": "image/apng",
    "png": "image/png",
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "webp": "image/webp",
    "bmp": "image/bmp",
    "svg": "image/svg+xml",
    "mp4": "video/mp4",
    "webm": "video/webm",
    "mov": "video/quicktime",
    "mkv": "video/x-matroska",
    "avi": "video/x-msvideo",
    "mp3": "audio/mpeg",
    "wav": "audio/wav",
    "ogg": "audio/ogg",
    "flac": "audio/flac",
    "m4a": "audio/x-m4a",
    "aac": "audio/aac",
    "opus": "audio/opus",
}


def parse_attachment_types(values: Iterable[str]) -> list[AttachmentType]:
    """Convert stored string values to AttachmentType, dropping unknown ones and duplicates."""
    result: list[AttachmentType] = []
    for value in values:
        raw = value.value if isinstance(value, AttachmentType) else str(value)
        try:
            attachment_type = AttachmentType(raw.lower())
        except ValueError:
            continue
        if attachment_type not in result:
            result.append(attachment_type)
    return result


def file_extension(file_ref: str) -> str:
    """Return the lower-cased extension of a filename or URL, ignoring query strings."""
    if not file_ref:
        return ""
    path = file_ref
    if "://" in file_ref:
        path = urlsplit(file_ref).path
    else:
        path = file_ref.split("?", 1)[0].split("#", 1)[0]
    name = path.rsplit("/", 1)[-1]
    if "." not in name:
        return ""
    return name.rsplit(".", 1)[-1].strip().lower()


def resolve_attachment_mime_type(
    content_type: Optional[str] = None,
    filename: Optional[str] = None,
    url: Optional[str] = None,
    proxy_url: Optional[str] = None,
) -> str:
    """
    Work out the MIME type of an attachment.

    The declared content type wins (lower-cased, parameters such as
    ``; charset=`` dropped). Otherwise the first non-empty of filename, URL
    and proxy URL is mapped through the extension table. Returns an empty
    string when neither signal resolves.
    """
    if content_type:
        declared = content_type.split(";", 1)[0].strip().lower()
        if declared:
            return declared

    file_ref = filename or url or proxy_url or ""
    return EXTENSION_MIME_TYPES.get(file_extension(file_ref), "")


def classify_mime(mime_or_filename: str) -> Optional[AttachmentType]:
    """
    Map a MIME type (or a filename/URL) to its category.

    Returns None for anything unknown, which callers treat as not blockable.
    """
    if not mime_or_filename:
        return None

    value = mime_or_filename.strip().lower()
    if "/" not in value or "://" in value:
        value = EXTENSION_MIME_TYPES.get(file_extension(value), "")
        if not value:
            return None

    # Exact table match only; unlisted types stay unknown
    return MIME_TYPE_CATEGORIES.get(value.split(";", 1)[0].strip())


def is_mime_type_allowed(mime_type: str, allowed_types: Iterable[AttachmentType]) -> bool:
    """Return True if an attachment with ``mime_type`` passes the allowed list."""
    allowed = set(allowed_types)
    if AttachmentType.ALL in allowed:
        return True
    if AttachmentType.NONE in allowed:
        return False

    category = classify_mime(mime_type)
    if category is None:
        return True
    return category in allowed


def classify_forwarded_embed(embed: "ForwardedEmbed") -> Optional[AttachmentType]:
    """Categorize a forwarded embed, or None if it carries no media."""
    if embed.kind == "gifv":
        return AttachmentType.GIF

    if embed.kind == "video" or embed.video_url:
        return AttachmentType.VIDEO

    if embed.kind == "image" or embed.image_url:
        if embed.image_url and embed.image_url.lower().endswith(".gif"):
            return AttachmentType.GIF
        return AttachmentType.IMAGE

    return None
