"""Image references embedded in composer text as ``@`` mentions.

Attachments are never stored: they are derived from the buffer whenever they
are needed. Extraction and removal both work over the spans produced by
:mod:`teammate_chat.composer.tokens`, so paths with spaces or pattern
metacharacters need no escaping.
"""

from __future__ import annotations

import base64
from collections.abc import Iterable
from dataclasses import dataclass
import os
from pathlib import PurePosixPath

from .tokens import SpanKind, format_mention, mention_spans, tokenize

IMAGE_EXTENSIONS: frozenset[str] = frozenset(
    {".png", ".jpg", ".jpeg", ".gif", ".svg", ".webp", ".ico", ".bmp"}
)
DATA_URI_PREFIX = "data:"
IMAGE_DATA_URI_PREFIX = "data:image/"


@dataclass(frozen=True)
class AttachmentDescriptor:
    """One image referenced from the buffer, keyed by its resolved path."""

    resolved_path: str
    is_data_uri: bool
    is_image: bool = True

    @property
    def display_name(self) -> str:
        if self.is_data_uri:
            return "pasted image"
        return PurePosixPath(self.resolved_path).name or self.resolved_path


def is_data_uri(value: str) -> bool:
    return value.startswith(DATA_URI_PREFIX)


def is_image_reference(value: str) -> bool:
    """True for image data URIs and paths with a known image extension."""
    if is_data_uri(value):
        return value.startswith(IMAGE_DATA_URI_PREFIX)
    return PurePosixPath(value).suffix.lower() in IMAGE_EXTENSIONS


def resolve_reference(value: str, base_path: str | None = None) -> str:
    """Resolve a mention value to the path it refers to.

    Data URIs and absolute paths are returned unchanged. Relative paths are
    joined onto ``base_path`` when one is configured.
    """
    if is_data_uri(value) or os.path.isabs(value):
        return value
    if not base_path or not base_path.strip():
        return value
    return f"{base_path.rstrip('/')}/{value}"


def extract_attachments(
    text: str, base_path: str | None = None
) -> list[AttachmentDescriptor]:
    """Return the distinct image attachments referenced in ``text``.

    Order follows first appearance in the buffer. Unquoted tokens containing
    ``data:`` are ignored; data URIs only count in their quoted form.
    """
    seen: set[str] = set()
    found: list[AttachmentDescriptor] = []
    for span in mention_spans(text):
        value = span.value
        if span.kind is SpanKind.UNQUOTED and DATA_URI_PREFIX in value:
            continue
        resolved = resolve_reference(value, base_path)
        if not is_image_reference(resolved) or resolved in seen:
            continue
        seen.add(resolved)
        found.append(
            AttachmentDescriptor(resolved_path=resolved, is_data_uri=is_data_uri(value))
        )
    return found


def _refers_to(
    kind: SpanKind, value: str, descriptor: AttachmentDescriptor, base_path: str | None
) -> bool:
    if descriptor.is_data_uri:
        return kind is SpanKind.QUOTED and value == descriptor.resolved_path
    if is_data_uri(value):
        return False
    return resolve_reference(value, base_path) == descriptor.resolved_path


def remove_attachment(
    text: str, descriptor: AttachmentDescriptor, base_path: str | None = None
) -> str:
    """Remove every mention of ``descriptor`` from ``text``.

    Quoted and unquoted forms, absolute or relative to ``base_path``, are all
    removed together with one following whitespace character. A single space
    is left where the removal would otherwise join two words, and removal is
    repeated until no new mention of ``descriptor`` appears. The result is
    stripped when anything was removed.
    """
    removed = False
    while True:
        remaining = _remove_mentions(text, descriptor, base_path)
        if remaining is None:
            break
        text = remaining
        removed = True
    return text.strip() if removed else text


def _remove_mentions(
    text: str, descriptor: AttachmentDescriptor, base_path: str | None
) -> str | None:
    """Single removal pass; None when ``text`` holds no mention of ``descriptor``."""
    output = ""
    position = 0
    removed = False
    for span in tokenize(text):
        if not span.is_mention or not _refers_to(
            span.kind, span.value, descriptor, base_path
        ):
            continue
        output += text[position : span.start]
        end = span.end
        if end < len(text) and text[end].isspace():
            end += 1
        if output and end < len(text):
            if not (output[-1].isspace() or text[end].isspace()):
                output += " "
        position = end
        removed = True
    if not removed:
        return None
    return output + text[position:]


def _mention_for(path: str) -> str:
    return format_mention(path, force_quotes=is_data_uri(path))


def append_image_mention(text: str, path: str, base_path: str | None = None) -> str:
    """Append a mention of ``path`` unless the buffer already references it."""
    resolved = resolve_reference(path, base_path)
    if any(item.resolved_path == resolved for item in extract_attachments(text, base_path)):
        return text
    separator = "" if not text or text.endswith(" ") else " "
    return f"{text}{separator}{_mention_for(path)} "


def append_dropped_paths(
    text: str, paths: Iterable[str], base_path: str | None = None
) -> str:
    """Append mentions for the image files among ``paths``."""
    for path in paths:
        if is_image_reference(path):
            text = append_image_mention(text, path, base_path)
    return text


def encode_data_uri(data: bytes, mime_type: str = "image/png") -> str:
    """Encode raw image bytes as a base64 ``data:`` URI."""
    payload = base64.b64encode(data).decode("ascii")
    return f"data:{mime_type};base64,{payload}"
