"""Tokenizer that splits composer text into literal and mention spans."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
import re

QUOTED_MENTION = re.compile(r'@"([^"]+)"')
UNQUOTED_MENTION = re.compile(r"@([^@\s]+)")


class SpanKind(str, Enum):
    LITERAL = "literal"
    QUOTED = "quoted"
    UNQUOTED = "unquoted"


@dataclass(frozen=True)
class Span:
    """A slice ``text[start:end]`` of the buffer.

    For mention spans ``value`` is the referenced text without the ``@`` and
    without quotes; for literal spans it is the raw slice.
    """

    kind: SpanKind
    start: int
    end: int
    value: str

    @property
    def is_mention(self) -> bool:
        return self.kind is not SpanKind.LITERAL


def tokenize(text: str) -> list[Span]:
    """Split ``text`` into contiguous spans covering it from start to end.

    Quoted mentions ``@"..."`` take precedence at every ``@``, so their
    interiors are never read as unquoted mentions.
    """
    spans: list[Span] = []
    literal_start = 0
    position = 0
    length = len(text)
    while position < length:
        if text[position] != "@":
            position += 1
            continue
        match = QUOTED_MENTION.match(text, position)
        kind = SpanKind.QUOTED
        if match is None:
            match = UNQUOTED_MENTION.match(text, position)
            kind = SpanKind.UNQUOTED
        if match is None:
            position += 1
            continue
        if literal_start < position:
            spans.append(
                Span(SpanKind.LITERAL, literal_start, position, text[literal_start:position])
            )
        spans.append(Span(kind, match.start(), match.end(), match.group(1)))
        position = literal_start = match.end()
    if literal_start < length:
        spans.append(Span(SpanKind.LITERAL, literal_start, length, text[literal_start:]))
    return spans


def mention_spans(text: str) -> list[Span]:
    return [span for span in tokenize(text) if span.is_mention]


def needs_quotes(value: str) -> bool:
    return any(char.isspace() for char in value)


def format_mention(value: str, *, force_quotes: bool = False) -> str:
    """Render ``value`` as ``@value``, quoted when it contains whitespace."""
    if force_quotes or needs_quotes(value):
        return f'@"{value}"'
    return f"@{value}"
