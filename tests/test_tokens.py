"""Tests for the mention tokenizer."""

from __future__ import annotations

import unittest

from teammate_chat.composer.tokens import (
    SpanKind,
    format_mention,
    mention_spans,
    needs_quotes,
    tokenize,
)


class TokenizerTests(unittest.TestCase):
    """Validate span classification and coverage."""

    def test_spans_cover_text_contiguously(self) -> None:
        text = 'see @a.png and @"b c.png" ok'
        spans = tokenize(text)
        self.assertEqual(spans[0].start, 0)
        self.assertEqual(spans[-1].end, len(text))
        for left, right in zip(spans, spans[1:]):
            self.assertEqual(left.end, right.start)
        self.assertEqual("".join(text[s.start : s.end] for s in spans), text)

    def test_quoted_and_unquoted_values(self) -> None:
        spans = mention_spans('@a.png @"/tmp/b c.png"')
        self.assertEqual(
            [(span.kind, span.value) for span in spans],
            [(SpanKind.UNQUOTED, "a.png"), (SpanKind.QUOTED, "/tmp/b c.png")],
        )

    def test_quoted_interior_is_not_read_as_unquoted(self) -> None:
        spans = mention_spans('@"x @y.png z"')
        self.assertEqual(len(spans), 1)
        self.assertEqual(spans[0].value, "x @y.png z")

    def test_unterminated_quote_falls_back_to_unquoted(self) -> None:
        spans = mention_spans('@"abc')
        self.assertEqual(len(spans), 1)
        self.assertIs(spans[0].kind, SpanKind.UNQUOTED)
        self.assertEqual(spans[0].value, '"abc')

    def test_lone_at_sign_is_literal(self) -> None:
        spans = tokenize("mail @ home")
        self.assertTrue(all(not span.is_mention for span in spans))

    def test_format_mention_quotes_whitespace(self) -> None:
        self.assertTrue(needs_quotes("a b"))
        self.assertEqual(format_mention("a b"), '@"a b"')
        self.assertEqual(format_mention("ab"), "@ab")
        self.assertEqual(format_mention("ab", force_quotes=True), '@"ab"')


if __name__ == "__main__":
    unittest.main()
