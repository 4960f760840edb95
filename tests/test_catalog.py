"""Tests for the thinking-mode and model catalogs."""

from __future__ import annotations

import unittest

from teammate_chat.catalog import (
    DEFAULT_MODEL,
    DEFAULT_THINKING_MODE,
    MODELS,
    THINKING_MODES,
    apply_depth_phrase,
    depth_phrase,
    get_model,
    get_thinking_mode,
    is_model,
    is_thinking_mode,
)


class CatalogTests(unittest.TestCase):
    """Validate catalog contents and phrase handling."""

    def test_catalog_ids_and_defaults(self) -> None:
        self.assertEqual(
            [mode.id for mode in THINKING_MODES],
            ["auto", "think", "think_hard", "think_harder", "ultrathink"],
        )
        self.assertEqual([model.id for model in MODELS], ["sonnet", "opus"])
        self.assertTrue(is_thinking_mode(DEFAULT_THINKING_MODE))
        self.assertTrue(is_model(DEFAULT_MODEL))

    def test_lookup_unknown_id_raises(self) -> None:
        with self.assertRaises(KeyError):
            get_model("gpt")
        with self.assertRaises(KeyError):
            get_thinking_mode("dream")
        self.assertFalse(is_model("gpt"))

    def test_depth_phrase_only_for_non_default_modes(self) -> None:
        self.assertIsNone(depth_phrase("auto"))
        self.assertEqual(depth_phrase("ultrathink"), "ultrathink")
        self.assertEqual(get_thinking_mode("think_harder").phrase, "think harder")

    def test_apply_depth_phrase(self) -> None:
        self.assertEqual(apply_depth_phrase("refactor", "auto"), "refactor")
        self.assertEqual(
            apply_depth_phrase("refactor", "think"), "refactor.\n\nthink."
        )
        self.assertEqual(get_model("opus").name, "Opus")


if __name__ == "__main__":
    unittest.main()
