"""Tests for CLI entrypoint wiring."""

from __future__ import annotations

import io
from contextlib import redirect_stdout
from pathlib import Path
import unittest
from unittest.mock import patch

try:
    from teammate_chat.__main__ import main
except ModuleNotFoundError:
    main = None  # type: ignore[assignment]


@unittest.skipIf(main is None, "textual is not installed")
class MainEntrypointTests(unittest.TestCase):
    """Validate top-level main() behavior."""

    def test_main_ensures_config_and_runs_app(self) -> None:
        with patch("teammate_chat.__main__.ensure_config_dir") as ensure_mock, patch(
            "teammate_chat.__main__.TeammateChatApp"
        ) as app_cls_mock:
            app_instance = app_cls_mock.return_value
            main([])  # type: ignore[misc]
            ensure_mock.assert_called_once()
            app_cls_mock.assert_called_once_with(config_path=None)
            app_instance.run.assert_called_once()

    def test_config_flag_is_forwarded(self) -> None:
        with patch("teammate_chat.__main__.ensure_config_dir"), patch(
            "teammate_chat.__main__.TeammateChatApp"
        ) as app_cls_mock:
            main(["--config", "/tmp/team.toml"])  # type: ignore[misc]
            app_cls_mock.assert_called_once_with(config_path=Path("/tmp/team.toml"))

    def test_version_flag_skips_app(self) -> None:
        buffer = io.StringIO()
        with patch("teammate_chat.__main__.TeammateChatApp") as app_cls_mock:
            with redirect_stdout(buffer):
                main(["--version"])  # type: ignore[misc]
        app_cls_mock.assert_not_called()
        self.assertTrue(buffer.getvalue().startswith("teamterm "))


if __name__ == "__main__":
    unittest.main()
