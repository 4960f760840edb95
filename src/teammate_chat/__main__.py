"""CLI entrypoint for teamterm."""

from __future__ import annotations

import argparse
from importlib import metadata
from pathlib import Path
from typing import Sequence

from .app import TeammateChatApp
from .config import ensure_config_dir


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="teamterm", description="Teammate Chat TUI")
    parser.add_argument(
        "--version",
        action="store_true",
        help="Print version and exit",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Read configuration from this TOML file",
    )
    return parser


def main(argv: Sequence[str] | None = None) -> None:
    """Ensure configuration exists, handle CLI flags, and run the TUI."""

    parser = _build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)

    if args.version:
        try:
            version = metadata.version("teamterm")
        except metadata.PackageNotFoundError:
            version = "0.0.0"
        print(f"teamterm {version}")
        return

    ensure_config_dir()
    app = TeammateChatApp(config_path=args.config)
    app.run()


if __name__ == "__main__":
    main()
