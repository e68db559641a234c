"""Command-line interface for the learning samples."""

from __future__ import annotations
import argparse
import logging
import os
import sys
from dataclasses import replace
from pathlib import Path
from typing import Sequence


def _running_in_virtualenv() -> bool:
    """Return ``True`` when the current interpreter is executing inside a venv."""

    base_prefix = getattr(sys, "base_prefix", sys.prefix)
    return sys.prefix != base_prefix


def _bootstrap_virtualenv() -> None:
    """Re-exec the script using the bundled virtualenv interpreter when available."""

    if _running_in_virtualenv():
        return

    root = Path(__file__).resolve().parent
    venv_dir = root / ".venv"
    if not venv_dir.is_dir():
        return

    candidates = (
        venv_dir / "bin" / "python",
        venv_dir / "bin" / "python3",
        venv_dir / "Scripts" / "python.exe",
        venv_dir / "Scripts" / "python",
    )

    script = str(Path(__file__).resolve())
    for candidate in candidates:
        if candidate.exists():
            os.execv(str(candidate), [str(candidate), script, *sys.argv[1:]])


if __name__ == "__main__":
    _bootstrap_virtualenv()

from learning.config import OverviewSettings, load_settings, resolve_config_path
from learning.flags import run_demo

logger = logging.getLogger("learning.main")


def _parse_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Bit-flag and single-table learning samples")
    subparsers = parser.add_subparsers(dest="command")

    parser.set_defaults(command="overview")

    subparsers.add_parser("flags", help="Print the bit-flag demonstration")

    overview_parser = subparsers.add_parser(
        "overview", help="Run the single-table tutorial against a local emulator"
    )
    overview_parser.add_argument(
        "--config",
        default=None,
        help="Path to the YAML settings (default: OVERVIEW_CONFIG_PATH or config/overview.yaml)",
    )
    overview_parser.add_argument(
        "--port",
        type=int,
        default=None,
        help="Port for the local emulator (default: 4567)",
    )
    overview_parser.add_argument(
        "--no-emulator",
        dest="spawn_emulator",
        action="store_false",
        default=None,
        help="Use an emulator that is already listening instead of spawning one",
    )
    overview_parser.add_argument(
        "--quiet",
        action="store_true",
        help="Do not trace individual database requests",
    )

    args_list = list(argv) if argv is not None else sys.argv[1:]
    known_commands = {"flags", "overview"}

    if not args_list:
        args_list = ["overview"]
    else:
        first = args_list[0]
        if first in ("-h", "--help"):
            return parser.parse_args(args_list)
        if first not in known_commands:
            if any(flag in args_list for flag in ("-h", "--help")):
                return parser.parse_args(args_list)
            args_list = ["overview", *args_list]

    return parser.parse_args(args_list)


def _load_overview_settings(args: argparse.Namespace) -> OverviewSettings:
    config_path = resolve_config_path(args.config or os.getenv("OVERVIEW_CONFIG_PATH"))
    settings = load_settings(config_path)
    logger.info("Loaded overview settings from %s", config_path)

    overrides = {}
    if args.port is not None:
        if args.port <= 0:
            raise SystemExit("--port must be greater than zero.")
        overrides["port"] = args.port
    if args.spawn_emulator is not None:
        overrides["spawn_emulator"] = args.spawn_emulator
    if args.quiet:
        overrides["log_requests"] = False
    return replace(settings, **overrides) if overrides else settings


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point for CLI usage."""

    logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(message)s")

    args = _parse_args(argv)

    if args.command == "flags":
        run_demo()
        return 0

    try:
        settings = _load_overview_settings(args)
    except ValueError as exc:
        raise SystemExit(f"Invalid overview configuration: {exc}") from exc

    try:
        from learning.overview import run_overview
    except ImportError as exc:  # pragma: no cover - exercised in environments missing deps
        raise SystemExit(
            "The overview needs pynamodb, moto[server] and httpx. "
            "Run `pip install -e .` to install dependencies."
        ) from exc

    return run_overview(settings)


if __name__ == "__main__":
    raise SystemExit(main())
