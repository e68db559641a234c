import argparse
import logging
import os
import sys
import time
from dataclasses import replace
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from learning.config import load_settings, resolve_config_path
from learning.emulator import EmulatorError, LocalEmulator


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run the local database emulator until interrupted")
    parser.add_argument(
        "--config",
        dest="config_path",
        default=None,
        help="Path to the YAML settings (defaults to OVERVIEW_CONFIG_PATH or config/overview.yaml)",
    )
    parser.add_argument("--port", type=int, default=None, help="Port to listen on")
    return parser.parse_args()


def main() -> int:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(message)s")
    args = parse_args()
    if args.port is not None and args.port <= 0:
        raise SystemExit("--port must be greater than zero.")

    config_env = args.config_path or os.getenv("OVERVIEW_CONFIG_PATH")
    try:
        settings = load_settings(resolve_config_path(config_env))
    except ValueError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    if args.port is not None:
        settings = replace(settings, port=args.port)

    emulator = LocalEmulator(settings)
    try:
        emulator.start()
    except EmulatorError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    print(f"Emulator listening on {emulator.endpoint_url}. Press Ctrl+C to stop.")
    try:
        while emulator.running:
            time.sleep(1)
    except KeyboardInterrupt:
        print("\nStopping emulator.")
    finally:
        emulator.stop()

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
