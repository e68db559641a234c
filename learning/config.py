"""Configuration for the single-table overview tutorial."""
from __future__ import annotations

import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import yaml


def _default_emulator_command() -> Tuple[str, ...]:
    return (sys.executable, "-m", "moto.server", "-H", "{host}", "-p", "{port}")


def _positive_int(data: Dict[str, object], key: str, default: int) -> int:
    raw = data.get(key, default)
    try:
        value = int(raw)  # type: ignore[arg-type]
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Configuration field '{key}' must be an integer") from exc
    if value <= 0:
        raise ValueError(f"Configuration field '{key}' must be greater than zero")
    return value


@dataclass(frozen=True)
class OverviewSettings:
    """Connection, crypto and workload parameters for the overview run."""

    table_name: str = "TestOverview"
    region: str = "us-east-1"
    host: str = "localhost"
    port: int = 4567
    cipher_name: str = "primary"
    crypto_password: str = "1a22a-d27c9-12342-5f7bc-1a716-fc73e"
    log_requests: bool = True
    spawn_emulator: bool = True
    startup_timeout: float = 10.0
    emulator_command: Tuple[str, ...] = field(default_factory=_default_emulator_command)
    batch_size: int = 25
    user_count: int = 200
    page_size: int = 25

    @property
    def endpoint_url(self) -> str:
        return f"http://{self.host}:{self.port}"

    def render_emulator_command(self) -> List[str]:
        """Return the emulator argv with ``{host}``/``{port}`` filled in."""

        return [part.format(host=self.host, port=self.port) for part in self.emulator_command]

    @staticmethod
    def from_dict(data: Dict[str, object]) -> "OverviewSettings":
        """Create :class:`OverviewSettings` from raw mapping data."""

        defaults = OverviewSettings()

        table_name = str(data.get("table_name", defaults.table_name)).strip()
        if not table_name:
            raise ValueError("Configuration field 'table_name' must not be empty")

        password = data.get("crypto_password", defaults.crypto_password)
        if not password:
            raise ValueError("Configuration field 'crypto_password' must not be empty")

        raw_command = data.get("emulator_command")
        if raw_command is None:
            command = defaults.emulator_command
        elif isinstance(raw_command, str):
            command = tuple(raw_command.split())
        elif isinstance(raw_command, (list, tuple)):
            command = tuple(str(part) for part in raw_command)
        else:
            raise ValueError("Configuration field 'emulator_command' must be a list of arguments")
        if not command:
            raise ValueError("Configuration field 'emulator_command' must not be empty")

        try:
            startup_timeout = float(data.get("startup_timeout", defaults.startup_timeout))  # type: ignore[arg-type]
        except (TypeError, ValueError) as exc:
            raise ValueError("Configuration field 'startup_timeout' must be a number") from exc

        return OverviewSettings(
            table_name=table_name,
            region=str(data.get("region", defaults.region)),
            host=str(data.get("host", defaults.host)),
            port=_positive_int(data, "port", defaults.port),
            cipher_name=str(data.get("cipher_name", defaults.cipher_name)),
            crypto_password=str(password),
            log_requests=bool(data.get("log_requests", defaults.log_requests)),
            spawn_emulator=bool(data.get("spawn_emulator", defaults.spawn_emulator)),
            startup_timeout=startup_timeout,
            emulator_command=command,
            batch_size=min(_positive_int(data, "batch_size", defaults.batch_size), 25),
            user_count=_positive_int(data, "user_count", defaults.user_count),
            page_size=_positive_int(data, "page_size", defaults.page_size),
        )


def load_settings(config_path: Path) -> OverviewSettings:
    """Load settings from a YAML file, falling back to defaults when it is absent."""

    if not config_path.exists():
        return OverviewSettings()

    with config_path.open("r", encoding="utf-8") as handle:
        raw = yaml.safe_load(handle) or {}

    if not isinstance(raw, dict):
        raise ValueError("Configuration file must contain a mapping at the top level")

    section = raw.get("overview", raw)
    if not isinstance(section, dict):
        raise ValueError("The 'overview' section must be a mapping")
    return OverviewSettings.from_dict(section)


def resolve_config_path(env_value: Optional[str]) -> Path:
    """Resolve the path to the configuration file."""
    if env_value:
        candidate = Path(env_value).expanduser().resolve(strict=False)
    else:
        candidate = (Path(__file__).resolve().parent.parent / "config" / "overview.yaml").resolve(strict=False)
    return candidate


__all__ = ["OverviewSettings", "load_settings", "resolve_config_path"]
