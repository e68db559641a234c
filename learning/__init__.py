"""Learning samples: a bit-flag demo and a single-table data-mapping tutorial."""

from __future__ import annotations

from .config import OverviewSettings, load_settings, resolve_config_path
from .flags import Flags, run_demo


def run_overview(*args, **kwargs):
    """Run the single-table tutorial; imports the database stack lazily."""

    from .overview import run_overview as _run_overview

    return _run_overview(*args, **kwargs)


__all__ = [
    "Flags",
    "OverviewSettings",
    "load_settings",
    "resolve_config_path",
    "run_demo",
    "run_overview",
]
