import runpy
import sys
from pathlib import Path

import pytest

SCRIPT = Path(__file__).resolve().parent.parent / "scripts" / "run_emulator.py"


@pytest.mark.parametrize("port", ["0", "-5"])
def test_run_emulator_rejects_non_positive_port(monkeypatch: pytest.MonkeyPatch, port: str) -> None:
    namespace = runpy.run_path(str(SCRIPT))
    monkeypatch.setattr(sys, "argv", ["run_emulator.py", "--port", port])

    with pytest.raises(SystemExit, match="--port must be greater than zero"):
        namespace["main"]()
