"""Control of the locally spawned database emulator process."""
from __future__ import annotations

import logging
import subprocess
import time
from typing import Callable, Optional

import httpx

from .config import OverviewSettings

logger = logging.getLogger("learning.emulator")

Probe = Callable[..., object]
PopenFactory = Callable[..., subprocess.Popen]


class EmulatorError(RuntimeError):
    """Raised when the emulator cannot be started."""

    def __init__(self, message: str, returncode: int | None = None) -> None:
        super().__init__(message)
        self.returncode = returncode


class LocalEmulator:
    """Spawn the configured emulator and wait until it accepts requests."""

    def __init__(
        self,
        settings: OverviewSettings,
        *,
        popen: PopenFactory = subprocess.Popen,
        probe: Probe = httpx.get,
        poll_interval: float = 0.1,
        stop_timeout: float = 5.0,
    ) -> None:
        self._settings = settings
        self._popen = popen
        self._probe = probe
        self._poll_interval = poll_interval
        self._stop_timeout = stop_timeout
        self._process: Optional[subprocess.Popen] = None

    @property
    def endpoint_url(self) -> str:
        return self._settings.endpoint_url

    @property
    def running(self) -> bool:
        return self._process is not None and self._process.poll() is None

    def start(self) -> None:
        if self.running:
            return

        command = self._settings.render_emulator_command()
        logger.info("Starting emulator on %s: %s", self.endpoint_url, " ".join(command))
        try:
            self._process = self._popen(
                command,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
            )
        except OSError as exc:
            raise EmulatorError(f"Unable to launch emulator command {command[0]!r}: {exc}") from exc

        try:
            self._wait_until_ready()
        except EmulatorError:
            self.stop()
            raise

    def _wait_until_ready(self) -> None:
        assert self._process is not None
        deadline = time.monotonic() + self._settings.startup_timeout
        while True:
            returncode = self._process.poll()
            if returncode is not None:
                raise EmulatorError(
                    f"Emulator exited with status {returncode} before it was ready",
                    returncode=returncode,
                )
            try:
                self._probe(self.endpoint_url, timeout=1.0)
            except httpx.TransportError:
                if time.monotonic() >= deadline:
                    raise EmulatorError(
                        f"Emulator did not answer on {self.endpoint_url} within "
                        f"{self._settings.startup_timeout:g} seconds"
                    ) from None
                time.sleep(self._poll_interval)
                continue
            logger.info("Emulator is accepting requests on %s", self.endpoint_url)
            return

    def stop(self) -> None:
        process = self._process
        if process is None:
            return
        self._process = None

        if process.poll() is not None:
            return

        logger.info("Stopping emulator (pid %s)", process.pid)
        process.terminate()
        try:
            process.wait(timeout=self._stop_timeout)
        except subprocess.TimeoutExpired:
            logger.warning("Emulator ignored terminate; killing pid %s", process.pid)
            process.kill()
            process.wait()

    def __enter__(self) -> "LocalEmulator":
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()


__all__ = ["EmulatorError", "LocalEmulator"]
