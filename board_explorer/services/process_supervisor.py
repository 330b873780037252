from __future__ import annotations

import errno
import logging
import os
import shlex
import shutil
import subprocess
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Protocol

from board_explorer.services.errors import LaunchError


class LaunchStrategy(Protocol):
    """Wraps the daemon argv into a platform-appropriate command line."""

    def command(self, argv: list[str]) -> list[str]: ...


class PosixLaunch:
    def command(self, argv: list[str]) -> list[str]:
        return ["/bin/sh", "-c", shlex.join(argv)]


class WindowsLaunch:
    def command(self, argv: list[str]) -> list[str]:
        return ["cmd.exe", "/c", subprocess.list2cmdline(argv)]


_STRATEGIES: dict[str, type[LaunchStrategy]] = {
    "posix": PosixLaunch,
    "nt": WindowsLaunch,
}


def launch_strategy_for(os_name: str | None = None) -> LaunchStrategy:
    """Resolve the launch strategy for a platform family (``os.name`` values)."""
    family = os_name or os.name
    try:
        return _STRATEGIES[family]()
    except KeyError:
        raise LaunchError(f"Unsupported platform family: {family}") from None


@dataclass
class DaemonOptions:
    """Options for launching the arduino-cli daemon."""

    cli_path: str = "arduino-cli"
    extra_args: list[str] = field(default_factory=list)
    extra_env: dict[str, str] | None = None
    cwd: Path | None = None  # defaults to the user's home directory

    def argv(self) -> list[str]:
        return [self.cli_path, "daemon", "--verbose", *self.extra_args]


class ProcessSupervisor:
    """
    Owns the single arduino-cli daemon subprocess.

    - Spawns the daemon with stdout and stderr merged into one pipe.
    - Drains that pipe on a background thread so the daemon never blocks on output.
    - Exited processes are noticed lazily, the next time ensure_running() runs.
    """

    def __init__(
        self, options: DaemonOptions | None = None, os_name: str | None = None
    ) -> None:
        self.options = options or DaemonOptions()
        self.strategy = launch_strategy_for(os_name)
        self._proc: subprocess.Popen | None = None
        self._reader: threading.Thread | None = None
        self._lock = threading.Lock()

    @property
    def pid(self) -> int | None:
        proc = self._proc
        return proc.pid if proc and proc.poll() is None else None

    def is_running(self) -> bool:
        proc = self._proc
        return proc is not None and proc.poll() is None

    def ensure_running(self) -> bool:
        """Start the daemon unless one is already tracked. Returns True if spawned."""
        with self._lock:
            if self._proc is not None:
                if self._proc.poll() is None:
                    return False
                logging.warning(
                    "arduino-cli daemon (pid %s) exited with code %s; relaunching",
                    self._proc.pid,
                    self._proc.returncode,
                )
                self._proc = None
                self._reader = None

            cwd = self.options.cwd or Path.home()
            env = os.environ.copy()
            if self.options.extra_env:
                env.update(self.options.extra_env)
            # The shell wrapper always starts; resolve the executable before spawning it
            executable = shutil.which(self.options.cli_path, path=env.get("PATH"))
            if executable is None:
                cause = FileNotFoundError(
                    errno.ENOENT,
                    "executable not found or not executable",
                    self.options.cli_path,
                )
                raise LaunchError(
                    f"Failed to start arduino-cli daemon: {cause}", cause
                ) from cause
            args = self.strategy.command([executable, *self.options.argv()[1:]])

            logging.info("Starting arduino-cli daemon: %s (cwd=%s)", args, cwd)
            try:
                self._proc = subprocess.Popen(
                    args,
                    cwd=str(cwd),
                    env=env,
                    stdin=subprocess.DEVNULL,
                    stdout=subprocess.PIPE,
                    stderr=subprocess.STDOUT,
                    text=True,
                    encoding="utf-8",
                    errors="replace",
                    bufsize=1,
                )
            except OSError as e:
                raise LaunchError(f"Failed to start arduino-cli daemon: {e}", e) from e

            logging.info("arduino-cli daemon started (pid %s)", self._proc.pid)
            return True

    def stream_output(self, sink: Callable[[str], None]) -> None:
        """Forward every output line of the tracked process to ``sink``."""
        with self._lock:
            proc = self._proc
            if proc is None or proc.stdout is None:
                return
            if self._reader is not None and self._reader.is_alive():
                return
            self._reader = threading.Thread(
                target=_drain,
                args=(proc.stdout, sink),
                daemon=True,
                name=f"arduino-cli-output-{proc.pid}",
            )
            self._reader.start()

    def terminate(self, timeout: float = 5.0) -> None:
        """Stop the daemon if running and release it."""
        with self._lock:
            proc, reader = self._proc, self._reader
            self._proc = None
            self._reader = None

        if proc is None:
            return

        if proc.poll() is None:
            try:
                proc.terminate()
                proc.wait(timeout=timeout)
            except subprocess.TimeoutExpired:
                logging.warning("arduino-cli daemon did not exit in %.1fs; killing", timeout)
                proc.kill()
                proc.wait(timeout=2.0)
            except ProcessLookupError:
                pass
        logging.info("arduino-cli daemon stopped (code %s)", proc.returncode)

        if reader is not None:
            reader.join(timeout=1.0)


def _drain(stream, sink: Callable[[str], None]) -> None:
    """Read lines from stream until EOF and forward them to sink."""
    try:
        for raw in stream:
            line = raw.rstrip()
            if not line:
                continue
            try:
                sink(line)
            except Exception as e:
                # Keep draining; a stalled pipe would block the daemon
                logging.error("arduino-cli output sink error: %s", e)
    except (OSError, ValueError) as e:
        # ValueError: stream closed underneath us during teardown
        logging.debug("arduino-cli output reader stopped: %s", e)
