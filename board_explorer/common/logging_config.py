from __future__ import annotations

import asyncio
import logging
import sys
import threading
import weakref

from nicegui import core, ui

from board_explorer.constants import TRACE

_LEVEL_COLORS = {
    "TRACE": "\033[32m",  # green
    "DEBUG": "\033[36m",  # cyan
    "INFO": "\033[37m",  # light gray
    "WARNING": "\033[33m",  # yellow
    "ERROR": "\033[31m",  # red
    "CRITICAL": "\033[41m",  # red background
}
_RESET = "\033[0m"
_DIM = "\033[2m"

logging.addLevelName(TRACE, "TRACE")

# Lines printed by the arduino-cli daemon end up here
DAEMON_LOGGER = logging.getLogger("arduino-cli")


def daemon_output_sink(line: str) -> None:
    """Sink for ProcessSupervisor.stream_output."""
    DAEMON_LOGGER.info("%s", line)


class AnsiColorFormatter(logging.Formatter):
    """Formatter that adds ANSI colors and a compact timestamp."""

    def __init__(self, colored: bool = True) -> None:
        super().__init__(
            fmt="%(asctime)s %(levelname)s %(name)s: %(message)s", datefmt="%H:%M:%S"
        )
        self.colored = colored and sys.stderr.isatty()

    def format(self, record: logging.LogRecord) -> str:
        base = super().format(record)
        if not self.colored:
            return base
        level = record.levelname.upper()
        color = _LEVEL_COLORS.get(level, "")
        # Expect format "HH:MM:SS LEVEL logger: msg"
        ts, sep, rest = base.partition(" ")
        if not sep:
            return base
        if color:
            rest = rest.replace(level, f"{color}{level}{_RESET}", 1)
        return f"{_DIM}{ts}{_RESET} {rest}"


# ---- NiceGUI UI log handler ----

_ui_log_targets: set[weakref.ref] = set()
_ui_lock = threading.Lock()


def _on_loop_thread(loop: asyncio.AbstractEventLoop) -> bool:
    try:
        return asyncio.get_running_loop() is loop
    except RuntimeError:
        return False


class NiceGuiLogHandler(logging.Handler):
    """
    Push log records into attached ui.log widgets.

    Records emitted on other threads (daemon output reader, io_bound workers) are
    handed to the NiceGUI event loop before touching any widget.
    """

    def __init__(self, level: int = logging.INFO) -> None:
        super().__init__(level=level)
        self.setFormatter(
            logging.Formatter(
                "%(asctime)s [%(levelname)s] %(name)s: %(message)s", "%H:%M:%S"
            )
        )

    def emit(self, record: logging.LogRecord) -> None:
        if not _ui_log_targets:
            return
        msg = self.format(record)
        loop = core.loop
        if loop is not None and loop.is_running() and not _on_loop_thread(loop):
            loop.call_soon_threadsafe(_push_to_widgets, msg)
        else:
            _push_to_widgets(msg)


def _push_to_widgets(msg: str) -> None:
    stale: list[weakref.ref] = []
    with _ui_lock:
        for ref in list(_ui_log_targets):
            widget = ref()
            if widget is None:
                stale.append(ref)
                continue
            try:
                widget.push(msg)
            except Exception:
                # Widget's client is gone
                stale.append(ref)
        for ref in stale:
            _ui_log_targets.discard(ref)


def attach_ui_log(log_widget: ui.log) -> None:
    """Register a ui.log widget as a sink for log records."""
    try:
        ref = weakref.ref(log_widget)
    except TypeError:
        return
    with _ui_lock:
        _ui_log_targets.add(ref)


def detach_ui_log(log_widget: ui.log) -> None:
    """Unregister a ui.log widget."""
    try:
        ref = weakref.ref(log_widget)
    except TypeError:
        return
    with _ui_lock:
        _ui_log_targets.discard(ref)


def configure_logging(
    level: int = logging.INFO, use_color: bool = True, add_ui_handler: bool = True
) -> logging.Logger:
    """
    Configure root logger with:
      - ANSI-colored console handler (stderr) with timestamps and levels
      - Optional NiceGUI UI log handler (records mirrored to the page log)
    Idempotent across multiple calls.
    """
    logger = logging.getLogger()
    logger.setLevel(level)

    if not any(isinstance(h, logging.StreamHandler) for h in logger.handlers):
        console = logging.StreamHandler(stream=sys.stderr)
        console.setLevel(level)
        console.setFormatter(AnsiColorFormatter(colored=use_color))
        logger.addHandler(console)

    if add_ui_handler and not any(
        isinstance(h, NiceGuiLogHandler) for h in logger.handlers
    ):
        logger.addHandler(NiceGuiLogHandler(level=level))

    return logger
