from __future__ import annotations

import logging
import os
from pathlib import Path

# Repository root
REPO_ROOT = Path(__file__).resolve().parent.parent

ARDUINO_CLI_DOC_URL = "https://arduino.github.io/arduino-cli/"

_TRUTHY = ("1", "true", "True", "yes", "YES", "on")

# Daemon executable and RPC endpoint
ARDUINO_CLI_PATH: str = os.getenv("ARDUINO_CLI_PATH", "arduino-cli")
DAEMON_HOST: str = os.getenv("ARDUINO_DAEMON_HOST", "localhost")
DAEMON_PORT: int = int(os.getenv("ARDUINO_DAEMON_PORT", "50051"))
# Pause after a fresh launch before the Init handshake
DAEMON_STARTUP_GRACE_S: float = float(
    os.getenv("ARDUINO_DAEMON_STARTUP_GRACE_S", "0.5")
)
# Supervise the daemon ourselves; when off, an externally started daemon is expected
AUTO_START: bool = os.getenv("BOARD_EXPLORER_AUTO_START", "1") in _TRUTHY

# Webserver bind (NiceGUI host/port)
SERVER_HOST: str = os.getenv("BOARD_EXPLORER_SERVER_IP", "127.0.0.1")
SERVER_PORT: int = int(os.getenv("BOARD_EXPLORER_SERVER_PORT", "8080"))


TRACE = 5


def _resolve_log_level() -> int:
    s = os.getenv("BOARD_EXPLORER_LOG_LEVEL")
    if not s:
        return logging.WARNING
    mapping = {
        "DEBUG": logging.DEBUG,
        "INFO": logging.INFO,
        "WARNING": logging.WARNING,
        "ERROR": logging.ERROR,
        "CRITICAL": logging.CRITICAL,
    }
    return mapping.get(s.strip().upper(), logging.WARNING)


LOG_LEVEL: int = _resolve_log_level()
