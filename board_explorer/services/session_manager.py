from __future__ import annotations

import logging
import threading
import time
from enum import Enum
from typing import Callable

from board_explorer.services import protocol
from board_explorer.services.errors import (
    DaemonUnavailable,
    EmptyHandshake,
    HandshakeFailed,
    LaunchError,
    NotInitialized,
)
from board_explorer.services.process_supervisor import ProcessSupervisor
from board_explorer.services.protocol import SessionHandle
from board_explorer.services.session_channel import SessionChannel


class SessionState(str, Enum):
    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    READY = "ready"
    FAILED = "failed"


class SessionManager:
    """
    Turns a supervised daemon plus a channel into one ready session.

    The Init handshake is the only authority on readiness: a running daemon does
    not make the session READY. READY is left only through reset(); a handle that
    went stale is not detected here.

    Passing ``supervisor=None`` means the daemon is managed externally.
    """

    def __init__(
        self,
        channel: SessionChannel,
        supervisor: ProcessSupervisor | None = None,
        output_sink: Callable[[str], None] | None = None,
        startup_grace_s: float = 0.5,
    ) -> None:
        self.channel = channel
        self.supervisor = supervisor
        self.output_sink = output_sink
        self.startup_grace_s = startup_grace_s
        self._state = SessionState.UNINITIALIZED
        self._handle: SessionHandle | None = None
        self._state_lock = threading.Lock()
        self._init_lock = threading.Lock()

    @property
    def state(self) -> SessionState:
        with self._state_lock:
            return self._state

    def is_ready(self) -> bool:
        return self.state is SessionState.READY

    def _set(self, state: SessionState, handle: SessionHandle | None) -> None:
        with self._state_lock:
            self._state = state
            self._handle = handle

    def current_handle(self) -> SessionHandle:
        """Return the session handle, or raise NotInitialized if not READY."""
        with self._state_lock:
            if self._state is SessionState.READY and self._handle is not None:
                return self._handle
        raise NotInitialized("Session not initialized; call initialize() first")

    def initialize(self) -> SessionHandle:
        """
        Bring the session to READY and return its handle.

        Raises:
            DaemonUnavailable: the daemon process could not be started
            EmptyHandshake: the daemon answered Init with no response
            HandshakeFailed: Init failed at the transport level or returned no instance
        """
        with self._init_lock:
            with self._state_lock:
                if self._state is SessionState.READY and self._handle is not None:
                    return self._handle
                self._state = SessionState.INITIALIZING

            self._ensure_daemon()

            logging.debug("Sending Init to %s", self.channel.config.target)
            stream = self.channel.streaming_init(protocol.InitReq())
            try:
                response = next(stream, None)
            except Exception as e:
                # TransportError, or ValueError from a channel closed by shutdown()
                self._set(SessionState.FAILED, None)
                logging.error("Init handshake failed: %s", e)
                raise HandshakeFailed(f"Init handshake failed: {e}") from e
            finally:
                stream.close()

            if response is None:
                self._set(SessionState.FAILED, None)
                logging.error("Init handshake returned no response")
                raise EmptyHandshake("Daemon returned no Init response")

            handle = protocol.handle_from_init_response(response)
            if handle is None:
                self._set(SessionState.FAILED, None)
                logging.error("Init response carried no usable instance")
                raise HandshakeFailed("Init response carried no usable instance")

            for err in response.platforms_index_errors:
                logging.warning("Platform index error: %s", err)
            if response.library_index_error:
                logging.warning("Library index error: %s", response.library_index_error)

            self._set(SessionState.READY, handle)
            logging.info("Session ready (instance %s)", handle.instance_id)
            return handle

    def _ensure_daemon(self) -> None:
        if self.supervisor is None:
            return
        try:
            spawned = self.supervisor.ensure_running()
        except LaunchError as e:
            self._set(SessionState.FAILED, None)
            logging.error("arduino-cli daemon unavailable: %s", e)
            raise DaemonUnavailable(str(e)) from e
        if spawned:
            if self.output_sink is not None:
                self.supervisor.stream_output(self.output_sink)
            # Give the daemon a brief moment to bind its port
            if self.startup_grace_s > 0:
                time.sleep(self.startup_grace_s)

    def reset(self) -> None:
        """Drop the session handle. The daemon keeps running."""
        self._set(SessionState.UNINITIALIZED, None)
        logging.info("Session reset")

    def shutdown(self) -> None:
        """Drop the session, stop a supervised daemon and close the channel."""
        self.reset()
        if self.supervisor is not None:
            self.supervisor.terminate()
        self.channel.close()
