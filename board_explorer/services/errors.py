from __future__ import annotations


class BoardExplorerError(Exception):
    """Base class for every error raised by the service layer."""


class LaunchError(BoardExplorerError):
    """The daemon process could not be spawned."""

    def __init__(self, message: str, cause: OSError | None = None) -> None:
        super().__init__(message)
        self.cause = cause


class TransportError(BoardExplorerError):
    """An RPC against the daemon failed at the transport level."""

    def __init__(self, code: str, details: str = "") -> None:
        super().__init__(f"{code}: {details}" if details else code)
        self.code = code
        self.details = details

    @classmethod
    def from_rpc_error(cls, err: Exception) -> TransportError:
        # grpc.RpcError raised from a call is also a grpc.Call
        code = getattr(err, "code", None)
        details = getattr(err, "details", None)
        code_name = str(code().name) if callable(code) and code() is not None else "UNKNOWN"
        text = (details() if callable(details) else None) or str(err)
        return cls(code_name, text)


class NotInitialized(BoardExplorerError):
    """A query was attempted before a session handle was established."""

    def __init__(self, message: str = "Not initialized") -> None:
        super().__init__(message)


class InitError(BoardExplorerError):
    """Base class for failures surfaced by SessionManager.initialize()."""


class DaemonUnavailable(InitError):
    """The daemon could not be started."""


class HandshakeFailed(InitError):
    """The Init handshake did not yield a usable session."""


class EmptyHandshake(HandshakeFailed):
    """The daemon closed the Init stream without sending a response."""
