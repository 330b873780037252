from __future__ import annotations

import io
import subprocess
import threading
import time

from board_explorer.services import protocol
from board_explorer.services.session_channel import ConnectionConfig


def init_response(instance_id: int = 1):
    return protocol.InitResp(instance=protocol.Instance(id=instance_id))


def board_list_response(boards: list[tuple[str, str]]):
    return protocol.BoardListAllResp(
        boards=[protocol.BoardListItem(name=n, FQBN=f) for n, f in boards]
    )


class FakeChannel:
    """Scripted stand-in for SessionChannel that records what it was asked."""

    def __init__(
        self,
        init_responses: list | None = None,
        init_error: Exception | None = None,
        boards: list[tuple[str, str]] | None = None,
        list_error: Exception | None = None,
    ) -> None:
        self.config = ConnectionConfig()
        self.init_responses = [init_response()] if init_responses is None else init_responses
        self.init_error = init_error
        self.boards = boards or []
        self.list_response = None
        self.list_error = list_error
        self.init_calls = 0
        self.requests: list = []
        self.closed = False

    def streaming_init(self, request):
        self.init_calls += 1
        if self.init_error is not None:
            raise self.init_error
        yield from self.init_responses

    def blocking_call(self, request):
        self.requests.append(request)
        if self.list_error is not None:
            raise self.list_error
        if self.list_response is not None:
            return self.list_response
        return board_list_response(self.boards)

    def close(self) -> None:
        self.closed = True


class FakeSupervisor:
    """Counts launches instead of spawning anything."""

    def __init__(self, error: Exception | None = None) -> None:
        self.error = error
        self.running = False
        self.launches = 0
        self.terminations = 0
        self.sinks: list = []

    def ensure_running(self) -> bool:
        if self.error is not None:
            raise self.error
        if self.running:
            return False
        self.running = True
        self.launches += 1
        return True

    def stream_output(self, sink) -> None:
        self.sinks.append(sink)

    def terminate(self, timeout: float = 5.0) -> None:
        self.running = False
        self.terminations += 1


class FakePopen:
    """Minimal subprocess.Popen replacement; every instance is recorded on the class."""

    instances: list[FakePopen] = []
    spawn_delay_s: float = 0.0
    output: str = ""
    _lock = threading.Lock()

    def __init__(self, args, **kwargs) -> None:
        if self.spawn_delay_s:
            time.sleep(self.spawn_delay_s)
        self.args = args
        self.kwargs = kwargs
        self.pid = 4242 + len(self.instances)
        self.returncode: int | None = None
        self.stdout = io.StringIO(self.output)
        self.terminated = False
        self.killed = False
        self.hang_on_terminate = False
        with self._lock:
            self.instances.append(self)

    def poll(self) -> int | None:
        return self.returncode

    def terminate(self) -> None:
        self.terminated = True
        if not self.hang_on_terminate:
            self.returncode = -15

    def kill(self) -> None:
        self.killed = True
        self.returncode = -9

    def wait(self, timeout: float | None = None) -> int:
        if self.returncode is None:
            raise subprocess.TimeoutExpired(self.args, timeout)
        return self.returncode
