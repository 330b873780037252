from __future__ import annotations

import os
from concurrent import futures
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import grpc
import pytest

# Constants are resolved at import time; never launch a real daemon from tests
os.environ["BOARD_EXPLORER_AUTO_START"] = "0"
os.environ["ARDUINO_DAEMON_STARTUP_GRACE_S"] = "0"

from board_explorer.services import protocol  # noqa: E402
from board_explorer.services import process_supervisor  # noqa: E402
from tests.utils.fakes import FakePopen  # noqa: E402

pytest_plugins = ["nicegui.testing.user_plugin"]


if TYPE_CHECKING:
    from collections.abc import Iterator


@dataclass
class DaemonScript:
    """What the in-process ArduinoCore server answers, and what it was asked."""

    init_responses: list = field(
        default_factory=lambda: [protocol.InitResp(instance=protocol.Instance(id=1))]
    )
    boards: list[tuple[str, str]] = field(default_factory=list)
    init_status: grpc.StatusCode | None = None
    list_status: grpc.StatusCode | None = None
    init_calls: int = 0
    list_requests: list = field(default_factory=list)


@dataclass
class FakeDaemon:
    port: int
    script: DaemonScript


@pytest.fixture
def fake_daemon() -> Iterator[FakeDaemon]:
    """
    Serve the ArduinoCore Init/BoardListAll methods from an in-process grpc.server
    bound to an ephemeral loopback port.
    """
    script = DaemonScript()

    def init(request, context):
        script.init_calls += 1
        if script.init_status is not None:
            context.abort(script.init_status, "init refused")
        yield from script.init_responses

    def board_list_all(request, context):
        script.list_requests.append(request)
        if script.list_status is not None:
            context.abort(script.list_status, "board list refused")
        return protocol.BoardListAllResp(
            boards=[protocol.BoardListItem(name=n, FQBN=f) for n, f in script.boards]
        )

    handler = grpc.method_handlers_generic_handler(
        protocol.SERVICE,
        {
            "Init": grpc.unary_stream_rpc_method_handler(
                init,
                request_deserializer=protocol.InitReq.FromString,
                response_serializer=protocol.InitResp.SerializeToString,
            ),
            "BoardListAll": grpc.unary_unary_rpc_method_handler(
                board_list_all,
                request_deserializer=protocol.BoardListAllReq.FromString,
                response_serializer=protocol.BoardListAllResp.SerializeToString,
            ),
        },
    )
    server = grpc.server(futures.ThreadPoolExecutor(max_workers=4))
    server.add_generic_rpc_handlers((handler,))
    port = server.add_insecure_port("127.0.0.1:0")
    server.start()
    try:
        yield FakeDaemon(port=port, script=script)
    finally:
        server.stop(grace=None)


@pytest.fixture
def fake_popen(monkeypatch: pytest.MonkeyPatch) -> type[FakePopen]:
    """Replace subprocess.Popen for the supervisor with a recording fake."""
    FakePopen.instances = []
    FakePopen.spawn_delay_s = 0.0
    FakePopen.output = ""
    monkeypatch.setattr(process_supervisor.subprocess, "Popen", FakePopen)
    monkeypatch.setattr(process_supervisor.shutil, "which", lambda cmd, **kwargs: cmd)
    return FakePopen
