from __future__ import annotations

import logging
from collections.abc import Iterator
from dataclasses import dataclass

import grpc

from board_explorer.constants import TRACE
from board_explorer.services import protocol
from board_explorer.services.errors import TransportError


@dataclass(frozen=True)
class ConnectionConfig:
    """Where the daemon's RPC endpoint lives."""

    host: str = "localhost"
    port: int = 50051
    plaintext: bool = True  # the daemon runs on the same host

    @property
    def target(self) -> str:
        return f"{self.host}:{self.port}"


class SessionChannel:
    """
    Transport to the daemon's ``ArduinoCore`` service.

    Construction does not touch the network; an unreachable daemon only shows up
    as a TransportError once a call is made. No call is retried here.
    """

    def __init__(
        self, config: ConnectionConfig, channel: grpc.Channel | None = None
    ) -> None:
        if not config.plaintext:
            raise ValueError("Only plaintext channels are supported")
        self.config = config
        # Loopback daemon: never route through an http_proxy from the environment
        self._channel = channel or grpc.insecure_channel(
            config.target, options=[("grpc.enable_http_proxy", 0)]
        )
        self._init = self._channel.unary_stream(
            protocol.INIT_METHOD,
            request_serializer=protocol.InitReq.SerializeToString,
            response_deserializer=protocol.InitResp.FromString,
        )
        # Unary RPCs keyed by request message type
        self._unary = {
            protocol.BoardListAllReq.DESCRIPTOR.full_name: self._channel.unary_unary(
                protocol.BOARD_LIST_ALL_METHOD,
                request_serializer=protocol.BoardListAllReq.SerializeToString,
                response_deserializer=protocol.BoardListAllResp.FromString,
            ),
        }

    def blocking_call(self, request):
        """Send a unary request and wait for its response."""
        name = request.DESCRIPTOR.full_name
        stub = self._unary.get(name)
        if stub is None:
            raise TypeError(f"No unary RPC registered for {name}")
        logging.log(TRACE, "-> %s %s", name, request)
        try:
            return stub(request)
        except grpc.RpcError as e:
            raise TransportError.from_rpc_error(e) from e

    def streaming_init(self, request) -> Iterator:
        """Run the Init handshake, yielding responses as the daemon sends them."""
        logging.log(TRACE, "-> %s %s", protocol.INIT_METHOD, request)
        call = self._init(request)
        try:
            for response in call:
                yield response
        except grpc.RpcError as e:
            raise TransportError.from_rpc_error(e) from e
        finally:
            # Consumer may stop after the first response; don't leave the stream open
            if call.is_active():
                call.cancel()

    def close(self) -> None:
        logging.debug("Closing channel to %s", self.config.target)
        self._channel.close()
