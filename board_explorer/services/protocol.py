"""
Wire types for the arduino-cli daemon's ``ArduinoCore`` gRPC service.

Only the handful of messages the explorer exchanges are described here. They are
registered from a ``FileDescriptorProto`` into a private descriptor pool at
import time, so the package ships without generated ``*_pb2`` modules.
Unknown fields sent by newer daemons are preserved and ignored.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from google.protobuf import descriptor_pb2, descriptor_pool, message_factory

PACKAGE = "cc.arduino.cli.commands"
SERVICE = f"{PACKAGE}.ArduinoCore"
INIT_METHOD = f"/{SERVICE}/Init"
BOARD_LIST_ALL_METHOD = f"/{SERVICE}/BoardListAll"

_F = descriptor_pb2.FieldDescriptorProto


def _add_field(
    message: descriptor_pb2.DescriptorProto,
    name: str,
    number: int,
    field_type: int,
    label: int = _F.LABEL_OPTIONAL,
    type_name: str | None = None,
) -> None:
    field = message.field.add(name=name, number=number, type=field_type, label=label)
    if type_name:
        field.type_name = f".{PACKAGE}.{type_name}"


def _build_file() -> descriptor_pb2.FileDescriptorProto:
    fdp = descriptor_pb2.FileDescriptorProto(
        name="cc/arduino/cli/commands/board_explorer.proto",
        package=PACKAGE,
        syntax="proto3",
    )

    instance = fdp.message_type.add(name="Instance")
    _add_field(instance, "id", 1, _F.TYPE_INT32)

    init_req = fdp.message_type.add(name="InitReq")
    _add_field(init_req, "library_manager_only", 2, _F.TYPE_BOOL)

    init_resp = fdp.message_type.add(name="InitResp")
    _add_field(init_resp, "instance", 1, _F.TYPE_MESSAGE, type_name="Instance")
    _add_field(
        init_resp, "platforms_index_errors", 2, _F.TYPE_STRING, _F.LABEL_REPEATED
    )
    _add_field(init_resp, "library_index_error", 3, _F.TYPE_STRING)

    list_req = fdp.message_type.add(name="BoardListAllReq")
    _add_field(list_req, "instance", 1, _F.TYPE_MESSAGE, type_name="Instance")
    _add_field(list_req, "search_args", 2, _F.TYPE_STRING, _F.LABEL_REPEATED)

    item = fdp.message_type.add(name="BoardListItem")
    _add_field(item, "name", 1, _F.TYPE_STRING)
    _add_field(item, "FQBN", 2, _F.TYPE_STRING)

    list_resp = fdp.message_type.add(name="BoardListAllResp")
    _add_field(
        list_resp,
        "boards",
        1,
        _F.TYPE_MESSAGE,
        _F.LABEL_REPEATED,
        type_name="BoardListItem",
    )

    service = fdp.service.add(name="ArduinoCore")
    service.method.add(
        name="Init",
        input_type=f".{PACKAGE}.InitReq",
        output_type=f".{PACKAGE}.InitResp",
        server_streaming=True,
    )
    service.method.add(
        name="BoardListAll",
        input_type=f".{PACKAGE}.BoardListAllReq",
        output_type=f".{PACKAGE}.BoardListAllResp",
    )
    return fdp


_pool = descriptor_pool.DescriptorPool()
_pool.AddSerializedFile(_build_file().SerializeToString())


def _message_class(name: str):
    return message_factory.GetMessageClass(
        _pool.FindMessageTypeByName(f"{PACKAGE}.{name}")
    )


Instance = _message_class("Instance")
InitReq = _message_class("InitReq")
InitResp = _message_class("InitResp")
BoardListAllReq = _message_class("BoardListAllReq")
BoardListItem = _message_class("BoardListItem")
BoardListAllResp = _message_class("BoardListAllResp")


@dataclass(frozen=True)
class SessionHandle:
    """Opaque session token issued by the daemon's Init handshake."""

    instance_id: int

    def to_message(self):
        return Instance(id=self.instance_id)


@dataclass(frozen=True)
class BoardDescriptor:
    """One board known to the daemon."""

    name: str
    fqbn: str

    def __post_init__(self) -> None:
        if not isinstance(self.name, str) or not self.name:
            raise ValueError("BoardDescriptor.name must be a non-empty string")
        if not isinstance(self.fqbn, str):
            raise ValueError("BoardDescriptor.fqbn must be a string")

    @classmethod
    def from_message(cls, item) -> BoardDescriptor:
        return cls(name=item.name, fqbn=item.FQBN)


def handle_from_init_response(response) -> SessionHandle | None:
    """Extract a usable session handle, or None when the response carries none."""
    if not response.HasField("instance"):
        return None
    if response.instance.id <= 0:
        return None
    return SessionHandle(instance_id=response.instance.id)


def board_list_all_request(handle: SessionHandle, search_args: Iterable[str] = ()):
    return BoardListAllReq(instance=handle.to_message(), search_args=list(search_args))
