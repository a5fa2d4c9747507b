"""
ISCN message types and the type URL registry.

The ISCN module's protobuf schema is small enough that the message
classes are built from a descriptor at import time instead of shipping
generated ``_pb2`` modules. Field numbers follow ``likechain/iscn/tx.proto``.
"""

from typing import Any, Mapping, Optional

from google.protobuf import descriptor_pb2, descriptor_pool, message_factory
from google.protobuf.message import Message

from iscn_sdk.iscn.payload import FormattedRecord

MSG_CREATE_ISCN_RECORD = "/likechain.iscn.MsgCreateIscnRecord"
MSG_UPDATE_ISCN_RECORD = "/likechain.iscn.MsgUpdateIscnRecord"

_PACKAGE = "likechain.iscn"

_F = descriptor_pb2.FieldDescriptorProto


class UnknownMessageTypeError(KeyError):
    """Raised when no encoder is registered for a type URL."""
    pass


def _add_field(msg: descriptor_pb2.DescriptorProto, name: str, number: int, type_: int,
               repeated: bool = False, type_name: Optional[str] = None):
    f = msg.field.add()
    f.name = name
    f.number = number
    f.type = type_
    f.label = _F.LABEL_REPEATED if repeated else _F.LABEL_OPTIONAL
    if type_name is not None:
        f.type_name = type_name


def _build_file_descriptor() -> descriptor_pb2.FileDescriptorProto:
    fdp = descriptor_pb2.FileDescriptorProto(
        name="likechain/iscn/tx.proto",
        package=_PACKAGE,
        syntax="proto3",
    )

    record = fdp.message_type.add(name="IscnRecord")
    _add_field(record, "recordNotes", 1, _F.TYPE_STRING)
    _add_field(record, "contentFingerprints", 2, _F.TYPE_STRING, repeated=True)
    _add_field(record, "stakeholders", 3, _F.TYPE_BYTES, repeated=True)
    _add_field(record, "contentMetadata", 4, _F.TYPE_BYTES)

    create = fdp.message_type.add(name="MsgCreateIscnRecord")
    _add_field(create, "from", 1, _F.TYPE_STRING)
    _add_field(create, "record", 2, _F.TYPE_MESSAGE, type_name=f".{_PACKAGE}.IscnRecord")

    update = fdp.message_type.add(name="MsgUpdateIscnRecord")
    _add_field(update, "from", 1, _F.TYPE_STRING)
    _add_field(update, "iscnId", 2, _F.TYPE_STRING)
    _add_field(update, "record", 3, _F.TYPE_MESSAGE, type_name=f".{_PACKAGE}.IscnRecord")

    return fdp


_pool = descriptor_pool.DescriptorPool()
_pool.AddSerializedFile(_build_file_descriptor().SerializeToString())

IscnRecord = message_factory.GetMessageClass(_pool.FindMessageTypeByName(f"{_PACKAGE}.IscnRecord"))
MsgCreateIscnRecord = message_factory.GetMessageClass(_pool.FindMessageTypeByName(f"{_PACKAGE}.MsgCreateIscnRecord"))
MsgUpdateIscnRecord = message_factory.GetMessageClass(_pool.FindMessageTypeByName(f"{_PACKAGE}.MsgUpdateIscnRecord"))


def build_iscn_message(address: str, record: FormattedRecord, iscn_id: Optional[str] = None) -> dict[str, Any]:
    """
    Shape a create or update message.

    An ``iscn_id`` turns the message into an update of that record;
    without it a new record is created.
    """
    value: dict[str, Any] = {
        "from": address,
        "record": record.to_message_value(),
    }
    if iscn_id:
        value["iscnId"] = iscn_id
    return {
        "typeUrl": MSG_UPDATE_ISCN_RECORD if iscn_id else MSG_CREATE_ISCN_RECORD,
        "value": value,
    }


def _record_from_value(value: Mapping[str, Any]) -> Message:
    return IscnRecord(
        recordNotes=value.get("recordNotes", ""),
        contentFingerprints=list(value.get("contentFingerprints", [])),
        stakeholders=[bytes(s) for s in value.get("stakeholders", [])],
        contentMetadata=bytes(value.get("contentMetadata", b"")),
    )


def _encode_create(value: Mapping[str, Any]) -> Message:
    return MsgCreateIscnRecord(**{
        "from": value["from"],
        "record": _record_from_value(value["record"]),
    })


def _encode_update(value: Mapping[str, Any]) -> Message:
    return MsgUpdateIscnRecord(**{
        "from": value["from"],
        "iscnId": value["iscnId"],
        "record": _record_from_value(value["record"]),
    })


class IscnMessageRegistry:
    """Maps message type URLs to protobuf encoders."""

    def __init__(self):
        self._encoders = {
            MSG_CREATE_ISCN_RECORD: _encode_create,
            MSG_UPDATE_ISCN_RECORD: _encode_update,
        }

    def register(self, type_url: str, encoder):
        self._encoders[type_url] = encoder

    def __contains__(self, type_url: str) -> bool:
        return type_url in self._encoders

    def encode(self, message: Mapping[str, Any]) -> Message:
        """Convert a ``{"typeUrl", "value"}`` message into its protobuf form."""
        type_url = message["typeUrl"]
        if isinstance(message["value"], Message):
            # Chain-default types (bank, staking, ...) arrive as cosmpy protos
            return message["value"]
        encoder = self._encoders.get(type_url)
        if encoder is None:
            raise UnknownMessageTypeError(type_url)
        return encoder(message["value"])


default_registry = IscnMessageRegistry()
