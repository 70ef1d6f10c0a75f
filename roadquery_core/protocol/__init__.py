"""Protocol module - Record serialization."""

from roadquery_core.protocol.serializer import (
    Serializer,
    JSONSerializer,
    PickleSerializer,
    MsgPackSerializer,
    get_serializer,
)

__all__ = [
    "Serializer",
    "JSONSerializer",
    "PickleSerializer",
    "MsgPackSerializer",
    "get_serializer",
]
