"""RoadQuery Serializer - Record Serialization.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

import json
import logging
import pickle
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import msgpack

from roadquery_core.query.state import CachedRecord

logger = logging.getLogger(__name__)


class Serializer(ABC):
    """Abstract serializer for persisted records.

    Implementations handle different serialization formats. Records are
    always encoded in the ``{"data": ..., "lastUpdated": ...}`` layout.
    """

    @property
    @abstractmethod
    def format_name(self) -> str:
        """Get format name."""

    @abstractmethod
    def serialize(self, value: Any) -> bytes:
        """Serialize value to bytes.

        Args:
            value: Value to serialize

        Returns:
            Serialized bytes
        """

    @abstractmethod
    def deserialize(self, data: bytes) -> Any:
        """Deserialize bytes to value.

        Args:
            data: Serialized bytes

        Returns:
            Deserialized value
        """

    def dump_record(self, record: CachedRecord) -> bytes:
        """Encode a cached record.

        Args:
            record: Record to encode

        Returns:
            Encoded bytes
        """
        return self.serialize(record.to_dict())

    def load_record(self, data: bytes) -> CachedRecord:
        """Decode a cached record.

        Args:
            data: Encoded bytes

        Returns:
            CachedRecord

        Raises:
            ValueError: If the bytes do not hold a valid record
        """
        try:
            payload = self.deserialize(data)
        except Exception as e:
            raise ValueError(f"Undecodable {self.format_name} record: {e}") from e
        return CachedRecord.from_dict(payload)


class JSONSerializer(Serializer):
    """JSON serializer.

    Good for human-readable data and interoperability.
    Limited to JSON-compatible types.
    """

    @property
    def format_name(self) -> str:
        return "json"

    def serialize(self, value: Any) -> bytes:
        return json.dumps(value).encode("utf-8")

    def deserialize(self, data: bytes) -> Any:
        return json.loads(data.decode("utf-8"))


class PickleSerializer(Serializer):
    """Pickle serializer.

    Supports any Python object.
    Not safe for untrusted data.
    """

    def __init__(self, protocol: int = pickle.HIGHEST_PROTOCOL):
        """Initialize pickle serializer.

        Args:
            protocol: Pickle protocol version
        """
        self.protocol = protocol

    @property
    def format_name(self) -> str:
        return "pickle"

    def serialize(self, value: Any) -> bytes:
        return pickle.dumps(value, protocol=self.protocol)

    def deserialize(self, data: bytes) -> Any:
        return pickle.loads(data)


class MsgPackSerializer(Serializer):
    """MessagePack serializer.

    Compact binary format that keeps ``bytes`` payloads intact,
    which makes it the default for bulk stores. Maps may use int or
    bytes keys; tuples come back as lists.
    """

    @property
    def format_name(self) -> str:
        return "msgpack"

    def serialize(self, value: Any) -> bytes:
        return msgpack.packb(value, use_bin_type=True)

    def deserialize(self, data: bytes) -> Any:
        return msgpack.unpackb(data, raw=False, strict_map_key=False)


_SERIALIZERS: Dict[str, type] = {
    "json": JSONSerializer,
    "pickle": PickleSerializer,
    "msgpack": MsgPackSerializer,
}


def get_serializer(format_name: Optional[str] = None) -> Serializer:
    """Get serializer by format.

    Args:
        format_name: Format name or None for JSON

    Returns:
        Serializer instance

    Raises:
        KeyError: If format not found
    """
    name = format_name or "json"
    if name not in _SERIALIZERS:
        raise KeyError(f"Unknown serializer format: {name}")
    return _SERIALIZERS[name]()


__all__ = [
    "Serializer",
    "JSONSerializer",
    "PickleSerializer",
    "MsgPackSerializer",
    "get_serializer",
]
