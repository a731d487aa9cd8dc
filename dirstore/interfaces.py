from __future__ import annotations

from typing import Any, Protocol, TypeVar

T = TypeVar("T")


class Serializer(Protocol):
    """
    Turns a document's field map into file bytes and back.
    """

    def encode(self, fields: dict[str, Any]) -> bytes:
        """Serialize the full field map."""
        ...

    def decode(self, raw: bytes) -> dict[str, Any]:
        """Parse file contents; empty input yields an empty map. Raises Corrupt on bad input."""
        ...


class ObjectMapper(Protocol):
    """
    Converts between user record types and field maps.
    """

    def serialize(self, obj: Any) -> dict[str, Any]:
        ...

    def deserialize(self, shape: type[T], fields: dict[str, Any]) -> T:
        """Raises TypeMismatch when `fields` does not fit `shape`."""
        ...
