from __future__ import annotations

from functools import lru_cache
from typing import Any, TypeVar

from pydantic import BaseModel, TypeAdapter, ValidationError

from .errors import TypeMismatch

T = TypeVar("T")


@lru_cache(maxsize=128)
def _adapter(shape: Any) -> TypeAdapter:
    return TypeAdapter(shape)


class PydanticObjectMapper:
    """
    Maps pydantic models, dataclasses and TypedDicts to and from document field maps.
    """

    def serialize(self, obj: Any) -> dict[str, Any]:
        if isinstance(obj, BaseModel):
            doc = obj.model_dump(mode="json")
        else:
            try:
                doc = _adapter(type(obj)).dump_python(obj, mode="json")
            except Exception as e:
                raise TypeMismatch(f"Cannot convert {type(obj).__name__} into document fields: {e}") from e
        if not isinstance(doc, dict):
            raise TypeMismatch(f"{type(obj).__name__} does not serialize to a field map")
        return doc

    def deserialize(self, shape: type[T], fields: dict[str, Any]) -> T:
        try:
            if isinstance(shape, type) and issubclass(shape, BaseModel):
                return shape.model_validate(fields)
            return _adapter(shape).validate_python(fields)
        except ValidationError as e:
            raise TypeMismatch(f"Document fields do not fit {getattr(shape, '__name__', shape)}: {e}") from e
