from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Mapping, Union

from pydantic import StrictBool, StrictInt, StrictStr, TypeAdapter, ValidationError, confloat, constr

from .errors import InvalidDatatype

StrictFiniteFloat = confloat(strict=True, allow_inf_nan=False)

# Every value a document field may hold. Anything else (maps, nested lists, None) is rejected.
Scalar = Union[StrictBool, StrictInt, StrictFiniteFloat, StrictStr]
FieldValue = Union[Scalar, List[Scalar]]
FieldName = constr(strict=True, min_length=1)
FieldMap = Dict[FieldName, FieldValue]

_SCALAR = TypeAdapter(Scalar)
_VALUE = TypeAdapter(FieldValue)
_FIELDS = TypeAdapter(FieldMap)


class ValueKind(str, Enum):
    TEXT = "text"
    NUMBER = "number"
    BOOLEAN = "boolean"
    LIST = "list"


SCALAR_KINDS = frozenset({ValueKind.TEXT, ValueKind.NUMBER, ValueKind.BOOLEAN})


def kind_of(value: Any) -> ValueKind:
    """
    Classify a stored value. bool is checked before int since bool subclasses int.
    """
    if isinstance(value, bool):
        return ValueKind.BOOLEAN
    if isinstance(value, (int, float)):
        return ValueKind.NUMBER
    if isinstance(value, str):
        return ValueKind.TEXT
    if isinstance(value, list):
        return ValueKind.LIST
    raise InvalidDatatype(f"Unsupported datatype: {type(value).__name__}")


def is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _describe(err: ValidationError) -> str:
    first = err.errors()[0]
    loc = ".".join(str(p) for p in first.get("loc", ()))
    return f"{loc}: {first.get('msg')}" if loc else str(first.get("msg"))


def validate_value(value: Any) -> Any:
    """
    Validate a field value and return a detached copy of it (lists are copied).
    """
    try:
        return _VALUE.validate_python(value, strict=True)
    except ValidationError as e:
        raise InvalidDatatype(
            "A field can only hold a string, a number, a boolean or a list of those "
            f"(got {type(value).__name__}; {_describe(e)})"
        ) from e


def validate_item(value: Any) -> Any:
    """Validate a single list element."""
    try:
        return _SCALAR.validate_python(value, strict=True)
    except ValidationError as e:
        raise InvalidDatatype(
            f"A list item can only be a string, a number or a boolean (got {type(value).__name__})"
        ) from e


def validate_fields(fields: Mapping[str, Any]) -> dict[str, Any]:
    """
    Validate a whole field map. One bad entry fails the whole map.
    """
    if not isinstance(fields, Mapping):
        raise InvalidDatatype(f"Document data must be a mapping, got {type(fields).__name__}")
    try:
        return _FIELDS.validate_python(dict(fields), strict=True)
    except ValidationError as e:
        raise InvalidDatatype(f"Invalid document data ({_describe(e)})") from e


def validate_field_name(field: Any) -> str:
    if not isinstance(field, str) or not field:
        raise InvalidDatatype(f"Field names must be non-empty strings, got {field!r}")
    return field


def values_equal(left: Any, right: Any) -> bool:
    """
    Kind-aware equality: True never equals 1, but 1 equals 1.0.
    """
    try:
        left_kind, right_kind = kind_of(left), kind_of(right)
    except InvalidDatatype:
        return False
    if left_kind is not right_kind:
        return False
    if left_kind is ValueKind.LIST:
        return len(left) == len(right) and all(values_equal(a, b) for a, b in zip(left, right))
    return left == right
