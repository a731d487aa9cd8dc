from __future__ import annotations

from .aio import AsyncQuery, aflush
from .collection import Collection
from .context import StoreContext
from .database import Database, open_database
from .document import Document
from .errors import (
    CreateFailed,
    Corrupt,
    DocumentTooLarge,
    InvalidDatatype,
    IOFailure,
    NotFound,
    Reason,
    StoreError,
    TypeMismatch,
)
from .interfaces import ObjectMapper, Serializer
from .json_codec import JsonSerializer
from .mapper import PydanticObjectMapper
from .query import Query
from .settings import DEFAULT_MAX_DOCUMENT_BYTES, StoreSettings, get_settings
from .values import ValueKind

__all__ = [
    "AsyncQuery",
    "aflush",
    "Collection",
    "StoreContext",
    "Database",
    "open_database",
    "Document",
    "CreateFailed",
    "Corrupt",
    "DocumentTooLarge",
    "InvalidDatatype",
    "IOFailure",
    "NotFound",
    "Reason",
    "StoreError",
    "TypeMismatch",
    "ObjectMapper",
    "Serializer",
    "JsonSerializer",
    "PydanticObjectMapper",
    "Query",
    "DEFAULT_MAX_DOCUMENT_BYTES",
    "StoreSettings",
    "get_settings",
    "ValueKind",
]
