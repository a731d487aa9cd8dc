from __future__ import annotations

import asyncio
from typing import Any, Callable, TypeVar

from .collection import Collection
from .document import Document
from .query import FieldPredicate, Query

T = TypeVar("T")


class AsyncQuery:
    """
    Async wrapper around Query.
    Uses asyncio.to_thread to avoid blocking the event loop on directory scans and file reads.
    """

    def __init__(self, collection: Collection) -> None:
        self._query = Query(collection)

    async def which_has(self, name: str) -> set[Collection]:
        return await asyncio.to_thread(self._query.which_has, name)

    async def where(self, predicate: FieldPredicate) -> list[Document]:
        return await asyncio.to_thread(self._query.where, predicate)

    async def where_equal(self, field: str, value: Any) -> list[Document]:
        return await asyncio.to_thread(self._query.where_equal, field, value)

    async def where_greater(self, field: str, value: int | float) -> list[Document]:
        return await asyncio.to_thread(self._query.where_greater, field, value)

    async def where_smaller(self, field: str, value: int | float) -> list[Document]:
        return await asyncio.to_thread(self._query.where_smaller, field, value)

    async def where_object(self, shape: type[T], predicate: Callable[[T], bool]) -> list[Document]:
        return await asyncio.to_thread(self._query.where_object, shape, predicate)

    async def order_by(self, field: str, ascending: bool = False) -> list[Document]:
        return await asyncio.to_thread(self._query.order_by, field, ascending)


async def aflush(document: Document, timeout: float | None = None) -> None:
    """Await a document's queued writes without blocking the event loop."""
    await asyncio.to_thread(document.flush, timeout)
