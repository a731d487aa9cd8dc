from __future__ import annotations

import logging
import operator
from pathlib import Path
from typing import Any, Callable, Iterable, Iterator, TypeVar

from .collection import Collection
from .document import Document
from .errors import InvalidDatatype, NotFound, TypeMismatch
from .paths import is_document_file, logical_name
from .values import SCALAR_KINDS, is_number, kind_of, validate_value, values_equal

logger = logging.getLogger(__name__)

T = TypeVar("T")

FieldPredicate = Callable[[dict[str, Any]], bool]


class Query:
    """
    Read-only scans over a collection.

    Every operation walks the whole subtree below the starting collection, except `order_by`,
    which only looks at the documents directly inside it.

    A query holds no state between calls and takes no locks: documents changed while a scan
    runs may be seen before or after the change.
    """

    def __init__(self, collection: Collection) -> None:
        self._collection = collection
        self._ctx = collection.context

    @property
    def collection(self) -> Collection:
        return self._collection

    def _subtree(self) -> list[Path]:
        root = self._collection.path
        if not root.is_dir():
            return []
        return sorted(root.rglob("*"))

    def _subtree_documents(self) -> list[Path]:
        suffix = self._ctx.suffix
        return [p for p in self._subtree() if is_document_file(p, suffix)]

    def _immediate_documents(self) -> list[Path]:
        root = self._collection.path
        suffix = self._ctx.suffix
        try:
            children = sorted(root.iterdir())
        except (FileNotFoundError, NotADirectoryError):
            return []
        return [p for p in children if is_document_file(p, suffix)]

    def _load(self, paths: Iterable[Path]) -> Iterator[Document]:
        for path in paths:
            try:
                yield Document(path, self._ctx)
            except NotFound:
                # removed between listing and loading
                logger.debug("Skipping vanished document %s", path)

    def which_has(self, name: str) -> set[Collection]:
        """
        Collections in the subtree that directly contain a document or sub-collection called `name`.
        """
        suffix = self._ctx.suffix
        found: set[Collection] = set()
        for entry in self._subtree():
            if entry.name == name or (is_document_file(entry, suffix) and logical_name(entry.name, suffix) == name):
                found.add(Collection(entry.parent, self._ctx))
        return found

    def where(self, predicate: FieldPredicate) -> list[Document]:
        """
        Documents whose field map satisfies `predicate`, in path order.

        The predicate sees every document, including ones lacking the fields it looks at; use
        `fields.get(name, default)` inside it.
        """
        return [doc for doc in self._load(self._subtree_documents()) if predicate(doc.data)]

    def where_equal(self, field: str, value: Any) -> list[Document]:
        target = validate_value(value)
        return self.where(lambda fields: field in fields and values_equal(fields[field], target))

    def where_greater(self, field: str, value: int | float) -> list[Document]:
        """Documents whose `field` is greater than `value`. A missing field counts as 0."""
        _check_number(value)
        return self.where(lambda fields: _numeric_match(fields, field, operator.gt, value))

    def where_smaller(self, field: str, value: int | float) -> list[Document]:
        """Documents whose `field` is smaller than `value`. A missing field counts as 0."""
        _check_number(value)
        return self.where(lambda fields: _numeric_match(fields, field, operator.lt, value))

    def where_object(self, shape: type[T], predicate: Callable[[T], bool]) -> list[Document]:
        """
        Map every document onto `shape` and keep those for which `predicate` holds.
        Documents that do not fit `shape` are left out.
        """
        matches: list[Document] = []
        for doc in self._load(self._subtree_documents()):
            try:
                obj = self._ctx.mapper.deserialize(shape, doc.data)
            except TypeMismatch:
                logger.debug("%s does not map onto %s", doc.path, getattr(shape, "__name__", shape))
                continue
            if predicate(obj):
                matches.append(doc)
        return matches

    def order_by(self, field: str, ascending: bool = False) -> list[Document]:
        """
        Sort the documents directly in this collection that have `field`. Descending by default.

        The first such document decides how values compare: text lexicographically, numbers
        numerically, booleans false before true. Ordering fields must therefore hold the same
        kind of value in every document; a document that differs raises TypeMismatch.
        Ties keep path order in descending output; ascending output is exactly its reverse.
        """
        docs = [doc for doc in self._load(self._immediate_documents()) if field in doc]
        if not docs:
            return []

        first = docs[0].get(field)
        kind = kind_of(first)
        if kind not in SCALAR_KINDS:
            raise InvalidDatatype(
                f"Cannot order by {field!r}: {docs[0].name} holds a {kind.value}, "
                "only text, number and boolean fields can be ordered"
            )

        def sort_key(doc: Document) -> Any:
            value = doc.get(field)
            if kind_of(value) is not kind:
                raise TypeMismatch(
                    f"Cannot order by {field!r}: {doc.name} holds a {kind_of(value).value}, expected {kind.value}",
                    path=doc.path,
                )
            return value

        descending = sorted(docs, key=sort_key, reverse=True)
        return list(reversed(descending)) if ascending else descending


def _check_number(value: Any) -> None:
    if not is_number(value):
        raise InvalidDatatype(f"Comparison target must be a number, got {type(value).__name__}")


def _numeric_match(fields: dict[str, Any], field: str, op: Callable[[Any, Any], bool], target: int | float) -> bool:
    stored = fields.get(field, 0)
    return is_number(stored) and op(stored, target)
