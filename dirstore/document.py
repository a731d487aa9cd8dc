from __future__ import annotations

import logging
import threading
from functools import partial
from pathlib import Path
from typing import Any, Iterator, Mapping, TypeVar

from .context import StoreContext
from .errors import Corrupt, DocumentTooLarge, InvalidDatatype, IOFailure, NotFound, StoreError, TypeMismatch
from .json_codec import atomic_write_bytes
from .locks import GLOBAL_PATH_LOCKS
from .paths import logical_name
from .values import (
    ValueKind,
    kind_of,
    validate_field_name,
    validate_fields,
    validate_item,
    validate_value,
    values_equal,
)
from .writer import WriteQueue

logger = logging.getLogger(__name__)

T = TypeVar("T")

_MISSING = object()


def _detach(value: Any) -> Any:
    return list(value) if isinstance(value, list) else value


class Document:
    """
    A file-backed record holding a validated field map.

    - The map is loaded once, when the handle is built.
    - Reads are served from memory and never touch the file.
    - Writes validate, check the size cap, update memory, then queue the file write on this
      handle's own worker. `flush()` waits for queued writes and reports write failures.

    Handles are not coordinated: two handles on the same file each keep their own map and the
    last write to reach disk wins. Keep at most one live handle per document.
    """

    def __init__(self, path: Path, context: StoreContext) -> None:
        self._path = Path(path)
        self._ctx = context
        self._writes = WriteQueue(self._path.name)
        self._deleted = False
        self._mutex = threading.RLock()
        self._data: dict[str, Any] = self._load()

    def _load(self) -> dict[str, Any]:
        try:
            raw = self._path.read_bytes()
        except FileNotFoundError as e:
            raise NotFound(f"Document {self._path.name} does not exist", path=self._path) from e
        except OSError as e:
            raise IOFailure(f"Could not read {self._path.name}: {e}", path=self._path) from e

        try:
            fields = self._ctx.serializer.decode(raw)
        except (StoreError, ValueError) as e:
            raise Corrupt(f"{self._path.name}: {e}", path=self._path) from e
        try:
            data = validate_fields(fields)
        except InvalidDatatype as e:
            raise Corrupt(f"{self._path.name} holds unsupported values: {e}", path=self._path) from e
        logger.debug("Loaded %s (%d fields)", self._path, len(data))
        return data

    # ---- identity ----

    @property
    def name(self) -> str:
        """File name on disk, suffix included."""
        return self._path.name

    @property
    def logical_name(self) -> str:
        return logical_name(self._path.name, self._ctx.suffix)

    @property
    def path(self) -> Path:
        return self._path

    @property
    def deleted(self) -> bool:
        return self._deleted

    # ---- reads ----

    @property
    def data(self) -> dict[str, Any]:
        """A detached copy of the field map."""
        self._check_live()
        return {k: _detach(v) for k, v in self._data.items()}

    def keys(self) -> list[str]:
        self._check_live()
        return list(self._data)

    def __contains__(self, field: object) -> bool:
        self._check_live()
        return field in self._data

    def __len__(self) -> int:
        self._check_live()
        return len(self._data)

    def __iter__(self) -> Iterator[str]:
        return iter(self.keys())

    def get(self, field: str, default: Any = None) -> Any:
        self._check_live()
        return _detach(self._data.get(field, default))

    def get_string(self, field: str, default: str | None = None) -> str | None:
        return self._typed(field, ValueKind.TEXT, default)

    def get_number(self, field: str, default: int | float | None = None) -> int | float | None:
        return self._typed(field, ValueKind.NUMBER, default)

    def get_boolean(self, field: str, default: bool | None = None) -> bool | None:
        return self._typed(field, ValueKind.BOOLEAN, default)

    def get_list(self, field: str, default: list[Any] | None = None) -> list[Any] | None:
        return self._typed(field, ValueKind.LIST, default)

    def _typed(self, field: str, kind: ValueKind, default: Any) -> Any:
        self._check_live()
        value = self._data.get(field, _MISSING)
        if value is _MISSING:
            return default
        actual = kind_of(value)
        if actual is not kind:
            raise TypeMismatch(
                f"Field {field!r} of {self.name} holds a {actual.value}, not a {kind.value}",
                path=self._path,
            )
        return _detach(value)

    def get_as_object(self, shape: type[T]) -> T:
        """Map the whole field map onto `shape` (pydantic model, dataclass, TypedDict...)."""
        return self._ctx.mapper.deserialize(shape, self.data)

    # ---- writes ----

    def put(self, field: str, value: Any) -> None:
        """
        Create or replace one field.

        Raises InvalidDatatype for unsupported values and DocumentTooLarge when the serialized
        document would exceed the cap; in the latter case the backing file is deleted.
        """
        validate_field_name(field)
        checked = validate_value(value)
        with self._mutex:
            self._check_live()
            candidate = dict(self._data)
            candidate[field] = checked
            self._commit(candidate)

    def set_data(self, fields: Mapping[str, Any]) -> None:
        """Replace the whole field map (no merge)."""
        checked = validate_fields(fields)
        with self._mutex:
            self._check_live()
            self._commit(checked)

    def set_object(self, obj: Any) -> None:
        self._check_live()
        self.set_data(self._ctx.mapper.serialize(obj))

    def add_item(self, list_field: str, value: Any) -> None:
        """Append to a list field, creating it when absent."""
        validate_field_name(list_field)
        item = validate_item(value)
        with self._mutex:
            self._check_live()
            current = self._data.get(list_field, [])
            if kind_of(current) is not ValueKind.LIST:
                raise TypeMismatch(f"Field {list_field!r} of {self.name} is not a list", path=self._path)
            self.put(list_field, [*current, item])

    def remove_item(self, list_field: str, value: Any) -> bool:
        """
        Remove the first element equal to `value`. Returns False (and writes nothing) when the
        field or the element is absent.
        """
        with self._mutex:
            self._check_live()
            current = self._data.get(list_field, _MISSING)
            if current is _MISSING:
                return False
            if kind_of(current) is not ValueKind.LIST:
                raise TypeMismatch(f"Field {list_field!r} of {self.name} is not a list", path=self._path)
            for i, existing in enumerate(current):
                if values_equal(existing, value):
                    self.put(list_field, current[:i] + current[i + 1 :])
                    return True
            return False

    def remove_field(self, field: str) -> bool:
        with self._mutex:
            self._check_live()
            if field not in self._data:
                return False
            candidate = {k: v for k, v in self._data.items() if k != field}
            self._commit(candidate)
            return True

    def _commit(self, candidate: dict[str, Any]) -> None:
        # caller holds self._mutex, so map order and queue order agree
        payload = self._ctx.serializer.encode(candidate)
        limit = self._ctx.max_document_bytes
        if len(payload) > limit:
            logger.warning(
                "Document %s would grow to %d bytes (limit %d); deleting it", self._path, len(payload), limit
            )
            self.delete()
            outcome = "it has been deleted" if self._deleted else "deleting it failed and the file is still on disk"
            raise DocumentTooLarge(
                f"Document {self.name} would be {len(payload)} bytes, over the {limit} byte limit; {outcome}",
                path=self._path,
                size=len(payload),
                limit=limit,
            )
        self._data = candidate
        self._writes.submit(partial(self._write, payload))

    def _write(self, payload: bytes) -> None:
        with GLOBAL_PATH_LOCKS.lock_for(self._path):
            try:
                atomic_write_bytes(self._path, payload)
            except OSError as e:
                raise IOFailure(f"Could not write {self._path.name}: {e}", path=self._path) from e
        logger.debug("Wrote %s (%d bytes)", self._path, len(payload))

    # ---- write queue ----

    def flush(self, timeout: float | None = None) -> None:
        """
        Block until every queued write has reached the file. Raises the first IOFailure seen since
        the previous flush, and TimeoutError if `timeout` elapses first.
        """
        self._writes.flush(timeout)

    @property
    def last_write_error(self) -> StoreError | None:
        return self._writes.last_error

    @property
    def pending_writes(self) -> int:
        return self._writes.pending

    def close(self) -> None:
        """Drain queued writes and stop the worker thread."""
        self._writes.close()

    def __enter__(self) -> "Document":
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    # ---- lifecycle ----

    def delete(self) -> bool:
        """
        Remove the backing file. Queued writes are drained first so none can recreate it.
        Every later operation on this handle raises NotFound.
        """
        with self._mutex:
            if self._deleted:
                return False
            self._writes.close()
            with GLOBAL_PATH_LOCKS.lock_for(self._path):
                try:
                    self._path.unlink()
                except FileNotFoundError:
                    self._deleted = True
                    return False
                except OSError as e:
                    logger.warning("Could not delete %s: %s", self._path, e)
                    return False
            self._deleted = True
        logger.debug("Deleted %s", self._path)
        return True

    def _check_live(self) -> None:
        if self._deleted:
            raise NotFound(f"Document {self.name} has been deleted", path=self._path)

    def __str__(self) -> str:
        return self._ctx.serializer.encode(self._data).decode("utf-8")

    def __repr__(self) -> str:
        return f"Document({str(self._path)!r})"
