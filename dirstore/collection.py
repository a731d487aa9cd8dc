from __future__ import annotations

import logging
import shutil
from pathlib import Path

from .context import StoreContext
from .document import Document
from .errors import CreateFailed
from .locks import GLOBAL_PATH_LOCKS
from .paths import check_name, document_file, ensure_dir, is_document_file, logical_name

logger = logging.getLogger(__name__)


class Collection:
    """
    A directory-backed namespace holding documents and nested collections.

    A collection never reads document contents; it only hands out handles backed by paths.
    """

    def __init__(self, path: Path, context: StoreContext) -> None:
        self._path = Path(path)
        self._ctx = context

    @property
    def name(self) -> str:
        return self._path.name

    @property
    def path(self) -> Path:
        return self._path

    @property
    def context(self) -> StoreContext:
        return self._ctx

    def exists(self) -> bool:
        return self._path.is_dir()

    def collection(self, name: str) -> "Collection":
        """Go into the sub-collection `name`, creating its directory if absent."""
        check_name(name, what="Collection")
        target = self._path / name
        if not target.is_dir():
            ensure_dir(target)
            logger.debug("Created collection %s", target)
        return Collection(target, self._ctx)

    def document(self, name: str) -> Document:
        """Return a loaded handle on document `name`, creating an empty file if absent."""
        check_name(name, what="Document")
        target = document_file(self._path, name, self._ctx.suffix)
        if not target.exists():
            try:
                with GLOBAL_PATH_LOCKS.lock_for(target):
                    target.touch(exist_ok=True)
            except OSError as e:
                raise CreateFailed(f"Could not create document {target.name}: {e}", path=target) from e
            logger.debug("Created document %s", target)
        elif not target.is_file():
            raise CreateFailed(f"{target} exists and is not a document file", path=target)
        return Document(target, self._ctx)

    def list_subcollections(self) -> set["Collection"]:
        return {Collection(child, self._ctx) for child in self._children() if child.is_dir()}

    def list_documents(self) -> set[str]:
        """Logical names (suffix stripped) of the documents directly in this collection."""
        suffix = self._ctx.suffix
        return {logical_name(child.name, suffix) for child in self._children() if is_document_file(child, suffix)}

    def _children(self) -> list[Path]:
        try:
            return sorted(self._path.iterdir())
        except (FileNotFoundError, NotADirectoryError):
            return []

    def delete(self, name: str) -> bool:
        """
        Delete the child collection (recursively) or document called `name`.

        Never raises: returns False when nothing was deleted, so cleanup loops can carry on.
        """
        if not isinstance(name, str) or not name or name in (".", "..") or "/" in name or "\\" in name:
            logger.warning("Refusing to delete %r from %s", name, self._path)
            return False

        directory = self._path / name
        doc = document_file(self._path, name, self._ctx.suffix)
        try:
            if directory.is_dir() and not directory.is_symlink():
                shutil.rmtree(directory)
            elif doc.is_file():
                with GLOBAL_PATH_LOCKS.lock_for(doc):
                    doc.unlink()
            elif directory.exists() or directory.is_symlink():
                with GLOBAL_PATH_LOCKS.lock_for(directory):
                    directory.unlink()
            else:
                return False
        except OSError as e:
            logger.warning("Could not delete %s from %s: %s", name, self._path, e)
            return False
        logger.debug("Deleted %s from %s", name, self._path)
        return True

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Collection):
            return NotImplemented
        return self._path == other._path

    def __hash__(self) -> int:
        return hash(self._path)

    def __repr__(self) -> str:
        return f"Collection({str(self._path)!r})"
