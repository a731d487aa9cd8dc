from __future__ import annotations

import logging
import shutil
from pathlib import Path, PurePosixPath
from typing import Any

from dotenv import load_dotenv

from .collection import Collection
from .context import StoreContext
from .errors import NotFound
from .interfaces import ObjectMapper, Serializer
from .paths import ensure_dir
from .query import Query
from .settings import StoreSettings, get_settings

logger = logging.getLogger(__name__)


class Database:
    """
    Handle on one database root directory.

    There is no process-wide instance: build one from explicit settings and pass it (or its
    collections) to whoever needs it.
    """

    def __init__(
        self,
        settings: StoreSettings,
        *,
        serializer: Serializer | None = None,
        mapper: ObjectMapper | None = None,
    ) -> None:
        extras: dict[str, Any] = {}
        if serializer is not None:
            extras["serializer"] = serializer
        if mapper is not None:
            extras["mapper"] = mapper
        self._ctx = StoreContext(settings, **extras)
        ensure_dir(settings.root)
        logger.debug("Opened database at %s", settings.root)

    @property
    def settings(self) -> StoreSettings:
        return self._ctx.settings

    @property
    def context(self) -> StoreContext:
        return self._ctx

    @property
    def path(self) -> Path:
        return self._ctx.settings.root

    @property
    def root(self) -> Collection:
        """The top-level collection."""
        return Collection(self.path, self._ctx)

    def collection(self, relative_path: str) -> Collection:
        """
        Return the existing collection at a path relative to the root, e.g. "students/junior".

        Raises NotFound when the path does not denote a collection. Unlike Collection.collection,
        nothing is created.
        """
        parts = PurePosixPath(relative_path.strip("/")).parts if relative_path.strip("/") else ()
        if any(part in ("..", ".") for part in parts) or "\\" in relative_path:
            raise NotFound(f"{relative_path!r} is not a relative collection path")
        target = self.path.joinpath(*parts)
        if not target.is_dir():
            raise NotFound(f"No collection at {relative_path!r}", path=target)
        return Collection(target, self._ctx)

    def query(self, relative_path: str | None = None) -> Query:
        return Query(self.root if relative_path is None else self.collection(relative_path))

    def delete(self) -> bool:
        """Delete the whole database directory. Returns False if anything failed."""
        try:
            shutil.rmtree(self.path)
        except OSError as e:
            logger.warning("Could not delete database %s: %s", self.path, e)
            return False
        return True

    def clean(self) -> bool:
        """Delete every collection and document while keeping the root directory."""
        root = self.root
        ok = True
        for child in sorted(self.path.iterdir()) if self.path.is_dir() else []:
            if not root.delete(child.name):
                ok = False
        return ok

    def __repr__(self) -> str:
        return f"Database({str(self.path)!r})"


def open_database(root: Path | str | None = None, *, env_file: str | None = None) -> Database:
    """
    Open (creating if needed) a database from an explicit root or the DIRSTORE_* environment.
    """
    if env_file is not None:
        load_dotenv(env_file)
    return Database(get_settings(root))
