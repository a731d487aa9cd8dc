from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from .paths import DEFAULT_DOCUMENT_SUFFIX

# One explicit cap on the serialized size of a single document.
DEFAULT_MAX_DOCUMENT_BYTES = 5 * 1024 * 1024


def _env_int(name: str, default: int | None) -> int | None:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw.strip())
    except ValueError as e:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from e


@dataclass(frozen=True)
class StoreSettings:
    # Database root; every collection lives below it
    root: Path

    # Serialized documents larger than this are rejected (and the backing file deleted)
    max_document_bytes: int = DEFAULT_MAX_DOCUMENT_BYTES

    # On-disk format
    document_suffix: str = DEFAULT_DOCUMENT_SUFFIX
    indent: int | None = None

    def __post_init__(self) -> None:
        root = Path(self.root)
        if not root.is_absolute():
            raise ValueError(f"Database root must be an absolute path, got {self.root!s}")
        object.__setattr__(self, "root", root)
        if self.max_document_bytes <= 0:
            raise ValueError(f"max_document_bytes must be positive, got {self.max_document_bytes}")
        suffix = self.document_suffix
        if not suffix.startswith(".") or len(suffix) < 2 or "/" in suffix:
            raise ValueError(f"document_suffix must look like '.doc', got {suffix!r}")
        if self.indent is not None and self.indent < 0:
            raise ValueError(f"indent must be None or >= 0, got {self.indent}")


def get_settings(root: Path | str | None = None) -> StoreSettings:
    """
    Build settings from explicit arguments, falling back to DIRSTORE_* environment variables.
    """
    raw_root = root if root is not None else os.getenv("DIRSTORE_ROOT", "")
    if not str(raw_root).strip():
        raise ValueError("No database root given and DIRSTORE_ROOT is not set")

    max_bytes = _env_int("DIRSTORE_MAX_DOCUMENT_BYTES", DEFAULT_MAX_DOCUMENT_BYTES)
    suffix = os.getenv("DIRSTORE_DOCUMENT_SUFFIX", DEFAULT_DOCUMENT_SUFFIX).strip()
    indent = _env_int("DIRSTORE_INDENT", None)

    return StoreSettings(
        root=Path(raw_root).expanduser(),
        max_document_bytes=max_bytes,
        document_suffix=suffix,
        indent=indent,
    )
