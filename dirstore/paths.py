from __future__ import annotations

from pathlib import Path

from .errors import CreateFailed

DEFAULT_DOCUMENT_SUFFIX = ".doc"


def check_name(name: str, *, what: str) -> str:
    """
    A collection or document name must be a single path segment.
    """
    if not isinstance(name, str) or not name.strip():
        raise CreateFailed(f"{what} name must be a non-empty string, got {name!r}")
    if name in (".", "..") or "/" in name or "\\" in name or "\x00" in name:
        raise CreateFailed(f"{what} name must be a single path segment, got {name!r}")
    return name


def ensure_dir(path: Path) -> Path:
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise CreateFailed(f"Could not create directory {path}: {e}", path=path) from e
    return path


def document_file(directory: Path, name: str, suffix: str) -> Path:
    return directory / f"{name}{suffix}"


def is_document_file(path: Path, suffix: str) -> bool:
    return path.name.endswith(suffix) and len(path.name) > len(suffix) and path.is_file()


def logical_name(file_name: str, suffix: str) -> str:
    return file_name[: -len(suffix)] if file_name.endswith(suffix) else file_name
