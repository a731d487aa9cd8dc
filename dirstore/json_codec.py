from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any

from .errors import Corrupt


class JsonSerializer:
    """
    Default document codec: a UTF-8 JSON object per file.

    Empty or whitespace-only content decodes to an empty map, so freshly created documents load cleanly.
    """

    def __init__(self, *, indent: int | None = None, sort_keys: bool = False) -> None:
        self.indent = indent
        self.sort_keys = sort_keys

    def encode(self, fields: dict[str, Any]) -> bytes:
        text = json.dumps(fields, indent=self.indent, sort_keys=self.sort_keys, ensure_ascii=False, allow_nan=False)
        return text.encode("utf-8")

    def decode(self, raw: bytes) -> dict[str, Any]:
        try:
            text = raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise Corrupt(f"Document is not valid UTF-8: {e}") from e
        if not text.strip():
            return {}
        try:
            doc = json.loads(text)
        except json.JSONDecodeError as e:
            raise Corrupt(f"Document is not valid JSON: {e}") from e
        if not isinstance(doc, dict):
            raise Corrupt(f"Document must hold a JSON object, found {type(doc).__name__}")
        return doc


def atomic_write_bytes(path: Path, payload: bytes) -> None:
    """
    Atomically write bytes to disk by writing to a temp file then replacing.
    """
    tmp_path = path.with_name(path.name + ".tmp")
    with tmp_path.open("wb") as f:
        f.write(payload)
        f.flush()
        os.fsync(f.fileno())
    tmp_path.replace(path)
