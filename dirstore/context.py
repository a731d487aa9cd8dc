from __future__ import annotations

from dataclasses import dataclass, field

from .interfaces import ObjectMapper, Serializer
from .json_codec import JsonSerializer
from .mapper import PydanticObjectMapper
from .settings import StoreSettings


@dataclass(frozen=True)
class StoreContext:
    """
    Everything a collection, document or query needs besides its own path.
    """

    settings: StoreSettings
    serializer: Serializer = None  # type: ignore[assignment]
    mapper: ObjectMapper = field(default_factory=PydanticObjectMapper)

    def __post_init__(self) -> None:
        if self.serializer is None:
            object.__setattr__(self, "serializer", JsonSerializer(indent=self.settings.indent))

    @property
    def suffix(self) -> str:
        return self.settings.document_suffix

    @property
    def max_document_bytes(self) -> int:
        return self.settings.max_document_bytes
