"""Base definitions for image-processing adapters."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Protocol


@dataclass(frozen=True, slots=True)
class SourceImage:
    """Immutable source buffer handed to every adapter."""

    data: bytes
    name: str = "image"
    path: Path | None = None

    @classmethod
    def from_path(cls, path: Path) -> SourceImage:
        return cls(data=path.read_bytes(), name=path.name, path=path)

    @property
    def stem(self) -> str:
        return Path(self.name).stem

    @property
    def extension(self) -> str:
        return Path(self.name).suffix.lstrip(".").lower()


@dataclass(frozen=True, slots=True)
class ImageMetadata:
    """Intrinsic dimensions of a decoded source."""

    width: int
    height: int
    format: str | None = None


@dataclass(frozen=True, slots=True)
class ResizeRequest:
    """Single resize order passed to an adapter."""

    width: int
    mime: str
    options: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class ResizeResult:
    """Encoded output of one resize."""

    data: bytes
    width: int
    height: int


class Adapter(Protocol):
    """Interface for image-processing backends."""

    name: str

    async def metadata(self, source: SourceImage) -> ImageMetadata:
        """Return the intrinsic size of the source, raising DecodeError if unreadable."""

    async def resize(self, source: SourceImage, request: ResizeRequest) -> ResizeResult:
        """Resize the source to ``request.width`` and encode it as ``request.mime``."""
