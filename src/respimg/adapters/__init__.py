"""Image-processing adapters."""

from .base import Adapter, ImageMetadata, ResizeRequest, ResizeResult, SourceImage
from .registry import AdapterRegistry, load_default_adapters, registry

__all__ = [
    "Adapter",
    "AdapterRegistry",
    "ImageMetadata",
    "ResizeRequest",
    "ResizeResult",
    "SourceImage",
    "load_default_adapters",
    "registry",
]
