"""Local CPU adapter backed by Pillow."""

from __future__ import annotations

import asyncio
from collections.abc import Mapping
from dataclasses import dataclass
from io import BytesIO
from typing import Any

from PIL import Image, ImageOps, UnidentifiedImageError

from respimg.adapters.base import Adapter, ImageMetadata, ResizeRequest, ResizeResult, SourceImage
from respimg.errors import DecodeError, UnsupportedFormatError

_PIL_FORMATS: dict[str, str] = {
    "image/jpeg": "JPEG",
    "image/png": "PNG",
    "image/webp": "WEBP",
}


def _open(source: SourceImage) -> tuple[Image.Image, str | None]:
    """Decode the source and apply its EXIF orientation."""
    try:
        image = Image.open(BytesIO(source.data))
        image.load()
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError) as exc:
        raise DecodeError(f"Unable to decode {source.name}: {exc}") from exc
    return ImageOps.exif_transpose(image), image.format


def _parse_background(value: Any) -> tuple[int, int, int]:
    if value is None:
        return (255, 255, 255)
    if isinstance(value, str):
        text = value.strip().lstrip("#")
        if len(text) == 3:
            text = "".join(ch * 2 for ch in text)
        if len(text) >= 6:
            return (int(text[0:2], 16), int(text[2:4], 16), int(text[4:6], 16))
        raise ValueError(f"Unsupported background colour: {value!r}")
    red, green, blue = (int(part) for part in list(value)[:3])
    return (red, green, blue)


def _flatten(image: Image.Image, background: tuple[int, int, int]) -> Image.Image:
    if image.mode in ("RGBA", "LA") or (image.mode == "P" and "transparency" in image.info):
        rgba = image.convert("RGBA")
        canvas = Image.new("RGB", rgba.size, background)
        canvas.paste(rgba, mask=rgba.getchannel("A"))
        return canvas
    return image.convert("RGB")


def _encode(image: Image.Image, mime: str, options: Mapping[str, Any]) -> bytes:
    pil_format = _PIL_FORMATS.get(mime)
    if pil_format is None:
        raise UnsupportedFormatError(f"Pillow adapter cannot encode {mime!r}")

    quality = int(options.get("quality", 85))
    save_kwargs: dict[str, Any] = {}
    if pil_format == "JPEG":
        image = _flatten(image, _parse_background(options.get("background")))
        save_kwargs.update(quality=quality, optimize=True, progressive=bool(options.get("progressive")))
    elif pil_format == "WEBP":
        save_kwargs.update(quality=quality, method=6)
    elif pil_format == "PNG":
        save_kwargs.update(optimize=True)
        if image.mode not in ("RGB", "RGBA", "L", "LA", "P"):
            image = image.convert("RGBA")

    buffer = BytesIO()
    image.save(buffer, pil_format, **save_kwargs)
    return buffer.getvalue()


@dataclass(slots=True)
class PillowAdapter(Adapter):
    """Resize and encode images in-process with Pillow."""

    name: str = "pillow"

    async def metadata(self, source: SourceImage) -> ImageMetadata:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self._metadata_sync, source)

    async def resize(self, source: SourceImage, request: ResizeRequest) -> ResizeResult:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self._resize_sync, source, request)

    def _metadata_sync(self, source: SourceImage) -> ImageMetadata:
        image, source_format = _open(source)
        return ImageMetadata(width=image.width, height=image.height, format=source_format)

    def _resize_sync(self, source: SourceImage, request: ResizeRequest) -> ResizeResult:
        image, _ = _open(source)

        rotate = int(request.options.get("rotate") or 0)
        if rotate:
            image = image.rotate(-rotate, expand=True)

        width = max(1, request.width)
        height = max(1, round(image.height * width / image.width))
        if (width, height) != image.size:
            image = image.resize((width, height), Image.Resampling.LANCZOS)

        data = _encode(image, request.mime, request.options)
        return ResizeResult(data=data, width=width, height=height)
