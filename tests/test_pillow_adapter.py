"""Tests for the Pillow adapter."""

from __future__ import annotations

from io import BytesIO

import pytest
from PIL import Image

from respimg.adapters.base import ResizeRequest, SourceImage
from respimg.adapters.pillow import PillowAdapter, _parse_background
from respimg.errors import DecodeError, UnsupportedFormatError

from conftest import make_image_bytes


def _decode(data: bytes) -> Image.Image:
    image = Image.open(BytesIO(data))
    image.load()
    return image


@pytest.mark.asyncio
async def test_metadata_reports_intrinsic_size(png_source):
    metadata = await PillowAdapter().metadata(png_source)

    assert (metadata.width, metadata.height) == (64, 48)
    assert metadata.format == "PNG"


@pytest.mark.asyncio
async def test_metadata_rejects_garbage():
    with pytest.raises(DecodeError):
        await PillowAdapter().metadata(SourceImage(data=b"definitely not an image", name="x.jpg"))


@pytest.mark.asyncio
async def test_oversized_image_is_a_decode_error(png_source, monkeypatch):
    # 64x48 is more than twice this limit, so Pillow refuses to open it
    monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 1000)

    with pytest.raises(DecodeError, match="exceeds limit"):
        await PillowAdapter().metadata(png_source)


@pytest.mark.asyncio
@pytest.mark.parametrize("mime,pil_format", [("image/jpeg", "JPEG"), ("image/png", "PNG"), ("image/webp", "WEBP")])
async def test_resize_preserves_aspect_ratio(png_source, mime, pil_format):
    result = await PillowAdapter().resize(png_source, ResizeRequest(width=32, mime=mime, options={"quality": 70}))

    assert (result.width, result.height) == (32, 24)
    decoded = _decode(result.data)
    assert decoded.format == pil_format
    assert decoded.size == (32, 24)


@pytest.mark.asyncio
async def test_jpeg_output_flattens_alpha():
    source = SourceImage(data=make_image_bytes(mode="RGBA"), name="alpha.png")

    result = await PillowAdapter().resize(
        source, ResizeRequest(width=16, mime="image/jpeg", options={"background": "#000"})
    )

    assert _decode(result.data).mode == "RGB"


@pytest.mark.asyncio
async def test_rotate_option_swaps_dimensions(png_source):
    result = await PillowAdapter().resize(
        png_source, ResizeRequest(width=24, mime="image/png", options={"rotate": 90})
    )

    assert (result.width, result.height) == (24, 32)


@pytest.mark.asyncio
async def test_unknown_mime_is_unsupported(png_source):
    with pytest.raises(UnsupportedFormatError):
        await PillowAdapter().resize(png_source, ResizeRequest(width=10, mime="image/x-foo"))


@pytest.mark.parametrize(
    "value,expected",
    [
        (None, (255, 255, 255)),
        ("#fff", (255, 255, 255)),
        ("102030", (16, 32, 48)),
        ([1, 2, 3], (1, 2, 3)),
    ],
)
def test_parse_background(value, expected):
    assert _parse_background(value) == expected
