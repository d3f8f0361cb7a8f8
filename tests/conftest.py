"""Shared fixtures for Respimg tests."""

from __future__ import annotations

import asyncio
from io import BytesIO

import pytest
from PIL import Image

from respimg.adapters.base import ImageMetadata, ResizeRequest, ResizeResult, SourceImage
from respimg.errors import DecodeError


class FakeAdapter:
    """In-memory adapter recording every call."""

    def __init__(
        self,
        width: int = 1024,
        height: int = 768,
        *,
        name: str = "fake",
        fail_on: int | None = None,
        error: Exception | None = None,
    ) -> None:
        self.name = name
        self.width = width
        self.height = height
        self.fail_on = fail_on
        self.error = error or RuntimeError("boom")
        self.metadata_calls = 0
        self.resize_calls: list[int] = []

    async def metadata(self, source: SourceImage) -> ImageMetadata:
        self.metadata_calls += 1
        if not source.data:
            raise DecodeError("empty source")
        return ImageMetadata(width=self.width, height=self.height)

    async def resize(self, source: SourceImage, request: ResizeRequest) -> ResizeResult:
        self.resize_calls.append(request.width)
        await asyncio.sleep(0)
        if request.width == self.fail_on:
            raise self.error
        height = round(self.height * request.width / self.width)
        return ResizeResult(
            data=f"{request.mime}:{request.width}".encode("utf-8"),
            width=request.width,
            height=height,
        )


def make_image_bytes(width: int = 64, height: int = 48, fmt: str = "PNG", mode: str = "RGB") -> bytes:
    colour = (200, 40, 40, 128) if mode == "RGBA" else (200, 40, 40)
    image = Image.new(mode, (width, height), colour)
    buffer = BytesIO()
    image.save(buffer, fmt)
    return buffer.getvalue()


@pytest.fixture
def fake_adapter() -> FakeAdapter:
    return FakeAdapter()


@pytest.fixture
def source() -> SourceImage:
    return SourceImage(data=b"not-really-an-image", name="hero.jpg")


@pytest.fixture
def png_source() -> SourceImage:
    return SourceImage(data=make_image_bytes(), name="tile.png")
