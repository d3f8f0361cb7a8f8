"""Adapter delegating resizes to a remote transform service over HTTP."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

import httpx

from respimg.adapters.base import Adapter, ImageMetadata, ResizeRequest, ResizeResult, SourceImage
from respimg.errors import DecodeError, ResizeError, TransformServiceError, UnsupportedFormatError

HEIGHT_HEADER = "x-image-height"
WIDTH_HEADER = "x-image-width"


@dataclass(slots=True)
class RemoteAdapter(Adapter):
    """Post source bytes to a transform service and read back the encoded variant.

    The service exposes two endpoints under ``endpoint``:

    - ``POST /info`` answers ``{"width": int, "height": int, "format": str}``.
    - ``POST /resize?width=&format=&quality=`` answers the encoded image, with the
      output dimensions in the ``X-Image-Width`` / ``X-Image-Height`` headers.
    """

    endpoint: str
    token: str | None = None
    timeout: float = 30.0
    name: str = "remote"
    logger: logging.Logger = field(default_factory=lambda: logging.getLogger(__name__))

    def __post_init__(self) -> None:
        self.endpoint = self.endpoint.rstrip("/")

    async def metadata(self, source: SourceImage) -> ImageMetadata:
        response = await self._post("/info", source, params={})
        if response.status_code in (415, 422):
            raise DecodeError(f"Transform service cannot decode {source.name}: {response.text}")
        if response.status_code >= 400:
            raise TransformServiceError(
                f"HTTP {response.status_code} from {self.endpoint}/info: {response.text}"
            )
        try:
            payload = response.json()
            return ImageMetadata(
                width=int(payload["width"]),
                height=int(payload["height"]),
                format=payload.get("format"),
            )
        except (ValueError, KeyError, TypeError) as exc:
            raise TransformServiceError(f"Malformed metadata from {self.endpoint}: {exc}") from exc

    async def resize(self, source: SourceImage, request: ResizeRequest) -> ResizeResult:
        params: dict[str, Any] = {
            "width": request.width,
            "format": request.mime,
            "quality": int(request.options.get("quality", 85)),
        }
        rotate = request.options.get("rotate")
        if rotate:
            params["rotate"] = int(rotate)

        response = await self._post("/resize", source, params=params, width=request.width)
        if response.status_code == 415:
            raise UnsupportedFormatError(f"Transform service cannot encode {request.mime!r}")
        if response.status_code == 422:
            raise DecodeError(f"Transform service cannot decode {source.name}: {response.text}")
        if response.status_code >= 400:
            raise ResizeError(request.width, f"HTTP {response.status_code} from {self.endpoint}")

        try:
            width = int(response.headers.get(WIDTH_HEADER, request.width))
            height = int(response.headers[HEIGHT_HEADER])
        except (KeyError, ValueError) as exc:
            raise ResizeError(request.width, f"missing dimensions in response: {exc}") from exc
        return ResizeResult(data=response.content, width=width, height=height)

    async def _post(
        self,
        path: str,
        source: SourceImage,
        *,
        params: dict[str, Any],
        width: int | None = None,
    ) -> httpx.Response:
        headers = {"content-type": "application/octet-stream"}
        if self.token:
            headers["authorization"] = f"Bearer {self.token}"
        url = f"{self.endpoint}{path}"
        self.logger.debug("POST %s params=%s bytes=%s", url, params, len(source.data))
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                return await client.post(url, content=source.data, params=params, headers=headers)
        except httpx.HTTPError as exc:
            if width is not None:
                raise ResizeError(width, f"transport error for {url}: {exc}") from exc
            raise TransformServiceError(f"Transport error for {url}: {exc}") from exc
