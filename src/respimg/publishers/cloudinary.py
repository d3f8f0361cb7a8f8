"""Cloudinary publisher for source images."""

from __future__ import annotations

import logging
import time
from collections.abc import Mapping
from dataclasses import dataclass, field, fields
from hashlib import sha1
from typing import Any

import httpx

from respimg.adapters.base import SourceImage
from respimg.errors import MissingCredentialError, RemoteUploadError

API_BASE_URL = "https://api.cloudinary.com/v1_1"
WIDTH_TOKEN = "WIDTH"


@dataclass(frozen=True, slots=True)
class CloudinaryCredentials:
    """Account credentials; every field is required."""

    cloud_name: str | None = None
    api_key: str | None = None
    api_secret: str | None = None

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any]) -> CloudinaryCredentials:
        known = {item.name for item in fields(cls)}
        unknown = sorted(set(values) - known)
        if unknown:
            raise ValueError(f"Unknown cloudinary credential field(s): {', '.join(unknown)}")
        return cls(**{key: values[key] for key in known if key in values})

    def validate(self) -> None:
        """Raise MissingCredentialError naming the first absent field."""

        for item in fields(self):
            value = getattr(self, item.name)
            if value is None or (isinstance(value, str) and not value.strip()):
                raise MissingCredentialError(item.name)


def sign(params: Mapping[str, Any], api_secret: str) -> str:
    """Cloudinary request signature: sha1 over the sorted parameters plus the secret."""

    to_sign = "&".join(f"{key}={params[key]}" for key in sorted(params))
    return sha1(f"{to_sign}{api_secret}".encode("utf-8")).hexdigest()


def url_template(url: str) -> str:
    """Insert the width token after the first ``/upload`` segment."""

    return url.replace("/upload", f"/upload/{WIDTH_TOKEN}", 1)


@dataclass(slots=True)
class CloudinaryPublisher:
    """Upload the original source and return a width-templated delivery URL."""

    credentials: CloudinaryCredentials
    logger: logging.Logger = field(default_factory=lambda: logging.getLogger(__name__))
    timeout: float = 60.0
    base_url: str = API_BASE_URL

    def __post_init__(self) -> None:
        self.credentials.validate()

    async def publish(self, source: SourceImage) -> str:
        credentials = self.credentials
        params: dict[str, Any] = {
            "invalidate": "true",
            "overwrite": "true",
            "public_id": source.stem,
            "timestamp": int(time.time()),
        }
        params["signature"] = sign(params, str(credentials.api_secret))
        params["api_key"] = credentials.api_key

        endpoint = f"{self.base_url}/{credentials.cloud_name}/image/upload"
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(
                    endpoint,
                    data={key: str(value) for key, value in params.items()},
                    files={"file": (source.name, source.data)},
                )
        except httpx.HTTPError as exc:
            raise RemoteUploadError(f"Upload of {source.name} failed: {exc}") from exc

        payload = _json_or_empty(response)
        if response.status_code >= 400:
            error = payload.get("error")
            message = error.get("message") if isinstance(error, dict) else None
            raise RemoteUploadError(message or f"HTTP {response.status_code} from {endpoint}")

        delivered = payload.get("secure_url") or payload.get("url")
        if not isinstance(delivered, str) or not delivered:
            raise RemoteUploadError(f"Upload of {source.name} returned no URL")

        template = url_template(delivered)
        self.logger.info("Created image resource at %s", template)
        return template


def _json_or_empty(response: httpx.Response) -> dict[str, Any]:
    try:
        payload = response.json()
    except ValueError:
        return {}
    return payload if isinstance(payload, dict) else {}
