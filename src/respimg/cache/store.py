"""Content-addressed on-disk cache for rendered variants."""

from __future__ import annotations

import asyncio
import base64
import binascii
import gzip
import json
import logging
import os
import tempfile
import zlib
from collections.abc import Awaitable, Callable, Mapping, Sequence
from dataclasses import dataclass, field
from hashlib import sha256
from pathlib import Path
from typing import Any

from respimg.adapters.base import ImageMetadata, ResizeResult
from respimg.core.engine import RenderedSet

ENTRY_VERSION = 1
DEFAULT_CACHE_DIRECTORY = Path(".cache/respimg")
_PLAIN_SUFFIX = ".json"
_COMPRESSED_SUFFIX = ".json.gz"


class CacheEntryError(ValueError):
    """Raised when a stored entry cannot be read back."""


def cache_key(
    *,
    source: bytes,
    adapter: str,
    adapter_options: Mapping[str, Any],
    sizes: Sequence[int],
    mime: str,
    placeholder: bool = False,
    placeholder_width: int | None = None,
    identifier: str = "",
) -> str:
    """Digest every input that can change the rendered set."""

    parameters = {
        "adapter": adapter,
        "options": adapter_options,
        "sizes": list(sizes),
        "mime": mime,
        "placeholder": placeholder,
        "placeholder_width": placeholder_width if placeholder else None,
        "identifier": identifier,
    }
    digest = sha256()
    digest.update(json.dumps(parameters, sort_keys=True, default=str).encode("utf-8"))
    digest.update(b"\x00")
    digest.update(source)
    return digest.hexdigest()


def serialize(rendered: RenderedSet) -> bytes:
    document = {
        "version": ENTRY_VERSION,
        "source": {
            "width": rendered.source.width,
            "height": rendered.source.height,
            "format": rendered.source.format,
        },
        "results": [
            {
                "width": result.width,
                "height": result.height,
                "data": base64.b64encode(result.data).decode("ascii"),
            }
            for result in rendered.results
        ],
    }
    return json.dumps(document, separators=(",", ":")).encode("utf-8")


def deserialize(payload: bytes) -> RenderedSet:
    try:
        document = json.loads(payload.decode("utf-8"))
        if document.get("version") != ENTRY_VERSION:
            raise CacheEntryError(f"Unsupported cache entry version {document.get('version')!r}")
        source = document["source"]
        results = tuple(
            ResizeResult(
                data=base64.b64decode(item["data"], validate=True),
                width=int(item["width"]),
                height=int(item["height"]),
            )
            for item in document["results"]
        )
        metadata = ImageMetadata(
            width=int(source["width"]),
            height=int(source["height"]),
            format=source.get("format"),
        )
    except CacheEntryError:
        raise
    except (UnicodeDecodeError, ValueError, KeyError, TypeError, AttributeError, binascii.Error) as exc:
        raise CacheEntryError(f"Malformed cache entry: {exc}") from exc
    if not results:
        raise CacheEntryError("Cache entry holds no results.")
    return RenderedSet(source=metadata, results=results)


@dataclass(slots=True)
class CacheStore:
    """Append-only directory of rendered sets keyed by digest."""

    directory: Path = DEFAULT_CACHE_DIRECTORY
    compression: bool = True
    logger: logging.Logger = field(default_factory=lambda: logging.getLogger(__name__))

    def __post_init__(self) -> None:
        if not self.directory.is_absolute():
            self.directory = Path.cwd() / self.directory

    def path_for(self, key: str) -> Path:
        suffix = _COMPRESSED_SUFFIX if self.compression else _PLAIN_SUFFIX
        return self.directory / f"{key}{suffix}"

    async def get_or_compute(
        self,
        key: str,
        compute: Callable[[], Awaitable[RenderedSet]],
        accept: Callable[[RenderedSet], bool] | None = None,
    ) -> RenderedSet:
        """Return the stored set for ``key``, computing and persisting it on a miss.

        A stored set rejected by ``accept`` counts as a miss and is overwritten.
        """

        loop = asyncio.get_running_loop()
        cached = await loop.run_in_executor(None, self.read, key)
        if cached is not None:
            if accept is None or accept(cached):
                self.logger.debug("Cache hit %s", key)
                return cached
            self.logger.warning("Ignoring inconsistent cache entry %s", key)

        self.logger.debug("Cache miss %s", key)
        rendered = await compute()
        await loop.run_in_executor(None, self.write, key, rendered)
        return rendered

    def read(self, key: str) -> RenderedSet | None:
        """Load an entry; unreadable entries count as misses."""

        for path in (self.path_for(key), self._alternate_path(key)):
            if not path.is_file():
                continue
            try:
                raw = path.read_bytes()
                if path.name.endswith(_COMPRESSED_SUFFIX):
                    raw = gzip.decompress(raw)
                return deserialize(raw)
            except (OSError, EOFError, zlib.error, CacheEntryError) as exc:
                self.logger.warning("Ignoring unreadable cache entry %s: %s", path, exc)
        return None

    def write(self, key: str, rendered: RenderedSet) -> Path:
        """Persist an entry atomically; concurrent writers race to the same content."""

        payload = serialize(rendered)
        if self.compression:
            payload = gzip.compress(payload)

        destination = self.path_for(key)
        self.directory.mkdir(parents=True, exist_ok=True)
        handle, temp_name = tempfile.mkstemp(dir=self.directory, prefix=f".{key}.", suffix=".tmp")
        try:
            with os.fdopen(handle, "wb") as stream:
                stream.write(payload)
            os.replace(temp_name, destination)
        except BaseException:
            Path(temp_name).unlink(missing_ok=True)
            raise
        self.logger.debug("Cache write %s (%s bytes)", destination, len(payload))
        return destination

    def entries(self) -> list[Path]:
        if not self.directory.is_dir():
            return []
        return sorted(
            path
            for path in self.directory.iterdir()
            if path.is_file()
            and not path.name.startswith(".")
            and path.name.endswith((_PLAIN_SUFFIX, _COMPRESSED_SUFFIX))
        )

    def purge(self) -> int:
        """Delete every entry and return how many were removed."""

        removed = 0
        for path in self.entries():
            path.unlink(missing_ok=True)
            removed += 1
        if removed:
            self.logger.info("Purged %s cache entries from %s", removed, self.directory)
        return removed

    def _alternate_path(self, key: str) -> Path:
        suffix = _PLAIN_SUFFIX if self.compression else _COMPRESSED_SUFFIX
        return self.directory / f"{key}{suffix}"
