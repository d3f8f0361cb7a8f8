"""Default file-emission callback."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from hashlib import md5
from pathlib import Path

from respimg.adapters.base import ResizeResult
from respimg.core.assembler import EmittedFile

_HASH_PATTERN = re.compile(r"\[(?:content)?hash(?::(\d+))?\]", re.IGNORECASE)
_WIDTH_PATTERN = re.compile(r"\[width\]", re.IGNORECASE)
_HEIGHT_PATTERN = re.compile(r"\[height\]", re.IGNORECASE)


def interpolate_name(template: str, *, data: bytes, stem: str, ext: str, width: int, height: int) -> str:
    """Expand ``[hash]``, ``[hash:N]``, ``[name]``, ``[ext]``, ``[width]`` and ``[height]``."""

    digest = md5(data).hexdigest()

    def _hash(match: re.Match[str]) -> str:
        length = match.group(1)
        return digest[: int(length)] if length else digest

    name = _HASH_PATTERN.sub(_hash, template)
    name = name.replace("[name]", stem).replace("[ext]", ext)
    name = _WIDTH_PATTERN.sub(str(width), name)
    return _HEIGHT_PATTERN.sub(str(height), name)


@dataclass(slots=True)
class FileEmitter:
    """Write each result under ``directory`` and describe it for the artifact."""

    directory: Path
    stem: str
    ext: str
    name: str = "[hash]-[width].[ext]"
    output_path: str | None = None
    public_path: str | None = None
    emit_file: bool = True
    logger: logging.Logger = field(default_factory=lambda: logging.getLogger(__name__))

    def __call__(self, result: ResizeResult) -> EmittedFile:
        file_name = interpolate_name(
            self.name,
            data=result.data,
            stem=self.stem,
            ext=self.ext,
            width=result.width,
            height=result.height,
        )
        relative = f"{self.output_path.rstrip('/')}/{file_name}" if self.output_path else file_name
        public = _join_public(self.public_path, file_name) if self.public_path is not None else relative

        if self.emit_file:
            destination = self.directory / relative
            destination.parent.mkdir(parents=True, exist_ok=True)
            destination.write_bytes(result.data)
            self.logger.debug("Emitted %s (%sx%s)", destination, result.width, result.height)

        return EmittedFile(
            src=f"{public} {result.width}w",
            path=public,
            width=result.width,
            height=result.height,
        )


def _join_public(public_path: str, file_name: str) -> str:
    if public_path and not public_path.endswith("/"):
        return f"{public_path}/{file_name}"
    return f"{public_path}{file_name}"
