"""Assemble emitted files into the generated artifact."""

from __future__ import annotations

import base64
from collections.abc import Callable, Sequence
from dataclasses import dataclass, replace
from typing import Any

from respimg.adapters.base import ResizeResult, SourceImage

DISABLED_SIZE = 100


@dataclass(frozen=True, slots=True)
class EmittedFile:
    """File written (or referenced) for one resize result."""

    src: str
    path: str
    width: int
    height: int

    def to_dict(self) -> dict[str, Any]:
        return {"path": self.path, "width": self.width, "height": self.height}


EmitFile = Callable[[ResizeResult], EmittedFile]


@dataclass(frozen=True, slots=True)
class GeneratedArtifact:
    """Structured output handed back to the host integration."""

    src_set: tuple[EmittedFile, ...]
    images: tuple[EmittedFile, ...]
    src: str
    width: int
    height: int
    placeholder: str | None = None

    @property
    def srcset(self) -> str:
        """The ``srcset`` attribute value."""

        return ",".join(entry.src for entry in self.src_set)

    def __str__(self) -> str:
        return self.images[0].path

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "srcSet": self.srcset,
            "images": [image.to_dict() for image in self.images],
            "src": self.src,
            "width": self.width,
            "height": self.height,
        }
        if self.placeholder is not None:
            payload["placeholder"] = self.placeholder
        return payload


def encode_placeholder(result: ResizeResult, mime: str) -> str:
    """Inline a placeholder result as a data URI."""

    payload = base64.b64encode(result.data).decode("ascii")
    return f"data:{mime};base64,{payload}"


def assemble(
    files: Sequence[EmittedFile],
    positions: Sequence[int],
    *,
    placeholder: ResizeResult | None = None,
    mime: str | None = None,
    remote_url: str | None = None,
) -> GeneratedArtifact:
    """Expand emitted files to request order and build the artifact."""

    if not files:
        raise ValueError("Cannot assemble an artifact without emitted files.")
    ordered = tuple(files[index] for index in positions) if positions else tuple(files)
    first = ordered[0]

    inline: str | None = None
    if placeholder is not None:
        if mime is None:
            raise ValueError("A mime type is required to inline the placeholder.")
        inline = encode_placeholder(placeholder, mime)

    return GeneratedArtifact(
        src_set=ordered,
        images=ordered,
        src=remote_url or first.path,
        width=first.width,
        height=first.height,
        placeholder=inline,
    )


def disabled_artifact(source: SourceImage, emit: EmitFile) -> GeneratedArtifact:
    """Emit the source untouched as a single fixed-size entry."""

    emitted = emit(ResizeResult(data=source.data, width=DISABLED_SIZE, height=DISABLED_SIZE))
    # no width descriptor: the source was never measured
    emitted = replace(emitted, src=emitted.path)
    return GeneratedArtifact(
        src_set=(emitted,),
        images=(emitted,),
        src=emitted.path,
        width=DISABLED_SIZE,
        height=DISABLED_SIZE,
    )
