"""Cache-or-compute orchestration from source bytes to generated artifact."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

from respimg import get_version
from respimg.adapters.base import Adapter, SourceImage
from respimg.adapters.registry import AdapterRegistry, load_default_adapters, registry
from respimg.cache.store import DEFAULT_CACHE_DIRECTORY, CacheStore, cache_key
from respimg.config.loader import TransformOptions
from respimg.core.assembler import EmitFile, GeneratedArtifact, assemble, disabled_artifact
from respimg.core.engine import RenderedSet, TransformEngine, join_all
from respimg.core.planner import derive_sizes, plan_sizes
from respimg.errors import RespimgError, UnsupportedMimeError
from respimg.publishers.cloudinary import CloudinaryCredentials, CloudinaryPublisher

MIME_TYPES: dict[str, str] = {
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
    "webp": "image/webp",
}

PublisherFactory = Callable[..., CloudinaryPublisher]


def resolve_mime(source: SourceImage, output_format: str | None = None) -> tuple[str, str]:
    """Return ``(mime, extension)`` for the output, preferring an explicit format."""

    ext = (output_format or source.extension).lower()
    mime = MIME_TYPES.get(ext)
    if mime is None:
        raise UnsupportedMimeError(ext)
    return mime, ext


@dataclass(slots=True)
class ResponsivePipeline:
    """Turn one source image into a responsive artifact."""

    logger: logging.Logger = field(default_factory=lambda: logging.getLogger(__name__))
    adapter: Adapter | None = None
    registry: AdapterRegistry = field(default_factory=lambda: registry)
    engine: TransformEngine = field(default_factory=TransformEngine)
    cache: CacheStore | None = None
    publisher_factory: PublisherFactory = CloudinaryPublisher

    async def transform(
        self,
        source: SourceImage,
        options: TransformOptions,
        emit: EmitFile,
    ) -> GeneratedArtifact:
        """Resize, optionally publish, emit and assemble; any failure aborts the whole run."""

        if options.disable:
            self.logger.debug("Processing disabled; emitting %s verbatim", source.name)
            return disabled_artifact(source, emit)

        mime, _ = resolve_mime(source, options.format)

        publisher = None
        if options.cloudinary_credentials is not None:
            credentials = CloudinaryCredentials.from_mapping(options.cloudinary_credentials)
            credentials.validate()
            publisher = self.publisher_factory(credentials, logger=self.logger)

        adapter = self._resolve_adapter(options)
        sizes = derive_sizes(
            options.sizes,
            min_width=options.min_width,
            max_width=options.max_width,
            steps=options.steps,
        )
        adapter_options = options.adapter_payload()

        async def compute() -> RenderedSet:
            return await self.engine.render(
                adapter,
                source,
                sizes,
                adapter_options,
                mime,
                placeholder=options.placeholder,
                placeholder_width=options.placeholder_size,
            )

        store = self._resolve_cache(options)
        if store is not None:
            key = cache_key(
                source=source.data,
                adapter=_adapter_identity(adapter, options),
                adapter_options=adapter_options,
                sizes=sizes,
                mime=mime,
                placeholder=options.placeholder,
                placeholder_width=options.placeholder_size,
                identifier=f"{get_version()}:{options.cache_identifier}",
            )

            def accept(rendered: RenderedSet) -> bool:
                try:
                    expected = plan_sizes(
                        rendered.source.width,
                        sizes,
                        placeholder=options.placeholder,
                        placeholder_width=options.placeholder_size,
                    )
                except ValueError:
                    return False
                return len(rendered.results) == len(expected.resize_widths)

            rendering = store.get_or_compute(key, compute, accept)
        else:
            rendering = compute()

        remote_url: str | None = None
        if publisher is not None:
            rendered, remote_url = await join_all(rendering, publisher.publish(source))
        else:
            rendered = await rendering
            self.logger.debug("Didn't upload %s to cloudinary", source.stem)

        plan = plan_sizes(
            rendered.source.width,
            sizes,
            placeholder=options.placeholder,
            placeholder_width=options.placeholder_size,
        )
        if len(rendered.results) != len(plan.resize_widths):
            raise RespimgError(
                f"Expected {len(plan.resize_widths)} results for {source.name}, "
                f"got {len(rendered.results)}"
            )

        regular = rendered.results[: len(plan.widths)]
        placeholder = rendered.results[-1] if plan.placeholder_width is not None else None
        files = [emit(result) for result in regular]

        artifact = assemble(
            files,
            plan.positions,
            placeholder=placeholder,
            mime=mime,
            remote_url=remote_url,
        )
        self.logger.info(
            "Rendered %s: %s variant(s) for %s requested width(s)%s",
            source.name,
            len(files),
            len(plan.positions),
            " with placeholder" if placeholder is not None else "",
        )
        return artifact

    def _resolve_adapter(self, options: TransformOptions) -> Adapter:
        if self.adapter is not None:
            return self.adapter
        if options.adapter not in self.registry:
            load_default_adapters(self.registry)
        return self.registry.create(options.adapter, options.adapter_config)

    def _resolve_cache(self, options: TransformOptions) -> CacheStore | None:
        if options.cache_directory is False:
            return None
        if self.cache is not None:
            return self.cache
        directory = (
            DEFAULT_CACHE_DIRECTORY
            if options.cache_directory is True
            else Path(options.cache_directory)
        )
        return CacheStore(directory=directory, compression=options.cache_compression)


def _adapter_identity(adapter: Adapter, options: TransformOptions) -> str:
    if not options.adapter_config:
        return adapter.name
    settings = ",".join(f"{key}={options.adapter_config[key]}" for key in sorted(options.adapter_config))
    return f"{adapter.name}({settings})"


def run_transform(
    source: SourceImage,
    options: TransformOptions,
    emit: EmitFile,
    *,
    pipeline: ResponsivePipeline | None = None,
) -> GeneratedArtifact:
    """Synchronous entry point for hosts without an event loop."""

    return asyncio.run((pipeline or ResponsivePipeline()).transform(source, options, emit))
