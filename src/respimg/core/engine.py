"""Concurrent resize engine."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from respimg.adapters.base import Adapter, ImageMetadata, ResizeRequest, ResizeResult, SourceImage
from respimg.core.planner import SizePlan, plan_sizes
from respimg.errors import RespimgError, ResizeError


async def join_all(*awaitables: Awaitable[Any]) -> list[Any]:
    """Await every awaitable; on the first failure cancel the rest and re-raise."""

    tasks = [asyncio.ensure_future(awaitable) for awaitable in awaitables]
    try:
        return list(await asyncio.gather(*tasks))
    except BaseException:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise


@dataclass(frozen=True, slots=True)
class RenderedSet:
    """Source metadata plus the raw results of one plan, placeholder last."""

    source: ImageMetadata
    results: tuple[ResizeResult, ...]


@dataclass(slots=True)
class TransformEngine:
    """Drive an adapter over every planned width."""

    logger: logging.Logger = field(default_factory=lambda: logging.getLogger(__name__))

    async def run(
        self,
        adapter: Adapter,
        source: SourceImage,
        plan: SizePlan,
        options: Mapping[str, Any],
        mime: str,
    ) -> list[ResizeResult]:
        """Resize to all planned widths concurrently; any failure fails the batch."""

        started_at = time.monotonic()
        results = await join_all(
            *(
                self._resize(adapter, source, ResizeRequest(width=width, mime=mime, options=options))
                for width in plan.resize_widths
            )
        )

        self.logger.debug(
            "Resized %s to widths=%s via %s in %.2fs",
            source.name,
            list(plan.resize_widths),
            adapter.name,
            time.monotonic() - started_at,
        )
        return list(results)

    async def render(
        self,
        adapter: Adapter,
        source: SourceImage,
        sizes: Sequence[int],
        options: Mapping[str, Any],
        mime: str,
        *,
        placeholder: bool = False,
        placeholder_width: int = 40,
    ) -> RenderedSet:
        """Read source metadata, plan the widths, and run every resize."""

        metadata = await adapter.metadata(source)
        plan = plan_sizes(
            metadata.width,
            sizes,
            placeholder=placeholder,
            placeholder_width=placeholder_width,
        )
        results = await self.run(adapter, source, plan, options, mime)
        return RenderedSet(source=metadata, results=tuple(results))

    async def _resize(
        self, adapter: Adapter, source: SourceImage, request: ResizeRequest
    ) -> ResizeResult:
        try:
            return await adapter.resize(source, request)
        except RespimgError:
            raise
        except Exception as exc:  # pylint: disable=broad-except
            raise ResizeError(request.width, str(exc) or type(exc).__name__) from exc
