"""Adapter registry for Respimg."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping
from importlib import import_module
from typing import Any

from respimg.adapters.base import Adapter
from respimg.errors import UnknownAdapterError

logger = logging.getLogger(__name__)

AdapterFactory = Callable[..., Adapter]

DEFAULT_ADAPTER = "pillow"
ENTRY_POINT_GROUP = "respimg.adapters"


class AdapterRegistry:
    """Registry mapping adapter identifiers to factories."""

    def __init__(self) -> None:
        self._factories: dict[str, AdapterFactory] = {}

    def register(self, name: str, factory: AdapterFactory, *, replace: bool = False) -> None:
        if name in self._factories and not replace:
            return
        self._factories[name] = factory

    def clear(self) -> None:
        self._factories.clear()

    def names(self) -> list[str]:
        return sorted(self._factories)

    def __contains__(self, name: object) -> bool:
        return name in self._factories

    def create(self, name: str, options: Mapping[str, Any] | None = None) -> Adapter:
        """Instantiate the adapter registered under ``name``."""

        try:
            factory = self._factories[name]
        except KeyError as exc:
            known = ", ".join(self.names()) or "none"
            raise UnknownAdapterError(
                f"No adapter registered as {name!r} (known: {known})"
            ) from exc
        return factory(**dict(options or {}))

    def load_entrypoints(self) -> None:
        from importlib.metadata import entry_points

        try:
            resolved_entry_points = entry_points()
        except Exception as exc:  # pragma: no cover - defensive around stdlib shims
            logger.warning("Failed to enumerate adapter entry points: %s", exc)
            return

        candidates: Iterable[Any]
        if hasattr(resolved_entry_points, "select"):
            candidates = resolved_entry_points.select(group=ENTRY_POINT_GROUP)
        else:  # pragma: no cover - unexpected shim
            candidates = []

        for entry_point in candidates:
            name = getattr(entry_point, "name", repr(entry_point))
            try:
                factory = entry_point.load()
            except Exception as exc:  # pylint: disable=broad-except
                logger.warning("Failed to load adapter entry point %s: %s", name, exc)
                continue
            self.register(name, factory)


registry = AdapterRegistry()


BUILTIN_ADAPTERS: dict[str, str] = {
    "pillow": "respimg.adapters.pillow:PillowAdapter",
    "remote": "respimg.adapters.remote:RemoteAdapter",
}


def load_default_adapters(target: AdapterRegistry | None = None) -> AdapterRegistry:
    """Register the built-in adapters into ``target`` (the global registry by default).

    Names already registered keep their factory.
    """

    target = registry if target is None else target
    for name, reference in BUILTIN_ADAPTERS.items():
        if name in target:
            continue
        module_name, _, attribute = reference.partition(":")
        target.register(name, getattr(import_module(module_name), attribute))
    return target
