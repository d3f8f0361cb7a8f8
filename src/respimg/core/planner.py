"""Width planning for responsive variants."""

from __future__ import annotations

import sys
from collections.abc import Sequence
from dataclasses import dataclass

UNBOUNDED_WIDTH = sys.maxsize


@dataclass(frozen=True, slots=True)
class SizePlan:
    """Distinct widths to resize and how requested positions map onto them."""

    widths: tuple[int, ...]
    positions: tuple[int, ...]
    placeholder_width: int | None = None

    @property
    def resize_widths(self) -> tuple[int, ...]:
        """All widths handed to the adapter, placeholder last."""

        if self.placeholder_width is None:
            return self.widths
        return (*self.widths, self.placeholder_width)

    @property
    def effective_widths(self) -> tuple[int, ...]:
        """Clamped width for every requested position, in request order."""

        return tuple(self.widths[index] for index in self.positions)


def plan_sizes(
    source_width: int,
    sizes: Sequence[int],
    *,
    placeholder: bool = False,
    placeholder_width: int = 40,
) -> SizePlan:
    """Clamp requested widths to the source and schedule each distinct width once."""

    if source_width <= 0:
        raise ValueError(f"Source width must be positive, got {source_width}")
    if not sizes:
        raise ValueError("At least one size is required.")

    widths: list[int] = []
    index_by_width: dict[int, int] = {}
    positions: list[int] = []
    for requested in sizes:
        if requested <= 0:
            raise ValueError(f"Requested widths must be positive, got {requested}")
        effective = min(requested, source_width)
        if effective not in index_by_width:
            index_by_width[effective] = len(widths)
            widths.append(effective)
        positions.append(index_by_width[effective])

    if placeholder and placeholder_width <= 0:
        raise ValueError(f"Placeholder width must be positive, got {placeholder_width}")

    return SizePlan(
        widths=tuple(widths),
        positions=tuple(positions),
        placeholder_width=placeholder_width if placeholder else None,
    )


def derive_sizes(
    sizes: Sequence[int] | None,
    *,
    min_width: int | None = None,
    max_width: int | None = None,
    steps: int = 4,
) -> list[int]:
    """Return explicit sizes, or a geometric progression between ``min_width`` and ``max_width``.

    Without explicit sizes or bounds a single unbounded width is returned, which the
    planner clamps to the source width.
    """

    if sizes:
        return list(sizes)
    if min_width is None or max_width is None:
        return [UNBOUNDED_WIDTH]
    if min_width <= 0 or max_width < min_width:
        raise ValueError(f"Invalid width bounds: min={min_width} max={max_width}")
    if steps <= 1 or min_width == max_width:
        return [max_width]

    ratio = (max_width / min_width) ** (1 / (steps - 1))
    derived: list[int] = []
    for step in range(steps):
        width = max_width if step == steps - 1 else round(min_width * ratio**step)
        if width not in derived:
            derived.append(width)
    return derived
