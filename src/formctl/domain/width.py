"""Responsive widths on a 12-column grid.

Convention: ``[mobile, tablet, desktop]``.  One value applies everywhere, two
values mean ``[mobile and tablet, desktop]``, three or more are explicit.
Strings such as ``"[12, 6]"`` or ``"4"`` are parsed as JSON first.
"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from typing import Any

GRID_COLUMNS = 12


@dataclass(frozen=True)
class ResponsiveWidth:
    mobile: int = GRID_COLUMNS
    tablet: int = GRID_COLUMNS
    desktop: int = GRID_COLUMNS

    def to_dict(self) -> dict[str, int]:
        return asdict(self)


FULL_WIDTH = ResponsiveWidth()


def parse_responsive_width(width: Any) -> ResponsiveWidth:
    """Parse a ``width`` attribute; anything unreadable is full width."""
    if width is None:
        return FULL_WIDTH
    if isinstance(width, str):
        try:
            parsed = json.loads(width)
        except ValueError:
            return FULL_WIDTH
        if isinstance(parsed, str):
            return FULL_WIDTH
        return parse_responsive_width(parsed)
    if isinstance(width, bool):
        return FULL_WIDTH
    if isinstance(width, (int, float)):
        return ResponsiveWidth(int(width), int(width), int(width))
    if isinstance(width, (list, tuple)):
        try:
            values = [int(v) for v in width]
        except (TypeError, ValueError):
            return FULL_WIDTH
        if not values:
            return FULL_WIDTH
        if len(values) == 1:
            return ResponsiveWidth(values[0], values[0], values[0])
        if len(values) == 2:
            return ResponsiveWidth(values[0], values[0], values[1])
        return ResponsiveWidth(values[0], values[1], values[2])
    return FULL_WIDTH
