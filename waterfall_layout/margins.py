from __future__ import annotations

from dataclasses import dataclass
import logging
import math
from typing import Callable, Sequence

import numpy as np

from waterfall_layout.aggregate import AggregatedRecord, value_extent
from waterfall_layout.errors import LayoutError, ValidationError
from waterfall_layout.scales import LinearScale
from waterfall_layout.selector import build_y_scale

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class Margins:
    top: float = 60.0
    right: float = 80.0
    bottom: float = 60.0
    left: float = 80.0

    def __post_init__(self) -> None:
        for name in ("top", "right", "bottom", "left"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ValidationError(f"Margin `{name}` must be a number")
            if not math.isfinite(value) or value < 0:
                raise ValidationError(f"Margin `{name}` must be a finite number >= 0")

    def x_range(self, width: float) -> tuple[float, float]:
        return (float(self.left), float(width - self.right))

    def y_range(self, height: float) -> tuple[float, float]:
        return (float(height - self.bottom), float(self.top))

    def inner_width(self, width: float) -> float:
        return float(width - self.left - self.right)

    def inner_height(self, height: float) -> float:
        return float(height - self.top - self.bottom)


@dataclass(frozen=True)
class LabelMetrics:
    height: float = 14.0
    padding: float = 5.0
    safety_buffer: float = 10.0
    average_char_width: float = 8.0
    bottom_gap: float = 5.0


def fit_margins(
    records: Sequence[AggregatedRecord],
    base: Margins,
    *,
    width: float,
    height: float,
    format_number: Callable[[float], str],
    metrics: LabelMetrics = LabelMetrics(),
    provisional: LinearScale | None = None,
) -> Margins:
    """Grow the base margins until every value label fits on the canvas.

    Labels sit ``metrics.padding`` above each bar's cumulative total. A
    provisional y scale built from the base margins tells where they would
    land; the top margin grows by the overflow, and for charts with negative
    totals the bottom margin grows the same way. The right margin is widened
    for the longest formatted total. The left margin belongs to the value
    axis and is returned unchanged.
    """
    if not records:
        raise LayoutError("cannot fit margins without records")
    if width <= 0 or height <= 0:
        raise LayoutError("chart width and height must be > 0")

    vmin, vmax = value_extent(records)
    if vmin == vmax:
        LOGGER.debug("flat value domain %g; using base margins plus safety buffer", vmin)
        return Margins(
            top=base.top + metrics.safety_buffer,
            right=base.right,
            bottom=base.bottom + metrics.safety_buffer,
            left=base.left,
        )

    scale = provisional or build_y_scale(records, range_px=base.y_range(height))
    label_space = metrics.height + metrics.padding

    label_y = np.asarray([scale(r.cumulative_total) - metrics.padding for r in records], dtype=np.float64)
    highest_label = float(np.min(label_y))
    extra_top = max(0.0, base.top - highest_label + label_space)

    has_negative = vmin < 0
    extra_bottom = 0.0
    if has_negative:
        negative = [r for r in records if r.cumulative_total < 0]
        if negative:
            lowest_label = max(scale(r.cumulative_total) + label_space for r in negative)
            floor = height - base.bottom
            if lowest_label > floor:
                extra_bottom = lowest_label - floor

    longest = max(len(format_number(r.cumulative_total)) for r in records)
    estimated_label_width = longest * metrics.average_char_width
    right = max(base.right, estimated_label_width / 2 + 10)

    fitted = Margins(
        top=base.top + extra_top + metrics.safety_buffer,
        right=right,
        bottom=base.bottom + extra_bottom + (metrics.safety_buffer if has_negative else metrics.bottom_gap),
        left=base.left,
    )
    LOGGER.debug(
        "fitted margins top=%.1f right=%.1f bottom=%.1f left=%.1f (extra top %.1f, extra bottom %.1f)",
        fitted.top,
        fitted.right,
        fitted.bottom,
        fitted.left,
        extra_top,
        extra_bottom,
    )
    return fitted
