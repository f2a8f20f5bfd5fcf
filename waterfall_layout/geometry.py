from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Literal, Sequence

import numpy as np

from waterfall_layout.aggregate import AggregatedRecord
from waterfall_layout.data import Segment
from waterfall_layout.errors import LayoutError
from waterfall_layout.margins import Margins
from waterfall_layout.scales import BandScale, LinearScale, Scale, TimeScale

TrendLineKind = Literal["none", "linear", "moving-average", "polynomial"]

CONNECTOR_DASH = (3.0, 3.0)
SEGMENT_LABEL_BASELINE_OFFSET = 4.0


@dataclass(frozen=True)
class Rect:
    x: float
    y: float
    width: float
    height: float
    color: str


@dataclass(frozen=True)
class LabelPosition:
    x: float
    y: float
    text: str


@dataclass(frozen=True)
class Connector:
    x1: float
    y1: float
    x2: float
    y2: float
    dash: tuple[float, float] = CONNECTOR_DASH


@dataclass(frozen=True)
class BarGeometry:
    key: str
    ordinal: int
    rects: tuple[Rect, ...]
    label: LabelPosition
    segment_labels: tuple[LabelPosition, ...]
    cumulative_total: float
    previous_cumulative_total: float
    is_synthetic_total: bool = False

    @property
    def x(self) -> float:
        return self.rects[0].x

    @property
    def width(self) -> float:
        return self.rects[0].width


@dataclass(frozen=True)
class AxisTick:
    value: float
    position: float
    label: str


@dataclass(frozen=True)
class TrendLine:
    """Bar-centre points; only "moving-average" smooths them, the curve is up to the renderer."""

    kind: str
    points: tuple[tuple[float, float], ...]


@dataclass(frozen=True)
class Geometry:
    width: float
    height: float
    stacked: bool
    margins: Margins
    x_scale: Scale
    y_scale: LinearScale
    bars: tuple[BarGeometry, ...]
    connectors: tuple[Connector, ...]
    y_ticks: tuple[AxisTick, ...]
    trend_line: TrendLine | None = None

    def keys(self) -> tuple[str, ...]:
        return tuple(bar.key for bar in self.bars)

    def bar(self, key: str) -> BarGeometry:
        for bar in self.bars:
            if bar.key == key:
                return bar
        raise KeyError(key)


def dominant_color(segments: Sequence[Segment]) -> str:
    """Color of the largest-magnitude segment; the first one wins ties."""
    if len(segments) == 1:
        return segments[0].color
    best = segments[0]
    for segment in segments:
        if abs(segment.value) > abs(best.value):
            best = segment
    return best.color


def build_geometry(
    records: Sequence[AggregatedRecord],
    *,
    x_scale: Scale | None,
    y_scale: LinearScale | None,
    margins: Margins | None,
    width: float,
    height: float,
    stacked: bool,
    format_number: Callable[[float], str],
    bar_padding: float = 0.1,
    label_padding: float = 5.0,
    trend_line: str = "none",
) -> Geometry:
    if not records:
        raise LayoutError("cannot build geometry without records")
    if not isinstance(x_scale, (BandScale, LinearScale, TimeScale)):
        raise LayoutError("x scale is missing or invalid")
    if not isinstance(y_scale, LinearScale):
        raise LayoutError("y scale is missing or invalid")
    if not isinstance(margins, Margins):
        raise LayoutError("margins are missing or invalid")
    inner_width = margins.inner_width(width)
    if inner_width <= 0 or margins.inner_height(height) <= 0:
        raise LayoutError(f"margins leave no drawable area on a {width:g}x{height:g} chart")
    if not isinstance(x_scale, BandScale) and len(x_scale.anchors) != len(records):
        raise LayoutError(f"x scale has {len(x_scale.anchors)} positions for {len(records)} records")

    bars: list[BarGeometry] = []
    for record in records:
        x, bar_width = _bar_slot(x_scale, record, count=len(records), inner_width=inner_width, bar_padding=bar_padding)
        if stacked:
            rects = _stacked_rects(record, y_scale, x=x, width=bar_width)
            segment_labels = tuple(
                LabelPosition(
                    x=x + bar_width / 2,
                    y=rect.y + rect.height / 2 + SEGMENT_LABEL_BASELINE_OFFSET,
                    text=segment.label,
                )
                for segment, rect in zip(record.segments, rects)
                if segment.label
            )
        else:
            rects = (_waterfall_rect(record, y_scale, x=x, width=bar_width),)
            segment_labels = ()
        bars.append(
            BarGeometry(
                key=record.label,
                ordinal=record.ordinal,
                rects=rects,
                label=LabelPosition(
                    x=x + bar_width / 2,
                    y=y_scale(record.cumulative_total) - label_padding,
                    text=format_number(record.cumulative_total),
                ),
                segment_labels=segment_labels,
                cumulative_total=record.cumulative_total,
                previous_cumulative_total=record.previous_cumulative_total,
                is_synthetic_total=record.is_synthetic_total,
            )
        )

    return Geometry(
        width=float(width),
        height=float(height),
        stacked=stacked,
        margins=margins,
        x_scale=x_scale,
        y_scale=y_scale,
        bars=tuple(bars),
        connectors=_connectors(records, bars, y_scale),
        y_ticks=_y_ticks(y_scale, format_number),
        trend_line=_trend_line(bars, y_scale, trend_line),
    )


def _bar_slot(
    x_scale: Scale,
    record: AggregatedRecord,
    *,
    count: int,
    inner_width: float,
    bar_padding: float,
) -> tuple[float, float]:
    if isinstance(x_scale, BandScale):
        return x_scale.position(record.ordinal), x_scale.bandwidth
    bar_width = inner_width * (1.0 - bar_padding) / count
    center = x_scale(x_scale.anchors[record.ordinal])
    return center - bar_width / 2, bar_width


def _stacked_rects(record: AggregatedRecord, y_scale: LinearScale, *, x: float, width: float) -> tuple[Rect, ...]:
    zero = y_scale(0.0)
    baseline = zero if record.is_synthetic_total else y_scale(record.previous_cumulative_total)
    rects: list[Rect] = []
    for segment in record.segments:
        seg_height = abs(zero - y_scale(abs(segment.value)))
        rects.append(Rect(x=x, y=baseline - seg_height, width=width, height=seg_height, color=segment.color))
        baseline -= seg_height
    return tuple(rects)


def _waterfall_rect(record: AggregatedRecord, y_scale: LinearScale, *, x: float, width: float) -> Rect:
    start = 0.0 if record.is_synthetic_total else record.previous_cumulative_total
    end = record.cumulative_total
    return Rect(
        x=x,
        y=y_scale(max(start, end)),
        width=width,
        height=abs(y_scale(start) - y_scale(end)),
        color=dominant_color(record.segments),
    )


def _connectors(
    records: Sequence[AggregatedRecord],
    bars: Sequence[BarGeometry],
    y_scale: LinearScale,
) -> tuple[Connector, ...]:
    out: list[Connector] = []
    for i in range(len(records) - 1):
        current, following = records[i], records[i + 1]
        level = y_scale(current.cumulative_total)
        out.append(
            Connector(
                x1=bars[i].x + bars[i].width,
                y1=level,
                x2=bars[i + 1].x,
                y2=y_scale(following.cumulative_total) if following.is_synthetic_total else level,
            )
        )
    return tuple(out)


def _y_ticks(y_scale: LinearScale, format_number: Callable[[float], str], count: int = 10) -> tuple[AxisTick, ...]:
    return tuple(
        AxisTick(value=v, position=y_scale(v), label=format_number(v))
        for v in y_scale.ticks(count).tolist()
    )


def _trend_line(bars: Sequence[BarGeometry], y_scale: LinearScale, kind: str) -> TrendLine | None:
    if kind == "none":
        return None
    xs = np.asarray([bar.x + bar.width / 2 for bar in bars], dtype=np.float64)
    ys = np.asarray([y_scale(bar.cumulative_total) for bar in bars], dtype=np.float64)
    if kind == "moving-average":
        smoothed = np.empty_like(ys)
        for i in range(ys.size):
            start = max(0, i - 1)
            end = min(ys.size - 1, i + 1)
            smoothed[i] = float(np.mean(ys[start : end + 1]))
        ys = smoothed
    elif kind not in {"linear", "polynomial"}:
        raise LayoutError(f"unsupported trend line: {kind!r}")
    return TrendLine(kind=kind, points=tuple(zip(xs.tolist(), ys.tolist())))
