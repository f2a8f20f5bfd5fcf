from __future__ import annotations

import datetime as dt
import math
from numbers import Real
from typing import Any, Iterable, Literal, Sequence

from waterfall_layout.aggregate import AggregatedRecord, value_extent
from waterfall_layout.errors import LayoutError
from waterfall_layout.scales import BandScale, LinearScale, Scale, TimeScale, nice_domain

ScaleMode = Literal["auto", "time", "ordinal", "linear"]
ScaleKind = Literal["time", "band", "linear", "mixed"]

SCALE_MODES: tuple[str, ...] = ("auto", "time", "ordinal", "linear")

NEGATIVE_DOMAIN_PAD_RATIO = 0.05
POSITIVE_DOMAIN_HEADROOM = 1.02


def detect_scale_kind(values: Iterable[Any]) -> ScaleKind:
    items = list(values)
    if items and all(parse_date(v) is not None for v in items):
        return "time"
    if all(isinstance(v, str) and parse_number(v) is None for v in items):
        return "band"
    if all(parse_number(v) is not None for v in items):
        return "linear"
    return "mixed"


def select_scale(
    records: Sequence[AggregatedRecord],
    axis: Literal["x", "y"],
    *,
    range_px: tuple[float, float],
    mode: str = "auto",
    bar_padding: float = 0.1,
) -> Scale:
    if axis == "x":
        return build_x_scale(records, range_px=range_px, mode=mode, bar_padding=bar_padding)
    if axis == "y":
        return build_y_scale(records, range_px=range_px)
    raise LayoutError(f"unknown axis: {axis!r}")


def build_x_scale(
    records: Sequence[AggregatedRecord],
    *,
    range_px: tuple[float, float],
    mode: str = "auto",
    bar_padding: float = 0.1,
) -> Scale:
    if not records:
        raise LayoutError("cannot build an x scale without records")
    left, right = range_px
    if not right > left:
        raise LayoutError(f"chart has no drawable width (x range {left:g}..{right:g})")

    labels = [r.label for r in records if not r.is_synthetic_total]
    if mode == "auto":
        kind = detect_scale_kind(labels)
    elif mode == "ordinal":
        kind = "band"
    elif mode in {"time", "linear"}:
        kind = mode
    else:
        raise LayoutError(f"unsupported scale type: {mode!r}")

    if kind in {"band", "mixed"}:
        return BandScale(
            domain=tuple(str(r.label) for r in records),
            range=(float(left), float(right)),
            padding_inner=bar_padding,
            padding_outer=bar_padding,
        )

    bar_width = (right - left) * (1.0 - bar_padding) / len(records)
    inset = (float(left) + bar_width / 2.0, float(right) - bar_width / 2.0)
    if kind == "time":
        dates = [parse_date(label) for label in labels]
        if any(d is None for d in dates):
            raise LayoutError("time scale requires every category label to be a date")
        anchors = _extend_for_total(records, dates)  # type: ignore[arg-type]
        domain = (min(anchors), max(anchors))
        if domain[0] == domain[1]:
            domain = (domain[0] - dt.timedelta(days=1), domain[1] + dt.timedelta(days=1))
        return TimeScale(domain=domain, range=inset, anchors=tuple(anchors))

    numbers = [parse_number(label) for label in labels]
    if any(n is None for n in numbers):
        raise LayoutError("linear scale requires every category label to be numeric")
    anchors = _extend_for_total(records, numbers)  # type: ignore[arg-type]
    lo, hi = min(anchors), max(anchors)
    if lo == hi:
        lo -= 1.0
        hi += 1.0
    return LinearScale(domain=(lo, hi), range=inset, anchors=tuple(anchors))


def build_y_scale(records: Sequence[AggregatedRecord], *, range_px: tuple[float, float]) -> LinearScale:
    bottom, top = range_px
    if not bottom > top:
        raise LayoutError(f"chart has no drawable height (y range {bottom:g}..{top:g})")
    return LinearScale(domain=y_domain(records), range=(float(bottom), float(top)))


def y_domain(records: Sequence[AggregatedRecord]) -> tuple[float, float]:
    vmin, vmax = value_extent(records)
    if not (math.isfinite(vmin) and math.isfinite(vmax)):
        raise LayoutError("cumulative totals must be finite")
    if vmin < 0:
        pad = (vmax - vmin) * NEGATIVE_DOMAIN_PAD_RATIO
        return (vmin - pad, vmax + pad)
    headroom = vmax * POSITIVE_DOMAIN_HEADROOM
    if headroom <= 0:
        return (0.0, 1.0)
    return nice_domain(0.0, headroom)


def parse_number(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, Real):
        out = float(value)
        return out if math.isfinite(out) else None
    if isinstance(value, str):
        try:
            out = float(value.strip())
        except ValueError:
            return None
        return out if math.isfinite(out) else None
    return None


def parse_date(value: Any) -> dt.datetime | None:
    if isinstance(value, dt.datetime):
        if value.tzinfo is not None:
            return value.astimezone(dt.timezone.utc).replace(tzinfo=None)
        return value
    if isinstance(value, dt.date):
        return dt.datetime.combine(value, dt.time())
    if not isinstance(value, str) or parse_number(value) is not None:
        return None
    try:
        parsed = dt.datetime.fromisoformat(value.strip())
    except ValueError:
        return None
    return parse_date(parsed)


def _extend_for_total(records: Sequence[AggregatedRecord], anchors: list[Any]) -> list[Any]:
    """Position a trailing synthetic total one mean step past the last category."""
    if not any(r.is_synthetic_total for r in records):
        return list(anchors)
    out = list(anchors)
    if len(out) >= 2:
        step = (out[-1] - out[0]) / (len(out) - 1)
    elif isinstance(out[0], dt.datetime):
        step = dt.timedelta(days=1)
    else:
        step = 1.0
    if not step:
        step = dt.timedelta(days=1) if isinstance(out[0], dt.datetime) else 1.0
    out.append(out[-1] + step)
    return out

