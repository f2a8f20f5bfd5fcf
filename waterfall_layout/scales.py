from __future__ import annotations

from dataclasses import dataclass
import datetime as dt
import math
from typing import Union

import numpy as np

from waterfall_layout.errors import LayoutError


@dataclass(frozen=True)
class LinearScale:
    domain: tuple[float, float]
    range: tuple[float, float]
    anchors: tuple[float, ...] = ()

    def __post_init__(self) -> None:
        d0, d1 = self.domain
        r0, r1 = self.range
        if not all(np.isfinite(v) for v in (d0, d1, r0, r1)):
            raise LayoutError(f"linear scale requires finite domain and range, got {self.domain} -> {self.range}")
        if d0 == d1:
            raise LayoutError(f"linear scale domain is degenerate: {self.domain}")

    @property
    def kind(self) -> str:
        return "linear"

    def __call__(self, value: float) -> float:
        d0, d1 = self.domain
        r0, r1 = self.range
        return r0 + (float(value) - d0) * (r1 - r0) / (d1 - d0)

    def invert(self, pixel: float) -> float:
        d0, d1 = self.domain
        r0, r1 = self.range
        if r0 == r1:
            return d0
        return d0 + (float(pixel) - r0) * (d1 - d0) / (r1 - r0)

    def ticks(self, count: int = 10) -> np.ndarray:
        return linear_ticks(self.domain[0], self.domain[1], count)


@dataclass(frozen=True)
class TimeScale:
    domain: tuple[dt.datetime, dt.datetime]
    range: tuple[float, float]
    anchors: tuple[dt.datetime, ...] = ()

    def __post_init__(self) -> None:
        if self.domain[0] == self.domain[1]:
            raise LayoutError(f"time scale domain is degenerate: {self.domain[0].isoformat()}")

    @property
    def kind(self) -> str:
        return "time"

    def __call__(self, value: dt.datetime | dt.date) -> float:
        t0, t1 = self.domain
        r0, r1 = self.range
        offset = (_as_datetime(value) - t0).total_seconds()
        return r0 + offset * (r1 - r0) / (t1 - t0).total_seconds()

    def invert(self, pixel: float) -> dt.datetime:
        t0, t1 = self.domain
        r0, r1 = self.range
        if r0 == r1:
            return t0
        fraction = (float(pixel) - r0) / (r1 - r0)
        return t0 + (t1 - t0) * fraction

    def tick_format(self) -> str:
        days = (self.domain[1] - self.domain[0]).total_seconds() / 86400.0
        if days < 1:
            return "%H:%M"
        if days < 30:
            return "%m/%d"
        if days < 365:
            return "%b %Y"
        return "%Y"

    def format_tick(self, value: dt.datetime) -> str:
        return value.strftime(self.tick_format())


@dataclass(frozen=True)
class BandScale:
    domain: tuple[str, ...]
    range: tuple[float, float]
    padding_inner: float = 0.1
    padding_outer: float = 0.1
    align: float = 0.5

    def __post_init__(self) -> None:
        if not self.domain:
            raise LayoutError("band scale requires at least one category")
        if not (0.0 <= self.padding_inner <= 1.0) or self.padding_outer < 0.0:
            raise LayoutError("band padding must be in [0, 1]")
        if not (0.0 <= self.align <= 1.0):
            raise LayoutError("band align must be in [0, 1]")

    @property
    def kind(self) -> str:
        return "band"

    @property
    def step(self) -> float:
        r0, r1 = self.range
        n = len(self.domain)
        return (r1 - r0) / max(1.0, n - self.padding_inner + self.padding_outer * 2.0)

    @property
    def bandwidth(self) -> float:
        return self.step * (1.0 - self.padding_inner)

    def position(self, index: int) -> float:
        if index < 0 or index >= len(self.domain):
            raise LayoutError(f"band index {index} outside domain of {len(self.domain)} categories")
        r0, r1 = self.range
        step = self.step
        start = r0 + (r1 - r0 - step * (len(self.domain) - self.padding_inner)) * self.align
        return start + step * index

    def __call__(self, key: object) -> float:
        try:
            index = self.domain.index(str(key))
        except ValueError as exc:
            raise LayoutError(f"category `{key}` is not in the band domain") from exc
        return self.position(index)

    def index_at(self, pixel: float) -> int:
        bandwidth = self.bandwidth
        for i in range(len(self.domain)):
            start = self.position(i)
            if start <= pixel <= start + bandwidth:
                return i
        centers = np.asarray([self.position(i) + bandwidth / 2 for i in range(len(self.domain))])
        return int(np.argmin(np.abs(centers - float(pixel))))

    def invert(self, pixel: float) -> str:
        return self.domain[self.index_at(pixel)]


Scale = Union[BandScale, LinearScale, TimeScale]


# Factor thresholds between the 1, 2, 5 and 10 step multiples.
_E10 = math.sqrt(50.0)
_E5 = math.sqrt(10.0)
_E2 = math.sqrt(2.0)


def tick_spec(start: float, stop: float, count: float) -> tuple[int, int, float]:
    """Return ``(i1, i2, inc)`` for roughly ``count`` round ticks in [start, stop].

    Ticks are ``i * inc`` for i in i1..i2. Steps below one come back as a
    negative increment and the ticks are ``i / -inc`` instead, which keeps
    values like 0.3 exact.
    """
    if count <= 0:
        raise ValueError("count must be > 0")
    step = (stop - start) / count
    power = math.floor(math.log10(step))
    error = step / 10.0**power
    if error >= _E10:
        factor = 10.0
    elif error >= _E5:
        factor = 5.0
    elif error >= _E2:
        factor = 2.0
    else:
        factor = 1.0

    if power < 0:
        inc = 10.0**-power / factor
        i1 = _round_half_up(start * inc)
        i2 = _round_half_up(stop * inc)
        if i1 / inc < start:
            i1 += 1
        if i2 / inc > stop:
            i2 -= 1
        inc = -inc
    else:
        inc = 10.0**power * factor
        i1 = _round_half_up(start / inc)
        i2 = _round_half_up(stop / inc)
        if i1 * inc < start:
            i1 += 1
        if i2 * inc > stop:
            i2 -= 1
    if i2 < i1 and 0.5 <= count < 2:
        return tick_spec(start, stop, count * 2)
    return i1, i2, inc


def tick_increment(start: float, stop: float, count: float) -> float:
    return tick_spec(start, stop, count)[2]


def linear_ticks(start: float, stop: float, count: float = 10) -> np.ndarray:
    if count <= 0:
        return np.asarray([], dtype=np.float64)
    if start == stop:
        return np.asarray([start], dtype=np.float64)
    reverse = stop < start
    i1, i2, inc = tick_spec(stop, start, count) if reverse else tick_spec(start, stop, count)
    if i2 < i1:
        return np.asarray([], dtype=np.float64)
    index = np.arange(i1, i2 + 1, dtype=np.float64)
    ticks = index / -inc if inc < 0 else index * inc
    return ticks[::-1] if reverse else ticks


def nice_domain(vmin: float, vmax: float, count: float = 10) -> tuple[float, float]:
    """Widen [vmin, vmax] outward to multiples of the tick step.

    The step is re-derived from the widened domain until it stops changing;
    a domain that does not settle within ten rounds is returned as given.
    """
    if vmin == vmax:
        return (vmin, vmax)
    reverse = vmax < vmin
    start, stop = (vmax, vmin) if reverse else (vmin, vmax)
    prestep = None
    for _ in range(10):
        step = tick_increment(start, stop, count)
        if step == prestep:
            lo, hi = start + 0.0, stop + 0.0
            return (hi, lo) if reverse else (lo, hi)
        if step > 0:
            start = math.floor(start / step) * step
            stop = math.ceil(stop / step) * step
        elif step < 0:
            start = math.ceil(start * step) / step
            stop = math.floor(stop * step) / step
        else:
            break
        prestep = step
    return (vmin, vmax)


def _as_datetime(value: dt.datetime | dt.date) -> dt.datetime:
    if isinstance(value, dt.datetime):
        if value.tzinfo is not None:
            return value.astimezone(dt.timezone.utc).replace(tzinfo=None)
        return value
    if isinstance(value, dt.date):
        return dt.datetime.combine(value, dt.time())
    raise LayoutError(f"time scale cannot map {value!r}")


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)
