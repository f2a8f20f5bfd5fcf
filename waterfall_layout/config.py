from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
import math
from pathlib import Path
import re
import tomllib
from typing import Any, Callable, Mapping

from waterfall_layout.errors import ValidationError
from waterfall_layout.geometry import TrendLineKind
from waterfall_layout.margins import LabelMetrics, Margins
from waterfall_layout.selector import SCALE_MODES, ScaleMode

_HEX_COLOR = re.compile(r"^#[0-9a-fA-F]{6}([0-9a-fA-F]{2})?$")

TREND_LINE_KINDS: tuple[str, ...] = ("none", "linear", "moving-average", "polynomial")


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def format_fixed(value: float) -> str:
    out = f"{value:.0f}"
    return "0" if out == "-0" else out


def number_formatter(spec: str) -> Callable[[float], str]:
    try:
        format(0.0, spec)
    except ValueError as exc:
        raise ValidationError(f"Invalid number format `{spec}`: {exc}") from exc

    def _format(value: float) -> str:
        return format(value, spec)

    return _format


@dataclass(frozen=True)
class ChartConfig:
    width: float = 800.0
    height: float = 400.0
    margin: Margins = Margins()
    stacked: bool = True
    show_total: bool = False
    total_label: str = "Total"
    total_color: str = "#95A5A6"
    bar_padding: float = 0.1
    format_number: Callable[[float], str] = field(default=format_fixed, compare=False)
    scale_type: ScaleMode = "auto"
    trend_line: TrendLineKind = "none"
    label_height: float = 14.0
    label_padding: float = 5.0
    safety_buffer: float = 10.0
    average_char_width: float = 8.0

    def __post_init__(self) -> None:
        for name in ("width", "height"):
            if not _is_number(getattr(self, name)) or getattr(self, name) <= 0:
                raise ValidationError(f"Option `{name}` must be a positive number")
        for name in ("label_height", "label_padding", "safety_buffer", "average_char_width"):
            if not _is_number(getattr(self, name)) or getattr(self, name) < 0:
                raise ValidationError(f"Option `{name}` must be a number >= 0")
        if not isinstance(self.margin, Margins):
            raise ValidationError("Option `margin` must be a Margins value")
        for name in ("stacked", "show_total"):
            if not isinstance(getattr(self, name), bool):
                raise ValidationError(f"Option `{name}` must be a boolean")
        if not isinstance(self.total_label, str):
            raise ValidationError("Option `total_label` must be a string")
        if not isinstance(self.total_color, str) or not _HEX_COLOR.match(self.total_color):
            raise ValidationError("Option `total_color` must be a hex color (#RRGGBB or #RRGGBBAA)")
        if not _is_number(self.bar_padding) or not (0.0 <= self.bar_padding <= 1.0):
            raise ValidationError("Option `bar_padding` must be in [0, 1]")
        if not callable(self.format_number):
            raise ValidationError("Option `format_number` must be callable")
        if self.scale_type not in SCALE_MODES:
            raise ValidationError(f"Unsupported scale type: {self.scale_type}")
        if self.trend_line not in TREND_LINE_KINDS:
            raise ValidationError(f"Unsupported trend line: {self.trend_line}")

    @property
    def label_metrics(self) -> LabelMetrics:
        return LabelMetrics(
            height=float(self.label_height),
            padding=float(self.label_padding),
            safety_buffer=float(self.safety_buffer),
            average_char_width=float(self.average_char_width),
        )

    def with_options(self, **changes: Any) -> "ChartConfig":
        return validate_chart_config(changes, base=self)


DEFAULT_CONFIG = ChartConfig()


def validate_chart_config(
    overrides: Mapping[str, Any] | None = None,
    *,
    base: ChartConfig = DEFAULT_CONFIG,
) -> ChartConfig:
    """Merge option overrides over ``base`` and validate the result."""
    known = {f.name for f in fields(ChartConfig)}
    changes: dict[str, Any] = {}
    for key, value in (overrides or {}).items():
        if key not in known:
            raise ValidationError(f"Unknown chart option: {key}")
        changes[key] = value
    if "margin" in changes:
        changes["margin"] = _coerce_margin(changes["margin"], base.margin)
    for name in ("width", "height", "bar_padding", "label_height", "label_padding", "safety_buffer", "average_char_width"):
        if name in changes and _is_number(changes[name]):
            changes[name] = float(changes[name])
    return replace(base, **changes)


def load_chart_config(path: str | Path) -> ChartConfig:
    """Load chart options from a TOML file.

    Top-level keys map to ``ChartConfig`` options, an optional ``[margin]``
    table overrides individual margins and ``number_format`` takes a Python
    format spec for value labels.
    """
    with Path(path).open("rb") as f:
        try:
            raw = tomllib.load(f)
        except tomllib.TOMLDecodeError as exc:
            raise ValidationError(f"{path} is not valid TOML: {exc}") from exc
    options = dict(raw)
    spec = options.pop("number_format", None)
    if spec is not None:
        if not isinstance(spec, str):
            raise ValidationError("Option `number_format` must be a string")
        options["format_number"] = number_formatter(spec)
    return validate_chart_config(options)


class ChartConfigBuilder:
    """Fluent wrapper producing an immutable ChartConfig."""

    def __init__(self, base: ChartConfig = DEFAULT_CONFIG) -> None:
        self._base = base
        self._changes: dict[str, Any] = {}

    def _set(self, name: str, value: Any) -> "ChartConfigBuilder":
        self._changes[name] = value
        return self

    def width(self, value: float) -> "ChartConfigBuilder":
        return self._set("width", value)

    def height(self, value: float) -> "ChartConfigBuilder":
        return self._set("height", value)

    def margin(self, value: Margins | Mapping[str, float]) -> "ChartConfigBuilder":
        return self._set("margin", value)

    def stacked(self, value: bool = True) -> "ChartConfigBuilder":
        return self._set("stacked", value)

    def show_total(self, value: bool = True) -> "ChartConfigBuilder":
        return self._set("show_total", value)

    def total_label(self, value: str) -> "ChartConfigBuilder":
        return self._set("total_label", value)

    def total_color(self, value: str) -> "ChartConfigBuilder":
        return self._set("total_color", value)

    def bar_padding(self, value: float) -> "ChartConfigBuilder":
        return self._set("bar_padding", value)

    def format_number(self, value: Callable[[float], str]) -> "ChartConfigBuilder":
        return self._set("format_number", value)

    def scale_type(self, value: str) -> "ChartConfigBuilder":
        return self._set("scale_type", value)

    def trend_line(self, value: str) -> "ChartConfigBuilder":
        return self._set("trend_line", value)

    def build(self) -> ChartConfig:
        return validate_chart_config(self._changes, base=self._base)


def _coerce_margin(value: Any, base: Margins) -> Margins:
    if isinstance(value, Margins):
        return value
    if not isinstance(value, Mapping):
        raise ValidationError("Option `margin` must be a table with top/right/bottom/left")
    unknown = set(value) - {"top", "right", "bottom", "left"}
    if unknown:
        raise ValidationError(f"Unknown margin side: {', '.join(sorted(unknown))}")
    merged = {side: value.get(side, getattr(base, side)) for side in ("top", "right", "bottom", "left")}
    return Margins(**merged)
