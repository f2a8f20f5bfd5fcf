from __future__ import annotations

import logging
from typing import Any

from waterfall_layout.aggregate import AggregatedRecord, aggregate
from waterfall_layout.config import DEFAULT_CONFIG, ChartConfig
from waterfall_layout.data import validate_categories
from waterfall_layout.errors import LayoutError, ValidationError
from waterfall_layout.geometry import Geometry, build_geometry
from waterfall_layout.margins import fit_margins
from waterfall_layout.selector import build_x_scale, build_y_scale

LOGGER = logging.getLogger(__name__)


class LayoutEngine:
    """Runs one synchronous layout pass per call; holds no per-pass state."""

    def __init__(self, config: ChartConfig = DEFAULT_CONFIG) -> None:
        if not isinstance(config, ChartConfig):
            raise ValidationError("LayoutEngine requires a ChartConfig")
        self._config = config

    @property
    def config(self) -> ChartConfig:
        return self._config

    def aggregate(self, data: Any) -> tuple[AggregatedRecord, ...]:
        try:
            categories = validate_categories(data)
        except ValidationError as exc:
            LOGGER.warning("rejected chart data: %s", exc)
            raise
        cfg = self._config
        return aggregate(
            categories,
            append_total=cfg.show_total,
            total_label=cfg.total_label,
            total_color=cfg.total_color,
        )

    def layout(self, data: Any) -> Geometry:
        cfg = self._config
        records = self.aggregate(data)
        try:
            provisional = build_y_scale(records, range_px=cfg.margin.y_range(cfg.height))
            margins = fit_margins(
                records,
                cfg.margin,
                width=cfg.width,
                height=cfg.height,
                format_number=cfg.format_number,
                metrics=cfg.label_metrics,
                provisional=provisional,
            )
            x_scale = build_x_scale(
                records,
                range_px=margins.x_range(cfg.width),
                mode=cfg.scale_type,
                bar_padding=cfg.bar_padding,
            )
            y_scale = build_y_scale(records, range_px=margins.y_range(cfg.height))
            geometry = build_geometry(
                records,
                x_scale=x_scale,
                y_scale=y_scale,
                margins=margins,
                width=cfg.width,
                height=cfg.height,
                stacked=cfg.stacked,
                format_number=cfg.format_number,
                bar_padding=cfg.bar_padding,
                label_padding=cfg.label_padding,
                trend_line=cfg.trend_line,
            )
        except LayoutError as exc:
            LOGGER.error("layout pass failed: %s", exc)
            raise
        LOGGER.debug(
            "laid out %d records (%s x scale, y domain %s, margins %s)",
            len(records),
            x_scale.kind,
            y_scale.domain,
            margins,
        )
        return geometry


def compute_layout(data: Any, config: ChartConfig | None = None) -> Geometry:
    return LayoutEngine(config or DEFAULT_CONFIG).layout(data)
