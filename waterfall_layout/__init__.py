from waterfall_layout.aggregate import AggregatedRecord, aggregate
from waterfall_layout.config import ChartConfig, ChartConfigBuilder, load_chart_config, validate_chart_config
from waterfall_layout.data import Category, Segment, load_categories, validate_categories
from waterfall_layout.engine import LayoutEngine, compute_layout
from waterfall_layout.errors import LayoutError, ValidationError, WaterfallError
from waterfall_layout.geometry import AxisTick, BarGeometry, Connector, Geometry, LabelPosition, Rect, TrendLine
from waterfall_layout.margins import LabelMetrics, Margins, fit_margins
from waterfall_layout.scales import BandScale, LinearScale, TimeScale
from waterfall_layout.selector import detect_scale_kind, select_scale

__all__ = [
    "AggregatedRecord",
    "AxisTick",
    "BandScale",
    "BarGeometry",
    "Category",
    "ChartConfig",
    "ChartConfigBuilder",
    "Connector",
    "Geometry",
    "LabelMetrics",
    "LabelPosition",
    "LayoutEngine",
    "LayoutError",
    "LinearScale",
    "Margins",
    "Rect",
    "Segment",
    "TimeScale",
    "TrendLine",
    "ValidationError",
    "WaterfallError",
    "aggregate",
    "compute_layout",
    "detect_scale_kind",
    "fit_margins",
    "load_categories",
    "load_chart_config",
    "select_scale",
    "validate_categories",
    "validate_chart_config",
]
