from __future__ import annotations

from dataclasses import replace
import unittest

from waterfall_layout import (
    BandScale,
    Connector,
    LabelPosition,
    LayoutError,
    LinearScale,
    Margins,
    Rect,
    Segment,
    aggregate,
    validate_categories,
)
from waterfall_layout.config import format_fixed
from waterfall_layout.geometry import build_geometry, dominant_color


QUARTERS = [
    {"label": "Q1", "stacks": [{"value": 45, "color": "#3498db", "label": "North"}, {"value": 25, "color": "#2ecc71"}]},
    {"label": "Q2", "stacks": [{"value": 30, "color": "#f39c12"}]},
    {"label": "Expenses", "stacks": [{"value": -15, "color": "#e74c3c"}]},
]

NO_MARGINS = Margins(top=0.0, right=0.0, bottom=0.0, left=0.0)


def _layout(*, stacked: bool, trend_line: str = "none"):
    records = aggregate(validate_categories(QUARTERS), append_total=True)
    x_scale = BandScale(
        domain=tuple(r.label for r in records),
        range=(0.0, 400.0),
        padding_inner=0.0,
        padding_outer=0.0,
    )
    # y(v) = 300 - 3v
    y_scale = LinearScale(domain=(0.0, 100.0), range=(300.0, 0.0))
    return build_geometry(
        records,
        x_scale=x_scale,
        y_scale=y_scale,
        margins=NO_MARGINS,
        width=400.0,
        height=300.0,
        stacked=stacked,
        format_number=format_fixed,
        trend_line=trend_line,
    )


class WaterfallGeometryTests(unittest.TestCase):
    def test_one_floating_rect_per_record(self) -> None:
        geometry = _layout(stacked=False)
        self.assertEqual(geometry.keys(), ("Q1", "Q2", "Expenses", "Total"))
        self.assertEqual(geometry.bar("Q1").rects, (Rect(x=0.0, y=90.0, width=100.0, height=210.0, color="#3498db"),))
        self.assertEqual(geometry.bar("Q2").rects, (Rect(x=100.0, y=0.0, width=100.0, height=90.0, color="#f39c12"),))
        self.assertEqual(geometry.bar("Expenses").rects, (Rect(x=200.0, y=0.0, width=100.0, height=45.0, color="#e74c3c"),))
        self.assertEqual(geometry.bar("Total").rects, (Rect(x=300.0, y=45.0, width=100.0, height=255.0, color="#95A5A6"),))
        self.assertEqual(geometry.bar("Q1").segment_labels, ())

    def test_value_labels_sit_above_cumulative_total(self) -> None:
        label = _layout(stacked=False).bar("Q2").label
        self.assertEqual((label.x, label.y, label.text), (150.0, -5.0, "100"))

    def test_connectors_link_running_totals(self) -> None:
        connectors = _layout(stacked=False).connectors
        self.assertEqual(
            connectors,
            (
                Connector(x1=100.0, y1=90.0, x2=100.0, y2=90.0),
                Connector(x1=200.0, y1=0.0, x2=200.0, y2=0.0),
                Connector(x1=300.0, y1=45.0, x2=300.0, y2=45.0),
            ),
        )
        self.assertEqual(connectors[0].dash, (3.0, 3.0))

    def test_connector_to_total_ends_at_total_height(self) -> None:
        records = aggregate(
            validate_categories([{"label": "A", "stacks": [{"value": 50, "color": "#000000"}]}]),
            append_total=True,
        )
        # Force a total that differs from the running total to expose the endpoint rule.
        total = replace(records[1], cumulative_total=20.0)
        geometry = build_geometry(
            (records[0], total),
            x_scale=BandScale(domain=("A", "Total"), range=(0.0, 200.0), padding_inner=0.0, padding_outer=0.0),
            y_scale=LinearScale(domain=(0.0, 100.0), range=(100.0, 0.0)),
            margins=NO_MARGINS,
            width=200.0,
            height=100.0,
            stacked=False,
            format_number=format_fixed,
        )
        self.assertEqual(geometry.connectors, (Connector(x1=100.0, y1=50.0, x2=100.0, y2=80.0),))


class StackedGeometryTests(unittest.TestCase):
    def test_segments_stack_up_from_previous_total(self) -> None:
        geometry = _layout(stacked=True)
        self.assertEqual(
            geometry.bar("Q1").rects,
            (
                Rect(x=0.0, y=165.0, width=100.0, height=135.0, color="#3498db"),
                Rect(x=0.0, y=90.0, width=100.0, height=75.0, color="#2ecc71"),
            ),
        )
        q2 = geometry.bar("Q2").rects[0]
        self.assertEqual((q2.y, q2.height), (0.0, 90.0))

    def test_negative_segment_uses_magnitude(self) -> None:
        expenses = _layout(stacked=True).bar("Expenses").rects[0]
        self.assertEqual((expenses.y, expenses.height), (-45.0, 45.0))

    def test_synthetic_total_starts_from_zero(self) -> None:
        total = _layout(stacked=True).bar("Total").rects[0]
        self.assertEqual((total.y, total.height, total.color), (45.0, 255.0, "#95A5A6"))

    def test_segment_labels_are_centered(self) -> None:
        labels = _layout(stacked=True).bar("Q1").segment_labels
        self.assertEqual(len(labels), 1)
        self.assertEqual((labels[0].x, labels[0].y, labels[0].text), (50.0, 165.0 + 67.5 + 4.0, "North"))


    def test_synthetic_total_carries_its_value_as_segment_label(self) -> None:
        labels = _layout(stacked=True).bar("Total").segment_labels
        self.assertEqual(labels, (LabelPosition(x=350.0, y=45.0 + 127.5 + 4.0, text="85"),))

    def test_waterfall_mode_has_no_segment_labels(self) -> None:
        self.assertEqual(_layout(stacked=False).bar("Total").segment_labels, ())


class ContinuousAxisGeometryTests(unittest.TestCase):
    def test_bars_are_centered_on_linear_positions(self) -> None:
        records = aggregate(
            validate_categories([{"label": str(i), "stacks": [{"value": 10, "color": "#000000"}]} for i in (1, 2, 3)])
        )
        geometry = build_geometry(
            records,
            x_scale=LinearScale(domain=(1.0, 3.0), range=(50.0, 350.0), anchors=(1.0, 2.0, 3.0)),
            y_scale=LinearScale(domain=(0.0, 30.0), range=(300.0, 0.0)),
            margins=NO_MARGINS,
            width=400.0,
            height=300.0,
            stacked=False,
            format_number=format_fixed,
            bar_padding=0.25,
        )
        middle = geometry.bar("2").rects[0]
        self.assertEqual((middle.x, middle.width), (150.0, 100.0))

    def test_anchor_count_mismatch_raises(self) -> None:
        records = aggregate(validate_categories([{"label": "1", "stacks": [{"value": 1, "color": "#000000"}]}]))
        with self.assertRaisesRegex(LayoutError, "positions"):
            build_geometry(
                records,
                x_scale=LinearScale(domain=(0.0, 1.0), range=(0.0, 100.0)),
                y_scale=LinearScale(domain=(0.0, 1.0), range=(100.0, 0.0)),
                margins=NO_MARGINS,
                width=100.0,
                height=100.0,
                stacked=True,
                format_number=format_fixed,
            )


class GeometryFailureTests(unittest.TestCase):
    def test_missing_inputs_raise_layout_error(self) -> None:
        records = aggregate(validate_categories(QUARTERS))
        x_scale = BandScale(domain=("Q1", "Q2", "Expenses"), range=(0.0, 300.0))
        y_scale = LinearScale(domain=(0.0, 100.0), range=(300.0, 0.0))
        kwargs = dict(width=300.0, height=300.0, stacked=True, format_number=format_fixed)
        with self.assertRaisesRegex(LayoutError, "x scale"):
            build_geometry(records, x_scale=None, y_scale=y_scale, margins=NO_MARGINS, **kwargs)
        with self.assertRaisesRegex(LayoutError, "y scale"):
            build_geometry(records, x_scale=x_scale, y_scale=x_scale, margins=NO_MARGINS, **kwargs)  # type: ignore[arg-type]
        with self.assertRaisesRegex(LayoutError, "margins"):
            build_geometry(records, x_scale=x_scale, y_scale=y_scale, margins=None, **kwargs)
        with self.assertRaisesRegex(LayoutError, "drawable area"):
            build_geometry(records, x_scale=x_scale, y_scale=y_scale, margins=Margins(top=200.0, bottom=200.0), **kwargs)
        with self.assertRaisesRegex(LayoutError, "records"):
            build_geometry((), x_scale=x_scale, y_scale=y_scale, margins=NO_MARGINS, **kwargs)


class TrendLineAndTickTests(unittest.TestCase):
    def test_linear_trend_line_follows_bar_centers(self) -> None:
        trend = _layout(stacked=False, trend_line="linear").trend_line
        assert trend is not None
        self.assertEqual(trend.points, ((50.0, 90.0), (150.0, 0.0), (250.0, 45.0), (350.0, 45.0)))

    def test_moving_average_trend_line_smooths_three_points(self) -> None:
        trend = _layout(stacked=False, trend_line="moving-average").trend_line
        assert trend is not None
        ys = [y for _, y in trend.points]
        self.assertAlmostEqual(ys[0], 45.0, places=9)
        self.assertAlmostEqual(ys[1], 45.0, places=9)
        self.assertAlmostEqual(ys[2], 30.0, places=9)
        self.assertAlmostEqual(ys[3], 45.0, places=9)

    def test_polynomial_trend_line_keeps_raw_points(self) -> None:
        trend = _layout(stacked=False, trend_line="polynomial").trend_line
        assert trend is not None
        self.assertEqual(trend.kind, "polynomial")
        self.assertEqual(trend.points, _layout(stacked=False, trend_line="linear").trend_line.points)

    def test_unknown_trend_line_raises(self) -> None:
        with self.assertRaisesRegex(LayoutError, "unsupported trend line"):
            _layout(stacked=False, trend_line="spline")

    def test_no_trend_line_by_default(self) -> None:
        self.assertIsNone(_layout(stacked=True).trend_line)

    def test_y_ticks_are_positioned_and_labelled(self) -> None:
        ticks = _layout(stacked=True).y_ticks
        self.assertEqual(ticks[0].value, 0.0)
        self.assertEqual(ticks[0].position, 300.0)
        self.assertEqual([t.value for t in ticks], [float(v) for v in range(0, 110, 10)])
        self.assertEqual((ticks[5].position, ticks[5].label), (150.0, "50"))
        self.assertEqual(ticks[-1].label, "100")


class DominantColorTests(unittest.TestCase):
    def test_largest_magnitude_wins_and_first_breaks_ties(self) -> None:
        self.assertEqual(dominant_color([Segment(1.0, "#a"), Segment(-9.0, "#b"), Segment(4.0, "#c")]), "#b")
        self.assertEqual(dominant_color([Segment(-5.0, "#a"), Segment(5.0, "#b")]), "#a")
        self.assertEqual(dominant_color([Segment(0.0, "#only")]), "#only")


if __name__ == "__main__":
    unittest.main()
