from __future__ import annotations

import unittest

from waterfall_layout import aggregate, validate_categories
from waterfall_layout.aggregate import value_extent


QUARTERS = [
    {"label": "Q1", "stacks": [{"value": 45, "color": "#3498db"}, {"value": 25, "color": "#2ecc71"}]},
    {"label": "Q2", "stacks": [{"value": 30, "color": "#f39c12"}]},
    {"label": "Expenses", "stacks": [{"value": -15, "color": "#e74c3c"}]},
]


class AggregateTests(unittest.TestCase):
    def test_cumulative_totals_for_quarters(self) -> None:
        records = aggregate(validate_categories(QUARTERS), append_total=True)
        self.assertEqual([r.cumulative_total for r in records], [70.0, 100.0, 85.0, 85.0])
        self.assertEqual([r.previous_cumulative_total for r in records], [0.0, 70.0, 100.0, 0.0])
        self.assertEqual([r.ordinal for r in records], [0, 1, 2, 3])

    def test_running_total_invariant_holds(self) -> None:
        data = [{"label": f"c{i}", "stacks": [{"value": v, "color": "#000000"}]} for i, v in enumerate([3.5, -7.25, 0, 12, -1e-3])]
        records = aggregate(validate_categories(data))
        previous = 0.0
        for record in records:
            self.assertEqual(record.previous_cumulative_total, previous)
            self.assertEqual(record.cumulative_total, previous + record.segment_total)
            previous = record.cumulative_total

    def test_synthetic_total_record(self) -> None:
        records = aggregate(
            validate_categories(QUARTERS),
            append_total=True,
            total_label="Net",
            total_color="#111111",
        )
        total = records[-1]
        self.assertTrue(total.is_synthetic_total)
        self.assertEqual(total.label, "Net")
        self.assertEqual(total.segment_total, sum(r.segment_total for r in records[:-1]))
        self.assertEqual(total.cumulative_total, 85.0)
        self.assertEqual(total.previous_cumulative_total, 0.0)
        self.assertEqual(total.segments[0].color, "#111111")
        self.assertEqual(total.segments[0].label, "85")
        self.assertFalse(any(r.is_synthetic_total for r in records[:-1]))

    def test_total_segment_label_keeps_fractional_digits(self) -> None:
        data = [{"label": c, "stacks": [{"value": v, "color": "#3498db"}]} for c, v in zip("AB", (0.1, 0.2))]
        total = aggregate(validate_categories(data), append_total=True)[-1]
        self.assertEqual(total.segments[0].label, "0.30000000000000004")

        data = [{"label": "A", "stacks": [{"value": -12.0, "color": "#3498db"}]}]
        total = aggregate(validate_categories(data), append_total=True)[-1]
        self.assertEqual(total.segments[0].label, "-12")

    def test_no_total_unless_requested(self) -> None:
        records = aggregate(validate_categories(QUARTERS))
        self.assertEqual(len(records), 3)

    def test_value_extent_includes_previous_totals(self) -> None:
        records = aggregate(validate_categories([{"label": "A", "stacks": [{"value": -10, "color": "#e74c3c"}]}]))
        self.assertEqual(value_extent(records), (-10.0, 0.0))


if __name__ == "__main__":
    unittest.main()
