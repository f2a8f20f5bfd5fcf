from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

import numpy as np

from waterfall_layout.data import Category, Segment


@dataclass(frozen=True)
class AggregatedRecord:
    label: str
    segments: tuple[Segment, ...]
    segment_total: float
    cumulative_total: float
    previous_cumulative_total: float
    is_synthetic_total: bool
    ordinal: int


def aggregate(
    categories: Sequence[Category],
    *,
    append_total: bool = False,
    total_label: str = "Total",
    total_color: str = "#95A5A6",
) -> tuple[AggregatedRecord, ...]:
    """Turn categories into running-total records.

    The synthetic total, when requested, starts from zero and spans the final
    running total. Its single segment is labelled with that total.
    """
    totals = np.asarray([sum(s.value for s in c.stacks) for c in categories], dtype=np.float64)
    cumulative = np.cumsum(totals)
    previous = np.concatenate(([0.0], cumulative[:-1])) if cumulative.size else cumulative

    records = [
        AggregatedRecord(
            label=category.label,
            segments=tuple(category.stacks),
            segment_total=float(totals[i]),
            cumulative_total=float(cumulative[i]),
            previous_cumulative_total=float(previous[i]),
            is_synthetic_total=False,
            ordinal=i,
        )
        for i, category in enumerate(categories)
    ]

    if append_total and records:
        running = float(cumulative[-1])
        records.append(
            AggregatedRecord(
                label=total_label,
                segments=(Segment(value=running, color=total_color, label=_number_text(running)),),
                segment_total=running,
                cumulative_total=running,
                previous_cumulative_total=0.0,
                is_synthetic_total=True,
                ordinal=len(records),
            )
        )
    return tuple(records)


def value_extent(records: Sequence[AggregatedRecord]) -> tuple[float, float]:
    values = np.asarray(
        [v for r in records for v in (r.cumulative_total, r.previous_cumulative_total)],
        dtype=np.float64,
    )
    if values.size == 0:
        return (0.0, 0.0)
    return (float(np.min(values)), float(np.max(values)))


def _number_text(value: float) -> str:
    return str(int(value)) if value.is_integer() else repr(value)
