from __future__ import annotations

from dataclasses import dataclass
import json
import math
from numbers import Real
from pathlib import Path
from typing import Any, Mapping, Sequence

from waterfall_layout.errors import ValidationError


@dataclass(frozen=True)
class Segment:
    value: float
    color: str
    label: str | None = None


@dataclass(frozen=True)
class Category:
    label: str
    stacks: tuple[Segment, ...]

    def __post_init__(self) -> None:
        if not self.stacks:
            raise ValidationError(f"Category `{self.label}` must have at least one stack")


def validate_categories(data: Any) -> tuple[Category, ...]:
    if isinstance(data, (str, bytes, bytearray, Mapping)) or not isinstance(data, Sequence):
        raise ValidationError("Invalid data provided. Expected an array of categories.")
    if len(data) == 0:
        raise ValidationError("Empty data array provided.")
    return tuple(_coerce_category(item, index=i) for i, item in enumerate(data))


def load_categories(path: str | Path) -> tuple[Category, ...]:
    source = Path(path)
    try:
        raw = json.loads(source.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ValidationError(f"{source} is not valid JSON: {exc}") from exc
    return validate_categories(raw)


def _coerce_category(item: Any, *, index: int) -> Category:
    if isinstance(item, Category):
        for j, segment in enumerate(item.stacks):
            _coerce_segment(segment, index=index, stack_index=j)
        return item
    if not isinstance(item, Mapping):
        raise ValidationError(f"Category at index {index} must be an object with `label` and `stacks`")

    label = item.get("label")
    if not isinstance(label, str):
        raise ValidationError(f"Category at index {index} must have a string `label`")

    stacks = item.get("stacks")
    if isinstance(stacks, (str, bytes, bytearray)) or not isinstance(stacks, Sequence):
        raise ValidationError(f"Category `{label}` must have a `stacks` array")
    if len(stacks) == 0:
        raise ValidationError(f"Category `{label}` must have a non-empty `stacks` array")

    segments = tuple(_coerce_segment(raw, index=index, stack_index=j) for j, raw in enumerate(stacks))
    return Category(label=label, stacks=segments)


def _coerce_segment(raw: Any, *, index: int, stack_index: int) -> Segment:
    where = f"stack {stack_index} of category {index}"
    if isinstance(raw, Segment):
        value, color, label = raw.value, raw.color, raw.label
    elif isinstance(raw, Mapping):
        value, color, label = raw.get("value"), raw.get("color"), raw.get("label")
    else:
        raise ValidationError(f"{where} must be an object with `value` and `color`")

    if isinstance(value, bool) or not isinstance(value, Real):
        raise ValidationError(f"{where} must have a numeric `value`, got {value!r}")
    if not math.isfinite(float(value)):
        raise ValidationError(f"{where} has a non-finite `value`: {value!r}")
    if not isinstance(color, str):
        raise ValidationError(f"{where} must have a string `color`")
    if label is not None and not isinstance(label, str):
        raise ValidationError(f"{where} has a non-string `label`")
    return Segment(value=float(value), color=color, label=label)
