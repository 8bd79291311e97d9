"""
Distribution builders: group rows by a categorical field into colour-coded
`DistributionSlice`s for pie and bar charts.

Slices are sorted by value (largest first, ties in first-seen order) and only
then coloured, so a category's colour follows its rank in the output. When a
`top_n` cut is applied the excess slices are dropped outright; their mass is
not folded into an "Other" slice.
"""

from __future__ import annotations

import re
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from permit_analytics.domain.models import DistributionSlice, Record
from permit_analytics.utils.coerce import is_blank, to_number

DEFAULT_PALETTE: Tuple[str, ...] = (
    "#10b981",
    "#3b82f6",
    "#f59e0b",
    "#8b5cf6",
    "#ef4444",
    "#06b6d4",
    "#ec4899",
)

EXECUTIVE_PALETTE: Tuple[str, ...] = (
    "hsl(142, 76%, 36%)",
    "hsl(221, 83%, 53%)",
    "hsl(45, 93%, 47%)",
    "hsl(0, 84%, 60%)",
    "hsl(262, 83%, 58%)",
    "hsl(173, 80%, 40%)",
    "hsl(30, 100%, 50%)",
    "hsl(280, 65%, 60%)",
)

_WORD_START = re.compile(r"\b\w")


def humanize(name: str) -> str:
    """`under_technical_review` -> `Under Technical Review`."""
    return _WORD_START.sub(lambda m: m.group(0).upper(), name.replace("_", " "))


def truncate_label(name: str, limit: int = 20) -> str:
    return name if len(name) <= limit else name[:limit] + "..."


def color_for(position: int, palette: Sequence[str] = DEFAULT_PALETTE) -> str:
    return palette[position % len(palette)]


def category_totals(
    rows: Optional[Iterable[Record]],
    field: str,
    fallback: str,
    value_field: Optional[str] = None,
) -> Dict[str, float]:
    """Per-category count (or sum of `value_field`), in first-seen order."""
    totals: Dict[str, float] = {}
    for row in rows or ():
        raw = row.get(field)
        category = fallback if is_blank(raw) else str(raw)
        increment = 1 if value_field is None else to_number(row.get(value_field))
        totals[category] = totals.get(category, 0) + increment
    return totals


def rank_slices(
    totals: Dict[str, float],
    top_n: Optional[int] = None,
    drop_zero: bool = False,
    palette: Sequence[str] = DEFAULT_PALETTE,
    label: Optional[Callable[[str], str]] = None,
) -> List[DistributionSlice]:
    if label is not None:
        # Categories whose display labels collide share one slice.
        merged: Dict[str, float] = {}
        for name, value in totals.items():
            key = label(name)
            merged[key] = merged.get(key, 0) + value
        totals = merged
    # sorted() is stable, so equal values keep first-seen order.
    ranked = sorted(totals.items(), key=lambda item: item[1], reverse=True)
    if drop_zero:
        ranked = [(name, value) for name, value in ranked if value > 0]
    if top_n is not None:
        ranked = ranked[:top_n]
    return [
        DistributionSlice(
            name=name,
            value=value,
            color=color_for(position, palette),
        )
        for position, (name, value) in enumerate(ranked)
    ]


def build_distribution(
    rows: Optional[Iterable[Record]],
    field: str,
    fallback: str = "Unknown",
    *,
    value_field: Optional[str] = None,
    top_n: Optional[int] = None,
    drop_zero: bool = False,
    palette: Sequence[str] = DEFAULT_PALETTE,
    label: Optional[Callable[[str], str]] = None,
) -> List[DistributionSlice]:
    """
    Group `rows` by `field`, sort descending, colour by rank.

    Parameters
    ----------
    fallback : str
        Category used for missing/empty values. The wording is user-facing
        and differs per view ("Unspecified", "General", "Other", "Unknown").
    value_field : str | None
        Sum this field per category instead of counting rows.
    top_n : int | None
        Keep only the first N slices after sorting.
    drop_zero : bool
        Remove zero-value slices (pie charts); bar/table views keep them.
    label : callable | None
        Display transform applied to category names before ranking;
        categories that map to the same label are merged into one slice.
    """
    totals = category_totals(rows, field, fallback, value_field)
    return rank_slices(totals, top_n=top_n, drop_zero=drop_zero, palette=palette, label=label)


def fixed_distribution(
    entries: Iterable[Tuple[str, float, str]],
    drop_zero: bool = True,
) -> List[DistributionSlice]:
    """Hand-coloured slices in the given order (status pies)."""
    return [
        DistributionSlice(name=name, value=value, color=color)
        for name, value, color in entries
        if not (drop_zero and value <= 0)
    ]


def zero_filled_distribution(
    rows: Optional[Iterable[Record]],
    field: str,
    categories: Sequence[str],
    fallback: str = "Unknown",
    palette: Sequence[str] = DEFAULT_PALETTE,
) -> List[DistributionSlice]:
    """
    Every known category appears, zero or not, sorted by count. Rows whose
    category is not in `categories` are not shown.
    """
    totals = category_totals(rows, field, fallback)
    filled = {name: totals.get(name, 0) for name in categories}
    return rank_slices(filled, palette=palette)


def slices_total(slices: Iterable[DistributionSlice]) -> float:
    return sum(s.value for s in slices)


def as_dicts(slices: Iterable[DistributionSlice]) -> List[dict]:
    return [s.model_dump() for s in slices]


__all__ = [
    "DEFAULT_PALETTE",
    "EXECUTIVE_PALETTE",
    "as_dicts",
    "build_distribution",
    "category_totals",
    "color_for",
    "fixed_distribution",
    "humanize",
    "rank_slices",
    "slices_total",
    "truncate_label",
    "zero_filled_distribution",
]
