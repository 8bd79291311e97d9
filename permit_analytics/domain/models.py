"""
Domain models for permit analytics.

Rows fetched from the portal's tables are treated as read-only mappings
(`Record`); everything the aggregation layer derives from them is an immutable
pydantic model or a plain dict ready for a charting layer.
"""
from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

from pydantic import BaseModel, Field, model_validator

from permit_analytics.exceptions import FetchError

Record = Mapping[str, Any]


class Period(str, Enum):
    """Symbolic date-range selector chosen by a dashboard user."""

    WEEKLY = "weekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"
    MTD = "mtd"
    YTD = "ytd"
    LAST_YEAR = "last-year"
    ALL_TIME = "all-time"

    @classmethod
    def parse(cls, value: "Period | str | None") -> "Period":
        """Unknown or empty keywords fall back to MONTHLY."""
        if isinstance(value, Period):
            return value
        try:
            return cls((value or "").strip().lower())
        except ValueError:
            return cls.MONTHLY


class DateRange(BaseModel):
    """
    Concrete window a Period resolves to. Filters include both endpoints.
    """

    start: datetime = Field(..., description="Inclusive lower bound (UTC).")
    end: datetime = Field(..., description="Inclusive upper bound (UTC).")

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def _ordered(self) -> "DateRange":
        if self.start > self.end:
            raise ValueError(f"start {self.start} is after end {self.end}")
        return self

    def contains(self, ts: Optional[datetime]) -> bool:
        return ts is not None and self.start <= ts <= self.end


class SummaryStat(BaseModel):
    """
    Fixed-shape aggregate for KPI cards, recomputed on every fetch.
    """

    total: int = 0
    by_status: Dict[str, int] = Field(default_factory=dict)
    counts: Dict[str, int] = Field(default_factory=dict)
    sums: Dict[str, float] = Field(default_factory=dict)
    rates: Dict[str, float] = Field(default_factory=dict)
    averages: Dict[str, float] = Field(default_factory=dict)

    model_config = {"frozen": True}

    def flat(self) -> Dict[str, Any]:
        """Single-level mapping in the shape KPI cards consume."""
        out: Dict[str, Any] = {"total": self.total}
        for section in (self.by_status, self.counts, self.sums, self.rates, self.averages):
            out.update(section)
        return out


class DistributionSlice(BaseModel):
    """One category's aggregate value plus its display colour."""

    name: str
    value: float
    color: str

    model_config = {"frozen": True}


class FetchResult(BaseModel):
    """
    Outcome of one row fetch: `data` is None only alongside an error.
    """

    data: Optional[List[Dict[str, Any]]] = None
    error: Optional[str] = None

    model_config = {"frozen": True}

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def rows(self) -> List[Dict[str, Any]]:
        """Rows to aggregate; a failed or null fetch yields none."""
        if self.error is not None or self.data is None:
            return []
        return self.data

    def unwrap(self) -> List[Dict[str, Any]]:
        if self.error is not None:
            raise FetchError(self.error)
        return self.rows


__all__ = [
    "DateRange",
    "DistributionSlice",
    "FetchResult",
    "Period",
    "Record",
    "SummaryStat",
]
