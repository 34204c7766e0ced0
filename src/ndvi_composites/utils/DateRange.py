from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Iterator, Optional


def _next_month(d: date) -> date:
    if d.month == 12:
        return date(d.year + 1, 1, 1)
    return date(d.year, d.month + 1, 1)


def _month_start(year: int, month: int) -> date:
    if not 1 <= int(month) <= 12:
        raise ValueError(f"Month must be in 1..12, got {month}")
    return date(int(year), int(month), 1)


@dataclass(frozen=True)
class DateWindow:
    """Half-open month interval [start, end)."""

    start: date
    end: date

    def __post_init__(self) -> None:
        if not self.start < self.end:
            raise ValueError(f"DateWindow start must precede end: {self.start} >= {self.end}")

    @property
    def year(self) -> int:
        return self.start.year

    @property
    def month(self) -> int:
        return self.start.month

    @property
    def label(self) -> str:
        return f"{self.start.year}-{self.start.month:02d}"

    def contains(self, d: date) -> bool:
        return self.start <= d < self.end

    @classmethod
    def for_month(cls, year: int, month: int) -> "DateWindow":
        start = _month_start(year, month)
        return cls(start=start, end=_next_month(start))


class DateRange:
    """
    Finite, restartable sequence of monthly DateWindows.

    - no end given  -> exactly one window (the start month)
    - end given     -> start month inclusive .. end month exclusive
    """

    def __init__(
        self,
        start_year: int,
        start_month: int,
        end_year: Optional[int] = None,
        end_month: Optional[int] = None,
    ) -> None:
        self.start = _month_start(start_year, start_month)

        if end_year is None or end_month is None:
            self.end = _next_month(self.start)
        else:
            self.end = _month_start(end_year, end_month)

        if self.end < self.start:
            raise ValueError(f"End month {self.end:%Y-%m} is before start month {self.start:%Y-%m}")

    @classmethod
    def from_labels(cls, start: str, end: Optional[str] = None) -> "DateRange":
        """Build from 'YYYY-MM' strings."""
        sy, sm = (int(x) for x in start.split("-"))
        if end is None:
            return cls(sy, sm)
        ey, em = (int(x) for x in end.split("-"))
        return cls(sy, sm, ey, em)

    def __iter__(self) -> Iterator[DateWindow]:
        current = self.start
        while current < self.end:
            nxt = _next_month(current)
            yield DateWindow(start=current, end=nxt)
            current = nxt

    def __len__(self) -> int:
        return (self.end.year - self.start.year) * 12 + (self.end.month - self.start.month)

    def __repr__(self) -> str:
        return f"DateRange({self.start:%Y-%m} -> {self.end:%Y-%m}, months={len(self)})"


def generate(
    start_year: int,
    start_month: int,
    end_year: Optional[int] = None,
    end_month: Optional[int] = None,
) -> DateRange:
    return DateRange(start_year, start_month, end_year, end_month)
