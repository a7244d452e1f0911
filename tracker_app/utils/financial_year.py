"""
Financial-year arithmetic (April 1 to March 31).

A date in January-March belongs to the financial year that started the
previous April, so ``financial_year_of(date(2025, 3, 31)) == 2024``.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timezone

FY_START_MONTH = 4


@dataclass(frozen=True)
class FinancialYear:
    start_year: int

    @property
    def end_year(self) -> int:
        return self.start_year + 1

    @property
    def key(self) -> str:
        return f"FY{self.start_year}"

    @property
    def label(self) -> str:
        return f"{self.start_year}-{self.end_year}"

    @property
    def start_date(self) -> date:
        return date(self.start_year, FY_START_MONTH, 1)

    @property
    def end_date(self) -> date:
        return date(self.end_year, FY_START_MONTH - 1, 31)

    def previous(self) -> "FinancialYear":
        return FinancialYear(self.start_year - 1)

    def contains(self, value: date) -> bool:
        return self.start_date <= value <= self.end_date

    def to_dict(self) -> dict[str, object]:
        return {"startYear": self.start_year, "endYear": self.end_year, "key": self.key}


def parse_date(value: object | None) -> date | None:
    """Parse a stored date (``YYYY-MM-DD`` or ISO timestamp) into a ``date``."""

    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    if len(text) < 10:
        return None
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        return None


def financial_year_of(value: date | datetime) -> int:
    """Return the start year of the financial year containing ``value``."""

    return value.year if value.month >= FY_START_MONTH else value.year - 1


def current_financial_year(today: date | None = None) -> FinancialYear:
    today = today or datetime.now(timezone.utc).date()
    return FinancialYear(financial_year_of(today))
