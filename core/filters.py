"""
core/filters.py — Filter engine
================================
Predicate-based selection of a bet subset, plus the query-parameter mapping
the pages use to keep filters in the URL.

A bet passes iff it matches every criterion that is set. A criterion left as
None is "All" and imposes no constraint. Date bounds are inclusive and
compared as yyyy-mm-dd strings (lexicographic == chronological).

Output order of filter_bets() is the input order; the ledger table re-sorts
with sort_by_date_desc().
"""

import calendar
from dataclasses import dataclass
from datetime import date
from typing import Iterable, Mapping, Optional, Union

from core.models import Bet, BetStatus, Sport

ALL = "All"

DateLike = Union[str, date, None]


def _iso(value: DateLike) -> Optional[str]:
    """yyyy-mm-dd, or None for an empty or unparseable bound."""
    if value is None or value == "":
        return None
    if isinstance(value, date):
        return value.isoformat()
    try:
        return date.fromisoformat(str(value).strip()).isoformat()
    except ValueError:
        return None


@dataclass(frozen=True)
class FilterCriteria:
    sport: Optional[Sport] = None
    status: Optional[BetStatus] = None
    date_from: Optional[str] = None
    date_to: Optional[str] = None
    search: str = ""

    @staticmethod
    def build(
        sport: Union[Sport, str, None] = None,
        status: Union[BetStatus, str, None] = None,
        date_from: DateLike = None,
        date_to: DateLike = None,
        search: str = "",
    ) -> "FilterCriteria":
        """Construct from UI values. "All" / "" / None all mean no constraint."""
        return FilterCriteria(
            sport=_parse_sport(sport),
            status=_parse_status(status),
            date_from=_iso(date_from),
            date_to=_iso(date_to),
            search=(search or "").strip(),
        )

    @property
    def is_active(self) -> bool:
        return any((self.sport, self.status, self.date_from, self.date_to, self.search))


def _parse_sport(value: Union[Sport, str, None]) -> Optional[Sport]:
    if value is None or value == ALL or value == "":
        return None
    try:
        return Sport(value)
    except ValueError:
        return None


def _parse_status(value: Union[BetStatus, str, None]) -> Optional[BetStatus]:
    if value is None or value == ALL or value == "":
        return None
    try:
        return BetStatus(value)
    except ValueError:
        return None


# ---------------------------------------------------------------------------
# Matching
# ---------------------------------------------------------------------------

def matches(bet: Bet, criteria: FilterCriteria) -> bool:
    if criteria.sport is not None and bet.sport != criteria.sport:
        return False
    if criteria.status is not None and bet.status != criteria.status:
        return False
    if criteria.date_from and bet.date < criteria.date_from:
        return False
    if criteria.date_to and bet.date > criteria.date_to:
        return False
    if criteria.search:
        haystack = f"{bet.description} {bet.sport.value} {bet.status.value}".lower()
        if criteria.search.lower() not in haystack:
            return False
    return True


def filter_bets(bets: Iterable[Bet], criteria: Optional[FilterCriteria] = None) -> list[Bet]:
    """
    Return the bets matching every set criterion, in input order.

    >>> filter_bets([], FilterCriteria())
    []
    """
    if criteria is None:
        return list(bets)
    return [b for b in bets if matches(b, criteria)]


def sort_by_date_desc(bets: Iterable[Bet]) -> list[Bet]:
    """Newest first. Stable, so same-day bets keep their list order."""
    return sorted(bets, key=lambda b: b.date, reverse=True)


# ---------------------------------------------------------------------------
# Query params (st.query_params round trip)
# ---------------------------------------------------------------------------

def criteria_from_params(params: Mapping[str, str]) -> FilterCriteria:
    """
    Seed criteria from URL query parameters: sport, status, from, to.

    Missing or unrecognised values, including dates that are not
    yyyy-mm-dd, impose no constraint.
    """
    return FilterCriteria.build(
        sport=params.get("sport"),
        status=params.get("status"),
        date_from=params.get("from") or None,
        date_to=params.get("to") or None,
    )


def criteria_to_params(criteria: FilterCriteria) -> dict[str, str]:
    """Inverse of criteria_from_params(); unset criteria are omitted."""
    params: dict[str, str] = {}
    if criteria.sport is not None:
        params["sport"] = criteria.sport.value
    if criteria.status is not None:
        params["status"] = criteria.status.value
    if criteria.date_from:
        params["from"] = criteria.date_from
    if criteria.date_to:
        params["to"] = criteria.date_to
    return params


def month_bounds(month_key: str) -> tuple[str, str]:
    """
    First and last day of a yyyy-mm month key.

    >>> month_bounds("2024-02")
    ('2024-02-01', '2024-02-29')
    """
    year, month = (int(part) for part in month_key.split("-"))
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, 1).isoformat(), date(year, month, last_day).isoformat()
