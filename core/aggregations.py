"""
core/aggregations.py — Aggregation engine
==========================================
Every statistical view on the dashboard, as independent pure reducers.

Each reducer takes a sequence of Bet (already filtered where the page wants
it) and returns frozen dataclasses. Nothing here mutates its input, caches, or
depends on another reducer's output. Streamlit re-runs all of them on every
rerun.

Views:
  compute_totals()            headline metrics (staked, returned, profit, ROI, ...)
  monthly_pnl()               settled, by yyyy-mm, ascending
  performance_by_sport()      all sports seen, settled-only money, profit desc
  performance_by_category()   Football only, "Uncategorised" fallback, profit desc
  odds_band_calibration()     5 fixed bands, always emitted, settled only
  performance_by_weekday()    all 7 days Sunday-first, settled only, profit desc
  cumulative_profit()         running settled profit by date, starts at 0
  goal_progress()             clamp(profit / target, 0, 1)

Money is rounded half-up to 2 places when a row is emitted (see
core/ledger_math.py for the rounding discipline). Ratios stay unrounded Decimal.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Callable, Iterable, Optional, Sequence

from core.ledger_math import (
    ONE,
    ZERO,
    clamp01,
    effective_return,
    is_settled,
    median,
    potential_return,
    round_money,
    safe_ratio,
)
from core.models import Bet, BetStatus, Sport

# Sunday-first, locale independent.
WEEKDAY_NAMES: tuple[str, ...] = ("Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat")


@dataclass(frozen=True)
class OddsBand:
    label: str
    low: Decimal                    # inclusive
    high: Optional[Decimal]         # exclusive; None = unbounded

    def contains(self, odds: Decimal) -> bool:
        if odds < self.low:
            return False
        return self.high is None or odds < self.high


# Contiguous from 1.01: each band runs up to the next band's lower bound, so
# 3-place odds such as 1.495 land in exactly one band. Odds below 1.01 (a
# blank odds field saved as 0 by older ledgers) fall in no band.
ODDS_BANDS: tuple[OddsBand, ...] = (
    OddsBand("1.01 to 1.49", Decimal("1.01"), Decimal("1.50")),
    OddsBand("1.50 to 1.99", Decimal("1.50"), Decimal("2.00")),
    OddsBand("2.00 to 2.99", Decimal("2.00"), Decimal("3.00")),
    OddsBand("3.00 to 4.99", Decimal("3.00"), Decimal("5.00")),
    OddsBand("5.00 or more", Decimal("5.00"), None),
)


# ---------------------------------------------------------------------------
# Result rows
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Totals:
    total_bets: int
    settled: int
    pending: int
    wins: int
    losses: int
    total_staked: Decimal           # all bets
    staked_settled: Decimal
    total_returned: Decimal         # settled only
    profit: Decimal                 # total_returned - staked_settled
    hit_rate: Decimal               # wins / settled
    roi: Decimal                    # profit / staked_settled
    avg_odds: Decimal               # settled
    avg_stake: Decimal              # all bets
    median_stake: Decimal           # all bets
    profit_per_bet: Decimal         # per settled bet
    pending_stake: Decimal
    pending_potential_return: Decimal


@dataclass(frozen=True)
class MonthRow:
    month: str                      # yyyy-mm
    bets: int
    staked: Decimal
    returned: Decimal
    profit: Decimal


@dataclass(frozen=True)
class GroupRow:
    """One row of a sport / category / weekday breakdown."""
    key: str
    bets: int                       # all bets in the group (settled + pending)
    settled: int
    wins: int
    staked: Decimal                 # settled only
    returned: Decimal
    profit: Decimal
    win_rate: Decimal
    roi: Decimal


@dataclass(frozen=True)
class BandRow:
    band: str
    bets: int
    wins: int
    avg_odds: Decimal
    implied: Decimal                # 1 / avg_odds
    win_rate: Decimal
    edge: Decimal                   # win_rate - implied
    roi: Decimal
    profit: Decimal


@dataclass(frozen=True)
class CumulativePoint:
    date: str
    value: Decimal


# ---------------------------------------------------------------------------
# Accumulator
# ---------------------------------------------------------------------------

class _Acc:
    """Zero-valued running aggregate, created on first sight of a group key."""

    __slots__ = ("bets", "settled", "wins", "staked", "returned")

    def __init__(self) -> None:
        self.bets = 0
        self.settled = 0
        self.wins = 0
        self.staked = ZERO
        self.returned = ZERO

    def add(self, bet: Bet) -> None:
        self.bets += 1
        if not is_settled(bet.status):
            return
        self.settled += 1
        self.staked += bet.stake
        self.returned += effective_return(bet) or ZERO
        if bet.status == BetStatus.WON:
            self.wins += 1

    @property
    def profit(self) -> Decimal:
        return self.returned - self.staked

    def row(self, key: str) -> GroupRow:
        profit = round_money(self.profit)
        return GroupRow(
            key=key,
            bets=self.bets,
            settled=self.settled,
            wins=self.wins,
            staked=round_money(self.staked),
            returned=round_money(self.returned),
            profit=profit,
            win_rate=safe_ratio(Decimal(self.wins), Decimal(self.settled)),
            roi=safe_ratio(profit, self.staked),
        )


def _group(bets: Iterable[Bet], key_fn: Callable[[Bet], str]) -> dict[str, _Acc]:
    groups: dict[str, _Acc] = {}
    for bet in bets:
        key = key_fn(bet)
        acc = groups.get(key)
        if acc is None:
            acc = groups[key] = _Acc()
        acc.add(bet)
    return groups


def _by_profit_desc(rows: Iterable[GroupRow]) -> list[GroupRow]:
    return sorted(rows, key=lambda r: r.profit, reverse=True)


def _settled(bets: Iterable[Bet]) -> list[Bet]:
    return [b for b in bets if is_settled(b.status)]


# ---------------------------------------------------------------------------
# Totals
# ---------------------------------------------------------------------------

def compute_totals(bets: Sequence[Bet]) -> Totals:
    """
    Headline metrics over a bet set.

    Staked / average / median stake cover every bet; returns, profit, hit
    rate, ROI and average odds cover settled bets only. Pending potential
    return is the unrealised stake × odds of every Pending bet.
    """
    bets = list(bets)
    settled = _settled(bets)
    pending = [b for b in bets if b.status == BetStatus.PENDING]
    wins = sum(1 for b in settled if b.status == BetStatus.WON)

    total_staked = sum((b.stake for b in bets), ZERO)
    staked_settled = sum((b.stake for b in settled), ZERO)
    returned = sum((effective_return(b) or ZERO for b in settled), ZERO)
    profit = round_money(returned - staked_settled)

    n_settled = len(settled)
    avg_odds = (
        round_money(sum((b.odds_decimal for b in settled), ZERO) / n_settled)
        if n_settled else ZERO
    )
    avg_stake = round_money(total_staked / len(bets)) if bets else ZERO

    return Totals(
        total_bets=len(bets),
        settled=n_settled,
        pending=len(pending),
        wins=wins,
        losses=n_settled - wins,
        total_staked=round_money(total_staked),
        staked_settled=round_money(staked_settled),
        total_returned=round_money(returned),
        profit=profit,
        hit_rate=safe_ratio(Decimal(wins), Decimal(n_settled)),
        roi=safe_ratio(profit, staked_settled),
        avg_odds=avg_odds,
        avg_stake=avg_stake,
        median_stake=round_money(median(b.stake for b in bets)),
        profit_per_bet=round_money(profit / n_settled) if n_settled else ZERO,
        pending_stake=round_money(sum((b.stake for b in pending), ZERO)),
        pending_potential_return=round_money(
            sum((potential_return(b) for b in pending), ZERO)
        ),
    )


# ---------------------------------------------------------------------------
# Monthly
# ---------------------------------------------------------------------------

def monthly_pnl(bets: Iterable[Bet]) -> list[MonthRow]:
    """Settled bets grouped by yyyy-mm, ascending by month."""
    groups = _group(_settled(bets), lambda b: b.date[:7])
    return [
        MonthRow(
            month=month,
            bets=acc.settled,
            staked=round_money(acc.staked),
            returned=round_money(acc.returned),
            profit=round_money(acc.profit),
        )
        for month, acc in sorted(groups.items())
    ]


# ---------------------------------------------------------------------------
# Sport / category
# ---------------------------------------------------------------------------

def performance_by_sport(bets: Iterable[Bet]) -> list[GroupRow]:
    """
    Every sport present in the set, money from settled bets only.

    A sport with only Pending bets still gets a row (all money zero).
    """
    groups = _group(bets, lambda b: b.sport.value)
    return _by_profit_desc(acc.row(key) for key, acc in groups.items())


def performance_by_category(bets: Iterable[Bet]) -> list[GroupRow]:
    """Football bets keyed by category; missing category -> "Uncategorised"."""
    football = (b for b in bets if b.sport == Sport.FOOTBALL)
    groups = _group(football, lambda b: b.category_key)
    return _by_profit_desc(acc.row(key) for key, acc in groups.items())


# ---------------------------------------------------------------------------
# Odds bands
# ---------------------------------------------------------------------------

def _band_for(odds: Decimal) -> Optional[int]:
    for idx, band in enumerate(ODDS_BANDS):
        if band.contains(odds):
            return idx
    return None


def odds_band_calibration(bets: Iterable[Bet]) -> list[BandRow]:
    """
    Observed win rate vs the implied probability of the band's average odds.

    Always returns len(ODDS_BANDS) rows in band order; an empty band reports
    zeros rather than being skipped. Settled bets priced below 1.01 are left
    out of every band.
    """
    buckets: list[list[Bet]] = [[] for _ in ODDS_BANDS]
    for bet in _settled(bets):
        idx = _band_for(bet.odds_decimal)
        if idx is not None:
            buckets[idx].append(bet)

    rows = []
    for band, in_band in zip(ODDS_BANDS, buckets):
        n = len(in_band)
        if not n:
            rows.append(BandRow(band.label, 0, 0, ZERO, ZERO, ZERO, ZERO, ZERO, ZERO))
            continue
        acc = _Acc()
        for bet in in_band:
            acc.add(bet)
        avg_odds = sum((b.odds_decimal for b in in_band), ZERO) / n
        implied = ONE / avg_odds
        win_rate = Decimal(acc.wins) / n
        profit = round_money(acc.profit)
        rows.append(BandRow(
            band=band.label,
            bets=n,
            wins=acc.wins,
            avg_odds=avg_odds,
            implied=implied,
            win_rate=win_rate,
            edge=win_rate - implied,
            roi=safe_ratio(profit, acc.staked),
            profit=profit,
        ))
    return rows


# ---------------------------------------------------------------------------
# Weekday
# ---------------------------------------------------------------------------

def weekday_name(iso_date: str) -> str:
    """
    Sunday-first short day name for a yyyy-mm-dd date.

    >>> weekday_name("2024-06-02")
    'Sun'
    """
    return WEEKDAY_NAMES[date.fromisoformat(iso_date).isoweekday() % 7]


def performance_by_weekday(bets: Iterable[Bet]) -> list[GroupRow]:
    """All seven days (zero-filled), settled bets only, profit descending."""
    groups = _group(_settled(bets), lambda b: weekday_name(b.date))
    rows = [groups.get(day, _Acc()).row(day) for day in WEEKDAY_NAMES]
    return _by_profit_desc(rows)


# ---------------------------------------------------------------------------
# Cumulative series
# ---------------------------------------------------------------------------

def cumulative_profit(bets: Iterable[Bet]) -> list[CumulativePoint]:
    """
    Running settled profit, one point per bet in date order.

    The sort is stable: same-day bets keep their input order. A leading
    zero point at the first settled date makes the line start at 0.
    """
    settled = sorted(_settled(bets), key=lambda b: b.date)
    if not settled:
        return []
    points = [CumulativePoint(settled[0].date, round_money(ZERO))]
    running = ZERO
    for bet in settled:
        running += (effective_return(bet) or ZERO) - bet.stake
        points.append(CumulativePoint(bet.date, round_money(running)))
    return points


# ---------------------------------------------------------------------------
# Goal
# ---------------------------------------------------------------------------

def progress_ratio(profit: Decimal, target_profit: Decimal) -> Decimal:
    if target_profit <= 0:
        return ZERO
    return clamp01(Decimal(profit) / Decimal(target_profit))


def goal_progress(bets: Iterable[Bet], target_profit: Decimal) -> Decimal:
    """
    Share of the profit target reached, clamped to [0, 1].

    Pass the full ledger here, not a filtered view. The goal is session wide.
    """
    return progress_ratio(compute_totals(list(bets)).profit, target_profit)
