"""
core/ledger_math.py — Roller Bets
==================================
All ledger math lives here. No UI, no file I/O.

Responsibilities:
- Half-up money rounding (2 places); every monetary figure goes through round_money()
- Effective return of a bet (override > computed payout)
- Per-bet profit for settled bets
- Median / clamp helpers used by the aggregation engine
- parse_num(): lenient numeric input with a caller-supplied fallback

Rounding discipline:
  Per-record values (effective return, profit) are rounded when derived.
  Aggregate sums are accumulated exactly in Decimal and rounded once when the
  summary row is emitted. Ratios (ROI, win rate, edge) are never rounded here;
  the UI formats them.

DO NOT add Streamlit calls or file I/O to this file.
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Iterable, Optional

from core.models import Bet, BetStatus, to_decimal

ZERO = Decimal("0")
ONE = Decimal("1")
CENT = Decimal("0.01")


# ---------------------------------------------------------------------------
# Rounding
# ---------------------------------------------------------------------------

def round_money(value: Any) -> Decimal:
    """
    Round to 2 decimal places, half-up.

    >>> round_money(Decimal("2.675"))
    Decimal('2.68')
    >>> round_money(Decimal("-1.005"))
    Decimal('-1.01')
    """
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def safe_ratio(numerator: Decimal, denominator: Decimal) -> Decimal:
    """numerator / denominator, or 0 when the denominator is zero."""
    if denominator == 0:
        return ZERO
    return Decimal(numerator) / Decimal(denominator)


def clamp01(value: Decimal) -> Decimal:
    return max(ZERO, min(ONE, value))


def median(values: Iterable[Decimal]) -> Decimal:
    """
    Median via numeric sort; even counts average the two middle values.

    >>> median([Decimal(5), Decimal(10), Decimal(5), Decimal(20)])
    Decimal('7.5')
    >>> median([])
    Decimal('0')
    """
    arr = sorted(values)
    if not arr:
        return ZERO
    mid = len(arr) // 2
    if len(arr) % 2:
        return arr[mid]
    return (arr[mid - 1] + arr[mid]) / 2


# ---------------------------------------------------------------------------
# Status / returns
# ---------------------------------------------------------------------------

def is_settled(status: BetStatus) -> bool:
    return status in (BetStatus.WON, BetStatus.LOST)


def default_return(bet: Bet) -> Optional[Decimal]:
    """
    Computed payout ignoring any override.

    Won  -> round(stake × odds, 2)
    Lost -> 0
    Pending -> None
    """
    if bet.status == BetStatus.WON:
        return round_money(bet.stake * bet.odds_decimal)
    if bet.status == BetStatus.LOST:
        return round_money(ZERO)
    return None


def effective_return(bet: Bet) -> Optional[Decimal]:
    """
    Realised payout of a bet.

    None while Pending. On a settled bet, return_override (rounded) takes
    precedence over the computed payout, which models cash-outs.
    """
    if not is_settled(bet.status):
        return None
    if bet.return_override is not None:
        return round_money(bet.return_override)
    return default_return(bet)


def bet_profit(bet: Bet) -> Optional[Decimal]:
    """effective_return - stake for a settled bet, None while Pending."""
    ret = effective_return(bet)
    if ret is None:
        return None
    return round_money(ret - bet.stake)


def potential_return(bet: Bet) -> Decimal:
    """Unrealised stake × odds (what a Pending bet pays if it wins)."""
    return bet.stake * bet.odds_decimal


# ---------------------------------------------------------------------------
# Input coercion
# ---------------------------------------------------------------------------

def parse_num(value: Any, fallback: Any = 0) -> Decimal:
    """
    Lenient numeric parse for user input.

    Strings are stripped. Anything non-numeric or non-finite returns the
    fallback instead of raising.

    >>> parse_num(" 5.50 ")
    Decimal('5.50')
    >>> parse_num("abc", 100)
    Decimal('100')
    >>> parse_num(float("inf"), 0)
    Decimal('0')
    """
    try:
        return to_decimal(value)
    except ValueError:
        return to_decimal(fallback)
