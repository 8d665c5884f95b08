"""
core/export.py — Export formatter
==================================
Flat-text renderings of the ledger. No aggregation of its own beyond what
core/aggregations.py already provides.

Responsibilities:
- bets_to_csv():      one row per bet, fixed columns, for offline analysis
- snapshot_to_json(): state + bets as a structured JSON document
- summary_text():     the plain-text "copy summary" block
- format_gbp() / format_pct(): en-GB display formatting shared by the pages

CSV columns: date, description, sport, category, stake, oddsDecimal, status, return, profit

DO NOT add Streamlit imports to this file.
"""

import csv
import io
import json
from datetime import date, datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Optional, Sequence

from core.aggregations import compute_totals, progress_ratio
from core.ledger_math import ZERO, bet_profit, effective_return, round_money
from core.models import AppState, Bet, Sport

CSV_HEADERS = [
    "date",
    "description",
    "sport",
    "category",
    "stake",
    "oddsDecimal",
    "status",
    "return",
    "profit",
]

FILENAME_PREFIX = "roller-bets"
RECENT_BETS_IN_SUMMARY = 3


# ---------------------------------------------------------------------------
# Display formatting
# ---------------------------------------------------------------------------

def format_gbp(amount: Decimal) -> str:
    """
    >>> format_gbp(Decimal("1234.5"))
    '£1,234.50'
    >>> format_gbp(Decimal("-3"))
    '-£3.00'
    """
    value = round_money(amount)
    sign = "-" if value < 0 else ""
    return f"{sign}£{abs(value):,.2f}"


def format_pct(ratio: Decimal, places: int = 0) -> str:
    """
    Ratio -> percent string, half-up.

    >>> format_pct(Decimal("0.555"))
    '56%'
    >>> format_pct(Decimal("0.05"), places=1)
    '5.0%'
    """
    quantum = Decimal(1).scaleb(-places)
    pct = (Decimal(ratio) * 100).quantize(quantum, rounding=ROUND_HALF_UP)
    return f"{pct}%"


def _fixed2(value: Decimal) -> str:
    return f"{round_money(value):.2f}"


# ---------------------------------------------------------------------------
# CSV
# ---------------------------------------------------------------------------

def _clean_description(text: str) -> str:
    # delimiter and line breaks would split the row
    return text.replace(",", " ").replace("\r", " ").replace("\n", " ")


def csv_row(bet: Bet) -> list[str]:
    ret = effective_return(bet)
    profit = bet_profit(bet)
    return [
        bet.date,
        _clean_description(bet.description),
        bet.sport.value,
        bet.category_key if bet.sport == Sport.FOOTBALL else "",
        _fixed2(bet.stake),
        _fixed2(bet.odds_decimal),
        bet.status.value,
        "" if ret is None else _fixed2(ret),
        "" if profit is None else _fixed2(profit),
    ]


def bets_to_csv(bets: Iterable[Bet]) -> str:
    """Header plus one line per bet, newline separated, no trailing newline."""
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(CSV_HEADERS)
    for bet in bets:
        writer.writerow(csv_row(bet))
    return buf.getvalue().rstrip("\n")


# ---------------------------------------------------------------------------
# JSON
# ---------------------------------------------------------------------------

def snapshot_to_json(state: AppState, bets: Iterable[Bet], exported_at: Optional[str] = None) -> str:
    """Settings and bets in the same shape the store persists them."""
    doc = {
        "exportedAt": exported_at or datetime.now(timezone.utc).isoformat(),
        "state": state.to_dict(),
        "bets": [b.to_dict() for b in bets],
    }
    return json.dumps(doc, indent=2)


def export_filename(kind: str, today: Optional[date] = None) -> str:
    """
    >>> export_filename("csv", date(2024, 5, 1))
    'roller-bets-2024-05-01.csv'
    """
    day = (today or date.today()).isoformat()
    return f"{FILENAME_PREFIX}-{day}.{kind}"


# ---------------------------------------------------------------------------
# Copy summary
# ---------------------------------------------------------------------------

def _recent_line(bet: Bet) -> str:
    ret = effective_return(bet)
    ret_str = "N/A" if ret is None else format_gbp(ret)
    return (
        f"{bet.date} {bet.description} {bet.sport.value} "
        f"Stake {format_gbp(bet.stake)} Odds {bet.odds_decimal:.2f} "
        f"Status {bet.status.value} Return {ret_str}"
    )


def summary_text(bets: Sequence[Bet], state: AppState) -> str:
    """
    Plain-text summary for the clipboard.

    Totals cover the whole ledger; "recent" means the first bets in ledger
    order (newest added first).
    """
    totals = compute_totals(bets)
    progress = progress_ratio(totals.profit, state.target_profit)
    lines = [
        "Roller Bets summary",
        f"Total staked: {format_gbp(totals.total_staked)}",
        f"Total returned: {format_gbp(totals.total_returned)}",
        f"Profit: {format_gbp(totals.profit)}",
        f"Win rate: {format_pct(totals.hit_rate)}",
        f"Goal progress: {format_pct(progress)} "
        f"({format_gbp(max(ZERO, totals.profit))} of {format_gbp(state.target_profit)})",
        "",
        "Recent bets:",
    ]
    lines.extend(_recent_line(b) for b in list(bets)[:RECENT_BETS_IN_SUMMARY])
    return "\n".join(lines)
