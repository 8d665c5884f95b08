"""
core/models.py — Roller Bets data model
========================================
Wager record and application settings. No UI, no storage, no math beyond
input coercion.

Responsibilities:
- Sport / FootballCategory / BetStatus enums (values match the persisted strings)
- Bet dataclass (frozen; every edit produces a new record via replace())
- AppState dataclass (target profit, starting bankroll, theme)
- to_dict() / from_dict() for the JSON blobs in core/store.py

Persisted key names are camelCase (oddsDecimal, returnOverride, settledAt,
createdAt, updatedAt) so ledgers exported from the browser build load as-is.

Money fields are Decimal. Stake is held to 2 places, odds to 3.

DO NOT add Streamlit imports or file I/O to this file.
"""

import uuid
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from enum import Enum
from typing import Any, Optional


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class Sport(str, Enum):
    FOOTBALL = "Football"
    CRICKET = "Cricket"
    TENNIS = "Tennis"
    OTHER = "Other"


class FootballCategory(str, Enum):
    RESULT = "Result"
    DOUBLE_CHANCE = "Double Chance"
    GOALS = "Goals"
    CORNERS = "Corners"
    OTHER = "Other"


class BetStatus(str, Enum):
    PENDING = "Pending"
    WON = "Won"
    LOST = "Lost"


UNCATEGORISED = "Uncategorised"

THEMES = ("dark", "light")

DEFAULT_TARGET_PROFIT = Decimal("100")
DEFAULT_STARTING_BANKROLL = Decimal("5")

STAKE_PLACES = Decimal("0.01")
ODDS_PLACES = Decimal("0.001")


# ---------------------------------------------------------------------------
# Coercion helpers
# ---------------------------------------------------------------------------

def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def new_bet_id() -> str:
    """Opaque unique identifier for a new bet."""
    return uuid.uuid4().hex


def to_decimal(value: Any) -> Decimal:
    """
    Coerce a JSON number / string / Decimal to Decimal.

    Floats go through str() so 1.53 stays 1.53 rather than its binary
    expansion. Raises ValueError on anything non-numeric or non-finite.

    >>> to_decimal(1.53)
    Decimal('1.53')
    >>> to_decimal("5")
    Decimal('5')
    """
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, bool) or value is None:
        raise ValueError(f"not a number: {value!r}")
    else:
        try:
            result = Decimal(str(value).strip())
        except InvalidOperation as exc:
            raise ValueError(f"not a number: {value!r}") from exc
    if not result.is_finite():
        raise ValueError(f"not a finite number: {value!r}")
    return result


def quantize_stake(value: Any) -> Decimal:
    return to_decimal(value).quantize(STAKE_PLACES, rounding=ROUND_HALF_UP)


def quantize_odds(value: Any) -> Decimal:
    return to_decimal(value).quantize(ODDS_PLACES, rounding=ROUND_HALF_UP)


def _optional_decimal(value: Any) -> Optional[Decimal]:
    if value is None or value == "":
        return None
    return quantize_stake(value)


def _json_number(value: Optional[Decimal]) -> Optional[float]:
    return None if value is None else float(value)


# ---------------------------------------------------------------------------
# Bet
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Bet:
    """A single wager. Effective return is derived, see core/ledger_math.py."""
    id: str
    date: str                      # yyyy-mm-dd
    description: str
    sport: Sport
    stake: Decimal                 # GBP, 2 places
    odds_decimal: Decimal          # European odds, payout = stake × odds
    status: BetStatus = BetStatus.PENDING
    category: Optional[FootballCategory] = None   # Football only
    return_override: Optional[Decimal] = None     # cash-outs / manual settlements
    settled_at: Optional[str] = None
    created_at: str = field(default_factory=utc_now_iso)
    updated_at: str = field(default_factory=utc_now_iso)

    @property
    def is_football(self) -> bool:
        return self.sport == Sport.FOOTBALL

    @property
    def category_key(self) -> str:
        """Category label used for grouping ("Uncategorised" when missing)."""
        return self.category.value if self.category is not None else UNCATEGORISED

    def to_dict(self) -> dict:
        """Plain dict for JSON. Optional fields are omitted when unset."""
        d: dict = {
            "id": self.id,
            "date": self.date,
            "description": self.description,
            "sport": self.sport.value,
            "stake": float(self.stake),
            "oddsDecimal": float(self.odds_decimal),
            "status": self.status.value,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }
        if self.category is not None:
            d["category"] = self.category.value
        if self.return_override is not None:
            d["returnOverride"] = _json_number(self.return_override)
        if self.settled_at:
            d["settledAt"] = self.settled_at
        return d

    @staticmethod
    def from_dict(d: dict) -> "Bet":
        """
        Inverse of to_dict().

        Raises ValueError / KeyError on a record that cannot be represented
        (missing id, date not yyyy-mm-dd, unknown sport or status,
        non-numeric stake).
        A category on a non-Football bet is dropped.
        """
        if not isinstance(d, dict):
            raise ValueError(f"bet record must be an object, got {type(d).__name__}")

        sport = Sport(d["sport"])
        raw_category = d.get("category")
        category = None
        if sport == Sport.FOOTBALL and raw_category:
            category = FootballCategory(raw_category)

        bet_id = str(d["id"])
        if not bet_id:
            raise ValueError("bet record requires an id")
        # raises ValueError for anything but an ISO calendar date
        day = date.fromisoformat(str(d["date"])).isoformat()

        now = utc_now_iso()
        return Bet(
            id=bet_id,
            date=day,
            description=str(d.get("description", "")),
            sport=sport,
            stake=quantize_stake(d["stake"]),
            odds_decimal=quantize_odds(d["oddsDecimal"]),
            status=BetStatus(d.get("status", BetStatus.PENDING.value)),
            category=category,
            return_override=_optional_decimal(d.get("returnOverride")),
            settled_at=d.get("settledAt") or None,
            created_at=d.get("createdAt") or now,
            updated_at=d.get("updatedAt") or now,
        )


# ---------------------------------------------------------------------------
# AppState
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class AppState:
    target_profit: Decimal = DEFAULT_TARGET_PROFIT
    starting_bankroll: Optional[Decimal] = DEFAULT_STARTING_BANKROLL
    theme: str = "dark"

    def to_dict(self) -> dict:
        d: dict = {
            "targetProfit": float(self.target_profit),
            "theme": self.theme,
        }
        if self.starting_bankroll is not None:
            d["startingBankroll"] = float(self.starting_bankroll)
        return d

    @staticmethod
    def from_dict(d: dict) -> "AppState":
        if not isinstance(d, dict):
            raise ValueError(f"app state must be an object, got {type(d).__name__}")
        theme = d.get("theme", "dark")
        if theme not in THEMES:
            theme = "dark"
        bankroll = d.get("startingBankroll")
        return AppState(
            target_profit=to_decimal(d.get("targetProfit", DEFAULT_TARGET_PROFIT)),
            starting_bankroll=None if bankroll is None else to_decimal(bankroll),
            theme=theme,
        )
