"""
core/ledger.py — Session ledger
================================
The state container for one app session: the bet list, the app settings,
and the single soft-delete slot. Pages get one Ledger (kept in
st.session_state) and pass ledger.bets to the pure reducers in
core/aggregations.py.

Responsibilities:
- Load from core/store.py, substituting defaults on any LoadResult error
- Seed two example bets the first time (no bets key at all)
- add_bet / edit_bet / settle_bet with validation and timestamp upkeep
- delete_bet / undo_delete: one "last deleted" slot, 10-second window
- Persist after every mutation when a store path is attached

Soft delete keeps exactly one record. A second delete inside the window
replaces the slot and the first record can no longer be restored. Expiry is
checked lazily against the injected clock; no timer thread.

DO NOT add Streamlit imports to this file.
"""

import datetime
import logging
import time
from dataclasses import dataclass, replace
from decimal import Decimal
from typing import Any, Callable, Optional, Union

from core import store
from core.ledger_math import is_settled, parse_num
from core.models import (
    DEFAULT_TARGET_PROFIT,
    THEMES,
    AppState,
    Bet,
    BetStatus,
    FootballCategory,
    Sport,
    new_bet_id,
    quantize_odds,
    quantize_stake,
    utc_now_iso,
)

logger = logging.getLogger(__name__)

UNDO_WINDOW_SECONDS: float = 10.0

# Fields edit_bet() may change. id and created_at are immutable.
EDITABLE_FIELDS = frozenset({
    "date", "description", "sport", "category", "stake",
    "odds_decimal", "status", "return_override",
})

_UNSET: Any = object()


class BetValidationError(ValueError):
    """Raised when a bet would violate a record invariant."""


@dataclass(frozen=True)
class DeletedBet:
    bet: Bet
    deleted_at: float     # clock() reading when deleted


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

def _validate(bet: Bet) -> None:
    if not bet.description.strip():
        raise BetValidationError("Description is required.")
    if bet.stake <= 0:
        raise BetValidationError("Stake must be greater than 0.")
    if bet.odds_decimal <= 1:
        raise BetValidationError("Odds must be greater than 1.00.")
    if bet.return_override is not None and bet.return_override < 0:
        raise BetValidationError("Return override cannot be negative.")


def _coerce_date(value: Union[str, datetime.date]) -> str:
    if isinstance(value, datetime.date):
        return value.isoformat()
    try:
        return datetime.date.fromisoformat(str(value).strip()).isoformat()
    except ValueError as exc:
        raise BetValidationError(f"Invalid date: {value!r}") from exc


def _coerce_category(sport: Sport, category: Any) -> Optional[FootballCategory]:
    # category only means something for Football
    if sport != Sport.FOOTBALL or category in (None, ""):
        return None
    return FootballCategory(category)


def _coerce_override(value: Any) -> Optional[Decimal]:
    if value is None or value == "":
        return None
    try:
        return quantize_stake(value)
    except ValueError as exc:
        raise BetValidationError(f"Invalid return override: {value!r}") from exc


def _coerce_money(value: Any, label: str, quantize: Callable[[Any], Decimal]) -> Decimal:
    try:
        return quantize(value)
    except ValueError as exc:
        raise BetValidationError(f"Invalid {label}: {value!r}") from exc


def example_bets(today: Optional[datetime.date] = None) -> list[Bet]:
    """The two example bets shown on a brand-new ledger."""
    day = (today or datetime.date.today()).isoformat()
    now = utc_now_iso()
    return [
        Bet(
            id=new_bet_id(), date=day, description="Chelsea BTTS",
            sport=Sport.FOOTBALL, stake=Decimal("5.00"), odds_decimal=Decimal("1.530"),
            status=BetStatus.LOST, return_override=Decimal("0.00"),
            settled_at=now, created_at=now, updated_at=now,
        ),
        Bet(
            id=new_bet_id(), date=day, description="ATP match winner",
            sport=Sport.TENNIS, stake=Decimal("10.00"), odds_decimal=Decimal("2.100"),
            status=BetStatus.PENDING, created_at=now, updated_at=now,
        ),
    ]


# ---------------------------------------------------------------------------
# Ledger
# ---------------------------------------------------------------------------

class Ledger:
    """
    Mutable session state around an immutable list of Bet records.

    Mutations replace self.bets with a new list, so any list a caller got
    earlier (e.g. a filtered view being rendered) is never changed underneath.

    Args:
        bets:     Initial records, newest first.
        state:    App settings.
        db_path:  Store path (None = ROLLER_BETS_DB_PATH or the default).
        persist:  Write to the store after every mutation.
        clock:    Monotonic seconds source for the undo window.
    """

    def __init__(
        self,
        bets: Optional[list[Bet]] = None,
        state: Optional[AppState] = None,
        db_path: Optional[str] = None,
        persist: bool = False,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.bets: list[Bet] = list(bets or [])
        self.state: AppState = state or AppState()
        self.db_path = db_path
        self.persist = persist
        self._clock = clock
        self._last_deleted: Optional[DeletedBet] = None

    # -- loading ------------------------------------------------------------

    @classmethod
    def load(
        cls,
        db_path: Optional[str] = None,
        clock: Callable[[], float] = time.monotonic,
        seed_examples: bool = True,
    ) -> "Ledger":
        """
        Build a persisted ledger from the store.

        Any load error falls back to defaults and is only logged. A missing
        bets key (first run) seeds example_bets(); a malformed one starts
        empty so the bad blob is overwritten on the next save.
        """
        state_result = store.load_app_state(db_path)
        if state_result.ok:
            state = state_result.value
        else:
            if not state_result.missing:
                logger.warning("App state unreadable, using defaults: %s", state_result.error)
            state = AppState()

        bets_result = store.load_bets(db_path)
        if bets_result.ok:
            bets = bets_result.value
        elif bets_result.missing and seed_examples:
            bets = example_bets()
            logger.info("No saved bets, seeded %d examples", len(bets))
        else:
            if not bets_result.missing:
                logger.warning("Bets unreadable, starting empty: %s", bets_result.error)
            bets = []

        ledger = cls(bets=bets, state=state, db_path=db_path, persist=True, clock=clock)
        ledger.save()
        return ledger

    def save(self) -> None:
        if not self.persist:
            return
        store.save_bets(self.bets, self.db_path)
        store.save_app_state(self.state, self.db_path)

    # -- lookup -------------------------------------------------------------

    def get(self, bet_id: str) -> Bet:
        for bet in self.bets:
            if bet.id == bet_id:
                return bet
        raise BetValidationError(f"Unknown bet id: {bet_id}")

    def __len__(self) -> int:
        return len(self.bets)

    # -- add / edit ---------------------------------------------------------

    def add_bet(
        self,
        date: Union[str, datetime.date],
        description: str,
        sport: Union[Sport, str],
        stake: Any,
        odds_decimal: Any,
        status: Union[BetStatus, str] = BetStatus.PENDING,
        category: Any = None,
        return_override: Any = None,
    ) -> Bet:
        """
        Validate and prepend a new bet. Returns the stored record.

        Raises BetValidationError for an empty description, stake <= 0,
        odds <= 1, a negative override or a bad date.
        """
        sport = Sport(sport)
        status = BetStatus(status)
        now = utc_now_iso()
        bet = Bet(
            id=new_bet_id(),
            date=_coerce_date(date),
            description=(description or "").strip(),
            sport=sport,
            stake=_coerce_money(stake, "stake", quantize_stake),
            odds_decimal=_coerce_money(odds_decimal, "odds", quantize_odds),
            status=status,
            category=_coerce_category(sport, category),
            return_override=_coerce_override(return_override),
            settled_at=now if is_settled(status) else None,
            created_at=now,
            updated_at=now,
        )
        _validate(bet)
        self.bets = [bet] + self.bets
        self.save()
        logger.info("Added bet %s (%s, %s)", bet.id, bet.sport.value, bet.status.value)
        return bet

    def edit_bet(self, bet_id: str, **changes: Any) -> Bet:
        """
        Apply field changes to one bet and return the new record.

        settled_at is stamped on a Pending -> Won/Lost transition and cleared
        when a bet goes back to Pending. updated_at is always refreshed.
        """
        unknown = set(changes) - EDITABLE_FIELDS
        if unknown:
            raise BetValidationError(f"Cannot edit field(s): {', '.join(sorted(unknown))}")

        current = self.get(bet_id)
        sport = Sport(changes.get("sport", current.sport))
        status = BetStatus(changes.get("status", current.status))
        category = changes.get("category", current.category)
        now = utc_now_iso()

        settled_at = current.settled_at
        if not is_settled(status):
            settled_at = None
        elif not is_settled(current.status):
            settled_at = now

        updated = replace(
            current,
            date=_coerce_date(changes.get("date", current.date)),
            description=str(changes.get("description", current.description)).strip(),
            sport=sport,
            stake=_coerce_money(changes.get("stake", current.stake), "stake", quantize_stake),
            odds_decimal=_coerce_money(
                changes.get("odds_decimal", current.odds_decimal), "odds", quantize_odds
            ),
            status=status,
            category=_coerce_category(sport, category),
            return_override=_coerce_override(
                changes.get("return_override", current.return_override)
            ),
            settled_at=settled_at,
            updated_at=now,
        )
        _validate(updated)
        self.bets = [updated if b.id == bet_id else b for b in self.bets]
        self.save()
        return updated

    def settle_bet(self, bet_id: str, status: Union[BetStatus, str], return_override: Any = _UNSET) -> Bet:
        """Mark a bet Won/Lost (optionally with a cash-out value)."""
        status = BetStatus(status)
        if not is_settled(status):
            raise BetValidationError("settle_bet needs Won or Lost.")
        changes: dict = {"status": status}
        if return_override is not _UNSET:
            changes["return_override"] = return_override
        return self.edit_bet(bet_id, **changes)

    # -- delete / undo ------------------------------------------------------

    def delete_bet(self, bet_id: str) -> Bet:
        """
        Remove a bet from the live list into the single undo slot.

        Any record already in the slot is forfeited.
        """
        bet = self.get(bet_id)
        if self._last_deleted is not None:
            logger.info("Undo for bet %s forfeited by a new delete", self._last_deleted.bet.id)
        self.bets = [b for b in self.bets if b.id != bet_id]
        self._last_deleted = DeletedBet(bet=bet, deleted_at=self._clock())
        self.save()
        return bet

    @property
    def pending_undo(self) -> Optional[Bet]:
        """The restorable record, or None once the window has passed."""
        slot = self._last_deleted
        if slot is None:
            return None
        if self._clock() - slot.deleted_at > UNDO_WINDOW_SECONDS:
            self._last_deleted = None
            return None
        return slot.bet

    def undo_seconds_left(self) -> float:
        if self.pending_undo is None:
            return 0.0
        return max(0.0, UNDO_WINDOW_SECONDS - (self._clock() - self._last_deleted.deleted_at))

    def undo_delete(self) -> Optional[Bet]:
        """
        Restore the last deleted bet at the top of the list, unchanged
        (same id and field values). Returns None if nothing is restorable.
        """
        bet = self.pending_undo
        if bet is None:
            return None
        self._last_deleted = None
        self.bets = [bet] + self.bets
        self.save()
        return bet

    # -- settings -----------------------------------------------------------

    def update_settings(
        self,
        target_profit: Any = _UNSET,
        starting_bankroll: Any = _UNSET,
        theme: Any = _UNSET,
    ) -> AppState:
        """
        Change app settings from raw UI input.

        target_profit falls back to 100 when unparseable and never goes
        below 1. starting_bankroll falls back to 0; None clears it.
        """
        state = self.state
        if target_profit is not _UNSET:
            state = replace(
                state,
                target_profit=max(Decimal("1"), parse_num(target_profit, DEFAULT_TARGET_PROFIT)),
            )
        if starting_bankroll is not _UNSET:
            bankroll = None if starting_bankroll in (None, "") else parse_num(starting_bankroll, 0)
            state = replace(state, starting_bankroll=bankroll)
        if theme is not _UNSET:
            if theme not in THEMES:
                raise BetValidationError(f"Unknown theme: {theme!r}")
            state = replace(state, theme=theme)
        self.state = state
        self.save()
        return state
