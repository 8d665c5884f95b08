"""
tests/test_ledger.py — Session ledger tests

Tests cover:
- Ledger.load: first-run seeding, defaults on malformed blobs, persisted reload
- add_bet: validation errors, quantization, prepend, category rules
- edit_bet / settle_bet: settled_at stamping and clearing, immutable fields
- delete_bet / undo_delete: identical restore, 10 s window, single slot
- update_settings: target floor and fallback, bankroll clear, theme check

The undo window is driven by a FakeClock so no test sleeps.
"""

from datetime import date
from decimal import Decimal

import pytest

from core import store
from core.ledger import (
    UNDO_WINDOW_SECONDS,
    BetValidationError,
    Ledger,
    example_bets,
)
from core.models import AppState, BetStatus, FootballCategory, Sport


class FakeClock:
    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def ledger(clock) -> Ledger:
    return Ledger(clock=clock)


@pytest.fixture()
def db(tmp_path) -> str:
    return str(tmp_path / "ledger_test.db")


def _add(ledger: Ledger, description="Villa corners", **kwargs):
    params = dict(date="2024-06-01", sport="Football", stake="5", odds_decimal="1.8")
    params.update(kwargs)
    return ledger.add_bet(description=description, **params)


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------

class TestLoad:

    def test_first_run_seeds_examples(self, db):
        ledger = Ledger.load(db)
        assert [b.description for b in ledger.bets] == ["Chelsea BTTS", "ATP match winner"]
        assert ledger.state == AppState()
        # seeded ledger is written straight away
        assert store.load_bets(db).ok

    def test_no_seed_when_disabled(self, db):
        assert len(Ledger.load(db, seed_examples=False)) == 0

    def test_reload_keeps_bets(self, db, clock):
        first = Ledger.load(db, clock=clock, seed_examples=False)
        bet = _add(first)
        second = Ledger.load(db, clock=clock)
        assert [b.id for b in second.bets] == [bet.id]

    def test_empty_saved_ledger_not_reseeded(self, db):
        store.save_bets([], db)
        assert len(Ledger.load(db)) == 0

    def test_malformed_bets_start_empty(self, db, write_raw):
        write_raw(store.BETS_KEY, "][", db)
        ledger = Ledger.load(db)
        assert ledger.bets == []
        assert store.load_bets(db).value == []

    def test_malformed_state_uses_defaults(self, db, write_raw):
        write_raw(store.STATE_KEY, "nope", db)
        assert Ledger.load(db).state == AppState()

    def test_example_bets(self):
        lost, pending = example_bets(date(2024, 6, 1))
        assert lost.date == "2024-06-01"
        assert lost.status == BetStatus.LOST
        assert lost.return_override == Decimal("0.00")
        assert lost.settled_at
        assert pending.sport == Sport.TENNIS
        assert pending.settled_at is None


# ---------------------------------------------------------------------------
# add_bet
# ---------------------------------------------------------------------------

class TestAddBet:

    def test_prepends_and_defaults_pending(self, ledger):
        first = _add(ledger, "first")
        second = _add(ledger, "second")
        assert [b.id for b in ledger.bets] == [second.id, first.id]
        assert first.status == BetStatus.PENDING
        assert first.settled_at is None

    def test_quantizes_money(self, ledger):
        bet = _add(ledger, stake="5.555", odds_decimal="1.8888")
        assert bet.stake == Decimal("5.56")
        assert bet.odds_decimal == Decimal("1.889")

    def test_accepts_date_object(self, ledger):
        assert _add(ledger, date=date(2024, 2, 29)).date == "2024-02-29"

    def test_date_string_trimmed(self, ledger):
        assert _add(ledger, date=" 2024-06-01 ").date == "2024-06-01"

    def test_settled_on_creation_is_stamped(self, ledger):
        bet = _add(ledger, status="Won", return_override="4")
        assert bet.settled_at
        assert bet.return_override == Decimal("4.00")

    def test_category_kept_for_football(self, ledger):
        assert _add(ledger, category="Corners").category == FootballCategory.CORNERS

    def test_category_dropped_for_other_sport(self, ledger):
        assert _add(ledger, sport="Tennis", category="Corners").category is None

    def test_description_stripped(self, ledger):
        assert _add(ledger, "  Ashes top bat  ").description == "Ashes top bat"

    @pytest.mark.parametrize("kwargs", [
        {"description": "   "},
        {"stake": "0"},
        {"stake": "-1"},
        {"stake": "abc"},
        {"odds_decimal": "1"},
        {"odds_decimal": "0.5"},
        {"return_override": "-2"},
        {"date": "01/06/2024"},
    ])
    def test_rejects_invalid(self, ledger, kwargs):
        params = dict(description="ok")
        params.update(kwargs)
        with pytest.raises(BetValidationError):
            _add(ledger, **params)
        assert len(ledger) == 0

    def test_validation_error_is_value_error(self, ledger):
        with pytest.raises(ValueError):
            _add(ledger, stake="0")


# ---------------------------------------------------------------------------
# edit_bet / settle_bet
# ---------------------------------------------------------------------------

class TestEditBet:

    def test_settle_stamps_settled_at(self, ledger):
        bet = _add(ledger)
        won = ledger.settle_bet(bet.id, "Won")
        assert won.status == BetStatus.WON
        assert won.settled_at
        assert ledger.get(bet.id) == won

    def test_back_to_pending_clears_settled_at(self, ledger):
        bet = _add(ledger, status="Lost")
        reopened = ledger.edit_bet(bet.id, status="Pending")
        assert reopened.settled_at is None

    def test_won_to_lost_keeps_settled_at(self, ledger):
        bet = _add(ledger, status="Won")
        lost = ledger.edit_bet(bet.id, status="Lost")
        assert lost.settled_at == bet.settled_at

    def test_settle_with_cash_out(self, ledger):
        bet = _add(ledger)
        settled = ledger.settle_bet(bet.id, BetStatus.WON, return_override="3.2")
        assert settled.return_override == Decimal("3.20")

    def test_settle_requires_terminal_status(self, ledger):
        bet = _add(ledger)
        with pytest.raises(BetValidationError):
            ledger.settle_bet(bet.id, "Pending")

    def test_clear_override(self, ledger):
        bet = _add(ledger, status="Won", return_override="1")
        assert ledger.edit_bet(bet.id, return_override=None).return_override is None

    def test_id_and_created_at_immutable(self, ledger):
        bet = _add(ledger)
        with pytest.raises(BetValidationError):
            ledger.edit_bet(bet.id, id="other")
        with pytest.raises(BetValidationError):
            ledger.edit_bet(bet.id, created_at="2000-01-01")
        edited = ledger.edit_bet(bet.id, description="renamed")
        assert (edited.id, edited.created_at) == (bet.id, bet.created_at)

    def test_invalid_edit_leaves_record(self, ledger):
        bet = _add(ledger)
        with pytest.raises(BetValidationError):
            ledger.edit_bet(bet.id, odds_decimal="1.0")
        assert ledger.get(bet.id) == bet

    def test_switching_sport_drops_category(self, ledger):
        bet = _add(ledger, category="Goals")
        assert ledger.edit_bet(bet.id, sport="Cricket").category is None

    def test_unknown_id(self, ledger):
        with pytest.raises(BetValidationError):
            ledger.edit_bet("missing", description="x")


# ---------------------------------------------------------------------------
# delete / undo
# ---------------------------------------------------------------------------

class TestDeleteUndo:

    def test_undo_restores_identical_record_at_top(self, ledger):
        keep = _add(ledger, "keep")
        gone = _add(ledger, "gone", status="Won", category="Goals", return_override="9")
        newer = _add(ledger, "newer")
        ledger.delete_bet(gone.id)
        assert [b.id for b in ledger.bets] == [newer.id, keep.id]

        restored = ledger.undo_delete()
        assert restored == gone
        assert ledger.bets[0] == gone
        assert len(ledger) == 3

    def test_undo_within_window(self, ledger, clock):
        bet = _add(ledger)
        ledger.delete_bet(bet.id)
        clock.advance(UNDO_WINDOW_SECONDS - 0.5)
        assert ledger.pending_undo == bet
        assert ledger.undo_seconds_left() == pytest.approx(0.5)
        assert ledger.undo_delete() == bet

    def test_window_expires(self, ledger, clock):
        bet = _add(ledger)
        ledger.delete_bet(bet.id)
        clock.advance(UNDO_WINDOW_SECONDS + 0.1)
        assert ledger.pending_undo is None
        assert ledger.undo_seconds_left() == 0.0
        assert ledger.undo_delete() is None
        assert len(ledger) == 0

    def test_second_delete_forfeits_first(self, ledger, clock):
        a = _add(ledger, "a")
        b = _add(ledger, "b")
        ledger.delete_bet(a.id)
        clock.advance(2)
        ledger.delete_bet(b.id)
        assert ledger.undo_delete() == b
        assert ledger.undo_delete() is None
        assert [x.id for x in ledger.bets] == [b.id]

    def test_second_delete_restarts_window(self, ledger, clock):
        a = _add(ledger, "a")
        b = _add(ledger, "b")
        ledger.delete_bet(a.id)
        clock.advance(8)
        ledger.delete_bet(b.id)
        clock.advance(8)
        assert ledger.pending_undo == b

    def test_pending_only_between_delete_and_expiry(self, ledger, clock):
        bet = _add(ledger)
        assert ledger.pending_undo is None
        ledger.delete_bet(bet.id)
        assert ledger.pending_undo == bet
        clock.advance(UNDO_WINDOW_SECONDS + 0.01)
        assert ledger.pending_undo is None

    def test_nothing_to_undo(self, ledger):
        assert ledger.pending_undo is None
        assert ledger.undo_delete() is None

    def test_delete_unknown_id(self, ledger):
        with pytest.raises(BetValidationError):
            ledger.delete_bet("missing")

    def test_delete_and_undo_persist(self, db, clock):
        ledger = Ledger.load(db, clock=clock, seed_examples=False)
        bet = _add(ledger)
        ledger.delete_bet(bet.id)
        assert store.load_bets(db).value == []
        ledger.undo_delete()
        assert [b.id for b in store.load_bets(db).value] == [bet.id]


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------

class TestUpdateSettings:

    def test_target_profit(self, ledger):
        assert ledger.update_settings(target_profit="250").target_profit == Decimal("250")

    def test_target_floor_is_one(self, ledger):
        assert ledger.update_settings(target_profit="0").target_profit == Decimal("1")
        assert ledger.update_settings(target_profit="-40").target_profit == Decimal("1")

    def test_target_garbage_falls_back(self, ledger):
        assert ledger.update_settings(target_profit="abc").target_profit == Decimal("100")

    def test_bankroll(self, ledger):
        assert ledger.update_settings(starting_bankroll="20").starting_bankroll == Decimal("20")
        assert ledger.update_settings(starting_bankroll="x").starting_bankroll == Decimal("0")
        assert ledger.update_settings(starting_bankroll=None).starting_bankroll is None

    def test_theme(self, ledger):
        assert ledger.update_settings(theme="light").theme == "light"
        with pytest.raises(BetValidationError):
            ledger.update_settings(theme="neon")

    def test_untouched_fields_kept(self, ledger):
        ledger.update_settings(theme="light")
        state = ledger.update_settings(target_profit="50")
        assert state.theme == "light"
        assert state.starting_bankroll == Decimal("5")

    def test_settings_persist(self, db):
        ledger = Ledger.load(db, seed_examples=False)
        ledger.update_settings(target_profit="75", theme="light")
        reloaded = Ledger.load(db)
        assert reloaded.state.target_profit == Decimal("75")
        assert reloaded.state.theme == "light"
