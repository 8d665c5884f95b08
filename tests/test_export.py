"""
tests/test_export.py — Export formatter tests

Tests cover:
- bets_to_csv: header, category column, blank return/profit while Pending,
  comma and newline scrubbing, no trailing newline
- snapshot_to_json: document shape, camelCase bet keys
- export_filename
- summary_text: totals, goal line, three most recent bets
- format_gbp / format_pct
"""

import json
from datetime import date
from decimal import Decimal

from core.export import (
    CSV_HEADERS,
    bets_to_csv,
    export_filename,
    format_gbp,
    format_pct,
    snapshot_to_json,
    summary_text,
)
from core.models import UNCATEGORISED, AppState, Bet, BetStatus, FootballCategory, Sport


def _bet(bet_id="b1", desc="Villa corners", sport=Sport.FOOTBALL, status=BetStatus.WON,
         stake="10", odds="2.5", category=None, override=None) -> Bet:
    return Bet(
        id=bet_id,
        date="2024-05-01",
        description=desc,
        sport=sport,
        stake=Decimal(stake),
        odds_decimal=Decimal(odds),
        status=status,
        category=category,
        return_override=None if override is None else Decimal(override),
    )


# ---------------------------------------------------------------------------
# CSV
# ---------------------------------------------------------------------------

class TestBetsToCsv:

    def test_header_only_for_empty(self):
        assert bets_to_csv([]) == ",".join(CSV_HEADERS)

    def test_header_columns(self):
        assert CSV_HEADERS == [
            "date", "description", "sport", "category", "stake",
            "oddsDecimal", "status", "return", "profit",
        ]

    def test_won_row(self):
        out = bets_to_csv([_bet(category=FootballCategory.CORNERS)])
        assert out.splitlines()[1] == "2024-05-01,Villa corners,Football,Corners,10.00,2.50,Won,25.00,15.00"

    def test_pending_row_blank_money(self):
        row = bets_to_csv([_bet(status=BetStatus.PENDING)]).splitlines()[1]
        assert row.endswith(",Pending,,")

    def test_football_without_category_is_uncategorised(self):
        row = bets_to_csv([_bet()]).splitlines()[1].split(",")
        assert row[3] == UNCATEGORISED

    def test_other_sport_category_blank(self):
        row = bets_to_csv([_bet(sport=Sport.TENNIS)]).splitlines()[1].split(",")
        assert row[3] == ""

    def test_description_scrubbed(self):
        out = bets_to_csv([_bet(desc="Home, away\nand draw")])
        lines = out.split("\n")
        assert len(lines) == 2
        assert lines[1].split(",")[1] == "Home  away and draw"

    def test_override_in_return(self):
        row = bets_to_csv([_bet(override="7.5")]).splitlines()[1].split(",")
        assert row[7:] == ["7.50", "-2.50"]

    def test_no_trailing_newline(self):
        assert not bets_to_csv([_bet(), _bet("b2")]).endswith("\n")


# ---------------------------------------------------------------------------
# JSON
# ---------------------------------------------------------------------------

class TestSnapshotToJson:

    def test_shape(self):
        doc = json.loads(snapshot_to_json(AppState(), [_bet()], exported_at="2024-05-01T00:00:00+00:00"))
        assert doc["exportedAt"] == "2024-05-01T00:00:00+00:00"
        assert doc["state"] == {"targetProfit": 100.0, "theme": "dark", "startingBankroll": 5.0}
        assert doc["bets"][0]["oddsDecimal"] == 2.5
        assert doc["bets"][0]["id"] == "b1"

    def test_exported_at_defaults_to_now(self):
        doc = json.loads(snapshot_to_json(AppState(), []))
        assert doc["exportedAt"]
        assert doc["bets"] == []


class TestExportFilename:

    def test_csv(self):
        assert export_filename("csv", date(2024, 5, 1)) == "roller-bets-2024-05-01.csv"

    def test_json(self):
        assert export_filename("json", date(2024, 12, 31)) == "roller-bets-2024-12-31.json"


# ---------------------------------------------------------------------------
# Summary
# ---------------------------------------------------------------------------

class TestSummaryText:

    def test_totals_and_goal(self):
        text = summary_text([_bet()], AppState(target_profit=Decimal("100")))
        assert "Total staked: £10.00" in text
        assert "Total returned: £25.00" in text
        assert "Profit: £15.00" in text
        assert "Win rate: 100%" in text
        assert "Goal progress: 15% (£15.00 of £100.00)" in text

    def test_goal_floors_negative_profit(self):
        text = summary_text([_bet(status=BetStatus.LOST)], AppState())
        assert "Goal progress: 0% (£0.00 of £100.00)" in text

    def test_three_most_recent_in_list_order(self):
        bets = [_bet(f"b{i}", desc=f"Bet {i}") for i in range(5)]
        recent = summary_text(bets, AppState()).split("Recent bets:\n")[1].splitlines()
        assert len(recent) == 3
        assert [line.split(" ")[2] for line in recent] == ["0", "1", "2"]

    def test_pending_return_na(self):
        text = summary_text([_bet(status=BetStatus.PENDING)], AppState())
        assert text.endswith("Status Pending Return N/A")


# ---------------------------------------------------------------------------
# Display formatting
# ---------------------------------------------------------------------------

class TestFormatting:

    def test_gbp_thousands(self):
        assert format_gbp(Decimal("1234.5")) == "£1,234.50"

    def test_gbp_negative(self):
        assert format_gbp(Decimal("-3")) == "-£3.00"

    def test_gbp_rounds_half_up(self):
        assert format_gbp(Decimal("0.005")) == "£0.01"

    def test_pct_whole(self):
        assert format_pct(Decimal("0.555")) == "56%"
        assert format_pct(Decimal(0)) == "0%"

    def test_pct_places(self):
        assert format_pct(Decimal("0.05"), places=1) == "5.0%"
        assert format_pct(Decimal("-0.125"), places=1) == "-12.5%"
