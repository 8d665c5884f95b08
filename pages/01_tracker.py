"""
pages/01_tracker.py — Tracker Tab

Full bet lifecycle:
1. Log a bet (Pending by default, or already settled with an optional cash-out value)
2. Edit / settle / delete a bet; a delete can be undone for 10 seconds
3. Headline totals, goal + bankroll settings, cumulative profit chart
4. Football category table and the filtered ledger table

Filters (sport, status, from, to) are mirrored into the URL query string so a
filtered view can be bookmarked and shared with the Insights tab.

Design:
- st.form for entry so a half-typed bet never reruns the page
- st.dataframe for the ledger, Plotly for the chart
- Totals on this tab cover the whole ledger; the category table and the
  ledger table follow the filters
"""

import sys
from datetime import date
from pathlib import Path

import pandas as pd
import plotly.graph_objects as go
import streamlit as st

ROOT = Path(__file__).parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from core.aggregations import (
    compute_totals,
    cumulative_profit,
    performance_by_category,
    progress_ratio,
)
from core.export import format_gbp, format_pct, summary_text
from core.filters import (
    ALL,
    FilterCriteria,
    criteria_from_params,
    criteria_to_params,
    filter_bets,
    sort_by_date_desc,
)
from core.ledger import UNDO_WINDOW_SECONDS, BetValidationError, Ledger
from core.ledger_math import default_return, effective_return, parse_num
from core.models import BetStatus, FootballCategory, Sport

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------
SPORTS = [s.value for s in Sport]
STATUSES = [s.value for s in BetStatus]
CATEGORIES = [c.value for c in FootballCategory]
GREEN = "#10b981"
RED = "#f43f5e"


def _ledger() -> Ledger:
    ledger = st.session_state.get("ledger")
    if ledger is None:
        ledger = Ledger.load()
        st.session_state["ledger"] = ledger
    return ledger


def _plotly_base(theme: str) -> dict:
    dark = theme == "dark"
    return dict(
        template="plotly_dark" if dark else "plotly_white",
        paper_bgcolor="#020617" if dark else "#ffffff",
        plot_bgcolor="#0f172a" if dark else "#f8fafc",
        margin=dict(l=50, r=20, t=30, b=40),
        height=240,
        showlegend=False,
    )


# ---------------------------------------------------------------------------
# Chart builder
# ---------------------------------------------------------------------------
def _build_cumulative_chart(bets, theme: str):
    """Cumulative profit line by settled date; None when nothing is settled."""
    points = cumulative_profit(bets)
    if not points:
        return None

    ys = [float(p.value) for p in points]
    final_color = GREEN if ys[-1] >= 0 else RED

    fig = go.Figure()
    fig.add_trace(go.Scatter(
        x=list(range(len(points))),
        y=ys,
        customdata=[p.date for p in points],
        mode="lines+markers",
        line=dict(color=final_color, width=2),
        marker=dict(size=4, color=final_color),
        hovertemplate="%{customdata}<br>£%{y:,.2f}<extra></extra>",
    ))
    fig.add_hline(y=0, line_color="#334155", line_width=1)
    fig.update_layout(**_plotly_base(theme))
    fig.update_xaxes(showticklabels=False)
    fig.update_yaxes(tickprefix="£")
    return fig


# ---------------------------------------------------------------------------
# Undo banner, refreshed every second until the window closes.
# Rendered only while an undo is pending.
# ---------------------------------------------------------------------------
@st.fragment(run_every="1s")
def _undo_banner() -> None:
    ledger = _ledger()
    deleted = ledger.pending_undo
    if deleted is None:
        # window closed: a full rerun drops the fragment and its timer
        st.rerun()
    left = ledger.undo_seconds_left()
    c1, c2 = st.columns([5, 1])
    with c1:
        st.info(f"Bet deleted: {deleted.description} ({left:.0f}s to undo)")
    with c2:
        if st.button("Undo", key="undo_delete", use_container_width=True):
            ledger.undo_delete()
            st.rerun()


# ---------------------------------------------------------------------------
# Page
# ---------------------------------------------------------------------------
ledger = _ledger()
theme = ledger.state.theme

head_l, head_r = st.columns([4, 1])
with head_l:
    st.title("📋 Roller Bets Tracker")
    st.caption("Local only, fast entry, clean stats.")
with head_r:
    if st.button("Copy summary", use_container_width=True):
        st.session_state["show_summary"] = True
        st.toast("Summary ready, use the copy icon on the block below")

if st.session_state.pop("show_summary", False):
    st.code(summary_text(ledger.bets, ledger.state), language=None)

if ledger.pending_undo is not None:
    _undo_banner()

# --- Add form ---
with st.form("add_bet_form", clear_on_submit=True):
    r1 = st.columns([2, 4, 2, 2])
    with r1[0]:
        bet_date = st.date_input("Date", value=date.today(), key="add_date")
    with r1[1]:
        description = st.text_input("Bet", placeholder="Villa race to 9 corners", key="add_desc")
    with r1[2]:
        sport = st.selectbox("Sport", SPORTS, key="add_sport")
    with r1[3]:
        category = st.selectbox(
            "Category (Football)", CATEGORIES, key="add_category",
            help="Ignored for other sports",
        )

    r2 = st.columns([2, 2, 2, 2, 1])
    with r2[0]:
        stake = st.text_input("Stake (£)", value="5", key="add_stake")
    with r2[1]:
        odds = st.text_input("Odds (decimal)", value="1.50", key="add_odds")
    with r2[2]:
        status = st.selectbox("Status", STATUSES, key="add_status")
    with r2[3]:
        override = st.text_input(
            "Return override (£)", placeholder="optional", key="add_override",
            help="Settled bets only, e.g. a cash-out",
        )
    with r2[4]:
        st.write("")
        submitted = st.form_submit_button("Add", type="primary", use_container_width=True)

    if submitted:
        try:
            ledger.add_bet(
                date=bet_date,
                description=description,
                sport=sport,
                stake=parse_num(stake, 0),
                odds_decimal=parse_num(odds, 0),
                status=status,
                category=category,
                return_override=override if status != BetStatus.PENDING.value else None,
            )
            st.success("Bet added.")
        except BetValidationError as exc:
            st.error(str(exc))

# --- Goal & bankroll ---
totals = compute_totals(ledger.bets)
progress = progress_ratio(totals.profit, ledger.state.target_profit)

g1, g2, g3 = st.columns(3)
with g1:
    target_in = st.number_input(
        "Target profit (£)", min_value=1.0, step=1.0,
        value=float(ledger.state.target_profit), key="target_profit",
    )
    st.caption("Progress tracks net profit. Adjust this to set your goal.")
with g2:
    bankroll_in = st.number_input(
        "Starting bankroll (£)", min_value=0.0, step=1.0,
        value=float(ledger.state.starting_bankroll or 0), key="starting_bankroll",
    )
    st.caption("Optional, for context in stats.")
with g3:
    st.markdown(f"**Goal progress** {format_pct(progress)}")
    st.progress(float(progress))
    st.caption(f"{format_gbp(max(totals.profit, 0))} of {format_gbp(ledger.state.target_profit)}")

if parse_num(target_in, 100) != ledger.state.target_profit or (
    parse_num(bankroll_in, 0) != (ledger.state.starting_bankroll or 0)
):
    ledger.update_settings(target_profit=target_in, starting_bankroll=bankroll_in)
    st.rerun()

# --- Headline totals (whole ledger) ---
s1, s2, s3, s4 = st.columns(4)
with s1:
    st.metric("Total staked", format_gbp(totals.total_staked))
with s2:
    st.metric("Total returned", format_gbp(totals.total_returned))
with s3:
    st.metric("Profit", format_gbp(totals.profit))
with s4:
    st.metric("Win rate", format_pct(totals.hit_rate))

if ledger.state.starting_bankroll:
    st.caption(
        f"Bankroll now: {format_gbp(ledger.state.starting_bankroll + totals.profit)} "
        f"(started {format_gbp(ledger.state.starting_bankroll)})"
    )

# --- Cumulative chart ---
st.subheader("Cumulative profit")
fig = _build_cumulative_chart(ledger.bets, theme)
if fig is None:
    st.caption("No data yet")
else:
    st.plotly_chart(fig, use_container_width=True, config={"displayModeBar": False})

st.markdown("---")

# --- Filters (synced with URL) ---
seed = criteria_from_params(st.query_params)
f1, f2, f3, f4, f5 = st.columns([1, 1, 1, 1, 2])
with f1:
    status_opts = [ALL] + STATUSES
    f_status = st.selectbox(
        "Status", status_opts,
        index=status_opts.index(seed.status.value) if seed.status else 0,
        key="f_status",
    )
with f2:
    sport_opts = [ALL] + SPORTS
    f_sport = st.selectbox(
        "Sport", sport_opts,
        index=sport_opts.index(seed.sport.value) if seed.sport else 0,
        key="f_sport",
    )
with f3:
    f_from = st.date_input(
        "From", value=date.fromisoformat(seed.date_from) if seed.date_from else None,
        key="f_from",
    )
with f4:
    f_to = st.date_input(
        "To", value=date.fromisoformat(seed.date_to) if seed.date_to else None,
        key="f_to",
    )
with f5:
    f_search = st.text_input("Search", placeholder="description, sport or status", key="f_search")

criteria = FilterCriteria.build(
    sport=f_sport, status=f_status, date_from=f_from, date_to=f_to, search=f_search,
)
params = criteria_to_params(criteria)
if params != criteria_to_params(seed):
    st.query_params.from_dict(params)

filtered = sort_by_date_desc(filter_bets(ledger.bets, criteria))

# --- Football categories (filtered) ---
st.subheader("Football categories performance")
st.caption("based on current filters")
cat_rows = performance_by_category(filtered)
if not cat_rows:
    st.caption("No football bets yet")
else:
    st.dataframe(
        pd.DataFrame([
            {
                "Category": r.key,
                "Bets": r.bets,
                "Settled": r.settled,
                "Staked": format_gbp(r.staked),
                "Returned": format_gbp(r.returned),
                "Profit": format_gbp(r.profit),
                "ROI": format_pct(r.roi),
                "Win rate": format_pct(r.win_rate),
            }
            for r in cat_rows
        ]),
        use_container_width=True,
        hide_index=True,
    )

# --- Ledger table ---
st.subheader("Bets")
if not filtered:
    st.caption("No bets match your filter")
else:
    rows = []
    for b in filtered:
        ret = effective_return(b)
        rows.append({
            "Date": b.date,
            "Bet": b.description,
            "Sport": b.sport.value,
            "Category": b.category_key if b.is_football else "N/A",
            "Stake": format_gbp(b.stake),
            "Odds": f"{b.odds_decimal:.2f}",
            "Status": b.status.value,
            "Return": "N/A" if ret is None else format_gbp(ret),
        })
    st.dataframe(
        pd.DataFrame(rows),
        use_container_width=True,
        hide_index=True,
        column_config={
            "Date":     st.column_config.TextColumn("Date", width=95),
            "Bet":      st.column_config.TextColumn("Bet", width=260),
            "Sport":    st.column_config.TextColumn("Sport", width=80),
            "Category": st.column_config.TextColumn("Category", width=110),
            "Stake":    st.column_config.TextColumn("Stake", width=80),
            "Odds":     st.column_config.TextColumn("Odds", width=60),
            "Status":   st.column_config.TextColumn("Status", width=80),
            "Return":   st.column_config.TextColumn("Return", width=90),
        },
    )

    # --- Edit / delete ---
    labels = {b.id: f"{b.date} · {b.description} · {b.status.value}" for b in filtered}
    selected_id = st.selectbox(
        "Edit or delete a bet", list(labels), format_func=labels.get, key="edit_select",
    )
    bet = ledger.get(selected_id)

    with st.form(f"edit_{bet.id}"):
        e1, e2, e3, e4, e5 = st.columns(5)
        with e1:
            e_stake = st.text_input("Stake (£)", value=f"{bet.stake}", key=f"e_stake_{bet.id}")
        with e2:
            e_odds = st.text_input("Odds", value=f"{bet.odds_decimal}", key=f"e_odds_{bet.id}")
        with e3:
            e_status = st.selectbox(
                "Status", STATUSES, index=STATUSES.index(bet.status.value),
                key=f"e_status_{bet.id}",
            )
        with e4:
            e_category = st.selectbox(
                "Category", CATEGORIES,
                index=CATEGORIES.index(bet.category.value) if bet.category else 0,
                disabled=not bet.is_football, key=f"e_category_{bet.id}",
            )
        with e5:
            placeholder = default_return(bet)
            e_override = st.text_input(
                "Return override (£)",
                value="" if bet.return_override is None else f"{bet.return_override}",
                placeholder="" if placeholder is None else f"{placeholder}",
                key=f"e_override_{bet.id}",
            )
        b1, b2, _ = st.columns([1, 1, 4])
        with b1:
            save_clicked = st.form_submit_button("Save", type="primary", use_container_width=True)
        with b2:
            delete_clicked = st.form_submit_button("Delete", use_container_width=True)

    if save_clicked:
        try:
            ledger.edit_bet(
                bet.id,
                stake=parse_num(e_stake, bet.stake),
                odds_decimal=parse_num(e_odds, bet.odds_decimal),
                status=e_status,
                category=e_category if bet.is_football else None,
                return_override=e_override.strip() or None,
            )
            st.rerun()
        except BetValidationError as exc:
            st.error(str(exc))
    elif delete_clicked:
        ledger.delete_bet(bet.id)
        st.toast(f"Bet deleted, undo within {UNDO_WINDOW_SECONDS:.0f}s")
        st.rerun()

st.caption("Made for quick rollers. Data is saved only on this machine.")
