"""
pages/02_insights.py — Insights Tab

Analytics over the filtered ledger:
- Key metrics (settled, hit rate, ROI, avg odds, stake stats, pending exposure)
- Monthly P&L with month drill-down
- Sport and Football category breakdowns
- Odds band calibration (observed win rate vs implied probability)
- Weekday performance
- CSV / JSON export

Sport and date filters share the sport / from / to query parameters with
the Tracker tab. Every reducer is recomputed on each rerun from the
filtered bet list; nothing is cached.
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
    monthly_pnl,
    odds_band_calibration,
    performance_by_category,
    performance_by_sport,
    performance_by_weekday,
)
from core.export import (
    bets_to_csv,
    export_filename,
    format_gbp,
    format_pct,
    snapshot_to_json,
)
from core.filters import (
    ALL,
    FilterCriteria,
    criteria_from_params,
    criteria_to_params,
    filter_bets,
    month_bounds,
)
from core.ledger import Ledger
from core.models import Sport

SPORTS = [s.value for s in Sport]
GREEN = "#10b981"
RED = "#f43f5e"
ACCENT = "#6366f1"
MUTED = "#64748b"


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
        height=260,
        showlegend=False,
    )


def _section_header(title: str, caption: str = "") -> None:
    st.html(
        f"""
        <div style="margin:18px 0 6px 0;">
            <span style="font-size:0.8rem; font-weight:700; letter-spacing:0.08em;
                         color:{ACCENT};">{title.upper()}</span>
            <span style="font-size:0.75rem; color:{MUTED}; margin-left:8px;">{caption}</span>
        </div>
        """
    )


def _no_data_card(msg: str = "No data yet") -> None:
    st.html(f"""
    <div style="
        border:1px solid #334155; border-radius:6px;
        padding:20px; text-align:center; color:{MUTED}; font-size:0.82rem;
    ">{msg}</div>
    """)


def _group_frame(rows, key_label: str) -> pd.DataFrame:
    return pd.DataFrame([
        {
            key_label: r.key,
            "Bets": r.bets,
            "Staked": format_gbp(r.staked),
            "Returned": format_gbp(r.returned),
            "Profit": format_gbp(r.profit),
            "ROI": format_pct(r.roi),
            "Win rate": format_pct(r.win_rate),
        }
        for r in rows
    ])


# ---------------------------------------------------------------------------
# Chart builders
# ---------------------------------------------------------------------------
def _build_band_chart(bands, theme: str):
    labels = [b.band for b in bands]
    fig = go.Figure()
    fig.add_trace(go.Bar(
        x=labels,
        y=[float(b.win_rate) * 100 for b in bands],
        name="Win rate",
        marker_color=ACCENT,
        hovertemplate="%{x}<br>Win rate %{y:.1f}%<extra></extra>",
    ))
    fig.add_trace(go.Scatter(
        x=labels,
        y=[float(b.implied) * 100 for b in bands],
        name="Implied",
        mode="markers",
        marker=dict(size=10, color="#f59e0b", symbol="line-ew-open", line=dict(width=3)),
        hovertemplate="%{x}<br>Implied %{y:.1f}%<extra></extra>",
    ))
    layout = _plotly_base(theme)
    layout["showlegend"] = True
    fig.update_layout(**layout)
    fig.update_yaxes(ticksuffix="%")
    return fig


def _build_weekday_chart(rows, theme: str):
    fig = go.Figure(go.Bar(
        x=[r.key for r in rows],
        y=[float(r.profit) for r in rows],
        marker_color=[GREEN if r.profit >= 0 else RED for r in rows],
        hovertemplate="%{x}<br>£%{y:,.2f}<extra></extra>",
    ))
    fig.update_layout(**_plotly_base(theme))
    fig.update_yaxes(tickprefix="£")
    return fig


# ---------------------------------------------------------------------------
# Filters (synced with URL)
# ---------------------------------------------------------------------------
ledger = _ledger()
theme = ledger.state.theme

st.title("📊 Insights")
st.caption("Filtered by sport and date. Links keep the same filters as the Tracker tab.")

# A pending drill-down or clear is applied before the widgets are built,
# since widget state cannot change after instantiation.
_pending = st.session_state.pop("ins_pending_filter", None)
if _pending is not None:
    st.session_state["ins_sport"] = _pending.get("sport", ALL)
    st.session_state["ins_from"] = (
        date.fromisoformat(_pending["from"]) if _pending.get("from") else None
    )
    st.session_state["ins_to"] = (
        date.fromisoformat(_pending["to"]) if _pending.get("to") else None
    )

seed = criteria_from_params(st.query_params)
if "ins_sport" not in st.session_state:
    st.session_state["ins_sport"] = seed.sport.value if seed.sport else ALL
    st.session_state["ins_from"] = date.fromisoformat(seed.date_from) if seed.date_from else None
    st.session_state["ins_to"] = date.fromisoformat(seed.date_to) if seed.date_to else None

f1, f2, f3, f4 = st.columns([2, 2, 2, 1])
with f1:
    f_sport = st.selectbox("Sport", [ALL] + SPORTS, key="ins_sport")
with f2:
    f_from = st.date_input("From", key="ins_from")
with f3:
    f_to = st.date_input("To", key="ins_to")
with f4:
    st.write("")
    if st.button("Clear", use_container_width=True):
        st.session_state["ins_pending_filter"] = {}
        st.query_params.clear()
        st.rerun()

criteria = FilterCriteria.build(sport=f_sport, date_from=f_from, date_to=f_to)
params = criteria_to_params(criteria)
# Status is a Tracker-only filter; carry it through untouched.
if seed.status is not None:
    params["status"] = seed.status.value
if params != criteria_to_params(seed):
    st.query_params.from_dict(params)

bets = filter_bets(ledger.bets, criteria)

# ---------------------------------------------------------------------------
# Key metrics
# ---------------------------------------------------------------------------
totals = compute_totals(bets)
_section_header("Key metrics")

m1, m2, m3, m4 = st.columns(4)
with m1:
    st.metric("Settled bets", f"{totals.settled}", help=f"{totals.wins} won, {totals.losses} lost")
with m2:
    st.metric("Hit rate", format_pct(totals.hit_rate, places=1))
with m3:
    st.metric("ROI", format_pct(totals.roi, places=1))
with m4:
    st.metric("Avg odds", f"{totals.avg_odds:.2f}")

m5, m6, m7, m8 = st.columns(4)
with m5:
    st.metric("Avg stake", format_gbp(totals.avg_stake))
with m6:
    st.metric("Median stake", format_gbp(totals.median_stake))
with m7:
    st.metric("Profit per bet", format_gbp(totals.profit_per_bet))
with m8:
    st.metric(
        "Pending exposure", format_gbp(totals.pending_stake),
        help=f"{totals.pending} pending, potential return "
             f"{format_gbp(totals.pending_potential_return)}",
    )

# ---------------------------------------------------------------------------
# Monthly P&L
# ---------------------------------------------------------------------------
_section_header("Monthly P&L", "settled bets, pick a month to drill in")
months = monthly_pnl(bets)
if not months:
    _no_data_card()
else:
    st.dataframe(
        pd.DataFrame([
            {
                "Month": m.month,
                "Bets": m.bets,
                "Staked": format_gbp(m.staked),
                "Returned": format_gbp(m.returned),
                "Profit": format_gbp(m.profit),
            }
            for m in months
        ]),
        use_container_width=True,
        hide_index=True,
    )
    d1, d2 = st.columns([3, 1])
    with d1:
        drill = st.selectbox(
            "Month", [m.month for m in months], index=len(months) - 1,
            key="ins_drill", label_visibility="collapsed",
        )
    with d2:
        if st.button("Show month", use_container_width=True):
            start, end = month_bounds(drill)
            st.session_state["ins_pending_filter"] = {
                "sport": f_sport, "from": start, "to": end,
            }
            st.rerun()

# ---------------------------------------------------------------------------
# Sport / category
# ---------------------------------------------------------------------------
c1, c2 = st.columns(2)
with c1:
    _section_header("By sport")
    sport_rows = performance_by_sport(bets)
    if not sport_rows:
        _no_data_card()
    else:
        st.dataframe(_group_frame(sport_rows, "Sport"), use_container_width=True, hide_index=True)
with c2:
    _section_header("Football categories")
    cat_rows = performance_by_category(bets)
    if not cat_rows:
        _no_data_card("No football bets yet")
    else:
        st.dataframe(_group_frame(cat_rows, "Category"), use_container_width=True, hide_index=True)

# ---------------------------------------------------------------------------
# Odds bands
# ---------------------------------------------------------------------------
_section_header("Odds bands", "win rate vs implied probability, settled bets")
bands = odds_band_calibration(bets)
st.dataframe(
    pd.DataFrame([
        {
            "Band": b.band,
            "Bets": b.bets,
            "Avg odds": f"{b.avg_odds:.2f}",
            "Implied": format_pct(b.implied, places=1),
            "Win rate": format_pct(b.win_rate, places=1),
            "Edge": format_pct(b.edge, places=1),
            "ROI": format_pct(b.roi, places=1),
            "Profit": format_gbp(b.profit),
        }
        for b in bands
    ]),
    use_container_width=True,
    hide_index=True,
)
if any(b.bets for b in bands):
    st.plotly_chart(_build_band_chart(bands, theme), use_container_width=True,
                    config={"displayModeBar": False})

# ---------------------------------------------------------------------------
# Weekday
# ---------------------------------------------------------------------------
_section_header("Weekday performance", "settled bets by the day the bet was placed")
weekdays = performance_by_weekday(bets)
w1, w2 = st.columns([2, 3])
with w1:
    st.dataframe(
        pd.DataFrame([
            {
                "Day": r.key,
                "Bets": r.settled,
                "Profit": format_gbp(r.profit),
                "ROI": format_pct(r.roi),
                "Win rate": format_pct(r.win_rate),
            }
            for r in weekdays
        ]),
        use_container_width=True,
        hide_index=True,
    )
with w2:
    if totals.settled:
        st.plotly_chart(_build_weekday_chart(weekdays, theme), use_container_width=True,
                        config={"displayModeBar": False})
    else:
        _no_data_card()

# ---------------------------------------------------------------------------
# Export
# ---------------------------------------------------------------------------
_section_header("Export", "current filter for CSV, whole ledger for JSON")
x1, x2, _ = st.columns([1, 1, 3])
with x1:
    st.download_button(
        "Download CSV",
        data=bets_to_csv(bets),
        file_name=export_filename("csv"),
        mime="text/csv",
        use_container_width=True,
    )
with x2:
    st.download_button(
        "Download JSON",
        data=snapshot_to_json(ledger.state, ledger.bets),
        file_name=export_filename("json"),
        mime="application/json",
        use_container_width=True,
    )
