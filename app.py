"""
app.py — Roller Bets Tracker, Streamlit entry point

Multi-page navigation via st.navigation() (Streamlit 1.36+).
The Ledger is loaded once per browser session and kept in st.session_state;
every page reads the same instance, so edits on one page show on the other.

Design principles:
- st.html() for custom cards (not st.markdown, style tags are sandboxed)
- Inline styles only, single accent colour
- Pure math in core/, rendering in pages/

Run: streamlit run app.py
"""

import logging
import sys
from pathlib import Path

import streamlit as st

# ---------------------------------------------------------------------------
# Path setup: allow 'from core.xxx import' regardless of cwd
# ---------------------------------------------------------------------------
ROOT = Path(__file__).parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from core.aggregations import compute_totals, progress_ratio
from core.export import format_gbp, format_pct
from core.ledger import Ledger

# ---------------------------------------------------------------------------
# Logging setup: write to logs/error.log
# ---------------------------------------------------------------------------
LOG_DIR = ROOT / "logs"
LOG_DIR.mkdir(exist_ok=True)

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
    handlers=[
        logging.FileHandler(LOG_DIR / "error.log"),
        logging.StreamHandler(),
    ],
)
logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Page config: must be first Streamlit call
# ---------------------------------------------------------------------------
st.set_page_config(
    page_title="Roller Bets Tracker",
    page_icon="🎯",
    layout="wide",
    initial_sidebar_state="expanded",
    menu_items={
        "Get Help": None,
        "Report a bug": None,
        "About": "Roller Bets Tracker. Local only, fast entry, clean stats.",
    },
)


# ---------------------------------------------------------------------------
# Ledger initialization, guarded against Streamlit reruns
# ---------------------------------------------------------------------------
def _init_ledger() -> Ledger:
    """
    Load the ledger exactly once per session.
    Load failures never surface here: core.store reports them as LoadResult
    errors and Ledger.load() falls back to defaults.
    """
    ledger = st.session_state.get("ledger")
    if ledger is not None:
        return ledger
    ledger = Ledger.load()
    st.session_state["ledger"] = ledger
    logger.info("Ledger loaded: %d bets", len(ledger))
    return ledger


ledger = _init_ledger()
ACCENT = "#6366f1"

# ---------------------------------------------------------------------------
# Global CSS injection
# ---------------------------------------------------------------------------
_sidebar_bg = "#0f172a" if ledger.state.theme == "dark" else "#e2e8f0"
st.markdown(
    f"""
    <style>
    [data-testid="stSidebar"] {{
        background-color: {_sidebar_bg};
    }}
    .block-container {{
        padding-top: 1.5rem;
        padding-bottom: 2rem;
    }}
    [data-testid="stMetricValue"] {{
        font-size: 1.5rem !important;
        font-weight: 600 !important;
    }}
    footer {{ visibility: hidden; }}
    </style>
    """,
    unsafe_allow_html=True,
)

# ---------------------------------------------------------------------------
# Sidebar: goal progress + settings
# ---------------------------------------------------------------------------
with st.sidebar:
    st.html(
        f"""
        <div style="
            padding: 12px 0 8px 0;
            border-bottom: 1px solid #334155;
            margin-bottom: 12px;
        ">
            <span style="font-size:1.1rem; font-weight:700; color:{ACCENT};">
                🎯 ROLLER BETS
            </span>
        </div>
        """
    )

    # Goal progress always uses the full ledger, never a page filter.
    _totals = compute_totals(ledger.bets)
    _progress = progress_ratio(_totals.profit, ledger.state.target_profit)
    st.html(
        f"""
        <div style="
            background:#0f172a; border:1px solid #1e293b;
            border-radius:8px; padding:10px 12px; margin-bottom:12px;
        ">
            <div style="display:flex; justify-content:space-between;
                        font-size:0.7rem; color:#94a3b8; margin-bottom:6px;">
                <span>GOAL PROGRESS</span><span>{format_pct(_progress)}</span>
            </div>
            <div style="background:#1e293b; border-radius:4px; height:6px; overflow:hidden;">
                <div style="background:{ACCENT}; height:6px; width:{float(_progress) * 100:.1f}%;"></div>
            </div>
            <div style="font-size:0.75rem; color:#cbd5e1; margin-top:6px;">
                {format_gbp(max(_totals.profit, 0))} of {format_gbp(ledger.state.target_profit)}
            </div>
        </div>
        """
    )

    theme = st.radio(
        "Theme", ["dark", "light"],
        index=0 if ledger.state.theme == "dark" else 1,
        horizontal=True, key="sb_theme",
    )
    if theme != ledger.state.theme:
        ledger.update_settings(theme=theme)
        st.rerun()

    st.markdown("---")
    st.markdown("Data is saved locally on this machine only.")

# ---------------------------------------------------------------------------
# Multi-page navigation (st.navigation, Streamlit 1.36+)
# ---------------------------------------------------------------------------
pages = [
    st.Page("pages/01_tracker.py",   title="Tracker",  icon="📋", default=True),
    st.Page("pages/02_insights.py",  title="Insights", icon="📊"),
]

pg = st.navigation(pages)
pg.run()
