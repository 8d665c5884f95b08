"""
core/store.py — Key-value persistence
======================================
SQLite-backed store for the two JSON blobs the app persists:

  rb.state   AppState        {targetProfit, startingBankroll?, theme}
  rb.bets    list[Bet]       the full ledger

Schema: kv_store table
  key         TEXT PRIMARY KEY
  value       TEXT NOT NULL     -- JSON document
  updated_at  TEXT NOT NULL     -- ISO 8601 UTC

load() never raises for bad data: it returns a LoadResult carrying either
the decoded value or the reason it could not be read. The caller decides the
fallback (core/ledger.py substitutes defaults). Writes are a single upsert,
so a reader never observes half a blob.

DB path: data/roller_bets.db, overridable via ROLLER_BETS_DB_PATH.

DO NOT add Streamlit imports to this file.
"""

import json
import logging
import os
import sqlite3
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional

from core.models import AppState, Bet

logger = logging.getLogger(__name__)

_DEFAULT_DB_PATH = os.path.join(
    os.path.dirname(__file__), "..", "data", "roller_bets.db"
)

STATE_KEY = "rb.state"
BETS_KEY = "rb.bets"

MISSING = "missing"

_SCHEMA_SQL = """
PRAGMA journal_mode = WAL;
PRAGMA synchronous = NORMAL;

CREATE TABLE IF NOT EXISTS kv_store (
    key         TEXT PRIMARY KEY,
    value       TEXT NOT NULL,
    updated_at  TEXT NOT NULL
);
"""


# ---------------------------------------------------------------------------
# Result type
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class LoadResult:
    """Ok(value) or Err(reason). reason == MISSING when the key is absent."""
    value: Any = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def missing(self) -> bool:
        return self.error == MISSING

    @staticmethod
    def success(value: Any) -> "LoadResult":
        return LoadResult(value=value)

    @staticmethod
    def failure(reason: str) -> "LoadResult":
        return LoadResult(error=reason)


# ---------------------------------------------------------------------------
# Connection management
# ---------------------------------------------------------------------------

def _db_path() -> str:
    return os.environ.get("ROLLER_BETS_DB_PATH", _DEFAULT_DB_PATH)


def get_connection(db_path: Optional[str] = None) -> sqlite3.Connection:
    path = db_path or _db_path()
    os.makedirs(os.path.dirname(os.path.abspath(path)), exist_ok=True)
    conn = sqlite3.connect(path, check_same_thread=False)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode = WAL")
    conn.execute("PRAGMA synchronous = NORMAL")
    return conn


def init_store(db_path: Optional[str] = None) -> None:
    """Create the kv_store table. Safe to call multiple times."""
    conn = get_connection(db_path)
    try:
        conn.executescript(_SCHEMA_SQL)
        conn.commit()
        logger.info("Store initialized: %s", db_path or _db_path())
    except sqlite3.Error as exc:
        logger.error("Store init failed: %s", exc)
        raise
    finally:
        conn.close()


# ---------------------------------------------------------------------------
# Raw load / save
# ---------------------------------------------------------------------------

def load(key: str, db_path: Optional[str] = None) -> LoadResult:
    """
    Read and decode one JSON blob.

    Returns LoadResult.failure(MISSING) if the key (or the table) does not
    exist, and LoadResult.failure("malformed: ...") if the stored text is
    not valid JSON.
    """
    conn = get_connection(db_path)
    try:
        row = conn.execute(
            "SELECT value FROM kv_store WHERE key = ?", (key,)
        ).fetchone()
    except sqlite3.OperationalError:
        # no table yet, nothing was ever saved
        return LoadResult.failure(MISSING)
    finally:
        conn.close()

    if row is None:
        return LoadResult.failure(MISSING)
    try:
        return LoadResult.success(json.loads(row["value"]))
    except (json.JSONDecodeError, TypeError) as exc:
        return LoadResult.failure(f"malformed: {exc}")


def save(key: str, value: Any, db_path: Optional[str] = None) -> None:
    """Encode value as JSON and upsert it under key."""
    payload = json.dumps(value)
    now = datetime.now(timezone.utc).isoformat()
    conn = get_connection(db_path)
    try:
        conn.executescript(_SCHEMA_SQL)
        conn.execute(
            """
            INSERT INTO kv_store (key, value, updated_at) VALUES (?, ?, ?)
            ON CONFLICT(key) DO UPDATE SET
                value = excluded.value,
                updated_at = excluded.updated_at
            """,
            (key, payload, now),
        )
        conn.commit()
    except sqlite3.Error as exc:
        logger.error("save(%s) failed: %s", key, exc)
        raise
    finally:
        conn.close()


# ---------------------------------------------------------------------------
# Typed load / save
# ---------------------------------------------------------------------------

def load_app_state(db_path: Optional[str] = None) -> LoadResult:
    """LoadResult wrapping an AppState."""
    result = load(STATE_KEY, db_path)
    if not result.ok:
        return result
    try:
        return LoadResult.success(AppState.from_dict(result.value))
    except (ValueError, TypeError) as exc:
        return LoadResult.failure(f"malformed: {exc}")


def load_bets(db_path: Optional[str] = None) -> LoadResult:
    """
    LoadResult wrapping list[Bet].

    A blob that is not a JSON array is malformed. Inside a valid array,
    entries that cannot be parsed are skipped with a warning so one bad
    record does not hide the rest of the ledger.
    """
    result = load(BETS_KEY, db_path)
    if not result.ok:
        return result
    if not isinstance(result.value, list):
        return LoadResult.failure("malformed: bets blob is not a list")

    bets = []
    for idx, raw in enumerate(result.value):
        try:
            bets.append(Bet.from_dict(raw))
        except (KeyError, ValueError, TypeError) as exc:
            logger.warning("Skipping malformed bet #%d: %s", idx, exc)
    return LoadResult.success(bets)


def save_app_state(state: AppState, db_path: Optional[str] = None) -> None:
    save(STATE_KEY, state.to_dict(), db_path)


def save_bets(bets: list[Bet], db_path: Optional[str] = None) -> None:
    save(BETS_KEY, [b.to_dict() for b in bets], db_path)
