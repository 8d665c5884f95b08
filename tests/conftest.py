"""
tests/conftest.py — shared fixtures

write_raw: stores text in kv_store verbatim (no JSON encoding), for
exercising the malformed-blob fallbacks in core/store.py and core/ledger.py.
"""

from datetime import datetime, timezone

import pytest

from core import store


@pytest.fixture()
def write_raw():
    def _write(key: str, text: str, db_path: str) -> None:
        store.init_store(db_path)
        conn = store.get_connection(db_path)
        try:
            conn.execute(
                "INSERT OR REPLACE INTO kv_store (key, value, updated_at) VALUES (?, ?, ?)",
                (key, text, datetime.now(timezone.utc).isoformat()),
            )
            conn.commit()
        finally:
            conn.close()

    return _write
