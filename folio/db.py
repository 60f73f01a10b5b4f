"""
folio/db.py  —  SQLite key-value store

Design principles:
  - Single file database (folio.db): easy to back up, no server needed
  - Every asset class owns its own namespace (the storage prefix), so
    "dhan/trades" and "intl/trades" never collide
  - Values are JSON documents; the store knows nothing about their shape
  - Every write is mirrored to a JSON backup file, best effort
  - All SQL uses parameterised queries

Schema
──────
  store    : (prefix, key) → JSON payload, one row per stored collection
  settings : global key → JSON payload (e.g. the market date)
"""

import json
import logging
import sqlite3
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Dict, Optional

from folio.config import DB_FILE, JSON_BACKUP_FILE

logger = logging.getLogger(__name__)

# ── Schema ────────────────────────────────────────────────────────────────────

_SCHEMA = """
PRAGMA journal_mode = WAL;

CREATE TABLE IF NOT EXISTS store (
    prefix     TEXT NOT NULL,
    key        TEXT NOT NULL,
    payload    TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    PRIMARY KEY (prefix, key)
);

CREATE TABLE IF NOT EXISTS settings (
    key        TEXT PRIMARY KEY,
    payload    TEXT NOT NULL,
    updated_at TEXT NOT NULL
);
"""

# ── Connection management ─────────────────────────────────────────────────────

def _connect(path: str) -> sqlite3.Connection:
    conn = sqlite3.connect(path, check_same_thread=False)
    conn.row_factory = sqlite3.Row   # rows behave like dicts
    conn.executescript(_SCHEMA)
    return conn


@contextmanager
def _tx(conn: sqlite3.Connection):
    """Context manager that commits on success, rolls back on error."""
    try:
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise


# ── Database class ────────────────────────────────────────────────────────────

class Database:
    """
    All reads and writes go through this class. The core never touches
    it; Portfolio loads state from here and saves parse results back.
    """

    def __init__(self, path: str = DB_FILE, backup_path: Optional[str] = JSON_BACKUP_FILE):
        self.path        = path
        self.backup_path = backup_path
        self.conn        = _connect(path)

    # ── Per-prefix values ─────────────────────────────────────────────────────

    def get(self, prefix: str, key: str, default: Any = None) -> Any:
        row = self.conn.execute(
            "SELECT payload FROM store WHERE prefix = ? AND key = ?", (prefix, key)
        ).fetchone()
        return json.loads(row["payload"]) if row else default

    def put(self, prefix: str, key: str, value: Any) -> None:
        self.put_many(prefix, {key: value})

    def put_many(self, prefix: str, values: Dict[str, Any]) -> None:
        """Write several keys in one transaction."""
        now = datetime.now().isoformat()
        with _tx(self.conn):
            self.conn.executemany("""
                INSERT INTO store (prefix, key, payload, updated_at)
                VALUES (?, ?, ?, ?)
                ON CONFLICT(prefix, key) DO UPDATE SET
                    payload    = excluded.payload,
                    updated_at = excluded.updated_at
            """, [(prefix, k, json.dumps(v), now) for k, v in values.items()])
        self.export_json_backup()

    def updated_at(self, prefix: str, key: str) -> Optional[str]:
        row = self.conn.execute(
            "SELECT updated_at FROM store WHERE prefix = ? AND key = ?", (prefix, key)
        ).fetchone()
        return row["updated_at"] if row else None

    def clear(self, prefix: str) -> None:
        """Delete every key of one asset class."""
        with _tx(self.conn):
            self.conn.execute("DELETE FROM store WHERE prefix = ?", (prefix,))
        self.export_json_backup()

    def dump(self, prefix: str) -> Dict[str, Any]:
        rows = self.conn.execute(
            "SELECT key, payload FROM store WHERE prefix = ? ORDER BY key", (prefix,)
        ).fetchall()
        return {r["key"]: json.loads(r["payload"]) for r in rows}

    # ── Global settings ───────────────────────────────────────────────────────

    def get_setting(self, key: str, default: Any = None) -> Any:
        row = self.conn.execute(
            "SELECT payload FROM settings WHERE key = ?", (key,)
        ).fetchone()
        return json.loads(row["payload"]) if row else default

    def set_setting(self, key: str, value: Any) -> None:
        with _tx(self.conn):
            self.conn.execute("""
                INSERT INTO settings (key, payload, updated_at)
                VALUES (?, ?, ?)
                ON CONFLICT(key) DO UPDATE SET
                    payload    = excluded.payload,
                    updated_at = excluded.updated_at
            """, (key, json.dumps(value), datetime.now().isoformat()))
        self.export_json_backup()

    # ── JSON backup ───────────────────────────────────────────────────────────

    def snapshot(self) -> Dict[str, Any]:
        prefixes = [r["prefix"] for r in
                    self.conn.execute("SELECT DISTINCT prefix FROM store ORDER BY prefix")]
        settings = {r["key"]: json.loads(r["payload"]) for r in
                    self.conn.execute("SELECT key, payload FROM settings")}
        return {"store": {p: self.dump(p) for p in prefixes}, "settings": settings}

    def export_json_backup(self, path: Optional[str] = None) -> None:
        """
        Write the whole database to a JSON file. Called automatically after
        every write so the backup stays in sync; failures are only logged.
        """
        target = path or self.backup_path
        if not target:
            return
        try:
            with open(target, "w", encoding="utf-8") as f:
                json.dump(self.snapshot(), f, indent=2)
        except OSError as e:
            logger.warning("JSON backup to %s failed: %s", target, e)

    def import_json_backup(self, path: str) -> int:
        """Restore a backup written by export_json_backup. Returns the number of keys."""
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
        now = datetime.now().isoformat()
        rows = [(prefix, key, json.dumps(value), now)
                for prefix, values in data.get("store", {}).items()
                for key, value in values.items()]
        with _tx(self.conn):
            self.conn.execute("DELETE FROM store")
            self.conn.executemany(
                "INSERT INTO store (prefix, key, payload, updated_at) VALUES (?, ?, ?, ?)", rows)
            for key, value in data.get("settings", {}).items():
                self.conn.execute("""
                    INSERT INTO settings (key, payload, updated_at) VALUES (?, ?, ?)
                    ON CONFLICT(key) DO UPDATE SET payload = excluded.payload,
                                                   updated_at = excluded.updated_at
                """, (key, json.dumps(value), now))
        self.export_json_backup()
        return len(rows)

    def close(self) -> None:
        self.conn.close()
