from __future__ import annotations

import sqlite3
import threading
from dataclasses import dataclass
from urllib.parse import urlparse

try:
    import psycopg
    from psycopg.rows import dict_row
except Exception:  # pragma: no cover - optional dependency
    psycopg = None
    dict_row = None


def _sqlite_path(url: str) -> str:
    if url.startswith("sqlite:///"):
        return url.replace("sqlite:///", "", 1)
    if url.startswith("sqlite://"):
        return url.replace("sqlite://", "", 1)
    return url


@dataclass
class DB:
    conn: object
    lock: threading.Lock
    dialect: str

    def _prepare(self, sql: str) -> str:
        if self.dialect == "postgres":
            return sql.replace("?", "%s")
        return sql

    def _row_to_dict(self, row):
        if row is None:
            return None
        if isinstance(row, dict):
            return row
        return dict(row)

    def execute(self, sql: str, params: tuple | dict = ()) -> int:
        """Run one statement and commit. Returns the affected row count."""
        with self.lock:
            cur = self.conn.cursor()
            cur.execute(self._prepare(sql), params)
            self.conn.commit()
            return cur.rowcount

    def fetchone(self, sql: str, params: tuple | dict = ()):
        with self.lock:
            cur = self.conn.cursor()
            cur.execute(self._prepare(sql), params)
            return self._row_to_dict(cur.fetchone())

    def fetchall(self, sql: str, params: tuple | dict = ()):
        with self.lock:
            cur = self.conn.cursor()
            cur.execute(self._prepare(sql), params)
            rows = cur.fetchall()
            return [self._row_to_dict(r) for r in rows]

    def insert_ignore(self, table: str, columns: list[str], row: tuple) -> int:
        cols = ", ".join(columns)
        placeholders = ", ".join(["?"] * len(columns))
        if self.dialect == "sqlite":
            sql = f"INSERT OR IGNORE INTO {table} ({cols}) VALUES ({placeholders})"
        else:
            sql = f"INSERT INTO {table} ({cols}) VALUES ({placeholders}) ON CONFLICT DO NOTHING"
        return self.execute(sql, row)

    def close(self) -> None:
        with self.lock:
            self.conn.close()


def init_db(database_url: str) -> DB:
    parsed = urlparse(database_url)
    if parsed.scheme in ("", "sqlite"):
        path = _sqlite_path(database_url)
        conn = sqlite3.connect(path, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        db = DB(conn=conn, lock=threading.Lock(), dialect="sqlite")
    elif parsed.scheme in ("postgres", "postgresql"):
        if psycopg is None:
            raise ValueError("psycopg is required for Postgres support.")
        conn = psycopg.connect(database_url, row_factory=dict_row)
        db = DB(conn=conn, lock=threading.Lock(), dialect="postgres")
    else:
        raise ValueError("Unsupported database scheme.")
    _create_schema(db)
    return db


def _create_schema(db: DB) -> None:
    db.execute(
        """
        CREATE TABLE IF NOT EXISTS quota_usage (
            feature TEXT NOT NULL,
            day TEXT NOT NULL,
            count INTEGER NOT NULL DEFAULT 0,
            PRIMARY KEY (feature, day)
        )
        """
    )
    db.execute(
        """
        CREATE TABLE IF NOT EXISTS community_signups (
            email TEXT PRIMARY KEY,
            name TEXT NOT NULL,
            created_at TEXT NOT NULL
        )
        """
    )
