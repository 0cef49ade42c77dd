"""
SQLite setup - creates tables, seeds users, and implements the Storage contract.
"""

import logging
import re
import sqlite3
from contextlib import contextmanager
from typing import Optional

from .config import DB_PATH
from .errors import ConflictError, StorageError
from .storage import FILTER_OPS, PRIMARY_KEYS

logger = logging.getLogger(__name__)

_IDENT_RE = re.compile(r"^[a-z_]+$")

EXCLUSIVITY_INDEX = "idx_menus_one_reserved_per_day"


def init_db(path: str = DB_PATH, enforce_daily_exclusivity: bool = True) -> sqlite3.Connection:
    """Connect to DB and create tables if needed.

    With enforce_daily_exclusivity the schema carries a partial unique index
    so at most one menu per date can have reserved = 1.
    """
    conn = sqlite3.connect(path, check_same_thread=False)
    conn.row_factory = sqlite3.Row
    cursor = conn.cursor()

    cursor.execute("""
        CREATE TABLE IF NOT EXISTS menus(
            menu_id INTEGER PRIMARY KEY,
            name TEXT NOT NULL,
            date TEXT NOT NULL,
            reserved INTEGER NOT NULL DEFAULT 0
        )
    """)

    cursor.execute("""
        CREATE TABLE IF NOT EXISTS reservations(
            reservation_id INTEGER PRIMARY KEY,
            menu_id INTEGER,
            user_id INTEGER NOT NULL,
            date TEXT NOT NULL,
            reserved_time TEXT NOT NULL,
            menu_reservation INTEGER NOT NULL DEFAULT 0
        )
    """)

    cursor.execute("""
        CREATE TABLE IF NOT EXISTS business_days(
            day TEXT PRIMARY KEY,
            open_time TEXT,
            close_time TEXT,
            holiday INTEGER NOT NULL DEFAULT 0
        )
    """)

    cursor.execute("""
        CREATE TABLE IF NOT EXISTS users(
            user_id INTEGER PRIMARY KEY,
            name TEXT NOT NULL,
            role TEXT NOT NULL DEFAULT 'user'
        )
    """)

    cursor.execute("CREATE INDEX IF NOT EXISTS idx_menus_date ON menus(date)")
    cursor.execute("CREATE INDEX IF NOT EXISTS idx_reservations_date ON reservations(date)")
    if enforce_daily_exclusivity:
        cursor.execute(
            f"CREATE UNIQUE INDEX IF NOT EXISTS {EXCLUSIVITY_INDEX} ON menus(date) WHERE reserved = 1"
        )
    else:
        cursor.execute(f"DROP INDEX IF EXISTS {EXCLUSIVITY_INDEX}")

    conn.commit()
    return conn


def seed_users_if_empty(conn: sqlite3.Connection) -> None:
    """Add the default admin and a few users if the table is empty."""
    cursor = conn.cursor()
    cursor.execute("SELECT COUNT(*) FROM users")
    if cursor.fetchone()[0] > 0:
        return

    users = [
        (1, "Admin", "admin"),
        (2, "Sato", "user"),
        (3, "Suzuki", "user"),
        (4, "Takahashi", "user"),
    ]
    cursor.executemany("INSERT INTO users (user_id, name, role) VALUES (?, ?, ?)", users)
    conn.commit()
    logger.info("Seeded %d users", len(users))


def _ident(name: str) -> str:
    if not _IDENT_RE.match(name):
        raise StorageError(f"Invalid column or table name: {name}")
    return name


def _where(filters: Optional[dict]) -> tuple[str, list]:
    if not filters:
        return "", []
    clauses = []
    params = []
    for column, value in filters.items():
        column = _ident(column)
        if value is None:
            clauses.append(f"{column} IS NULL")
        elif isinstance(value, tuple):
            op, operand = value
            if op not in FILTER_OPS:
                raise StorageError(f"Unsupported filter operator: {op}")
            if op == "in":
                operand = list(operand)
                if not operand:
                    clauses.append("0")
                    continue
                clauses.append(f"{column} IN ({', '.join('?' for _ in operand)})")
                params.extend(operand)
            elif op == "between":
                low, high = operand
                clauses.append(f"{column} BETWEEN ? AND ?")
                params.extend([low, high])
            else:
                clauses.append(f"{column} {'>=' if op == 'gte' else '<='} ?")
                params.append(operand)
        else:
            clauses.append(f"{column} = ?")
            params.append(value)
    return " WHERE " + " AND ".join(clauses), params


class SqliteStorage:
    """Storage backed by a single sqlite3 connection."""

    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn
        self._depth = 0

    def _execute(self, sql: str, params=()) -> sqlite3.Cursor:
        try:
            return self.conn.execute(sql, params)
        except sqlite3.IntegrityError as e:
            self._abort()
            if EXCLUSIVITY_INDEX in str(e) or "menus.date" in str(e):
                raise ConflictError("Another menu is already reserved on this date") from e
            raise StorageError(f"Constraint failed: {e}") from e
        except sqlite3.Error as e:
            self._abort()
            raise StorageError(f"SQLite error: {e}") from e

    def _abort(self) -> None:
        if self._depth == 0:
            self.conn.rollback()

    def _commit(self) -> None:
        if self._depth == 0:
            self.conn.commit()

    @contextmanager
    def transaction(self):
        """Group writes; commit on success, roll back on any exception."""
        self._depth += 1
        try:
            yield self
        except Exception:
            self._depth -= 1
            if self._depth == 0:
                self.conn.rollback()
            raise
        self._depth -= 1
        if self._depth == 0:
            self.conn.commit()

    def select(self, table: str, filters: Optional[dict] = None,
               order_by: Optional[str] = None) -> list[dict]:
        where, params = _where(filters)
        sql = f"SELECT * FROM {_ident(table)}{where}"
        if order_by:
            sql += f" ORDER BY {_ident(order_by)}"
        return [dict(row) for row in self._execute(sql, params).fetchall()]

    def insert(self, table: str, values: dict) -> dict:
        columns = [_ident(c) for c in values]
        cursor = self._execute(
            f"INSERT INTO {_ident(table)} ({', '.join(columns)}) "
            f"VALUES ({', '.join('?' for _ in columns)})",
            list(values.values()),
        )
        row = self._execute(f"SELECT * FROM {table} WHERE rowid = ?", (cursor.lastrowid,)).fetchone()
        self._commit()
        return dict(row)

    def update(self, table: str, filters: dict, values: dict) -> list[dict]:
        key = PRIMARY_KEYS[table]
        matched = [row[key] for row in self.select(table, filters)]
        if not matched:
            return []
        assignments = ", ".join(f"{_ident(c)} = ?" for c in values)
        where, params = _where({key: ("in", matched)})
        self._execute(f"UPDATE {_ident(table)} SET {assignments}{where}", list(values.values()) + params)
        self._commit()
        return self.select(table, {key: ("in", matched)}, order_by=key)

    def delete(self, table: str, filters: dict) -> int:
        where, params = _where(filters)
        cursor = self._execute(f"DELETE FROM {_ident(table)}{where}", params)
        self._commit()
        return cursor.rowcount

    def upsert(self, table: str, values: dict, key: str) -> dict:
        """Insert, or update only the given columns when `key` already exists."""
        columns = [_ident(c) for c in values]
        others = [c for c in columns if c != key]
        if others:
            conflict = "DO UPDATE SET " + ", ".join(f"{c} = excluded.{c}" for c in others)
        else:
            conflict = "DO NOTHING"
        self._execute(
            f"INSERT INTO {_ident(table)} ({', '.join(columns)}) "
            f"VALUES ({', '.join('?' for _ in columns)}) "
            f"ON CONFLICT({_ident(key)}) {conflict}",
            list(values.values()),
        )
        self._commit()
        return self.select(table, {key: values[key]})[0]
