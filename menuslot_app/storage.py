"""
Storage collaborator contract and backend selection.

Four tables, joined only by value equality on date / menu_id:

    menus           menu_id, name, date, reserved
    reservations    reservation_id, menu_id?, user_id, date, reserved_time, menu_reservation
    business_days   day, open_time?, close_time?, holiday
    users           user_id, name, role

Filters are a dict of column -> value. A plain value means equality, None
means IS NULL, and a tuple ("gte" | "lte" | "in", value) is a comparison.
("between", (low, high)) is an inclusive range.
"""

from contextlib import AbstractContextManager
from typing import Optional, Protocol

from . import config

MENUS = "menus"
RESERVATIONS = "reservations"
BUSINESS_DAYS = "business_days"
USERS = "users"

PRIMARY_KEYS = {
    MENUS: "menu_id",
    RESERVATIONS: "reservation_id",
    BUSINESS_DAYS: "day",
    USERS: "user_id",
}

FILTER_OPS = ("gte", "lte", "in", "between")


class Storage(Protocol):
    def select(self, table: str, filters: Optional[dict] = None,
               order_by: Optional[str] = None) -> list[dict]: ...

    def insert(self, table: str, values: dict) -> dict: ...

    def update(self, table: str, filters: dict, values: dict) -> list[dict]: ...

    def delete(self, table: str, filters: dict) -> int: ...

    def upsert(self, table: str, values: dict, key: str) -> dict: ...

    def transaction(self) -> AbstractContextManager: ...


def open_storage(backend: Optional[str] = None) -> Storage:
    """Build the configured backend (sqlite or postgrest)."""
    backend = backend or config.STORAGE_BACKEND
    if backend == "sqlite":
        from .db import SqliteStorage, init_db, seed_users_if_empty
        conn = init_db()
        seed_users_if_empty(conn)
        return SqliteStorage(conn)
    if backend == "postgrest":
        from .rest_client import PostgrestStorage
        if not config.SUPABASE_URL or not config.SUPABASE_KEY:
            raise ValueError("SUPABASE_URL and SUPABASE_KEY must be set for the postgrest backend")
        return PostgrestStorage(config.SUPABASE_URL, config.SUPABASE_KEY)
    raise ValueError(f"Unknown storage backend: {backend}")
