from contextlib import contextmanager

import pytest

from menuslot_app.admin import AdminControl
from menuslot_app.auth import Caller
from menuslot_app.db import SqliteStorage, init_db, seed_users_if_empty
from menuslot_app.engine import ReservationEngine
from menuslot_app.errors import StorageError
from menuslot_app.models import Role
from menuslot_app.storage import MENUS

DAY = "2026-11-02"
OTHER_DAY = "2026-11-03"

ADMIN = Caller(user_id=1, role=Role.ADMIN)
ALICE = Caller(user_id=2)
BOB = Caller(user_id=3)
CAROL = Caller(user_id=4)


class FlakyStorage:
    """Wraps a real storage and fails the writes/reads it is told to fail.

    Without transactional=True it behaves like the HTTP backend: every write
    lands on its own.
    """

    def __init__(self, inner, transactional=False):
        self.inner = inner
        self.transactional = transactional
        self.rules = []
        self.writes = []

    def fail(self, method, table, values=None):
        self.rules.append((method, table, values))

    def _check(self, method, table, values=None):
        for rule_method, rule_table, rule_values in self.rules:
            if rule_method != method or rule_table != table:
                continue
            if rule_values is None or all((values or {}).get(k) == v for k, v in rule_values.items()):
                raise StorageError(f"injected failure: {method} {table}")

    @contextmanager
    def transaction(self):
        if self.transactional:
            with self.inner.transaction():
                yield self
        else:
            yield self

    def select(self, table, filters=None, order_by=None):
        self._check("select", table)
        return self.inner.select(table, filters, order_by)

    def insert(self, table, values):
        self._check("insert", table, values)
        self.writes.append(("insert", table))
        return self.inner.insert(table, values)

    def update(self, table, filters, values):
        self._check("update", table, values)
        self.writes.append(("update", table))
        return self.inner.update(table, filters, values)

    def delete(self, table, filters):
        self._check("delete", table, filters)
        self.writes.append(("delete", table))
        return self.inner.delete(table, filters)

    def upsert(self, table, values, key):
        self._check("upsert", table, values)
        self.writes.append(("upsert", table))
        return self.inner.upsert(table, values, key)


class InterleavingStorage(FlakyStorage):
    """Runs `hook` once, just before the first write that marks a menu reserved."""

    def __init__(self, inner, hook):
        super().__init__(inner)
        self.hook = hook

    def update(self, table, filters, values):
        if self.hook is not None and table == MENUS and values.get("reserved") is True:
            hook, self.hook = self.hook, None
            hook()
        return super().update(table, filters, values)


@pytest.fixture
def storage():
    conn = init_db(":memory:")
    seed_users_if_empty(conn)
    yield SqliteStorage(conn)
    conn.close()


@pytest.fixture
def engine(storage):
    return ReservationEngine(storage)


@pytest.fixture
def admin(storage):
    return AdminControl(storage)


@pytest.fixture
def menus(admin):
    """Two menus on DAY, one on OTHER_DAY."""
    return [
        admin.add_menu_item(ADMIN, DAY, "Curry"),
        admin.add_menu_item(ADMIN, DAY, "Grilled fish"),
        admin.add_menu_item(ADMIN, OTHER_DAY, "Ramen"),
    ]


@pytest.fixture
def flaky(storage):
    return FlakyStorage(storage)
