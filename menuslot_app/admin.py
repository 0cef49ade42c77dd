"""
Admin operations - menus, business hours, holidays.

These go straight to the catalog and calendar without the engine's
one-menu-per-day checks; the admin's write always wins.
"""

import logging
from typing import Optional

from .auth import Caller, StoredUserIdentityProvider, require_admin
from .business_calendar import CalendarResolver
from .catalog import MenuCatalog
from .errors import ConflictError
from .ledger import ReservationLedger
from .models import BusinessDay, MenuItem, User
from .storage import Storage

logger = logging.getLogger(__name__)


class AdminControl:
    def __init__(
        self,
        storage: Storage,
        calendar: Optional[CalendarResolver] = None,
        catalog: Optional[MenuCatalog] = None,
        ledger: Optional[ReservationLedger] = None,
    ):
        self.storage = storage
        self.calendar = calendar or CalendarResolver(storage)
        self.catalog = catalog or MenuCatalog(storage)
        self.ledger = ledger or ReservationLedger(storage)

    def add_menu_item(self, caller: Caller, date: str, name: str) -> MenuItem:
        require_admin(caller)
        return self.catalog.add(date, name)

    def update_menu_item(self, caller: Caller, menu_id: int, name: Optional[str] = None,
                         date: Optional[str] = None) -> MenuItem:
        require_admin(caller)
        menu = self.catalog.get(menu_id)
        if date is not None and date != menu.date and menu.reserved:
            raise ConflictError("A reserved menu cannot be moved to another date")
        return self.catalog.update(menu_id, name=name, date=date)

    def remove_menu_item(self, caller: Caller, menu_id: int) -> int:
        """Delete a menu and any reservation pointing at it. Returns how many were dropped."""
        require_admin(caller)
        self.catalog.get(menu_id)
        with self.storage.transaction():
            dropped = self.ledger.delete_for_menu(menu_id)
            self.catalog.remove(menu_id)
        if dropped:
            logger.warning("Removing menu %s dropped %d reservation(s)", menu_id, dropped)
        return dropped

    def set_business_hours(self, caller: Caller, date: str, open_time: str,
                           close_time: str) -> BusinessDay:
        require_admin(caller)
        return self.calendar.set_hours(date, open_time, close_time)

    def set_holiday(self, caller: Caller, date: str, is_holiday: bool) -> int:
        """Toggle the holiday flag. Existing reservations are kept; returns their count."""
        require_admin(caller)
        self.calendar.set_holiday(date, is_holiday)
        remaining = len(self.ledger.reservations_for_date(date))
        if is_holiday and remaining:
            logger.warning("%s marked as holiday with %d reservation(s) still on it", date, remaining)
        return remaining

    def reconcile_day(self, caller: Caller, date: str) -> list[int]:
        """Clear reserved flags that no reservation backs. Returns the menu ids fixed."""
        require_admin(caller)
        released = []
        for menu in self.catalog.list_for_date(date):
            if menu.reserved and self.ledger.reservation_for(menu.menu_id) is None:
                self.catalog.set_reserved(menu.menu_id, False)
                released.append(menu.menu_id)
        if released:
            logger.info("Released orphaned reserved flags on %s: %s", date, released)
        return released

    def business_calendar(self, caller: Caller) -> list[BusinessDay]:
        require_admin(caller)
        return self.calendar.list_days()

    def list_users(self, caller: Caller) -> list[User]:
        require_admin(caller)
        return StoredUserIdentityProvider(self.storage).list_users()
