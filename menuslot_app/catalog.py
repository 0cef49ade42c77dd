"""
Menu catalog - the menus offered on each date and their reserved flag.
"""

import logging
from typing import Optional

from .errors import NotFoundError, ValidationError
from .models import MenuItem
from .storage import MENUS, Storage
from .validation import check_date, check_menu_name, escape_menu_name

logger = logging.getLogger(__name__)


class MenuCatalog:
    def __init__(self, storage: Storage):
        self.storage = storage

    def list_for_date(self, date: str) -> list[MenuItem]:
        check_date(date)
        rows = self.storage.select(MENUS, {"date": date}, order_by="menu_id")
        return [MenuItem.from_row(r) for r in rows]

    def get(self, menu_id: int) -> MenuItem:
        rows = self.storage.select(MENUS, {"menu_id": menu_id})
        if not rows:
            raise NotFoundError(f"Menu {menu_id} not found")
        return MenuItem.from_row(rows[0])

    def add(self, date: str, name: str) -> MenuItem:
        """Validate, escape and store a new unreserved menu."""
        check_menu_name(name)
        check_date(date)
        row = self.storage.insert(MENUS, {
            "name": escape_menu_name(name),
            "date": date,
            "reserved": False,
        })
        menu = MenuItem.from_row(row)
        logger.info("Added menu %s (%s) on %s", menu.menu_id, menu.name, date)
        return menu

    def update(self, menu_id: int, name: Optional[str] = None, date: Optional[str] = None) -> MenuItem:
        """Rename and/or move a menu. The reserved flag is not touched here."""
        values = {}
        if name is not None:
            check_menu_name(name)
            values["name"] = escape_menu_name(name)
        if date is not None:
            values["date"] = check_date(date)
        if not values:
            raise ValidationError("Nothing to update")
        rows = self.storage.update(MENUS, {"menu_id": menu_id}, values)
        if not rows:
            raise NotFoundError(f"Menu {menu_id} not found")
        logger.info("Updated menu %s: %s", menu_id, sorted(values))
        return MenuItem.from_row(rows[0])

    def remove(self, menu_id: int) -> None:
        if self.storage.delete(MENUS, {"menu_id": menu_id}) == 0:
            raise NotFoundError(f"Menu {menu_id} not found")
        logger.info("Removed menu %s", menu_id)

    def set_reserved(self, menu_id: int, value: bool) -> MenuItem:
        # Only the reservation engine calls this.
        rows = self.storage.update(MENUS, {"menu_id": menu_id}, {"reserved": bool(value)})
        if not rows:
            raise NotFoundError(f"Menu {menu_id} not found")
        return MenuItem.from_row(rows[0])

    def dates_with_menus(self, start: str, end: str) -> set[str]:
        check_date(start)
        check_date(end)
        rows = self.storage.select(MENUS, {"date": ("between", (start, end))})
        return {r["date"] for r in rows}
