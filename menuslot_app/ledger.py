"""
Reservation ledger - who reserved which menu (or just a time) on which date.
"""

import logging
from typing import Optional

from .errors import AuthorizationError
from .models import Reservation
from .storage import MENUS, RESERVATIONS, Storage
from .validation import check_date, check_time

logger = logging.getLogger(__name__)


class ReservationLedger:
    def __init__(self, storage: Storage):
        self.storage = storage

    def reservation_for(self, menu_id: int) -> Optional[Reservation]:
        """The menu reservation backing menu_id, if any."""
        rows = self.storage.select(
            RESERVATIONS,
            {"menu_id": menu_id, "menu_reservation": True},
            order_by="reservation_id",
        )
        if not rows:
            return None
        return Reservation.from_row(rows[-1])

    def create(
        self,
        menu_id: Optional[int],
        user_id: int,
        date: str,
        reserved_time: str,
        is_menu_reservation: bool,
    ) -> Reservation:
        """Insert a reservation, replacing the caller's previous one for the same menu.

        Time-only reservations (menu_id None) replace the caller's previous
        time-only reservation on the same date.
        """
        check_date(date)
        check_time(reserved_time)
        if menu_id is not None:
            replaced = self.storage.delete(RESERVATIONS, {"menu_id": menu_id, "user_id": user_id})
        else:
            replaced = self.storage.delete(
                RESERVATIONS, {"menu_id": None, "user_id": user_id, "date": date}
            )
        if replaced:
            logger.info("Replaced %d earlier reservation(s) of user %s", replaced, user_id)

        row = self.storage.insert(RESERVATIONS, {
            "menu_id": menu_id,
            "user_id": user_id,
            "date": date,
            "reserved_time": reserved_time,
            "menu_reservation": bool(is_menu_reservation),
        })
        reservation = Reservation.from_row(row)
        logger.info(
            "Reservation %s created: user=%s date=%s time=%s menu=%s",
            reservation.reservation_id, user_id, date, reserved_time, menu_id,
        )
        return reservation

    def cancel(self, menu_id: int, user_id: int) -> bool:
        """Delete user_id's reservation of menu_id.

        Returns False when the menu has no reservation; raises
        AuthorizationError when someone else holds it.
        """
        existing = self.reservation_for(menu_id)
        if existing is None:
            return False
        if existing.user_id != user_id:
            raise AuthorizationError("Cannot cancel another user's reservation")
        self.storage.delete(RESERVATIONS, {"reservation_id": existing.reservation_id})
        logger.info("Reservation %s cancelled by user %s", existing.reservation_id, user_id)
        return True

    def cancel_time_only(self, date: str, user_id: int) -> int:
        check_date(date)
        return self.storage.delete(RESERVATIONS, {"menu_id": None, "user_id": user_id, "date": date})

    def delete_for_menu(self, menu_id: int) -> int:
        return self.storage.delete(RESERVATIONS, {"menu_id": menu_id})

    def reservations_for_user(self, user_id: int) -> list[Reservation]:
        rows = self.storage.select(RESERVATIONS, {"user_id": user_id}, order_by="reservation_id")
        reservations = [Reservation.from_row(r) for r in rows]
        return sorted(reservations, key=lambda r: (r.date, r.reserved_time))

    def reservations_for_date(self, date: str) -> list[Reservation]:
        check_date(date)
        menu_ids = [m["menu_id"] for m in self.storage.select(MENUS, {"date": date})]
        by_id = {}
        for row in self.storage.select(RESERVATIONS, {"date": date}, order_by="reservation_id"):
            by_id[row["reservation_id"]] = row
        if menu_ids:
            for row in self.storage.select(RESERVATIONS, {"menu_id": ("in", menu_ids)}):
                by_id[row["reservation_id"]] = row
        return [Reservation.from_row(by_id[k]) for k in sorted(by_id)]
