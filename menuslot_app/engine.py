"""
Reservation engine - decides what a caller may do on a date and runs the
reserve / cancel protocols across the catalog and the ledger.

Nothing is remembered between calls. A pending action is handed back to the
caller as a Selection and passed in again to confirm it; every confirm
re-reads the catalog and ledger instead of trusting the Selection.
"""

import logging
from typing import Optional

from .auth import Caller
from .business_calendar import CalendarResolver, TimeSlots
from .catalog import MenuCatalog
from .errors import (
    AuthorizationError,
    ConflictError,
    DayClosedError,
    NotFoundError,
    ReservationError,
    StorageError,
    ValidationError,
)
from .ledger import ReservationLedger
from .models import DayHours, DayState, DayView, MenuItem, MenuSlot, Reservation, Selection
from .storage import Storage
from .validation import check_date, check_time

logger = logging.getLogger(__name__)


class ReservationEngine:
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

    # --- reads ---

    def view_day(self, date: str, caller: Caller) -> DayView:
        """Everything the caller needs to render a date and pick an action."""
        check_date(date)
        hours = self.calendar.resolve_day(date)
        if hours.is_holiday:
            return DayView(hours=hours, state=DayState.HOLIDAY)

        try:
            menus = self.catalog.list_for_date(date)
            reservations = self.ledger.reservations_for_date(date)
        except StorageError as e:
            logger.warning("Could not load %s: %s", date, e)
            return DayView(hours=hours, state=DayState.UNAVAILABLE)

        owners = {
            r.menu_id: r.user_id
            for r in reservations
            if r.is_menu_reservation and r.menu_id is not None
        }
        reserved = [m for m in menus if m.reserved]
        if len(reserved) > 1:
            logger.error("%d menus reserved on %s: %s", len(reserved), date,
                         [m.menu_id for m in reserved])

        conflict = bool(reserved)
        menu_slots = []
        for menu in menus:
            owner_id = owners.get(menu.menu_id) if menu.reserved else None
            if menu.reserved and owner_id is None:
                logger.warning("Menu %s on %s is reserved but has no reservation", menu.menu_id, date)
            menu_slots.append(MenuSlot(
                menu=menu,
                owner_id=owner_id,
                selectable=not conflict,
                cancellable=menu.reserved and owner_id == caller.user_id,
            ))

        return DayView(
            hours=hours,
            state=DayState.OPEN_CONFLICT if conflict else DayState.OPEN_NO_CONFLICT,
            menus=menu_slots,
            slots=list(self.calendar.slots_for(hours)),
            reserved_menu_id=reserved[0].menu_id if reserved else None,
            time_only=[r for r in reservations if r.is_time_only],
        )

    def reservations_for_user(self, caller: Caller) -> list[tuple[Reservation, Optional[MenuItem]]]:
        """The caller's reservations, each paired with its menu (None for time-only)."""
        result = []
        for reservation in self.ledger.reservations_for_user(caller.user_id):
            menu = None
            if reservation.menu_id is not None:
                try:
                    menu = self.catalog.get(reservation.menu_id)
                except NotFoundError:
                    logger.warning("Reservation %s points at missing menu %s",
                                   reservation.reservation_id, reservation.menu_id)
            result.append((reservation, menu))
        return result

    # --- helpers ---

    def _open_hours(self, date: str) -> DayHours:
        check_date(date)
        hours = self.calendar.resolve_day(date)
        if hours.is_holiday:
            raise DayClosedError(f"{date} is a holiday")
        return hours

    def _check_slot(self, hours: DayHours, reserved_time: Optional[str]) -> str:
        if reserved_time is None:
            raise ValidationError("Choose an arrival time")
        check_time(reserved_time)
        if reserved_time not in TimeSlots(hours.open_time, hours.close_time):
            raise ValidationError(
                f"{reserved_time} is not an arrival slot between {hours.open_time} and {hours.close_time}"
            )
        return reserved_time

    def _menu_on(self, menu_id: int, date: str) -> MenuItem:
        menu = self.catalog.get(menu_id)
        if menu.date != date:
            raise ValidationError(f"Menu {menu_id} is not offered on {date}")
        return menu

    def _other_reserved(self, date: str, menu_id: Optional[int] = None) -> list[MenuItem]:
        return [m for m in self.catalog.list_for_date(date) if m.reserved and m.menu_id != menu_id]

    def _check_owner(self, menu: MenuItem, caller: Caller) -> Reservation:
        reservation = self.ledger.reservation_for(menu.menu_id)
        if reservation is None:
            raise NotFoundError(f"No reservation found for menu {menu.menu_id}")
        if reservation.user_id != caller.user_id:
            raise AuthorizationError("Cannot cancel another user's reservation")
        return reservation

    # --- selection ---

    def select(self, date: str, menu_id: int, caller: Caller,
               reserved_time: Optional[str] = None) -> Selection:
        """Pick a menu: opens a cancel for your own reservation, otherwise a reserve."""
        hours = self._open_hours(date)
        menu = self._menu_on(menu_id, date)

        if menu.reserved:
            self._check_owner(menu, caller)
            return Selection(state=DayState.PENDING_CANCEL, date=date, menu=menu)

        if self._other_reserved(date, menu.menu_id):
            raise ConflictError("Another menu is already reserved on this date")

        self._check_slot(hours, reserved_time)
        return Selection(state=DayState.PENDING_RESERVE, date=date, menu=menu,
                         reserved_time=reserved_time)

    def select_time_only(self, date: str, reserved_time: str, caller: Caller) -> Selection:
        """Book only an arrival time; allowed once a menu is taken that day."""
        hours = self._open_hours(date)
        if not self._other_reserved(date):
            raise ValidationError("Select a menu")
        self._check_slot(hours, reserved_time)
        return Selection(state=DayState.PENDING_RESERVE, date=date, menu=None,
                         reserved_time=reserved_time)

    # --- confirmation ---

    def confirm_reserve(self, selection: Selection, caller: Caller) -> Reservation:
        if selection.state != DayState.PENDING_RESERVE:
            raise ValidationError("Nothing to reserve")
        hours = self._open_hours(selection.date)
        self._check_slot(hours, selection.reserved_time)

        if selection.menu is None:
            if not self._other_reserved(selection.date):
                raise ValidationError("Select a menu")
            return self.ledger.create(None, caller.user_id, selection.date,
                                      selection.reserved_time, is_menu_reservation=False)

        menu = self._menu_on(selection.menu.menu_id, selection.date)
        if menu.reserved or self._other_reserved(selection.date, menu.menu_id):
            raise ConflictError("Another menu is already reserved on this date")
        return self._reserve_menu(menu, caller, selection.reserved_time)

    def _reserve_menu(self, menu: MenuItem, caller: Caller, reserved_time: str) -> Reservation:
        # Flag first, then the row. If the row fails, undo the flag; if the
        # undo fails too the flag is left orphaned and view_day reports it.
        with self.storage.transaction():
            self.catalog.set_reserved(menu.menu_id, True)
            try:
                reservation = self.ledger.create(menu.menu_id, caller.user_id, menu.date,
                                                 reserved_time, is_menu_reservation=True)
            except ReservationError:
                self._release_flag(menu.menu_id)
                raise
        logger.info("Menu %s on %s reserved by user %s at %s",
                    menu.menu_id, menu.date, caller.user_id, reserved_time)
        return reservation

    def _release_flag(self, menu_id: int) -> None:
        try:
            self.catalog.set_reserved(menu_id, False)
        except ReservationError as e:
            logger.error("Menu %s left reserved without a reservation: %s", menu_id, e)

    def confirm_cancel(self, selection: Selection, caller: Caller) -> None:
        if selection.state != DayState.PENDING_CANCEL or selection.menu is None:
            raise ValidationError("Nothing to cancel")
        menu_id = selection.menu.menu_id
        # Ownership is checked again here, not reused from select().
        self._check_owner(self.catalog.get(menu_id), caller)

        with self.storage.transaction():
            if not self.ledger.cancel(menu_id, caller.user_id):
                raise NotFoundError(f"No reservation found for menu {menu_id}")
            self.catalog.set_reserved(menu_id, False)
        logger.info("Menu %s reservation cancelled by user %s", menu_id, caller.user_id)

    def cancel_time_only(self, date: str, caller: Caller) -> int:
        removed = self.ledger.cancel_time_only(date, caller.user_id)
        logger.info("Removed %d time-only reservation(s) of user %s on %s",
                    removed, caller.user_id, date)
        return removed
