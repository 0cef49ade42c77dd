"""
Dataclasses for menus, reservations, business days and users.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class Role(str, Enum):
    USER = "user"
    ADMIN = "admin"


class DayState(str, Enum):
    HOLIDAY = "holiday"
    UNAVAILABLE = "unavailable"
    OPEN_NO_CONFLICT = "open_no_conflict"
    OPEN_CONFLICT = "open_conflict"
    PENDING_RESERVE = "pending_reserve"
    PENDING_CANCEL = "pending_cancel"


@dataclass
class MenuItem:
    menu_id: int
    name: str
    date: str
    reserved: bool = False

    @classmethod
    def from_row(cls, row: dict) -> "MenuItem":
        return cls(
            menu_id=row["menu_id"],
            name=row["name"],
            date=row["date"],
            reserved=bool(row["reserved"]),
        )


@dataclass
class Reservation:
    reservation_id: int
    menu_id: Optional[int]
    user_id: int
    date: str
    reserved_time: str
    is_menu_reservation: bool

    @classmethod
    def from_row(cls, row: dict) -> "Reservation":
        return cls(
            reservation_id=row["reservation_id"],
            menu_id=row["menu_id"],
            user_id=row["user_id"],
            date=row["date"],
            reserved_time=row["reserved_time"],
            is_menu_reservation=bool(row["menu_reservation"]),
        )

    @property
    def is_time_only(self) -> bool:
        return self.menu_id is None


@dataclass
class BusinessDay:
    day: str
    open_time: Optional[str]
    close_time: Optional[str]
    holiday: bool = False

    @classmethod
    def from_row(cls, row: dict) -> "BusinessDay":
        return cls(
            day=row["day"],
            open_time=row.get("open_time"),
            close_time=row.get("close_time"),
            holiday=bool(row.get("holiday")),
        )


@dataclass
class User:
    user_id: int
    name: str
    role: Role

    @classmethod
    def from_row(cls, row: dict) -> "User":
        return cls(user_id=row["user_id"], name=row["name"], role=Role(row["role"]))


@dataclass
class DayHours:
    """Resolved opening hours for one date (defaults filled in)."""
    date: str
    is_holiday: bool
    open_time: str
    close_time: str


@dataclass
class MenuSlot:
    """One menu as a particular caller sees it on a particular day."""
    menu: MenuItem
    owner_id: Optional[int]
    selectable: bool
    cancellable: bool

    @property
    def orphaned(self) -> bool:
        # reserved flag set but no reservation row backs it
        return self.menu.reserved and self.owner_id is None


@dataclass
class DayView:
    hours: DayHours
    state: DayState
    menus: list[MenuSlot] = field(default_factory=list)
    slots: list[str] = field(default_factory=list)
    reserved_menu_id: Optional[int] = None
    time_only: list[Reservation] = field(default_factory=list)


@dataclass
class Selection:
    """A pending reserve or cancel, passed back in to confirm it."""
    state: DayState
    date: str
    menu: Optional[MenuItem]
    reserved_time: Optional[str] = None
