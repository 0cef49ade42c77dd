"""
Input checks shared by the catalog, calendar and engine.
All of these raise ValidationError before anything is written.
"""

import datetime
import re

from .config import MENU_NAME_MAX_LENGTH
from .errors import ValidationError

DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
TIME_RE = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")

SQL_KEYWORDS = [
    "SELECT", "INSERT", "UPDATE", "DELETE", "DROP", "ALTER",
    "CREATE", "TRUNCATE", "UNION", "JOIN", "FROM", "WHERE",
]

DANGEROUS_PATTERNS = [
    re.compile(r"\b(" + "|".join(SQL_KEYWORDS) + r")\b", re.IGNORECASE),
    re.compile(r"'.*'"),
    re.compile(r'".*"'),
    re.compile(r";"),
    re.compile(r"--"),
    re.compile(r"/\*"),
    re.compile(r"\*/"),
]

_ESCAPES = [
    ("&", "&amp;"),
    ("<", "&lt;"),
    (">", "&gt;"),
    ('"', "&quot;"),
    ("'", "&#39;"),
]


def is_valid_date(value) -> bool:
    if not isinstance(value, str) or not DATE_RE.match(value):
        return False
    try:
        datetime.datetime.strptime(value, "%Y-%m-%d")
    except ValueError:
        return False
    return True


def is_valid_time(value) -> bool:
    return isinstance(value, str) and TIME_RE.match(value) is not None


def check_date(value) -> str:
    """Return the date unchanged or raise ValidationError."""
    if not is_valid_date(value):
        raise ValidationError(f"Invalid date format: {value!r} (expected YYYY-MM-DD)")
    return value


def check_time(value) -> str:
    if not is_valid_time(value):
        raise ValidationError(f"Invalid time format: {value!r} (expected HH:MM)")
    return value


def check_menu_name(name) -> str:
    """Reject empty, oversized or SQL-looking names."""
    if not isinstance(name, str) or not name.strip():
        raise ValidationError("Menu name is required")
    if len(name) > MENU_NAME_MAX_LENGTH:
        raise ValidationError(f"Menu name must be at most {MENU_NAME_MAX_LENGTH} characters")
    for pattern in DANGEROUS_PATTERNS:
        if pattern.search(name):
            raise ValidationError("Menu name contains characters or words that are not allowed")
    return name


def escape_menu_name(name: str) -> str:
    escaped = name.strip()
    for char, entity in _ESCAPES:
        escaped = escaped.replace(char, entity)
    return escaped


def time_to_minutes(value: str) -> int:
    hours, minutes = value.split(":")
    return int(hours) * 60 + int(minutes)


def minutes_to_time(total: int) -> str:
    return f"{total // 60:02d}:{total % 60:02d}"
