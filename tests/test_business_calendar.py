import pytest

from conftest import DAY, OTHER_DAY
from menuslot_app.business_calendar import CalendarResolver, generate_slots
from menuslot_app.errors import ValidationError
from menuslot_app.storage import BUSINESS_DAYS


@pytest.fixture
def calendar(storage):
    return CalendarResolver(storage)


def test_missing_row_gives_default_window(calendar):
    hours = calendar.resolve_day(DAY)
    assert (hours.open_time, hours.close_time, hours.is_holiday) == ("17:00", "21:00", False)


def test_set_hours_round_trip(calendar):
    calendar.set_hours(DAY, "17:00", "21:00")
    hours = calendar.resolve_day(DAY)
    assert (hours.open_time, hours.close_time) == ("17:00", "21:00")

    calendar.set_hours(DAY, "11:00", "14:00")
    hours = calendar.resolve_day(DAY)
    assert (hours.open_time, hours.close_time) == ("11:00", "14:00")


def test_slots_exclude_closing_time():
    slots = generate_slots("17:00", "21:00", 30)
    assert list(slots) == ["17:00", "17:30", "18:00", "18:30", "19:00", "19:30", "20:00", "20:30"]
    assert len(slots) == 8


def test_slots_can_be_iterated_again():
    slots = generate_slots("17:00", "18:00")
    assert list(slots) == list(slots) == ["17:00", "17:30"]
    assert "17:30" in slots
    assert "18:00" not in slots
    assert "17:15" not in slots
    assert "garbage" not in slots


def test_slots_empty_when_open_not_before_close():
    assert list(generate_slots("21:00", "17:00")) == []
    assert list(generate_slots("17:00", "17:00")) == []
    assert len(generate_slots("21:00", "17:00")) == 0


def test_slots_with_uneven_step():
    slots = generate_slots("17:00", "18:00", 45)
    assert list(slots) == ["17:00", "17:45"]
    assert len(slots) == 2


def test_set_holiday_twice_keeps_one_row(calendar, storage):
    calendar.set_holiday(DAY, True)
    calendar.set_holiday(DAY, True)
    rows = storage.select(BUSINESS_DAYS, {"day": DAY})
    assert len(rows) == 1
    assert calendar.resolve_day(DAY).is_holiday is True


def test_holiday_and_hours_do_not_overwrite_each_other(calendar):
    calendar.set_hours(DAY, "12:00", "15:00")
    calendar.set_holiday(DAY, True)
    hours = calendar.resolve_day(DAY)
    assert hours.is_holiday is True
    assert (hours.open_time, hours.close_time) == ("12:00", "15:00")

    calendar.set_holiday(DAY, False)
    calendar.set_hours(DAY, "18:00", "22:00")
    hours = calendar.resolve_day(DAY)
    assert hours.is_holiday is False
    assert hours.open_time == "18:00"


def test_holiday_row_without_hours_uses_default_hours(calendar):
    calendar.set_holiday(DAY, True)
    hours = calendar.resolve_day(DAY)
    assert (hours.open_time, hours.close_time) == ("17:00", "21:00")


def test_malformed_date_degrades_to_default(calendar):
    hours = calendar.resolve_day("2026-13-40")
    assert (hours.open_time, hours.close_time, hours.is_holiday) == ("17:00", "21:00", False)


def test_storage_failure_degrades_to_default(flaky):
    CalendarResolver(flaky.inner).set_hours(DAY, "11:00", "12:00")
    flaky.fail("select", BUSINESS_DAYS)
    hours = CalendarResolver(flaky).resolve_day(DAY)
    assert (hours.open_time, hours.close_time) == ("17:00", "21:00")


def test_set_hours_rejects_bad_input(calendar):
    with pytest.raises(ValidationError):
        calendar.set_hours("2026/11/02", "17:00", "21:00")
    with pytest.raises(ValidationError):
        calendar.set_hours(DAY, "5pm", "21:00")
    with pytest.raises(ValidationError):
        calendar.set_hours(DAY, "21:00", "17:00")
    with pytest.raises(ValidationError):
        calendar.set_holiday("someday", True)


def test_list_days_and_holidays_between(calendar):
    calendar.set_holiday(OTHER_DAY, True)
    calendar.set_hours(DAY, "17:00", "20:00")
    calendar.set_holiday("2026-12-31", True)

    assert [d.day for d in calendar.list_days()] == [DAY, OTHER_DAY, "2026-12-31"]
    assert calendar.holidays_between("2026-11-01", "2026-11-30") == [OTHER_DAY]
    assert calendar.holidays_between("2026-11-01") == [OTHER_DAY, "2026-12-31"]


def test_stored_times_with_seconds_are_trimmed(calendar, storage):
    storage.upsert(BUSINESS_DAYS, {"day": DAY, "open_time": "11:00:00", "close_time": "14:00:00"}, key="day")
    hours = calendar.resolve_day(DAY)
    assert (hours.open_time, hours.close_time) == ("11:00", "14:00")
    assert list(calendar.slots_for(hours)) == ["11:00", "11:30", "12:00", "12:30", "13:00", "13:30"]


@pytest.mark.parametrize("open_time, close_time", [
    ("5pm", "21:00"),
    ("17:00", "late"),
    ("21:00:00", "17:00:00"),
])
def test_unusable_stored_hours_fall_back_to_default(calendar, storage, open_time, close_time):
    storage.upsert(BUSINESS_DAYS, {"day": DAY, "open_time": open_time, "close_time": close_time,
                                   "holiday": True}, key="day")
    hours = calendar.resolve_day(DAY)
    assert (hours.open_time, hours.close_time) == ("17:00", "21:00")
    assert hours.is_holiday is True
