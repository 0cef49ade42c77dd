import json
from unittest.mock import MagicMock

import pytest
import requests

from conftest import DAY
from menuslot_app.business_calendar import CalendarResolver
from menuslot_app.catalog import MenuCatalog
from menuslot_app.errors import StorageError
from menuslot_app.rest_client import PostgrestStorage, build_filter_params
from menuslot_app.storage import BUSINESS_DAYS, MENUS, RESERVATIONS

URL = "https://example.supabase.co/"


def response(status=200, body=None):
    resp = MagicMock()
    resp.status_code = status
    resp.content = b"" if body is None else json.dumps(body).encode()
    resp.json.return_value = body
    resp.text = resp.content.decode()
    return resp


@pytest.fixture
def session():
    return MagicMock()


@pytest.fixture
def store(session):
    return PostgrestStorage(URL, "anon-key", session=session, timeout=5)


def test_filter_params():
    assert build_filter_params({
        "date": DAY,
        "reserved": True,
        "menu_id": None,
        "day": ("gte", "2026-11-01"),
        "user_id": ("in", [2, 3]),
    }) == {
        "date": f"eq.{DAY}",
        "reserved": "eq.true",
        "menu_id": "is.null",
        "day": "gte.2026-11-01",
        "user_id": "in.(2,3)",
    }
    with pytest.raises(StorageError):
        build_filter_params({"date": ("like", "2026%")})


def test_select(store, session):
    session.request.return_value = response(body=[{"menu_id": 1, "name": "Curry"}])

    rows = store.select(MENUS, {"date": DAY}, order_by="menu_id")

    assert rows == [{"menu_id": 1, "name": "Curry"}]
    args, kwargs = session.request.call_args
    assert args == ("GET", "https://example.supabase.co/rest/v1/menus")
    assert kwargs["params"] == {"select": "*", "date": f"eq.{DAY}", "order": "menu_id.asc"}
    assert kwargs["headers"]["apikey"] == "anon-key"
    assert kwargs["headers"]["Authorization"] == "Bearer anon-key"
    assert kwargs["timeout"] == 5


def test_insert_asks_for_the_row_back(store, session):
    session.request.return_value = response(201, [{"reservation_id": 7}])

    row = store.insert(RESERVATIONS, {"menu_id": None, "user_id": 2})

    assert row == {"reservation_id": 7}
    args, kwargs = session.request.call_args
    assert args[0] == "POST"
    assert kwargs["json"] == [{"menu_id": None, "user_id": 2}]
    assert kwargs["headers"]["Prefer"] == "return=representation"


def test_update_and_delete(store, session):
    session.request.return_value = response(body=[{"menu_id": 1, "reserved": True}])
    assert store.update(MENUS, {"menu_id": 1}, {"reserved": True}) == [{"menu_id": 1, "reserved": True}]
    args, kwargs = session.request.call_args
    assert args[0] == "PATCH"
    assert kwargs["params"] == {"menu_id": "eq.1"}

    session.request.return_value = response(body=[{"reservation_id": 1}, {"reservation_id": 2}])
    assert store.delete(RESERVATIONS, {"user_id": 2}) == 2
    assert session.request.call_args[0][0] == "DELETE"

    session.request.return_value = response(204)
    assert store.delete(RESERVATIONS, {"user_id": 2}) == 0


def test_upsert_merges_on_key(store, session):
    session.request.return_value = response(201, [{"day": DAY, "holiday": True}])

    row = store.upsert(BUSINESS_DAYS, {"day": DAY, "holiday": True}, key="day")

    assert row == {"day": DAY, "holiday": True}
    _, kwargs = session.request.call_args
    assert kwargs["params"] == {"on_conflict": "day"}
    assert kwargs["headers"]["Prefer"] == "resolution=merge-duplicates,return=representation"


def test_http_errors_become_storage_errors(store, session):
    session.request.return_value = response(500, {"message": "boom"})
    with pytest.raises(StorageError, match="500"):
        store.select(MENUS)

    session.request.side_effect = requests.exceptions.ConnectionError("down")
    with pytest.raises(StorageError):
        store.insert(MENUS, {"name": "Curry"})


def test_empty_insert_response_is_an_error(store, session):
    session.request.return_value = response(201, [])
    with pytest.raises(StorageError):
        store.insert(MENUS, {"name": "Curry"})


def test_calendar_falls_back_when_endpoint_is_down(store, session):
    session.request.side_effect = requests.exceptions.Timeout("slow")
    hours = CalendarResolver(store).resolve_day(DAY)
    assert (hours.open_time, hours.close_time, hours.is_holiday) == ("17:00", "21:00", False)


def test_postgres_time_columns_resolve_to_hh_mm(store, session):
    session.request.return_value = response(body=[
        {"day": DAY, "open_time": "11:30:00", "close_time": "14:00:00", "holiday": False},
    ])
    hours = CalendarResolver(store).resolve_day(DAY)
    assert (hours.open_time, hours.close_time) == ("11:30", "14:00")
    assert list(CalendarResolver(store).slots_for(hours))[:2] == ["11:30", "12:00"]


def test_range_filters_are_sent_as_one_and_clause(store, session):
    assert build_filter_params({"day": ("between", ("2026-11-01", "2026-11-30")), "holiday": True}) == {
        "and": "(day.gte.2026-11-01,day.lte.2026-11-30)",
        "holiday": "eq.true",
    }

    session.request.return_value = response(body=[{"day": "2026-11-03"}])
    assert CalendarResolver(store).holidays_between("2026-11-01", "2026-11-30") == ["2026-11-03"]
    _, kwargs = session.request.call_args
    assert kwargs["params"]["and"] == "(day.gte.2026-11-01,day.lte.2026-11-30)"

    session.request.return_value = response(body=[{"date": DAY}, {"date": DAY}])
    assert MenuCatalog(store).dates_with_menus("2026-11-01", "2026-11-30") == {DAY}
    _, kwargs = session.request.call_args
    assert kwargs["params"]["and"] == "(date.gte.2026-11-01,date.lte.2026-11-30)"
