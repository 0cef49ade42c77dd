"""
Streamlit front end - date picker, arrival slots, menu actions and the admin panel.
"""

import datetime
import html

import streamlit as st

from .admin import AdminControl
from .auth import StoredUserIdentityProvider
from .engine import ReservationEngine
from .errors import ReservationError
from .models import DayState
from .storage import open_storage

ALL_TIMES = [f"{h:02d}:{m:02d}" for h in range(24) for m in (0, 30)]


def _flash(kind: str, text: str) -> None:
    st.session_state.flash = (kind, text)


def _show_flash() -> None:
    flash = st.session_state.pop("flash", None)
    if flash:
        kind, text = flash
        getattr(st, kind)(text)


def render_day(engine: ReservationEngine, caller, date_str: str) -> None:
    view = engine.view_day(date_str, caller)

    if view.state == DayState.HOLIDAY:
        st.error(f"🏖️ {date_str} is a holiday. No reservations this day.")
        return
    if view.state == DayState.UNAVAILABLE:
        st.warning("Could not load this day. Please try again in a moment.")
        return

    st.markdown(f"**Business hours:** {view.hours.open_time} - {view.hours.close_time}")
    if not view.slots:
        st.info("No arrival times are available on this day.")
        return

    reserved_time = st.radio("Arrival time", view.slots, horizontal=True, key=f"time-{date_str}")

    if view.state == DayState.OPEN_CONFLICT:
        st.warning("A menu is already reserved on this day. You can still book an arrival time.")

    st.markdown("#### Menus")
    if not view.menus:
        st.caption("No menus registered for this day yet.")

    for slot in view.menus:
        # names are stored HTML-escaped
        name = html.unescape(slot.menu.name)
        cols = st.columns([4, 2])
        if slot.menu.reserved:
            owner = "you" if slot.cancellable else "someone else"
            cols[0].markdown(f"🔒 **{name}** (reserved by {owner})")
        else:
            cols[0].markdown(f"🍽️ **{name}**")

        label = "Cancel" if slot.cancellable else "Reserve"
        disabled = not (slot.cancellable or slot.selectable)
        if cols[1].button(label, key=f"menu-{slot.menu.menu_id}", disabled=disabled):
            try:
                st.session_state.selection = engine.select(
                    date_str, slot.menu.menu_id, caller, reserved_time=reserved_time
                )
            except ReservationError as e:
                _flash("error", str(e))
            st.rerun()

    if view.state == DayState.OPEN_CONFLICT:
        if st.button("Book arrival time only"):
            try:
                st.session_state.selection = engine.select_time_only(date_str, reserved_time, caller)
            except ReservationError as e:
                _flash("error", str(e))
            st.rerun()

    mine = [r for r in view.time_only if r.user_id == caller.user_id]
    if mine:
        st.caption(f"Your arrival-time booking: {mine[0].reserved_time}")
        if st.button("Cancel my arrival-time booking"):
            try:
                engine.cancel_time_only(date_str, caller)
                _flash("success", "Arrival-time booking cancelled.")
            except ReservationError as e:
                _flash("error", str(e))
            st.rerun()


def render_pending(engine: ReservationEngine, caller) -> None:
    selection = st.session_state.get("selection")
    if selection is None:
        return

    with st.container(border=True):
        if selection.state == DayState.PENDING_CANCEL:
            st.markdown(f"Cancel your reservation of **{html.unescape(selection.menu.name)}** "
                        f"on {selection.date}?")
        elif selection.menu is None:
            st.markdown(f"Book arrival at **{selection.reserved_time}** on {selection.date} (no menu)?")
        else:
            st.markdown(f"Reserve **{html.unescape(selection.menu.name)}** on {selection.date} "
                        f"at **{selection.reserved_time}**?")

        confirm, back = st.columns(2)
        if confirm.button("Confirm", type="primary"):
            try:
                if selection.state == DayState.PENDING_CANCEL:
                    engine.confirm_cancel(selection, caller)
                    _flash("success", "Reservation cancelled.")
                else:
                    engine.confirm_reserve(selection, caller)
                    _flash("success", "Reservation complete!")
            except ReservationError as e:
                _flash("error", f"Operation failed: {e}")
            st.session_state.selection = None
            st.rerun()
        if back.button("Back"):
            st.session_state.selection = None
            st.rerun()


def render_admin(admin: AdminControl, caller, date_str: str) -> None:
    st.markdown("### Admin")
    catalog = admin.catalog

    with st.form("add-menu", clear_on_submit=True):
        name = st.text_input("Menu name", max_chars=50)
        if st.form_submit_button("Add menu"):
            try:
                admin.add_menu_item(caller, date_str, name)
                _flash("success", "Menu added.")
            except ReservationError as e:
                _flash("error", str(e))
            st.rerun()

    for menu in catalog.list_for_date(date_str):
        cols = st.columns([4, 1])
        cols[0].write(html.unescape(menu.name) + (" (reserved)" if menu.reserved else ""))
        if cols[1].button("Delete", key=f"del-{menu.menu_id}"):
            try:
                dropped = admin.remove_menu_item(caller, menu.menu_id)
                _flash("success", f"Menu deleted ({dropped} reservation(s) removed).")
            except ReservationError as e:
                _flash("error", str(e))
            st.rerun()

    hours = admin.calendar.resolve_day(date_str)
    cols = st.columns(2)
    open_time = cols[0].selectbox("Opens", ALL_TIMES, index=ALL_TIMES.index(hours.open_time)
                                  if hours.open_time in ALL_TIMES else 0)
    close_time = cols[1].selectbox("Closes", ALL_TIMES, index=ALL_TIMES.index(hours.close_time)
                                   if hours.close_time in ALL_TIMES else 0)
    if st.button("Save business hours"):
        try:
            admin.set_business_hours(caller, date_str, open_time, close_time)
            _flash("success", "Business hours updated.")
        except ReservationError as e:
            _flash("error", str(e))
        st.rerun()

    label = "Mark as open day" if hours.is_holiday else "Mark as holiday"
    if st.button(label):
        try:
            remaining = admin.set_holiday(caller, date_str, not hours.is_holiday)
            _flash("success", f"Updated. {remaining} reservation(s) on this day.")
        except ReservationError as e:
            _flash("error", str(e))
        st.rerun()

    if st.button("Repair reserved flags"):
        try:
            fixed = admin.reconcile_day(caller, date_str)
            _flash("info", f"Released {len(fixed)} orphaned menu(s).")
        except ReservationError as e:
            _flash("error", str(e))
        st.rerun()


def main():
    st.set_page_config(
        page_title="Menu Reservations",
        page_icon="🍱",
        layout="centered",
    )

    storage = open_storage()
    identities = StoredUserIdentityProvider(storage)
    engine = ReservationEngine(storage)
    admin = AdminControl(storage)

    with st.sidebar:
        users = identities.list_users()
        user = st.selectbox("Signed in as", users, format_func=lambda u: f"{u.name} ({u.role.value})")
        caller = identities.identify(user.user_id)

        st.markdown("#### My reservations")
        for reservation, menu in engine.reservations_for_user(caller):
            what = html.unescape(menu.name) if menu else "arrival only"
            st.caption(f"{reservation.date} {reservation.reserved_time} · {what}")

    st.title("🍱 Menu Reservations")
    picked = st.date_input("Date", value=datetime.date.today())
    date_str = picked.strftime("%Y-%m-%d")

    _show_flash()
    render_pending(engine, caller)
    render_day(engine, caller, date_str)

    if caller.is_admin:
        st.divider()
        render_admin(admin, caller, date_str)
