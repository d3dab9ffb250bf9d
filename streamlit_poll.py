"""Scheduling poll - propose dates, collect availability, tune settings."""

import calendar
import logging
import os
from datetime import date
from typing import Optional

import streamlit as st
from dotenv import load_dotenv

from models.entities import DayCell, EventDraft
from services.availability import summarize_availability
from services.bulk_selection import SelectionEngine
from services.calendar_grid import (
    WEEKDAY_LABELS,
    MonthGrid,
    build_month_grid,
    current_month,
    next_month,
    prev_month,
)
from services.clock import SystemClock
from services.date_key import get_local_timezone
from services.errors import PollError, ReadOnlySettingsError, TransportError, ValidationError
from services.event_api_client import EventAPIClient
from services.poll_service import PollService, VotingSession, is_settings_read_only
from services.session_storage import StreamlitSessionStorage
from services.settings_reconciler import SettingsReconciler

# ============================================================================
# CONFIGURATION
# ============================================================================

# Load environment variables from .env file
load_dotenv()

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO"),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
st.set_page_config(
    page_title="Scheduling Poll",
    page_icon="🗓️",
    layout="wide"
)

PAGES = ["Create event", "Vote", "Settings"]

# ============================================================================
# SERVICE INITIALIZATION
# ============================================================================

@st.cache_resource
def get_api_client() -> EventAPIClient:
    """Initialize and cache the event API client."""
    return EventAPIClient()


clock = SystemClock()
timezone = get_local_timezone()
storage = StreamlitSessionStorage(st.session_state)
poll_service = PollService(get_api_client(), storage, clock, timezone)

# ============================================================================
# SESSION STATE INITIALIZATION
# ============================================================================

if "selected_dates" not in st.session_state:
    draft = poll_service.draft_store.load()
    st.session_state.selected_dates = draft.selected_dates if draft else frozenset()
    st.session_state.event_title = draft.event_title if draft else ""
    st.session_state.create_month = draft.current_date.replace(day=1) if draft else current_month(clock, timezone)
    st.session_state.active_event_id = None
    st.session_state.voting_session = None
    st.session_state.vote_selected = frozenset()
    st.session_state.vote_month = current_month(clock, timezone)
    st.session_state.reconciler = None
    st.session_state.reconciler_event_id = None
    st.session_state.initial_settings = None

# ============================================================================
# HELPER FUNCTIONS
# ============================================================================

def toggle_day(state_key: str, engine: SelectionEngine, date_key: str):
    st.session_state[state_key] = engine.toggle_single(st.session_state[state_key], date_key)


def toggle_column(state_key: str, engine: SelectionEngine, day_of_week: int, grid: MonthGrid):
    st.session_state[state_key] = engine.toggle_column(st.session_state[state_key], day_of_week, grid)


def toggle_row(state_key: str, engine: SelectionEngine, week_index: int, grid: MonthGrid):
    st.session_state[state_key] = engine.toggle_row(st.session_state[state_key], week_index, grid)


def shift_month(state_key: str, forward: bool):
    reference = st.session_state[state_key]
    st.session_state[state_key] = next_month(reference) if forward else prev_month(reference)


def render_month_calendar(month_key: str, selection_key: str, engine: SelectionEngine, prefix: str):
    """Month grid with day, weekday-column and week-row toggles."""
    grid = build_month_grid(st.session_state[month_key])
    selected = st.session_state[selection_key]

    nav_prev, title, nav_next = st.columns([1, 4, 1])
    nav_prev.button("←", key=f"{prefix}_prev", on_click=shift_month, args=(month_key, False))
    title.markdown(f"### {calendar.month_name[grid.month]} {grid.year}")
    nav_next.button("→", key=f"{prefix}_next", on_click=shift_month, args=(month_key, True))

    header = st.columns(8)
    header[0].markdown("&nbsp;")
    for day_of_week, label in enumerate(WEEKDAY_LABELS):
        header[day_of_week + 1].button(
            label,
            key=f"{prefix}_col_{day_of_week}",
            on_click=toggle_column,
            args=(selection_key, engine, day_of_week, grid),
            use_container_width=True
        )

    for week_index in range(grid.week_count):
        row = st.columns(8)
        row[0].button(
            "▶",
            key=f"{prefix}_row_{week_index}",
            on_click=toggle_row,
            args=(selection_key, engine, week_index, grid),
            help="Toggle the whole week"
        )
        for offset, cell in enumerate(grid.week(week_index)):
            column = row[offset + 1]
            if not isinstance(cell, DayCell):
                column.markdown("&nbsp;")
                continue
            label = f"✅ {cell.day}" if cell.date_key in selected else str(cell.day)
            column.button(
                label,
                key=f"{prefix}_day_{cell.date_key}",
                on_click=toggle_day,
                args=(selection_key, engine, cell.date_key),
                disabled=not engine.is_selectable(cell.date_key),
                use_container_width=True
            )


def show_error(error: Exception):
    if isinstance(error, TransportError):
        st.error(f"Could not reach the event API: {error}")
    elif isinstance(error, ValidationError):
        st.warning(str(error))
    else:
        st.error(str(error))

# ============================================================================
# CREATE EVENT
# ============================================================================

def sync_event_title():
    st.session_state.event_title = st.session_state.event_title_input


def reset_creation():
    st.session_state.selected_dates = frozenset()
    st.session_state.event_title = ""
    st.session_state.event_title_input = ""
    poll_service.draft_store.clear()


def render_create_page():
    st.title("🗓️ New Scheduling Poll")
    st.caption("Pick candidate dates, then share the poll.")

    if "event_title_input" not in st.session_state:
        st.session_state.event_title_input = st.session_state.event_title
    st.text_input(
        "Event title",
        key="event_title_input",
        on_change=sync_event_title,
        placeholder="Team dinner"
    )

    render_month_calendar("create_month", "selected_dates", SelectionEngine(), "create")

    selected = st.session_state.selected_dates
    st.markdown(f"**{len(selected)}** date(s) selected")

    poll_service.draft_store.save(EventDraft(
        event_title=st.session_state.event_title,
        selected_dates=selected,
        current_date=st.session_state.create_month
    ))

    create_col, reset_col = st.columns([3, 1])
    reset_col.button("🔄 Reset", key="reset_creation", on_click=reset_creation)
    if create_col.button("Create event", type="primary", key="create_event"):
        try:
            settings = poll_service.load_settings()
            event_id = poll_service.create_event(st.session_state.event_title, selected, settings)
        except PollError as e:
            show_error(e)
            return
        st.session_state.selected_dates = frozenset()
        st.session_state.event_title = ""
        st.session_state.active_event_id = event_id
        st.session_state.voting_session = None
        st.session_state.next_page = "Vote"
        st.rerun()

# ============================================================================
# VOTE
# ============================================================================

def load_session(event_id: str) -> Optional[VotingSession]:
    try:
        session = poll_service.load_voting_session(event_id)
    except PollError as e:
        show_error(e)
        return None
    st.session_state.vote_selected = session.carry_over_selection(
        st.session_state.voting_session, st.session_state.vote_selected
    )
    st.session_state.voting_session = session
    st.session_state.active_event_id = event_id
    if session.candidate_dates:
        first = session.sorted_candidate_dates[0].split("-")
        st.session_state.vote_month = date(int(first[0]), int(first[1]), 1)
    return session


def render_availability_table(session: VotingSession):
    selected = st.session_state.vote_selected
    summary = summarize_availability(session.candidate_dates, session.people, selected)
    if not summary:
        st.info("This event has no candidate dates.")
        return

    marks = {"strong": " 🔥", "light": " ✨"}
    header = ["Name"] + [f"{item.label} ({item.count}){marks.get(item.highlight, '')}" for item in summary]
    lines = [
        "| " + " | ".join(header) + " |",
        "|" + "---|" * len(header),
        "| *(you)* | " + " | ".join("○" if item.date_key in selected else "×" for item in summary) + " |",
    ]
    for person in session.people:
        cells = ["○" if item.date_key in person.availability else "×" for item in summary]
        lines.append(f"| {person.name} | " + " | ".join(cells) + " |")
    st.markdown("\n".join(lines))


def render_settings_summary(session: VotingSession):
    settings = session.settings
    with st.expander("Poll settings", expanded=False):
        if settings.deadline.enable:
            st.markdown(f"**Deadline:** {settings.deadline.date} {settings.deadline.time}")
        else:
            st.markdown("**Deadline:** none")
        if settings.auto_decision.enable:
            threshold = settings.auto_decision.threshold
            st.markdown(f"**Auto decision:** at {threshold} votes" if threshold else "**Auto decision:** on")
        else:
            st.markdown("**Auto decision:** off")
        if settings.rss.enable:
            st.markdown("**RSS feed URL:**")
            st.code(poll_service.rss_feed_url(session.event.id))
            st.caption("Register this URL in an RSS reader or a Slack/Discord bot to be notified when a date is decided.")


def render_vote_page():
    st.title("🗳️ Vote")

    event_id = st.text_input("Event ID", value=st.session_state.active_event_id or "", key="vote_event_id")
    if st.button("Load event", key="load_event") and event_id.strip():
        load_session(event_id.strip())

    session = st.session_state.voting_session
    if session is None:
        st.info("Enter an event ID to load the poll.")
        return

    st.subheader(session.event.title)
    st.caption(f"Event ID: {session.event.id}")
    render_settings_summary(session)

    render_month_calendar("vote_month", "vote_selected", session.selection_engine(), "vote")
    render_availability_table(session)

    name = st.text_input("Your name", key="voter_name")
    confirm_empty = True
    if not st.session_state.vote_selected:
        confirm_empty = st.checkbox("Submit without selecting any date", key="confirm_empty_vote")

    if st.button("Register", type="primary", key="register_vote", disabled=not confirm_empty):
        try:
            poll_service.submit_availability(session, name, st.session_state.vote_selected)
        except PollError as e:
            show_error(e)
            return
        st.session_state.vote_selected = frozenset()
        load_session(session.event.id)
        st.success("Thanks, your availability was registered.")
        st.rerun()

# ============================================================================
# SETTINGS
# ============================================================================

FORM_WIDGETS = {
    "form_allow_setting_changes": "allow_setting_changes",
    "form_deadline_enable": "deadline.enable",
    "form_deadline_date": "deadline.date",
    "form_deadline_time": "deadline.time",
    "form_auto_decision_enable": "auto_decision.enable",
    "form_auto_decision_threshold": "auto_decision.threshold",
    "form_rss_enable": "rss.enable",
}


def form_values(reconciler: SettingsReconciler) -> dict:
    settings = reconciler.settings
    return {
        "form_allow_setting_changes": settings.allow_setting_changes,
        "form_deadline_enable": settings.deadline.enable,
        "form_deadline_date": settings.deadline.date,
        "form_deadline_time": settings.deadline.time,
        "form_auto_decision_enable": settings.auto_decision.enable,
        "form_auto_decision_threshold": settings.auto_decision.threshold,
        "form_rss_enable": settings.rss.enable,
    }


def push_reconciler_to_widgets(reconciler: SettingsReconciler, only_missing: bool = False):
    for key, value in form_values(reconciler).items():
        if not only_missing or key not in st.session_state:
            st.session_state[key] = value
    if not only_missing or "settings_document" not in st.session_state:
        st.session_state.settings_document = reconciler.document


def on_form_change(widget_key: str):
    reconciler = st.session_state.reconciler
    reconciler.set_field(FORM_WIDGETS[widget_key], st.session_state[widget_key])
    if not reconciler.is_editing:
        st.session_state.settings_document = reconciler.document


def on_document_change():
    reconciler = st.session_state.reconciler
    reconciler.edit_document(st.session_state.settings_document)
    # text areas report changes when they lose focus
    if reconciler.blur_document():
        push_reconciler_to_widgets(reconciler)


def on_reset_settings():
    reconciler = st.session_state.reconciler
    reconciler.reset(poll_service.default_settings())
    push_reconciler_to_widgets(reconciler)


def render_settings_page():
    st.title("⚙️ Poll Settings")

    event_id = st.session_state.active_event_id
    edit_event = bool(event_id) and st.checkbox(
        f"Edit the settings of event {event_id}", value=True, key="settings_for_event"
    )
    target_event_id = event_id if edit_event else None

    if st.session_state.reconciler is None or st.session_state.reconciler_event_id != target_event_id:
        initial = poll_service.load_settings(target_event_id)
        st.session_state.initial_settings = initial
        st.session_state.reconciler = SettingsReconciler(initial, clock, timezone)
        st.session_state.reconciler_event_id = target_event_id
        push_reconciler_to_widgets(st.session_state.reconciler)
    else:
        push_reconciler_to_widgets(st.session_state.reconciler, only_missing=True)

    reconciler = st.session_state.reconciler
    read_only = is_settings_read_only(target_event_id, st.session_state.initial_settings)
    if read_only:
        st.warning("⚠️ This event does not allow setting changes. Settings are read-only.")

    form_col, document_col = st.columns(2)

    with form_col:
        st.subheader("Form")
        st.checkbox("Allow setting changes after creation", key="form_allow_setting_changes",
                    on_change=on_form_change, args=("form_allow_setting_changes",), disabled=read_only)
        st.checkbox("Enable deadline", key="form_deadline_enable",
                    on_change=on_form_change, args=("form_deadline_enable",), disabled=read_only)
        st.text_input("Deadline date (YYYY-MM-DD)", key="form_deadline_date",
                      on_change=on_form_change, args=("form_deadline_date",),
                      disabled=read_only or not reconciler.settings.deadline.enable)
        st.text_input("Deadline time (HH:mm)", key="form_deadline_time",
                      on_change=on_form_change, args=("form_deadline_time",),
                      disabled=read_only or not reconciler.settings.deadline.enable)
        st.checkbox("Decide automatically", key="form_auto_decision_enable",
                    on_change=on_form_change, args=("form_auto_decision_enable",), disabled=read_only)
        st.number_input("Votes needed to decide", min_value=0, step=1, key="form_auto_decision_threshold",
                        on_change=on_form_change, args=("form_auto_decision_threshold",),
                        disabled=read_only or not reconciler.settings.auto_decision.enable)
        st.checkbox("Publish an RSS feed", key="form_rss_enable",
                    on_change=on_form_change, args=("form_rss_enable",), disabled=read_only)
        if reconciler.settings.rss.enable and target_event_id:
            st.code(poll_service.rss_feed_url(target_event_id))

    with document_col:
        st.subheader("JSON")
        st.text_area("Settings document", key="settings_document", height=360,
                     on_change=on_document_change, disabled=read_only)
        if reconciler.has_error:
            st.error(reconciler.error)

    save_col, reset_col = st.columns([3, 1])
    reset_col.button("Reset to defaults", key="reset_settings", on_click=on_reset_settings, disabled=read_only)
    if save_col.button("Save settings", type="primary", key="save_settings", disabled=read_only):
        try:
            poll_service.save_settings(reconciler, target_event_id, st.session_state.initial_settings)
        except ReadOnlySettingsError as e:
            st.warning(str(e))
            return
        except PollError as e:
            show_error(e)
            return
        st.session_state.initial_settings = reconciler.settings
        if target_event_id and st.session_state.voting_session is not None:
            st.session_state.voting_session = None
        st.success("Settings saved.")

# ============================================================================
# MAIN
# ============================================================================

# a page switch requested by the previous run
if "next_page" in st.session_state:
    st.session_state.page = st.session_state.pop("next_page")

with st.sidebar:
    st.header("🗓️ Scheduling Poll")
    page = st.radio("Page", PAGES, key="page")
    if st.session_state.active_event_id:
        st.markdown(f"**Current event:** `{st.session_state.active_event_id}`")

if page == "Create event":
    render_create_page()
elif page == "Vote":
    render_vote_page()
else:
    render_settings_page()
