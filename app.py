from __future__ import annotations

from collections.abc import Callable
from datetime import date
from html import escape
from typing import Any

import streamlit as st

from src.config.settings import ensure_runtime_dirs, load_settings, validate_settings
from src.db.sqlite_client import get_connection, init_schema
from src.engine.admin import (
    admin_add_model,
    admin_create_event,
    admin_delete_model,
    admin_list_events,
    admin_set_event_status,
    admin_stats,
)
from src.engine.ballot import Ballot
from src.engine.catalog import ensure_default_event, list_events, list_models
from src.engine.errors import AuthFailure, DuplicateVote, VotingError
from src.engine.stats import model_performance
from src.engine.voting import get_participant_votes, submit_vote
from src.sessions.manager import authenticate, revoke
from src.utils.health import readiness
from src.utils.timefmt import format_event_date, format_timestamp


def _inject_styles() -> None:
    st.markdown(
        """
        <style>
        .al-avatar {
            width: 3.5rem;
            height: 3.5rem;
            border-radius: 50%;
            margin: 0 auto 0.5rem auto;
            display: flex;
            align-items: center;
            justify-content: center;
            color: white;
            font-size: 1.5rem;
            font-weight: 800;
        }
        .al-card-title {
            text-align: center;
            font-weight: 700;
            margin: 0;
        }
        .al-muted {
            text-align: center;
            font-size: 0.9rem;
            opacity: 0.8;
        }
        </style>
        """,
        unsafe_allow_html=True,
    )


@st.cache_resource
def get_runtime() -> dict[str, Any]:
    settings = load_settings()
    ensure_runtime_dirs(settings)
    errors = validate_settings(settings)
    conn: Any | None = None
    try:
        conn = get_connection(settings.sqlite_db_path)
        init_schema(conn)
        ensure_default_event(conn, settings.default_event_name)
    except Exception as exc:
        errors.append(f"Database initialization failed: {exc}")
    return {"settings": settings, "conn": conn, "errors": errors}


def init_state() -> None:
    defaults = {
        "current_view": "welcome",
        "ballot": None,
        "models": [],
        "admin_token": None,
        "admin_notice": "",
    }
    for key, value in defaults.items():
        if key not in st.session_state:
            st.session_state[key] = value


def _event_label(event: dict[str, Any]) -> str:
    return f"{event['name']} ({format_event_date(event.get('date'))})"


# Participant flow


def render_welcome(runtime: dict[str, Any]) -> None:
    conn = runtime["conn"]
    settings = runtime["settings"]
    st.subheader("Vote for the best AI")
    events = list_events(conn, active_only=True)
    if not events:
        st.info("No active events right now. Check back soon.")
        return
    name = st.text_input("Your name", max_chars=50)
    event = st.selectbox(
        "Event",
        events,
        index=None,
        placeholder="Select an event...",
        format_func=_event_label,
    )
    if st.button("Start voting", disabled=not (name.strip() and event)):
        models = list_models(conn, int(event["id"]))
        if not models:
            st.error("No models found for this event. Please contact the administrator.")
            return
        previous = get_participant_votes(conn, int(event["id"]), name)
        ballot = Ballot.resume(
            int(event["id"]), name.strip(), previous, question_count=settings.question_count
        )
        st.session_state.ballot = ballot
        st.session_state.models = models
        st.session_state.current_view = "complete" if ballot.is_complete else "question"
        st.rerun()


def _render_model_card(model: dict[str, Any], ballot: Ballot) -> None:
    chosen = ballot.selected == model["name"]
    with st.container(border=True):
        initial = escape(str(model["name"])[:1].upper())
        st.markdown(
            f'<div class="al-avatar" style="background-color: {escape(model["color"])}">'
            f"{initial}</div>"
            f'<p class="al-card-title">{escape(model["name"])}</p>'
            f'<p class="al-muted">{escape(model.get("description") or "")}</p>',
            unsafe_allow_html=True,
        )
        label = "Selected" if chosen else "Choose"
        if st.button(
            label,
            key=f"pick_{ballot.current}_{model['id']}",
            type="primary" if chosen else "secondary",
            disabled=ballot.is_locked,
            use_container_width=True,
        ):
            ballot.select(model["name"])
            st.rerun()


def render_question(runtime: dict[str, Any]) -> None:
    conn = runtime["conn"]
    ballot: Ballot | None = st.session_state.ballot
    if ballot is None:
        st.session_state.current_view = "welcome"
        st.rerun()
        return
    st.progress(
        ballot.progress, text=f"Question {ballot.current} of {ballot.question_count}"
    )
    st.markdown(f"### Question {ballot.current}: Which AI model performed best?")
    models = st.session_state.models
    columns = st.columns(min(len(models), 3) or 1)
    for idx, model in enumerate(models):
        with columns[idx % len(columns)]:
            _render_model_card(model, ballot)
    st.write(f"Selected: **{ballot.selected or 'None'}**")
    if ballot.is_locked:
        st.caption("Your vote for this question has been recorded.")

    prev_col, next_col = st.columns(2)
    with prev_col:
        if st.button("Previous", disabled=ballot.current == 1):
            ballot.back()
            st.rerun()
    with next_col:
        last = ballot.current == ballot.question_count
        if st.button("Finish" if last else "Next", disabled=not ballot.selected):

            def _submit(question: int, model_name: str) -> int:
                return submit_vote(
                    conn,
                    ballot.event_id,
                    ballot.participant_name,
                    question,
                    model_name,
                    question_count=ballot.question_count,
                )

            try:
                with st.spinner("Submitting vote..."):
                    ballot.advance(_submit)
            except DuplicateVote as exc:
                previous = get_participant_votes(
                    conn, ballot.event_id, ballot.participant_name
                )
                ballot = Ballot.resume(
                    ballot.event_id,
                    ballot.participant_name,
                    previous,
                    question_count=ballot.question_count,
                )
                st.session_state.ballot = ballot
                st.toast(f"{exc}. Your earlier vote was kept.")
            except VotingError as exc:
                st.error(f"Failed to submit vote: {exc}")
                return
            if ballot.is_complete:
                st.session_state.current_view = "complete"
            st.rerun()


def render_complete() -> None:
    st.success("Thank you! All of your votes have been recorded.")
    if st.button("Vote again"):
        st.session_state.ballot = None
        st.session_state.models = []
        st.session_state.current_view = "welcome"
        st.rerun()


# Admin console


def _expire_admin_session(message: str = "Your session has expired. Please log in again.") -> None:
    st.session_state.admin_token = None
    st.session_state.admin_notice = message
    st.rerun()


def _admin_call(fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
    """Run an admin-only operation; any auth failure forces a fresh login."""
    try:
        return fn(*args, **kwargs)
    except AuthFailure:
        _expire_admin_session()
    return None


def render_admin_login(runtime: dict[str, Any]) -> None:
    st.subheader("Admin login")
    if st.session_state.admin_notice:
        st.warning(st.session_state.admin_notice)
    with st.form("admin_login"):
        username = st.text_input("Username")
        password = st.text_input("Password", type="password")
        submitted = st.form_submit_button("Log in")
    if submitted:
        try:
            token = authenticate(runtime["conn"], username, password, runtime["settings"])
        except AuthFailure as exc:
            st.error(str(exc))
            return
        st.session_state.admin_token = token
        st.session_state.admin_notice = ""
        st.rerun()


def render_stats(runtime: dict[str, Any]) -> None:
    settings = runtime["settings"]

    @st.fragment(run_every=settings.stats_refresh_seconds)
    def _stats_panel() -> None:
        stats = _admin_call(admin_stats, runtime["conn"], st.session_state.admin_token, settings)
        if stats is None:
            return
        win_counts = stats["modelWinCounts"]
        leader = stats["votesByModel"][0]["selected_model"] if stats["votesByModel"] else "-"
        total_col, people_col, events_col, leader_col = st.columns(4)
        total_col.metric("Total votes", stats["totalVotes"])
        people_col.metric("Participants", stats["uniqueParticipants"])
        events_col.metric("Events", len(stats["votesByEvent"]))
        leader_col.metric("Leading model", leader)

        model_col, question_col, won_col = st.columns(3)
        with model_col:
            st.markdown("#### Votes by model")
            if stats["votesByModel"]:
                st.bar_chart(stats["votesByModel"], x="selected_model", y="votes")
            else:
                st.caption("No votes yet.")
        with question_col:
            st.markdown("#### Votes by question")
            st.bar_chart(stats["votesByQuestion"], x="question_number", y="votes")
        with won_col:
            st.markdown("#### Questions won")
            if win_counts:
                st.bar_chart(win_counts, x="selected_model", y="questions_won")
            else:
                st.caption("No winners yet.")

        st.markdown("#### Model performance")
        st.dataframe(
            model_performance(stats["votesByModel"], win_counts),
            use_container_width=True,
            hide_index=True,
        )
        st.markdown("#### Question winners")
        winners = [row for row in stats["questionWinners"] if row["rank"] == 1]
        st.dataframe(winners, use_container_width=True, hide_index=True)
        st.markdown("#### Votes by event")
        st.dataframe(stats["votesByEvent"], use_container_width=True, hide_index=True)
        st.markdown("#### Recent votes")
        st.dataframe(
            [
                {
                    "time": format_timestamp(vote["timestamp"]),
                    "event": vote["event_name"],
                    "participant": vote["participant_name"],
                    "question": vote["question_number"],
                    "model": vote["selected_model"],
                }
                for vote in stats["recentVotes"]
            ],
            use_container_width=True,
            hide_index=True,
        )
        st.caption(f"Refreshes every {settings.stats_refresh_seconds} seconds.")

    _stats_panel()


def render_events_admin(runtime: dict[str, Any]) -> None:
    conn = runtime["conn"]
    token = st.session_state.admin_token
    with st.form("create_event", clear_on_submit=True):
        name = st.text_input("Event name")
        event_date = st.date_input("Event date", value=date.today())
        submitted = st.form_submit_button("Create event")
    if submitted:
        try:
            event_id = _admin_call(
                admin_create_event, conn, token, name, event_date.isoformat() if event_date else ""
            )
            if event_id is not None:
                st.success(f"Event created (id {event_id}).")
        except VotingError as exc:
            st.error(str(exc))

    events = _admin_call(admin_list_events, conn, token) or []
    for event in events:
        label_col, status_col = st.columns([3, 1])
        label_col.write(
            f"**{_event_label(event)}** · {event['status']} · "
            f"{event.get('model_count', 0)} models"
        )
        target = "inactive" if event["status"] == "active" else "active"
        if status_col.button(f"Mark {target}", key=f"status_{event['id']}"):
            _admin_call(admin_set_event_status, conn, token, int(event["id"]), target)
            st.rerun()


def render_models_admin(runtime: dict[str, Any]) -> None:
    conn = runtime["conn"]
    settings = runtime["settings"]
    token = st.session_state.admin_token
    events = _admin_call(admin_list_events, conn, token) or []
    if not events:
        st.info("Create an event first.")
        return
    event = st.selectbox("Event", events, format_func=_event_label, key="models_event")
    event_id = int(event["id"])

    with st.form("add_model", clear_on_submit=True):
        name = st.text_input("Model name")
        description = st.text_input("Description")
        color = st.color_picker("Colour", value=settings.default_model_color)
        submitted = st.form_submit_button("Add model")
    if submitted:
        try:
            model_id = _admin_call(
                admin_add_model, conn, token, settings, event_id, name, description, color
            )
            if model_id is not None:
                st.success(f"Model added (id {model_id}).")
        except VotingError as exc:
            st.error(str(exc))

    models = list_models(conn, event_id)
    if not models:
        st.caption("No models for this event yet.")
    for model in models:
        info_col, delete_col = st.columns([4, 1])
        info_col.markdown(
            f'<span style="color: {escape(model["color"])}">&#9679;</span> '
            f"**{escape(model['name'])}** {escape(model.get('description') or '')}",
            unsafe_allow_html=True,
        )
        if delete_col.button("Delete", key=f"delete_model_{model['id']}"):
            _admin_call(admin_delete_model, conn, token, event_id, int(model["id"]))
            st.rerun()


def render_admin(runtime: dict[str, Any]) -> None:
    if not st.session_state.admin_token:
        render_admin_login(runtime)
        return
    if st.sidebar.button("Log out"):
        revoke(runtime["conn"], st.session_state.admin_token)
        _expire_admin_session("You have been logged out.")
    dashboard, events, models = st.tabs(["Dashboard", "Events", "Models"])
    with dashboard:
        render_stats(runtime)
    with events:
        render_events_admin(runtime)
    with models:
        render_models_admin(runtime)


def main() -> None:
    st.set_page_config(
        page_title="AI League Game Show",
        page_icon=":trophy:",
        layout="wide",
        initial_sidebar_state="collapsed",
    )
    init_state()
    _inject_styles()
    runtime = get_runtime()
    if runtime["errors"]:
        st.error("Startup validation failed.")
        for error in runtime["errors"]:
            st.write(f"- {error}")
        return
    status = readiness(runtime["conn"])
    if not status["ok"]:
        st.error("Readiness check failed.")
        st.json(status)
        return

    st.title("AI League Game Show")
    if st.query_params.get("view") == "admin":
        render_admin(runtime)
    elif st.session_state.current_view == "question":
        render_question(runtime)
    elif st.session_state.current_view == "complete":
        render_complete()
    else:
        render_welcome(runtime)


if __name__ == "__main__":
    main()
