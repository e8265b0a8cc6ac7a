"""
Streamlit Dashboard for Family Ledger

The family-facing interface: create accounts and tasks, assign and
complete tasks, and watch the leaderboard.

DESIGN PRINCIPLES:
1. One ledger per running app, shared by every browser session
2. Every store call goes through a single lock (the store itself has none)
3. Store errors are shown as plain messages, never as tracebacks
4. Each button press gets its own correlation id in the audit trail
"""

import threading

import streamlit as st

from family_ledger.audit import create_correlation_id
from family_ledger.config import get_settings, validate_all_settings
from family_ledger.errors import ConflictError, LedgerError, NotFoundError, ValidationError
from family_ledger.orchestrator import create_app_components
from family_ledger.validation import LedgerValidator


# Page configuration
st.set_page_config(
    page_title="Family Ledger",
    page_icon="🏆",
    layout="wide",
    initial_sidebar_state="expanded",
)


@st.cache_resource
def get_components():
    """Get or create the shared ledger and its lock (cached for the app lifetime)."""
    store, audit_logger, audit_storage = create_app_components()
    return store, audit_logger, audit_storage, threading.Lock()


def show_error(error: LedgerError):
    """Map a store error to a user-facing message."""
    if isinstance(error, ValidationError):
        st.error(f"❌ Invalid {error.field}: {error.reason}")
    elif isinstance(error, NotFoundError):
        st.error(f"🔍 No {error.entity} with id {error.entity_id}")
    elif isinstance(error, ConflictError):
        st.warning(f"⚠️ {error.entity.title()} {error.entity_id} is {error.reason}")
    else:
        st.error(f"Error: {error}")


def main():
    """Main application entry point."""
    store, _, audit_storage, lock = get_components()

    st.sidebar.title("🏆 Family Ledger")
    st.sidebar.markdown("---")

    page = st.sidebar.radio(
        "Navigate to:",
        ["🏆 Leaderboard", "👤 Accounts", "📋 Tasks", "🧾 Audit Trail", "⚙️ Settings"],
        index=0,
    )

    st.sidebar.markdown("---")
    st.sidebar.markdown(
        """
        **How it works:**
        1. Add family members
        2. Create tasks with a points reward
        3. Assign a task, then mark it complete
        4. Points go to whoever the task is assigned to
        """
    )

    if page == "🏆 Leaderboard":
        render_leaderboard_page(store, lock)
    elif page == "👤 Accounts":
        render_accounts_page(store, lock)
    elif page == "📋 Tasks":
        render_tasks_page(store, lock)
    elif page == "🧾 Audit Trail":
        render_audit_page(audit_storage, lock)
    elif page == "⚙️ Settings":
        render_settings_page()


def render_leaderboard_page(store, lock):
    """Render the ranked leaderboard."""
    st.title("🏆 Leaderboard")

    limit = get_settings().ledger.leaderboard_limit
    with lock:
        entries = store.ranked_leaderboard(limit=limit)

    if not entries:
        st.info("No accounts yet. Add someone on the 'Accounts' page.")
        return

    st.table([
        {
            "Rank": entry.rank,
            "Name": entry.account.username,
            "Role": entry.account.role,
            "Points": entry.points,
            "Tasks Done": entry.completed_tasks,
        }
        for entry in entries
    ])


def render_accounts_page(store, lock):
    """Render account creation and the per-account history."""
    st.title("👤 Accounts")

    with st.form("create_account"):
        username = st.text_input("Username")
        email = st.text_input("Email")
        role = st.text_input("Role", value=get_settings().ledger.default_role)
        submitted = st.form_submit_button("➕ Add Account", type="primary")

    if submitted:
        issues = LedgerValidator().account_issues(username, email)
        if issues:
            st.error(LedgerValidator.get_user_friendly_summary(issues))
        else:
            try:
                with lock:
                    account = store.create_account(
                        username, email, role, correlation_id=create_correlation_id()
                    )
                st.success(f"✅ Created {account.username} (id {account.id})")
            except LedgerError as e:
                show_error(e)

    st.markdown("---")

    with lock:
        accounts = store.list_accounts()

    for account in accounts:
        with st.expander(f"{account.username} · {account.points} points"):
            with lock:
                stats = store.account_stats(account.id)
                history = store.points_history(account.id)
            st.markdown(
                f"**Email:** {account.email}  \n"
                f"**Role:** {account.role}  \n"
                f"**Tasks:** {stats.completed_tasks} done, {stats.pending_tasks} pending"
            )
            for entry in history:
                st.markdown(
                    f"- +{entry.points_change} ({entry.reason}) → {entry.total_points} "
                    f"· {entry.created_at.strftime('%d %b %Y %H:%M')}"
                )


def render_tasks_page(store, lock):
    """Render task creation, assignment and completion."""
    st.title("📋 Tasks")

    with st.form("create_task"):
        title = st.text_input("Title")
        description = st.text_area("Description")
        points = st.number_input("Points", value=10, step=1)
        submitted = st.form_submit_button("➕ Add Task", type="primary")

    if submitted:
        try:
            with lock:
                task = store.create_task(
                    title, description, int(points), correlation_id=create_correlation_id()
                )
            st.success(f"✅ Created task '{task.title}' (id {task.id})")
        except LedgerError as e:
            show_error(e)

    st.markdown("---")

    with lock:
        tasks = store.list_tasks()
        accounts = store.list_accounts()

    if not tasks:
        st.info("No tasks yet.")
        return

    names = {account.id: account.username for account in accounts}

    for task in tasks:
        status = "✅ done" if task.completed else "⏳ open"
        assignee = names.get(task.assigned_to, "unassigned")
        col1, col2, col3 = st.columns([3, 2, 1])

        with col1:
            st.markdown(f"**{task.title}** · {task.points} pts · {status} · {assignee}")
            if task.description:
                st.caption(task.description)

        with col2:
            account_id = st.selectbox(
                "Assign to",
                options=[account.id for account in accounts],
                format_func=lambda x: names[x],
                key=f"assignee_{task.id}",
                label_visibility="collapsed",
            )
            if st.button("👉 Assign", key=f"assign_{task.id}") and account_id is not None:
                try:
                    with lock:
                        store.assign_task(task.id, account_id, correlation_id=create_correlation_id())
                    st.rerun()
                except LedgerError as e:
                    show_error(e)

        with col3:
            if st.button("✔️ Complete", key=f"complete_{task.id}", disabled=task.completed):
                try:
                    with lock:
                        store.complete_task(task.id, correlation_id=create_correlation_id())
                    st.rerun()
                except LedgerError as e:
                    show_error(e)


def render_audit_page(audit_storage, lock):
    """Render the most recent audit events."""
    st.title("🧾 Audit Trail")

    if audit_storage is None:
        st.info("The audit trail is disabled (LEDGER_AUDIT_ENABLED=false).")
        return

    with lock:
        events = audit_storage.get_recent_events(limit=100)
    if not events:
        st.info("Nothing has happened yet.")
        return

    st.table([
        {
            "Time": event.timestamp.strftime("%H:%M:%S"),
            "Event": event.event_type.value,
            "Severity": event.severity.value,
            "Description": event.description,
        }
        for event in events
    ])


def render_settings_page():
    """Render the settings page."""
    st.title("⚙️ Settings")

    status = validate_all_settings()

    sections = [
        ("Ledger", "ledger"),
        ("Logging", "logging"),
        ("Application", "app"),
    ]

    for name, key in sections:
        if status.get(key, False):
            st.success(f"✅ {name} settings loaded")
        else:
            st.error(f"❌ {name} - {status.get(f'{key}_error', 'Invalid')}")

    st.markdown("---")
    st.markdown("### Current Ledger Configuration")
    st.json(get_settings().ledger.model_dump())


if __name__ == "__main__":
    main()
