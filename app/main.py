"""
Streamlit Frontend for Finance Desk

The back office screens of the finance/CRM system:
- Balance audit trail of the bank accounts
- Status history of a transaction
- Lead sources (list, add, deactivate)
- Chat with the financial assistant

Every table has clickable column headers. A click toggles the sort on
that column and refetches; the header shows ↕ (unsorted), ↑ or ↓.
"""

import asyncio
from typing import Optional

import streamlit as st

from src.audit import AuditLogger, create_correlation_id
from src.config import get_settings, validate_all_settings
from src.models.assistant import ConversationTurn, SystemDataSnapshot
from src.orchestrator import create_app_components, create_lead_source_service
from src.services.storage import RemoteCollectionClient
from src.views import (
    LeadSourceService,
    SortableRemoteView,
    bank_balance_audit_view,
    transaction_status_history_view,
)


# Page configuration
st.set_page_config(
    page_title="Finance Desk",
    page_icon="💼",
    layout="wide",
    initial_sidebar_state="expanded",
)

BALANCE_AUDIT_COLUMNS = [
    ("created_at", "Date"),
    ("operation", "Operation"),
    ("old_balance", "Old balance"),
    ("new_balance", "New balance"),
    ("balance_change", "Change"),
    ("description", "Description"),
]

STATUS_HISTORY_COLUMNS = [
    ("created_at", "Date"),
    ("old_status", "From"),
    ("new_status", "To"),
    ("observation", "Observation"),
    ("created_by_name", "By"),
]

LEAD_SOURCE_COLUMNS = [
    ("name", "Name"),
    ("created_at", "Created"),
]


def run_async(coro):
    """Helper to run async functions in Streamlit."""
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


@st.cache_resource
def get_components():
    """Get or create application components (cached)."""
    return create_app_components(use_storage=True)


def main():
    """Main application entry point."""
    collection_client, gateway, audit_logger = get_components()

    st.sidebar.title("💼 Finance Desk")
    st.sidebar.markdown("---")

    page = st.sidebar.radio(
        "Navigate to:",
        [
            "🏦 Balance Audit",
            "🔁 Status History",
            "📣 Lead Sources",
            "🤖 Assistant",
            "⚙️ Settings",
        ],
        index=0,
    )

    if page == "⚙️ Settings":
        render_settings_page()
    elif page == "🤖 Assistant":
        render_assistant_page(gateway)
    elif collection_client is None:
        st.warning(
            "Google Sheets is not configured. "
            "Check the Settings page for the connection status."
        )
    elif page == "🏦 Balance Audit":
        render_balance_audit_page(collection_client, audit_logger)
    elif page == "🔁 Status History":
        render_status_history_page(collection_client, audit_logger)
    elif page == "📣 Lead Sources":
        render_lead_sources_page(
            create_lead_source_service(collection_client, audit_logger)
        )


def render_sortable_table(view: SortableRemoteView, columns: list[tuple[str, str]], key: str):
    """Header buttons that toggle the sort, then the current rows."""
    header = st.columns(len(columns))
    for col, (column_key, label) in zip(header, columns):
        glyph = view.indicator(column_key).glyph
        if col.button(f"{label} {glyph}", key=f"{key}_sort_{column_key}"):
            run_async(view.sort_by(column_key))
            st.rerun()

    result = view.result
    if result.error is not None:
        st.error(f"Could not load data ({result.error.value}): {result.error_message}")
        return
    if not result.rows:
        st.info("No records found.")
        return

    st.dataframe(
        [
            {label: getattr(row, column_key, None) for column_key, label in columns}
            for row in result.rows
        ],
        use_container_width=True,
        hide_index=True,
    )

    prev_col, page_col, next_col = st.columns([1, 2, 1])
    if prev_col.button("← Previous", key=f"{key}_prev", disabled=view.page == 0):
        view.previous_page()
        run_async(view.refresh())
        st.rerun()
    page_col.markdown(f"Page {view.page + 1}")
    if next_col.button("Next →", key=f"{key}_next", disabled=not view.has_next_page):
        view.next_page()
        run_async(view.refresh())
        st.rerun()


def _session_view(key: str, factory) -> SortableRemoteView:
    """Keep one view per screen across reruns; fetch it on first use."""
    if key not in st.session_state:
        view = factory()
        run_async(view.refresh())
        st.session_state[key] = view
    return st.session_state[key]


def render_balance_audit_page(client: RemoteCollectionClient, audit_logger: AuditLogger):
    """Render the balance audit page."""
    st.title("🏦 Balance Audit")
    st.markdown("Every change of your bank account balances, newest first.")

    account_id = st.text_input("Bank account ID (leave empty for all accounts)").strip()
    view_key = f"balance_audit_view_{account_id}"

    view = _session_view(
        view_key,
        lambda: bank_balance_audit_view(
            client,
            bank_account_id=account_id or None,
            limit=get_settings().app.default_page_size,
            audit_logger=audit_logger,
        ),
    )
    render_sortable_table(view, BALANCE_AUDIT_COLUMNS, key="balance_audit")


def render_status_history_page(client: RemoteCollectionClient, audit_logger: AuditLogger):
    """Render the transaction status history page."""
    st.title("🔁 Status History")

    transaction_id = st.text_input("Transaction ID").strip()
    if not transaction_id:
        st.info("Enter a transaction ID to see its status history.")
        return

    view = _session_view(
        f"status_history_view_{transaction_id}",
        lambda: transaction_status_history_view(
            client,
            transaction_id,
            audit_logger=audit_logger,
        ),
    )
    render_sortable_table(view, STATUS_HISTORY_COLUMNS, key="status_history")


def render_lead_sources_page(service: LeadSourceService):
    """Render the lead sources page."""
    st.title("📣 Lead Sources")
    st.markdown("Where your leads come from.")

    view = _session_view(
        "lead_sources_view",
        lambda: service.active_sources_view(limit=get_settings().app.default_page_size),
    )

    with st.form("new_lead_source", clear_on_submit=True):
        name = st.text_input("New source name")
        if st.form_submit_button("➕ Add Source", type="primary"):
            result = run_async(
                service.create(name, correlation_id=create_correlation_id())
            )
            if result.ok:
                st.success(f"Added '{result.rows[0].name}'")
                run_async(view.refresh())
            else:
                st.error(result.error_message)

    render_sortable_table(view, LEAD_SOURCE_COLUMNS, key="lead_sources")

    if view.rows:
        st.markdown("---")
        choice = st.selectbox(
            "Deactivate a source",
            options=view.rows,
            format_func=lambda source: source.name,
        )
        if st.button("🗑️ Deactivate") and choice is not None:
            result = run_async(
                service.deactivate(choice.id, correlation_id=create_correlation_id())
            )
            if result.ok:
                st.success(f"'{choice.name}' deactivated")
                run_async(view.refresh())
                st.rerun()
            else:
                st.error(result.error_message)


def render_assistant_page(gateway):
    """Render the assistant chat page."""
    st.title("🤖 Financial Assistant")

    if gateway is None:
        st.warning("The assistant is not configured. Set GEMINI_API_KEY in your `.env`.")
        return

    if "chat_history" not in st.session_state:
        st.session_state.chat_history = []

    with st.expander("📊 Your figures (shared with the assistant)"):
        col1, col2, col3 = st.columns(3)
        total_income = col1.number_input("Total income", value=0.0, step=100.0)
        total_expense = col2.number_input("Total expenses", value=0.0, step=100.0)
        balance = col3.number_input("Current balance", value=0.0, step=100.0)
        col4, col5 = st.columns(2)
        pending = col4.number_input("Pending transactions", value=0, step=1, min_value=0)
        accounts = col5.number_input("Bank accounts", value=0, step=1, min_value=0)

    for turn in st.session_state.chat_history:
        with st.chat_message(turn.role):
            st.markdown(turn.text)

    message: Optional[str] = st.chat_input("Ask about your finances...")
    if not message:
        return

    with st.chat_message("user"):
        st.markdown(message)

    snapshot = SystemDataSnapshot(
        total_income=total_income,
        total_expense=total_expense,
        balance=balance,
        pending_transactions=int(pending),
        accounts_count=int(accounts),
    )

    with st.spinner("Thinking..."):
        result = run_async(
            gateway.relay(
                message,
                snapshot,
                st.session_state.chat_history,
                correlation_id=create_correlation_id(),
            )
        )

    if not result.ok:
        st.error(f"The assistant could not answer: {result.error_message}")
        return

    st.session_state.chat_history.append(ConversationTurn(role="user", text=message))
    st.session_state.chat_history.append(
        ConversationTurn(role="assistant", text=result.reply.response)
    )
    with st.chat_message("assistant"):
        st.markdown(result.reply.response)
        st.caption(
            f"{result.reply.type.value} · {result.reply.tokens_used} tokens · "
            f"{result.reply.credits_used} credits"
        )


def render_settings_page():
    """Render the settings page."""
    st.title("⚙️ Settings")

    st.markdown("### Connection Status")

    status = validate_all_settings()

    services = [
        ("Google Sheets (Storage)", "google_sheets"),
        ("Gemini (Assistant)", "gemini"),
        ("Application", "app"),
    ]

    for name, key in services:
        if status.get(key, False):
            st.success(f"✅ {name} - Configured")
        else:
            error = status.get(f"{key}_error", "Not configured")
            st.error(f"❌ {name} - {error}")

    st.markdown("---")
    st.markdown("### Configuration")
    st.markdown(
        "To configure the application, create a `.env` file with your credentials. "
        "See `.env.example` for the required variables."
    )


if __name__ == "__main__":
    main()
