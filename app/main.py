"""
Streamlit Frontend for Money Planner

This is the dashboard users interact with daily.

DESIGN PRINCIPLES:
1. The UI only renders snapshots and collects input
2. Every change goes through the MoneyPlanner session
3. Clear success/error messages for every action
4. Reset always asks for confirmation first
"""

import streamlit as st

from money_planner.config import get_settings
from money_planner.models.finance import (
    EXPENSE_CATEGORIES,
    CurrencyCode,
    OperationResult,
    ProgressTier,
)
from money_planner.orchestrator import AutosaveTimer, MoneyPlanner, create_app_components


# Page configuration
st.set_page_config(
    page_title="Money Planner",
    page_icon="💰",
    layout="wide",
    initial_sidebar_state="expanded",
)

TIER_COLORS = {
    ProgressTier.NORMAL: "#FF5722",
    ProgressTier.WARNING: "#ff9800",
    ProgressTier.CRITICAL: "#f44336",
}


@st.cache_resource
def get_planner() -> MoneyPlanner:
    """Get or create the planner session (cached)."""
    try:
        return create_app_components(use_storage=True)
    except Exception as e:
        st.error(f"Failed to initialize storage: {e}")
        return create_app_components(use_storage=False)


def get_autosave(planner: MoneyPlanner) -> AutosaveTimer:
    if "autosave" not in st.session_state:
        st.session_state.autosave = AutosaveTimer(planner)
    return st.session_state.autosave


def show_result(result: OperationResult) -> None:
    if result.success:
        st.success(result.message)
    else:
        st.error(result.message)
    for warning in result.warnings:
        st.warning(warning)


def main():
    """Main application entry point."""
    planner = get_planner()
    get_autosave(planner).tick()

    render_sidebar(planner)

    st.title("💰 Money Planner")
    render_overview(planner)
    st.markdown("---")

    col1, col2, col3 = st.columns(3)
    with col1:
        render_income_form(planner)
    with col2:
        render_expense_form(planner)
    with col3:
        render_goals_form(planner)

    st.markdown("---")
    render_progress(planner)

    col1, col2 = st.columns(2)
    with col1:
        render_transactions(planner)
    with col2:
        render_breakdown(planner)


def render_sidebar(planner: MoneyPlanner):
    st.sidebar.title("⚙️ Settings")

    codes = list(CurrencyCode)
    selected = st.sidebar.selectbox(
        "Currency",
        options=codes,
        index=codes.index(planner.currency),
        format_func=lambda c: f"{c.value} ({c.symbol})",
    )
    if selected != planner.currency:
        planner.set_currency(selected)
        st.rerun()

    st.sidebar.markdown("---")
    st.sidebar.subheader("💾 Save & Export")

    json_export = planner.export_json()
    st.sidebar.download_button(
        "📁 Export JSON",
        data=json_export.content,
        file_name=json_export.filename,
        mime=json_export.media_type,
    )

    csv_export = planner.export_csv()
    if csv_export.success:
        st.sidebar.download_button(
            "📊 Export CSV",
            data=csv_export.content,
            file_name=csv_export.filename,
            mime=csv_export.media_type,
        )
        with st.sidebar.expander("📋 Copy for Google Sheets"):
            st.code(planner.copy_for_sheets().content, language=None)
    else:
        st.sidebar.caption(csv_export.message)

    uploaded = st.sidebar.file_uploader("📂 Import JSON", type=["json"])
    if uploaded is not None and st.sidebar.button("Import"):
        show_result(planner.import_json(uploaded.getvalue()))

    st.sidebar.markdown("---")
    confirm = st.sidebar.checkbox("I understand this cannot be undone")
    if st.sidebar.button("🗑️ Reset all data", disabled=not confirm):
        show_result(planner.reset())

    render_status(planner)


def render_status(planner: MoneyPlanner):
    """Configuration and storage health."""
    from money_planner.config import validate_all_settings

    status = validate_all_settings()
    with st.sidebar.expander("🔌 Status"):
        for name, key in [("Storage", "storage"), ("App", "app")]:
            if status.get(key, False):
                st.success(f"✅ {name} settings OK")
            else:
                error = status.get(f"{key}_error", "Not configured")
                st.error(f"❌ {name} - {error}")

        if planner.last_save_error:
            st.warning(f"Last save failed: {planner.last_save_error}")

        if status.get("storage") and get_settings().app.debug_mode:
            st.caption(f"Data file: {get_settings().storage.data_file}")


def render_overview(planner: MoneyPlanner):
    state = planner.snapshot()
    col1, col2, col3, col4 = st.columns(4)
    col1.metric("Current Balance", planner.format_currency(state.current_balance))
    col2.metric("Monthly Income", planner.format_currency(state.monthly_income))
    col3.metric("Monthly Expenses", planner.format_currency(state.monthly_expenses))
    col4.metric("Savings Goal", planner.format_currency(state.savings_goal))


def render_income_form(planner: MoneyPlanner):
    st.subheader("➕ Add Income")
    with st.form("income", clear_on_submit=True):
        amount = st.text_input("Amount")
        source = st.text_input("Source", placeholder="Salary, freelance, ...")
        if st.form_submit_button("Add Income", type="primary"):
            show_result(planner.add_income(amount, source))


def render_expense_form(planner: MoneyPlanner):
    st.subheader("➖ Add Expense")
    with st.form("expense", clear_on_submit=True):
        amount = st.text_input("Amount")
        category = st.selectbox(
            "Category",
            options=list(EXPENSE_CATEGORIES),
            format_func=lambda c: f"{c.glyph} {c.display_name}",
        )
        if st.form_submit_button("Add Expense", type="primary"):
            show_result(planner.add_expense(amount, category))


def render_goals_form(planner: MoneyPlanner):
    st.subheader("🎯 Goals")
    with st.form("goals", clear_on_submit=True):
        savings_goal = st.text_input("Savings goal")
        budget_limit = st.text_input("Monthly budget")
        if st.form_submit_button("Set Goals"):
            show_result(planner.set_goals(savings_goal, budget_limit))


def render_progress(planner: MoneyPlanner):
    budget = planner.ledger.budget_progress()
    savings = planner.ledger.savings_progress()

    col1, col2 = st.columns(2)
    with col1:
        st.markdown("**Budget**")
        st.progress(float(budget.percentage) / 100)
        if budget.tier:
            color = TIER_COLORS[budget.tier]
            st.markdown(f"<span style='color:{color}'>{budget.label}</span>", unsafe_allow_html=True)
        else:
            st.caption(budget.label)
    with col2:
        st.markdown("**Savings**")
        st.progress(float(savings.percentage) / 100)
        st.caption(savings.label)


def render_transactions(planner: MoneyPlanner):
    st.subheader("🧾 Recent Transactions")
    limit = get_settings().app.recent_transactions_limit
    transactions = planner.ledger.recent_transactions(limit)
    if not transactions:
        st.info("No transactions yet. Add your first income or expense!")
        return

    for transaction in transactions:
        sign = "+" if transaction.is_income else "-"
        col1, col2 = st.columns([3, 1])
        col1.markdown(
            f"**{transaction.description}**  \n"
            f"{transaction.type.value} · {transaction.date.astimezone():%x}"
        )
        col2.markdown(f"{sign}{planner.format_currency(transaction.amount)}")


def render_breakdown(planner: MoneyPlanner):
    st.subheader("📊 Expense Breakdown")
    shares = planner.ledger.category_breakdown()
    if not shares:
        st.info("No expenses recorded yet")
        return

    for share in shares:
        col1, col2 = st.columns([3, 1])
        col1.markdown(f"{share.glyph} {share.category} ({share.percentage}%)")
        col2.markdown(planner.format_currency(share.amount))


if __name__ == "__main__":
    main()
