"""
Streamlit Frontend for Stephly

A thin UI over the service layer and the chat flow.

DESIGN PRINCIPLES:
1. Every write goes through FinanceService (same validation as chat)
2. Clear error messages in simple language
3. Visual feedback for all operations
4. Numbers shown are always computed from storage, never by the AI
"""

import asyncio
import calendar
from datetime import date

import streamlit as st

from stephly.analysis import (
    analyze_budget_affordability,
    analyze_spending_patterns,
    build_monthly_report,
    calculate_financial_health,
    format_report,
    predict_budget_exceedance,
    suggest_budget_allocation,
)
from stephly.config import validate_all_settings
from stephly.models.finance import (
    EXPENSE_CATEGORIES,
    INCOME_CATEGORIES,
    TodoDraft,
    TransactionDraft,
    TransactionType,
    to_amount,
)
from stephly.orchestrator import AppComponents, create_app_components
from stephly.services.currency import convert_currency, format_currency
from stephly.services.finance import DraftRejectedError, FinanceError
from stephly.services.storage import StorageError


DEFAULT_UID = "local-user"

st.set_page_config(
    page_title="Stephly",
    page_icon="💰",
    layout="wide",
    initial_sidebar_state="expanded",
)


def run_async(coro):
    """Helper to run async functions in Streamlit."""
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


@st.cache_resource
def get_components() -> AppComponents:
    """Get or create application components (cached)."""
    return create_app_components(use_storage=True)


def current_uid() -> str:
    return st.session_state.setdefault("uid", DEFAULT_UID)


def currency_for(app: AppComponents, uid: str) -> str:
    profile = run_async(app.finance.get_profile(uid))
    return profile.preferred_currency if profile else "GHS"


def main():
    """Main application entry point."""
    app = get_components()
    uid = current_uid()

    st.sidebar.title("💰 Stephly")
    if not app.uses_sheets:
        st.sidebar.warning("Google Sheets not configured - data lives in memory only.")
    st.sidebar.markdown("---")

    page = st.sidebar.radio(
        "Navigate to:",
        [
            "📊 Dashboard",
            "💸 Transactions",
            "🎯 Budgets",
            "📝 Planned Expenses",
            "💬 Chat",
            "⚙️ Settings",
        ],
        index=0,
    )

    try:
        if page == "📊 Dashboard":
            render_dashboard(app, uid)
        elif page == "💸 Transactions":
            render_transactions_page(app, uid)
        elif page == "🎯 Budgets":
            render_budgets_page(app, uid)
        elif page == "📝 Planned Expenses":
            render_todos_page(app, uid)
        elif page == "💬 Chat":
            render_chat_page(app, uid)
        elif page == "⚙️ Settings":
            render_settings_page(app, uid)
    except StorageError as e:
        st.error(f"Couldn't reach your data right now. Please try again. ({e})")


def render_dashboard(app: AppComponents, uid: str):
    st.title("📊 Dashboard")
    currency = currency_for(app, uid)

    summary = run_async(app.finance.get_summary(uid))
    budgets = run_async(app.finance.get_budgets(uid))

    col1, col2, col3 = st.columns(3)
    col1.metric("Balance", format_currency(summary.balance, currency))
    col2.metric("Income", format_currency(summary.income, currency))
    col3.metric("Expenses", format_currency(summary.expenses, currency))

    health = calculate_financial_health(
        summary.balance, summary.income, summary.expenses, budgets
    )
    st.markdown(f"### Financial health: {health.score}/100 ({health.status})")
    for warning in health.warnings:
        st.warning(warning)
    for recommendation in health.recommendations:
        st.markdown(f"- {recommendation}")

    today = date.today()
    transactions = run_async(app.finance.list_transactions(uid, limit=None))
    report = build_monthly_report(transactions, budgets, today.month, today.year)
    with st.expander("📈 This month's report", expanded=True):
        st.text(format_report(report, currency))

    patterns = analyze_spending_patterns(transactions, budgets)
    if patterns:
        with st.expander("🔍 Where the money goes"):
            for pattern in patterns:
                flag = " ⚠️" if pattern.is_over_budget else ""
                st.markdown(
                    f"- **{pattern.category}**: {format_currency(pattern.amount, currency)} "
                    f"({pattern.percentage:.0f}%){flag}"
                )

    profile = run_async(app.finance.get_profile(uid))
    if profile and profile.monthly_income > 0:
        with st.expander("🧮 50/30/20 plan for your income"):
            for bucket, amount in suggest_budget_allocation(profile.monthly_income).items():
                st.markdown(f"- {bucket}: {format_currency(amount, currency)}")

    if st.button("💡 Get AI advice"):
        with st.spinner("Thinking..."):
            advice = run_async(app.assistant.get_financial_advice(
                summary.balance, summary.income, summary.expenses, transactions, budgets
            ))
        st.info(advice.advice)
        st.markdown(f"**Risk level:** {advice.risk_level}")
        for item in advice.action_items:
            st.markdown(f"- {item}")

    if st.button("✨ What should I do next?"):
        context = run_async(app.chat_flow.load_context(uid, page="Dashboard"))
        for suggestion in run_async(app.assistant.get_proactive_suggestions(context)):
            st.markdown(f"- {suggestion}")


def render_transactions_page(app: AppComponents, uid: str):
    st.title("💸 Transactions")
    currency = currency_for(app, uid)

    with st.form("add_transaction", clear_on_submit=True):
        st.markdown("### Add a transaction")
        col1, col2 = st.columns(2)
        with col1:
            txn_type = st.selectbox("Type", [t.value for t in TransactionType], index=1)
            title = st.text_input("Title")
            amount = st.number_input("Amount", min_value=0.0, step=1.0)
        with col2:
            categories = INCOME_CATEGORIES if txn_type == "income" else EXPENSE_CATEGORIES
            category = st.selectbox("Category", categories)
            custom = st.text_input("Or a custom category", placeholder="e.g. Gym")
            txn_date = st.date_input("Date", value=date.today())
        note = st.text_area("Note (optional)")
        submitted = st.form_submit_button("💾 Save", type="primary")

    if submitted:
        draft = TransactionDraft(
            uid=uid,
            type=txn_type,
            title=title,
            amount=amount,
            category=custom or category,
            date=txn_date,
            note=note,
        )
        try:
            transaction = run_async(app.finance.add_transaction(draft))
            st.success(f"✅ Saved {transaction.title}")
            summary = run_async(app.finance.get_summary(uid))
            st.caption(run_async(app.assistant.analyze_transaction(
                transaction, summary.balance, summary.income
            )))
        except DraftRejectedError as e:
            st.error(app.finance.validator.get_user_friendly_summary(e.result))

    st.markdown("---")
    st.markdown("### Recent transactions")
    transactions = run_async(app.finance.list_transactions(uid))
    if not transactions:
        st.info("No transactions yet. Add your first one above.")
        return

    for txn in transactions:
        sign = "+" if txn.type == TransactionType.INCOME else "-"
        col1, col2 = st.columns([5, 1])
        col1.markdown(
            f"**{txn.title}** · {txn.category} · {txn.date:%d %b %Y} · "
            f"{sign}{format_currency(txn.amount, currency)}"
        )
        if col2.button("🗑️", key=f"del-{txn.id}"):
            run_async(app.finance.delete_transaction(txn.id))
            st.rerun()


def render_budgets_page(app: AppComponents, uid: str):
    st.title("🎯 Budgets")
    currency = currency_for(app, uid)
    today = date.today()

    with st.form("set_budget"):
        st.markdown(f"### Set a budget for {today:%B %Y}")
        category = st.text_input("Category", placeholder="e.g. Food")
        limit = st.number_input("Monthly limit", min_value=0.0, step=10.0)
        submitted = st.form_submit_button("💾 Save budget", type="primary")

    budgets = run_async(app.finance.get_budgets(uid))

    if submitted and category:
        summary = run_async(app.finance.get_summary(uid))
        profile = run_async(app.finance.get_profile(uid))
        income = profile.monthly_income if profile else summary.income
        analysis = analyze_budget_affordability(
            proposed=to_amount(limit),
            balance=summary.balance,
            monthly_income=income,
            existing_budgets=[b for b in budgets if b.category.lower() != category.lower()],
            recent_transactions=[],
        )
        run_async(app.finance.set_budget(uid, category, limit))
        box = {"safe": st.success, "warning": st.warning, "danger": st.error}[analysis.severity]
        box(f"{analysis.recommendation}\n\n{analysis.reasoning}")
        budgets = run_async(app.finance.get_budgets(uid))

    if st.button("💡 Suggest budgets"):
        profile = run_async(app.finance.get_profile(uid))
        income = profile.monthly_income if profile else run_async(app.finance.get_summary(uid)).income
        transactions = run_async(app.finance.list_transactions(uid))
        for suggestion in run_async(app.assistant.get_budget_suggestions(income, budgets, transactions)):
            st.markdown(
                f"- **{suggestion.category}**: "
                f"{format_currency(suggestion.suggested_amount, currency)} ({suggestion.reason})"
            )

    if not budgets:
        st.info("No budgets for this month yet.")
        return

    days_in_month = calendar.monthrange(today.year, today.month)[1]
    for budget in budgets:
        st.markdown(
            f"**{budget.category}**: {format_currency(budget.spent, currency)} of "
            f"{format_currency(budget.limit, currency)}"
        )
        st.progress(min(1.0, budget.percent_used / 100))
        if budget.is_over_budget:
            st.error("Over budget!")
        else:
            prediction = predict_budget_exceedance(budget, budget.spent, today.day, days_in_month)
            if prediction.will_exceed:
                st.warning(
                    f"At this pace you'll spend about "
                    f"{format_currency(prediction.projected_amount, currency)} this month "
                    f"({prediction.confidence:.0f}% confidence)."
                )
        if st.button("🗑️ Remove", key=f"budget-{budget.id}"):
            run_async(app.finance.delete_budget(budget.id))
            st.rerun()


def render_todos_page(app: AppComponents, uid: str):
    st.title("📝 Planned Expenses")
    currency = currency_for(app, uid)

    with st.form("add_todo", clear_on_submit=True):
        title = st.text_input("What do you plan to pay for?")
        amount = st.number_input("Amount", min_value=0.0, step=1.0)
        category = st.selectbox("Category", EXPENSE_CATEGORIES)
        due = st.date_input("Due date", value=None)
        submitted = st.form_submit_button("➕ Add", type="primary")

    if submitted:
        try:
            run_async(app.finance.add_todo(TodoDraft(
                uid=uid, title=title, amount=amount, category=category, due_date=due,
            )))
            st.success("Added to your planned expenses.")
        except DraftRejectedError as e:
            st.error(app.finance.validator.get_user_friendly_summary(e.result))

    st.markdown("---")
    for todo in run_async(app.finance.list_todos(uid)):
        col1, col2, col3 = st.columns([5, 1, 1])
        due_text = f" · due {todo.due_date:%d %b}" if todo.due_date else ""
        label = f"{todo.title} · {format_currency(todo.amount, currency)}{due_text}"
        col1.markdown(f"~~{label}~~ ✅" if todo.completed else label)
        if not todo.completed and col2.button("✔️ Paid", key=f"done-{todo.id}"):
            try:
                run_async(app.finance.complete_todo(todo.id))
                st.rerun()
            except FinanceError as e:
                st.error(str(e))
        if col3.button("🗑️", key=f"todo-{todo.id}"):
            run_async(app.finance.delete_todo(todo.id))
            st.rerun()


def render_chat_page(app: AppComponents, uid: str):
    st.title("💬 Chat with Stephly")
    st.caption(
        'Try: "Spent 50 on lunch", "Set budget 500 for food", '
        '"Plan to pay rent 800", or ask anything.'
    )

    ask_first = st.toggle(
        "Ask before changing budgets or deleting anything",
        key="ask_before_actions",
    )

    history = st.session_state.setdefault("chat_history", [])
    for role, text in history:
        with st.chat_message(role):
            st.markdown(text)

    pending = st.session_state.get("pending_action")
    if pending is not None:
        confirm_col, cancel_col = st.columns(2)
        if confirm_col.button("✅ Confirm", use_container_width=True):
            reply = run_async(app.chat_flow.confirm_action(uid, pending))
            history.append(("assistant", reply.message))
            st.session_state.pending_action = None
            st.rerun()
        if cancel_col.button("✖️ Cancel", use_container_width=True):
            history.append(("assistant", "Okay, I won't do that."))
            st.session_state.pending_action = None
            st.rerun()

    message = st.chat_input("Message Stephly")
    if not message:
        return

    history.append(("user", message))
    with st.chat_message("user"):
        st.markdown(message)

    with st.chat_message("assistant"):
        with st.spinner("Thinking..."):
            reply = run_async(app.chat_flow.handle_message(
                uid, message, page="Chat", auto_confirm=not ask_first
            ))
        st.markdown(reply.message)
        if reply.response and reply.response.suggestions:
            st.caption(" · ".join(reply.response.suggestions))
        if reply.response and reply.response.sources:
            with st.expander("Sources"):
                for source in reply.response.sources:
                    st.markdown(f"- {source}")
    history.append(("assistant", reply.message))

    if reply.details.get("awaiting_confirmation"):
        st.session_state.pending_action = reply.action
        st.rerun()


def render_settings_page(app: AppComponents, uid: str):
    st.title("⚙️ Settings")

    profile = run_async(app.finance.get_profile(uid))
    st.markdown("### Profile")
    with st.form("profile"):
        name = st.text_input("Name", value=profile.name if profile else "")
        email = st.text_input("Email", value=profile.email if profile else "")
        currency = st.text_input(
            "Currency", value=profile.preferred_currency if profile else "GHS", max_chars=3
        )
        income = st.number_input(
            "Monthly income",
            min_value=0.0,
            value=float(profile.monthly_income) if profile else 0.0,
        )
        if st.form_submit_button("💾 Save profile"):
            try:
                if profile is None:
                    run_async(app.finance.create_profile(uid, name, email, currency))
                run_async(app.finance.update_profile(
                    uid, name=name, email=email, preferred_currency=currency,
                    monthly_income=income,
                ))
                st.success("Profile saved.")
            except ValueError as e:
                st.error(f"Couldn't save profile: {e}")

    st.markdown("### Currency converter")
    col1, col2, col3 = st.columns(3)
    amount = col1.number_input("Amount", min_value=0.0, value=100.0)
    from_code = col2.text_input("From", value="GHS", max_chars=3).upper()
    to_code = col3.text_input("To", value="USD", max_chars=3).upper()
    if st.button("🔁 Convert"):
        rates = run_async(app.exchange_rates.fetch_rates())
        try:
            converted = convert_currency(amount, from_code, to_code, rates)
            st.success(f"{format_currency(amount, from_code)} = {format_currency(converted, to_code)}")
        except ValueError as e:
            st.error(str(e))

    st.markdown("### Assistant memory")
    if st.button("🧹 Clear chat memory"):
        removed = run_async(app.memory.clear(uid))
        st.session_state.chat_history = []
        st.success(f"Cleared {removed} remembered items.")

    st.markdown("### Connection Status")
    status = validate_all_settings()
    services = [
        ("Google Sheets (Storage)", "google_sheets"),
        ("Gemini (AI)", "gemini"),
        ("Google Custom Search", "search"),
    ]
    for name, key in services:
        if status.get(key, False):
            st.success(f"✅ {name} - Configured")
        else:
            error = status.get(f"{key}_error", "Not configured")
            st.error(f"❌ {name} - {error}")

    st.markdown(
        "To configure the application, create a `.env` file with your API keys. "
        "See `.env.example` for the required variables."
    )


if __name__ == "__main__":
    main()
