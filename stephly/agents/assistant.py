"""
Assistant Agent

Conversational financial assistant backed by Gemini.

DESIGN DECISION: The LLM only ever produces WORDS. Numbers it is shown
(balance, budgets, savings rate) are computed here, and every structured
reply has a deterministic fallback so the app keeps working when Gemini
is down, rate-limited or returns something unparseable.

Each public method is a single prompt. Chat replies are saved to
assistant memory along with any insights the model offers.
"""

from decimal import Decimal
from typing import Any, Optional

import structlog
from pydantic import BaseModel, Field, ValidationError

from stephly.agents.llm import LLMError, create_model, extract_json, generate_text
from stephly.analysis.report import group_expenses
from stephly.audit import AuditLogger
from stephly.models.assistant import (
    AssistantResponse,
    BudgetSuggestion,
    FinancialAdvice,
    InsightType,
)
from stephly.models.finance import Budget, Transaction, TransactionType
from stephly.services.currency import format_currency
from stephly.services.memory import MemoryService
from stephly.services.search import SearchService, format_search_results, needs_web_search
from stephly.services.storage import StorageError


logger = structlog.get_logger(__name__)

ZERO = Decimal("0.00")

CONNECTION_TROUBLE = "I'm having trouble connecting right now. Please try again in a moment."
PROACTIVE_FALLBACK = [
    "Review your spending patterns",
    "Set up a monthly budget",
    "Track your expenses regularly",
]


class ChatContext(BaseModel):
    """The financial snapshot a chat turn is answered against."""

    uid: str
    user_name: Optional[str] = None
    page: str = "Chat"
    balance: Decimal = ZERO
    income: Decimal = ZERO
    expenses: Decimal = ZERO
    transactions: list[Transaction] = Field(default_factory=list)
    budgets: list[Budget] = Field(default_factory=list)

    @property
    def savings_rate(self) -> float:
        if self.income <= 0:
            return 0.0
        return float((self.income - self.expenses) / self.income * 100)


def _describe_transactions(transactions: list[Transaction], count: int = 5) -> str:
    lines = []
    for txn in transactions[:count]:
        sign = "+" if txn.type == TransactionType.INCOME else "-"
        lines.append(f"{sign}{format_currency(txn.amount)} - {txn.title} ({txn.category})")
    return "\n".join(lines)


def _describe_budgets(budgets: list[Budget]) -> str:
    return "\n".join(
        f"{b.category}: {format_currency(b.spent)}/{format_currency(b.limit)} "
        f"({b.percent_used:.0f}%)"
        for b in budgets
    )


def _spending_by_category(transactions: list[Transaction]) -> list[tuple[str, Decimal]]:
    return sorted(group_expenses(transactions).items(), key=lambda item: item[1], reverse=True)


def _string_list(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [str(v).strip() for v in value if str(v).strip()]


CHAT_PROMPT = """You are Stephly, a personal budget assistant for {user_name} in Ghana. You can also discuss any other topic like a general assistant. Be helpful, conversational, and provide actionable advice.

**Current Context:**
- Page: {page}
- Current Balance: {balance}
- Monthly Income: {income}
- Monthly Expenses: {expenses}
- Savings Rate: {savings_rate:.1f}%
- Total Transactions: {transaction_count}
- Active Budgets: {budget_count}

**Recent Transactions:**
{recent}

**Active Budgets:**
{budgets}

**Previous Conversations & Memory:**
{history}
{search_block}
**User Message:**
"{message}"

**Instructions:**
1. Respond naturally and conversationally, keep it short (2-4 sentences for money topics)
2. Reference their specific financial data when relevant
3. Use Ghana Cedis (₵) for amounts
4. Be encouraging and supportive
5. Only use the user's name if this is a new conversation
6. Suggest concrete next steps

Respond in JSON format:
{{
  "message": "Your conversational response here",
  "suggestions": ["suggestion 1", "suggestion 2"],
  "insights": ["insight 1", "insight 2"],
  "actionRequired": false
}}"""

SEARCH_BLOCK = """
🔍 **WEB SEARCH RESULTS (Use this to answer!):**
{results}
⚠️ Answer based ONLY on these web results!
"""

ADVICE_PROMPT = """You are a professional financial advisor in Ghana. Analyze this financial situation and provide personalized advice:

**Financial Overview:**
- Current Balance: {balance}
- Monthly Income: {income}
- Monthly Expenses: {expenses}
- Savings Rate: {savings_rate:.1f}%
- Expense Ratio: {expense_ratio:.1f}%
- Number of Transactions: {transaction_count}
- Active Budgets: {budget_count}
- Top Spending Categories: {top_categories}

**Context:**
- Currency: Ghana Cedis (GHS)
- User is trying to manage their budget better
- They want practical, actionable advice

Please provide:
1. A brief overall assessment (2-3 sentences)
2. 3-5 specific insights about their financial situation
3. 3-5 actionable steps they should take
4. Risk level assessment (low/medium/high)

Format your response as JSON with this structure:
{{
  "advice": "Overall assessment here",
  "insights": ["insight 1", "insight 2"],
  "actionItems": ["action 1", "action 2"],
  "riskLevel": "low|medium|high"
}}"""

SUGGESTIONS_PROMPT = """As a financial advisor in Ghana, suggest optimal budget allocations:

**Income:** {income}
**Current Budgets:** {budgets}
**Recent Spending:** {spending}

Suggest 3-5 budget categories with amounts (in GHS) and reasons. Use the 50/30/20 rule as a guideline.

Format as JSON array:
[
  {{"category": "Food & Groceries", "suggestedAmount": 500, "reason": "Based on your spending pattern"}}
]"""

TRANSACTION_PROMPT = """Analyze this transaction and provide a brief insight (1-2 sentences):

Transaction: {title}
Amount: {amount}
Category: {category}
Type: {type}
User Balance: {balance}
Monthly Income: {income}

Is this a good financial decision? Any concerns or tips?"""

PROACTIVE_PROMPT = """Based on this user's financial data, provide 3 proactive suggestions:

Balance: {balance}
Income: {income}
Expenses: {expenses}
Savings Rate: {savings_rate:.1f}%
Transactions: {transaction_count}
Budgets: {budget_count}

Previous Context:
{history}

Return only a JSON array of 3 short, actionable suggestions:
["suggestion 1", "suggestion 2", "suggestion 3"]"""


class AssistantAgent:
    """
    Gemini-backed assistant.

    Args:
        model: Anything with an async generate_content_async(prompt).
               Defaults to the configured Gemini model.
        search: Web search used for factual/current-events questions
        memory: Conversation and insight memory. Without it nothing
                is remembered between turns.
        audit_logger: Records Gemini outages on the chat path
    """

    def __init__(
        self,
        model: Optional[Any] = None,
        search: Optional[SearchService] = None,
        memory: Optional[MemoryService] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._model = model
        self._search = search
        self._memory = memory
        self._audit_logger = audit_logger

    @property
    def model(self):
        if self._model is None:
            self._model = create_model()
        return self._model

    async def _history(self, uid: str) -> str:
        if self._memory is None:
            return "No previous conversations"
        try:
            return await self._memory.build_context(uid)
        except StorageError as e:
            logger.warning("memory_context_unavailable", uid=uid, error=str(e))
            return "No previous conversations"

    # =========================================================================
    # CHAT
    # =========================================================================

    async def chat(self, message: str, context: ChatContext) -> AssistantResponse:
        """
        Answer one chat message.

        Runs a web search first when the message looks like it needs
        current or factual information. Never raises.
        """
        sources: list[str] = []
        search_block = ""
        if self._search is not None and needs_web_search(message):
            results = await self._search.search(message)
            if results:
                search_block = SEARCH_BLOCK.format(results=format_search_results(results))
                sources = [r.link for r in results if r.link]

        prompt = CHAT_PROMPT.format(
            user_name=context.user_name or "friend",
            page=context.page,
            balance=format_currency(context.balance),
            income=format_currency(context.income),
            expenses=format_currency(context.expenses),
            savings_rate=context.savings_rate,
            transaction_count=len(context.transactions),
            budget_count=len(context.budgets),
            recent=_describe_transactions(context.transactions) or "No recent transactions",
            budgets=_describe_budgets(context.budgets) or "No budgets set",
            history=await self._history(context.uid),
            search_block=search_block,
            message=message,
        )

        try:
            text = await generate_text(self.model, prompt)
        except LLMError as e:
            logger.error("chat_failed", uid=context.uid, error=str(e))
            if self._audit_logger:
                await self._audit_logger.log_external_service_error("gemini", str(e))
            return AssistantResponse(
                message=CONNECTION_TROUBLE,
                suggestions=["Check your internet connection", "Try again in a moment"],
            )

        parsed = extract_json(text, expect="object")
        if isinstance(parsed, dict) and parsed.get("message"):
            response = AssistantResponse(
                message=str(parsed["message"]).strip(),
                suggestions=_string_list(parsed.get("suggestions")),
                insights=_string_list(parsed.get("insights")),
                action_required=bool(parsed.get("actionRequired", False)),
            )
        else:
            # Plain prose reply
            response = AssistantResponse(message=text)

        response.sources = sources
        response.search_used = bool(search_block)

        await self._remember(message, response, context)
        return response

    async def _remember(
        self,
        message: str,
        response: AssistantResponse,
        context: ChatContext,
    ) -> None:
        if self._memory is None:
            return
        try:
            await self._memory.save_conversation(
                uid=context.uid,
                user_message=message,
                ai_response=response.message,
                page=context.page,
                balance=context.balance,
                recent_transactions=len(context.transactions),
            )
            for insight in response.insights:
                await self._memory.save_insight(context.uid, insight, InsightType.TIP)
        except StorageError as e:
            # A reply the user can read beats a lost reply
            logger.warning("conversation_not_saved", uid=context.uid, error=str(e))

    # =========================================================================
    # ADVICE
    # =========================================================================

    async def get_financial_advice(
        self,
        balance: Decimal,
        income: Decimal,
        expenses: Decimal,
        transactions: list[Transaction],
        budgets: list[Budget],
    ) -> FinancialAdvice:
        savings_rate = float((income - expenses) / income * 100) if income > 0 else 0.0
        expense_ratio = float(expenses / income * 100) if income > 0 else 0.0
        top_categories = ", ".join(
            f"{category}: {format_currency(amount)}"
            for category, amount in _spending_by_category(transactions)[:5]
        )

        prompt = ADVICE_PROMPT.format(
            balance=format_currency(balance),
            income=format_currency(income),
            expenses=format_currency(expenses),
            savings_rate=savings_rate,
            expense_ratio=expense_ratio,
            transaction_count=len(transactions),
            budget_count=len(budgets),
            top_categories=top_categories or "None",
        )

        try:
            text = await generate_text(self.model, prompt)
        except LLMError as e:
            logger.warning("advice_failed", error=str(e))
            return self._fallback_advice(balance, income, expenses)

        parsed = extract_json(text, expect="object")
        if isinstance(parsed, dict):
            risk = str(parsed.get("riskLevel", "medium")).lower()
            return FinancialAdvice(
                advice=parsed.get("advice") or "Unable to generate advice at this time.",
                insights=_string_list(parsed.get("insights")),
                action_items=_string_list(parsed.get("actionItems")),
                risk_level=risk if risk in ("low", "medium", "high") else "medium",
            )

        return FinancialAdvice(
            advice=text[:300],
            insights=[
                "Review your spending patterns",
                "Set realistic budgets",
                "Track expenses regularly",
            ],
            action_items=[
                "Create a monthly budget",
                "Reduce unnecessary expenses",
                "Build an emergency fund",
            ],
            risk_level="medium",
        )

    @staticmethod
    def _fallback_advice(balance: Decimal, income: Decimal, expenses: Decimal) -> FinancialAdvice:
        if balance < 0:
            risk = "high"
        elif expenses > income * Decimal("0.8"):
            risk = "medium"
        else:
            risk = "low"

        return FinancialAdvice(
            advice=(
                "Focus on tracking your expenses and creating realistic budgets. "
                "Aim to save at least 20% of your income."
            ),
            insights=[
                "Your financial data is being analyzed",
                "Consider reviewing your spending habits",
                "Building an emergency fund is crucial",
            ],
            action_items=[
                "Set up automatic savings",
                "Review and cut unnecessary subscriptions",
                "Create category-based budgets",
            ],
            risk_level=risk,
        )

    async def get_budget_suggestions(
        self,
        income: Decimal,
        budgets: list[Budget],
        transactions: list[Transaction],
    ) -> list[BudgetSuggestion]:
        prompt = SUGGESTIONS_PROMPT.format(
            income=format_currency(income),
            budgets=", ".join(
                f"{b.category}: {format_currency(b.limit)}" for b in budgets
            ) or "None",
            spending=", ".join(
                f"{category}: {format_currency(amount)}"
                for category, amount in _spending_by_category(transactions)
            ) or "No data",
        )

        try:
            text = await generate_text(self.model, prompt)
        except LLMError as e:
            logger.warning("budget_suggestions_failed", error=str(e))
            return self._fallback_suggestions(income)

        parsed = extract_json(text, expect="array")
        if not isinstance(parsed, list):
            return self._fallback_suggestions(income)

        suggestions = []
        for item in parsed:
            if not isinstance(item, dict):
                continue
            try:
                suggestions.append(BudgetSuggestion(
                    category=item.get("category", ""),
                    suggested_amount=item.get("suggestedAmount", item.get("suggested_amount")),
                    reason=item.get("reason", ""),
                ))
            except ValidationError as e:
                logger.info("budget_suggestion_skipped", item=item, error=str(e))

        return suggestions or self._fallback_suggestions(income)

    @staticmethod
    def _fallback_suggestions(income: Decimal) -> list[BudgetSuggestion]:
        return [
            BudgetSuggestion(
                category="Food & Groceries",
                suggested_amount=income * Decimal("0.25"),
                reason="Essential expenses",
            ),
            BudgetSuggestion(
                category="Transportation",
                suggested_amount=income * Decimal("0.15"),
                reason="Commute and travel",
            ),
            BudgetSuggestion(
                category="Savings",
                suggested_amount=income * Decimal("0.20"),
                reason="Build emergency fund",
            ),
        ]

    async def analyze_transaction(
        self,
        transaction: Transaction,
        balance: Decimal,
        monthly_income: Decimal,
    ) -> str:
        """One or two sentences of feedback on a new transaction."""
        prompt = TRANSACTION_PROMPT.format(
            title=transaction.title,
            amount=format_currency(transaction.amount),
            category=transaction.category,
            type=transaction.type.value,
            balance=format_currency(balance),
            income=format_currency(monthly_income),
        )
        try:
            return await generate_text(self.model, prompt)
        except LLMError as e:
            logger.warning("transaction_analysis_failed", error=str(e))
            return "Transaction recorded successfully."

    async def get_proactive_suggestions(self, context: ChatContext) -> list[str]:
        prompt = PROACTIVE_PROMPT.format(
            balance=format_currency(context.balance),
            income=format_currency(context.income),
            expenses=format_currency(context.expenses),
            savings_rate=context.savings_rate,
            transaction_count=len(context.transactions),
            budget_count=len(context.budgets),
            history=await self._history(context.uid),
        )

        try:
            text = await generate_text(self.model, prompt)
        except LLMError as e:
            logger.warning("proactive_suggestions_failed", error=str(e))
            return list(PROACTIVE_FALLBACK)

        suggestions = _string_list(extract_json(text, expect="array"))
        return suggestions[:3] or list(PROACTIVE_FALLBACK)
