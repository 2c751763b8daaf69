"""
Intent Detection

Decides whether a chat message asks the app to DO something.

DESIGN DECISION: Classification is keyword matching, not an LLM call.
It is fast, free and predictable, and it errs on the side of chatting:
anything phrased as a question goes to the assistant, never to an action.

Only once a creating action is recognised does the LLM get involved,
with one extraction call that pulls {amount, category, type, title}
out of the message. The LLM never decides WHAT happens, only fills in
the fields.
"""

import re
from typing import Any, Optional

import structlog
from pydantic import ValidationError

from stephly.agents.llm import LLMError, create_model, extract_json, generate_text
from stephly.config import get_settings
from stephly.models.assistant import ActionType, AIAction, ExtractedFields


logger = structlog.get_logger(__name__)

QUESTION_KEYWORDS = [
    "how", "what", "can i", "should i", "help me",
    "advice", "suggest", "recommend", "tips",
]
CREATE_BUDGET_KEYWORDS = ["set budget", "create budget", "make budget", "add budget"]
CREATE_TODO_KEYWORDS = [
    "plan to",
    "need to pay",
    "upcoming expense",
    "remind me to pay",
    "add todo",
    "add a todo",
    "create todo",
    "create a todo",
    "plan expense",
    "need to buy",
    "have to pay",
    "todo for",
]
DELETE_TRANSACTION_KEYWORDS = [
    "delete transaction", "remove transaction", "delete the", "remove the",
]
EDIT_TRANSACTION_KEYWORDS = [
    "edit transaction",
    "change transaction",
    "update transaction",
    "modify transaction",
    "fix transaction",
]
DELETE_TODO_KEYWORDS = [
    "delete todo", "remove todo", "cancel todo", "delete planned expense",
]
INCOME_KEYWORDS = [
    "received", "got", "earned", "gave me", "paid me", "salary", "bonus",
    "add income", "record income", "to my income", "to income", "add to income",
]
EXPENSE_KEYWORDS = [
    "spent", "paid", "bought", "cost", "expense", "purchase",
    "add expense", "record expense",
]
REPORT_KEYWORDS = ["show report", "view analytics", "open analytics"]

# Whole words only, so "show report" isn't read as a "how" question
QUESTION_PATTERN = re.compile(
    r"\b(" + "|".join(re.escape(k) for k in QUESTION_KEYWORDS) + r")\b"
)
HAS_DIGIT = re.compile(r"\d")

EXTRACTION_PROMPT = """Extract structured data from this natural language message:

"{message}"

Extract:
- amount (number) - If multiple amounts mentioned, use the FIRST one only
- category (IMPORTANT: Use the EXACT category the user mentions! Can be ANYTHING: Gym, Haircut, Netflix, Gifts, Uber, etc. If no specific category mentioned, use a general one like Food, Transport, Shopping, Bills, Entertainment, Healthcare, Education, Salary, Freelance, Investment, Gift, or Other)
- type (income or expense)
- title/description

IMPORTANT: Return a SINGLE JSON object, NOT an array!

Return JSON:
{{
  "amount": 100,
  "category": "Lunch",
  "type": "expense",
  "title": "Lunch at restaurant"
}}

Examples:
"50 for gym membership" -> category: "Gym"
"paid 200 for haircut" -> category: "Haircut"
"bought netflix 15" -> category: "Netflix"
"uber ride 30" -> category: "Uber"
"spent 100 on gifts" -> category: "Gifts"
"bought light 20" -> category: "Light\""""


def _contains_any(text: str, keywords: list[str]) -> bool:
    return any(k in text for k in keywords)


def classify_intent(message: str) -> ActionType:
    """
    Keyword classification of a chat message. No I/O.

    Checks run in a fixed order and the first match wins, so e.g.
    "what did I spend 50 on?" is a question, not an expense.
    """
    text = message.lower()

    if QUESTION_PATTERN.search(text):
        return ActionType.NONE
    if _contains_any(text, CREATE_BUDGET_KEYWORDS):
        return ActionType.CREATE_BUDGET
    if _contains_any(text, CREATE_TODO_KEYWORDS):
        return ActionType.CREATE_TODO
    if _contains_any(text, DELETE_TRANSACTION_KEYWORDS):
        return ActionType.DELETE_TRANSACTION
    if _contains_any(text, EDIT_TRANSACTION_KEYWORDS):
        return ActionType.EDIT_TRANSACTION
    if _contains_any(text, DELETE_TODO_KEYWORDS):
        return ActionType.DELETE_TODO

    has_amount = bool(HAS_DIGIT.search(text))
    if has_amount and _contains_any(text, INCOME_KEYWORDS):
        return ActionType.ADD_TRANSACTION
    if has_amount and _contains_any(text, EXPENSE_KEYWORDS):
        return ActionType.ADD_TRANSACTION

    if _contains_any(text, REPORT_KEYWORDS):
        return ActionType.VIEW_REPORT

    return ActionType.NONE


class IntentDetector:
    """
    Turns a chat message into an AIAction.

    Args:
        model: Anything with an async generate_content_async(prompt).
               Defaults to a low-temperature Gemini model.
    """

    # Actions whose fields come from the LLM
    EXTRACTING = {ActionType.CREATE_BUDGET, ActionType.CREATE_TODO, ActionType.ADD_TRANSACTION}

    CONFIRMATIONS = {
        ActionType.CREATE_BUDGET: "Create a budget",
        ActionType.CREATE_TODO: "Add to planned expenses",
        ActionType.DELETE_TRANSACTION: "Delete transaction",
        ActionType.EDIT_TRANSACTION: "Edit transaction",
        ActionType.DELETE_TODO: "Delete planned expense",
    }

    # Destructive or limit-setting actions ask before running
    NEEDS_CONFIRMATION = {
        ActionType.CREATE_BUDGET,
        ActionType.DELETE_TRANSACTION,
        ActionType.EDIT_TRANSACTION,
        ActionType.DELETE_TODO,
    }

    def __init__(self, model: Optional[Any] = None):
        self._model = model

    @property
    def model(self):
        if self._model is None:
            self._model = create_model(
                temperature=get_settings().gemini.extraction_temperature,
                max_output_tokens=512,
            )
        return self._model

    async def parse_natural_language(self, message: str) -> ExtractedFields:
        """
        One LLM call to pull structured fields out of a message.

        Never raises: any failure (model error, no JSON, bad values)
        yields empty fields.
        """
        try:
            text = await generate_text(self.model, EXTRACTION_PROMPT.format(message=message))
        except LLMError as e:
            logger.warning("extraction_failed", error=str(e))
            return ExtractedFields()

        data = extract_json(text, expect="any")
        if isinstance(data, list):
            # Several transactions in one message: only the first is used
            data = data[0] if data else None
        if not isinstance(data, dict):
            logger.info("extraction_no_json", reply=text[:200])
            return ExtractedFields()

        try:
            return ExtractedFields.model_validate(data)
        except ValidationError as e:
            logger.info("extraction_invalid", error=str(e))
            return ExtractedFields()

    async def detect_intent(self, message: str) -> AIAction:
        action_type = classify_intent(message)

        if action_type in self.EXTRACTING:
            data = await self.parse_natural_language(message)
        else:
            data = ExtractedFields()

        confirmation = self.CONFIRMATIONS.get(action_type)
        if action_type == ActionType.ADD_TRANSACTION:
            is_income = data.type is not None and data.type.value == "income"
            confirmation = "Add this income" if is_income else "Add this expense"

        return AIAction(
            type=action_type,
            data=data,
            raw_message=message if action_type != ActionType.NONE else None,
            confirmation=confirmation,
            needs_confirmation=action_type in self.NEEDS_CONFIRMATION,
        )
