"""Tests for keyword intent classification and LLM field extraction."""

from decimal import Decimal

import pytest

from stephly.agents.intent import IntentDetector, classify_intent
from stephly.agents.llm import extract_json
from stephly.models.assistant import ActionType
from stephly.models.finance import TransactionType

from conftest import FakeModel, run


class TestClassifyIntent:
    """Keyword checks run in a fixed order; first match wins."""

    @pytest.mark.parametrize("message", [
        "How can I save more?",
        "what did I spend 50 on?",
        "Should I buy a car for 20000?",
        "Any tips for budgeting 500?",
    ])
    def test_questions_are_not_actions(self, message):
        assert classify_intent(message) == ActionType.NONE

    def test_question_words_match_whole_words_only(self):
        """'show' contains 'how' but isn't a question."""
        assert classify_intent("show report") == ActionType.VIEW_REPORT

    @pytest.mark.parametrize("message", [
        "Set budget 500 for food",
        "create budget for transport 200",
    ])
    def test_create_budget(self, message):
        assert classify_intent(message) == ActionType.CREATE_BUDGET

    @pytest.mark.parametrize("message", [
        "Plan to pay rent 800",
        "remind me to pay water bill 60",
        "add a todo for apple and banana 200",
        "I need to buy shoes",
    ])
    def test_create_todo(self, message):
        assert classify_intent(message) == ActionType.CREATE_TODO

    def test_todo_beats_expense(self):
        """A planned payment with an amount and 'paid' in it is still a todo."""
        assert classify_intent("I have to pay 300 for school fees, paid nothing yet") == ActionType.CREATE_TODO

    def test_delete_and_edit(self):
        assert classify_intent("delete the taxi one") == ActionType.DELETE_TRANSACTION
        assert classify_intent("fix transaction from yesterday") == ActionType.EDIT_TRANSACTION
        assert classify_intent("cancel todo rent") == ActionType.DELETE_TODO

    @pytest.mark.parametrize("message", [
        "received 1000 salary",
        "my mum gave me 200",
        "add 50 to income",
    ])
    def test_income_needs_a_number(self, message):
        assert classify_intent(message) == ActionType.ADD_TRANSACTION

    @pytest.mark.parametrize("message", [
        "spent 50 on lunch",
        "bought netflix 15",
        "Uber cost 30",
    ])
    def test_expense(self, message):
        assert classify_intent(message) == ActionType.ADD_TRANSACTION

    def test_transaction_words_without_amount(self):
        assert classify_intent("I spent too much") == ActionType.NONE

    def test_analytics(self):
        assert classify_intent("open analytics") == ActionType.VIEW_REPORT

    def test_small_talk(self):
        assert classify_intent("hello there") == ActionType.NONE


class TestExtractJson:

    def test_object_in_prose(self):
        text = 'Sure! ```json\n{"amount": 5}\n``` hope that helps'
        assert extract_json(text) == {"amount": 5}

    def test_array(self):
        assert extract_json('["a", "b"]', expect="array") == ["a", "b"]

    def test_any_prefers_first_bracket(self):
        assert extract_json('[{"amount": 1}, {"amount": 2}]', expect="any") == [
            {"amount": 1},
            {"amount": 2},
        ]

    def test_garbage(self):
        assert extract_json("no json here") is None
        assert extract_json("{not json}") is None


class TestIntentDetector:
    """detect_intent and parse_natural_language with a fake model."""

    def test_expense_extraction(self):
        model = FakeModel('{"amount": 50, "category": "Lunch", "type": "expense", "title": "Lunch"}')
        action = run(IntentDetector(model).detect_intent("spent 50 on lunch"))

        assert action.type == ActionType.ADD_TRANSACTION
        assert action.data.amount == Decimal("50.00")
        assert action.data.category == "Lunch"
        assert action.confirmation == "Add this expense"
        assert action.needs_confirmation is False
        assert "spent 50 on lunch" in model.prompts[0]

    def test_income_confirmation(self):
        model = FakeModel('{"amount": "1000", "category": "Salary", "type": "income", "title": "Salary"}')
        action = run(IntentDetector(model).detect_intent("received 1000 salary"))
        assert action.data.type == TransactionType.INCOME
        assert action.confirmation == "Add this income"

    def test_array_reply_uses_first_item(self):
        model = FakeModel('[{"amount": 20, "title": "Bread"}, {"amount": 30, "title": "Milk"}]')
        fields = run(IntentDetector(model).parse_natural_language("bought bread 20 and milk 30"))
        assert fields.amount == Decimal("20.00")
        assert fields.title == "Bread"

    def test_model_failure_gives_empty_fields(self):
        model = FakeModel(RuntimeError("quota exceeded"))
        fields = run(IntentDetector(model).parse_natural_language("spent 50 on lunch"))
        assert fields.amount is None
        assert fields.category is None

    def test_non_json_reply_gives_empty_fields(self):
        fields = run(IntentDetector(FakeModel("I can't help")).parse_natural_language("spent 5"))
        assert fields.model_dump(exclude_none=True) == {}

    def test_budget_needs_confirmation(self):
        model = FakeModel('{"amount": 500, "category": "Food"}')
        action = run(IntentDetector(model).detect_intent("set budget 500 for food"))
        assert action.type == ActionType.CREATE_BUDGET
        assert action.needs_confirmation

    def test_delete_skips_llm(self):
        model = FakeModel('{"amount": 1}')
        action = run(IntentDetector(model).detect_intent("delete transaction taxi"))
        assert action.type == ActionType.DELETE_TRANSACTION
        assert action.raw_message == "delete transaction taxi"
        assert model.prompts == []

    def test_chat_message_skips_llm(self):
        model = FakeModel('{"amount": 1}')
        action = run(IntentDetector(model).detect_intent("how are you?"))
        assert not action.is_actionable
        assert action.raw_message is None
        assert model.prompts == []
