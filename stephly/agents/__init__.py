"""LLM-facing agents: intent detection, action execution and chat."""

from stephly.agents.actions import ActionExecutor
from stephly.agents.assistant import AssistantAgent, ChatContext
from stephly.agents.intent import IntentDetector, classify_intent
from stephly.agents.llm import LLMError, create_model, extract_json, generate_text

__all__ = [
    "ActionExecutor",
    "AssistantAgent",
    "ChatContext",
    "IntentDetector",
    "LLMError",
    "classify_intent",
    "create_model",
    "extract_json",
    "generate_text",
]
