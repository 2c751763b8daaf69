"""
Gemini plumbing shared by the agents.

Every LLM call in Stephly is a single prompt in, text out. Structured
answers are requested as JSON and pulled out of the reply text, since
the model often wraps JSON in prose or code fences.
"""

import json
from typing import Any, Optional

import google.generativeai as genai

from stephly.config import get_settings


class LLMError(Exception):
    """The model call failed or returned nothing usable."""
    pass


def create_model(
    temperature: Optional[float] = None,
    max_output_tokens: Optional[int] = None,
) -> genai.GenerativeModel:
    """Configure Google Generative AI and build a model from settings."""
    settings = get_settings().gemini
    genai.configure(api_key=settings.api_key)
    return genai.GenerativeModel(
        model_name=settings.model_name,
        generation_config={
            "temperature": settings.temperature if temperature is None else temperature,
            "max_output_tokens": max_output_tokens or settings.max_tokens,
        },
    )


async def generate_text(model: Any, prompt: str) -> str:
    """
    Run one prompt and return the stripped reply text.

    Raises:
        LLMError: If the call fails or the reply is empty/blocked
    """
    try:
        response = await model.generate_content_async(prompt)
        text = response.text
    except Exception as e:
        # The SDK raises plain ValueError for blocked replies and
        # google.api_core errors for transport problems.
        raise LLMError(str(e)) from e

    text = (text or "").strip()
    if not text:
        raise LLMError("Empty response from model")
    return text


def extract_json(text: str, expect: str = "object") -> Optional[Any]:
    """
    Find the JSON object (or array) in a model reply.

    Args:
        text: Raw reply text
        expect: "object", "array", or "any" (whichever opens first)

    Returns:
        The parsed value, or None if nothing parseable was found
    """
    pairs = {"object": [("{", "}")], "array": [("[", "]")]}
    candidates = pairs.get(expect, pairs["object"] + pairs["array"])

    if expect == "any":
        # Use whichever bracket appears first in the text
        candidates = sorted(
            candidates,
            key=lambda p: text.find(p[0]) if text.find(p[0]) >= 0 else len(text),
        )

    for opener, closer in candidates:
        start = text.find(opener)
        end = text.rfind(closer) + 1
        if start >= 0 and end > start:
            try:
                return json.loads(text[start:end])
            except json.JSONDecodeError:
                continue
    return None
