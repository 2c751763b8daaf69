"""
Stephly - Personal Budget Tracker

Users log income and expenses, set monthly category budgets, plan
future expenses as TODOs, and chat with a Gemini-backed assistant
that can answer questions and act inside the app.

LAYERS:
1. Presentation - Streamlit frontend (app/main.py)
2. Services - storage-backed CRUD and a wrapper around Gemini
3. Intent - keyword matching plus one LLM extraction call,
   dispatched to a service-layer write
"""

__version__ = "1.0.0"
__author__ = "Stephly Team"
