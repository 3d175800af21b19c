"""
Registrar - LLM Client.

Provides structured LLM calls via Instructor.
"""

from registrar.llm.client import call_llm, get_client

__all__ = [
    "get_client",
    "call_llm",
]
