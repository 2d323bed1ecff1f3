"""
Remote AI advisor and the chat transcript built on top of it.
"""
from .chat import ChatMessage, ChatSession  # noqa: F401
from .gemini_client import GeminiAdvisor  # noqa: F401

__all__ = ["ChatMessage", "ChatSession", "GeminiAdvisor"]
