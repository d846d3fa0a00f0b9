"""
AI Assistant Service Package

- prompts: system prompts and user-message templates per action
- provider: OpenAI-compatible completion client (openai / groq / local)
"""

from .prompts import SYSTEM_PROMPTS, build_user_message
from .provider import AICompletion, AIProvider, resolve_provider

__all__ = [
    "SYSTEM_PROMPTS",
    "build_user_message",
    "AICompletion",
    "AIProvider",
    "resolve_provider",
]
