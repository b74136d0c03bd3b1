"""Query intent and response mode.

Both are derived per request and never persisted.
"""

from enum import Enum


class QueryIntent(str, Enum):
    """Coarse category of a user query."""

    KNOWLEDGE = "knowledge"  # Mod/game knowledge, answered with RAG
    CONVERSATIONAL = "conversational"  # Greetings and small talk
    NAVIGATION = "navigation"  # Where to find a channel
    ACCOUNT_HELP = "account_help"  # Account linking and verification
    IDENTITY = "identity"  # Who/where is the bot, needs a persona answer

    @property
    def needs_rag(self) -> bool:
        """Whether this intent requires retrieved context."""
        return self is QueryIntent.KNOWLEDGE

    def __str__(self) -> str:
        return self.value


class ResponseMode(str, Enum):
    """Complexity of the generated response."""

    FAST = "fast"  # Minimal system prompt, short answers
    STANDARD = "standard"  # Condensed personality
    DEEP = "deep"  # Full system prompt with retrieved documentation

    def __str__(self) -> str:
        return self.value
