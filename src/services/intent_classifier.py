"""Keyword-based intent classification for user queries.

Checks run in a fixed priority order and the first match wins:
exact greeting, short non-technical text, account, identity, navigation,
knowledge, loose conversational match, question heuristic, fallback.
Account, identity and navigation keyword lists are narrower than the
knowledge list, so they are checked first. A query matching several lists
resolves to whichever is checked first.
"""

import re

from src.models.intent import QueryIntent

# Queries that must match exactly after lowercasing and trimming punctuation
EXACT_CONVERSATIONAL_MATCHES = frozenset(
    {"what is this", "what's this", "hi", "hey", "hello", "yo", "sup", "test", "ping"}
)

# Substring matches, checked after every keyword category
CONVERSATIONAL_PATTERNS = [
    # Greetings
    "hello", "hi", "hey", "howdy", "greetings", "good morning", "good evening",
    "good afternoon", "good night", "what's up", "sup", "yo",
    # Status questions
    "how are you", "how's it going", "how do you do", "what's new",
    # Simple responses
    "thanks", "thank you", "ok", "okay", "cool", "nice", "great",
    "bye", "goodbye", "see you", "later", "cya",
    # Testing
    "test", "testing", "ping", "pong",
]

# Discord channel navigation
NAVIGATION_KEYWORDS = [
    "channel", "help channel", "support channel",
    "bug report channel", "changelog channel", "wiki channel",
    "rules channel", "announcements channel", "general channel",
    "announcements",
]

ACCOUNT_KEYWORDS = [
    "link", "account", "verify", "verification", "connect",
    "hytale account", "discord account", "linking",
]

IDENTITY_KEYWORDS = [
    "where am i", "who are you", "what are you", "what's this place",
    "who am i", "what is this place", "tell me about yourself",
]

KNOWLEDGE_KEYWORDS = [
    # Mod-specific terms
    "mod", "living lands", "metabolism", "creature", "biome", "worldgen",
    "procedural", "generation", "ecs", "component", "entity",
    "hytale", "plugin", "api", "server", "config", "configuration",
    "architecture",
    # Question stems that need knowledge
    "how does", "how do", "how to", "what is the", "explain",
    "tell me about", "describe", "difference between", "why does",
    "when does", "where does", "can i", "is there", "feature",
    "install", "download", "setup", "curseforge",
]

TRAILING_PUNCTUATION = "?!.,"

QUESTION_PATTERN = re.compile(
    r"^(what|how|why|when|where|who|which|can|does|is|are|do|will|would|could|should)\b",
    re.IGNORECASE,
)


def contains_any_keyword(text: str, keywords: list[str]) -> bool:
    """Check if text contains any of the keywords as a substring."""
    return any(keyword in text for keyword in keywords)


def is_question(text: str) -> bool:
    """Check if text looks like a question."""
    return "?" in text or QUESTION_PATTERN.match(text) is not None


def classify_intent(query: str) -> QueryIntent:
    """Classify a user query.

    Args:
        query: Raw or sanitized user text

    Returns:
        QueryIntent for the query
    """
    normalized = query.strip().lower()
    without_punctuation = normalized.rstrip(TRAILING_PUNCTUATION)

    if without_punctuation in EXACT_CONVERSATIONAL_MATCHES:
        return QueryIntent.CONVERSATIONAL

    # Short queries are chat unless they look technical
    if len(normalized.split()) <= 2 and not contains_any_keyword(normalized, KNOWLEDGE_KEYWORDS):
        return QueryIntent.CONVERSATIONAL

    if contains_any_keyword(normalized, ACCOUNT_KEYWORDS):
        return QueryIntent.ACCOUNT_HELP

    if contains_any_keyword(normalized, IDENTITY_KEYWORDS):
        return QueryIntent.IDENTITY

    # Before conversational patterns: "where is the support channel" is navigation
    if contains_any_keyword(normalized, NAVIGATION_KEYWORDS):
        return QueryIntent.NAVIGATION

    if contains_any_keyword(normalized, KNOWLEDGE_KEYWORDS):
        return QueryIntent.KNOWLEDGE

    if contains_any_keyword(normalized, CONVERSATIONAL_PATTERNS):
        return QueryIntent.CONVERSATIONAL

    if is_question(normalized):
        return QueryIntent.KNOWLEDGE

    return QueryIntent.CONVERSATIONAL
