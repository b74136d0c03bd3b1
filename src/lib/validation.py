"""Input validation and prompt sanitization.

User text is embedded verbatim in a ``User: ...\\nAssistant:`` completion
prompt, so role markers typed by the user would let them forge turns.
sanitize_prompt_input() neutralizes those markers and other control
sequences; validate_prompt_input() is a cheap rejection check run before
any backend is contacted.
"""

import re

from src.lib.constants import PROMPT_MAX_CONTROL_CHARS, PROMPT_MAX_LENGTH

# Role markers are bracketed rather than removed so the question keeps its wording
ROLE_MARKER_PATTERN = re.compile(r"(user|system|assistant)\s*:", re.IGNORECASE)

# Null, EOF, ESC and the rest of C0/DEL except tab, newline and carriage return
CONTROL_CHAR_PATTERN = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")

EXCESSIVE_NEWLINES_PATTERN = re.compile(r"\n{3,}")

ALLOWED_CONTROL_CHARS = {"\n", "\t", "\r"}


def sanitize_prompt_input(text: str, max_length: int = PROMPT_MAX_LENGTH) -> str:
    """Sanitize user text for inclusion in an LLM prompt.

    Args:
        text: Raw user text
        max_length: Maximum length in characters

    Returns:
        Sanitized text, at most max_length characters
    """
    if not text:
        return ""

    sanitized = CONTROL_CHAR_PATTERN.sub("", text)
    sanitized = ROLE_MARKER_PATTERN.sub(lambda m: f"[{m.group(1)}]", sanitized)
    sanitized = EXCESSIVE_NEWLINES_PATTERN.sub("\n\n", sanitized)
    sanitized = sanitized.strip()

    if len(sanitized) > max_length:
        sanitized = sanitized[:max_length]

    return sanitized


def count_control_chars(text: str) -> int:
    """Count control characters other than tab, newline and carriage return."""
    return sum(1 for ch in text if ord(ch) < 32 and ch not in ALLOWED_CONTROL_CHARS)


def validate_prompt_input(text: str, max_length: int = PROMPT_MAX_LENGTH) -> bool:
    """Check if user text is acceptable for LLM processing.

    Args:
        text: Raw user text
        max_length: Maximum length in characters

    Returns:
        True if valid
    """
    if not text or not text.strip():
        return False

    if len(text) > max_length:
        return False

    return count_control_chars(text) <= PROMPT_MAX_CONTROL_CHARS
