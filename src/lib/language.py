"""Lightweight language detection for response-language instructions.

Script ranges identify CJK and Cyrillic text; everything else is scored by
how many words match a short list of very common words per language.
"""

import re
from enum import Enum


class Language(str, Enum):
    """Detected language."""

    ENGLISH = "English"
    GERMAN = "German"
    FRENCH = "French"
    SPANISH = "Spanish"
    ITALIAN = "Italian"
    DUTCH = "Dutch"
    RUSSIAN = "Russian"
    JAPANESE = "Japanese"
    CHINESE = "Chinese"
    KOREAN = "Korean"
    UNKNOWN = "Unknown"

    @property
    def is_non_english(self) -> bool:
        return self not in (Language.ENGLISH, Language.UNKNOWN)

    def __str__(self) -> str:
        return self.value


# Ordered: English first so it wins ties
COMMON_WORDS: dict[Language, list[str]] = {
    Language.ENGLISH: ["the", "is", "and", "to", "a", "of", "in", "that", "it", "for", "with", "you", "this", "be"],
    Language.GERMAN: ["der", "die", "und", "in", "den", "von", "zu", "das", "mit", "sich", "des", "auf", "für", "ist"],
    Language.FRENCH: ["le", "de", "un", "et", "à", "être", "en", "que", "pour", "dans", "ce", "il", "qui", "ne"],
    Language.SPANISH: ["de", "la", "que", "el", "en", "y", "a", "los", "se", "del", "las", "un", "por", "con"],
    Language.ITALIAN: ["il", "di", "da", "un", "è", "per", "e", "la", "che", "a", "in", "con", "si", "lo"],
    Language.DUTCH: ["de", "en", "van", "het", "een", "die", "in", "te", "aan", "op", "dat", "er", "voor", "met"],
}

# Strip leading/trailing characters that are not ASCII letters or digits
WORD_EDGE_PATTERN = re.compile(r"^[^a-z0-9]+|[^a-z0-9]+$")


def _in_ranges(text: str, ranges: list[tuple[int, int]]) -> bool:
    return any(lo <= ord(ch) <= hi for ch in text for lo, hi in ranges)


HIRAGANA_KATAKANA = [(0x3040, 0x309F), (0x30A0, 0x30FF)]
CJK_IDEOGRAPHS = [(0x4E00, 0x9FFF)]
HANGUL = [(0xAC00, 0xD7AF)]
CYRILLIC = [(0x0400, 0x04FF), (0x0500, 0x052F)]


def detect_language(text: str) -> tuple[Language, int]:
    """Detect the language of text.

    Args:
        text: Text to inspect

    Returns:
        Tuple of (language, confidence 0-100)
    """
    if not text:
        return Language.UNKNOWN, 0

    text = text.strip().lower()

    if _in_ranges(text, HIRAGANA_KATAKANA):
        return Language.JAPANESE, 85
    if _in_ranges(text, CJK_IDEOGRAPHS):
        return Language.CHINESE, 85
    if _in_ranges(text, HANGUL):
        return Language.KOREAN, 85

    if _in_ranges(text, CYRILLIC):
        return Language.RUSSIAN, 80

    words = [WORD_EDGE_PATTERN.sub("", word) for word in text.split()]

    best_language = Language.UNKNOWN
    best_score = 0
    for language, common in COMMON_WORDS.items():
        hits = sum(1 for word in words if word in common)
        score = hits * 100 // len(common)
        if score > best_score:
            best_language, best_score = language, score

    if best_score == 0:
        return Language.ENGLISH, 50

    return best_language, best_score
