"""Text helpers shared by retrieval logging and prompt construction."""

ELLIPSIS = "..."


def truncate_text(text: str, max_len: int, ellipsis: str = ELLIPSIS) -> str:
    """Truncate text to max_len characters, adding an ellipsis if cut.

    Python strings index by code point, so a multi-byte UTF-8 character is
    never split.

    Args:
        text: Text to truncate
        max_len: Maximum number of characters kept
        ellipsis: Suffix appended when text was cut

    Returns:
        Original text if short enough, else the first max_len characters plus ellipsis
    """
    if max_len < 0:
        raise ValueError("max_len must be non-negative")

    if len(text) <= max_len:
        return text
    return text[:max_len] + ellipsis


def metadata_source(metadata: dict | None) -> str:
    """Return the metadata "source" field, or "unknown"."""
    if not metadata:
        return "unknown"
    source = metadata.get("source")
    return source if isinstance(source, str) else "unknown"
