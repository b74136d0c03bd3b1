"""Document model for the retrieval collection."""

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class Document:
    """A piece of text stored in the vector collection.

    Attributes:
        id: Globally unique, caller-assigned identifier
        text: Document text that gets embedded
        metadata: Arbitrary key/value pairs; "source" is used in diagnostics
    """

    id: str
    text: str
    metadata: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.id:
            raise ValueError("Document id cannot be empty")

    @property
    def source(self) -> str:
        source = self.metadata.get("source")
        return source if isinstance(source, str) else "unknown"
