"""Document records produced by the page pipeline.

A ``ProcessedDoc`` is built once per page and never modified afterwards;
heading offsets index directly into its ``body``.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Tuple


@dataclass(frozen=True)
class Heading:
    """A Markdown heading and the span of the body it owns."""
    level: int
    text: str
    id: str
    start_offset: int
    end_offset: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "level": self.level,
            "text": self.text,
            "id": self.id,
            "startOffset": self.start_offset,
            "endOffset": self.end_offset,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Heading":
        return cls(
            level=int(data["level"]),
            text=str(data["text"]),
            id=str(data["id"]),
            start_offset=int(data["startOffset"]),
            end_offset=int(data["endOffset"]),
        )


@dataclass(frozen=True)
class ProcessedDoc:
    """Normalized document for a single route."""
    route: str
    title: str
    description: str
    body: str
    headings: Tuple[Heading, ...] = field(default_factory=tuple)

    def __post_init__(self):
        # Lists passed by callers are frozen into a tuple
        if not isinstance(self.headings, tuple):
            object.__setattr__(self, "headings", tuple(self.headings))

        if not self.route:
            raise ValueError("Document route cannot be empty")
        if not self.title:
            raise ValueError(f"Document title cannot be empty for route {self.route}")

        body_length = len(self.body)
        for heading in self.headings:
            if not 1 <= heading.level <= 6:
                raise ValueError(f"Invalid heading level {heading.level} in {self.route}")
            if not 0 <= heading.start_offset <= heading.end_offset <= body_length:
                raise ValueError(
                    f"Heading '{heading.id}' offsets [{heading.start_offset}, "
                    f"{heading.end_offset}] fall outside body of length {body_length} "
                    f"in {self.route}"
                )

    @property
    def heading_text(self) -> str:
        """Heading labels joined for indexing."""
        return " ".join(h.text for h in self.headings)

    def find_heading(self, heading_id: str):
        """Return the first heading with ``heading_id`` or None."""
        for heading in self.headings:
            if heading.id == heading_id:
                return heading
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "route": self.route,
            "title": self.title,
            "description": self.description,
            "body": self.body,
            "headings": [h.to_dict() for h in self.headings],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ProcessedDoc":
        """Create a document from its serialized form.

        Raises:
            KeyError: If a required key is missing
            ValueError: If the heading offsets are inconsistent with the body
        """
        return cls(
            route=str(data["route"]),
            title=str(data.get("title") or "Untitled"),
            description=str(data.get("description") or ""),
            body=str(data.get("body") or ""),
            headings=tuple(Heading.from_dict(h) for h in data.get("headings") or []),
        )
