from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


@dataclass(frozen=True)
class CaptionSegment:
    start_time: float  # seconds
    end_time: float
    text: str


@dataclass(frozen=True)
class TimeRange:
    start_time: float
    end_time: float

    def to_dict(self) -> dict:
        return {"startTime": self.start_time, "endTime": self.end_time}


@dataclass(frozen=True)
class OrdinalHint:
    """Position of a fragment among all fragments returned for its field."""
    index: int
    total: int


@dataclass(frozen=True)
class Term:
    value: str
    is_exact_phrase: bool = False


@dataclass
class SearchQuery:
    raw_query: str
    exact_phrases: list[str] = field(default_factory=list)
    keywords: list[str] = field(default_factory=list)

    @property
    def terms(self) -> list[Term]:
        """Phrases first, then keywords, in the order the user typed them.

        A term repeated in another case is kept once, at its first position.
        """
        out, seen = [], set()
        for t in ([Term(p, True) for p in self.exact_phrases]
                  + [Term(k, False) for k in self.keywords]):
            if t.value.lower() not in seen:
                seen.add(t.value.lower())
                out.append(t)
        return out

    @property
    def distinct_term_count(self) -> int:
        return len(self.terms)


class Field(str, Enum):
    TRANSCRIPT = "transcript_text"
    DESCRIPTION = "description"


@dataclass(frozen=True)
class HighlightFragment:
    text: str  # may contain <em> markers
    field: Field
    source_index: int


@dataclass
class KeywordPreview:
    keyword: str
    fragment: str
    timestamp: TimeRange | None = None


@dataclass
class CacheEntry:
    key: str
    data: str  # JSON snapshot of the payload
    created_at: float
    expires_at: float


@dataclass
class EpisodeMatch:
    text: str
    field: Field
    position: int
    timestamp: TimeRange | None = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"text": self.text, "field": self.field.value, "position": self.position}
        if self.timestamp is not None:
            out["timestamp"] = self.timestamp.to_dict()
        return out
