"""Models for word, progress and detail data structures."""
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Union


class WordStatus(Enum):
    """Learning lifecycle of a word."""
    NEW = "new"  # Never marked as learned
    LEARNING = "learning"  # Marked as learned, first review pending
    REVIEWING = "reviewing"  # On the review ladder
    MASTERED = "mastered"  # Climbed past the last interval


class ErrorKind(Enum):
    """Why a word detail could not be produced."""
    API_KEY_MISSING = "api_key_missing"
    INVALID_API_KEY = "invalid_api_key"
    RATE_LIMITED = "rate_limited"
    MALFORMED_RESPONSE = "malformed_response"
    FETCH_FAILED = "fetch_failed"
    NOT_RETURNED = "not_returned"
    BATCH_FAILED = "batch_failed"
    UNKNOWN_WORD = "unknown_word"


@dataclass(frozen=True)
class WordIdentity:
    """A word of the fixed universe."""
    id: str
    text: str


@dataclass(frozen=True)
class CacheContext:
    """Language and model the cached content was generated for."""
    language: str
    model: str

    def to_dict(self) -> Dict[str, str]:
        return {"language": self.language, "model": self.model}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CacheContext":
        return cls(language=data["language"], model=data["model"])


def _to_iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _from_iso(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


@dataclass(frozen=True)
class ProgressEntry:
    """Per-word spaced repetition state.

    Entries are immutable; transitions return a new entry.
    """
    word_id: str
    status: WordStatus
    last_reviewed_date: Optional[datetime] = None
    next_review_date: Optional[datetime] = None
    current_interval_index: int = 0
    times_correct_straight: int = 0
    total_times_reviewed: int = 0

    def evolve(self, **changes: Any) -> "ProgressEntry":
        """Return a copy of the entry with the given fields replaced."""
        return replace(self, **changes)

    def is_due(self, now: datetime) -> bool:
        """Whether the entry is on the review track and its review date has passed."""
        return (
            self.status in (WordStatus.LEARNING, WordStatus.REVIEWING)
            and self.next_review_date is not None
            and self.next_review_date <= now
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to serializable data for storage."""
        return {
            "wordId": self.word_id,
            "status": self.status.value,
            "lastReviewedDate": _to_iso(self.last_reviewed_date),
            "nextReviewDate": _to_iso(self.next_review_date),
            "currentIntervalIndex": self.current_interval_index,
            "timesCorrectStraight": self.times_correct_straight,
            "totalTimesReviewed": self.total_times_reviewed,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ProgressEntry":
        """Create an entry from stored data."""
        return cls(
            word_id=data["wordId"],
            status=WordStatus(data["status"]),
            last_reviewed_date=_from_iso(data.get("lastReviewedDate")),
            next_review_date=_from_iso(data.get("nextReviewDate")),
            current_interval_index=int(data.get("currentIntervalIndex", 0)),
            times_correct_straight=int(data.get("timesCorrectStraight", 0)),
            total_times_reviewed=int(data.get("totalTimesReviewed", 0)),
        )


@dataclass(frozen=True)
class WordDetail:
    """Lexical detail generated for a word."""
    definition: str
    example_sentence: str
    synonyms: List[str] = field(default_factory=list)
    synonym_nuances: Optional[str] = None
    mnemonic: Optional[str] = None

    is_error = False

    def to_dict(self) -> Dict[str, Any]:
        """Convert to serializable data for storage."""
        data: Dict[str, Any] = {
            "definition": self.definition,
            "exampleSentence": self.example_sentence,
            "synonyms": list(self.synonyms),
        }
        if self.synonym_nuances is not None:
            data["synonymNuances"] = self.synonym_nuances
        if self.mnemonic is not None:
            data["mnemonic"] = self.mnemonic
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "WordDetail":
        """Create a detail from stored data."""
        return cls(
            definition=data["definition"],
            example_sentence=data.get("exampleSentence", ""),
            synonyms=list(data.get("synonyms") or []),
            synonym_nuances=data.get("synonymNuances"),
            mnemonic=data.get("mnemonic"),
        )


@dataclass(frozen=True)
class DetailError:
    """Placeholder returned instead of a detail when it could not be produced.

    Never persisted and never treated as a cache hit.
    """
    kind: ErrorKind
    message: str

    is_error = True


DetailResult = Union[WordDetail, DetailError]


@dataclass(frozen=True)
class EvaluationResult:
    """Verdict on a user's explanation of a word."""
    is_correct: bool
    feedback: str
    confidence: Optional[float] = None
    synonym_nuances: Optional[str] = None
    mnemonic: Optional[str] = None
