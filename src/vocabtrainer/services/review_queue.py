"""Queries deriving the learn and review queues from progress entries."""
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Dict, List, Optional, Sequence

from vocabtrainer.models.word_models import ProgressEntry, WordIdentity, WordStatus


@dataclass(frozen=True)
class ProgressStats:
    """Dashboard counters."""
    total_words: int
    learned_count: int
    mastered_count: int
    learning_count: int
    reviewing_count: int


def words_to_learn(
    words: Sequence[WordIdentity],
    entries: Dict[str, ProgressEntry],
) -> List[WordIdentity]:
    """Get words that were never marked as learned, in universe order."""
    return [
        word for word in words
        if word.id not in entries or entries[word.id].status == WordStatus.NEW
    ]


def words_to_review(
    words: Sequence[WordIdentity],
    entries: Dict[str, ProgressEntry],
    now: Optional[datetime] = None,
) -> List[WordIdentity]:
    """Get words whose review date has passed, in universe order."""
    now = now if now is not None else datetime.now(UTC)
    return [word for word in words if word.id in entries and entries[word.id].is_due(now)]


def progress_stats(
    words: Sequence[WordIdentity],
    entries: Dict[str, ProgressEntry],
) -> ProgressStats:
    """Count words per learning stage."""
    statuses = [entry.status for entry in entries.values()]
    return ProgressStats(
        total_words=len(words),
        learned_count=sum(1 for status in statuses if status != WordStatus.NEW),
        mastered_count=statuses.count(WordStatus.MASTERED),
        learning_count=statuses.count(WordStatus.LEARNING),
        reviewing_count=statuses.count(WordStatus.REVIEWING),
    )
