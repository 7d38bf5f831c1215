"""Spaced repetition ladder and progress entry transitions.

All transitions are pure: they take an entry and return a new one. ``now``
defaults to the current UTC time and can be passed explicitly to make the
schedule reproducible.
"""
from datetime import UTC, datetime, timedelta
from typing import Iterable, Optional

from vocabtrainer.config import settings
from vocabtrainer.models.word_models import ProgressEntry, WordStatus


class IntervalTable:
    """Ordered ladder of day counts between reviews."""

    def __init__(self, days: Iterable[int]):
        self._days = tuple(days)
        if not self._days:
            raise ValueError("Interval table must not be empty")
        if any(day <= 0 for day in self._days):
            raise ValueError("Interval table must contain positive day counts")

    def __getitem__(self, index: int) -> int:
        if not 0 <= index < len(self._days):
            raise IndexError(f"Interval index {index} out of range")
        return self._days[index]

    def __len__(self) -> int:
        return len(self._days)

    def __repr__(self) -> str:
        return f"IntervalTable({list(self._days)})"

    @property
    def last_index(self) -> int:
        """Index that doubles as the mastered sentinel."""
        return len(self._days) - 1

    def next_review(self, index: int, now: datetime) -> datetime:
        """Calculate the next review date for an interval index."""
        return now + timedelta(days=self[index])


def default_intervals() -> IntervalTable:
    """Build the interval table from settings."""
    return IntervalTable(settings.learning.repetition_intervals)


def _now(now: Optional[datetime]) -> datetime:
    return now if now is not None else datetime.now(UTC)


def create_entry(
    word_id: str,
    intervals: Optional[IntervalTable] = None,
    now: Optional[datetime] = None,
) -> ProgressEntry:
    """Create the entry of a word that was just marked as learned."""
    intervals = intervals or default_intervals()
    return ProgressEntry(
        word_id=word_id,
        status=WordStatus.LEARNING,
        last_reviewed_date=None,
        next_review_date=intervals.next_review(0, _now(now)),
        current_interval_index=0,
        times_correct_straight=0,
        total_times_reviewed=0,
    )


def advance(
    entry: ProgressEntry,
    was_correct: bool,
    intervals: Optional[IntervalTable] = None,
    now: Optional[datetime] = None,
) -> ProgressEntry:
    """Apply a scheduled review outcome.

    A wrong answer sends the word back to the first interval on the review
    track. A right answer climbs one rung, or masters the word when it was
    already on the last one.
    """
    intervals = intervals or default_intervals()
    now = _now(now)

    if not was_correct:
        return entry.evolve(
            status=WordStatus.REVIEWING,
            current_interval_index=0,
            times_correct_straight=0,
            next_review_date=intervals.next_review(0, now),
            last_reviewed_date=now,
            total_times_reviewed=entry.total_times_reviewed + 1,
        )

    times_correct_straight = entry.times_correct_straight + 1
    total_times_reviewed = entry.total_times_reviewed + 1

    if entry.current_interval_index + 1 >= len(intervals):
        return entry.evolve(
            status=WordStatus.MASTERED,
            current_interval_index=intervals.last_index,
            next_review_date=None,
            last_reviewed_date=now,
            times_correct_straight=times_correct_straight,
            total_times_reviewed=total_times_reviewed,
        )

    new_index = entry.current_interval_index + 1
    return entry.evolve(
        status=WordStatus.REVIEWING,
        current_interval_index=new_index,
        next_review_date=intervals.next_review(new_index, now),
        last_reviewed_date=now,
        times_correct_straight=times_correct_straight,
        total_times_reviewed=total_times_reviewed,
    )


def record_practice_outcome(
    entry: ProgressEntry,
    was_correct: bool,
    intervals: Optional[IntervalTable] = None,
    now: Optional[datetime] = None,
) -> ProgressEntry:
    """Apply the outcome of practicing a word outside its schedule.

    Mistakes cost the same as in a scheduled review. A correct answer only
    counts as a review; the schedule itself does not move. Practicing an
    overdue word therefore leaves ``last_reviewed_date`` after
    ``next_review_date``, and the word stays due.
    """
    if not was_correct:
        return advance(entry, False, intervals, now)

    return entry.evolve(
        last_reviewed_date=_now(now),
        total_times_reviewed=entry.total_times_reviewed + 1,
    )
