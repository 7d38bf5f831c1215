"""Tests for learn and review queue queries."""
from datetime import UTC, datetime, timedelta

from vocabtrainer.models.word_models import ProgressEntry, WordIdentity, WordStatus
from vocabtrainer.services.review_queue import progress_stats, words_to_learn, words_to_review

NOW = datetime(2024, 3, 10, 12, 0, tzinfo=UTC)
WORDS = [WordIdentity(id=f"w{index}", text=text) for index, text in enumerate(
    ["apricot", "laconic", "ephemeral", "obdurate", "venerate", "taciturn"]
)]


def entry(word_id: str, status: WordStatus, next_review=None) -> ProgressEntry:
    return ProgressEntry(word_id=word_id, status=status, next_review_date=next_review)


ENTRIES = {
    "w1": entry("w1", WordStatus.LEARNING, NOW - timedelta(hours=1)),
    "w2": entry("w2", WordStatus.REVIEWING, NOW + timedelta(days=2)),
    "w3": entry("w3", WordStatus.MASTERED),
    "w4": entry("w4", WordStatus.NEW),
    "w5": entry("w5", WordStatus.REVIEWING, NOW),
}


def test_words_to_learn_in_universe_order() -> None:
    """Test that words without progress or still NEW are offered for learning."""
    assert [word.id for word in words_to_learn(WORDS, ENTRIES)] == ["w0", "w4"]


def test_words_to_learn_without_progress() -> None:
    assert words_to_learn(WORDS, {}) == WORDS


def test_words_to_review_only_due_words() -> None:
    """Test that only due LEARNING/REVIEWING words are offered for review."""
    assert [word.id for word in words_to_review(WORDS, ENTRIES, NOW)] == ["w1", "w5"]


def test_words_to_review_excludes_new_and_mastered() -> None:
    entries = {
        "w0": entry("w0", WordStatus.NEW, NOW - timedelta(days=3)),
        "w1": entry("w1", WordStatus.MASTERED, NOW - timedelta(days=3)),
    }
    assert words_to_review(WORDS, entries, NOW) == []


def test_words_to_review_is_stable() -> None:
    first = words_to_review(WORDS, ENTRIES, NOW)
    reordered = dict(reversed(list(ENTRIES.items())))
    assert words_to_review(WORDS, reordered, NOW) == first


def test_words_to_review_later_includes_future_words() -> None:
    later = NOW + timedelta(days=3)
    assert [word.id for word in words_to_review(WORDS, ENTRIES, later)] == ["w1", "w2", "w5"]


def test_progress_stats() -> None:
    stats = progress_stats(WORDS, ENTRIES)

    assert stats.total_words == 6
    assert stats.learned_count == 4
    assert stats.mastered_count == 1
    assert stats.learning_count == 1
    assert stats.reviewing_count == 2
