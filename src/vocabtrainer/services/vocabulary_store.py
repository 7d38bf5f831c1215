"""Store owning progress entries and the word detail cache."""
import json
import logging
from datetime import UTC, datetime
from typing import Callable, Dict, List, Mapping, Optional, Sequence

from vocabtrainer import monitoring
from vocabtrainer.models.word_models import (
    CacheContext,
    DetailResult,
    ProgressEntry,
    WordDetail,
    WordIdentity,
    WordStatus,
)
from vocabtrainer.services import review_queue, spaced_repetition
from vocabtrainer.services.review_queue import ProgressStats
from vocabtrainer.services.spaced_repetition import IntervalTable
from vocabtrainer.services.storage_service import BlobStore

logger = logging.getLogger(__name__)

STORAGE_KEY = "vocabulary_progress"

# Texts that older versions cached instead of real content
ERROR_MARKERS = (
    "api key not configured",
    "api client not initialized",
    "invalid api key",
    "rate limit",
    "error fetching",
    "error in batch fetch",
    "error awaiting previous batch",
    "details not returned",
    "details not found in api response",
    "could not load",
    "loading error",
)


class VocabularyError(ValueError):
    """Base error for invalid store operations."""


class UnknownWordError(VocabularyError):
    """Raised when a word id is not part of the universe."""

    def __init__(self, word_id: str):
        super().__init__(f"Word {word_id} not found")
        self.word_id = word_id


def looks_like_error(detail: WordDetail) -> bool:
    """Check whether cached content is really a stored failure message.

    Details whose fields are not text are treated the same way.
    """
    if not isinstance(detail.definition, str) or not isinstance(detail.example_sentence, str):
        return True
    if any(not isinstance(value, (str, type(None))) for value in (detail.synonym_nuances, detail.mnemonic)):
        return True
    if any(not isinstance(synonym, str) for synonym in detail.synonyms):
        return True
    definition = detail.definition.lower()
    return not definition.strip() or any(marker in definition for marker in ERROR_MARKERS)


class VocabularyStore:
    """Single owner of learning progress and cached word details.

    Every mutation is a read-modify-write on the latest entry followed by a
    wholesale save, so callers never observe a half-updated entry.
    """

    def __init__(
        self,
        blob_store: BlobStore,
        words: Sequence[WordIdentity],
        context: CacheContext,
        intervals: Optional[IntervalTable] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.blob_store = blob_store
        self.intervals = intervals or spaced_repetition.default_intervals()
        self.clock = clock or (lambda: datetime.now(UTC))
        self._words = tuple(words)
        self._words_by_id = {word.id: word for word in self._words}
        self._entries: Dict[str, ProgressEntry] = {}
        self._details: Dict[str, WordDetail] = {}
        self._context = context
        self._generation = 0

    # Words

    @property
    def words(self) -> Sequence[WordIdentity]:
        return self._words

    def get_word(self, word_id: str) -> WordIdentity:
        """Get a word by its id."""
        word = self._words_by_id.get(word_id)
        if word is None:
            raise UnknownWordError(word_id)
        return word

    def find_word(self, word_id: str) -> Optional[WordIdentity]:
        return self._words_by_id.get(word_id)

    # Persistence

    def load(self) -> None:
        """Load progress and cached details from durable storage.

        Only an unparseable document is discarded as a whole. Single entries
        or details that cannot be read are skipped.
        """
        raw = self.blob_store.get(STORAGE_KEY)
        self._entries = {}
        self._details = {}
        if not raw:
            logger.info("No stored progress found, starting fresh")
            return

        try:
            data = json.loads(raw)
            stored_entries = data.get("learnedWords") or {}
            stored_details = data.get("wordDetailsCache") or {}
            stored_context = data.get("cacheContext")
        except (ValueError, AttributeError) as e:
            logger.error(f"Failed to parse stored vocabulary progress: {e}")
            monitoring.error_count.labels(error_type="corrupt_storage").inc()
            self.blob_store.delete(STORAGE_KEY)
            return

        self._entries = self._parse_entries(stored_entries)

        if self._context_matches(stored_context):
            self._details = self._sanitize_details(stored_details)
        else:
            logger.info("Stored details belong to another language or model, discarding them")
            monitoring.cache_invalidations.labels(reason="context_changed").inc()

        logger.info(f"Loaded {len(self._entries)} progress entries and {len(self._details)} cached details")

    def _parse_entries(self, stored_entries: Mapping[str, dict]) -> Dict[str, ProgressEntry]:
        if not isinstance(stored_entries, dict):
            logger.error(f"Stored progress entries are not a mapping, ignoring them: {type(stored_entries).__name__}")
            monitoring.error_count.labels(error_type="corrupt_storage").inc()
            return {}

        entries = {}
        for word_id, raw_entry in stored_entries.items():
            if word_id not in self._words_by_id:
                logger.warning(f"Dropping progress entry for unknown word {word_id}")
                continue
            try:
                entries[word_id] = ProgressEntry.from_dict(raw_entry)
            except (KeyError, TypeError, ValueError, AttributeError) as e:
                logger.warning(f"Dropping unreadable progress entry for word {word_id}: {e}")
                monitoring.error_count.labels(error_type="corrupt_entry").inc()
        return entries

    def _context_matches(self, stored_context) -> bool:
        if not stored_context:
            return True
        try:
            return CacheContext.from_dict(stored_context) == self._context
        except (KeyError, TypeError) as e:
            logger.warning(f"Unreadable stored cache context: {e}")
            return False

    def _sanitize_details(self, stored_details: Mapping[str, dict]) -> Dict[str, WordDetail]:
        if not isinstance(stored_details, dict):
            logger.error(f"Stored details are not a mapping, ignoring them: {type(stored_details).__name__}")
            return {}

        details = {}
        for word_id, raw_detail in stored_details.items():
            if word_id not in self._words_by_id or not isinstance(raw_detail, dict):
                continue
            if raw_detail.get("error") or "kind" in raw_detail:
                logger.debug(f"Dropping stored error detail for word {word_id}")
                continue
            try:
                detail = WordDetail.from_dict(raw_detail)
                if looks_like_error(detail):
                    logger.debug(f"Dropping stored error detail for word {word_id}: {detail.definition!r}")
                    continue
            except (KeyError, TypeError) as e:
                logger.warning(f"Dropping unreadable cached detail for word {word_id}: {e}")
                continue
            details[word_id] = detail
        return details

    def save(self) -> None:
        """Write progress and cached details to durable storage."""
        data = {
            "learnedWords": {word_id: entry.to_dict() for word_id, entry in self._entries.items()},
            "wordDetailsCache": {word_id: detail.to_dict() for word_id, detail in self._details.items()},
            "cacheContext": self._context.to_dict(),
        }
        self.blob_store.set(STORAGE_KEY, json.dumps(data, ensure_ascii=False))

    # Progress

    @property
    def entries(self) -> Dict[str, ProgressEntry]:
        """Snapshot of all progress entries."""
        return dict(self._entries)

    def get_entry(self, word_id: str) -> Optional[ProgressEntry]:
        return self._entries.get(word_id)

    def mark_as_learned(self, word_id: str) -> ProgressEntry:
        """Move a word from NEW to LEARNING."""
        self.get_word(word_id)
        entry = self._entries.get(word_id)
        if entry and entry.status != WordStatus.NEW:
            logger.debug(f"Word {word_id} is already {entry.status.value}, keeping its progress")
            return entry

        entry = spaced_repetition.create_entry(word_id, self.intervals, self.clock())
        self._entries[word_id] = entry
        self.save()
        monitoring.words_learned.inc()
        logger.info(f"Word {word_id} marked as learned, next review {entry.next_review_date}")
        return entry

    def record_review_outcome(self, word_id: str, correct: bool) -> Optional[ProgressEntry]:
        """Apply a scheduled review outcome to a word."""
        return self._update_entry(word_id, correct, spaced_repetition.advance, "review")

    def record_practice_outcome(self, word_id: str, correct: bool) -> Optional[ProgressEntry]:
        """Apply a practice outcome to a word without advancing its schedule."""
        return self._update_entry(word_id, correct, spaced_repetition.record_practice_outcome, "practice")

    def _update_entry(self, word_id: str, correct: bool, transition, mode: str) -> Optional[ProgressEntry]:
        self.get_word(word_id)
        entry = self._entries.get(word_id)
        if entry is None or entry.status == WordStatus.NEW:
            logger.warning(f"Ignoring {mode} outcome for word {word_id}: it was never marked as learned")
            return None

        updated = transition(entry, correct, self.intervals, self.clock())
        self._entries[word_id] = updated
        self.save()
        monitoring.reviews_recorded.labels(mode=mode, outcome="correct" if correct else "incorrect").inc()
        logger.info(
            f"Recorded {mode} outcome for word {word_id}: correct={correct}, "
            f"status={updated.status.value}, interval index={updated.current_interval_index}"
        )
        return updated

    def reset_word_progress(self, word_id: str) -> None:
        """Return a word to NEW and forget its cached detail."""
        self.get_word(word_id)
        self._entries.pop(word_id, None)
        self._details.pop(word_id, None)
        self.save()
        logger.info(f"Progress reset for word {word_id}")

    def reset_all_progress(self) -> None:
        """Forget all progress and cached details."""
        self._entries = {}
        self._details = {}
        self._generation += 1
        self.save()
        monitoring.cache_invalidations.labels(reason="reset").inc()
        logger.info("All progress reset")

    # Queries

    def words_to_learn(self) -> List[WordIdentity]:
        return review_queue.words_to_learn(self._words, self._entries)

    def words_to_review(self, now: Optional[datetime] = None) -> List[WordIdentity]:
        return review_queue.words_to_review(self._words, self._entries, now or self.clock())

    def progress_stats(self) -> ProgressStats:
        return review_queue.progress_stats(self._words, self._entries)

    # Detail cache

    @property
    def context(self) -> CacheContext:
        return self._context

    @property
    def generation(self) -> int:
        """Counter bumped whenever the cache is invalidated."""
        return self._generation

    @property
    def cached_details(self) -> Dict[str, WordDetail]:
        return dict(self._details)

    def get_cached_detail(self, word_id: str) -> Optional[WordDetail]:
        return self._details.get(word_id)

    def cache_details(self, details: Mapping[str, DetailResult], generation: int) -> int:
        """Store fetched details that were requested under ``generation``.

        Error results are skipped, and nothing is stored when the cache was
        invalidated since the fetch started.

        Returns:
            Number of details stored.
        """
        if generation != self._generation:
            logger.info(
                f"Discarding {len(details)} details fetched under stale cache generation "
                f"{generation} (current {self._generation})"
            )
            monitoring.stale_results_discarded.inc(len(details))
            return 0

        fresh = {
            word_id: detail for word_id, detail in details.items()
            if not detail.is_error and word_id in self._words_by_id
        }
        if fresh:
            self._details.update(fresh)
            self.save()
        return len(fresh)

    def set_cache_context(self, context: CacheContext) -> bool:
        """Switch language or model, clearing the cache when either changes.

        Returns:
            True if the context changed.
        """
        if context == self._context:
            return False

        logger.info(
            f"Cache context changed from {self._context.language}/{self._context.model} "
            f"to {context.language}/{context.model}, clearing {len(self._details)} cached details"
        )
        self._context = context
        self._details = {}
        self._generation += 1
        self.save()
        monitoring.cache_invalidations.labels(reason="context_changed").inc()
        return True
