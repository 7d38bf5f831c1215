"""Main application object wiring storage, cache and sessions together."""
import json
import logging
from datetime import datetime
from typing import Callable, List, Optional, Sequence, Tuple

from vocabtrainer.config import SUPPORTED_LANGUAGES, settings
from vocabtrainer.models.base import init_db
from vocabtrainer.models.word_models import CacheContext, DetailResult, WordIdentity, WordStatus
from vocabtrainer.monitoring import start_monitoring
from vocabtrainer.services.content_generator import ContentGenerator
from vocabtrainer.services.detail_cache import DetailCache
from vocabtrainer.services.review_queue import ProgressStats
from vocabtrainer.services.session_service import LearnSession, ReviewSession
from vocabtrainer.services.spaced_repetition import IntervalTable
from vocabtrainer.services.storage_service import BlobStore
from vocabtrainer.services.vocabulary_store import VocabularyStore
from vocabtrainer.words import load_words

PREFERENCES_KEY = "preferences"


class VocabularyTrainer:
    """Main application class."""

    def __init__(
        self,
        blob_store: Optional[BlobStore] = None,
        words: Optional[Sequence[WordIdentity]] = None,
        content_generator: Optional[ContentGenerator] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """Initialize the application.

        Collaborators default to the configured database, word list and
        Gemini client; tests pass their own.
        """
        self.blob_store = blob_store
        self.words = words
        self.content_generator = content_generator
        self.clock = clock
        self.store: Optional[VocabularyStore] = None
        self.detail_cache: Optional[DetailCache] = None
        self.running = False
        self.logger = logging.getLogger(__name__)

    def start(self) -> None:
        """Start the application."""
        if self.running:
            return

        try:
            if self.blob_store is None:
                init_db()
                self.blob_store = BlobStore()
                self.logger.info("Database initialized")

            if self.words is None:
                self.words = load_words(settings.learning.word_list_file)
            if self.content_generator is None:
                self.content_generator = ContentGenerator()

            self.store = VocabularyStore(
                self.blob_store,
                self.words,
                self._load_preferences(),
                intervals=IntervalTable(settings.learning.repetition_intervals),
                clock=self.clock,
            )
            self.store.load()
            self.detail_cache = DetailCache(self.store, self.content_generator)
            self.logger.info(
                f"Trainer started with {len(self.words)} words, "
                f"language {self.store.context.language}, model {self.store.context.model}"
            )

            if settings.monitoring.enabled:
                start_monitoring(settings.monitoring.port)
                self.logger.info(f"Metrics exporter listening on port {settings.monitoring.port}")

            self.running = True

        except Exception as e:
            self.logger.error("Failed to start application: %s", str(e))
            self.stop()
            raise

    def stop(self) -> None:
        """Stop the application, flushing progress to storage."""
        if self.store is not None and self.running:
            self.store.save()
            self.logger.info("Progress saved")
        self.running = False

    def _require_running(self) -> None:
        if not self.running:
            raise RuntimeError("Trainer is not started")

    # Preferences

    def _load_preferences(self) -> CacheContext:
        language = settings.content.default_language
        model = settings.content.model
        raw = self.blob_store.get(PREFERENCES_KEY)
        if raw:
            try:
                preferences = json.loads(raw)
            except ValueError as e:
                self.logger.error(f"Failed to parse stored preferences: {e}")
                preferences = {}
            if preferences.get("language") in SUPPORTED_LANGUAGES:
                language = preferences["language"]
            if preferences.get("modelId") in settings.content.available_models:
                model = preferences["modelId"]
        return CacheContext(language=language, model=model)

    def _save_preferences(self) -> None:
        context = self.store.context
        self.blob_store.set(PREFERENCES_KEY, json.dumps({"language": context.language, "modelId": context.model}))

    def set_language(self, language: str) -> bool:
        """Switch the content language, invalidating cached details."""
        self._require_running()
        if language not in SUPPORTED_LANGUAGES:
            raise ValueError(f"Unsupported language: {language}")
        changed = self.detail_cache.set_context(language=language)
        if changed:
            self._save_preferences()
        return changed

    def set_model(self, model: str) -> bool:
        """Switch the content model, invalidating cached details."""
        self._require_running()
        if model not in settings.content.available_models:
            raise ValueError(f"Unsupported model: {model}")
        changed = self.detail_cache.set_context(model=model)
        if changed:
            self._save_preferences()
        return changed

    # Sessions

    def learn_session(self, batch_size: Optional[int] = None) -> LearnSession:
        self._require_running()
        return LearnSession(self.store, self.detail_cache, batch_size)

    def review_session(self) -> ReviewSession:
        self._require_running()
        return ReviewSession(self.store, self.detail_cache, self.content_generator)

    def practice_session(self, word_id: str) -> ReviewSession:
        self._require_running()
        return ReviewSession(self.store, self.detail_cache, self.content_generator, practice_word_id=word_id)

    async def explore_word(self, text: str) -> DetailResult:
        self._require_running()
        return await self.detail_cache.explore_word(text)

    # Progress

    def word_statuses(self) -> List[Tuple[WordIdentity, WordStatus]]:
        """List every word with its learning status, in universe order."""
        self._require_running()
        statuses = []
        for word in self.store.words:
            entry = self.store.get_entry(word.id)
            statuses.append((word, entry.status if entry else WordStatus.NEW))
        return statuses

    def reset_word_progress(self, word_id: str) -> None:
        """Return one word to NEW.

        Raises:
            UnknownWordError: If the word is not part of the universe.
        """
        self._require_running()
        self.store.reset_word_progress(word_id)

    def reset_all_progress(self) -> None:
        self._require_running()
        self.store.reset_all_progress()

    def progress_stats(self) -> ProgressStats:
        self._require_running()
        return self.store.progress_stats()
