"""Learn and review session controllers."""
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from vocabtrainer.config import settings
from vocabtrainer.models.word_models import DetailResult, ProgressEntry, WordIdentity, WordStatus
from vocabtrainer.services.content_generator import ContentGenerator
from vocabtrainer.services.detail_cache import DetailCache
from vocabtrainer.services.vocabulary_store import VocabularyStore

logger = logging.getLogger(__name__)


class SessionStateError(Exception):
    """Raised when a session operation is not allowed in the current state."""


@dataclass(frozen=True)
class SessionCard:
    """A word shown to the user together with its detail or error placeholder."""
    word: WordIdentity
    detail: DetailResult

    @property
    def has_error(self) -> bool:
        return self.detail.is_error


@dataclass(frozen=True)
class ReviewFeedback:
    """Outcome of one reviewed word, shown until acknowledged."""
    word_id: str
    is_correct: bool
    feedback: str
    confidence: Optional[float] = None
    synonym_nuances: Optional[str] = None
    mnemonic: Optional[str] = None
    entry: Optional[ProgressEntry] = None


class LearnSession:
    """Walks through a fixed batch of new words, marking each as learned."""

    def __init__(self, store: VocabularyStore, detail_cache: DetailCache, batch_size: Optional[int] = None):
        self.store = store
        self.detail_cache = detail_cache
        self.batch_size = batch_size or settings.learning.learn_batch_size
        self._words: List[WordIdentity] = []
        self._details: Dict[str, DetailResult] = {}
        self._index = 0
        self._started = False
        self._ended = False

    async def start(self) -> List[SessionCard]:
        """Snapshot the words to learn and fetch all their details up front."""
        if self._started:
            raise SessionStateError("Learn session already started")

        self._started = True
        self._words = self.store.words_to_learn()[:self.batch_size]
        logger.info(f"Starting learn session with {len(self._words)} words")
        self._details = await self.detail_cache.get_details_batch([word.id for word in self._words])
        return [self._card(word) for word in self._words]

    def _card(self, word: WordIdentity) -> SessionCard:
        return SessionCard(word=word, detail=self._details[word.id])

    @property
    def words(self) -> List[WordIdentity]:
        return list(self._words)

    @property
    def is_finished(self) -> bool:
        return self._ended or (self._started and self._index >= len(self._words))

    @property
    def progress(self) -> Tuple[int, int]:
        """Position of the current word (1-based) and the session size."""
        return min(self._index + 1, len(self._words)), len(self._words)

    @property
    def current(self) -> Optional[SessionCard]:
        if not self._started or self.is_finished:
            return None
        return self._card(self._words[self._index])

    def next_word(self) -> bool:
        """Mark the current word as learned and move on.

        Returns:
            True if another word follows, False once the session is finished.
        """
        card = self.current
        if card is None:
            raise SessionStateError("No current word in learn session")

        self.store.mark_as_learned(card.word.id)
        self._index += 1
        if self.is_finished:
            logger.info(f"Learn session finished after {len(self._words)} words")
        return not self.is_finished

    def end(self) -> None:
        """Stop the session early; words not reached stay new."""
        self._ended = True
        logger.info(f"Learn session ended at word {self._index} of {len(self._words)}")


class ReviewSession:
    """Reviews due words, or practices a single chosen word.

    Each word is loaded individually. An outcome comes either from the
    evaluation service judging a free-form explanation or from the user's own
    correct/incorrect report. The session moves to the next word only after
    the feedback for the current one has been acknowledged.
    """

    def __init__(
        self,
        store: VocabularyStore,
        detail_cache: DetailCache,
        content_generator: ContentGenerator,
        practice_word_id: Optional[str] = None,
    ):
        self.store = store
        self.detail_cache = detail_cache
        self.content_generator = content_generator
        self.practice_word_id = practice_word_id
        self._words: List[WordIdentity] = []
        self._index = 0
        self._card: Optional[SessionCard] = None
        self._feedback: Optional[ReviewFeedback] = None
        self._evaluating = False
        self._started = False
        self._ended = False

    @property
    def is_practice(self) -> bool:
        return self.practice_word_id is not None

    @property
    def can_evaluate(self) -> bool:
        """Whether explanations can be judged, otherwise only self-reports are possible."""
        return self.content_generator.is_configured

    async def start(self) -> Optional[SessionCard]:
        """Snapshot the session words and load the first one."""
        if self._started:
            raise SessionStateError("Review session already started")

        self._started = True
        if self.is_practice:
            self._words = self._practice_words()
        else:
            self._words = self.store.words_to_review()
        logger.info(f"Starting {'practice' if self.is_practice else 'review'} session with {len(self._words)} words")
        if not self._words:
            return None
        return await self.load_current()

    def _practice_words(self) -> List[WordIdentity]:
        word = self.store.find_word(self.practice_word_id)
        if word is None:
            logger.warning(f"Cannot practice unknown word {self.practice_word_id}")
            return []
        entry = self.store.get_entry(word.id)
        if entry is None or entry.status == WordStatus.NEW:
            logger.warning(f"Cannot practice word {word.id} before it is learned")
            return []
        return [word]

    async def load_current(self) -> Optional[SessionCard]:
        """Fetch the detail of the current word."""
        if self.is_finished:
            return None
        word = self._words[self._index]
        detail = await self.detail_cache.get_details(word.id)
        if detail.is_error:
            logger.warning(f"Showing placeholder for word {word.id}: {detail.message}")
        self._card = SessionCard(word=word, detail=detail)
        return self._card

    @property
    def words(self) -> List[WordIdentity]:
        return list(self._words)

    @property
    def current(self) -> Optional[SessionCard]:
        return None if self.is_finished else self._card

    @property
    def feedback(self) -> Optional[ReviewFeedback]:
        return self._feedback

    @property
    def is_finished(self) -> bool:
        return self._ended or (self._started and self._index >= len(self._words))

    @property
    def progress(self) -> Tuple[int, int]:
        """Position of the current word (1-based) and the session size."""
        return min(self._index + 1, len(self._words)), len(self._words)

    def _require_answerable(self) -> SessionCard:
        if self._card is None or self.is_finished:
            raise SessionStateError("No word loaded in review session")
        if self._feedback is not None:
            raise SessionStateError("Outcome already recorded, acknowledge the feedback first")
        if self._evaluating:
            raise SessionStateError("An evaluation is already running")
        return self._card

    async def submit_explanation(self, explanation: str) -> ReviewFeedback:
        """Have the evaluation service judge an explanation and record the verdict."""
        card = self._require_answerable()
        if not explanation.strip():
            raise SessionStateError("Explanation must not be empty")
        if not self.can_evaluate:
            raise SessionStateError("Evaluation service is not configured, report the outcome manually")

        definition, example_sentence = "", ""
        if not card.has_error:
            definition, example_sentence = card.detail.definition, card.detail.example_sentence

        context = self.detail_cache.context
        self._evaluating = True
        try:
            result = await self.content_generator.evaluate_user_explanation(
                card.word.text,
                definition,
                example_sentence,
                explanation,
                context.language,
                context.model,
            )
        finally:
            self._evaluating = False

        return self._record(
            card,
            result.is_correct,
            result.feedback,
            confidence=result.confidence,
            synonym_nuances=result.synonym_nuances,
            mnemonic=result.mnemonic,
        )

    def record_self_report(self, correct: bool) -> ReviewFeedback:
        """Record the user's own judgement of whether they remembered the word."""
        card = self._require_answerable()
        return self._record(card, correct, "Marked as correct." if correct else "Marked as incorrect.")

    def _record(self, card: SessionCard, correct: bool, feedback: str, **extra) -> ReviewFeedback:
        if self.is_practice:
            entry = self.store.record_practice_outcome(card.word.id, correct)
        else:
            entry = self.store.record_review_outcome(card.word.id, correct)
        self._feedback = ReviewFeedback(
            word_id=card.word.id,
            is_correct=correct,
            feedback=feedback,
            entry=entry,
            **extra,
        )
        return self._feedback

    async def acknowledge(self) -> Optional[SessionCard]:
        """Dismiss the feedback and load the next word.

        Returns:
            The next card, or None when the session is finished.
        """
        if self._feedback is None:
            raise SessionStateError("No outcome recorded for the current word")

        self._feedback = None
        self._card = None
        self._index += 1
        if self.is_finished:
            logger.info(f"Review session finished after {len(self._words)} words")
            return None
        return await self.load_current()

    def end(self) -> None:
        """Stop the session early; running fetches still complete and fill the cache."""
        self._ended = True
        logger.info(f"Review session ended at word {self._index} of {len(self._words)}")
