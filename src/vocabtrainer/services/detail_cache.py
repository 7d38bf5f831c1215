"""Word detail cache with request coalescing."""
import asyncio
import logging
from dataclasses import dataclass
from typing import Dict, FrozenSet, Iterable, List, Optional

from vocabtrainer import monitoring
from vocabtrainer.models.word_models import (
    CacheContext,
    DetailError,
    DetailResult,
    ErrorKind,
    WordIdentity,
)
from vocabtrainer.services.content_generator import ContentGenerator, ContentGeneratorError
from vocabtrainer.services.vocabulary_store import VocabularyStore

logger = logging.getLogger(__name__)

API_KEY_MISSING_MESSAGE = "API key not configured."
NOT_RETURNED_MESSAGE = "Details not returned for this word."


@dataclass
class BatchFetch:
    """A combined fetch in flight and the words it covers."""
    task: "asyncio.Task[Dict[str, DetailResult]]"
    word_ids: FrozenSet[str]


class DetailCache:
    """Resolves word details from the store's cache or the content service.

    Concurrent requests for the same word share one fetch, and at most one
    combined batch fetch is in flight at a time. Fetches are tagged with the
    store's cache generation; results arriving after a context switch are
    dropped by the store instead of being cached.
    """

    def __init__(self, store: VocabularyStore, content_generator: ContentGenerator):
        self.store = store
        self.content_generator = content_generator
        self._in_flight: Dict[str, "asyncio.Task[DetailResult]"] = {}
        self._batch: Optional[BatchFetch] = None

    @property
    def context(self) -> CacheContext:
        return self.store.context

    def in_flight(self, word_id: str) -> bool:
        """Whether a fetch covering the word is running."""
        return word_id in self._in_flight or (self._batch is not None and word_id in self._batch.word_ids)

    def set_context(self, language: Optional[str] = None, model: Optional[str] = None) -> bool:
        """Switch language and/or model.

        The cache is cleared and running fetches are abandoned before this
        returns, so no later lookup can be served content of the old context.

        Returns:
            True if the context changed.
        """
        current = self.store.context
        context = CacheContext(language=language or current.language, model=model or current.model)
        if not self.store.set_cache_context(context):
            return False

        abandoned = len(self._in_flight) + (1 if self._batch is not None else 0)
        self._in_flight = {}
        self._batch = None
        if abandoned:
            logger.info(f"Abandoned {abandoned} in-flight fetches started under the previous context")
        return True

    async def get_details(self, word_id: str) -> DetailResult:
        """Get the detail of one word, fetching it at most once at a time."""
        word = self.store.find_word(word_id)
        if word is None:
            return DetailError(ErrorKind.UNKNOWN_WORD, f"Word {word_id} not found.")

        cached = self.store.get_cached_detail(word_id)
        if cached is not None:
            monitoring.cache_hits.inc()
            return cached

        task = self._in_flight.get(word_id)
        if task is not None:
            monitoring.coalesced_requests.labels(mode="single").inc()
            logger.debug(f"Joining in-flight fetch for word {word_id}")
            return await asyncio.shield(task)

        batch = self._batch
        if batch is not None and word_id in batch.word_ids:
            monitoring.coalesced_requests.labels(mode="batch").inc()
            logger.debug(f"Joining in-flight batch fetch for word {word_id}")
            batch_results = await asyncio.shield(batch.task)
            return batch_results[word_id]

        monitoring.cache_misses.inc()
        if not self.content_generator.is_configured:
            logger.warning(f"API key not found, cannot fetch details for word {word_id}")
            return DetailError(ErrorKind.API_KEY_MISSING, API_KEY_MISSING_MESSAGE)

        task = asyncio.ensure_future(self._fetch_one(word, self.store.context, self.store.generation))
        self._in_flight[word_id] = task
        return await asyncio.shield(task)

    async def _fetch_one(self, word: WordIdentity, context: CacheContext, generation: int) -> DetailResult:
        try:
            try:
                result: DetailResult = await self.content_generator.fetch_word_details(
                    word.text, context.language, context.model
                )
            except ContentGeneratorError as e:
                result = DetailError(e.kind, e.message)
            except Exception as e:
                logger.exception(f"Unexpected error fetching details for {word.text}")
                monitoring.error_count.labels(error_type="unexpected").inc()
                result = DetailError(ErrorKind.FETCH_FAILED, f"Could not load details: {e}")

            self.store.cache_details({word.id: result}, generation)
            return result
        finally:
            if self._in_flight.get(word.id) is asyncio.current_task():
                del self._in_flight[word.id]

    async def get_details_batch(self, word_ids: Iterable[str]) -> Dict[str, DetailResult]:
        """Get details of several words with at most one combined request.

        Every requested id is present in the result. Ids the service leaves out
        of its answer carry a NOT_RETURNED error, and a failed request yields
        one error per id.
        """
        requested = list(dict.fromkeys(word_ids))
        if not requested:
            return {}

        results: Dict[str, DetailResult] = {}
        while True:
            pending: Dict[str, "asyncio.Task[DetailResult]"] = {}
            to_fetch: List[WordIdentity] = []
            for word_id in requested:
                if word_id in results:
                    continue
                word = self.store.find_word(word_id)
                if word is None:
                    results[word_id] = DetailError(ErrorKind.UNKNOWN_WORD, f"Word {word_id} not found.")
                    continue
                cached = self.store.get_cached_detail(word_id)
                if cached is not None:
                    monitoring.cache_hits.inc()
                    results[word_id] = cached
                elif word_id in self._in_flight:
                    pending[word_id] = self._in_flight[word_id]
                else:
                    to_fetch.append(word)

            if pending:
                monitoring.coalesced_requests.labels(mode="single").inc(len(pending))
                values = await asyncio.gather(*(asyncio.shield(task) for task in pending.values()))
                results.update(zip(pending, values))
                continue

            if not to_fetch:
                break

            if not self.content_generator.is_configured:
                logger.warning(f"API key not found, cannot fetch batch details for {len(to_fetch)} words")
                for word in to_fetch:
                    results[word.id] = DetailError(ErrorKind.API_KEY_MISSING, API_KEY_MISSING_MESSAGE)
                break

            batch = self._batch
            if batch is not None:
                monitoring.coalesced_requests.labels(mode="batch").inc()
                logger.info("Batch request already in flight, awaiting its completion")
                batch_results = await asyncio.shield(batch.task)
                for word in to_fetch:
                    if word.id in batch_results:
                        results[word.id] = batch_results[word.id]
                continue

            monitoring.cache_misses.inc(len(to_fetch))
            batch = self._start_batch(to_fetch)
            batch_results = await asyncio.shield(batch.task)
            for word in to_fetch:
                results[word.id] = batch_results[word.id]
            break

        return {word_id: results[word_id] for word_id in requested}

    def _start_batch(self, words: List[WordIdentity]) -> BatchFetch:
        task = asyncio.ensure_future(self._fetch_batch(words, self.store.context, self.store.generation))
        batch = BatchFetch(task=task, word_ids=frozenset(word.id for word in words))
        self._batch = batch
        logger.info(f"Fetching details for {len(words)} words in one batch")
        return batch

    async def _fetch_batch(
        self,
        words: List[WordIdentity],
        context: CacheContext,
        generation: int,
    ) -> Dict[str, DetailResult]:
        try:
            texts = list(dict.fromkeys(word.text for word in words))
            try:
                fetched = await self.content_generator.fetch_multiple_word_details(
                    texts, context.language, context.model
                )
            except ContentGeneratorError as e:
                kind = ErrorKind.BATCH_FAILED if e.kind == ErrorKind.FETCH_FAILED else e.kind
                return {word.id: DetailError(kind, e.message) for word in words}
            except Exception as e:
                logger.exception("Unexpected error processing batch details")
                monitoring.error_count.labels(error_type="unexpected").inc()
                return {word.id: DetailError(ErrorKind.BATCH_FAILED, f"Error in batch fetch: {e}") for word in words}

            results: Dict[str, DetailResult] = {}
            for word in words:
                detail = fetched.get(word.text)
                results[word.id] = detail if detail is not None else DetailError(
                    ErrorKind.NOT_RETURNED, NOT_RETURNED_MESSAGE
                )
            self.store.cache_details(results, generation)
            return results
        finally:
            if self._batch is not None and self._batch.task is asyncio.current_task():
                self._batch = None

    async def explore_word(self, text: str) -> DetailResult:
        """Look up any word, bypassing the cache."""
        text = text.strip()
        if not text:
            return DetailError(ErrorKind.UNKNOWN_WORD, "No word given.")
        if not self.content_generator.is_configured:
            return DetailError(ErrorKind.API_KEY_MISSING, API_KEY_MISSING_MESSAGE)

        context = self.store.context
        try:
            return await self.content_generator.fetch_word_details(text, context.language, context.model)
        except ContentGeneratorError as e:
            return DetailError(e.kind, e.message)
