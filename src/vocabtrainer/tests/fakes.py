"""Test doubles shared by the test modules."""
import asyncio
from datetime import datetime, timedelta
from typing import Dict, List, Optional

from vocabtrainer.models.word_models import EvaluationResult, WordDetail

INTERVALS = [1, 3, 7, 16, 35]
MODEL = "gemini-2.0-flash"


class FakeClock:
    """Settable clock."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, days: float) -> None:
        self.now += timedelta(days=days)


def make_detail(word: str, language: str = "en") -> WordDetail:
    return WordDetail(
        definition=f"definition of {word} ({language})",
        example_sentence=f"An example sentence with {word}.",
        synonyms=[f"{word}-synonym"],
        synonym_nuances=f"How {word} differs from its synonyms.",
        mnemonic=f"A fun fact about {word}.",
    )


class FakeContentGenerator:
    """Stands in for the Gemini-backed generator and records every call.

    Set ``gate`` to an ``asyncio.Event`` to hold fetches until it is set.
    """

    def __init__(self, configured: bool = True):
        self.is_configured = configured
        self.single_calls: List[tuple] = []
        self.batch_calls: List[tuple] = []
        self.evaluation_calls: List[tuple] = []
        self.details: Dict[str, WordDetail] = {}
        self.omit: set = set()
        self.error: Optional[Exception] = None
        self.gate: Optional[asyncio.Event] = None
        self.evaluation = EvaluationResult(is_correct=True, feedback="Well explained.", confidence=0.9)

    async def _wait(self) -> None:
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error

    async def fetch_word_details(self, word: str, language: str, model: str) -> WordDetail:
        self.single_calls.append((word, language, model))
        await self._wait()
        return self.details.get(word) or make_detail(word, language)

    async def fetch_multiple_word_details(self, words: List[str], language: str, model: str) -> Dict[str, WordDetail]:
        self.batch_calls.append((list(words), language, model))
        await self._wait()
        return {
            word: self.details.get(word) or make_detail(word, language)
            for word in words
            if word not in self.omit
        }

    async def evaluate_user_explanation(self, word, definition, example_sentence, explanation, language, model):
        self.evaluation_calls.append((word, definition, example_sentence, explanation, language, model))
        return self.evaluation
