"""Test configuration."""
import os
from datetime import UTC, datetime
from pathlib import Path
from typing import List

import pytest
from dotenv import load_dotenv

# Set test environment before any imports
os.environ["ENV"] = "test"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["GEMINI_API_KEY"] = ""
os.environ["METRICS_ENABLED"] = "false"

# Load test environment variables
test_env_path = Path(__file__).parent.parent.parent.parent / ".env.test"
load_dotenv(test_env_path)

# Import after environment setup
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from vocabtrainer.models.base import init_db
from vocabtrainer.models.word_models import CacheContext, WordIdentity
from vocabtrainer.services.detail_cache import DetailCache
from vocabtrainer.services.spaced_repetition import IntervalTable
from vocabtrainer.services.storage_service import BlobStore
from vocabtrainer.services.vocabulary_store import VocabularyStore
from vocabtrainer.tests.fakes import INTERVALS, MODEL, FakeClock, FakeContentGenerator


@pytest.fixture
def blob_store(tmp_path) -> BlobStore:
    """Blob store on a fresh SQLite database."""
    engine = create_engine(f"sqlite:///{tmp_path / 'test.db'}")
    init_db(engine)
    return BlobStore(sessionmaker(bind=engine))


@pytest.fixture
def words() -> List[WordIdentity]:
    texts = ["apricot", "laconic", "ephemeral", "obdurate", "venerate", "taciturn", "zealot", "lucid", "torpor"]
    return [WordIdentity(id=f"w{index + 1}", text=text) for index, text in enumerate(texts)]


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2024, 1, 1, 9, 0, tzinfo=UTC))


@pytest.fixture
def intervals() -> IntervalTable:
    return IntervalTable(INTERVALS)


@pytest.fixture
def store(blob_store: BlobStore, words: List[WordIdentity], intervals: IntervalTable, clock: FakeClock) -> VocabularyStore:
    store = VocabularyStore(blob_store, words, CacheContext("en", MODEL), intervals=intervals, clock=clock)
    store.load()
    return store


@pytest.fixture
def generator() -> FakeContentGenerator:
    return FakeContentGenerator()


@pytest.fixture
def cache(store: VocabularyStore, generator: FakeContentGenerator) -> DetailCache:
    return DetailCache(store, generator)
