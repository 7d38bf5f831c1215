"""Tests for the word universe."""
import json

import pytest
from faker import Faker

from vocabtrainer.words import GRE_WORDS, default_words, load_words

fake = Faker()


def test_default_words():
    """Test the built-in list has unique ids and texts."""
    words = default_words()

    assert len(words) == len(GRE_WORDS)
    assert len({word.id for word in words}) == len(words)
    assert len({word.text for word in words}) == len(words)
    assert "apricot" in {word.text for word in words}


def test_load_words_defaults_without_path():
    assert load_words(None) == default_words()


def test_load_words_from_file(tmp_path):
    texts = [fake.unique.word() for _ in range(5)]
    path = tmp_path / "words.json"
    path.write_text(json.dumps([{"id": f"custom-{index}", "text": text} for index, text in enumerate(texts)]))

    words = load_words(str(path))

    assert [word.text for word in words] == texts
    assert words[0].id == "custom-0"


@pytest.mark.parametrize(
    "entries",
    [
        [{"id": "a", "text": "apricot"}, {"id": "a", "text": "laconic"}],
        [{"id": "a"}],
        [{"text": "apricot"}],
    ],
)
def test_load_words_rejects_invalid_files(tmp_path, entries):
    path = tmp_path / "words.json"
    path.write_text(json.dumps(entries))
    with pytest.raises(ValueError):
        load_words(str(path))
