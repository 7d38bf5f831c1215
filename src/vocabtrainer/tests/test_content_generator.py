"""Tests for content generation service."""
import asyncio
import json
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
from google.api_core import exceptions as google_exceptions

from vocabtrainer.models.word_models import ErrorKind
from vocabtrainer.services.content_generator import (
    ApiKeyMissingError,
    ContentGenerator,
    ContentGeneratorError,
    InvalidApiKeyError,
    MalformedResponseError,
    RateLimitError,
    classify_error,
    parse_json_object,
    strip_code_fence,
)

MODEL = "gemini-2.0-flash"

APRICOT = {
    "definition": "A small orange fruit related to the peach.",
    "example_sentence": "She picked a ripe apricot from the tree.",
    "synonyms": ["drupe"],
    "synonymNuances": "A drupe is any stone fruit.",
    "mnemonic": "A-PRI-COT: a price-cut peach.",
}


def generator_answering(text=None, error=None, delay: float = 0.0):
    """Build a generator whose model answers with ``text`` or raises ``error``."""
    async def generate(prompt):
        if delay:
            await asyncio.sleep(delay)
        if error is not None:
            raise error
        return SimpleNamespace(text=text)

    model = MagicMock()
    model.generate_content_async = AsyncMock(side_effect=generate)
    factory = MagicMock(return_value=model)
    generator = ContentGenerator(api_key="test-key", request_timeout=5, model_factory=factory)
    return generator, factory, model


def test_strip_code_fence() -> None:
    """Test removing markdown fences around JSON."""
    assert strip_code_fence('```json\n{"a": 1}\n```') == '{"a": 1}'
    assert strip_code_fence('```\n{"a": 1}\n```') == '{"a": 1}'
    assert strip_code_fence('  {"a": 1} ') == '{"a": 1}'


@pytest.mark.parametrize("text", [None, "", "not json", "[1, 2]"])
def test_parse_json_object_rejects_bad_payloads(text) -> None:
    with pytest.raises(MalformedResponseError):
        parse_json_object(text)


def test_classify_error() -> None:
    """Test mapping client errors onto error kinds."""
    assert classify_error(google_exceptions.ResourceExhausted("quota")).kind == ErrorKind.RATE_LIMITED
    assert classify_error(RuntimeError("429 Too Many Requests")).kind == ErrorKind.RATE_LIMITED
    assert classify_error(google_exceptions.PermissionDenied("denied")).kind == ErrorKind.INVALID_API_KEY
    assert classify_error(RuntimeError("API key not valid. Please pass a valid API key.")).kind == (
        ErrorKind.INVALID_API_KEY
    )
    assert classify_error(ValueError("no parts")).kind == ErrorKind.MALFORMED_RESPONSE
    assert classify_error(RuntimeError("boom")).kind == ErrorKind.FETCH_FAILED


def test_unconfigured_generator() -> None:
    generator = ContentGenerator(api_key="", model_factory=MagicMock())
    assert generator.is_configured is False


@pytest.mark.asyncio
async def test_fetch_word_details() -> None:
    """Test generating the detail of one word."""
    generator, factory, model = generator_answering("```json\n" + json.dumps(APRICOT) + "\n```")

    detail = await generator.fetch_word_details("apricot", "en", MODEL)

    assert detail.definition == APRICOT["definition"]
    assert detail.example_sentence == APRICOT["example_sentence"]
    assert detail.synonyms == ["drupe"]
    assert detail.synonym_nuances == APRICOT["synonymNuances"]
    assert detail.mnemonic == APRICOT["mnemonic"]
    assert factory.call_args.args[0] == MODEL
    assert "apricot" in model.generate_content_async.call_args.args[0]


@pytest.mark.asyncio
async def test_fetch_word_details_in_chinese_prompt() -> None:
    generator, _, model = generator_answering(json.dumps(APRICOT))
    await generator.fetch_word_details("apricot", "zh", MODEL)
    assert "Chinese" in model.generate_content_async.call_args.args[0]


@pytest.mark.asyncio
async def test_fetch_word_details_fills_missing_fields() -> None:
    generator, _, _ = generator_answering(json.dumps({"definition": "A fruit."}))
    detail = await generator.fetch_word_details("apricot", "en", MODEL)

    assert detail.definition == "A fruit."
    assert detail.example_sentence == "No example sentence provided."
    assert detail.synonyms == []


@pytest.mark.asyncio
async def test_fetch_without_api_key() -> None:
    generator = ContentGenerator(api_key="", model_factory=MagicMock())
    with pytest.raises(ApiKeyMissingError):
        await generator.fetch_word_details("apricot", "en", MODEL)


@pytest.mark.asyncio
async def test_fetch_rate_limited() -> None:
    generator, _, _ = generator_answering(error=google_exceptions.ResourceExhausted("quota exceeded"))
    with pytest.raises(RateLimitError):
        await generator.fetch_word_details("apricot", "en", MODEL)


@pytest.mark.asyncio
async def test_fetch_invalid_key() -> None:
    generator, _, _ = generator_answering(error=google_exceptions.PermissionDenied("API key not valid"))
    with pytest.raises(InvalidApiKeyError):
        await generator.fetch_word_details("apricot", "en", MODEL)


@pytest.mark.asyncio
async def test_fetch_malformed_response() -> None:
    generator, _, _ = generator_answering("The word apricot means a fruit.")
    with pytest.raises(MalformedResponseError):
        await generator.fetch_word_details("apricot", "en", MODEL)


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "answer",
    [
        {"definition": ["sweet", "fruit"], "example_sentence": "I ate an apricot."},
        {"definition": "A fruit.", "example_sentence": {"text": "I ate an apricot."}},
        {"definition": "A fruit.", "example_sentence": "I ate an apricot.", "mnemonic": 42},
    ],
)
async def test_fetch_rejects_fields_that_are_not_text(answer) -> None:
    """Test that a detail with non-text fields is never handed out."""
    generator, _, _ = generator_answering(json.dumps(answer))
    with pytest.raises(MalformedResponseError) as excinfo:
        await generator.fetch_word_details("apricot", "en", MODEL)
    assert excinfo.value.kind == ErrorKind.MALFORMED_RESPONSE


@pytest.mark.asyncio
async def test_fetch_times_out() -> None:
    generator, _, _ = generator_answering(json.dumps(APRICOT), delay=1.0)
    generator.request_timeout = 0.01

    with pytest.raises(ContentGeneratorError) as excinfo:
        await generator.fetch_word_details("apricot", "en", MODEL)
    assert excinfo.value.kind == ErrorKind.FETCH_FAILED
    assert "timed out" in excinfo.value.message


@pytest.mark.asyncio
async def test_fetch_multiple_word_details() -> None:
    """Test that a batch answer is matched to words case-insensitively."""
    answer = {"Apricot": APRICOT, "laconic": {"definition": "Using few words.", "example_sentence": "A laconic reply."}}
    generator, _, model = generator_answering(json.dumps(answer))

    details = await generator.fetch_multiple_word_details(["apricot", "laconic", "torpor"], "en", MODEL)

    assert set(details) == {"apricot", "laconic"}
    assert details["laconic"].definition == "Using few words."
    prompt = model.generate_content_async.call_args.args[0]
    assert all(word in prompt for word in ["apricot", "laconic", "torpor"])


@pytest.mark.asyncio
async def test_fetch_multiple_word_details_skips_unusable_items() -> None:
    """Test that one word with non-text fields does not sink the batch."""
    answer = {"apricot": APRICOT, "laconic": {"definition": ["terse"], "example_sentence": "A laconic reply."}}
    generator, _, _ = generator_answering(json.dumps(answer))

    details = await generator.fetch_multiple_word_details(["apricot", "laconic"], "en", MODEL)

    assert list(details) == ["apricot"]


@pytest.mark.asyncio
async def test_fetch_multiple_word_details_empty() -> None:
    generator, factory, _ = generator_answering("{}")
    assert await generator.fetch_multiple_word_details([], "en", MODEL) == {}
    factory.assert_not_called()


@pytest.mark.asyncio
async def test_evaluate_user_explanation() -> None:
    answer = {
        "is_correct": "true",
        "feedback": "Correct, an apricot is a fruit.",
        "confidence": "0.92",
        "synonymNuances": "Unlike a peach, it is smaller.",
    }
    generator, _, model = generator_answering(json.dumps(answer))

    result = await generator.evaluate_user_explanation(
        "apricot", APRICOT["definition"], APRICOT["example_sentence"], "a small orange fruit", "en", MODEL
    )

    assert result.is_correct is True
    assert result.feedback == answer["feedback"]
    assert result.confidence == pytest.approx(0.92)
    assert result.synonym_nuances == answer["synonymNuances"]
    assert result.mnemonic is None
    assert "a small orange fruit" in model.generate_content_async.call_args.args[0]


@pytest.mark.asyncio
async def test_evaluate_rejects_wrong_explanation() -> None:
    generator, _, _ = generator_answering(json.dumps({"is_correct": False, "feedback": "That is a vegetable."}))
    result = await generator.evaluate_user_explanation("apricot", "", "", "a vegetable", "en", MODEL)

    assert result.is_correct is False
    assert result.confidence is None


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("error", "fragment"),
    [
        (google_exceptions.ResourceExhausted("quota"), "rate limit"),
        (google_exceptions.Unauthenticated("bad key"), "invalid API Key"),
        (RuntimeError("boom"), "API error"),
    ],
)
async def test_evaluate_failure_is_incorrect_verdict(error, fragment) -> None:
    """Test that evaluation never raises and reports why it failed."""
    generator, _, _ = generator_answering(error=error)
    result = await generator.evaluate_user_explanation("apricot", "", "", "a fruit", "en", MODEL)

    assert result.is_correct is False
    assert fragment in result.feedback


@pytest.mark.asyncio
async def test_evaluate_without_api_key() -> None:
    generator = ContentGenerator(api_key="", model_factory=MagicMock())
    result = await generator.evaluate_user_explanation("apricot", "", "", "a fruit", "en", MODEL)

    assert result.is_correct is False
    assert "API key not configured" in result.feedback


if __name__ == "__main__":
    pytest.main([__file__])
