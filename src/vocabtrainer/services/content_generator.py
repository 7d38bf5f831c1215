"""Content generation service using Gemini."""
import asyncio
import json
import logging
import re
import time
from typing import Any, Callable, Dict, List, Optional

import google.generativeai as genai
from google.api_core import exceptions as google_exceptions

from vocabtrainer import monitoring
from vocabtrainer.config import settings
from vocabtrainer.models.word_models import ErrorKind, EvaluationResult, WordDetail
from vocabtrainer.services import prompts

logger = logging.getLogger(__name__)

FENCE_RE = re.compile(r"^```(\w*)?\s*\n?(.*?)\n?\s*```$", re.DOTALL)


class ContentGeneratorError(Exception):
    """Base error for failed content service calls."""
    kind: ErrorKind = ErrorKind.FETCH_FAILED

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ApiKeyMissingError(ContentGeneratorError):
    kind = ErrorKind.API_KEY_MISSING


class InvalidApiKeyError(ContentGeneratorError):
    kind = ErrorKind.INVALID_API_KEY


class RateLimitError(ContentGeneratorError):
    kind = ErrorKind.RATE_LIMITED


class MalformedResponseError(ContentGeneratorError):
    kind = ErrorKind.MALFORMED_RESPONSE


def strip_code_fence(text: str) -> str:
    """Remove a markdown code fence wrapped around a JSON payload."""
    text = text.strip()
    match = FENCE_RE.match(text)
    if match and match.group(2):
        return match.group(2).strip()
    return text


def parse_json_object(text: Optional[str]) -> Dict[str, Any]:
    """Parse a model response that must hold a single JSON object."""
    if not text:
        raise MalformedResponseError("Content service returned an empty response.")
    try:
        data = json.loads(strip_code_fence(text))
    except json.JSONDecodeError as e:
        raise MalformedResponseError(f"Could not parse content service response: {e}") from e
    if not isinstance(data, dict):
        raise MalformedResponseError("Content service response is not a JSON object.")
    return data


def classify_error(error: BaseException) -> ContentGeneratorError:
    """Map a client exception onto the content error taxonomy."""
    if isinstance(error, ContentGeneratorError):
        return error
    if isinstance(error, asyncio.TimeoutError):
        return ContentGeneratorError("Content service request timed out.")

    message = str(error)
    if isinstance(error, google_exceptions.ResourceExhausted) or "429" in message or "RESOURCE_EXHAUSTED" in message:
        return RateLimitError("API rate limit hit. Please try again after some time.")
    if (
        isinstance(error, (google_exceptions.PermissionDenied, google_exceptions.Unauthenticated))
        or "API key not valid" in message
    ):
        return InvalidApiKeyError("Invalid API Key. Please check your configuration.")
    if isinstance(error, ValueError):
        # Raised by the client when a response carries no text parts
        return MalformedResponseError(f"Content service returned no usable content: {message}")
    return ContentGeneratorError(f"Content service error: {message}")


def _text_field(data: Dict[str, Any], *keys: str) -> Optional[str]:
    """Get the first non-empty value among ``keys``, which must be text."""
    for key in keys:
        value = data.get(key)
        if value is None or value == "":
            continue
        if not isinstance(value, str):
            raise MalformedResponseError(f"Field {key} in content service response is not text.")
        return value
    return None


def detail_from_response(data: Dict[str, Any]) -> WordDetail:
    """Build a word detail from one response object.

    Raises:
        MalformedResponseError: If a text field holds anything but a string.
    """
    synonyms = data.get("synonyms") or []
    if not isinstance(synonyms, list):
        synonyms = [str(synonyms)]
    return WordDetail(
        definition=_text_field(data, "definition") or "No definition provided.",
        example_sentence=_text_field(data, "example_sentence", "exampleSentence") or "No example sentence provided.",
        synonyms=[str(synonym) for synonym in synonyms],
        synonym_nuances=_text_field(data, "synonymNuances"),
        mnemonic=_text_field(data, "mnemonic"),
    )


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() == "true"
    return value is True


def _as_confidence(value: Any) -> Optional[float]:
    try:
        return float(value) if value is not None else None
    except (TypeError, ValueError):
        return None


class ContentGenerator:
    """Service for generating word details and evaluating explanations."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        request_timeout: Optional[float] = None,
        model_factory: Optional[Callable[[str, float], Any]] = None,
    ):
        self.api_key = settings.content.api_key if api_key is None else api_key
        self.request_timeout = request_timeout or settings.content.request_timeout
        self._model_factory = model_factory or self._build_model
        if self.api_key and model_factory is None:
            genai.configure(api_key=self.api_key)
        logger.info(f"ContentGenerator initialized (configured: {self.is_configured})")

    @property
    def is_configured(self) -> bool:
        """Whether credentials are present at all."""
        return bool(self.api_key)

    @staticmethod
    def _build_model(model_name: str, temperature: float) -> Any:
        return genai.GenerativeModel(
            model_name,
            generation_config=genai.GenerationConfig(
                response_mime_type="application/json",
                temperature=temperature,
            ),
        )

    async def _generate(self, prompt: str, model_name: str, temperature: float, mode: str) -> Dict[str, Any]:
        """Send a prompt and parse the JSON object it answers with."""
        if not self.is_configured:
            raise ApiKeyMissingError("API key not configured.")

        model = self._model_factory(model_name, temperature)
        started = time.monotonic()
        try:
            response = await asyncio.wait_for(model.generate_content_async(prompt), timeout=self.request_timeout)
            data = parse_json_object(response.text)
        except Exception as e:
            error = classify_error(e)
            monitoring.detail_fetches.labels(mode=mode, outcome=error.kind.value).inc()
            monitoring.error_count.labels(error_type=error.kind.value).inc()
            raise error from e
        finally:
            monitoring.fetch_duration.labels(mode=mode).observe(time.monotonic() - started)

        monitoring.detail_fetches.labels(mode=mode, outcome="success").inc()
        return data

    async def fetch_word_details(self, word: str, language: str, model: str) -> WordDetail:
        """Generate the detail of a single word.

        Raises:
            ContentGeneratorError: If the service is unconfigured or the call fails.
        """
        try:
            data = await self._generate(
                prompts.build_word_details_prompt(word, language),
                model,
                settings.content.details_temperature,
                "single",
            )
        except ContentGeneratorError as e:
            logger.error(f"Error fetching word details for {word}: {e.message}")
            raise

        try:
            detail = detail_from_response(data)
        except MalformedResponseError as e:
            logger.error(f"Unusable word details for {word}: {e.message}")
            monitoring.error_count.labels(error_type=e.kind.value).inc()
            raise

        logger.info(f"Details generated for word: {word}")
        return detail

    async def fetch_multiple_word_details(self, words: List[str], language: str, model: str) -> Dict[str, WordDetail]:
        """Generate details for several words with one request.

        Words the service leaves out of its answer, or answers with unusable
        content, are absent from the result.

        Raises:
            ContentGeneratorError: If the service is unconfigured or the call fails.
        """
        if not words:
            return {}

        try:
            data = await self._generate(
                prompts.build_batch_word_details_prompt(words, language),
                model,
                settings.content.batch_temperature,
                "batch",
            )
        except ContentGeneratorError as e:
            logger.error(f"Error fetching batch word details for words: {', '.join(words)}: {e.message}")
            raise

        by_lower = {key.lower(): value for key, value in data.items() if isinstance(key, str)}
        details = {}
        for word in words:
            item = data.get(word, by_lower.get(word.lower()))
            if not isinstance(item, dict):
                continue
            try:
                details[word] = detail_from_response(item)
            except MalformedResponseError as e:
                logger.warning(f"Skipping unusable batch details for {word}: {e.message}")
                monitoring.error_count.labels(error_type=e.kind.value).inc()
        missing = len(words) - len(details)
        if missing:
            logger.warning(f"Batch response omitted {missing} of {len(words)} words")
        logger.info(f"Details generated for {len(details)} words")
        return details

    async def evaluate_user_explanation(
        self,
        word: str,
        definition: str,
        example_sentence: str,
        explanation: str,
        language: str,
        model: str,
    ) -> EvaluationResult:
        """Judge whether an explanation shows the user understands a word.

        Never raises; failures come back as an incorrect verdict whose feedback
        says why evaluation was not possible.
        """
        try:
            data = await self._generate(
                prompts.build_evaluation_prompt(word, definition, example_sentence, explanation, language),
                model,
                settings.content.evaluation_temperature,
                "evaluation",
            )
        except ContentGeneratorError as e:
            logger.error(f"Error evaluating explanation for {word}: {e.message}")
            return EvaluationResult(is_correct=False, feedback=self._evaluation_failure_feedback(e))

        result = EvaluationResult(
            is_correct=_as_bool(data.get("is_correct")),
            feedback=data.get("feedback") or "",
            confidence=_as_confidence(data.get("confidence")),
            synonym_nuances=data.get("synonymNuances") or None,
            mnemonic=data.get("mnemonic") or None,
        )
        logger.info(f"Explanation for {word} evaluated: correct={result.is_correct}")
        return result

    @staticmethod
    def _evaluation_failure_feedback(error: ContentGeneratorError) -> str:
        if error.kind == ErrorKind.API_KEY_MISSING:
            return "Evaluation service not available: API key not configured."
        if error.kind == ErrorKind.RATE_LIMITED:
            return "API rate limit hit. Evaluation failed. Please try again after some time."
        if error.kind == ErrorKind.INVALID_API_KEY:
            return "Evaluation failed due to invalid API Key. Please check your configuration."
        if error.kind == ErrorKind.MALFORMED_RESPONSE:
            return "Could not evaluate: the evaluation service returned an unreadable answer."
        return "Could not evaluate due to an API error."
