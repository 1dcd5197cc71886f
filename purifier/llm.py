"""Remote model calls and the retry policy for transcript purification."""

from __future__ import annotations

import json
import logging
import re
import time
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Optional

import google.generativeai as genai
import openai
from google.api_core import exceptions as google_exceptions
from openai import OpenAI

from .config import (
    GEMINI_MODEL,
    MAX_RETRIES,
    OPENAI_MODEL,
    REQUEST_TIMEOUT,
    RETRY_BASE_DELAY,
    TEMPERATURE,
    ProviderSettings,
)
from .errors import (
    EmptyResponse,
    ErrorKind,
    MalformedResponse,
    MissingCredential,
    RateLimitExceeded,
    RemoteCallFailed,
    RemoteError,
)
from .models import PurificationResult
from .prompt import RESPONSE_SCHEMA, SYSTEM_INSTRUCTION, build_user_message

logger = logging.getLogger(__name__)

TRANSIENT_RE = re.compile(r"\b500\b|xhr|rpc|proxyunarycall|unexpected error")
RATE_LIMIT_RE = re.compile(r"\b429\b|quota|rate limit|resource exhausted")

CODE_FENCE_RE = re.compile(r"^\s*```(?:json)?\s*|\s*```\s*$", re.IGNORECASE)


def kind_from_message(message: str) -> ErrorKind:
    """Fallback classification for exceptions of a type we do not recognise."""
    lowered = (message or "").lower()
    if TRANSIENT_RE.search(lowered):
        return ErrorKind.TRANSIENT
    if RATE_LIMIT_RE.search(lowered):
        return ErrorKind.RATE_LIMITED
    return ErrorKind.UNKNOWN


def should_retry(kind: ErrorKind, retries: int) -> bool:
    return kind is ErrorKind.TRANSIENT and retries < MAX_RETRIES


class BaseBackend(ABC):
    """One structured-completion call against a hosted model."""

    @abstractmethod
    def name(self) -> str:
        raise NotImplementedError

    @abstractmethod
    def generate(self, system_instruction: str, prompt: str, schema: Dict[str, Any]) -> str:
        """Return the raw JSON text produced by the model.

        Implementations raise RemoteError with an ErrorKind when the call fails.
        """
        raise NotImplementedError


class GeminiBackend(BaseBackend):
    # ServerError covers every 5xx including Unknown ("An unexpected error occurred").
    TRANSIENT_ERRORS = (
        google_exceptions.ServerError,
        google_exceptions.DeadlineExceeded,
    )
    RATE_LIMIT_ERRORS = (
        google_exceptions.TooManyRequests,
        google_exceptions.ResourceExhausted,
    )

    def __init__(self, api_key: str, model: str = GEMINI_MODEL):
        genai.configure(api_key=api_key)
        self._model = model

    def name(self) -> str:
        return f"gemini:{self._model}"

    def _classify(self, exc: Exception) -> ErrorKind:
        if isinstance(exc, self.RATE_LIMIT_ERRORS):
            return ErrorKind.RATE_LIMITED
        if isinstance(exc, self.TRANSIENT_ERRORS):
            return ErrorKind.TRANSIENT
        if isinstance(exc, google_exceptions.GoogleAPICallError):
            return ErrorKind.UNKNOWN
        return kind_from_message(str(exc))

    def generate(self, system_instruction: str, prompt: str, schema: Dict[str, Any]) -> str:
        model = genai.GenerativeModel(self._model, system_instruction=system_instruction)
        try:
            response = model.generate_content(
                prompt,
                generation_config=genai.GenerationConfig(
                    temperature=TEMPERATURE,
                    response_mime_type="application/json",
                    response_schema=schema,
                ),
                request_options={"timeout": REQUEST_TIMEOUT},
            )
        except Exception as exc:
            raise RemoteError(self._classify(exc), str(exc)) from exc

        try:
            return response.text
        except ValueError:
            # Blocked or empty candidates: the accessor raises instead of returning "".
            return ""


class OpenAIBackend(BaseBackend):
    def __init__(self, api_key: str, base_url: Optional[str] = None, model: str = OPENAI_MODEL):
        self._client = OpenAI(
            api_key=api_key,
            base_url=base_url,
            timeout=REQUEST_TIMEOUT,
            max_retries=0,
        )
        self._model = model

    def name(self) -> str:
        return f"openai:{self._model}"

    def _classify(self, exc: Exception) -> ErrorKind:
        if isinstance(exc, openai.RateLimitError):
            return ErrorKind.RATE_LIMITED
        if isinstance(exc, (openai.APIConnectionError, openai.InternalServerError)):
            return ErrorKind.TRANSIENT
        if isinstance(exc, openai.APIError):
            return ErrorKind.UNKNOWN
        return kind_from_message(str(exc))

    def generate(self, system_instruction: str, prompt: str, schema: Dict[str, Any]) -> str:
        # The schema is spelled out in the system instruction; json_object mode
        # keeps the request portable across OpenAI-compatible gateways.
        try:
            response = self._client.chat.completions.create(
                model=self._model,
                messages=[
                    {"role": "system", "content": system_instruction},
                    {"role": "user", "content": prompt},
                ],
                temperature=TEMPERATURE,
                response_format={"type": "json_object"},
            )
        except Exception as exc:
            raise RemoteError(self._classify(exc), str(exc)) from exc

        if not response.choices:
            return ""
        return response.choices[0].message.content or ""


def get_backend(settings: Optional[ProviderSettings] = None) -> BaseBackend:
    settings = settings or ProviderSettings.from_env()
    if settings.provider == "openai":
        if not settings.openai_api_key:
            raise MissingCredential("No API key found. Set OPENAI_API_KEY.")
        return OpenAIBackend(settings.openai_api_key, settings.openai_base_url)
    if settings.provider == "gemini":
        if not settings.gemini_api_key:
            raise MissingCredential("No API key found. Set GEMINI_API_KEY.")
        return GeminiBackend(settings.gemini_api_key)
    raise MissingCredential(f"Unknown provider {settings.provider!r}; use 'gemini' or 'openai'.")


def _strip_code_fence(text: str) -> str:
    return CODE_FENCE_RE.sub("", text).strip()


def parse_result(text: Optional[str]) -> PurificationResult:
    if not text or not text.strip():
        raise EmptyResponse("The model returned an empty response.")
    try:
        payload = json.loads(_strip_code_fence(text))
        return PurificationResult.from_dict(payload)
    except (ValueError, KeyError, TypeError) as exc:
        raise MalformedResponse(f"The model response did not match the expected format: {exc}") from exc


def purify(
    raw_text: str,
    hints: str = "",
    *,
    backend: Optional[BaseBackend] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> PurificationResult:
    """Send a transcript to the model and return the structured result.

    Transient failures are retried up to MAX_RETRIES times, waiting
    RETRY_BASE_DELAY * retry-number seconds between attempts. Rate-limit
    failures raise RateLimitExceeded immediately.
    """
    backend = backend or get_backend()
    prompt = build_user_message(raw_text, hints)

    retries = 0
    while True:
        try:
            text = backend.generate(SYSTEM_INSTRUCTION, prompt, RESPONSE_SCHEMA)
            break
        except RemoteError as exc:
            logger.warning(
                "Attempt %d against %s failed (%s): %s",
                retries + 1,
                backend.name(),
                exc.kind.value,
                exc.message,
            )
            if should_retry(exc.kind, retries):
                retries += 1
                delay = RETRY_BASE_DELAY * retries
                logger.info("Retrying in %.1fs (retry %d/%d)", delay, retries, MAX_RETRIES)
                sleep(delay)
                continue
            if exc.kind is ErrorKind.RATE_LIMITED:
                raise RateLimitExceeded(exc.message) from exc
            if exc.kind is ErrorKind.MALFORMED:
                raise MalformedResponse(exc.message) from exc
            raise RemoteCallFailed(
                exc.message or "Error contacting the AI service, please try again later."
            ) from exc

    result = parse_result(text)
    logger.info(
        "Purified %d chars into %d chars with %d corrections",
        len(raw_text),
        len(result.purified_text),
        len(result.corrections),
    )
    return result
