"""Translation provider abstractions."""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, List, Sequence

from .errors import (
    TranslationProviderConfigurationError,
    TranslationProviderError,
)
from .segmenter import normalize_translations
from .structures import TranslationResult

logger = logging.getLogger(__name__)

GEMINI = "gemini"
OPENAI_COMPATIBLE = "openai_compatible"
ECHO = "echo"

DEFAULT_GEMINI_MODEL = "gemini-3-flash-preview"
DEFAULT_OPENAI_COMPATIBLE_MODEL = "deepseek-ai/deepseek-r1"
DEFAULT_OPENAI_COMPATIBLE_BASE_URL = "https://integrate.api.nvidia.com/v1"

SYSTEM_PROMPT = "You are a professional translator. Output only JSON."
PING_PROMPT = "Say OK"


@dataclass(frozen=True)
class BackendSettings:
    """Provider selection plus the credentials needed to reach it."""

    provider: str
    model_id: str
    base_url: str | None = None
    api_key: str | None = None


def build_prompt(texts: Sequence[str], target_language: str) -> str:
    """Instruction embedding the batch as a JSON array."""

    return (
        f"Task: Translate the following JSON string array into {target_language}.\n"
        "Requirements:\n"
        "1. Return ONLY a valid JSON array of strings.\n"
        f"2. Length must be exactly {len(texts)}.\n"
        "3. Keep the original structure. No explanation.\n"
        "\n"
        f"Input: {json.dumps(list(texts), ensure_ascii=False)}"
    )


class TranslationBackend(ABC):
    """Abstract adapter for translation backends.

    Subclasses implement :meth:`_request`, which may raise
    :class:`TranslationProviderError`. :meth:`translate_batch` turns every
    failure into a pass-through result so one bad batch never stops a file.
    """

    name = "abstract"

    def __init__(self, settings: BackendSettings, *, debug: bool = False) -> None:
        self.settings = settings
        self.debug = debug

    def translate_batch(
        self,
        texts: Sequence[str],
        target_language: str,
    ) -> TranslationResult:
        """Translate ``texts`` and return exactly ``len(texts)`` items."""

        original = list(texts)
        if not original:
            return TranslationResult(items=[], tokens_used=0)

        prompt = build_prompt(original, target_language)
        self._log_debug("provider.request.prompt", prompt)
        try:
            translated, tokens = self._request(original, prompt)
        except TranslationProviderError as exc:
            logger.warning("%s translation failed, keeping original text: %s", self.name, exc)
            return TranslationResult(items=original, tokens_used=0)
        except Exception as exc:
            logger.warning(
                "%s translation failed unexpectedly, keeping original text: %s",
                self.name,
                exc,
            )
            return TranslationResult(items=original, tokens_used=0)

        self._log_debug("provider.response.items", translated)
        items = normalize_translations(translated, original)
        return TranslationResult(items=items, tokens_used=max(0, int(tokens or 0)))

    def test_connection(self) -> bool:
        """Send a tiny request and report whether any text came back."""

        try:
            return bool(self._ping())
        except Exception as exc:
            logger.warning("%s connection test failed: %s", self.name, exc)
            return False

    @abstractmethod
    def _request(self, texts: List[str], prompt: str) -> tuple[Any, int]:
        """Return the parsed response payload and the token count."""

    @abstractmethod
    def _ping(self) -> str | None:
        """Return the response text of a minimal request."""

    def _log_debug(self, label: str, payload: Any) -> None:
        """Emit structured debug information when enabled."""

        if not self.debug:
            return
        try:
            if isinstance(payload, (dict, list)):
                message = json.dumps(payload, ensure_ascii=False, indent=2)
            else:
                message = str(payload)
        except (TypeError, ValueError):
            message = repr(payload)
        logger.debug("[provider-debug] %s:\n%s", label, message)

    def _safe_dump_response(self, response: Any) -> Any:
        """Best-effort conversion of SDK response objects into JSON-friendly data."""

        for attr in ("model_dump_json", "model_dump"):
            candidate = getattr(response, attr, None)
            if candidate:
                try:
                    data = candidate()
                    if isinstance(data, str):
                        return json.loads(data)
                    return data
                except (TypeError, ValueError):
                    continue
        return str(response)


class EchoTranslationBackend(TranslationBackend):
    """A backend that returns the original text (useful for dry runs)."""

    name = ECHO

    def _request(self, texts: List[str], prompt: str) -> tuple[Any, int]:
        return list(texts), 0

    def _ping(self) -> str | None:
        return "OK"


class GeminiTranslationBackend(TranslationBackend):
    """Structured-output backend on the Google GenAI SDK.

    The response is constrained to a JSON array of strings, so it is parsed
    directly without any repair.
    """

    name = GEMINI

    def __init__(
        self,
        settings: BackendSettings,
        *,
        client: Any = None,
        debug: bool = False,
    ) -> None:
        super().__init__(settings, debug=debug)
        self._client = client if client is not None else self._build_client()

    def _build_client(self) -> Any:
        if not self.settings.api_key:
            raise TranslationProviderConfigurationError(
                "Gemini configuration missing. Set GEMINI_API_KEY or choose a "
                "different provider."
            )
        from google import genai

        return genai.Client(api_key=self.settings.api_key)

    def _request(self, texts: List[str], prompt: str) -> tuple[Any, int]:
        from google.genai import types

        try:
            response = self._client.models.generate_content(
                model=self.settings.model_id,
                contents=prompt,
                config=types.GenerateContentConfig(
                    response_mime_type="application/json",
                    response_schema=list[str],
                ),
            )
        except Exception as exc:
            raise TranslationProviderError(
                f"Translation service temporarily unavailable: {exc}"
            ) from exc
        self._log_debug("provider.response.raw", self._safe_dump_response(response))
        self._log_reasoning(response)

        text = getattr(response, "text", None)
        if not text:
            raise TranslationProviderError("Gemini returned an empty response.")
        try:
            parsed = json.loads(text)
        except json.JSONDecodeError as exc:
            raise TranslationProviderError(
                f"Gemini returned invalid JSON: {exc}"
            ) from exc

        usage = getattr(response, "usage_metadata", None)
        tokens = getattr(usage, "total_token_count", None) or 0
        return parsed, tokens

    def _log_reasoning(self, response: Any) -> None:
        for candidate in getattr(response, "candidates", None) or []:
            content = getattr(candidate, "content", None)
            for part in getattr(content, "parts", None) or []:
                if getattr(part, "thought", False) and getattr(part, "text", None):
                    logger.debug("Model reasoning: %s", part.text)

    def _ping(self) -> str | None:
        from google.genai import types

        response = self._client.models.generate_content(
            model=self.settings.model_id,
            contents=PING_PROMPT,
            config=types.GenerateContentConfig(max_output_tokens=5),
        )
        return getattr(response, "text", None)


class OpenAICompatibleBackend(TranslationBackend):
    """Free-text backend for any OpenAI-compatible chat completions endpoint."""

    name = OPENAI_COMPATIBLE

    TEMPERATURE = 0.1
    MAX_TOKENS = 4096

    def __init__(
        self,
        settings: BackendSettings,
        *,
        client: Any = None,
        debug: bool = False,
    ) -> None:
        super().__init__(settings, debug=debug)
        self._client = client if client is not None else self._build_client()

    def _build_client(self) -> Any:
        if not self.settings.api_key:
            raise TranslationProviderConfigurationError(
                "OpenAI-compatible configuration missing. Set OPENAI_API_KEY or "
                "choose a different provider."
            )
        from openai import OpenAI

        return OpenAI(api_key=self.settings.api_key, base_url=self.settings.base_url)

    def _request(self, texts: List[str], prompt: str) -> tuple[Any, int]:
        try:
            response = self._client.chat.completions.create(
                model=self.settings.model_id,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": prompt},
                ],
                temperature=self.TEMPERATURE,
                max_tokens=self.MAX_TOKENS,
                stream=False,
            )
        except Exception as exc:
            raise TranslationProviderError(
                f"Translation service temporarily unavailable: {exc}"
            ) from exc
        self._log_debug("provider.response.raw", self._safe_dump_response(response))

        message = self._first_message(response)
        reasoning = getattr(message, "reasoning_content", None)
        if reasoning:
            logger.debug("Model reasoning: %s", reasoning)

        content = getattr(message, "content", None) or ""
        parsed = extract_json_array(content)

        usage = getattr(response, "usage", None)
        tokens = getattr(usage, "total_tokens", None) or 0
        return parsed, tokens

    def _first_message(self, response: Any) -> Any:
        choices = getattr(response, "choices", None) or []
        if not choices:
            raise TranslationProviderError(
                "Translation provider response empty or unrecognised."
            )
        return getattr(choices[0], "message", None)

    def _ping(self) -> str | None:
        response = self._client.chat.completions.create(
            model=self.settings.model_id,
            messages=[{"role": "user", "content": PING_PROMPT}],
            max_tokens=5,
        )
        return getattr(self._first_message(response), "content", None)


def strip_code_fence(text: str) -> str:
    """Remove markdown code fence markers anywhere in the text."""

    stripped = text.strip()
    if "```" not in stripped:
        return stripped
    return stripped.replace("```json", "").replace("```", "").strip()


def extract_json_array(content: str) -> Any:
    """Repair free-text model output into a parsed JSON array."""

    cleaned = strip_code_fence(content)
    start = cleaned.find("[")
    end = cleaned.rfind("]")
    if start == -1 or end == -1 or end < start:
        raise TranslationProviderError(
            "Translation provider response did not contain a JSON array."
        )
    try:
        return json.loads(cleaned[start:end + 1])
    except json.JSONDecodeError as exc:
        raise TranslationProviderError(
            f"Translation provider returned invalid JSON: {exc}"
        ) from exc


def build_backend(
    settings: BackendSettings,
    *,
    debug: bool = False,
) -> TranslationBackend:
    """Factory to create backends by provider name."""

    normalized = (settings.provider or GEMINI).strip().lower()
    if normalized == GEMINI:
        return GeminiTranslationBackend(settings, debug=debug)
    if normalized == OPENAI_COMPATIBLE:
        return OpenAICompatibleBackend(settings, debug=debug)
    if normalized == ECHO:
        return EchoTranslationBackend(settings, debug=debug)
    raise TranslationProviderConfigurationError(
        f"Unknown translation provider '{settings.provider}'."
    )
