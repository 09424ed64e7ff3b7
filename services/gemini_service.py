"""
Gemini Integration Service
Sends prompts to an ordered list of candidate models: SDK call first, then the
REST generateContent endpoint with retry/backoff, then the next model.
"""
import asyncio
import json
import logging
import random
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional

import google.generativeai as genai
import httpx
from google.generativeai.types import HarmBlockThreshold, HarmCategory

from config import Settings
from services.exceptions import (
    AllModelsExhaustedError,
    ConfigError,
    ModelFailure,
    UpstreamError,
    UpstreamTransientError,
)
from services.retry import backoff_delay, is_transient_status

logger = logging.getLogger(__name__)

SleepFn = Callable[[float], Awaitable[Any]]


class BackendKind(str, Enum):
    STRUCTURED = "structured"
    REST = "rest"


@dataclass(frozen=True)
class ModelCallResult:
    """Raw output of one successful model call. Consumed once by the normalizer."""
    backend_kind: BackendKind
    model_id: str
    raw_payload: Any


def normalize_model_id(alias: str) -> str:
    """'gemini-2.5-flash' -> 'models/gemini-2.5-flash'."""
    if not alias:
        return alias
    return alias if alias.startswith("models/") else f"models/{alias}"


class GeminiService:
    """Text-completion client with multi-model fallback."""

    def __init__(
        self,
        settings: Settings,
        http_client: Optional[httpx.AsyncClient] = None,
        sleep: SleepFn = asyncio.sleep,
        rng: Optional[random.Random] = None,
    ):
        if not settings.gemini_api_key:
            raise ConfigError("GEMINI_API_KEY environment variable is required")

        self.api_key = settings.gemini_api_key
        self.rest_base_url = settings.rest_base_url.rstrip("/")
        self.max_retries = settings.max_retries
        self.base_delay = settings.base_delay_seconds
        self.max_delay = settings.max_delay_seconds
        self.temperature = settings.temperature
        self.debug_log_raw = settings.debug_log_raw_model_response
        self.sleep = sleep
        self.rng = rng or random.Random()
        self.http_client = http_client or httpx.AsyncClient(timeout=settings.request_timeout_seconds)

        genai.configure(api_key=self.api_key)

        # Safety settings
        self.safety_settings = {
            HarmCategory.HARM_CATEGORY_HARASSMENT: HarmBlockThreshold.BLOCK_NONE,
            HarmCategory.HARM_CATEGORY_HATE_SPEECH: HarmBlockThreshold.BLOCK_NONE,
            HarmCategory.HARM_CATEGORY_SEXUALLY_EXPLICIT: HarmBlockThreshold.BLOCK_NONE,
            HarmCategory.HARM_CATEGORY_DANGEROUS_CONTENT: HarmBlockThreshold.BLOCK_NONE,
        }
        logger.info("Initialized Gemini service")

    async def aclose(self) -> None:
        await self.http_client.aclose()

    async def generate(self, candidate_models: List[str], prompt: str) -> ModelCallResult:
        """
        Generate a completion, trying each candidate model in order.

        Args:
            candidate_models: Model aliases in order of preference
            prompt: Full instruction text

        Returns:
            ModelCallResult from the first call path that succeeds

        Raises:
            AllModelsExhaustedError: If every model failed both call paths
        """
        failures: List[ModelFailure] = []

        for alias in candidate_models:
            model_id = normalize_model_id(alias)

            logger.info(f"SDK generateContent attempt for {model_id}")
            try:
                sdk_result = await self._sdk_generate(model_id, prompt)
                logger.info(f"Model used: {model_id} via {BackendKind.STRUCTURED.value}")
                return self._result(BackendKind.STRUCTURED, model_id, sdk_result)
            except Exception as err:
                logger.warning(f"SDK generateContent failed for {model_id}: {err}")
                failures.append(ModelFailure(model_id, BackendKind.STRUCTURED.value, str(err)))

            try:
                rest_result = await self._rest_generate_with_retries(model_id, prompt)
                logger.info(f"Model used: {model_id} via {BackendKind.REST.value}")
                return self._result(BackendKind.REST, model_id, rest_result)
            except UpstreamError as err:
                logger.warning(f"REST generateContent failed for {model_id}: {err}")
                failures.append(ModelFailure(model_id, BackendKind.REST.value, str(err)))

        logger.error(f"All model attempts failed: {[failure.to_dict() for failure in failures]}")
        raise AllModelsExhaustedError(failures)

    def _result(self, kind: BackendKind, model_id: str, payload: Any) -> ModelCallResult:
        if self.debug_log_raw:
            logger.debug(f"Raw model response from {model_id} ({kind.value}): {payload!r}")
        return ModelCallResult(backend_kind=kind, model_id=model_id, raw_payload=payload)

    async def _sdk_generate(self, model_id: str, prompt: str) -> Any:
        """Structured call: one attempt, role-tagged content payload."""
        model = genai.GenerativeModel(model_name=model_id, safety_settings=self.safety_settings)
        contents = [{"role": "user", "parts": [prompt]}]
        return await model.generate_content_async(
            contents,
            generation_config={"temperature": self.temperature},
        )

    async def _rest_generate_with_retries(self, model_id: str, prompt: str) -> Dict[str, Any]:
        """
        REST generateContent, retrying 429/5xx and network errors with backoff.

        Raises:
            UpstreamError: On a non-retryable status or once retries are exhausted
        """
        url = f"{self.rest_base_url}/{model_id}:generateContent"
        headers = {"Content-Type": "application/json", "x-goog-api-key": self.api_key}
        body = {"contents": [{"parts": [{"text": prompt}]}]}

        for attempt in range(self.max_retries + 1):
            logger.info(f"REST generateContent attempt {attempt + 1}/{self.max_retries + 1} for {model_id}")
            try:
                response = await self.http_client.post(url, json=body, headers=headers)
            except httpx.TransportError as exc:
                error: UpstreamError = UpstreamTransientError(f"REST network error: {exc}")
            else:
                if response.is_success:
                    try:
                        return response.json()
                    except json.JSONDecodeError as exc:
                        raise UpstreamError(
                            f"REST generateContent returned invalid JSON: {exc}",
                            status_code=response.status_code,
                        ) from exc

                detail = f"REST generateContent failed: {response.status_code} {response.reason_phrase} - {response.text[:500]}"
                if not is_transient_status(response.status_code):
                    raise UpstreamError(detail, status_code=response.status_code)
                error = UpstreamTransientError(detail, status_code=response.status_code)

            if attempt >= self.max_retries:
                raise error

            delay = backoff_delay(attempt, self.base_delay, self.max_delay, self.rng)
            logger.warning(f"{error} for {model_id}. retry {attempt + 1} after {delay:.2f}s")
            await self.sleep(delay)

        raise UpstreamError("REST generateContent exhausted retries")
