"""Remote OCR through vision models served by OpenRouter (OpenAI-compatible API)."""

import logging
import time
from typing import Optional

import openai

from label_ocr.config import (
    OCR_ADVANCED_BASE_URL,
    OCR_ADVANCED_MODEL,
    OCR_FAST_BASE_URL,
    OCR_FAST_MODEL,
    OCR_MAX_TOKENS,
    OCR_REQUEST_TIMEOUT_S,
    OCR_STRUCTURED_BASE_URL,
    OCR_STRUCTURED_MODEL,
    OPENROUTER_API_KEY,
)
from label_ocr.engines.base import ImageInput, RecognitionEngine, load_image_bytes, to_data_url
from label_ocr.errors import (
    AUTH,
    UNREACHABLE,
    EmptyResult,
    ProviderUnavailable,
    RecognitionTimeout,
)
from label_ocr.extract import extract
from label_ocr.openai_client import get_openrouter_client, release_openrouter_client
from label_ocr.prompts import OCR_SYSTEM_PROMPT
from label_ocr.schemas import ProviderId, RecognitionResult

logger = logging.getLogger(__name__)

# Vision models rarely report a calibrated confidence, so it is derived from
# how the completion ended.
COMPLETED_CONFIDENCE = 85
INCOMPLETE_CONFIDENCE = 70


class OpenRouterEngine(RecognitionEngine):
    """One remote tier: a fixed model behind a chat-completions endpoint."""

    def __init__(
        self,
        provider: ProviderId,
        model: str,
        base_url: str,
        api_key: Optional[str] = None,
        timeout: float = OCR_REQUEST_TIMEOUT_S,
        max_tokens: int = OCR_MAX_TOKENS,
    ):
        self.provider = provider
        self.model_name = model
        self.base_url = base_url
        self.api_key = api_key or OPENROUTER_API_KEY
        self.timeout = timeout
        self.max_tokens = max_tokens

    def _client(self):
        if not self.api_key:
            raise ProviderUnavailable(
                AUTH,
                "OPENROUTER_API_KEY is not set",
                provider=self.provider,
                model=self.model_name,
            )
        return get_openrouter_client(self.api_key, self.base_url, self.timeout)

    async def recognize(self, image: ImageInput) -> RecognitionResult:
        start = time.perf_counter()
        client = self._client()
        try:
            return await self._recognize(client, image, start)
        finally:
            await release_openrouter_client(client)

    async def _recognize(self, client, image: ImageInput, start: float) -> RecognitionResult:
        image_bytes = await load_image_bytes(image)
        data_url = to_data_url(image_bytes)

        messages = [
            {"role": "system", "content": OCR_SYSTEM_PROMPT},
            {
                "role": "user",
                "content": [
                    {"type": "image_url", "image_url": {"url": data_url}},
                ],
            },
        ]

        logger.info(
            "[OPENROUTER] Sending %.1fkb image to model=%s",
            len(data_url) / 1024,
            self.model_name,
        )

        try:
            response = await client.chat.completions.create(
                model=self.model_name,
                messages=messages,
                max_tokens=self.max_tokens,
                temperature=0,
            )
        except openai.APITimeoutError as e:
            raise RecognitionTimeout(str(e), provider=self.provider, model=self.model_name) from e
        except openai.APIConnectionError as e:
            raise ProviderUnavailable(
                UNREACHABLE, str(e), provider=self.provider, model=self.model_name
            ) from e
        except (openai.AuthenticationError, openai.PermissionDeniedError) as e:
            raise ProviderUnavailable(
                AUTH, str(e), provider=self.provider, model=self.model_name
            ) from e
        except openai.APIStatusError as e:
            raise ProviderUnavailable(
                UNREACHABLE,
                f"HTTP {e.status_code}: {e.message}",
                provider=self.provider,
                model=self.model_name,
            ) from e
        except openai.APIError as e:
            # e.g. a 200 response whose body is not a chat completion
            raise ProviderUnavailable(
                UNREACHABLE, str(e), provider=self.provider, model=self.model_name
            ) from e

        choice = response.choices[0] if response.choices else None
        text = (choice.message.content if choice and choice.message else None) or ""
        if not text.strip():
            raise EmptyResult(
                "model returned empty text", provider=self.provider, model=self.model_name
            )

        confidence = COMPLETED_CONFIDENCE if choice.finish_reason == "stop" else INCOMPLETE_CONFIDENCE
        processing_time_ms = int((time.perf_counter() - start) * 1000)
        logger.debug(
            "[OPENROUTER] Recognition finished: model=%s, text_len=%s, time_ms=%s, confidence=%s",
            self.model_name,
            len(text),
            processing_time_ms,
            confidence,
        )

        return RecognitionResult(
            text=text,
            confidence=confidence,
            extracted_data=extract(text),
            raw_text=text,
            provider=self.provider,
            model_name=self.model_name,
            processing_time_ms=processing_time_ms,
        )


def fast_engine(api_key: Optional[str] = None) -> OpenRouterEngine:
    """Cheap model for simple labels."""
    return OpenRouterEngine(
        ProviderId.OPENROUTER_FAST, OCR_FAST_MODEL, OCR_FAST_BASE_URL, api_key=api_key
    )


def structured_engine(api_key: Optional[str] = None) -> OpenRouterEngine:
    """Table-aware model for nutrition grids."""
    return OpenRouterEngine(
        ProviderId.OPENROUTER_STRUCTURED,
        OCR_STRUCTURED_MODEL,
        OCR_STRUCTURED_BASE_URL,
        api_key=api_key,
    )


def advanced_engine(api_key: Optional[str] = None) -> OpenRouterEngine:
    """Large VL model for hard photos and handwriting."""
    return OpenRouterEngine(
        ProviderId.OPENROUTER_ADVANCED,
        OCR_ADVANCED_MODEL,
        OCR_ADVANCED_BASE_URL,
        api_key=api_key,
    )
