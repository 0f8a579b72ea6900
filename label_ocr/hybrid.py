import logging
import time
from dataclasses import dataclass
from typing import Callable, FrozenSet, List, Optional, Union

from label_ocr.config import (
    DEFAULT_OCR_TIER,
    LOCAL_ACCEPT_CONFIDENCE,
    LOCAL_ESCALATE_BELOW,
    REMOTE_ACCEPT_CONFIDENCE,
)
from label_ocr.engines.base import ImageInput, RecognitionEngine
from label_ocr.engines.openrouter import advanced_engine, fast_engine, structured_engine
from label_ocr.engines.tesseract import TesseractEngine
from label_ocr.errors import AllEnginesFailed, RecognitionError
from label_ocr.openai_client import close_openrouter_clients
from label_ocr.schemas import OCRModelTier, RecognitionResult

logger = logging.getLogger(__name__)

ALL_TIERS = frozenset(OCRModelTier)


@dataclass(frozen=True)
class EscalationStep:
    """
    One row of the escalation table.

    attempt_tiers:  requested tiers for which the engine is tried
    escalate_below: also try it, whatever the tier, when the local result is
                    missing or its confidence is under this value
    min_confidence: result accepted from this confidence on; None accepts
                    anything (terminal step)
    accept_tiers:   tiers for which an acceptable result ends the request
    """
    name: str
    engine: RecognitionEngine
    attempt_tiers: FrozenSet[OCRModelTier]
    min_confidence: Optional[int] = None
    accept_tiers: FrozenSet[OCRModelTier] = ALL_TIERS
    escalate_below: Optional[int] = None
    is_local: bool = False

    def should_attempt(self, tier: OCRModelTier, local: Optional[RecognitionResult]) -> bool:
        if tier in self.attempt_tiers:
            return True
        if self.escalate_below is None:
            return False
        return local is None or local.confidence < self.escalate_below

    def accepts(self, result: RecognitionResult, tier: OCRModelTier) -> bool:
        if tier not in self.accept_tiers:
            return False
        return self.min_confidence is None or result.confidence >= self.min_confidence


RemoteFactory = Callable[[Optional[str]], RecognitionEngine]


def parse_tier(tier: Union[str, OCRModelTier, None]) -> OCRModelTier:
    if tier is None:
        return OCRModelTier(DEFAULT_OCR_TIER)
    if isinstance(tier, OCRModelTier):
        return tier
    return OCRModelTier(tier.strip().lower())


class HybridRecognizer:
    """
    Tiered OCR: local Tesseract first, then remote models in increasing
    cost order until one result is good enough.

    Steps run strictly one after another. Engine errors are logged and the
    next step is tried; only when nothing produced text does the caller get
    AllEnginesFailed.

    Usage:
        recognizer = HybridRecognizer()
        result = await recognizer.recognize(image_bytes, "balanced")
        ...
        await recognizer.close()
    """

    def __init__(
        self,
        local_engine: Optional[RecognitionEngine] = None,
        fast_factory: RemoteFactory = fast_engine,
        structured_factory: RemoteFactory = structured_engine,
        advanced_factory: RemoteFactory = advanced_engine,
        api_key: Optional[str] = None,
        local_accept_confidence: int = LOCAL_ACCEPT_CONFIDENCE,
        remote_accept_confidence: int = REMOTE_ACCEPT_CONFIDENCE,
        local_escalate_below: int = LOCAL_ESCALATE_BELOW,
    ):
        self.local_engine = local_engine or TesseractEngine()
        self.fast_factory = fast_factory
        self.structured_factory = structured_factory
        self.advanced_factory = advanced_factory
        self.api_key = api_key
        self.local_accept_confidence = local_accept_confidence
        self.remote_accept_confidence = remote_accept_confidence
        self.local_escalate_below = local_escalate_below

    def build_steps(self, api_key: Optional[str] = None) -> List[EscalationStep]:
        """Escalation table for one request."""
        key = api_key or self.api_key
        fast_and_balanced = frozenset({OCRModelTier.FAST, OCRModelTier.BALANCED})
        return [
            EscalationStep(
                name="local",
                engine=self.local_engine,
                attempt_tiers=ALL_TIERS,
                min_confidence=self.local_accept_confidence,
                accept_tiers=frozenset({OCRModelTier.FAST}),
                is_local=True,
            ),
            EscalationStep(
                name="remote-fast",
                engine=self.fast_factory(key),
                attempt_tiers=fast_and_balanced,
                min_confidence=self.remote_accept_confidence,
            ),
            EscalationStep(
                name="remote-structured",
                engine=self.structured_factory(key),
                attempt_tiers=frozenset({OCRModelTier.BALANCED}),
                min_confidence=self.remote_accept_confidence,
            ),
            EscalationStep(
                name="remote-advanced",
                engine=self.advanced_factory(key),
                attempt_tiers=frozenset({OCRModelTier.ADVANCED}),
                escalate_below=self.local_escalate_below,
            ),
        ]

    async def recognize(
        self,
        image: ImageInput,
        tier: Union[str, OCRModelTier, None] = OCRModelTier.BALANCED,
        api_key: Optional[str] = None,
    ) -> RecognitionResult:
        tier = parse_tier(tier)
        start = time.perf_counter()
        local_result: Optional[RecognitionResult] = None
        remote_results: List[RecognitionResult] = []
        failures: List[RecognitionError] = []

        for step in self.build_steps(api_key):
            if not step.should_attempt(tier, local_result):
                continue

            try:
                result = await step.engine.recognize(image)
            except RecognitionError as e:
                logger.warning("[HYBRID] %s failed, escalating: %s", step.name, e)
                failures.append(e)
                continue

            if step.is_local:
                local_result = result
            else:
                remote_results.append(result)

            if step.accepts(result, tier):
                logger.info(
                    "[HYBRID] Using %s result (tier=%s, confidence=%s, provider=%s, total_ms=%s)",
                    step.name,
                    tier.value,
                    result.confidence,
                    result.provider.value,
                    round((time.perf_counter() - start) * 1000, 2),
                )
                return result

            logger.debug(
                "[HYBRID] %s result not accepted (tier=%s, confidence=%s)",
                step.name,
                tier.value,
                result.confidence,
            )

        if local_result is not None:
            logger.warning(
                "[HYBRID] Falling back to local result (confidence=%s)",
                local_result.confidence,
            )
            return local_result

        if remote_results:
            best = max(remote_results, key=lambda r: r.confidence)
            logger.warning(
                "[HYBRID] Falling back to best remote result (provider=%s, confidence=%s)",
                best.provider.value,
                best.confidence,
            )
            return best

        logger.error("[HYBRID] No engine succeeded (tier=%s): %s", tier.value, failures)
        raise AllEnginesFailed(failures)

    async def recognize_auto(self, image: ImageInput, api_key: Optional[str] = None) -> RecognitionResult:
        """Pick the tier automatically. Currently always the balanced policy."""
        return await self.recognize(image, OCRModelTier.BALANCED, api_key=api_key)

    async def close(self) -> None:
        await self.local_engine.close()
        await close_openrouter_clients()
