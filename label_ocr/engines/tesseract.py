import asyncio
import io
import logging
import time
from typing import Any, Callable, Dict, List, Optional, Tuple

import pytesseract
from PIL import Image, UnidentifiedImageError

from label_ocr.config import TESSERACT_CMD, TESSERACT_LANG
from label_ocr.engines.base import ImageInput, RecognitionEngine, load_image_bytes
from label_ocr.errors import (
    EmptyResult,
    InvalidImage,
    ProviderUnavailable,
    RecognitionError,
    UNREACHABLE,
)
from label_ocr.extract import extract
from label_ocr.schemas import ProviderId, RecognitionResult

logger = logging.getLogger(__name__)


class TesseractSession:
    """
    Execution context for local OCR.

    Building it resolves the tesseract binary, reads its version and checks
    that every requested language is installed, which is slow enough that
    the engine keeps one session and reuses it.
    """

    def __init__(self, lang: str, version: str, languages: List[str]):
        self.lang = lang
        self.version = version
        self.languages = languages
        self.closed = False

    @classmethod
    def create(cls, cmd: str = TESSERACT_CMD, lang: str = TESSERACT_LANG) -> "TesseractSession":
        if cmd:
            pytesseract.pytesseract.tesseract_cmd = cmd
        try:
            version = str(pytesseract.get_tesseract_version())
            installed = pytesseract.get_languages(config="")
        except (pytesseract.TesseractNotFoundError, pytesseract.TesseractError) as e:
            raise ProviderUnavailable(
                UNREACHABLE,
                f"tesseract is not available: {e}",
                provider=ProviderId.TESSERACT,
            ) from e

        missing = [code for code in lang.split("+") if code not in installed]
        if missing:
            raise ProviderUnavailable(
                UNREACHABLE,
                f"tesseract languages not installed: {', '.join(missing)}",
                provider=ProviderId.TESSERACT,
            )

        logger.info("Initialized tesseract session: version=%s, lang=%s", version, lang)
        return cls(lang=lang, version=version, languages=installed)

    def recognize(self, image_bytes: bytes) -> Tuple[str, float]:
        """
        Run OCR on an encoded image.

        Returns (text, mean word confidence in 0..100).
        """
        try:
            img = Image.open(io.BytesIO(image_bytes))
            img.load()
        except (UnidentifiedImageError, Image.DecompressionBombError, OSError) as e:
            raise InvalidImage(str(e), provider=ProviderId.TESSERACT) from e

        try:
            data = pytesseract.image_to_data(
                img,
                lang=self.lang,
                output_type=pytesseract.Output.DICT,
            )
        # pytesseract reports its own timeout as a bare RuntimeError
        except (pytesseract.TesseractError, pytesseract.TesseractNotFoundError, RuntimeError) as e:
            raise RecognitionError(
                UNREACHABLE,
                f"tesseract failed: {e}",
                provider=ProviderId.TESSERACT,
            ) from e

        return _assemble_text(data), _mean_confidence(data)

    def close(self) -> None:
        self.closed = True


def _word_rows(data: Dict[str, List[Any]]):
    for i, word in enumerate(data.get("text", [])):
        word = (word or "").strip()
        if not word:
            continue
        try:
            conf = float(data["conf"][i])
        except (TypeError, ValueError):
            conf = -1.0
        yield i, word, conf


def _assemble_text(data: Dict[str, List[Any]]) -> str:
    """Rebuild lines from image_to_data output; blank line between blocks."""
    lines: List[str] = []
    current_key = None
    current_block = None
    words: List[str] = []

    for i, word, _ in _word_rows(data):
        block = (data["page_num"][i], data["block_num"][i])
        key = block + (data["par_num"][i], data["line_num"][i])
        if key != current_key:
            if words:
                lines.append(" ".join(words))
            if current_block is not None and block != current_block:
                lines.append("")
            words = []
            current_key = key
            current_block = block
        words.append(word)

    if words:
        lines.append(" ".join(words))
    return "\n".join(lines)


def _mean_confidence(data: Dict[str, List[Any]]) -> float:
    scores = [conf for _, _, conf in _word_rows(data) if conf >= 0]
    if not scores:
        return 0.0
    return sum(scores) / len(scores)


SessionFactory = Callable[[str, str], TesseractSession]


class TesseractEngine(RecognitionEngine):
    """
    Local, no-network OCR engine (Russian + English).

    The session is created on first use. Concurrent first calls wait on one
    initialization; later calls share the session. `terminate()` drops it and
    the next `recognize()` builds a new one.
    """

    provider = ProviderId.TESSERACT

    def __init__(
        self,
        cmd: str = TESSERACT_CMD,
        lang: str = TESSERACT_LANG,
        session_factory: Optional[SessionFactory] = None,
    ):
        self.cmd = cmd
        self.lang = lang
        self._session_factory = session_factory or TesseractSession.create
        self._session: Optional[TesseractSession] = None
        self._init_lock = asyncio.Lock()

    @property
    def is_initialized(self) -> bool:
        return self._session is not None

    async def get_session(self) -> TesseractSession:
        if self._session is not None:
            return self._session
        async with self._init_lock:
            if self._session is None:
                logger.info("[TESSERACT] Creating session (lang=%s)", self.lang)
                self._session = await asyncio.to_thread(
                    self._session_factory, self.cmd, self.lang
                )
        return self._session

    async def recognize(self, image: ImageInput) -> RecognitionResult:
        start = time.perf_counter()
        image_bytes = await load_image_bytes(image)
        session = await self.get_session()

        try:
            text, confidence = await asyncio.to_thread(session.recognize, image_bytes)
        except RecognitionError:
            logger.error("[TESSERACT] Recognition failed", exc_info=True)
            raise

        if not text.strip():
            raise EmptyResult("tesseract found no text", provider=self.provider)

        processing_time_ms = int((time.perf_counter() - start) * 1000)
        logger.debug(
            "[TESSERACT] Recognition finished: confidence=%.1f, text_len=%s, time_ms=%s",
            confidence,
            len(text),
            processing_time_ms,
        )
        return RecognitionResult(
            text=text,
            confidence=confidence,
            extracted_data=extract(text),
            raw_text=text,
            provider=self.provider,
            processing_time_ms=processing_time_ms,
        )

    async def terminate(self) -> None:
        """Release the session. Calling it again is a no-op."""
        async with self._init_lock:
            if self._session is None:
                return
            self._session.close()
            self._session = None
            logger.debug("[TESSERACT] Session terminated")

    async def close(self) -> None:
        await self.terminate()
