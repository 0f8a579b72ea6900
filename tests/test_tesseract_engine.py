"""
Tests for the local Tesseract engine.

The tesseract binary is never invoked: sessions are fakes or pytesseract
calls are patched.
"""

import asyncio
import threading
import time
from unittest.mock import patch

import pytest
from PIL import Image

from label_ocr.engines import tesseract as tesseract_module
from label_ocr.engines.tesseract import TesseractEngine, TesseractSession
from label_ocr.errors import EMPTY, INVALID_IMAGE, UNREACHABLE, RecognitionError
from label_ocr.schemas import ProviderId


class FakeSession:
    def __init__(self, text="Белки: 10 г", confidence=91.4):
        self.text = text
        self.confidence = confidence
        self.closed = False
        self.calls = 0

    def recognize(self, image_bytes):
        self.calls += 1
        return self.text, self.confidence

    def close(self):
        self.closed = True


class CountingFactory:
    def __init__(self, session_cls=FakeSession, delay=0.0, **session_kwargs):
        self.created = []
        self.delay = delay
        self.session_cls = session_cls
        self.session_kwargs = session_kwargs
        self._lock = threading.Lock()

    def __call__(self, cmd, lang):
        time.sleep(self.delay)
        session = self.session_cls(**self.session_kwargs)
        with self._lock:
            self.created.append((cmd, lang, session))
        return session


def test_recognize_builds_result(png_bytes):
    factory = CountingFactory()
    engine = TesseractEngine(lang="rus+eng", session_factory=factory)

    result = asyncio.run(engine.recognize(png_bytes))

    assert result.provider == ProviderId.TESSERACT
    assert result.confidence == 91
    assert result.text == "Белки: 10 г"
    assert result.raw_text == result.text
    assert result.extracted_data.protein == 10
    assert result.processing_time_ms >= 0
    assert result.model_name is None


def test_session_is_created_once_for_concurrent_calls(png_bytes):
    factory = CountingFactory(delay=0.05)
    engine = TesseractEngine(session_factory=factory)

    async def run():
        return await asyncio.gather(*(engine.recognize(png_bytes) for _ in range(5)))

    results = asyncio.run(run())

    assert len(results) == 5
    assert len(factory.created) == 1
    assert factory.created[0][2].calls == 5


def test_terminate_is_idempotent_and_allows_reinit(png_bytes):
    factory = CountingFactory()
    engine = TesseractEngine(session_factory=factory)

    async def run():
        await engine.recognize(png_bytes)
        first = factory.created[0][2]
        await engine.terminate()
        await engine.terminate()
        assert first.closed
        assert not engine.is_initialized
        await engine.recognize(png_bytes)

    asyncio.run(run())

    assert len(factory.created) == 2


def test_terminate_without_session_is_noop():
    engine = TesseractEngine(session_factory=CountingFactory())

    asyncio.run(engine.terminate())

    assert not engine.is_initialized


def test_empty_text_raises(png_bytes):
    engine = TesseractEngine(session_factory=CountingFactory(text="  \n", confidence=0))

    with pytest.raises(RecognitionError) as exc:
        asyncio.run(engine.recognize(png_bytes))

    assert exc.value.reason == EMPTY
    assert exc.value.provider == ProviderId.TESSERACT


def test_empty_payload_raises():
    engine = TesseractEngine(session_factory=CountingFactory())

    with pytest.raises(RecognitionError) as exc:
        asyncio.run(engine.recognize(b""))

    assert exc.value.reason == INVALID_IMAGE


def test_reads_image_from_path(tmp_path, png_bytes):
    path = tmp_path / "label.png"
    path.write_bytes(png_bytes)
    engine = TesseractEngine(session_factory=CountingFactory())

    result = asyncio.run(engine.recognize(str(path)))

    assert result.provider == ProviderId.TESSERACT


def test_session_rejects_corrupt_image():
    session = TesseractSession(lang="rus+eng", version="5.3.0", languages=["rus", "eng"])

    with pytest.raises(RecognitionError) as exc:
        session.recognize(b"definitely not an image")

    assert exc.value.reason == INVALID_IMAGE



def test_session_rejects_oversized_image(png_bytes, monkeypatch):
    monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 10)
    session = TesseractSession(lang="rus+eng", version="5.3.0", languages=["rus", "eng"])

    with pytest.raises(RecognitionError) as exc:
        session.recognize(png_bytes)

    assert exc.value.reason == INVALID_IMAGE


@pytest.mark.parametrize(
    "error",
    [
        tesseract_module.pytesseract.TesseractNotFoundError(),
        RuntimeError("Tesseract process timeout"),
        tesseract_module.pytesseract.TesseractError(1, "bad traineddata"),
    ],
)
def test_session_maps_tesseract_run_failures(png_bytes, error):
    session = TesseractSession(lang="rus+eng", version="5.3.0", languages=["rus", "eng"])

    with patch.object(tesseract_module.pytesseract, "image_to_data", side_effect=error):
        with pytest.raises(RecognitionError) as exc:
            session.recognize(png_bytes)

    assert exc.value.reason == UNREACHABLE
    assert exc.value.provider == ProviderId.TESSERACT

SAMPLE_DATA = {
    "page_num": [1, 1, 1, 1, 1, 1],
    "block_num": [1, 1, 1, 2, 2, 2],
    "par_num": [1, 1, 1, 1, 1, 1],
    "line_num": [1, 1, 2, 1, 1, 1],
    "text": ["Молоко", "3,2%", "Белки", "", "Жиры", "3,2"],
    "conf": [90, 80, 70, -1, 60, 100],
}


def test_session_assembles_lines_and_confidence(png_bytes):
    session = TesseractSession(lang="rus+eng", version="5.3.0", languages=["rus", "eng"])

    with patch.object(tesseract_module.pytesseract, "image_to_data", return_value=SAMPLE_DATA) as mocked:
        text, confidence = session.recognize(png_bytes)

    assert text == "Молоко 3,2%\nБелки\n\nЖиры 3,2"
    assert confidence == pytest.approx(80.0)
    assert mocked.call_args.kwargs["lang"] == "rus+eng"


def test_create_checks_languages():
    with patch.object(tesseract_module.pytesseract, "get_tesseract_version", return_value="5.3.0"), \
            patch.object(tesseract_module.pytesseract, "get_languages", return_value=["eng", "osd"]):
        with pytest.raises(RecognitionError) as exc:
            TesseractSession.create(cmd="", lang="rus+eng")

    assert exc.value.reason == UNREACHABLE
    assert "rus" in str(exc.value)


def test_create_reports_missing_binary():
    error = tesseract_module.pytesseract.TesseractNotFoundError()
    with patch.object(tesseract_module.pytesseract, "get_tesseract_version", side_effect=error):
        with pytest.raises(RecognitionError) as exc:
            TesseractSession.create(cmd="", lang="eng")

    assert exc.value.reason == UNREACHABLE


def test_create_returns_session():
    with patch.object(tesseract_module.pytesseract, "get_tesseract_version", return_value="5.3.0"), \
            patch.object(tesseract_module.pytesseract, "get_languages", return_value=["eng", "rus"]):
        session = TesseractSession.create(cmd="", lang="rus+eng")

    assert session.version == "5.3.0"
    assert not session.closed
