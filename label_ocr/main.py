"""Main FastAPI application."""

import logging
import sys
import time
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, File, Form, HTTPException, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware

from label_ocr.config import ALLOW_ALL_ORIGINS, CORS_ORIGINS, DEFAULT_OCR_TIER, MAX_UPLOAD_MB
from label_ocr.errors import AllEnginesFailed, RecognitionError
from label_ocr.hybrid import HybridRecognizer, parse_tier
from label_ocr.validation import validate

logging.basicConfig(
    level=logging.INFO,
    stream=sys.stdout,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s"
)

ALLOWED_CONTENT_TYPES = ["image/jpeg", "image/png", "image/webp"]


@asynccontextmanager
async def lifespan(app: FastAPI):
    if getattr(app.state, "recognizer", None) is None:
        app.state.recognizer = HybridRecognizer()
    logging.info("[PIPELINE] OCR recognizer ready")
    yield
    await app.state.recognizer.close()
    logging.info("[PIPELINE] OCR recognizer closed")


app = FastAPI(lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=not ALLOW_ALL_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health")
def health():
    return {"status": "ok"}


@app.post("/ocr/recognize")
async def recognize_label(
    request: Request,
    image: UploadFile = File(None),
    tier: str = Form(DEFAULT_OCR_TIER),
    api_key: Optional[str] = Form(None),
):
    """
    Label photo -> tiered OCR -> extracted macros + validation warnings.
    """
    if not image:
        raise HTTPException(422, "Image field is required")

    if image.content_type not in ALLOWED_CONTENT_TYPES:
        raise HTTPException(422, "Unsupported format (use jpeg/png/webp)")

    try:
        requested_tier = parse_tier(tier)
    except ValueError:
        raise HTTPException(422, f"Unknown tier: {tier}")

    content = await image.read()
    if not content:
        raise HTTPException(422, "Image file is empty")
    if len(content) > MAX_UPLOAD_MB * 1024 * 1024:
        raise HTTPException(413, f"File too large, max {MAX_UPLOAD_MB}MB")

    total_start = time.time()
    logging.info(
        "[PIPELINE] Starting /ocr/recognize for file: %s (tier=%s, %.1fkb)",
        image.filename,
        requested_tier.value,
        len(content) / 1024,
    )

    recognizer: HybridRecognizer = request.app.state.recognizer
    try:
        result = await recognizer.recognize(content, requested_tier, api_key=api_key or None)
    except AllEnginesFailed as e:
        logging.error("[PIPELINE] /ocr/recognize failed: %s", e)
        raise HTTPException(502, "Не удалось распознать текст ни одним из доступных методов")
    except RecognitionError as e:
        logging.exception("Error in /ocr/recognize")
        raise HTTPException(422, f"Recognition error: {e}")

    validation = validate(result.extracted_data)
    if not validation.valid:
        logging.warning("[PIPELINE] Validation warnings: %s", validation.errors)

    logging.info(
        "[PIPELINE] /ocr/recognize completed: provider=%s, confidence=%s, total_ms=%s",
        result.provider.value,
        result.confidence,
        round((time.time() - total_start) * 1000, 2),
    )

    return {
        "result": result.to_dict(),
        "validation": validation.to_dict(),
    }
