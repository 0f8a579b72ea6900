import os


def _parse_cors_origins(raw: str) -> list[str]:
    origins = [origin.strip() for origin in raw.split(",") if origin.strip()]
    return origins or ["*"]


CORS_ORIGINS = _parse_cors_origins(os.getenv("CORS_ORIGINS", "*"))
ALLOW_ALL_ORIGINS = CORS_ORIGINS == ["*"]

# MAX_UPLOAD_MB: reject label photos bigger than this on /ocr/recognize
MAX_UPLOAD_MB = int(os.getenv("MAX_UPLOAD_MB", "10"))

# -----------------------------------
# Local OCR (Tesseract) configuration
# -----------------------------------

# TESSERACT_CMD: tesseract binary; empty means "whatever is on PATH"
TESSERACT_CMD = os.getenv("TESSERACT_CMD", "")

# TESSERACT_LANG: traineddata languages, labels are mostly Russian + English
TESSERACT_LANG = os.getenv("TESSERACT_LANG", "rus+eng")

# -----------------------------------
# Remote OCR (OpenRouter) configuration
# -----------------------------------

OPENROUTER_API_KEY = os.getenv("OPENROUTER_API_KEY")
OPENROUTER_BASE_URL = os.getenv("OPENROUTER_BASE_URL", "https://openrouter.ai/api/v1")

# Attribution headers sent with every OpenRouter request
OPENROUTER_APP_URL = os.getenv("OPENROUTER_APP_URL", "https://app.fitnessapp.com")
OPENROUTER_APP_TITLE = os.getenv("OPENROUTER_APP_TITLE", "BURCEV OCR")

# Per-tier models. Each tier may point at its own endpoint; by default all of
# them go through OPENROUTER_BASE_URL.
# - fast:       cheap OCR model for simple labels
# - structured: table-aware model for nutrition grids
# - advanced:   large VL model for hard photos and handwriting
OCR_FAST_MODEL = os.getenv("OCR_FAST_MODEL", "lighton/lightonocr-1b")
OCR_STRUCTURED_MODEL = os.getenv("OCR_STRUCTURED_MODEL", "paddleocr/paddleocr-vl-0.9b")
OCR_ADVANCED_MODEL = os.getenv("OCR_ADVANCED_MODEL", "qwen/qwen-3-vl-30b-a3b")

OCR_FAST_BASE_URL = os.getenv("OCR_FAST_BASE_URL", OPENROUTER_BASE_URL)
OCR_STRUCTURED_BASE_URL = os.getenv("OCR_STRUCTURED_BASE_URL", OPENROUTER_BASE_URL)
OCR_ADVANCED_BASE_URL = os.getenv("OCR_ADVANCED_BASE_URL", OPENROUTER_BASE_URL)

# OCR_REQUEST_TIMEOUT_S: per-request timeout for one remote transcription call
OCR_REQUEST_TIMEOUT_S = float(os.getenv("OCR_REQUEST_TIMEOUT_S", "60"))

# OCR_MAX_TOKENS: completion budget for a transcription
OCR_MAX_TOKENS = int(os.getenv("OCR_MAX_TOKENS", "2000"))

# -----------------------------------
# Escalation thresholds
# -----------------------------------

# LOCAL_ACCEPT_CONFIDENCE: Tesseract result is returned as-is on the "fast"
# tier when its confidence reaches this value
LOCAL_ACCEPT_CONFIDENCE = int(os.getenv("LOCAL_ACCEPT_CONFIDENCE", "80"))

# REMOTE_ACCEPT_CONFIDENCE: fast / structured remote results are accepted
# from this confidence on
REMOTE_ACCEPT_CONFIDENCE = int(os.getenv("REMOTE_ACCEPT_CONFIDENCE", "75"))

# LOCAL_ESCALATE_BELOW: Tesseract confidence under this value sends the
# request to the advanced tier whatever tier was asked for
LOCAL_ESCALATE_BELOW = int(os.getenv("LOCAL_ESCALATE_BELOW", "70"))

# DEFAULT_OCR_TIER: "fast", "balanced" (default) or "advanced"
DEFAULT_OCR_TIER = os.getenv("DEFAULT_OCR_TIER", "balanced").lower()
