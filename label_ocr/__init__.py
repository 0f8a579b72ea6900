"""
Nutrition label OCR package:
- engines: local Tesseract and remote OpenRouter recognition engines
- hybrid: tier selection / escalation across the engines
- extract: regex extraction of macros, brand and name from label text
- validation: range checks and kJ / mg unit normalization
- main: FastAPI app exposing /ocr/recognize
"""
