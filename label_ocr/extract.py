"""
Regex-based extraction of nutrition values from label text.

Works on whatever an OCR engine transcribed: Russian or English, Markdown
tables or plain lines. The result depends on the text only, never on the
engine that produced it.
"""

import re
from re import Pattern
from typing import Dict, List, Optional, Tuple

from label_ocr.schemas import ExtractedNutritionData

# Number with optional decimal part, decimal comma allowed ("2,5")
_NUM = r"(?P<value>\d+(?:[.,]\d+)?)"

# Longer tokens first so that "грамм" / "мг" are not cut down to "г"
_GRAMS = r"(?P<unit>грамм|мг|mg|г|g)"

_CALORIE_LABEL = r"(?:калори[ийя]|энергетическая\s+ценность|энерг(?:ия|\.)|\benergy|\bcalories)"
_PROTEIN_LABEL = r"(?:белк[иа]|белок|\bproteins?)"
_FATS_LABEL = r"(?:жиры|жир|\bfats?)"
_CARBS_LABEL = r"(?:углеводы|углевод|\bcarbohydrates?|\bcarbs)"
_WEIGHT_LABEL = r"(?:масса\s+нетто|нетто|порция|вес|масса|\bnet\s+w(?:eigh)?t\.?|\bweight)"

# Unit in a table header: "Белки, г: 10", "Жиры, г 5"
_HEADER_UNIT = r"(?:\s*,\s*(?P<header_unit>грамм|мг|mg|г|g))?"

FieldPatterns = List[Tuple[Pattern, Optional[str]]]

# field -> ordered (pattern, unit hint). The first pattern that matches wins.
# A matched `unit` (after the number) or `header_unit` (after the label)
# replaces the hint.
# Numeric patterns run against lower-cased text.
FIELD_PATTERNS: Dict[str, FieldPatterns] = {
    "calories": [
        # "Энергетическая ценность 1046 кДж / 250 ккал" -> prefer the kcal figure
        (re.compile(_CALORIE_LABEL + r"[^\n]*?" + _NUM + r"\s*(?P<unit>ккал|kcal)"), None),
        (re.compile(_CALORIE_LABEL + r"[\s:]*" + _NUM + r"\s*(?P<unit>кдж|kj)"), None),
        (re.compile(_NUM + r"\s*(?P<unit>ккал|kcal)"), None),
    ],
    "protein": [
        (re.compile(_PROTEIN_LABEL + _HEADER_UNIT + r"[\s:|]*" + _NUM + r"\s*" + _GRAMS), None),
        (re.compile(r"белки" + _HEADER_UNIT + r"[\s:|]*" + _NUM), "г"),
    ],
    "fats": [
        (re.compile(_FATS_LABEL + _HEADER_UNIT + r"[\s:|]*" + _NUM + r"\s*" + _GRAMS), None),
        (re.compile(r"жиры" + _HEADER_UNIT + r"[\s:|]*" + _NUM), "г"),
    ],
    "carbs": [
        (re.compile(_CARBS_LABEL + _HEADER_UNIT + r"[\s:|]*" + _NUM + r"\s*" + _GRAMS), None),
        (re.compile(r"углеводы" + _HEADER_UNIT + r"[\s:|]*" + _NUM), "г"),
    ],
    "weight": [
        (re.compile(_WEIGHT_LABEL + r"[\s:|]*" + _NUM + r"\s*(?P<unit>грамм|г|g)"), None),
        (re.compile(_NUM + r"\s*(?P<unit>г|g)\s*на\s*порцию"), None),
    ],
}

# Text patterns run against the original text (case preserved).
TEXT_PATTERNS: Dict[str, List[Pattern]] = {
    "product_name": [
        re.compile(r"(?:наименование|название|product\s+name)[ \t:]*([^\n]+)", re.IGNORECASE),
        # A first line made of letters only is usually the product name
        re.compile(r"^[ \t]*([А-Яа-яЁёA-Za-z][А-Яа-яЁёA-Za-z \t-]*?)[ \t]*$", re.MULTILINE),
    ],
    "brand": [
        re.compile(r"(?:бренд|brand|производитель|manufacturer)[ \t:]*([^\n]+)", re.IGNORECASE),
        # Capitalised line followed by more text
        re.compile(r"^[ \t]*([А-ЯЁA-Z][А-Яа-яЁёA-Za-z \t]*?)[ \t]*\r?\n", re.MULTILINE),
    ],
}

# Captures that are headings, not names
_TEXT_STOPWORDS = {
    "наименование", "название", "продукт", "product",
    "состав", "пищевая ценность", "ingredients", "nutrition facts",
}


def parse_number(raw: str) -> float:
    """'2,5' -> 2.5"""
    return float(raw.replace(",", "."))


def _match_numeric(text_lower: str, patterns: FieldPatterns) -> Optional[Tuple[float, Optional[str]]]:
    for pattern, unit_hint in patterns:
        match = pattern.search(text_lower)
        if not match:
            continue
        try:
            value = parse_number(match.group("value"))
        except ValueError:
            continue
        groups = match.groupdict()
        unit = groups.get("unit") or groups.get("header_unit") or unit_hint
        return value, unit
    return None


def _match_text(text: str, patterns: List[Pattern]) -> Optional[str]:
    for pattern in patterns:
        match = pattern.search(text)
        if not match:
            continue
        value = match.group(1).strip()
        if not value or value.lower() in _TEXT_STOPWORDS:
            continue
        return value
    return None


def extract_with_units(text: str) -> Tuple[ExtractedNutritionData, Dict[str, str]]:
    """
    Parse nutrition fields and report the unit token each numeric field used.

    Returns:
        (data, units) where units maps field name -> matched unit ("ккал",
        "кдж", "мг", "г", ...). Fields without a match are absent from both.
    """
    data = ExtractedNutritionData()
    units: Dict[str, str] = {}
    if not text:
        return data, units

    for name, patterns in TEXT_PATTERNS.items():
        setattr(data, name, _match_text(text, patterns))

    text_lower = text.lower()
    for name, patterns in FIELD_PATTERNS.items():
        found = _match_numeric(text_lower, patterns)
        if found is None:
            continue
        value, unit = found
        setattr(data, name, value)
        if unit:
            units[name] = unit

    return data, units


def extract(text: str) -> ExtractedNutritionData:
    """Parse nutrition fields from transcribed label text."""
    data, _ = extract_with_units(text)
    return data
