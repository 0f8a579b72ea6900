"""
Range validation and unit normalization for extracted nutrition values.

Validation never changes the data: out-of-range values are reported and
returned untouched so the form can show them next to a warning.
"""

from dataclasses import replace
from typing import Dict, Mapping, Optional

from label_ocr.schemas import ExtractedNutritionData, ValidationReport

KJ_PER_KCAL = 4.184
MG_PER_G = 1000.0

# field -> (min, max, message)
VALID_RANGES = {
    "calories": (0, 10000, "Калории должны быть в диапазоне 0-10000"),
    "protein": (0, 1000, "Белки должны быть в диапазоне 0-1000 г"),
    "fats": (0, 1000, "Жиры должны быть в диапазоне 0-1000 г"),
    "carbs": (0, 1000, "Углеводы должны быть в диапазоне 0-1000 г"),
    "weight": (0, 10000, "Вес порции должен быть в диапазоне 0-10000 г"),
}


def validate(data: ExtractedNutritionData) -> ValidationReport:
    """Check every present numeric field against its allowed range."""
    errors = []
    for field_name, (min_val, max_val, message) in VALID_RANGES.items():
        value = getattr(data, field_name)
        if value is None:
            continue
        if value < min_val or value > max_val:
            errors.append(message)
    return ValidationReport(valid=not errors, errors=errors)


def normalize_units(value: float, unit: Optional[str]) -> float:
    """
    Convert a value to canonical units.

    kJ -> kcal (1 kcal = 4.184 kJ), mg -> g. Anything else is returned as is.
    """
    if not unit:
        return value
    token = unit.lower().strip()

    if "кдж" in token or "kj" in token:
        return value / KJ_PER_KCAL

    if "мг" in token or "mg" in token:
        return value / MG_PER_G

    return value


def normalize_extracted(
    data: ExtractedNutritionData,
    units: Mapping[str, str],
) -> ExtractedNutritionData:
    """
    Return a copy of `data` with values converted by their source units.

    `units` is the second element returned by `extract_with_units`. Fields
    without a detected unit are left unchanged.
    """
    changes: Dict[str, float] = {}
    for field_name, unit in units.items():
        value = getattr(data, field_name, None)
        if not isinstance(value, (int, float)):
            continue
        converted = normalize_units(value, unit)
        if converted != value:
            changes[field_name] = converted
    return replace(data, **changes) if changes else data
