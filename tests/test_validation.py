"""
Unit tests for range validation and unit normalization.
"""

import pytest

from label_ocr.extract import extract_with_units
from label_ocr.schemas import ExtractedNutritionData
from label_ocr.validation import normalize_extracted, normalize_units, validate


def test_valid_record():
    report = validate(ExtractedNutritionData(calories=150, protein=10, fats=5, carbs=20, weight=100))

    assert report.valid
    assert report.errors == []


def test_calories_out_of_range_not_clamped():
    data = ExtractedNutritionData(calories=15000, protein=10)
    report = validate(data)

    assert report.valid is False
    assert report.errors == ["Калории должны быть в диапазоне 0-10000"]
    assert data.calories == 15000


def test_negative_values_reported():
    report = validate(ExtractedNutritionData(protein=-1, fats=1001, carbs=-5, weight=20000))

    assert not report.valid
    assert report.errors == [
        "Белки должны быть в диапазоне 0-1000 г",
        "Жиры должны быть в диапазоне 0-1000 г",
        "Углеводы должны быть в диапазоне 0-1000 г",
        "Вес порции должен быть в диапазоне 0-10000 г",
    ]


def test_bounds_are_inclusive():
    report = validate(ExtractedNutritionData(calories=10000, protein=0, fats=1000, weight=10000))

    assert report.valid


def test_empty_record_is_valid():
    assert validate(ExtractedNutritionData()).valid


@pytest.mark.parametrize(
    "value, unit, expected",
    [
        (418.4, "кДж", 100.0),
        (418.4, "kJ", 100.0),
        (500, "мг", 0.5),
        (500, "mg", 0.5),
        (12, "г", 12),
        (12, None, 12),
    ],
)
def test_normalize_units(value, unit, expected):
    assert normalize_units(value, unit) == pytest.approx(expected)


def test_normalize_extracted_converts_kj():
    data, units = extract_with_units("Энергия: 1046 кДж\nБелки: 3 г")

    normalized = normalize_extracted(data, units)

    assert normalized.calories == pytest.approx(250.0)
    assert normalized.protein == 3
    # source record untouched
    assert data.calories == 1046


def test_normalize_extracted_converts_mg():
    data, units = extract_with_units("Белки: 800 мг")

    assert normalize_extracted(data, units).protein == pytest.approx(0.8)


def test_normalize_extracted_keeps_full_precision():
    data, units = extract_with_units("Энергия: 1000 кДж\nБелки: 5 мг")

    normalized = normalize_extracted(data, units)

    assert normalized.calories == 1000 / 4.184
    assert normalized.protein == 0.005


def test_extraction_does_not_normalize_on_its_own():
    data, _ = extract_with_units("Энергия: 1046 кДж")

    assert data.calories == 1046
