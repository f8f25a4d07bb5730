import math
from dataclasses import dataclass
from typing import Any, Optional

from healthhub.core.errors import ValidationError

# Strict upper bounds, checked in order against the rounded value.
BMI_CATEGORIES: list[tuple[float, str]] = [
    (18.5, "Underweight"),
    (25.0, "Normal weight"),
    (30.0, "Overweight"),
]
OBESE = "Obese"


@dataclass(frozen=True)
class BmiResult:
    bmi: float
    category: str


def _positive_number(value: Any, label: str) -> float:
    if value is None or isinstance(value, bool):
        raise ValidationError(f"{label} is required")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{label} must be a number") from None
    if not math.isfinite(number):
        raise ValidationError(f"{label} must be a finite number")
    if number <= 0:
        raise ValidationError(f"{label} must be greater than zero")
    return number


def _rounded_bmi(weight_kg: float, height_cm: float) -> float:
    return round(weight_kg / (height_cm / 100) ** 2, 1)


def bmi_category(bmi: float) -> str:
    for upper, label in BMI_CATEGORIES:
        if bmi < upper:
            return label
    return OBESE


def compute_bmi(weight_kg: Any, height_cm: Any) -> BmiResult:
    """Map a weight in kilograms and a height in centimeters to a BMI and its label.

    Raises ``ValidationError`` when either input is missing, non-numeric,
    zero, negative or not finite, and when the result overflows.
    """
    weight = _positive_number(weight_kg, "Weight")
    height = _positive_number(height_cm, "Height")
    try:
        bmi = _rounded_bmi(weight, height)
    except OverflowError:
        bmi = math.inf
    if not math.isfinite(bmi):
        raise ValidationError("Weight and height must give a finite BMI")
    return BmiResult(bmi=bmi, category=bmi_category(bmi))


def current_bmi(weight_kg: Optional[float], height_cm: Optional[float]) -> Optional[float]:
    if not weight_kg or not height_cm:
        return None
    return compute_bmi(weight_kg, height_cm).bmi
