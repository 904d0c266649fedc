"""Unit Converter Service.

Converts cholesterol and glucose concentrations between mg/dL and mmol/L
and checks values against the medical reference envelopes used by the
Validator. All functions are pure.
"""

import logging
import math
from dataclasses import dataclass
from typing import Any

from cardiac_risk.schemas.base import MeasurementUnit

logger = logging.getLogger(__name__)


class InvalidNumberError(ValueError):
    """Raised when a conversion receives NaN, infinity or a non-number."""

    code = "INVALID_NUMBER"


# ============================================================================
# Conversion factors and reference ranges
# ============================================================================

CHOLESTEROL_MG_DL_TO_MMOL_L = 0.02586
CHOLESTEROL_MMOL_L_TO_MG_DL = 38.67
GLUCOSE_MG_DL_TO_MMOL_L = 0.05551
GLUCOSE_MMOL_L_TO_MG_DL = 18.018


@dataclass(frozen=True)
class UnitRange:
    """Inclusive reference range in a single unit."""

    low: float
    high: float

    def contains(self, value: float) -> bool:
        """Check if value lies within [low, high]."""
        return self.low <= value <= self.high


TOTAL_CHOLESTEROL_RANGES: dict[MeasurementUnit, UnitRange] = {
    MeasurementUnit.MG_DL: UnitRange(100, 400),
    MeasurementUnit.MMOL_L: UnitRange(2.6, 10.3),
}

HDL_CHOLESTEROL_RANGES: dict[MeasurementUnit, UnitRange] = {
    MeasurementUnit.MG_DL: UnitRange(20, 100),
    MeasurementUnit.MMOL_L: UnitRange(0.5, 2.6),
}

# Fasting glucose: normal through severe diabetes
GLUCOSE_FASTING_RANGES: dict[MeasurementUnit, UnitRange] = {
    MeasurementUnit.MG_DL: UnitRange(70, 400),
    MeasurementUnit.MMOL_L: UnitRange(3.9, 22.2),
}

# Wider envelope accepted at data entry (non-fasting samples)
GLUCOSE_ENTRY_RANGES: dict[MeasurementUnit, UnitRange] = {
    MeasurementUnit.MG_DL: UnitRange(50, 400),
    MeasurementUnit.MMOL_L: UnitRange(2.8, 22.2),
}

GLUCOSE_RANGES_BY_CONTEXT: dict[str, dict[MeasurementUnit, UnitRange]] = {
    "fasting": GLUCOSE_FASTING_RANGES,
    "entry": GLUCOSE_ENTRY_RANGES,
}

CONVERSION_REFERENCE: dict[str, dict[str, Any]] = {
    "cholesterol": {
        "examples": [
            {"mg_dl": 200, "mmol_l": 5.17},
            {"mg_dl": 240, "mmol_l": 6.21},
            {"mg_dl": 300, "mmol_l": 7.76},
        ],
        "note": "Total cholesterol: mg/dL × 0.02586 = mmol/L",
    },
    "glucose": {
        "examples": [
            {"mg_dl": 100, "mmol_l": 5.6},
            {"mg_dl": 126, "mmol_l": 7.0},
            {"mg_dl": 200, "mmol_l": 11.1},
        ],
        "note": "Glucose: mg/dL × 0.05551 = mmol/L",
    },
}


# ============================================================================
# Helpers
# ============================================================================

def is_valid_number(value: Any) -> bool:
    """Check that value is a real, finite number (booleans excluded)."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


def parse_unit(unit: Any) -> MeasurementUnit | None:
    """Parse a unit string or enum, returning None if unsupported."""
    if isinstance(unit, MeasurementUnit):
        return unit
    try:
        return MeasurementUnit(unit)
    except ValueError:
        return None


def round_half_up(value: float, digits: int = 0) -> float:
    """Round with halves going up, as clinical lab displays do."""
    scale = 10 ** digits
    return math.floor(value * scale + 0.5) / scale


def _require_number(value: Any, analyte: str) -> float:
    if not is_valid_number(value):
        raise InvalidNumberError(f"Invalid {analyte} value: must be a valid number")
    return float(value)


# ============================================================================
# Conversions
# ============================================================================

def cholesterol_mg_dl_to_mmol_l(value: float) -> float:
    """Convert cholesterol from mg/dL to mmol/L, rounded to 2 decimals.

    Raises:
        InvalidNumberError: If value is NaN, infinite or not a number.
    """
    value = _require_number(value, "cholesterol")
    return round_half_up(value * CHOLESTEROL_MG_DL_TO_MMOL_L, 2)


def cholesterol_mmol_l_to_mg_dl(value: float) -> float:
    """Convert cholesterol from mmol/L to mg/dL, rounded to the nearest integer.

    Raises:
        InvalidNumberError: If value is NaN, infinite or not a number.
    """
    value = _require_number(value, "cholesterol")
    return round_half_up(value * CHOLESTEROL_MMOL_L_TO_MG_DL)


def glucose_mg_dl_to_mmol_l(value: float) -> float:
    """Convert glucose from mg/dL to mmol/L, rounded to 1 decimal.

    Raises:
        InvalidNumberError: If value is NaN, infinite or not a number.
    """
    value = _require_number(value, "glucose")
    return round_half_up(value * GLUCOSE_MG_DL_TO_MMOL_L, 1)


def glucose_mmol_l_to_mg_dl(value: float) -> float:
    """Convert glucose from mmol/L to mg/dL, rounded to the nearest integer.

    Raises:
        InvalidNumberError: If value is NaN, infinite or not a number.
    """
    value = _require_number(value, "glucose")
    return round_half_up(value * GLUCOSE_MMOL_L_TO_MG_DL)


def convert_cholesterol_to_mg_dl(value: float, from_unit: MeasurementUnit | str) -> float:
    """Convert a cholesterol value in any supported unit to mg/dL."""
    value = _require_number(value, "cholesterol")
    if parse_unit(from_unit) == MeasurementUnit.MG_DL:
        return value
    return cholesterol_mmol_l_to_mg_dl(value)


def convert_glucose_to_mg_dl(value: float, from_unit: MeasurementUnit | str) -> float:
    """Convert a glucose value in any supported unit to mg/dL."""
    value = _require_number(value, "glucose")
    if parse_unit(from_unit) == MeasurementUnit.MG_DL:
        return value
    return glucose_mmol_l_to_mg_dl(value)


def convert_cholesterol_from_mg_dl(value: float, to_unit: MeasurementUnit | str) -> float:
    """Convert a cholesterol value in mg/dL to the target unit."""
    value = _require_number(value, "cholesterol")
    if parse_unit(to_unit) == MeasurementUnit.MG_DL:
        return value
    return cholesterol_mg_dl_to_mmol_l(value)


def convert_glucose_from_mg_dl(value: float, to_unit: MeasurementUnit | str) -> float:
    """Convert a glucose value in mg/dL to the target unit."""
    value = _require_number(value, "glucose")
    if parse_unit(to_unit) == MeasurementUnit.MG_DL:
        return value
    return glucose_mg_dl_to_mmol_l(value)


# ============================================================================
# Range checks
# ============================================================================

def is_valid_cholesterol_range(value: float, unit: MeasurementUnit | str) -> bool:
    """Check a cholesterol value against the total cholesterol envelope.

    Args:
        value: Cholesterol value.
        unit: "mg/dL" or "mmol/L".

    Returns:
        True if value is a finite number inside the range for the unit.
    """
    parsed = parse_unit(unit)
    if not is_valid_number(value) or parsed is None:
        return False
    return TOTAL_CHOLESTEROL_RANGES[parsed].contains(value)


def is_valid_glucose_range(
    value: float,
    unit: MeasurementUnit | str,
    context: str = "fasting",
) -> bool:
    """Check a glucose value against the reference envelope for a context.

    Args:
        value: Glucose value.
        unit: "mg/dL" or "mmol/L".
        context: "fasting" (70-400 mg/dL) or "entry" (50-400 mg/dL).

    Returns:
        True if value is a finite number inside the range.

    Raises:
        ValueError: If context is unknown.
    """
    if context not in GLUCOSE_RANGES_BY_CONTEXT:
        available = ", ".join(GLUCOSE_RANGES_BY_CONTEXT)
        raise ValueError(f"Unknown glucose range context: {context}. Available: {available}")

    parsed = parse_unit(unit)
    if not is_valid_number(value) or parsed is None:
        return False
    return GLUCOSE_RANGES_BY_CONTEXT[context][parsed].contains(value)


# ============================================================================
# Display
# ============================================================================

def get_decimal_places(unit: MeasurementUnit | str, kind: str) -> int:
    """Decimal places used to display a value.

    mg/dL values are whole numbers; mmol/L uses 2 places for cholesterol
    and 1 for glucose.
    """
    if parse_unit(unit) == MeasurementUnit.MG_DL:
        return 0
    return 2 if kind == "cholesterol" else 1


def format_value_for_display(value: float, unit: MeasurementUnit | str, kind: str) -> str:
    """Format a value with the decimal places appropriate for its unit."""
    places = get_decimal_places(unit, kind)
    return f"{round_half_up(value, places):.{places}f}"
