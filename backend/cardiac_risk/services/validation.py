"""Patient Input Validation Service.

Field-level and cross-field validation of patient records with medical
domain semantics. Every check returns findings as data: a per-field
validator returns ``ValidationError | None`` and ``validate_all`` returns
the union across fields plus the cross-field consistency checks.

Severity determines what blocks a calculation: only ``error`` findings
make a record incomplete, ``warning`` and ``info`` findings are surfaced
to the caller but never block.
"""

import logging
import math
from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel

from cardiac_risk.schemas.base import Gender, MeasurementUnit, Severity, SmokingStatus, ValidationCode
from cardiac_risk.schemas.patient import FIELD_ALIASES
from cardiac_risk.schemas.validation import ValidationError
from cardiac_risk.services.unit_converter import (
    CHOLESTEROL_MMOL_L_TO_MG_DL,
    GLUCOSE_ENTRY_RANGES,
    GLUCOSE_MMOL_L_TO_MG_DL,
    HDL_CHOLESTEROL_RANGES,
    TOTAL_CHOLESTEROL_RANGES,
    UnitRange,
    parse_unit,
)

logger = logging.getLogger(__name__)


# ============================================================================
# Validation rules
# ============================================================================

AGE_RANGE = UnitRange(30, 79)  # Framingham study population
AGE_EXTENDED_RANGE = UnitRange(20, 90)  # outside AGE_RANGE but only a warning
AGE_EXTREME_MAX = 150

SYSTOLIC_RANGE = UnitRange(80, 200)
DIASTOLIC_RANGE = UnitRange(40, 120)
SYSTOLIC_PLAUSIBLE = UnitRange(50, 300)
DIASTOLIC_PLAUSIBLE = UnitRange(30, 200)
PULSE_PRESSURE_RANGE = UnitRange(20, 100)

# Values within this fraction of a violated bound are warnings, not errors
BOUNDARY_TOLERANCE = 0.2
EXTREME_MULTIPLIER = 2

# (too low for mg/dL, too high for mmol/L)
CHOLESTEROL_UNIT_CONFUSION = (10, 20)
GLUCOSE_UNIT_CONFUSION = (20, 40)

HDL_RATIO_RANGE = UnitRange(0.1, 0.6)
DIABETIC_GLUCOSE_FLOOR_MG_DL = 100
NON_DIABETIC_GLUCOSE_CEILING_MG_DL = 200
FAMILY_HISTORY_ADVISORY_AGE = 35
MALE_HDL_UNUSUAL_ABOVE_MG_DL = 80
FEMALE_HDL_UNUSUAL_BELOW_MG_DL = 30

BOOLEAN_FIELDS = ("on_bp_medication", "has_diabetes", "family_history")

FIELD_DISPLAY_NAMES: dict[str, str] = {
    "age": "Age",
    "gender": "Gender",
    "total_cholesterol": "Total Cholesterol",
    "hdl_cholesterol": "HDL Cholesterol",
    "cholesterol_unit": "Cholesterol Unit",
    "systolic_bp": "Systolic Blood Pressure",
    "diastolic_bp": "Diastolic Blood Pressure",
    "blood_glucose": "Blood Glucose",
    "glucose_unit": "Glucose Unit",
    "smoking_status": "Smoking Status",
    "has_diabetes": "Diabetes Status",
    "family_history": "Family History",
    "on_bp_medication": "Blood Pressure Medication",
}


def get_field_display_name(field: str) -> str:
    """Get the user-facing name for a field (snake_case or camelCase)."""
    if field in FIELD_DISPLAY_NAMES:
        return FIELD_DISPLAY_NAMES[field]
    for name, alias in FIELD_ALIASES.items():
        if alias == field:
            return FIELD_DISPLAY_NAMES[name]
    return field


# ============================================================================
# Helpers
# ============================================================================

def _finding(
    field: str,
    message: str,
    code: ValidationCode,
    severity: Severity = Severity.ERROR,
    value: Any = None,
) -> ValidationError:
    return ValidationError(field=field, message=message, code=code, severity=severity, value=value)


def _to_number(value: Any) -> float | None:
    """Coerce raw input to float; None means missing, NaN means unparseable."""
    if value is None:
        return None
    if isinstance(value, bool):
        return math.nan
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            return math.nan
    return math.nan


def _is_finite(value: float | None) -> bool:
    return value is not None and math.isfinite(value)


def _numeric_gate(
    raw: Any,
    field: str,
    missing_code: ValidationCode = ValidationCode.REQUIRED_FIELD,
) -> tuple[float | None, ValidationError | None]:
    """Checks shared by every numeric field: missing, non-finite, negative.

    Returns:
        (number, None) when the value passes, (None, finding) otherwise.
    """
    label = get_field_display_name(field)
    number = _to_number(raw)

    if number is None or math.isnan(number):
        if missing_code == ValidationCode.REQUIRED_FIELD:
            return None, _finding(field, f"{label} is required", missing_code, value=raw)
        return None, _finding(field, f"{label} must be a valid number", missing_code, value=raw)

    if math.isinf(number):
        return None, _finding(field, f"{label} must be a valid number", ValidationCode.INVALID_NUMBER, value=raw)

    if number < 0:
        return None, _finding(field, f"{label} cannot be negative", ValidationCode.NEGATIVE_VALUE, value=raw)

    return number, None


def _boundary_severity(value: float, allowed: UnitRange) -> Severity:
    """Warning if the value is within BOUNDARY_TOLERANCE of the violated bound."""
    if value < allowed.low:
        near = value >= allowed.low * (1 - BOUNDARY_TOLERANCE)
    else:
        near = value <= allowed.high * (1 + BOUNDARY_TOLERANCE)
    return Severity.WARNING if near else Severity.ERROR


def _format_bound(value: float) -> str:
    return f"{value:g}"


# ============================================================================
# Per-field validators
# ============================================================================

def validate_age(age: Any) -> ValidationError | None:
    """Validate age against the Framingham study range (30-79 years).

    Ages in 20-29 or 80-90 are warnings since the formula is being
    extrapolated; anything further out is an error.
    """
    number, finding = _numeric_gate(age, "age")
    if finding:
        return finding

    if number > AGE_EXTREME_MAX:
        return _finding(
            "age",
            "Age seems unusually high. Please verify this value.",
            ValidationCode.EXTREME_VALUE,
            value=age,
        )

    if not AGE_RANGE.contains(number):
        severity = Severity.WARNING if AGE_EXTENDED_RANGE.contains(number) else Severity.ERROR
        return _finding(
            "age",
            f"Age must be between {AGE_RANGE.low:g} and {AGE_RANGE.high:g} years",
            ValidationCode.BOUNDARY_VALUE,
            severity,
            value=age,
        )

    if not number.is_integer():
        return _finding(
            "age",
            "Age should be a whole number. The value is used as entered.",
            ValidationCode.DECIMAL_VALUE,
            Severity.WARNING,
            value=age,
        )

    return None


def _validate_concentration(
    value: Any,
    unit: Any,
    field: str,
    ranges: dict[MeasurementUnit, UnitRange],
    unit_confusion: tuple[float, float],
    missing_code: ValidationCode,
) -> ValidationError | None:
    """Shared checks for unit-aware lab values (cholesterol, glucose)."""
    label = get_field_display_name(field)
    number, finding = _numeric_gate(value, field, missing_code)
    if finding:
        return finding

    parsed_unit = parse_unit(unit)
    if parsed_unit is None:
        unit_field = "glucose_unit" if field == "blood_glucose" else "cholesterol_unit"
        return _finding(
            unit_field,
            f"{label} unit is required (mg/dL or mmol/L)",
            ValidationCode.REQUIRED_FIELD,
            value=unit,
        )

    if number == 0:
        return _finding(
            field,
            f"{label} of zero is medically unusual. Please verify.",
            ValidationCode.UNUSUAL_VALUE,
            Severity.WARNING,
            value=value,
        )

    too_low_for_mg_dl, too_high_for_mmol_l = unit_confusion
    if parsed_unit == MeasurementUnit.MG_DL and number < too_low_for_mg_dl:
        return _finding(
            field,
            f"{label} seems too low for mg/dL. Did you mean mmol/L?",
            ValidationCode.UNIT_CONFUSION,
            Severity.WARNING,
            value=value,
        )
    if parsed_unit == MeasurementUnit.MMOL_L and number > too_high_for_mmol_l:
        return _finding(
            field,
            f"{label} seems too high for mmol/L. Did you mean mg/dL?",
            ValidationCode.UNIT_CONFUSION,
            Severity.WARNING,
            value=value,
        )

    allowed = ranges[parsed_unit]
    if number > allowed.high * EXTREME_MULTIPLIER:
        return _finding(
            field,
            f"{label} value seems extremely high. Please verify.",
            ValidationCode.EXTREME_VALUE,
            value=value,
        )

    if not allowed.contains(number):
        return _finding(
            field,
            f"{label} must be between {_format_bound(allowed.low)} and "
            f"{_format_bound(allowed.high)} {parsed_unit.value}",
            ValidationCode.BOUNDARY_VALUE,
            _boundary_severity(number, allowed),
            value=value,
        )

    return None


def validate_cholesterol(
    value: Any,
    unit: Any,
    field: str = "total_cholesterol",
) -> ValidationError | None:
    """Validate a total or HDL cholesterol value in its unit.

    Args:
        value: The cholesterol value.
        unit: "mg/dL" or "mmol/L".
        field: "total_cholesterol" or "hdl_cholesterol".

    Returns:
        The first finding for the value, or None if it is valid.
    """
    ranges = HDL_CHOLESTEROL_RANGES if field == "hdl_cholesterol" else TOTAL_CHOLESTEROL_RANGES
    return _validate_concentration(
        value, unit, field, ranges, CHOLESTEROL_UNIT_CONFUSION, ValidationCode.REQUIRED_FIELD
    )


def validate_glucose(value: Any, unit: Any) -> ValidationError | None:
    """Validate the optional blood glucose value.

    Missing glucose is valid. A present value must be a real number inside
    the data-entry envelope for its unit.
    """
    if value is None:
        return None
    return _validate_concentration(
        value,
        unit,
        "blood_glucose",
        GLUCOSE_ENTRY_RANGES,
        GLUCOSE_UNIT_CONFUSION,
        ValidationCode.INVALID_NUMBER,
    )


def _validate_pressure_value(
    raw: Any,
    field: str,
    plausible: UnitRange,
    clinical: UnitRange,
) -> tuple[float | None, ValidationError | None]:
    label = get_field_display_name(field)
    number, finding = _numeric_gate(raw, field)
    if finding:
        # Negative readings are still compared against their partner
        parsed = _to_number(raw)
        return (parsed if _is_finite(parsed) else None), finding

    if not plausible.contains(number):
        return number, _finding(
            field,
            f"{label} of {number:g} mmHg is outside the physiologically plausible range "
            f"({plausible.low:g}-{plausible.high:g} mmHg). Please verify.",
            ValidationCode.EXTREME_VALUE,
            value=raw,
        )

    if not clinical.contains(number):
        return number, _finding(
            field,
            f"{label} must be between {clinical.low:g} and {clinical.high:g} mmHg",
            ValidationCode.BOUNDARY_VALUE,
            _boundary_severity(number, clinical),
            value=raw,
        )

    if not number.is_integer():
        return number, _finding(
            field,
            f"{label} should be a whole number. The value is used as entered.",
            ValidationCode.DECIMAL_VALUE,
            Severity.WARNING,
            value=raw,
        )

    return number, None


def validate_blood_pressure(systolic: Any, diastolic: Any) -> list[ValidationError]:
    """Validate the systolic/diastolic pair.

    Each reading gets at most one finding of its own. When both readings
    are finite the pair is also checked for ordering (diastolic must be
    below systolic) and for an implausible pulse pressure.
    """
    findings: list[ValidationError] = []

    sbp, sbp_finding = _validate_pressure_value(systolic, "systolic_bp", SYSTOLIC_PLAUSIBLE, SYSTOLIC_RANGE)
    dbp, dbp_finding = _validate_pressure_value(diastolic, "diastolic_bp", DIASTOLIC_PLAUSIBLE, DIASTOLIC_RANGE)
    if sbp_finding:
        findings.append(sbp_finding)
    if dbp_finding:
        findings.append(dbp_finding)

    if sbp is None or dbp is None:
        return findings

    if dbp >= sbp:
        findings.append(
            _finding(
                "diastolic_bp",
                "Diastolic blood pressure must be lower than systolic blood pressure",
                ValidationCode.LOGICAL_INCONSISTENCY,
                value={"systolic": systolic, "diastolic": diastolic},
            )
        )
    elif not PULSE_PRESSURE_RANGE.contains(sbp - dbp):
        width = "narrow" if sbp - dbp < PULSE_PRESSURE_RANGE.low else "wide"
        findings.append(
            _finding(
                "systolic_bp",
                f"Pulse pressure of {sbp - dbp:g} mmHg is unusually {width}. Please verify both readings.",
                ValidationCode.UNUSUAL_VALUE,
                Severity.WARNING,
                value={"systolic": systolic, "diastolic": diastolic},
            )
        )

    return findings


def validate_gender(gender: Any) -> ValidationError | None:
    """Gender must be exactly "male" or "female"."""
    if gender not in (Gender.MALE.value, Gender.FEMALE.value):
        return _finding("gender", "Please select a gender", ValidationCode.REQUIRED_FIELD, value=gender)
    return None


def validate_smoking_status(status: Any) -> ValidationError | None:
    """Smoking status must be one of never, former or current."""
    if status not in tuple(s.value for s in SmokingStatus):
        return _finding(
            "smoking_status", "Please select a smoking status", ValidationCode.REQUIRED_FIELD, value=status
        )
    return None


def validate_flag(value: Any, field: str) -> ValidationError | None:
    """Yes/no fields default to False when missing but must be booleans."""
    if value is None or isinstance(value, bool):
        return None
    return _finding(
        field,
        f"{get_field_display_name(field)} must be answered yes or no",
        ValidationCode.REQUIRED_FIELD,
        value=value,
    )


# ============================================================================
# Cross-field validation
# ============================================================================

def _to_mg_dl(value: float, unit: Any, factor: float) -> float:
    return value * factor if parse_unit(unit) == MeasurementUnit.MMOL_L else value


def validate_cross_field(data: Mapping[str, Any]) -> list[ValidationError]:
    """Medical consistency checks spanning several fields.

    Each check only runs when every value it needs is present and finite.

    Args:
        data: Patient record keyed by snake_case field name.

    Returns:
        List of findings (may be empty).
    """
    findings: list[ValidationError] = []

    total = _to_number(data.get("total_cholesterol"))
    hdl = _to_number(data.get("hdl_cholesterol"))
    glucose = _to_number(data.get("blood_glucose"))
    age = _to_number(data.get("age"))
    cholesterol_unit = data.get("cholesterol_unit")
    has_diabetes = data.get("has_diabetes")

    if _is_finite(total) and _is_finite(hdl):
        if hdl >= total:
            findings.append(
                _finding(
                    "hdl_cholesterol",
                    "HDL cholesterol must be lower than total cholesterol",
                    ValidationCode.LOGICAL_INCONSISTENCY,
                    value={"total_cholesterol": total, "hdl_cholesterol": hdl},
                )
            )
        elif total > 0 and not HDL_RATIO_RANGE.contains(hdl / total):
            findings.append(
                _finding(
                    "hdl_cholesterol",
                    f"HDL to total cholesterol ratio of {hdl / total:.2f} is unusual. Please verify both values.",
                    ValidationCode.UNUSUAL_VALUE,
                    Severity.WARNING,
                    value={"total_cholesterol": total, "hdl_cholesterol": hdl},
                )
            )

    if _is_finite(glucose) and parse_unit(data.get("glucose_unit")) is not None:
        glucose_mg_dl = _to_mg_dl(glucose, data.get("glucose_unit"), GLUCOSE_MMOL_L_TO_MG_DL)
        if has_diabetes is True and glucose_mg_dl < DIABETIC_GLUCOSE_FLOOR_MG_DL:
            findings.append(
                _finding(
                    "blood_glucose",
                    "Blood glucose is in the normal range although diabetes is reported. "
                    "Please verify both values.",
                    ValidationCode.MEDICAL_INCONSISTENCY,
                    Severity.WARNING,
                    value=glucose,
                )
            )
        elif has_diabetes in (None, False) and glucose_mg_dl > NON_DIABETIC_GLUCOSE_CEILING_MG_DL:
            findings.append(
                _finding(
                    "has_diabetes",
                    "Blood glucose above 200 mg/dL suggests diabetes. Please confirm diabetes status.",
                    ValidationCode.MEDICAL_INCONSISTENCY,
                    Severity.WARNING,
                    value=glucose,
                )
            )

    if _is_finite(age) and age < FAMILY_HISTORY_ADVISORY_AGE and data.get("family_history") is True:
        findings.append(
            _finding(
                "family_history",
                "A family history of heart disease at a young age is worth discussing with a "
                "healthcare provider, since this 10-year estimate may understate lifetime risk.",
                ValidationCode.MEDICAL_ADVISORY,
                Severity.INFO,
                value=age,
            )
        )

    if _is_finite(hdl) and parse_unit(cholesterol_unit) is not None:
        hdl_mg_dl = _to_mg_dl(hdl, cholesterol_unit, CHOLESTEROL_MMOL_L_TO_MG_DL)
        gender = data.get("gender")
        if gender == Gender.MALE.value and hdl_mg_dl > MALE_HDL_UNUSUAL_ABOVE_MG_DL:
            findings.append(
                _finding(
                    "hdl_cholesterol",
                    f"HDL cholesterol above {MALE_HDL_UNUSUAL_ABOVE_MG_DL} mg/dL is unusual for men. "
                    "Please verify.",
                    ValidationCode.GENDER_UNUSUAL,
                    Severity.WARNING,
                    value=hdl,
                )
            )
        elif gender == Gender.FEMALE.value and hdl_mg_dl < FEMALE_HDL_UNUSUAL_BELOW_MG_DL:
            findings.append(
                _finding(
                    "hdl_cholesterol",
                    f"HDL cholesterol below {FEMALE_HDL_UNUSUAL_BELOW_MG_DL} mg/dL is unusual for women. "
                    "Please verify.",
                    ValidationCode.GENDER_UNUSUAL,
                    Severity.WARNING,
                    value=hdl,
                )
            )

    return findings


# ============================================================================
# Aggregate validation
# ============================================================================

def as_field_dict(data: Any) -> dict[str, Any]:
    """Normalize a patient record to a dict keyed by snake_case field name.

    Accepts PatientInput, PartialPatientInput or any mapping using either
    snake_case or camelCase keys.

    Raises:
        TypeError: If data is not a model or mapping.
    """
    if isinstance(data, BaseModel):
        return data.model_dump()
    if isinstance(data, Mapping):
        normalized: dict[str, Any] = {}
        for name, alias in FIELD_ALIASES.items():
            if name in data:
                normalized[name] = data[name]
            elif alias in data:
                normalized[name] = data[alias]
        normalized.setdefault("cholesterol_unit", MeasurementUnit.MG_DL.value)
        normalized.setdefault("glucose_unit", MeasurementUnit.MG_DL.value)
        return normalized
    raise TypeError(f"Patient data must be a model or mapping, got {type(data).__name__}")


def validate_all(data: Any) -> list[ValidationError]:
    """Validate a (possibly partial) patient record.

    Args:
        data: PatientInput, PartialPatientInput or mapping.

    Returns:
        All findings: per-field results followed by cross-field checks.
    """
    fields = as_field_dict(data)
    findings: list[ValidationError] = []

    def add(finding: ValidationError | None) -> None:
        if finding is not None:
            findings.append(finding)

    add(validate_age(fields.get("age")))
    add(validate_gender(fields.get("gender")))
    add(validate_cholesterol(fields.get("total_cholesterol"), fields.get("cholesterol_unit"), "total_cholesterol"))
    add(validate_cholesterol(fields.get("hdl_cholesterol"), fields.get("cholesterol_unit"), "hdl_cholesterol"))
    findings.extend(validate_blood_pressure(fields.get("systolic_bp"), fields.get("diastolic_bp")))
    add(validate_glucose(fields.get("blood_glucose"), fields.get("glucose_unit")))
    add(validate_smoking_status(fields.get("smoking_status")))
    for flag in BOOLEAN_FIELDS:
        add(validate_flag(fields.get(flag), flag))
    findings.extend(validate_cross_field(fields))

    logger.debug(
        f"Validated patient record: {len(findings)} findings, "
        f"{sum(1 for f in findings if f.severity == Severity.ERROR)} blocking"
    )
    return findings


def validate_field(
    field: str,
    value: Any,
    context: Any = None,
) -> ValidationError | None:
    """Validate a single field, e.g. when a form input loses focus.

    Args:
        field: snake_case or camelCase field name.
        value: The value to check.
        context: The rest of the record, used for units and the partner
            blood pressure reading.

    Returns:
        The finding for that field, or None.
    """
    others = as_field_dict(context) if context is not None else {}
    name = next((n for n, a in FIELD_ALIASES.items() if field in (n, a)), field)

    if name == "age":
        return validate_age(value)
    if name == "gender":
        return validate_gender(value)
    if name in ("total_cholesterol", "hdl_cholesterol"):
        return validate_cholesterol(value, others.get("cholesterol_unit", MeasurementUnit.MG_DL.value), name)
    if name == "systolic_bp":
        pair = validate_blood_pressure(value, others.get("diastolic_bp"))
        return next((f for f in pair if f.field == "systolic_bp"), None)
    if name == "diastolic_bp":
        pair = validate_blood_pressure(others.get("systolic_bp"), value)
        return next((f for f in pair if f.field == "diastolic_bp"), None)
    if name == "blood_glucose":
        return validate_glucose(value, others.get("glucose_unit", MeasurementUnit.MG_DL.value))
    if name == "smoking_status":
        return validate_smoking_status(value)
    if name in BOOLEAN_FIELDS:
        return validate_flag(value, name)
    return None


def has_blocking_errors(findings: list[ValidationError]) -> bool:
    """Check if any finding has error severity."""
    return any(f.severity == Severity.ERROR for f in findings)


def is_complete(data: Any) -> bool:
    """A record is complete when validation yields no error-severity findings."""
    return not has_blocking_errors(validate_all(data))


def filter_by_severity(findings: list[ValidationError], severity: Severity) -> list[ValidationError]:
    """Keep only findings of the given severity, preserving order."""
    return [f for f in findings if f.severity == severity]


def group_errors_by_field(findings: list[ValidationError]) -> dict[str, list[ValidationError]]:
    """Group findings by field name, preserving order within each field."""
    grouped: dict[str, list[ValidationError]] = {}
    for finding in findings:
        grouped.setdefault(finding.field, []).append(finding)
    return grouped


def format_validation_errors(findings: list[ValidationError]) -> list[str]:
    """Extract the display messages from a list of findings."""
    return [f.message for f in findings]
