"""Risk Engine Service.

Computes the 10-year cardiovascular risk of a patient with the 2008
Framingham general CVD log-linear model (D'Agostino et al., Circulation
2008;117:743-753) and assembles the full RiskResult: per-factor scores,
population comparison, category, recommendations and input warnings.
"""

import logging
import math
from dataclasses import dataclass
from datetime import UTC, datetime
from threading import Lock
from types import MappingProxyType
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from cardiac_risk.core.config import settings
from cardiac_risk.schemas.base import (
    Gender,
    MeasurementUnit,
    Severity,
    SmokingStatus,
    ValidationCode,
)
from cardiac_risk.schemas.patient import PatientInput
from cardiac_risk.schemas.risk import ComparisonData, RiskFactorBreakdown, RiskResult
from cardiac_risk.schemas.validation import ValidationError
from cardiac_risk.services.risk_categorization import categorize_risk, generate_recommendations
from cardiac_risk.services.unit_converter import (
    CHOLESTEROL_MMOL_L_TO_MG_DL,
    GLUCOSE_MMOL_L_TO_MG_DL,
    round_half_up,
)
from cardiac_risk.services.validation import as_field_dict, validate_all

logger = logging.getLogger(__name__)


# ============================================================================
# Errors
# ============================================================================

class RiskCalculationError(ValueError):
    """Base class for failures of a risk calculation."""

    code = "RISK_CALCULATION_ERROR"


class InvalidInputError(RiskCalculationError):
    """Raised when the patient record has blocking validation errors."""

    code = "INVALID_INPUT"

    def __init__(self, message: str, errors: list[ValidationError] | None = None) -> None:
        super().__init__(message)
        self.errors = errors or []


class AlgorithmError(RiskCalculationError):
    """Raised when the model produces a non-finite intermediate value."""

    code = "ALGORITHM_ERROR"


class OutOfRangeError(RiskCalculationError):
    """Raised when a standardized value is outside what the model can score."""

    code = "OUT_OF_RANGE"


# ============================================================================
# Coefficients
# ============================================================================

@dataclass(frozen=True)
class FraminghamCoefficients:
    """Sex-specific regression coefficients of the 2008 model."""

    ln_age: float
    ln_total_cholesterol: float
    ln_hdl_cholesterol: float
    ln_sbp_untreated: float
    ln_sbp_treated: float
    smoker: float
    diabetes: float
    baseline_survival: float  # S0 at 10 years
    mean_score: float


MALE_COEFFICIENTS = FraminghamCoefficients(
    ln_age=3.06117,
    ln_total_cholesterol=1.12370,
    ln_hdl_cholesterol=-0.93263,
    ln_sbp_untreated=1.93303,
    ln_sbp_treated=1.99881,
    smoker=0.65451,
    diabetes=0.57367,
    baseline_survival=0.88431,
    mean_score=23.9802,
)

FEMALE_COEFFICIENTS = FraminghamCoefficients(
    ln_age=2.32888,
    ln_total_cholesterol=1.20904,
    ln_hdl_cholesterol=-0.70833,
    ln_sbp_untreated=2.76157,
    ln_sbp_treated=2.82263,
    smoker=0.52873,
    diabetes=0.69154,
    baseline_survival=0.95012,
    mean_score=26.1931,
)

COEFFICIENTS = MappingProxyType({
    Gender.MALE: MALE_COEFFICIENTS,
    Gender.FEMALE: FEMALE_COEFFICIENTS,
})

# Project extension, not part of the published model
FAMILY_HISTORY_SCORE = 0.2

# Hard ceilings the log terms are defined for (all values in mg/dL, mmHg, years)
MAX_CHOLESTEROL_MG_DL = 2000
MAX_SYSTOLIC_BP = 400
MAX_AGE = 150

# Illustrative population baselines, not derived from the regression
AVERAGE_RISK_BY_AGE_DECADE = MappingProxyType({
    Gender.MALE: MappingProxyType({30: 3.0, 40: 5.0, 50: 9.0, 60: 16.0, 70: 25.0}),
    Gender.FEMALE: MappingProxyType({30: 1.0, 40: 2.0, 50: 5.0, 60: 8.0, 70: 12.0}),
})
DEFAULT_AGE_AVERAGE = 10.0
AVERAGE_RISK_BY_GENDER = MappingProxyType({Gender.MALE: 12.0, Gender.FEMALE: 6.0})
IDEAL_RISK_BY_GENDER = MappingProxyType({Gender.MALE: 2.0, Gender.FEMALE: 1.0})


# ============================================================================
# Calculation steps
# ============================================================================

def standardize_units(patient: PatientInput) -> PatientInput:
    """Return a copy of the patient with all concentrations in mg/dL.

    Cholesterol is converted with the unrounded 38.67 factor so that
    equivalent inputs in either unit score the same.
    """
    update: dict[str, Any] = {}

    if patient.cholesterol_unit == MeasurementUnit.MMOL_L:
        update["total_cholesterol"] = patient.total_cholesterol * CHOLESTEROL_MMOL_L_TO_MG_DL
        update["hdl_cholesterol"] = patient.hdl_cholesterol * CHOLESTEROL_MMOL_L_TO_MG_DL
        update["cholesterol_unit"] = MeasurementUnit.MG_DL

    if patient.glucose_unit == MeasurementUnit.MMOL_L:
        if patient.blood_glucose is not None:
            update["blood_glucose"] = patient.blood_glucose * GLUCOSE_MMOL_L_TO_MG_DL
        update["glucose_unit"] = MeasurementUnit.MG_DL

    if not update:
        return patient
    return patient.model_copy(update=update)


def _check_bounds(name: str, value: float, ceiling: float) -> None:
    if not math.isfinite(value):
        raise AlgorithmError(f"{name} is not a finite number: {value}")
    if value <= 0 or value > ceiling:
        raise OutOfRangeError(f"{name} out of range for risk calculation: {value} (allowed 0 < value <= {ceiling})")


def _finite(name: str, value: float) -> float:
    if not math.isfinite(value):
        raise AlgorithmError(f"Non-finite {name} score: {value}")
    return value


def calculate_risk_factor_scores(
    patient: PatientInput,
    include_family_history: bool = True,
) -> RiskFactorBreakdown:
    """Calculate the log-hazard contribution of each risk factor.

    Args:
        patient: Patient with cholesterol in mg/dL (see standardize_units).
        include_family_history: Add the flat family history term.

    Returns:
        RiskFactorBreakdown whose total is the model's linear predictor.

    Raises:
        OutOfRangeError: If age, cholesterol, HDL or SBP is non-positive
            or above its hard ceiling.
        AlgorithmError: If any term is NaN or infinite.
    """
    _check_bounds("age", patient.age, MAX_AGE)
    _check_bounds("total_cholesterol", patient.total_cholesterol, MAX_CHOLESTEROL_MG_DL)
    _check_bounds("hdl_cholesterol", patient.hdl_cholesterol, MAX_CHOLESTEROL_MG_DL)
    _check_bounds("systolic_bp", patient.systolic_bp, MAX_SYSTOLIC_BP)

    coef = COEFFICIENTS[patient.gender]

    age_score = coef.ln_age * math.log(patient.age)
    cholesterol_score = (
        coef.ln_total_cholesterol * math.log(patient.total_cholesterol)
        + coef.ln_hdl_cholesterol * math.log(patient.hdl_cholesterol)
    )
    sbp_coef = coef.ln_sbp_treated if patient.on_bp_medication else coef.ln_sbp_untreated
    bp_score = sbp_coef * math.log(patient.systolic_bp)

    smoking_score = coef.smoker if patient.smoking_status == SmokingStatus.CURRENT else 0.0
    diabetes_score = coef.diabetes if patient.has_diabetes else 0.0
    family_score = FAMILY_HISTORY_SCORE if include_family_history and patient.family_history else 0.0

    return RiskFactorBreakdown(
        age=_finite("age", age_score),
        gender=0.0,
        cholesterol=_finite("cholesterol", cholesterol_score),
        blood_pressure=_finite("blood pressure", bp_score),
        smoking=smoking_score,
        diabetes=diabetes_score,
        family_history=family_score,
    )


def convert_score_to_risk_percentage(total_score: float, gender: Gender) -> float:
    """Convert a linear predictor to a 10-year risk percentage.

    risk = 1 - S0 ** exp(total - mean), scaled to percent, clamped to
    [0, 100] and rounded half-up to one decimal.

    Raises:
        AlgorithmError: If the score or any intermediate value is not finite.
    """
    if not math.isfinite(total_score):
        raise AlgorithmError(f"Risk score is not finite: {total_score}")

    coef = COEFFICIENTS[Gender(gender)]
    try:
        relative_hazard = math.exp(total_score - coef.mean_score)
        risk = 1 - coef.baseline_survival ** relative_hazard
    except OverflowError as e:
        raise AlgorithmError(f"Risk score overflow: {e}") from e

    if not math.isfinite(risk):
        raise AlgorithmError(f"Risk probability is not finite: {risk}")

    percentage = min(100.0, max(0.0, risk * 100))
    return round_half_up(percentage, 1)


def generate_comparison_data(age: float, gender: Gender) -> ComparisonData:
    """Look up the illustrative population baselines for an age and gender.

    Ages are bucketed by decade; decades without an entry use 10%.
    """
    gender = Gender(gender)
    decade = int(age // 10) * 10
    return ComparisonData(
        average_for_age=AVERAGE_RISK_BY_AGE_DECADE[gender].get(decade, DEFAULT_AGE_AVERAGE),
        average_for_gender=AVERAGE_RISK_BY_GENDER[gender],
        ideal_risk=IDEAL_RISK_BY_GENDER[gender],
    )


def create_sample_patient() -> PatientInput:
    """Canonical sample patient used for demos and smoke tests."""
    return PatientInput(
        age=55,
        gender=Gender.MALE,
        total_cholesterol=200,
        hdl_cholesterol=45,
        cholesterol_unit=MeasurementUnit.MG_DL,
        systolic_bp=140,
        diastolic_bp=90,
        on_bp_medication=False,
        smoking_status=SmokingStatus.NEVER,
        has_diabetes=False,
        family_history=False,
    )


def _to_patient(data: Any) -> PatientInput:
    """Coerce validated input to a PatientInput.

    Missing optional fields fall back to the model defaults.
    """
    if isinstance(data, PatientInput):
        return data

    fields = {k: v for k, v in as_field_dict(data).items() if v is not None}
    try:
        return PatientInput.model_validate(fields)
    except PydanticValidationError as e:
        errors = [
            ValidationError(
                field=str(err["loc"][0]) if err["loc"] else "patient",
                message=err["msg"],
                code=ValidationCode.REQUIRED_FIELD,
                severity=Severity.ERROR,
                value=err.get("input"),
            )
            for err in e.errors()
        ]
        raise InvalidInputError("Patient data could not be interpreted", errors) from e


# ============================================================================
# Risk Engine
# ============================================================================

class RiskEngine:
    """Framingham 10-year cardiovascular risk engine.

    Holds only immutable configuration, so one instance can serve
    concurrent callers.

    Usage:
        engine = RiskEngine()
        result = engine.compute({
            "age": 55, "gender": "male",
            "totalCholesterol": 200, "hdlCholesterol": 45,
            "systolicBP": 140, "diastolicBP": 90,
            "smokingStatus": "never",
        })
    """

    def __init__(
        self,
        algorithm_version: str | None = None,
        include_family_history: bool | None = None,
    ) -> None:
        self.algorithm_version = algorithm_version or settings.algorithm_version
        self.include_family_history = (
            settings.include_family_history_modifier if include_family_history is None else include_family_history
        )

    def compute(self, data: Any) -> RiskResult:
        """Validate a patient record and calculate its 10-year risk.

        Args:
            data: PatientInput, PartialPatientInput or a mapping with
                snake_case or camelCase keys.

        Returns:
            RiskResult with the risk, category, breakdown, comparison,
            recommendations and any non-blocking validation findings.

        Raises:
            InvalidInputError: If validation yields error-severity findings.
            OutOfRangeError: If a standardized value cannot be scored.
            AlgorithmError: If the model produces a non-finite value.
        """
        calculated_at = datetime.now(UTC)

        findings = validate_all(data)
        errors = [f for f in findings if f.severity == Severity.ERROR]
        if errors:
            fields = ", ".join(sorted({e.field for e in errors}))
            logger.info(f"Risk calculation rejected: {len(errors)} validation errors ({fields})")
            raise InvalidInputError(f"Patient data has {len(errors)} validation error(s)", errors)

        for finding in findings:
            logger.warning(f"Validation {finding.severity.value} on {finding.field}: {finding.code.value}")

        patient = _to_patient(data)
        standardized = standardize_units(patient)

        risk_factors = calculate_risk_factor_scores(standardized, self.include_family_history)
        ten_year_risk = convert_score_to_risk_percentage(risk_factors.total, standardized.gender)
        risk_category = categorize_risk(ten_year_risk)

        logger.debug(f"Calculated 10-year risk {ten_year_risk}% ({risk_category.value})")

        return RiskResult(
            ten_year_risk=ten_year_risk,
            risk_category=risk_category,
            risk_factors=risk_factors,
            comparison_data=generate_comparison_data(standardized.age, standardized.gender),
            recommendations=generate_recommendations(risk_category, ten_year_risk, patient),
            warnings=findings,
            calculated_at=calculated_at,
            algorithm_version=self.algorithm_version,
        )

    def get_stats(self) -> dict[str, Any]:
        """Get engine configuration.

        Returns:
            Dictionary with algorithm version and enabled modifiers.
        """
        return {
            "algorithm": "framingham",
            "algorithm_version": self.algorithm_version,
            "family_history_modifier": self.include_family_history,
            "supported_genders": [g.value for g in COEFFICIENTS],
        }


def calculate_cardiac_risk(data: Any) -> RiskResult:
    """Calculate cardiac risk with the shared engine."""
    return get_risk_engine().compute(data)


# Singleton instance and lock
_risk_engine: RiskEngine | None = None
_risk_engine_lock = Lock()


def get_risk_engine() -> RiskEngine:
    """Get the singleton RiskEngine instance.

    Returns:
        The singleton RiskEngine instance.
    """
    global _risk_engine

    if _risk_engine is None:
        with _risk_engine_lock:
            if _risk_engine is None:
                logger.info("Creating singleton RiskEngine instance")
                _risk_engine = RiskEngine()

    return _risk_engine


def reset_risk_engine() -> None:
    """Reset the singleton so the next access picks up current settings."""
    global _risk_engine
    with _risk_engine_lock:
        _risk_engine = None
