"""Pydantic schemas for the Cardiac Risk Calculator."""

from cardiac_risk.schemas.base import (
    Gender,
    MeasurementUnit,
    Priority,
    RecommendationCategory,
    RiskCategory,
    Severity,
    SmokingStatus,
    ValidationCode,
)
from cardiac_risk.schemas.patient import FIELD_ALIASES, PartialPatientInput, PatientInput
from cardiac_risk.schemas.risk import (
    CategorizeRequest,
    CategorizeResponse,
    ComparisonData,
    ExternalResource,
    Recommendation,
    RecommendationRequest,
    RiskFactorBreakdown,
    RiskResult,
)
from cardiac_risk.schemas.units import MeasurementKind, UnitConversionRequest, UnitConversionResponse
from cardiac_risk.schemas.validation import ValidationError, ValidationReport

__all__ = [
    # Enums
    "Gender",
    "MeasurementKind",
    "MeasurementUnit",
    "Priority",
    "RecommendationCategory",
    "RiskCategory",
    "Severity",
    "SmokingStatus",
    "ValidationCode",
    # Patient
    "FIELD_ALIASES",
    "PartialPatientInput",
    "PatientInput",
    # Validation
    "ValidationError",
    "ValidationReport",
    # Risk
    "CategorizeRequest",
    "CategorizeResponse",
    "ComparisonData",
    "ExternalResource",
    "Recommendation",
    "RecommendationRequest",
    "RiskFactorBreakdown",
    "RiskResult",
    # Units
    "UnitConversionRequest",
    "UnitConversionResponse",
]
