"""Base schemas and enums for the Cardiac Risk Calculator."""

from enum import Enum


class Gender(str, Enum):
    """Biological sex; selects the Framingham coefficient set."""

    MALE = "male"
    FEMALE = "female"


class MeasurementUnit(str, Enum):
    """Units for cholesterol and glucose concentrations."""

    MG_DL = "mg/dL"
    MMOL_L = "mmol/L"


class SmokingStatus(str, Enum):
    """Tobacco use history."""

    NEVER = "never"
    FORMER = "former"
    CURRENT = "current"


class RiskCategory(str, Enum):
    """10-year cardiovascular risk categories."""

    LOW = "low"  # <10%
    MODERATE = "moderate"  # 10-20%
    HIGH = "high"  # >=20%


class Severity(str, Enum):
    """Severity of a validation finding. Only ERROR blocks calculation."""

    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


class ValidationCode(str, Enum):
    """Machine-readable validation finding codes."""

    REQUIRED_FIELD = "REQUIRED_FIELD"
    INVALID_NUMBER = "INVALID_NUMBER"
    NEGATIVE_VALUE = "NEGATIVE_VALUE"
    DECIMAL_VALUE = "DECIMAL_VALUE"
    EXTREME_VALUE = "EXTREME_VALUE"
    BOUNDARY_VALUE = "BOUNDARY_VALUE"
    UNIT_CONFUSION = "UNIT_CONFUSION"
    LOGICAL_INCONSISTENCY = "LOGICAL_INCONSISTENCY"
    UNUSUAL_VALUE = "UNUSUAL_VALUE"
    MEDICAL_INCONSISTENCY = "MEDICAL_INCONSISTENCY"
    MEDICAL_ADVISORY = "MEDICAL_ADVISORY"
    GENDER_UNUSUAL = "GENDER_UNUSUAL"


class RecommendationCategory(str, Enum):
    """Kind of recommendation."""

    MEDICAL = "medical"
    LIFESTYLE = "lifestyle"
    MONITORING = "monitoring"


class Priority(str, Enum):
    """Recommendation priority."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
