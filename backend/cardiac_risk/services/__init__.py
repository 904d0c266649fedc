"""Services for the Cardiac Risk Calculator.

Services implement the clinical logic:
- unit_converter: mg/dL <-> mmol/L conversion and reference ranges
- validation: severity-graded validation of patient records
- risk_engine: Framingham 10-year risk calculation
- risk_categorization: risk categories and recommendations
"""

from cardiac_risk.services.risk_categorization import (
    categorize_risk,
    format_risk_percentage,
    generate_recommendations,
    get_risk_category_description,
    is_valid_risk_percentage,
    sort_recommendations,
)
from cardiac_risk.services.risk_engine import (
    AlgorithmError,
    InvalidInputError,
    OutOfRangeError,
    RiskCalculationError,
    RiskEngine,
    calculate_cardiac_risk,
    create_sample_patient,
    get_risk_engine,
    reset_risk_engine,
)
from cardiac_risk.services.unit_converter import InvalidNumberError
from cardiac_risk.services.validation import is_complete, validate_all, validate_field

__all__ = [
    # Categorization
    "categorize_risk",
    "format_risk_percentage",
    "generate_recommendations",
    "get_risk_category_description",
    "is_valid_risk_percentage",
    "sort_recommendations",
    # Risk engine
    "AlgorithmError",
    "InvalidInputError",
    "OutOfRangeError",
    "RiskCalculationError",
    "RiskEngine",
    "calculate_cardiac_risk",
    "create_sample_patient",
    "get_risk_engine",
    "reset_risk_engine",
    # Units
    "InvalidNumberError",
    # Validation
    "is_complete",
    "validate_all",
    "validate_field",
]
