"""Risk result and recommendation schemas."""

from datetime import datetime

from pydantic import BaseModel, Field

from cardiac_risk.schemas.base import Priority, RecommendationCategory, RiskCategory
from cardiac_risk.schemas.patient import PatientInput
from cardiac_risk.schemas.validation import ValidationError


class RiskFactorBreakdown(BaseModel):
    """Per-factor contributions on the log-hazard scale.

    These are explanatory terms of the risk score, not a decomposition
    of the final percentage.
    """

    age: float
    gender: float = 0.0  # captured by coefficient selection
    cholesterol: float
    blood_pressure: float = Field(..., alias="bloodPressure")
    smoking: float
    diabetes: float
    family_history: float = Field(..., alias="familyHistory")

    model_config = {"frozen": True, "populate_by_name": True}

    @property
    def total(self) -> float:
        """Total risk score (sum of all factor scores)."""
        return (
            self.age
            + self.gender
            + self.cholesterol
            + self.blood_pressure
            + self.smoking
            + self.diabetes
            + self.family_history
        )


class ComparisonData(BaseModel):
    """Illustrative population baselines (approximations, not regression output)."""

    average_for_age: float = Field(..., alias="averageForAge")
    average_for_gender: float = Field(..., alias="averageForGender")
    ideal_risk: float = Field(..., alias="idealRisk")

    model_config = {"frozen": True, "populate_by_name": True}


class ExternalResource(BaseModel):
    """Link to further reading for a recommendation."""

    title: str
    url: str
    description: str

    model_config = {"frozen": True}


class Recommendation(BaseModel):
    """A prioritized, actionable recommendation."""

    category: RecommendationCategory
    priority: Priority
    title: str
    description: str
    action_items: list[str] = Field(default_factory=list, alias="actionItems")
    resources: list[ExternalResource] | None = None

    model_config = {"frozen": True, "populate_by_name": True}


class RiskResult(BaseModel):
    """Outcome of a 10-year cardiovascular risk calculation.

    Created once per calculation and never mutated. ``calculated_at`` is
    metadata and has no influence on the numeric result.
    """

    ten_year_risk: float = Field(..., ge=0, le=100, alias="tenYearRisk", description="10-year risk in percent")
    risk_category: RiskCategory = Field(..., alias="riskCategory")
    risk_factors: RiskFactorBreakdown = Field(..., alias="riskFactors")
    comparison_data: ComparisonData = Field(..., alias="comparisonData")
    recommendations: list[Recommendation] = Field(default_factory=list)
    warnings: list[ValidationError] = Field(
        default_factory=list, description="Non-blocking validation findings for the input"
    )
    calculated_at: datetime = Field(..., alias="calculatedAt")
    algorithm_version: str = Field(..., alias="algorithmVersion")

    model_config = {"frozen": True, "populate_by_name": True}


class CategorizeRequest(BaseModel):
    """Request body for risk categorization."""

    risk_percentage: float = Field(..., alias="riskPercentage", description="10-year risk in percent")

    model_config = {"populate_by_name": True}


class CategorizeResponse(BaseModel):
    """Category for a risk percentage."""

    risk_category: RiskCategory = Field(..., alias="riskCategory")
    description: str
    formatted_risk: str = Field(..., alias="formattedRisk")

    model_config = {"populate_by_name": True}


class RecommendationRequest(BaseModel):
    """Request body for recommendation generation."""

    risk_category: RiskCategory = Field(..., alias="riskCategory")
    risk_percentage: float = Field(..., alias="riskPercentage")
    patient: PatientInput

    model_config = {"populate_by_name": True}
