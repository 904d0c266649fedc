"""Patient input schemas.

Attribute names are snake_case; every field also carries the camelCase
alias used by the web client (``totalCholesterol``, ``systolicBP``, ...).
Both spellings are accepted on input.
"""

from pydantic import BaseModel, Field

from cardiac_risk.schemas.base import Gender, MeasurementUnit, SmokingStatus

# snake_case attribute -> camelCase wire name
FIELD_ALIASES: dict[str, str] = {
    "age": "age",
    "gender": "gender",
    "total_cholesterol": "totalCholesterol",
    "hdl_cholesterol": "hdlCholesterol",
    "cholesterol_unit": "cholesterolUnit",
    "systolic_bp": "systolicBP",
    "diastolic_bp": "diastolicBP",
    "on_bp_medication": "onBPMedication",
    "blood_glucose": "bloodGlucose",
    "glucose_unit": "glucoseUnit",
    "smoking_status": "smokingStatus",
    "has_diabetes": "hasDiabetes",
    "family_history": "familyHistory",
}


class PatientInput(BaseModel):
    """Complete clinical record for a risk calculation.

    Constructed fresh per calculation request and never mutated. Clinical
    plausibility is the Validator's concern; this model only fixes types.
    """

    age: float = Field(..., description="Age in whole years (30-79)")
    gender: Gender = Field(..., description="Selects the coefficient set")
    total_cholesterol: float = Field(..., alias="totalCholesterol", description="Total cholesterol")
    hdl_cholesterol: float = Field(..., alias="hdlCholesterol", description="HDL cholesterol")
    cholesterol_unit: MeasurementUnit = Field(
        default=MeasurementUnit.MG_DL, alias="cholesterolUnit", description="Unit for both cholesterol values"
    )
    systolic_bp: float = Field(..., alias="systolicBP", description="Systolic blood pressure (mmHg)")
    diastolic_bp: float = Field(..., alias="diastolicBP", description="Diastolic blood pressure (mmHg)")
    on_bp_medication: bool = Field(default=False, alias="onBPMedication", description="Treated hypertension")
    blood_glucose: float | None = Field(None, alias="bloodGlucose", description="Optional blood glucose")
    glucose_unit: MeasurementUnit = Field(
        default=MeasurementUnit.MG_DL, alias="glucoseUnit", description="Unit for blood glucose"
    )
    smoking_status: SmokingStatus = Field(..., alias="smokingStatus", description="Tobacco use")
    has_diabetes: bool = Field(default=False, alias="hasDiabetes", description="Diagnosed diabetes")
    family_history: bool = Field(
        default=False, alias="familyHistory", description="Family history of premature heart disease"
    )

    model_config = {"frozen": True, "populate_by_name": True}

    @property
    def pulse_pressure(self) -> float:
        """Systolic minus diastolic pressure."""
        return self.systolic_bp - self.diastolic_bp


class PartialPatientInput(BaseModel):
    """Possibly incomplete patient record as submitted by a form.

    Categorical fields are plain strings so an unknown gender or smoking
    status is reported by the Validator instead of being rejected here.
    """

    age: float | None = Field(None, description="Age in years")
    gender: str | None = Field(None, description="male or female")
    total_cholesterol: float | None = Field(None, alias="totalCholesterol")
    hdl_cholesterol: float | None = Field(None, alias="hdlCholesterol")
    cholesterol_unit: str | None = Field(MeasurementUnit.MG_DL.value, alias="cholesterolUnit")
    systolic_bp: float | None = Field(None, alias="systolicBP")
    diastolic_bp: float | None = Field(None, alias="diastolicBP")
    on_bp_medication: bool | None = Field(None, alias="onBPMedication")
    blood_glucose: float | None = Field(None, alias="bloodGlucose")
    glucose_unit: str | None = Field(MeasurementUnit.MG_DL.value, alias="glucoseUnit")
    smoking_status: str | None = Field(None, alias="smokingStatus")
    has_diabetes: bool | None = Field(None, alias="hasDiabetes")
    family_history: bool | None = Field(None, alias="familyHistory")

    model_config = {"frozen": True, "populate_by_name": True}
