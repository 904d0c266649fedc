"""Unit conversion schemas."""

from enum import Enum

from pydantic import BaseModel, Field

from cardiac_risk.schemas.base import MeasurementUnit


class MeasurementKind(str, Enum):
    """Analytes with unit conversion support."""

    CHOLESTEROL = "cholesterol"
    GLUCOSE = "glucose"


class UnitConversionRequest(BaseModel):
    """Request body for a unit conversion."""

    value: float
    kind: MeasurementKind
    from_unit: MeasurementUnit = Field(..., alias="fromUnit")
    to_unit: MeasurementUnit = Field(..., alias="toUnit")

    model_config = {"populate_by_name": True}


class UnitConversionResponse(BaseModel):
    """Converted value with its display string."""

    value: float
    unit: MeasurementUnit
    display: str
    in_reference_range: bool = Field(..., alias="inReferenceRange")

    model_config = {"populate_by_name": True}
