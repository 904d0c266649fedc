"""Validation finding schemas."""

from typing import Any

from pydantic import BaseModel, Field

from cardiac_risk.schemas.base import Severity, ValidationCode


class ValidationError(BaseModel):
    """A single severity-graded validation finding.

    Returned as data by the Validator, never raised. Not to be confused
    with ``pydantic.ValidationError``, which signals a type error.
    """

    field: str = Field(..., description="snake_case name of the offending field")
    message: str = Field(..., description="Human-readable explanation")
    code: ValidationCode = Field(..., description="Machine-readable finding code")
    severity: Severity = Field(..., description="error blocks calculation; warning/info do not")
    value: Any = Field(None, description="The value that triggered the finding")

    model_config = {"frozen": True}

    @property
    def is_blocking(self) -> bool:
        """Check if this finding prevents a risk calculation."""
        return self.severity == Severity.ERROR


class ValidationReport(BaseModel):
    """Aggregate validation outcome for a patient record."""

    is_complete: bool = Field(..., alias="isComplete", description="No error-severity findings")
    errors: list[ValidationError] = Field(default_factory=list, description="All findings")

    model_config = {"frozen": True, "populate_by_name": True}
