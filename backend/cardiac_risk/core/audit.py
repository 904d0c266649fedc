"""Audit logging for operations on patient data.

Every validation and risk calculation request is recorded on the
"audit" logger. Events carry outcomes and field names only, never the
clinical values themselves.

This audit log should be persisted to a secure, append-only store
in production for compliance purposes.
"""

import logging
from datetime import UTC, datetime
from enum import Enum

from pydantic import BaseModel, Field

audit_logger = logging.getLogger("audit")


class AuditAction(str, Enum):
    """Types of auditable actions."""

    VALIDATE = "validate"
    CALCULATE = "calculate"
    RECOMMEND = "recommend"
    ERROR = "error"


class AuditEvent(BaseModel):
    """Audit event record."""

    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
    action: AuditAction = Field(..., description="Type of action performed")
    resource_type: str = Field(..., description="Type of resource processed")
    user_id: str | None = Field(None, description="API key or user that made the request")
    details: dict | None = Field(None, description="Additional context")
    success: bool = Field(True, description="Whether action succeeded")


def log_audit(
    action: AuditAction,
    resource_type: str,
    user_id: str | None = None,
    details: dict | None = None,
    success: bool = True,
) -> AuditEvent:
    """Log an audit event.

    Args:
        action: Type of action being audited
        resource_type: The type of resource being processed
        user_id: Caller performing the action
        details: Additional context (must not contain clinical values)
        success: Whether the action succeeded

    Returns:
        The created AuditEvent
    """
    event = AuditEvent(
        action=action,
        resource_type=resource_type,
        user_id=user_id,
        details=details,
        success=success,
    )

    log_level = logging.INFO if success else logging.WARNING
    audit_logger.log(
        log_level,
        f"AUDIT: {action.value} {resource_type} success={success}",
        extra={"audit_event": event.model_dump()},
    )

    return event


def log_validation(
    error_fields: list[str],
    warning_count: int = 0,
    user_id: str | None = None,
) -> AuditEvent:
    """Log a validation request.

    Args:
        error_fields: Fields that failed with error severity
        warning_count: Number of non-blocking findings
        user_id: Caller performing the validation

    Returns:
        The created AuditEvent
    """
    return log_audit(
        action=AuditAction.VALIDATE,
        resource_type="patient_input",
        user_id=user_id,
        details={"error_fields": error_fields, "warning_count": warning_count},
        success=not error_fields,
    )


def log_risk_calculation(
    success: bool,
    risk_category: str | None = None,
    error_code: str | None = None,
    user_id: str | None = None,
) -> AuditEvent:
    """Log a risk calculation request.

    Args:
        success: Whether a RiskResult was produced
        risk_category: Category of the result, if any
        error_code: Failure code when the calculation was refused
        user_id: Caller performing the calculation

    Returns:
        The created AuditEvent
    """
    details: dict = {}
    if risk_category:
        details["risk_category"] = risk_category
    if error_code:
        details["error_code"] = error_code

    return log_audit(
        action=AuditAction.CALCULATE if success else AuditAction.ERROR,
        resource_type="risk_result",
        user_id=user_id,
        details=details or None,
        success=success,
    )
