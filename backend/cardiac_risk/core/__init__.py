"""Core application configuration and utilities."""

from cardiac_risk.core.audit import AuditAction, AuditEvent, log_audit, log_risk_calculation, log_validation
from cardiac_risk.core.auth import is_auth_enabled, verify_api_key
from cardiac_risk.core.config import Settings, settings

__all__ = [
    # Config
    "Settings",
    "settings",
    # Security
    "is_auth_enabled",
    "verify_api_key",
    # Audit
    "AuditAction",
    "AuditEvent",
    "log_audit",
    "log_risk_calculation",
    "log_validation",
]
