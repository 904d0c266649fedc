"""Risk calculation API endpoints."""

import hashlib
import logging
import time

from fastapi import APIRouter, Depends, HTTPException, status

from cardiac_risk.core.audit import AuditAction, log_audit, log_risk_calculation, log_validation
from cardiac_risk.core.auth import verify_api_key
from cardiac_risk.core.config import settings
from cardiac_risk.schemas import (
    CategorizeRequest,
    CategorizeResponse,
    PartialPatientInput,
    PatientInput,
    Recommendation,
    RecommendationRequest,
    RiskResult,
    Severity,
    ValidationReport,
)
from cardiac_risk.services.risk_categorization import (
    categorize_risk,
    format_risk_percentage,
    generate_recommendations,
    get_risk_category_description,
    is_valid_risk_percentage,
)
from cardiac_risk.services.risk_engine import (
    InvalidInputError,
    RiskCalculationError,
    create_sample_patient,
    get_risk_engine,
)
from cardiac_risk.services.validation import validate_all

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/risk", tags=["Risk"])


def _caller_id(api_key: str | None) -> str | None:
    """Stable, non-reversible identifier for the audit log."""
    if api_key is None:
        return None
    return hashlib.sha256(api_key.encode()).hexdigest()[:12]


@router.post(
    "/validate",
    response_model=ValidationReport,
    summary="Validate patient data",
    description="Check a possibly incomplete patient record and return all severity-graded findings.",
)
async def validate_patient(
    patient: PartialPatientInput,
    api_key: str | None = Depends(verify_api_key),
) -> ValidationReport:
    """Validate a patient record without calculating risk.

    Findings with severity "error" block a calculation; "warning" and
    "info" findings are advisory.
    """
    findings = validate_all(patient)
    error_fields = sorted({f.field for f in findings if f.severity == Severity.ERROR})

    log_validation(
        error_fields=error_fields,
        warning_count=len(findings) - sum(1 for f in findings if f.severity == Severity.ERROR),
        user_id=_caller_id(api_key),
    )

    return ValidationReport(is_complete=not error_fields, errors=findings)


@router.post(
    "/calculate",
    response_model=RiskResult,
    summary="Calculate 10-year cardiovascular risk",
    description="Validate the patient record and compute the Framingham 10-year cardiovascular risk.",
)
async def calculate_risk(
    patient: PartialPatientInput,
    api_key: str | None = Depends(verify_api_key),
) -> RiskResult:
    """Calculate 10-year cardiovascular risk.

    Args:
        patient: Patient record; camelCase or snake_case field names.

    Returns:
        RiskResult with risk, category, factor breakdown and recommendations.

    Raises:
        HTTPException: 422 if validation fails, 400 if the value cannot
            be scored.
    """
    start_time = time.perf_counter()
    user_id = _caller_id(api_key)

    try:
        result = get_risk_engine().compute(patient)
    except InvalidInputError as e:
        log_risk_calculation(success=False, error_code=e.code, user_id=user_id)
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail={
                "code": e.code,
                "message": str(e),
                "errors": [err.model_dump(mode="json") for err in e.errors],
            },
        )
    except RiskCalculationError as e:
        log_risk_calculation(success=False, error_code=e.code, user_id=user_id)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"code": e.code, "message": str(e)},
        )

    calculation_time_ms = (time.perf_counter() - start_time) * 1000
    if calculation_time_ms > settings.calculation_warning_ms:
        logger.warning(
            f"Risk calculation took {calculation_time_ms:.1f}ms "
            f"(threshold {settings.calculation_warning_ms}ms)"
        )

    log_risk_calculation(success=True, risk_category=result.risk_category.value, user_id=user_id)
    return result


@router.post(
    "/categorize",
    response_model=CategorizeResponse,
    summary="Categorize a risk percentage",
)
async def categorize(
    request: CategorizeRequest,
    api_key: str | None = Depends(verify_api_key),
) -> CategorizeResponse:
    """Map a 10-year risk percentage to low, moderate or high."""
    if not is_valid_risk_percentage(request.risk_percentage):
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"Risk percentage must be between 0 and 100, got {request.risk_percentage}",
        )

    category = categorize_risk(request.risk_percentage)
    return CategorizeResponse(
        risk_category=category,
        description=get_risk_category_description(category),
        formatted_risk=format_risk_percentage(request.risk_percentage),
    )


@router.post(
    "/recommendations",
    response_model=list[Recommendation],
    summary="Generate recommendations",
    description="Build prioritized recommendations for a risk category and patient profile.",
)
async def recommendations(
    request: RecommendationRequest,
    api_key: str | None = Depends(verify_api_key),
) -> list[Recommendation]:
    """Generate recommendations without recalculating risk."""
    if not is_valid_risk_percentage(request.risk_percentage):
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"Risk percentage must be between 0 and 100, got {request.risk_percentage}",
        )

    result = generate_recommendations(request.risk_category, request.risk_percentage, request.patient)

    log_audit(
        action=AuditAction.RECOMMEND,
        resource_type="recommendation",
        user_id=_caller_id(api_key),
        details={"risk_category": request.risk_category.value, "count": len(result)},
    )
    return result


@router.get(
    "/sample",
    response_model=PatientInput,
    summary="Get sample patient",
)
async def sample_patient(
    api_key: str | None = Depends(verify_api_key),
) -> PatientInput:
    """Return the canonical sample patient (55-year-old male)."""
    return create_sample_patient()
