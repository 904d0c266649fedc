"""Unit conversion API endpoints."""

import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, status

from cardiac_risk.core.auth import verify_api_key
from cardiac_risk.schemas import MeasurementKind, MeasurementUnit, UnitConversionRequest, UnitConversionResponse
from cardiac_risk.services.unit_converter import (
    CONVERSION_REFERENCE,
    InvalidNumberError,
    convert_cholesterol_from_mg_dl,
    convert_cholesterol_to_mg_dl,
    convert_glucose_from_mg_dl,
    convert_glucose_to_mg_dl,
    format_value_for_display,
    is_valid_cholesterol_range,
    is_valid_glucose_range,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/units", tags=["Units"], dependencies=[Depends(verify_api_key)])


@router.post(
    "/convert",
    response_model=UnitConversionResponse,
    summary="Convert a lab value between units",
    description="Convert cholesterol or glucose between mg/dL and mmol/L.",
)
async def convert_units(request: UnitConversionRequest) -> UnitConversionResponse:
    """Convert a cholesterol or glucose value.

    Raises:
        HTTPException: 422 if the value is not a finite number.
    """
    if request.kind == MeasurementKind.CHOLESTEROL:
        to_mg_dl, from_mg_dl = convert_cholesterol_to_mg_dl, convert_cholesterol_from_mg_dl
    else:
        to_mg_dl, from_mg_dl = convert_glucose_to_mg_dl, convert_glucose_from_mg_dl

    try:
        if request.from_unit == request.to_unit:
            # Same unit: validate only, no lossy round trip
            value = to_mg_dl(request.value, MeasurementUnit.MG_DL)
        else:
            value = from_mg_dl(to_mg_dl(request.value, request.from_unit), request.to_unit)
    except InvalidNumberError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail={"code": InvalidNumberError.code, "message": str(e)},
        )

    if request.kind == MeasurementKind.CHOLESTEROL:
        in_range = is_valid_cholesterol_range(value, request.to_unit)
    else:
        in_range = is_valid_glucose_range(value, request.to_unit)

    logger.debug(f"Converted {request.kind.value} {request.from_unit.value} -> {request.to_unit.value}")

    return UnitConversionResponse(
        value=value,
        unit=request.to_unit,
        display=format_value_for_display(value, request.to_unit, request.kind.value),
        in_reference_range=in_range,
    )


@router.get("/reference", summary="Get conversion reference")
async def conversion_reference() -> dict[str, Any]:
    """Return conversion factors with worked examples."""
    return CONVERSION_REFERENCE
