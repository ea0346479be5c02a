"""API endpoints for storing and retrieving patient readings."""

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query, Request

from hud_readings.data.readings_repository import ReadingsRepository
from hud_readings.metrics import readings_requests_total
from hud_readings.models.readings import ReadingsPayload, ReadingsResponse, to_reading
from hud_readings.utils.error_handling import InvalidQueryParameter, StorageError
from hud_readings.utils.query_filters import build_readings_query

logger = logging.getLogger(__name__)

router = APIRouter(tags=["readings"])


def get_readings_repository(request: Request) -> ReadingsRepository:
    """Return the repository created at startup for this application."""
    return request.app.state.readings_repository


@router.get("/readings", response_model=ReadingsResponse)
def get_readings(
    patient: Optional[str] = Query(None, description="Only readings for this bluetooth id"),
    from_: Optional[str] = Query(None, alias="from", description="Earliest reading_at, RFC 3339, inclusive"),
    until: Optional[str] = Query(None, description="Latest reading_at, RFC 3339, exclusive"),
    page: Optional[int] = Query(None, ge=0, description="Zero-indexed page of 50 readings"),
    repository: ReadingsRepository = Depends(get_readings_repository),
) -> ReadingsResponse:
    """
    Get a page of readings, optionally filtered by patient and reading time.

    Args:
        patient: Patient bluetooth id
        from_: Inclusive lower bound on reading_at
        until: Exclusive upper bound on reading_at
        page: Page number
        repository: Readings repository

    Returns:
        ReadingsResponse: The readings on the requested page
    """
    try:
        query = build_readings_query(patient=patient, from_=from_, until=until, page=page)
    except InvalidQueryParameter as e:
        readings_requests_total.labels(operation="find", status="invalid").inc()
        logger.info(
            f"Rejected readings query: {e.message}",
            extra={"parameter": e.parameter, "status_code": e.status_code},
        )
        raise

    try:
        readings = repository.find_readings(query)
    except StorageError:
        readings_requests_total.labels(operation="find", status="error").inc()
        raise

    readings_requests_total.labels(operation="find", status="success").inc()
    return ReadingsResponse(readings=readings)


@router.post("/readings")
def post_readings(
    payload: ReadingsPayload,
    repository: ReadingsRepository = Depends(get_readings_repository),
) -> Dict[str, Any]:
    """
    Store new readings, stamping each with its creation time.

    Args:
        payload: Readings submitted by the client
        repository: Readings repository

    Returns:
        Dict[str, Any]: Number of inserted readings
    """
    readings = [to_reading(new_reading) for new_reading in payload.readings]
    try:
        inserted = repository.insert_readings(readings)
    except StorageError:
        readings_requests_total.labels(operation="insert", status="error").inc()
        raise

    readings_requests_total.labels(operation="insert", status="success").inc()
    logger.info("Readings stored", extra={"inserted": inserted})
    return {"inserted": inserted}
