"""Pydantic models and schemas."""

from hud_readings.models.readings import (
    Measurement,
    PatientRef,
    NewReading,
    Reading,
    ReadingsPayload,
    ReadingsResponse,
    to_reading,
)

__all__ = [
    "Measurement",
    "PatientRef",
    "NewReading",
    "Reading",
    "ReadingsPayload",
    "ReadingsResponse",
    "to_reading",
]
