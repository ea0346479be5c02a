"""Models for patient sensor readings."""

import math
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator


def ensure_utc(value: datetime) -> datetime:
    """Return ``value`` as an aware UTC datetime. Naive values are taken to be UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def to_bson_datetime(value: datetime) -> datetime:
    """Naive UTC datetime, the form BSON dates are stored and compared in."""
    return ensure_utc(value).replace(tzinfo=None)


FLOAT32_MAX = 3.4028234663852886e38


class Measurement(BaseModel):
    """
    One data point captured by a service within a reading.

    ``value`` is a 32-bit float on the wire. It is range checked against that
    type here and stored as a BSON double.
    """

    service_id: str = Field(..., description="Identifier of the service that produced the value")
    alias: Optional[str] = Field(None, description="Human readable name of the service")
    value: float = Field(..., description="Measured value")
    confidence: float = Field(..., description="Confidence reported for the value")

    @field_validator("value")
    @classmethod
    def validate_value_range(cls, value: float) -> float:
        if math.isfinite(value) and abs(value) > FLOAT32_MAX:
            raise ValueError(f"value {value} is outside the 32-bit float range")
        return value


class PatientRef(BaseModel):
    """Patient identification embedded in each reading."""

    bluetooth_id: str = Field(..., description="Bluetooth identifier of the patient's device")
    alias: Optional[str] = Field(None, description="Display name for the patient")
    data: Optional[Any] = Field(None, description="Free-form patient attributes")


class NewReading(BaseModel):
    """A reading as submitted by a client. ``created_at`` is never accepted."""

    reading_at: datetime = Field(..., description="Time the measurements were taken")
    data: List[Measurement] = Field(..., description="Measurements in capture order")
    patient: PatientRef = Field(..., description="Patient the reading belongs to")

    @field_validator("reading_at")
    @classmethod
    def normalize_reading_at(cls, value: datetime) -> datetime:
        return ensure_utc(value)


class Reading(NewReading):
    """A persisted reading."""

    created_at: datetime = Field(..., description="Timestamp when the record was stored")

    @field_validator("created_at")
    @classmethod
    def normalize_created_at(cls, value: datetime) -> datetime:
        return ensure_utc(value)

    def to_document(self) -> Dict[str, Any]:
        """Convert the model to a MongoDB document."""
        document = self.model_dump()
        document["reading_at"] = to_bson_datetime(self.reading_at)
        document["created_at"] = to_bson_datetime(self.created_at)
        return document

    @classmethod
    def from_document(cls, document: Dict[str, Any]) -> "Reading":
        """Create a Reading from a MongoDB document, dropping the database ``_id``."""
        fields = {k: v for k, v in document.items() if k != "_id"}
        return cls.model_validate(fields)


def to_reading(new_reading: NewReading, now: Optional[datetime] = None) -> Reading:
    """
    Stamp a client-submitted reading with its server-side creation time.

    Args:
        new_reading: The reading received from the client
        now: Creation time to use instead of the current clock

    Returns:
        Reading: Copy of every submitted field plus ``created_at``
    """
    created_at = now if now is not None else datetime.now(timezone.utc)
    return Reading(
        reading_at=new_reading.reading_at,
        data=[m.model_copy() for m in new_reading.data],
        patient=new_reading.patient.model_copy(deep=True),
        created_at=created_at,
    )


class ReadingsPayload(BaseModel):
    """Body of ``POST /readings``."""

    readings: List[NewReading]


class ReadingsResponse(BaseModel):
    """Body of a successful ``GET /readings``."""

    readings: List[Reading]
