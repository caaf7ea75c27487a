"""Pydantic schemas for the HTTP API layer."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field

from models.records import (
    ILLUMINATION_RANGE,
    MOISTURE_RANGE,
    PH_RANGE,
    TEMPERATURE_RANGE,
    SensorReading,
)
from services.errors import ValidationError


class HaikuCreate(BaseModel):
    """Inbound payload for manually submitting a haiku."""

    model_config = ConfigDict(extra="forbid")

    text: str = Field(..., min_length=1, description="Haiku text, line breaks preserved.")
    moisture: int = Field(..., ge=MOISTURE_RANGE[0], le=MOISTURE_RANGE[1])
    illumination: int = Field(..., ge=ILLUMINATION_RANGE[0], le=ILLUMINATION_RANGE[1])
    temperature: int = Field(..., ge=TEMPERATURE_RANGE[0], le=TEMPERATURE_RANGE[1])
    ph: int = Field(..., ge=PH_RANGE[0], le=PH_RANGE[1])


class HaikuRecord(BaseModel):
    """A persisted haiku together with the readings that produced it."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Server-assigned record identifier.")
    date: datetime = Field(..., description="UTC time the haiku was generated.")
    text: str
    moisture: int
    illumination: int
    temperature: int
    ph: int

    @classmethod
    def new(
        cls,
        text: str,
        reading: SensorReading,
        date: Optional[datetime] = None,
    ) -> "HaikuRecord":
        """Build a record stamped with a fresh id and the current UTC time.

        Raises :class:`ValidationError` when the text is blank once stripped.
        """
        stripped = text.strip()
        if not stripped:
            raise ValidationError("Haiku text must not be blank.")
        return cls(
            id=uuid4().hex,
            date=date or datetime.now(timezone.utc),
            text=stripped,
            moisture=reading.moisture,
            illumination=reading.illumination,
            temperature=reading.temperature,
            ph=reading.ph,
        )

    @classmethod
    def from_submission(cls, payload: HaikuCreate) -> "HaikuRecord":
        reading = SensorReading(
            moisture=payload.moisture,
            illumination=payload.illumination,
            temperature=payload.temperature,
            ph=payload.ph,
        )
        return cls.new(payload.text, reading)
