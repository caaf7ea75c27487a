"""Domain models shared across services."""

from __future__ import annotations

from dataclasses import dataclass


MOISTURE_RANGE = (0, 1023)
ILLUMINATION_RANGE = (0, 1023)
TEMPERATURE_RANGE = (0, 40)
PH_RANGE = (0, 14)


@dataclass(frozen=True, slots=True)
class SensorReading:
    """One snapshot of the garden sensors, consumed by a single cycle."""

    moisture: int
    illumination: int
    temperature: int
    ph: int

    def as_log_context(self) -> str:
        return (
            f"moisture={self.moisture} illumination={self.illumination} "
            f"temperature={self.temperature} ph={self.ph}"
        )
