"""Sensor reader strategies.

No hardware integration exists yet, so both readers produce pseudo-random
values. The simulated reader covers every valid value; the hardware
placeholder stays inside a narrow band resembling a healthy garden bed.
"""

from __future__ import annotations

import logging
import random
from typing import Optional, Protocol

from models.records import (
    ILLUMINATION_RANGE,
    MOISTURE_RANGE,
    PH_RANGE,
    TEMPERATURE_RANGE,
    SensorReading,
)

logger = logging.getLogger(__name__)

SENSOR_MODES = ("simulated", "hardware")

# Inclusive bounds for the hardware placeholder.
_HARDWARE_MOISTURE = (550, 649)
_HARDWARE_ILLUMINATION = (600, 799)
_HARDWARE_TEMPERATURE = (25, 29)
_HARDWARE_PH = (7, 8)


class SensorReader(Protocol):
    mode: str

    def read(self) -> SensorReading:
        ...


class SimulatedSensorReader:
    mode = "simulated"

    def __init__(self, rng: Optional[random.Random] = None) -> None:
        self._rng = rng or random.Random()

    def read(self) -> SensorReading:
        logger.debug("Reading simulated sensor data", extra={"sensor_mode": self.mode})
        return SensorReading(
            moisture=self._rng.randint(*MOISTURE_RANGE),
            illumination=self._rng.randint(*ILLUMINATION_RANGE),
            temperature=self._rng.randint(*TEMPERATURE_RANGE),
            ph=self._rng.randint(*PH_RANGE),
        )


class HardwareSensorReader:
    """Stand-in for the Raspberry Pi pins until real sensors are wired up."""

    mode = "hardware"

    def __init__(self, rng: Optional[random.Random] = None) -> None:
        self._rng = rng or random.Random()

    def read(self) -> SensorReading:
        logger.debug("Reading hardware sensor data (placeholder)", extra={"sensor_mode": self.mode})
        return SensorReading(
            moisture=self._rng.randint(*_HARDWARE_MOISTURE),
            illumination=self._rng.randint(*_HARDWARE_ILLUMINATION),
            temperature=self._rng.randint(*_HARDWARE_TEMPERATURE),
            ph=self._rng.randint(*_HARDWARE_PH),
        )


def validate_sensor_mode(mode: str) -> str:
    if mode not in SENSOR_MODES:
        raise ValueError(
            f"Unknown sensor mode {mode!r}; expected one of {', '.join(SENSOR_MODES)}."
        )
    return mode


def build_sensor_reader(mode: str, rng: Optional[random.Random] = None) -> SensorReader:
    if validate_sensor_mode(mode) == "simulated":
        return SimulatedSensorReader(rng)
    return HardwareSensorReader(rng)
