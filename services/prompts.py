"""Prompt construction and haiku extraction for the text-generation API."""

from __future__ import annotations

import re

from models.records import SensorReading
from services.errors import DelimiterNotFoundError

# Wording and band boundaries are fixed so haikus stay comparable over time.
PROMPT_TEMPLATE = """Make haiku reflecting these parameters:
if moisture between 0-200 reflect drought
if moisture between 201-400 reflect dryness
if moisture between 401-700 reflect normal moisture, thriving
if moisture between 701-900 reflect wetness, dew
if moisture between 901-1023 reflect oversaturation, puddles
if illumination between 0-200 reflect night, darkness
if illumination between 201-400 reflect dawn, early morning
if illumination between 401-700 reflect daylight, sunshine
if illumination between 701-1023 reflect bright sun, strong light
if temperature between 0-10 reflect cold, frost
if temperature between 11-20 reflect coolness, pleasant
if temperature between 21-30 reflect warmth, growth
if temperature between 31-40 reflect heat, summer
if pH between 0-6 reflect acidity, sourness, difficulty
if pH between 7 reflect neutrality, balance
if pH between 8-14 reflect alkalinity, bitterness, struggle

The parameters now are:
Moisture {moisture}
Illumination {illumination}
Temperature {temperature}
pH {ph}

Separate haiku from other text with $ symbols like $(haiku)$"""

_HAIKU_PATTERN = re.compile(r"\$\((.*?)\)\$", re.DOTALL)


def build_prompt(reading: SensorReading) -> str:
    return PROMPT_TEMPLATE.format(
        moisture=reading.moisture,
        illumination=reading.illumination,
        temperature=reading.temperature,
        ph=reading.ph,
    )


def extract_haiku(raw_text: str) -> str:
    """Return the trimmed text between the first ``$(`` and the following ``)$``."""
    match = _HAIKU_PATTERN.search(raw_text)
    if match is None:
        raise DelimiterNotFoundError(
            "Haiku not found in completion: missing $(haiku)$ delimiters."
        )
    return match.group(1).strip()
