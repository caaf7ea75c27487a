"""One sensor-to-haiku generation cycle."""

from __future__ import annotations

import logging
import time
from functools import lru_cache
from typing import Optional

from app.schemas import HaikuRecord
from datastore.haiku_store import HaikuStore, build_default_store
from services.errors import DelimiterNotFoundError, StoreError, UpstreamError, ValidationError
from services.llm_client import TextGenerationClient
from services.prompts import build_prompt, extract_haiku
from services.sensors import SensorReader, build_sensor_reader
from settings import get_settings

logger = logging.getLogger(__name__)


class HaikuPipeline:
    """Coordinates sensor reading, generation, extraction and persistence."""

    def __init__(
        self,
        reader: SensorReader,
        client: TextGenerationClient,
        store: HaikuStore,
    ) -> None:
        self.reader = reader
        self.client = client
        self.store = store

    def run_cycle(self) -> Optional[HaikuRecord]:
        """Run one cycle, returning the stored record or ``None`` on failure.

        Failures are logged with the stage that failed. Nothing is stored
        unless every stage before persistence succeeded.
        """
        start_time = time.perf_counter()
        reading = self.reader.read()
        logger.info(
            "Sensor reading: %s",
            reading.as_log_context(),
            extra={"sensor_mode": self.reader.mode},
        )

        prompt = build_prompt(reading)
        logger.debug("Prompt for text-generation API:\n%s", prompt)

        try:
            completion = self.client.generate(prompt)
        except UpstreamError as exc:
            self._log_failure("generate", exc, status_code=exc.status_code)
            return None
        logger.debug("Completion from text-generation API:\n%s", completion)

        try:
            record = HaikuRecord.new(extract_haiku(completion), reading)
        except (DelimiterNotFoundError, ValidationError) as exc:
            self._log_failure("extract", exc)
            return None

        try:
            self.store.append(record)
        except StoreError as exc:
            self._log_failure("persist", exc)
            return None

        logger.info(
            "Haiku cycle complete",
            extra={
                "record_id": record.id,
                "cycle_ms": int((time.perf_counter() - start_time) * 1000),
            },
        )
        return record

    def close(self) -> None:
        self.client.close()

    @staticmethod
    def _log_failure(stage: str, exc: Exception, status_code: Optional[int] = None) -> None:
        logger.error(
            "Haiku cycle aborted: %s",
            exc,
            extra={"stage": stage, "status_code": status_code, "reason": type(exc).__name__},
        )


@lru_cache
def build_default_pipeline(sensor_mode: Optional[str] = None) -> HaikuPipeline:
    """Factory that wires the pipeline from environment settings."""
    settings = get_settings()
    reader = build_sensor_reader(sensor_mode or settings.sensor_mode)
    client = TextGenerationClient(
        api_url=settings.llm_api_url,
        model=settings.llm_model,
        api_key=settings.llm_api_key,
        timeout=settings.llm_timeout,
    )
    return HaikuPipeline(reader=reader, client=client, store=build_default_store())
