from __future__ import annotations
import fcntl
import json
import logging
import os
import time
from contextlib import contextmanager
from functools import lru_cache
from pathlib import Path
from threading import Lock
from typing import Iterator, List, Optional

from pydantic import ValidationError as PydanticValidationError

from app.schemas import HaikuRecord
from services.errors import StoreError
from settings import get_settings

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0
PING_TIMEOUT = 2.0
_FILE_LOCK_POLL = 0.02


class HaikuStore:
    """Append-only collection of haiku records, optionally persisted as JSON.

    Threads sharing a store are serialised by a lock. When the store is
    persisted, every process using the same file also takes an ``flock`` on a
    sidecar ``.lock`` file, and appends re-read the file before writing, so
    the web app and ``garden-haiku generate`` can share one history. Every
    operation gives up with :class:`StoreError` if a lock is not acquired
    within ``timeout`` seconds. When ``max_records`` is positive the oldest
    records are dropped once the collection grows past it.
    """

    def __init__(
        self,
        name: str,
        persistence_path: Optional[Path] = None,
        max_records: int = 0,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self.name = name
        self.persistence_path = persistence_path
        self.max_records = max_records
        self.timeout = timeout
        self._records: List[HaikuRecord] = []
        self._lock = Lock()
        if persistence_path:
            persistence_path.parent.mkdir(parents=True, exist_ok=True)
            with self._file_locked(fcntl.LOCK_SH, self.timeout):
                self._records = self._load_from_disk()

    @property
    def lock_path(self) -> Optional[Path]:
        if self.persistence_path is None:
            return None
        return self.persistence_path.with_name(self.persistence_path.name + ".lock")

    def append(self, record: HaikuRecord) -> None:
        with self._locked(self.timeout), self._file_locked(fcntl.LOCK_EX, self.timeout):
            current = self._load_from_disk() if self.persistence_path else self._records
            records = [*current, record]
            dropped = self._apply_retention(records)
            self._persist(records)
            self._records = records

        logger.info(
            "Stored haiku",
            extra={"record_id": record.id, "record_count": len(records)},
        )
        if dropped:
            logger.info(
                "Dropped %d haiku(s) past the retention limit of %d",
                dropped,
                self.max_records,
            )

    def list_all(self) -> List[HaikuRecord]:
        """Return every record, most recently generated first."""

        with self._locked(self.timeout), self._file_locked(fcntl.LOCK_SH, self.timeout):
            if self.persistence_path:
                self._records = self._load_from_disk()
            snapshot = list(self._records)
        # Reversing first keeps later appends ahead of earlier ones on equal dates.
        return sorted(reversed(snapshot), key=lambda record: record.date, reverse=True)

    def ping(self, timeout: float = PING_TIMEOUT) -> None:
        with self._locked(timeout), self._file_locked(fcntl.LOCK_SH, timeout):
            if self.persistence_path is None:
                return
            directory = self.persistence_path.parent
            if not os.access(directory, os.W_OK):
                raise StoreError(f"Store directory {str(directory)!r} is not writable.")

    @contextmanager
    def _locked(self, timeout: float) -> Iterator[None]:
        if not self._lock.acquire(timeout=timeout):
            raise StoreError(
                f"Timed out after {timeout:g}s waiting for store {self.name!r}."
            )
        try:
            yield
        finally:
            self._lock.release()

    @contextmanager
    def _file_locked(self, operation: int, timeout: float) -> Iterator[None]:
        lock_path = self.lock_path
        if lock_path is None:
            yield
            return

        try:
            handle = lock_path.open("a")
        except OSError as exc:
            raise StoreError(f"Failed to open lock for store {self.name!r}: {exc}") from exc

        with handle:
            deadline = time.monotonic() + timeout
            while True:
                try:
                    fcntl.flock(handle.fileno(), operation | fcntl.LOCK_NB)
                    break
                except BlockingIOError:
                    if time.monotonic() >= deadline:
                        raise StoreError(
                            f"Timed out after {timeout:g}s waiting for store {self.name!r} "
                            f"held by another process."
                        ) from None
                    time.sleep(_FILE_LOCK_POLL)
            try:
                yield
            finally:
                fcntl.flock(handle.fileno(), fcntl.LOCK_UN)

    def _apply_retention(self, records: List[HaikuRecord]) -> int:
        if self.max_records <= 0 or len(records) <= self.max_records:
            return 0
        overflow = len(records) - self.max_records
        oldest = sorted(range(len(records)), key=lambda index: records[index].date)[:overflow]
        for index in sorted(oldest, reverse=True):
            del records[index]
        return overflow

    def _persist(self, records: List[HaikuRecord]) -> None:
        if not self.persistence_path:
            return
        payload = [record.model_dump(mode="json") for record in records]
        staging = self.persistence_path.with_name(self.persistence_path.name + ".tmp")
        try:
            staging.write_text(json.dumps(payload, indent=2))
            staging.replace(self.persistence_path)
        except OSError as exc:
            raise StoreError(f"Failed to write store {self.name!r}: {exc}") from exc

    def _load_from_disk(self) -> List[HaikuRecord]:
        if not self.persistence_path or not self.persistence_path.exists():
            return []

        try:
            raw = self.persistence_path.read_text() or "[]"
            data = json.loads(raw)
            return [HaikuRecord.model_validate(item) for item in data]
        except (OSError, json.JSONDecodeError, TypeError, PydanticValidationError) as exc:
            raise StoreError(
                f"Failed to load store {self.name!r} from {str(self.persistence_path)!r}: {exc}"
            ) from exc


@lru_cache
def build_default_store(
    name: Optional[str] = None,
    path: Optional[str] = None,
) -> HaikuStore:
    settings = get_settings()
    store_name = settings.store_name if name is None else name
    store_path = settings.store_path if path is None else path
    persistence = Path(store_path) if store_path else None
    return HaikuStore(
        name=store_name,
        persistence_path=persistence,
        max_records=settings.store_max_records,
        timeout=settings.store_timeout,
    )
