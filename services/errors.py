"""Error taxonomy for the haiku pipeline and its HTTP surface."""

from __future__ import annotations

from typing import Optional


class HaikuServiceError(Exception):
    """Base class for failures raised by the service layer."""


class UpstreamError(HaikuServiceError):
    """The text-generation API failed, timed out, or returned unusable content."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        body: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class DelimiterNotFoundError(HaikuServiceError):
    """The completion did not contain a ``$(...)$`` wrapped haiku."""


class StoreError(HaikuServiceError):
    """The record store could not complete an operation."""


class ValidationError(HaikuServiceError, ValueError):
    """An inbound payload could not be turned into a haiku record."""
