import json
import logging
from dataclasses import dataclass
from typing import Optional

import requests

logger = logging.getLogger(__name__)

GENERIC_MESSAGE = "Internal server error."


class PipelineError(Exception):
    """Base for every failure the recipe pipeline reports to its caller."""
    code = 500
    message = GENERIC_MESSAGE

    def __init__(self, message: Optional[str] = None, code: Optional[int] = None):
        if message is not None:
            self.message = message
        if code is not None:
            self.code = code
        super().__init__(self.message)


class InvalidInput(PipelineError):
    """Raised when the caller sends no usable items."""
    code = 400
    message = "Items array is required."


class UpstreamError(PipelineError):
    """Raised when the provider answers with an error status or an unusable body."""

    def __init__(self, status: int, message: str):
        super().__init__(message, status)

    @property
    def status(self) -> int:
        return self.code


class InvalidModelOutput(PipelineError):
    """Raised when the model answers 2xx but the content is not the JSON we asked for."""
    code = 500
    message = "Invalid JSON from AI model."

    def __init__(self, raw: str, message: Optional[str] = None):
        super().__init__(message)
        self.raw = raw


class TransportError(PipelineError):
    """Raised when no response came back from the provider at all."""
    code = 500
    message = GENERIC_MESSAGE


@dataclass(frozen=True)
class ErrorInfo:
    code: int
    message: str
    raw: Optional[str] = None


def _str_at(data, *path):
    for key in path:
        if not isinstance(data, dict):
            return None
        data = data.get(key)
    return data if isinstance(data, str) else None


def extract_upstream_message(body) -> str:
    """
    Pull a readable message out of a provider error body.

    Providers disagree on where the message lives; the shapes seen so far are
    {"error": "..."}, {"message": "..."}, {"error": {"metadata": {"raw": "..."}}}
    and {"error": {"message": "..."}}. Anything else is serialized whole.
    """
    for path in (("error",), ("message",), ("error", "metadata", "raw"), ("error", "message")):
        msg = _str_at(body, *path)
        if msg is not None:
            return msg

    fallback = body.get("error") if isinstance(body, dict) and body.get("error") else body
    if not fallback:
        return "Upstream API error"
    if isinstance(fallback, str):
        return fallback
    return json.dumps(fallback)


def normalize_error(exc: BaseException) -> ErrorInfo:
    if isinstance(exc, InvalidModelOutput):
        return ErrorInfo(exc.code, exc.message, exc.raw)
    if isinstance(exc, PipelineError):
        return ErrorInfo(exc.code, exc.message)
    if isinstance(exc, requests.RequestException):
        logger.error("Transport failure: %s", exc)
        return ErrorInfo(500, GENERIC_MESSAGE)

    logger.exception("Unexpected pipeline failure", exc_info=exc)
    return ErrorInfo(500, GENERIC_MESSAGE)
