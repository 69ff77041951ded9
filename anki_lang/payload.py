"""Extraction and decoding of JSON payloads returned by the chat model."""

from typing import Type, TypeVar

import structlog
from pydantic import BaseModel, ValidationError

FENCE = "```"

log = structlog.get_logger()

PayloadModel = TypeVar("PayloadModel", bound=BaseModel)


class PayloadFormatError(ValueError):
    """The model response did not contain a JSON object of the expected shape.

    ``payload`` holds the exact substring that failed to decode so that
    malformed model output can be inspected from the logs.
    """

    def __init__(self, message: str, payload: str = ""):
        super().__init__(message)
        self.payload = payload


def extract_json(raw: str) -> str:
    """Return the JSON substring of ``raw``, stripping an optional fenced block.

    A response such as::

        ```json
        {"word": "..."}
        ```

    yields the lines between the delimiters. A fence that is never closed
    yields everything after the opening line, and an empty fenced block
    yields an empty string.
    """
    trimmed = raw.strip()
    # Only "\n" ends a line; other separators may sit raw inside JSON strings.
    lines = [line[:-1] if line.endswith("\r") else line for line in trimmed.split("\n")]
    if not lines or not lines[0].startswith(FENCE):
        return trimmed

    content = lines[1:]
    if content and content[-1].strip().startswith(FENCE):
        content.pop()

    return "\n".join(content)


def parse_payload(raw: str, model: Type[PayloadModel]) -> PayloadModel:
    """Decode a raw model response into ``model``."""
    payload = extract_json(raw)
    if not payload.strip():
        log.error("Model response contained no payload", response=raw)
        raise PayloadFormatError("missing payload in model response", payload=payload)

    try:
        return model.model_validate_json(payload)
    except ValidationError as e:
        log.error("Failed to parse JSON payload", error=str(e), payload=payload)
        raise PayloadFormatError(f"failed to parse JSON payload: {payload}", payload=payload) from e
