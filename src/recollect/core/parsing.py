"""Decoding of structured model output.

Models are asked for JSON but answer in several shapes: a ```json fenced
block, a bare fence, or raw JSON with chatter around it. Extraction tries
those in order, then the payload is validated against a pydantic schema.
"""

import json
import re
from typing import Any, TypeVar

from pydantic import BaseModel, TypeAdapter, ValidationError

T = TypeVar("T")
M = TypeVar("M", bound=BaseModel)

_JSON_FENCE = re.compile(r"```json\s*([\s\S]*?)\s*```", re.IGNORECASE)
_ANY_FENCE = re.compile(r"```\s*([\s\S]*?)\s*```")


class ResponseParseError(ValueError):
    """Model output could not be decoded into the expected structure."""

    def __init__(self, message: str, raw: str = ""):
        super().__init__(message)
        self.raw = raw


def extract_json(text: str) -> Any:
    """Extract the first JSON value from model output.

    Raises:
        ResponseParseError: if no attempt yields valid JSON
    """
    if not text or not text.strip():
        raise ResponseParseError("Empty model response", text or "")

    candidates: list[str] = []
    for pattern in (_JSON_FENCE, _ANY_FENCE):
        match = pattern.search(text)
        if match:
            candidates.append(match.group(1))
    candidates.append(text.strip())

    last_error: Exception | None = None
    for candidate in candidates:
        try:
            return json.loads(candidate)
        except json.JSONDecodeError as e:
            last_error = e

    # Raw JSON embedded in prose: decode from the first bracket
    stripped = text.strip()
    starts = [i for i in (stripped.find("{"), stripped.find("[")) if i >= 0]
    if starts:
        try:
            value, _ = json.JSONDecoder().raw_decode(stripped[min(starts):])
            return value
        except json.JSONDecodeError as e:
            last_error = e

    raise ResponseParseError(f"No valid JSON in model response: {last_error}", text)


def decode_model(text: str, model: type[M]) -> M:
    """Decode model output into a pydantic model instance."""
    payload = extract_json(text)
    try:
        return model.model_validate(payload)
    except ValidationError as e:
        raise ResponseParseError(f"Response does not match {model.__name__}: {e}", text) from e


def decode_as(text: str, type_: type[T] | Any) -> T:
    """Decode model output into an arbitrary annotated type (e.g. list[Model])."""
    payload = extract_json(text)
    try:
        return TypeAdapter(type_).validate_python(payload)
    except ValidationError as e:
        raise ResponseParseError(f"Response does not match {type_}: {e}", text) from e
