"""
Decision Response Parser
========================

Turns free-form decision-service output into validated domain objects.

The raw text is an untyped external boundary: the first balanced JSON
object is extracted (tolerating surrounding prose and code fences),
decoded and validated against a strict schema on receipt.

Handles:
- Bare JSON objects
- Markdown code blocks
- Prose before/after the JSON
- Braces inside JSON strings
"""

import json
from typing import Annotated, Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator

from taxonomy_classifier.schemas.domain import ExtractedAttribute, SelectionDecision
from taxonomy_classifier.utils.errors import DecisionParseError
from taxonomy_classifier.utils.logger import get_logger

logger = get_logger(__name__)


def _clamp_unit(value: Any) -> float:
    # pydantic only converts ValueError into a validation failure
    try:
        number = float(value)
    except TypeError as e:
        raise ValueError("confidence must be a number") from e
    if number != number:  # NaN
        raise ValueError("confidence must be a number")
    return min(1.0, max(0.0, number))


class _DecisionPayload(BaseModel):
    """Wire schema of a category selection response."""

    model_config = ConfigDict(extra="ignore")

    selected_code: Annotated[
        str,
        Field(min_length=1, validation_alias=AliasChoices("selected_code", "selectedCode")),
    ]
    confidence: float = 0.0
    reasoning: str = ""

    @field_validator("selected_code")
    @classmethod
    def strip_code(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("selected_code must not be blank")
        return v

    @field_validator("confidence", mode="before")
    @classmethod
    def clamp_confidence(cls, v: Any) -> float:
        if v is None or isinstance(v, bool):
            raise ValueError("confidence must be a number")
        return _clamp_unit(v)

    @field_validator("reasoning", mode="before")
    @classmethod
    def default_reasoning(cls, v: Any) -> str:
        return "" if v is None else str(v)


class _AttributePayload(BaseModel):
    """Wire schema of one extracted attribute."""

    model_config = ConfigDict(extra="ignore")

    handle: Annotated[str, Field(min_length=1)]
    value: str
    confidence: float = 0.5

    @field_validator("value", mode="before")
    @classmethod
    def stringify_value(cls, v: Any) -> str:
        if v is None or isinstance(v, (dict, list)):
            raise ValueError("value must be a scalar")
        return str(v)

    @field_validator("confidence", mode="before")
    @classmethod
    def clamp_confidence(cls, v: Any) -> float:
        if v is None or isinstance(v, bool):
            return 0.5
        try:
            return _clamp_unit(v)
        except (TypeError, ValueError):
            return 0.5


def extract_json_object(text: str) -> str | None:
    """
    Extract the first balanced brace-delimited block from text.

    Braces inside JSON string literals are ignored.

    Args:
        text: Raw response text

    Returns:
        The block including its outer braces, or None when absent
    """
    start = text.find("{")
    while start != -1:
        depth = 0
        in_string = False
        escaped = False

        for index in range(start, len(text)):
            char = text[index]
            if in_string:
                if escaped:
                    escaped = False
                elif char == "\\":
                    escaped = True
                elif char == '"':
                    in_string = False
                continue

            if char == '"':
                in_string = True
            elif char == "{":
                depth += 1
            elif char == "}":
                depth -= 1
                if depth == 0:
                    return text[start : index + 1]

        # Unbalanced from this opening brace, try the next one
        start = text.find("{", start + 1)

    return None


def _decode_object(response: str) -> dict[str, Any] | None:
    if not response or not response.strip():
        return None

    block = extract_json_object(response)
    if block is None:
        return None

    try:
        data = json.loads(block)
    except json.JSONDecodeError as e:
        logger.debug("JSON decode error", error=e.msg, preview=block[:100])
        return None

    return data if isinstance(data, dict) else None


def parse_classification_response(response: str) -> SelectionDecision | None:
    """
    Parse a category selection response.

    Args:
        response: Raw decision-service output

    Returns:
        SelectionDecision with confidence clamped to [0, 1],
        or None when the output cannot be decoded or validated
    """
    data = _decode_object(response)
    if data is None:
        return None

    try:
        payload = _DecisionPayload.model_validate(data)
    except ValidationError as e:
        logger.debug("Decision payload rejected", errors=e.error_count())
        return None

    return SelectionDecision(
        selected_code=payload.selected_code,
        confidence=payload.confidence,
        reasoning=payload.reasoning,
    )


def require_decision(response: str) -> SelectionDecision:
    """
    Parse a category selection response or fail.

    Raises:
        DecisionParseError: If the response is unparsable
    """
    decision = parse_classification_response(response)
    if decision is None:
        raise DecisionParseError(
            message="Failed to parse LLM classification response",
            details={"response_preview": (response or "")[:200]},
        )
    return decision


def parse_attribute_response(response: str) -> list[ExtractedAttribute]:
    """
    Parse an attribute extraction response.

    Malformed responses degrade to an empty list; malformed
    entries are skipped individually.
    """
    data = _decode_object(response)
    if data is None:
        return []

    entries = data.get("attributes")
    if not isinstance(entries, list):
        return []

    attributes: list[ExtractedAttribute] = []
    for entry in entries:
        if not isinstance(entry, dict):
            continue
        try:
            payload = _AttributePayload.model_validate(entry)
        except ValidationError:
            logger.debug("Skipping malformed attribute entry", entry=str(entry)[:100])
            continue
        attributes.append(
            ExtractedAttribute(
                handle=payload.handle,
                value=payload.value,
                confidence=payload.confidence,
            )
        )

    return attributes
