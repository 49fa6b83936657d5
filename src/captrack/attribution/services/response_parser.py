"""Strict decoding of model output.

Local reasoning models wrap their answers in <think> blocks, chat-template control
tokens and markdown fences. Everything here fails closed: a response that does not
validate against the expected schema is reported as not ok and never partially used.
"""

import json
import logging
import re

from pydantic import TypeAdapter, ValidationError

from captrack.core.models import ClassificationResult, EntryCandidate

logger = logging.getLogger(__name__)

THINK_BLOCK_PATTERN = re.compile(r"<think>[\s\S]*?</think>\s*")
CONTROL_TOKEN_PATTERN = re.compile(r"<\|[^|]*\|>")
FENCED_JSON_PATTERN = re.compile(r"```json\s*([\s\S]*?)```")
ARRAY_PATTERN = re.compile(r"\[[\s\S]*\]")
OBJECT_PATTERN = re.compile(r"\{[\s\S]*\}")

_candidates_adapter = TypeAdapter(list[EntryCandidate])


def strip_reasoning(text: str) -> str:
    """Remove reasoning blocks and control tokens from raw model output."""
    text = THINK_BLOCK_PATTERN.sub("", text)
    text = CONTROL_TOKEN_PATTERN.sub("", text)
    return text.strip()


def looks_like_json(text: str) -> bool:
    """Whether the text contains a fenced JSON block, an array or an object."""
    return bool(FENCED_JSON_PATTERN.search(text) or ARRAY_PATTERN.search(text) or OBJECT_PATTERN.search(text))


def extract_json_block(text: str, expect_array: bool = True) -> tuple[str, bool]:
    """Pull the JSON payload out of a model response.

    Args:
        text: Model output, reasoning already stripped or not
        expect_array: Look for a top-level array first; otherwise an object

    Returns:
        Tuple of (json_text, ok)
    """
    cleaned = strip_reasoning(text)

    fenced = FENCED_JSON_PATTERN.search(cleaned)
    if fenced:
        return fenced.group(1).strip(), True

    patterns = (ARRAY_PATTERN, OBJECT_PATTERN) if expect_array else (OBJECT_PATTERN, ARRAY_PATTERN)
    for pattern in patterns:
        match = pattern.search(cleaned)
        if match:
            return match.group(0), True

    return "", False


def decode_candidates(text: str) -> tuple[list[EntryCandidate], bool]:
    """Decode a daily-entry generation response into candidates.

    Returns:
        Tuple of (candidates, ok). On failure the list is empty.
    """
    payload, ok = extract_json_block(text, expect_array=True)
    if not ok:
        logger.debug("No JSON payload found in generation response")
        return [], False

    try:
        raw = json.loads(payload)
    except json.JSONDecodeError as e:
        logger.debug(f"Generation response is not valid JSON: {e}")
        return [], False

    if not isinstance(raw, list):
        logger.debug(f"Generation response is a {type(raw).__name__}, expected a list")
        return [], False

    try:
        return _candidates_adapter.validate_python(raw), True
    except ValidationError as e:
        logger.debug(f"Generation response failed validation: {e.error_count()} errors")
        return [], False


def decode_classification(text: str) -> tuple[ClassificationResult | None, bool]:
    """Decode a work-type classification response.

    Returns:
        Tuple of (result, ok). On failure the result is None.
    """
    payload, ok = extract_json_block(text, expect_array=False)
    if not ok:
        return None, False

    try:
        raw = json.loads(payload)
    except json.JSONDecodeError:
        return None, False

    if not isinstance(raw, dict):
        return None, False

    try:
        return ClassificationResult.model_validate(raw), True
    except ValidationError as e:
        logger.debug(f"Classification response failed validation: {e.error_count()} errors")
        return None, False


def is_valid_candidates_response(text: str) -> bool:
    return decode_candidates(text)[1]


def is_valid_classification_response(text: str) -> bool:
    return decode_classification(text)[1]
