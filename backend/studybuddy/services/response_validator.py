"""
Decoding of raw model output into the shape each task kind expects.

Test generation fails hard on anything it cannot decode; a test with a
wrong answer key is worse than no test. Material ingestion falls back to a
placeholder result instead, since a summary without flashcards is still
usable.
"""

import logging
import re

from pydantic import ValidationError

from studybuddy.errors import MalformedGeneration
from studybuddy.schemas.generation import GeneratedMaterial, GeneratedTest
from studybuddy.services.prompt_builder import TaskKind

logger = logging.getLogger(__name__)

_CODE_FENCE = re.compile(r"^\s*```[a-zA-Z]*\s*\n?(.*?)\n?\s*```\s*$", re.DOTALL)


def extract_json_document(raw_text: str) -> str:
    """
    Best-effort repair of a JSON reply.

    Strips a surrounding Markdown code fence and any prose outside the
    outermost braces. The result may still be invalid JSON.
    """
    text = raw_text.strip()
    fenced = _CODE_FENCE.match(text)
    if fenced:
        text = fenced.group(1).strip()

    start, end = text.find("{"), text.rfind("}")
    if start != -1 and end > start:
        return text[start : end + 1]
    return text


def _first_error(error: ValidationError) -> str:
    first = error.errors()[0]
    location = ".".join(str(part) for part in first["loc"]) or "document"
    return f"{location}: {first['msg']}"


def validate(task_kind: TaskKind, raw_text: str):
    """
    Decode raw_text for task_kind.

    Returns the chat reply text, a GeneratedTest, or a GeneratedMaterial
    (possibly the fallback).

    Raises:
        MalformedGeneration: empty chat reply, or undecodable test output
    """
    task_kind = TaskKind(task_kind)

    if task_kind is TaskKind.CHAT:
        content = (raw_text or "").strip()
        if not content:
            raise MalformedGeneration(task_kind.value, "empty reply")
        return content

    document = extract_json_document(raw_text or "")

    if task_kind is TaskKind.TEST:
        try:
            return GeneratedTest.model_validate_json(document)
        except ValidationError as e:
            reason = _first_error(e)
            logger.warning("Rejected generated test: %s", reason)
            raise MalformedGeneration(task_kind.value, reason) from e

    try:
        return GeneratedMaterial.model_validate_json(document)
    except ValidationError as e:
        logger.warning("Material output not decodable, using fallback: %s", _first_error(e))
        return GeneratedMaterial.fallback()
