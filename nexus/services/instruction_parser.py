"""Detection of tool-call instructions embedded in model replies.

The model answers in free text, except when it wants external data: then the
whole reply is a JSON object (optionally fenced as a ```json block) whose
``action`` is ``call_api``. Anything else is a normal answer, so nothing in
this module raises.
"""

import json
import re

from pydantic import ValidationError

from nexus.models.instructions import TOOL_CALL_ACTION, ToolInstruction, ToolResultPayload
from nexus.utils.logging import get_logger

logger = get_logger(__name__)

_FENCE_PATTERN = re.compile(r"```json\n?|\n?```")


def strip_code_fences(text: str) -> str:
    """Remove ```json / ``` fence markers and surrounding whitespace."""
    return _FENCE_PATTERN.sub("", text).strip()


def parse_instruction(text: str) -> ToolInstruction | None:
    """Interpret a model reply as a tool-call instruction.

    Args:
        text: Raw model reply

    Returns:
        The instruction, or None when the reply is an ordinary answer
    """
    cleaned = strip_code_fences(text)
    if not (cleaned.startswith("{") and cleaned.endswith("}")):
        return None

    try:
        payload = json.loads(cleaned)
    except json.JSONDecodeError as e:
        logger.debug(f"Reply looks like JSON but does not decode: {e}")
        return None

    if not isinstance(payload, dict) or payload.get("action") != TOOL_CALL_ACTION:
        return None

    try:
        return ToolInstruction.model_validate(payload)
    except ValidationError as e:
        logger.debug(f"Tool-call payload has an invalid shape: {e}")
        return None


def build_tool_result_payload(result_text: str) -> str:
    """Wrap tool output in the JSON envelope the model expects on its second turn."""
    return ToolResultPayload(api_response=result_text).model_dump_json()
