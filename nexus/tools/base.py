"""Base types and definitions for tools."""

from typing import Any, Protocol

from nexus.errors import ToolError

TOOL_FAILURE_TEMPLATE = (
    "ERROR: External Tool Failed ({reason}). Ignore tool request and answer using internal knowledge."
)


class ToolInvoker(Protocol):
    """Executes one external call on the model's behalf.

    Implementations make a single attempt and either return the response text
    or raise ToolError with a human-readable reason. ``method`` is the HTTP
    method the model asked for; transports without methods ignore it.
    """

    async def invoke(self, api_url: str, params: dict[str, Any], method: str | None = None) -> str: ...


def tool_failure_message(error: ToolError) -> str:
    """Fallback text handed to the model when a tool call fails."""
    return TOOL_FAILURE_TEMPLATE.format(reason=error.reason)
