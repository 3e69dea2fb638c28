"""Wire models for the hybrid tool-call protocol."""

from typing import Any

from pydantic import BaseModel, Field

TOOL_CALL_ACTION = "call_api"


class ToolInstruction(BaseModel):
    """A tool call requested by the model.

    The model is told to put the running chat digest under ``params["chat"]``
    and the latest user message under ``params["message"]``.
    """

    action: str
    api_url: str
    method: str = "GET"
    params: dict[str, Any] = Field(default_factory=dict)

    class Config:
        extra = "ignore"  # Models occasionally add commentary fields


class ToolResultPayload(BaseModel):
    """What the orchestrator sends back to the model after a tool call."""

    api_response: str
