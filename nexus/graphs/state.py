"""State definitions for the hybrid turn graph."""

import time
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from langchain_core.runnables import RunnableConfig
from pydantic import BaseModel

from nexus.models.instructions import ToolInstruction
from nexus.models.turn import Attachment, Turn, TurnMetadata, TurnRole
from nexus.services.conversation_log import ConversationLog
from nexus.services.session import SessionAdapter
from nexus.tools.base import ToolInvoker
from nexus.utils.logging import get_logger

logger = get_logger(__name__)


class FlowState(StrEnum):
    """Where the orchestrator is in processing a user submission."""

    IDLE = "idle"
    AWAITING_FIRST_MODEL_REPLY = "awaiting_first_model_reply"
    AWAITING_TOOL_RESULT = "awaiting_tool_result"
    AWAITING_SECOND_MODEL_REPLY = "awaiting_second_model_reply"
    FINALIZING = "finalizing"


class HybridTurnState(BaseModel):
    """Data carried through the graph for one user submission."""

    user_text: str
    attachment: Attachment | None = None

    # First model reply and the instruction parsed from it, if any
    reply: str | None = None
    instruction: ToolInstruction | None = None

    # Tool output (or synthesized failure text) and the reply that uses it
    tool_result: str | None = None
    final_reply: str | None = None

    # Control flow
    error: str | None = None
    stale: bool = False


@dataclass
class TurnRuntime:
    """Collaborators for one flow, handed to nodes through the run config.

    ``generation`` is the orchestrator generation the flow started in. Once the
    conversation has been cleared, the flow is stale and nothing it produces
    reaches the log.
    """

    session: SessionAdapter
    tool_invoker: ToolInvoker
    log: ConversationLog
    generation: int
    current_generation: Callable[[], int]
    set_flow_state: Callable[[FlowState], None]
    tool_timeout: float
    started_at: float = field(default_factory=time.monotonic)

    def is_current(self) -> bool:
        return self.generation == self.current_generation()

    def enter(self, flow_state: FlowState) -> None:
        """Move the owning orchestrator to a new state, unless this flow is stale."""
        if self.is_current():
            logger.debug(f"Flow state -> {flow_state}")
            self.set_flow_state(flow_state)

    @property
    def session_id(self) -> str | None:
        handle = self.session.handle
        return handle.session_id if handle else None

    def elapsed(self) -> float:
        return time.monotonic() - self.started_at

    def append(self, role: TurnRole, content: str, **metadata: Any) -> Turn | None:
        """Record a turn, or drop it and return None if the flow is stale."""
        if not self.is_current():
            logger.info(f"Discarding {role} turn from a flow that was cleared")
            return None
        return self.log.record(role, content, metadata=TurnMetadata(session_id=self.session_id, **metadata))


def get_runtime(config: RunnableConfig) -> TurnRuntime:
    """Pull the flow runtime out of a graph run config."""
    return config["configurable"]["turn_runtime"]
