"""Edge logic and routing for the hybrid turn graph."""

from typing import Literal

from nexus.graphs.state import HybridTurnState
from nexus.utils.logging import get_logger

logger = get_logger(__name__)


def route_first_reply(state: HybridTurnState) -> Literal["call_tool", "finalize", "error", "end"]:
    """Route after the first model reply.

    A stale flow ends quietly, a failed call reports an error, and otherwise
    the presence of a tool instruction picks the hybrid or standard flow.
    """
    if state.stale:
        return "end"

    if state.error:
        logger.warning(f"Routing to error handler due to: {state.error}")
        return "error"

    if state.instruction is not None:
        return "call_tool"

    return "finalize"


def route_tool_result(state: HybridTurnState) -> Literal["ask_model_with_result", "error", "end"]:
    """Route after the tool leg, which always continues unless the flow went stale."""
    if state.stale:
        return "end"
    if state.error:
        return "error"
    return "ask_model_with_result"


def route_second_reply(state: HybridTurnState) -> Literal["finalize", "error", "end"]:
    """Route after the model has seen the tool result."""
    if state.stale:
        return "end"

    if state.error:
        logger.warning(f"Routing to error handler due to: {state.error}")
        return "error"

    return "finalize"
