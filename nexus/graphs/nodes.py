"""Node implementations for the hybrid turn graph."""

import asyncio
import time
from typing import Any

from langchain_core.runnables import RunnableConfig

from nexus.errors import StaleSessionError, ToolError
from nexus.graphs.state import FlowState, HybridTurnState, get_runtime
from nexus.models.turn import TurnRole
from nexus.services.instruction_parser import build_tool_result_payload, parse_instruction
from nexus.services.prompts import NETWORK_ANOMALY_MESSAGE
from nexus.tools.base import tool_failure_message
from nexus.utils.logging import get_logger

logger = get_logger(__name__)


async def ask_model_node(state: HybridTurnState, config: RunnableConfig) -> dict[str, Any]:
    """Send the user's message and decide between a final answer and a tool call."""
    runtime = get_runtime(config)
    runtime.enter(FlowState.AWAITING_FIRST_MODEL_REPLY)

    try:
        reply = await runtime.session.send(state.user_text, state.attachment)
    except StaleSessionError:
        logger.info("First model reply arrived after the session was reset")
        return {"stale": True}
    except Exception as e:
        logger.error(f"First model call failed: {e}", exc_info=True)
        return {"error": str(e) or type(e).__name__}

    if not runtime.is_current():
        return {"stale": True}

    instruction = parse_instruction(reply)
    if instruction is None:
        logger.info("Model answered directly (standard flow)")
        return {"reply": reply}

    logger.info(f"Model requested external data from {instruction.api_url} (hybrid flow)")
    if runtime.append(TurnRole.TOOL_REQUEST, reply, api_url=instruction.api_url, method=instruction.method) is None:
        return {"stale": True}

    return {"reply": reply, "instruction": instruction}


async def call_tool_node(state: HybridTurnState, config: RunnableConfig) -> dict[str, Any]:
    """Run the requested tool call, turning any failure into fallback text."""
    runtime = get_runtime(config)
    runtime.enter(FlowState.AWAITING_TOOL_RESULT)

    instruction = state.instruction
    if instruction is None:
        return {"error": "Tool node reached without an instruction"}

    started_at = time.monotonic()
    try:
        async with asyncio.timeout(runtime.tool_timeout):
            result = await runtime.tool_invoker.invoke(
                instruction.api_url, instruction.params, method=instruction.method
            )
    except TimeoutError:
        error = ToolError(f"Timed out after {runtime.tool_timeout:g}s")
        logger.warning(f"Tool call to {instruction.api_url} failed: {error.reason}")
        result = tool_failure_message(error)
    except ToolError as e:
        logger.warning(f"Tool call to {instruction.api_url} failed: {e.reason}")
        result = tool_failure_message(e)
    except Exception as e:
        error = ToolError(f"{type(e).__name__}: {e}")
        logger.warning(f"Tool call to {instruction.api_url} failed unexpectedly: {error.reason}", exc_info=True)
        result = tool_failure_message(error)

    elapsed = time.monotonic() - started_at
    logger.debug(f"Tool leg finished in {elapsed:.2f}s")

    turn = runtime.append(
        TurnRole.TOOL_RESPONSE,
        result,
        processing_time=elapsed,
        api_url=instruction.api_url,
        method=instruction.method,
    )
    if turn is None:
        return {"stale": True}

    return {"tool_result": result}


async def ask_model_with_result_node(state: HybridTurnState, config: RunnableConfig) -> dict[str, Any]:
    """Hand the tool result back to the model for the final answer."""
    runtime = get_runtime(config)
    runtime.enter(FlowState.AWAITING_SECOND_MODEL_REPLY)

    payload = build_tool_result_payload(state.tool_result or "")
    try:
        reply = await runtime.session.send(payload)
    except StaleSessionError:
        logger.info("Second model reply arrived after the session was reset")
        return {"stale": True}
    except Exception as e:
        logger.error(f"Second model call failed: {e}", exc_info=True)
        return {"error": str(e) or type(e).__name__}

    if not runtime.is_current():
        return {"stale": True}

    return {"final_reply": reply}


async def finalize_node(state: HybridTurnState, config: RunnableConfig) -> dict[str, Any]:
    """Log the assistant's answer."""
    runtime = get_runtime(config)
    runtime.enter(FlowState.FINALIZING)

    text = state.final_reply if state.final_reply is not None else state.reply
    if runtime.append(TurnRole.ASSISTANT, text or "", processing_time=runtime.elapsed()) is None:
        return {"stale": True}

    logger.info(f"Turn completed in {runtime.elapsed():.2f}s")
    return {"final_reply": text}


async def report_error_node(state: HybridTurnState, config: RunnableConfig) -> dict[str, Any]:
    """Log a system notice for a failure the flow cannot recover from."""
    runtime = get_runtime(config)
    logger.error(f"Turn failed: {state.error}")

    if runtime.append(TurnRole.SYSTEM, NETWORK_ANOMALY_MESSAGE) is None:
        return {"stale": True}
    return {"error": state.error}
