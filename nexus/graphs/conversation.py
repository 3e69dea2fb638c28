"""Hybrid turn graph construction."""

from langgraph.graph import END, StateGraph
from langgraph.graph.state import CompiledStateGraph

from nexus.graphs.edges import route_first_reply, route_second_reply, route_tool_result
from nexus.graphs.nodes import (
    ask_model_node,
    ask_model_with_result_node,
    call_tool_node,
    finalize_node,
    report_error_node,
)
from nexus.graphs.state import HybridTurnState
from nexus.utils.logging import get_logger

logger = get_logger(__name__)

# Longest path is ask_model -> call_tool -> ask_model_with_result -> finalize
RECURSION_LIMIT = 10


def create_hybrid_graph() -> CompiledStateGraph:
    """Create the graph that drives one user submission to completion.

    Standard flow: ask_model -> finalize.
    Hybrid flow: ask_model -> call_tool -> ask_model_with_result -> finalize.
    A failed model call on either leg goes to report_error instead.

    Returns:
        Compiled LangGraph workflow
    """
    logger.debug("Creating hybrid turn graph")

    workflow = StateGraph(HybridTurnState)

    workflow.add_node("ask_model", ask_model_node)
    workflow.add_node("call_tool", call_tool_node)
    workflow.add_node("ask_model_with_result", ask_model_with_result_node)
    workflow.add_node("finalize", finalize_node)
    workflow.add_node("report_error", report_error_node)

    workflow.set_entry_point("ask_model")

    workflow.add_conditional_edges(
        "ask_model",
        route_first_reply,
        {
            "call_tool": "call_tool",
            "finalize": "finalize",
            "error": "report_error",
            "end": END,
        },
    )

    workflow.add_conditional_edges(
        "call_tool",
        route_tool_result,
        {
            "ask_model_with_result": "ask_model_with_result",
            "error": "report_error",
            "end": END,
        },
    )

    workflow.add_conditional_edges(
        "ask_model_with_result",
        route_second_reply,
        {
            "finalize": "finalize",
            "error": "report_error",
            "end": END,
        },
    )

    workflow.add_edge("finalize", END)
    workflow.add_edge("report_error", END)

    return workflow.compile()
