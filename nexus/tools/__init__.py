"""External data tools the model can ask for."""

from nexus.config import Settings
from nexus.tools.base import ToolInvoker, tool_failure_message
from nexus.tools.remote import HttpToolInvoker
from nexus.tools.simulated import SimulatedToolInvoker

__all__ = [
    "HttpToolInvoker",
    "SimulatedToolInvoker",
    "ToolInvoker",
    "create_tool_invoker",
    "tool_failure_message",
]


def create_tool_invoker(settings: Settings) -> ToolInvoker:
    """Pick the tool transport configured in settings."""
    if settings.tool_mode == "http":
        return HttpToolInvoker(timeout=settings.tool_timeout)
    return SimulatedToolInvoker(latency=settings.tool_latency)
