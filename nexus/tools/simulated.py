"""Simulated external data API.

Stands in for a raw, lower-quality data source whose output the model is
expected to polish. Failures can be forced either per instance or by putting
"error", "fail" or "break" in the user's message.
"""

import asyncio
from datetime import UTC, datetime
from typing import Any

from nexus.errors import ToolError
from nexus.utils.logging import get_logger

logger = get_logger(__name__)

FAILURE_KEYWORDS = ("error", "fail", "break")
SIMULATED_OUTAGE = "500 Internal Server Error: Simulated API Outage"


class SimulatedToolInvoker:
    """Keyword-driven fake of an external data endpoint."""

    def __init__(self, latency: float = 1.5, force_failure: bool = False):
        """Initialize simulated tool.

        Args:
            latency: Seconds to wait before answering
            force_failure: Fail every call regardless of the message
        """
        self.latency = latency
        self.force_failure = force_failure

    async def invoke(self, api_url: str, params: dict[str, Any], method: str | None = None) -> str:
        """Answer a tool call with a canned raw response. The method is ignored."""
        await asyncio.sleep(self.latency)

        message = str(params.get("message") or "")
        lowered = message.lower()

        if self.force_failure or any(keyword in lowered for keyword in FAILURE_KEYWORDS):
            logger.info(f"Simulating outage for {api_url}")
            raise ToolError(SIMULATED_OUTAGE)

        prefix = "ext_api_v1: " if "tutorialspoint" in api_url else "sys_msg: "

        if "hello" in lowered or "hi" in lowered:
            return f"{prefix}user greeting receive. status active. waiting command."

        if "weather" in lowered:
            return f"{prefix}weather cloudy temp 22c wind 10kmh north. rain chance 20. recommend umbrella maybe."

        if "react" in lowered:
            return (
                f"{prefix}react info: js library ui build. components state props. "
                "facebook meta maintain. virtual dom fast rendering."
            )

        if "code" in lowered or "function" in lowered:
            return (
                f"{prefix}snippet_db: function test() {{ console.log('raw data'); }} "
                "// warning: syntax check skip. return void."
            )

        if "time" in lowered:
            return f"{prefix}{datetime.now(UTC).isoformat()} // format iso8601 raw. timezone utc."

        return f"{prefix}unknown query '{message}'. db search result: null. suggestion: ask explicit term."
