"""Shared fakes for orchestrator and session tests."""

import asyncio
import json
from collections.abc import Callable
from typing import Any

import pytest

from nexus.config import Settings
from nexus.errors import ToolError
from nexus.models.turn import Attachment
from nexus.services.conversation_log import ConversationLog
from nexus.services.orchestrator import HybridOrchestrator
from nexus.services.session import SessionHandle

WEATHER_INSTRUCTION = json.dumps(
    {
        "action": "call_api",
        "api_url": "https://restapi.tutorialspoint.com/api/v1/gpt/post",
        "method": "GET",
        "params": {"chat": "[]", "message": "weather"},
    }
)


class ScriptedSession:
    """Session adapter that replays canned replies.

    Each scripted reply is either returned or, if it is an exception, raised.
    When ``gate`` is set, every send waits on it before replying.
    """

    def __init__(self, replies: list[str | Exception], on_send: Callable[[], None] | None = None):
        self.replies = list(replies)
        self.on_send = on_send
        self.sent: list[tuple[str, Attachment | None]] = []
        self.handles: list[SessionHandle] = []
        self.entered = asyncio.Event()
        self.gate: asyncio.Event | None = None
        self._handle: SessionHandle | None = None

    @property
    def handle(self) -> SessionHandle | None:
        return self._handle

    def initialize(self) -> SessionHandle:
        self._handle = SessionHandle(
            session_id=f"session-{len(self.handles) + 1}",
            system_prompt="test prompt",
            temperature=0.7,
        )
        self.handles.append(self._handle)
        return self._handle

    def reset(self) -> SessionHandle:
        return self.initialize()

    async def send(self, text: str, attachment: Attachment | None = None) -> str:
        if self._handle is None:
            self.initialize()
        self.sent.append((text, attachment))
        if self.on_send:
            self.on_send()

        self.entered.set()
        if self.gate is not None:
            await self.gate.wait()
        else:
            await asyncio.sleep(0)

        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply


class ScriptedToolInvoker:
    """Tool invoker returning a fixed result, raising, or sleeping."""

    def __init__(
        self,
        result: str | Exception = "ext_api_v1: weather cloudy temp 22c",
        delay: float = 0.0,
        on_invoke: Callable[[], None] | None = None,
    ):
        self.result = result
        self.delay = delay
        self.on_invoke = on_invoke
        self.calls: list[tuple[str, dict[str, Any]]] = []
        self.methods: list[str | None] = []

    async def invoke(self, api_url: str, params: dict[str, Any], method: str | None = None) -> str:
        self.calls.append((api_url, params))
        self.methods.append(method)
        if self.on_invoke:
            self.on_invoke()
        await asyncio.sleep(self.delay)
        if isinstance(self.result, Exception):
            raise self.result
        return self.result


@pytest.fixture
def settings():
    """Settings with a short tool timeout."""
    return Settings(tool_timeout=1.0, tool_latency=0.0)


@pytest.fixture
def make_orchestrator(settings):
    """Build an orchestrator around scripted fakes."""

    def _make(
        replies: list[str | Exception],
        tool: ScriptedToolInvoker | None = None,
    ) -> tuple[HybridOrchestrator, ScriptedSession, ScriptedToolInvoker]:
        session = ScriptedSession(replies)
        tool_invoker = tool or ScriptedToolInvoker()
        orchestrator = HybridOrchestrator(session, tool_invoker, ConversationLog(), settings)
        return orchestrator, session, tool_invoker

    return _make


@pytest.fixture
def failing_tool():
    """Tool invoker that always fails."""
    return ScriptedToolInvoker(result=ToolError("500 Internal Server Error: Simulated API Outage"))
