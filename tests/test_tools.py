"""Tests for the tool invokers."""

import json

import httpx
import pytest

from nexus.config import Settings
from nexus.errors import ToolError
from nexus.tools import HttpToolInvoker, SimulatedToolInvoker, create_tool_invoker, tool_failure_message

TUTORIALSPOINT_URL = "https://restapi.tutorialspoint.com/api/v1/gpt/post"


class TestSimulatedToolInvoker:
    """Tests for the keyword-driven fake endpoint."""

    @pytest.fixture
    def tool(self):
        return SimulatedToolInvoker(latency=0)

    @pytest.mark.asyncio
    async def test_weather_response(self, tool):
        """Test the weather keyword with the tutorialspoint prefix."""
        result = await tool.invoke(TUTORIALSPOINT_URL, {"message": "What's the Weather?"})

        assert result.startswith("ext_api_v1: weather cloudy temp 22c")

    @pytest.mark.asyncio
    async def test_prefix_depends_on_endpoint(self, tool):
        """Test that other endpoints get the sys_msg prefix."""
        result = await tool.invoke("https://example.com/api", {"message": "tell me about react"})

        assert result.startswith("sys_msg: react info")

    @pytest.mark.asyncio
    async def test_unknown_query(self, tool):
        """Test the default response echoes the query."""
        result = await tool.invoke(TUTORIALSPOINT_URL, {"message": "quantum"})

        assert result == "ext_api_v1: unknown query 'quantum'. db search result: null. suggestion: ask explicit term."

    @pytest.mark.asyncio
    @pytest.mark.parametrize("message", ["trigger an error", "FAIL please", "break it"])
    async def test_failure_keywords(self, tool, message):
        """Test that failure keywords simulate an outage."""
        with pytest.raises(ToolError, match="Simulated API Outage"):
            await tool.invoke(TUTORIALSPOINT_URL, {"message": message})

    @pytest.mark.asyncio
    async def test_forced_failure(self):
        """Test that failures can be forced regardless of the message."""
        tool = SimulatedToolInvoker(latency=0, force_failure=True)

        with pytest.raises(ToolError):
            await tool.invoke(TUTORIALSPOINT_URL, {"message": "weather"})

    @pytest.mark.asyncio
    async def test_missing_message(self, tool):
        """Test that params without a message still get an answer."""
        result = await tool.invoke(TUTORIALSPOINT_URL, {})

        assert result.startswith("ext_api_v1: unknown query")


class TestHttpToolInvoker:
    """Tests for the HTTP transport, using a mock transport."""

    @staticmethod
    def make_client(handler) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(handler))

    @pytest.mark.asyncio
    async def test_get_sends_query_params(self):
        """Test that GET params are sent as a query string, with non-strings JSON-encoded."""
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, text="ext_api_v1: ok")

        async with self.make_client(handler) as client:
            tool = HttpToolInvoker(client=client)
            result = await tool.invoke(TUTORIALSPOINT_URL, {"message": "weather", "chat": [{"role": "user"}]})

        assert result == "ext_api_v1: ok"
        assert seen[0].method == "GET"
        assert seen[0].url.params["message"] == "weather"
        assert json.loads(seen[0].url.params["chat"]) == [{"role": "user"}]

    @pytest.mark.asyncio
    async def test_post_sends_json_body(self):
        """Test that other methods send params as a JSON body."""
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, text="created")

        async with self.make_client(handler) as client:
            tool = HttpToolInvoker(method="post", client=client)
            await tool.invoke(TUTORIALSPOINT_URL, {"message": "weather"})

        assert seen[0].method == "POST"
        assert json.loads(seen[0].content) == {"message": "weather"}

    @pytest.mark.asyncio
    async def test_error_status_raises_tool_error(self):
        """Test that non-2xx responses become ToolError."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(503)

        async with self.make_client(handler) as client:
            tool = HttpToolInvoker(client=client)
            with pytest.raises(ToolError, match="503 Service Unavailable"):
                await tool.invoke(TUTORIALSPOINT_URL, {})

    @pytest.mark.asyncio
    async def test_timeout_raises_tool_error(self):
        """Test that transport timeouts become ToolError."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("too slow", request=request)

        async with self.make_client(handler) as client:
            tool = HttpToolInvoker(timeout=2.0, client=client)
            with pytest.raises(ToolError, match="Timed out after 2s"):
                await tool.invoke(TUTORIALSPOINT_URL, {})

    @pytest.mark.asyncio
    async def test_connection_error_raises_tool_error(self):
        """Test that refused connections become ToolError."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        async with self.make_client(handler) as client:
            tool = HttpToolInvoker(client=client)
            with pytest.raises(ToolError, match="ConnectError"):
                await tool.invoke(TUTORIALSPOINT_URL, {})

    @pytest.mark.asyncio
    async def test_invalid_url_raises_tool_error(self):
        """Test that a malformed endpoint from the model becomes ToolError."""
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200)

        async with self.make_client(handler) as client:
            tool = HttpToolInvoker(client=client)
            with pytest.raises(ToolError, match="Invalid URL"):
                await tool.invoke("http://[::1", {"message": "weather"})

        assert seen == []

    @pytest.mark.asyncio
    async def test_non_httpx_transport_error_raises_tool_error(self):
        """Test that errors outside the httpx hierarchy are still reported as ToolError."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise OSError("port out of range")

        async with self.make_client(handler) as client:
            tool = HttpToolInvoker(client=client)
            with pytest.raises(ToolError, match="OSError: port out of range"):
                await tool.invoke("http://localhost:99999/", {})

    @pytest.mark.asyncio
    async def test_call_method_overrides_default(self):
        """Test that the method named by the call wins over the invoker default."""
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, text="ok")

        async with self.make_client(handler) as client:
            tool = HttpToolInvoker(client=client)
            await tool.invoke(TUTORIALSPOINT_URL, {"message": "weather"}, method="post")

        assert seen[0].method == "POST"
        assert json.loads(seen[0].content) == {"message": "weather"}


class TestToolHelpers:
    """Tests for tool selection and failure text."""

    def test_failure_message(self):
        """Test the fallback text handed to the model."""
        message = tool_failure_message(ToolError("404 Not Found"))

        assert message == (
            "ERROR: External Tool Failed (404 Not Found). Ignore tool request and answer using internal knowledge."
        )

    def test_create_simulated(self):
        """Test that simulated mode uses the configured latency."""
        tool = create_tool_invoker(Settings(tool_mode="simulated", tool_latency=0.25))

        assert isinstance(tool, SimulatedToolInvoker)
        assert tool.latency == 0.25

    def test_create_http(self):
        """Test that http mode uses the configured timeout."""
        tool = create_tool_invoker(Settings(tool_mode="http", tool_timeout=3.0))

        assert isinstance(tool, HttpToolInvoker)
        assert tool.timeout == 3.0
