"""HTTP transport for tool calls."""

import json
from typing import Any

import httpx

from nexus.errors import ToolError
from nexus.utils.logging import get_logger

logger = get_logger(__name__)


class HttpToolInvoker:
    """Performs one real HTTP request per tool call."""

    def __init__(self, timeout: float = 10.0, method: str = "GET", client: httpx.AsyncClient | None = None):
        """Initialize HTTP tool.

        Args:
            timeout: Request timeout in seconds
            method: Default HTTP method, used when a call does not name one
            client: Shared client (a private one is created per call otherwise)
        """
        self.timeout = timeout
        self.method = method.upper()
        self.client = client

    async def invoke(self, api_url: str, params: dict[str, Any], method: str | None = None) -> str:
        """Call the endpoint and return the response body as text.

        GET sends params as a query string, any other method as a JSON body.
        The URL comes from the model, so every failure (including a malformed
        URL) is reported as ToolError.
        """
        method = (method or self.method).upper()
        request_kwargs: dict[str, Any] = {"timeout": self.timeout}
        if method == "GET":
            request_kwargs["params"] = {key: _query_value(value) for key, value in params.items()}
        else:
            request_kwargs["json"] = params

        logger.debug(f"Tool request: {method} {api_url}")
        try:
            if self.client is not None:
                response = await self.client.request(method, api_url, **request_kwargs)
            else:
                async with httpx.AsyncClient() as client:
                    response = await client.request(method, api_url, **request_kwargs)
            response.raise_for_status()
        except httpx.TimeoutException as e:
            raise ToolError(f"Timed out after {self.timeout:g}s calling {api_url}") from e
        except httpx.HTTPStatusError as e:
            raise ToolError(f"{e.response.status_code} {e.response.reason_phrase} from {api_url}") from e
        except httpx.InvalidURL as e:
            raise ToolError(f"Invalid URL {api_url!r}: {e}") from e
        except Exception as e:
            # Bad ports and the like surface from the transport as non-httpx errors
            raise ToolError(f"{type(e).__name__}: {e}") from e

        return response.text


def _query_value(value: Any) -> str:
    if isinstance(value, str):
        return value
    return json.dumps(value)
