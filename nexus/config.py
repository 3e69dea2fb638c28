"""Runtime settings for the hybrid assistant."""

import os
from dataclasses import dataclass
from typing import Literal

ToolMode = Literal["simulated", "http"]

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ValueError(f"{name} must be a boolean, got {raw!r}")


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError as e:
        raise ValueError(f"{name} must be a number, got {raw!r}") from e


@dataclass
class Settings:
    """Settings shared by the session adapter, tool invoker and orchestrator."""

    model: str = "claude-3-5-sonnet-20241022"
    temperature: float = 0.7
    max_tokens: int = 4096

    tool_mode: ToolMode = "simulated"
    tool_timeout: float = 10.0  # Seconds before a tool call counts as failed
    tool_latency: float = 1.5  # Artificial delay of the simulated tool

    # Return a canned reply instead of raising when the model call fails
    model_fallback_on_error: bool = True

    def __post_init__(self) -> None:
        if self.tool_mode not in ("simulated", "http"):
            raise ValueError(f"Unknown tool mode: {self.tool_mode!r}")
        if self.tool_timeout <= 0:
            raise ValueError("tool_timeout must be positive")
        if self.tool_latency < 0:
            raise ValueError("tool_latency cannot be negative")
        if not 0.0 <= self.temperature <= 1.0:
            raise ValueError("temperature must be between 0 and 1")

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from NEXUS_* environment variables."""
        defaults = cls()
        return cls(
            model=os.getenv("NEXUS_MODEL", defaults.model),
            temperature=_env_float("NEXUS_TEMPERATURE", defaults.temperature),
            tool_mode=os.getenv("NEXUS_TOOL_MODE", defaults.tool_mode).strip().lower(),  # type: ignore[arg-type]
            tool_timeout=_env_float("NEXUS_TOOL_TIMEOUT", defaults.tool_timeout),
            tool_latency=_env_float("NEXUS_TOOL_LATENCY", defaults.tool_latency),
            model_fallback_on_error=_env_bool("NEXUS_MODEL_FALLBACK", defaults.model_fallback_on_error),
        )
