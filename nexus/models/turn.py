"""Conversation turn and attachment models."""

import base64
import binascii
import mimetypes
from datetime import UTC, datetime
from enum import StrEnum
from pathlib import Path
from typing import Literal

from cuid2 import cuid_wrapper
from pydantic import BaseModel, ConfigDict, Field

cuid = cuid_wrapper()


class TurnRole(StrEnum):
    """Who produced a turn, used by the presentation layer to pick a renderer."""

    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"
    TOOL_REQUEST = "tool_request"
    TOOL_RESPONSE = "tool_response"


class Attachment(BaseModel):
    """A file supplied by the user alongside a message.

    ``data`` carries the base64 payload sent to the model. Once the turn has
    been submitted only the display ``url`` is kept (see ``for_log``).
    """

    model_config = ConfigDict(frozen=True)

    kind: Literal["image", "file"]
    url: str
    mime_type: str
    data: str | None = None
    name: str | None = None

    @classmethod
    def from_bytes(cls, raw: bytes, mime_type: str, name: str | None = None) -> "Attachment":
        """Build an attachment from raw file contents."""
        encoded = base64.b64encode(raw).decode("ascii")
        return cls(
            kind="image" if mime_type.startswith("image") else "file",
            url=f"data:{mime_type};base64,{encoded}",
            mime_type=mime_type,
            data=encoded,
            name=name,
        )

    @classmethod
    def from_path(cls, path: str | Path) -> "Attachment":
        """Read a file from disk, guessing its MIME type from the extension."""
        file_path = Path(path)
        mime_type, _ = mimetypes.guess_type(file_path.name)
        return cls.from_bytes(
            file_path.read_bytes(),
            mime_type or "application/octet-stream",
            name=file_path.name,
        )

    @classmethod
    def from_data_url(cls, url: str, name: str | None = None) -> "Attachment":
        """Parse a ``data:<mime>;base64,<payload>`` URL.

        Raises:
            ValueError: If the URL is not a base64 data URL
        """
        header, sep, payload = url.partition(",")
        if not sep or not header.startswith("data:") or not header.endswith(";base64"):
            raise ValueError("Expected a base64 data URL")

        mime_type = header[len("data:") : -len(";base64")] or "application/octet-stream"
        try:
            base64.b64decode(payload, validate=True)
        except binascii.Error as e:
            raise ValueError("Data URL payload is not valid base64") from e

        return cls(
            kind="image" if mime_type.startswith("image") else "file",
            url=url,
            mime_type=mime_type,
            data=payload,
            name=name,
        )

    def for_log(self) -> "Attachment":
        """Return a copy without the encoded payload."""
        return self.model_copy(update={"data": None})


class TurnMetadata(BaseModel):
    """Free-form diagnostics attached to a turn."""

    model_config = ConfigDict(frozen=True)

    processing_time: float | None = None
    api_url: str | None = None
    method: str | None = None
    session_id: str | None = None


class Turn(BaseModel):
    """One immutable entry in the conversation log."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=cuid)
    role: TurnRole
    content: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    attachment: Attachment | None = None
    metadata: TurnMetadata | None = None
