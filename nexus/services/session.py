"""Stateful model conversation session."""

import base64
import binascii
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Protocol

import httpx
from anthropic import APIError
from cuid2 import cuid_wrapper

from nexus.clients.anthropic import AnthropicClient, AnthropicConfig, AnthropicMessage
from nexus.config import Settings
from nexus.errors import SessionError, StaleSessionError
from nexus.models.llm import Base64Source, ContentBlock, DocumentBlock, ImageBlock, PlainTextSource, TextBlock
from nexus.models.turn import Attachment
from nexus.services.prompts import MODEL_FALLBACK_REPLY, SYSTEM_INSTRUCTION
from nexus.utils.logging import get_logger

logger = get_logger(__name__)

cuid = cuid_wrapper()

# Media types the Messages API accepts inline
IMAGE_MEDIA_TYPES = {"image/jpeg", "image/png", "image/gif", "image/webp"}
PDF_MEDIA_TYPE = "application/pdf"


@dataclass
class SessionHandle:
    """The model's cumulative dialogue state for one conversation."""

    session_id: str
    system_prompt: str
    temperature: float
    messages: list[AnthropicMessage] = field(default_factory=list)
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @property
    def turn_count(self) -> int:
        """Number of completed user/assistant exchanges."""
        return len(self.messages) // 2


class SessionAdapter(Protocol):
    """What the orchestrator needs from a model session."""

    @property
    def handle(self) -> SessionHandle | None: ...

    def initialize(self) -> SessionHandle: ...

    def reset(self) -> SessionHandle: ...

    async def send(self, text: str, attachment: Attachment | None = None) -> str: ...


class ConversationSession:
    """Owns the single live session handle and talks to the model through it."""

    def __init__(
        self,
        client: AnthropicClient | None = None,
        settings: Settings | None = None,
        system_prompt: str = SYSTEM_INSTRUCTION,
    ):
        """Initialize conversation session.

        Args:
            client: Anthropic client (built from settings on first use otherwise)
            settings: Model settings
            system_prompt: Behavioral instruction bound to every new session
        """
        self.settings = settings or Settings()
        self.system_prompt = system_prompt
        self._client = client
        self._handle: SessionHandle | None = None
        self._pending = False

    @property
    def handle(self) -> SessionHandle | None:
        """The live session handle, if one has been created."""
        return self._handle

    def initialize(self) -> SessionHandle:
        """Create a fresh session, replacing any existing one."""
        self._handle = SessionHandle(
            session_id=cuid(),
            system_prompt=self.system_prompt,
            temperature=self.settings.temperature,
        )
        self._pending = False
        logger.info(f"Initialized model session {self._handle.session_id}")
        return self._handle

    def reset(self) -> SessionHandle:
        """Discard the current session and start a new one with no history."""
        if self._handle is not None:
            logger.info(f"Discarding model session {self._handle.session_id}")
        return self.initialize()

    async def send(self, text: str, attachment: Attachment | None = None) -> str:
        """Send one user turn and return the model's reply text.

        Args:
            text: User text (may be empty when an attachment is given)
            attachment: Optional file sent inline with the turn

        Returns:
            Reply text, or MODEL_FALLBACK_REPLY if the call failed and
            fallbacks are enabled

        Raises:
            SessionError: If no client is available, a turn is already in
                flight, or the call failed with fallbacks disabled
            StaleSessionError: If the session was reset while waiting
        """
        handle = self._handle or self.initialize()

        if self._pending:
            raise SessionError("A model turn is already in flight for this session")

        client = self._get_client()
        user_message = AnthropicMessage(role="user", content=build_user_content(text, attachment))

        self._pending = True
        try:
            response = await client.create_message(
                messages=[*handle.messages, user_message],
                system_prompt=handle.system_prompt,
                temperature=handle.temperature,
            )
        except (APIError, httpx.HTTPError, RuntimeError) as e:
            if handle is not self._handle:
                raise StaleSessionError(f"Session {handle.session_id} was reset during the call") from e
            logger.error(f"Model call failed for session {handle.session_id}: {e}", exc_info=True)
            if not self.settings.model_fallback_on_error:
                raise SessionError(f"Model call failed: {e}") from e
            return MODEL_FALLBACK_REPLY
        finally:
            if handle is self._handle:
                self._pending = False

        if handle is not self._handle:
            raise StaleSessionError(f"Session {handle.session_id} was reset during the call")

        reply = response.text
        handle.messages.append(user_message)
        # The API rejects empty assistant turns in history
        handle.messages.append(AnthropicMessage(role="assistant", content=reply or "(no response)"))
        logger.debug(f"Session {handle.session_id} now has {handle.turn_count} exchanges")
        return reply

    def _get_client(self) -> AnthropicClient:
        if self._client is None:
            config = AnthropicConfig(
                model=self.settings.model,
                max_tokens=self.settings.max_tokens,
                temperature=self.settings.temperature,
            )
            try:
                self._client = AnthropicClient(config=config)
            except ValueError as e:
                raise SessionError(f"Failed to initialize model session: {e}") from e
        return self._client


def build_user_content(text: str, attachment: Attachment | None) -> str | list[ContentBlock]:
    """Build the content of a user turn, inlining the attachment if present."""
    if attachment is None or attachment.data is None:
        return text

    blocks: list[ContentBlock] = []
    if text:
        blocks.append(TextBlock(text=text))
    blocks.append(_attachment_block(attachment))
    return blocks


def _attachment_block(attachment: Attachment) -> ContentBlock:
    mime_type = attachment.mime_type
    data = attachment.data or ""

    if mime_type in IMAGE_MEDIA_TYPES:
        return ImageBlock(source=Base64Source(media_type=mime_type, data=data))

    if mime_type == PDF_MEDIA_TYPE:
        return DocumentBlock(source=Base64Source(media_type=mime_type, data=data), title=attachment.name)

    if mime_type.startswith("text/"):
        try:
            decoded = base64.b64decode(data).decode("utf-8")
        except (binascii.Error, UnicodeDecodeError):
            logger.warning(f"Could not decode text attachment {attachment.name!r}")
        else:
            return DocumentBlock(source=PlainTextSource(data=decoded), title=attachment.name)

    logger.warning(f"Attachment type {mime_type} cannot be sent inline, describing it instead")
    return TextBlock(text=f"[Attached file: {attachment.name or 'unnamed'} ({mime_type})]")
