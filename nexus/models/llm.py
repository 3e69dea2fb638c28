"""LLM message content types (provider-agnostic)."""

from typing import Literal

from pydantic import BaseModel


# Content block types
class TextBlock(BaseModel):
    """Text content block."""

    type: Literal["text"] = "text"
    text: str

    class Config:
        extra = "ignore"  # Ignore any additional fields from Anthropic


class Base64Source(BaseModel):
    """Inline binary payload."""

    type: Literal["base64"] = "base64"
    media_type: str
    data: str


class PlainTextSource(BaseModel):
    """Inline plain-text document payload."""

    type: Literal["text"] = "text"
    media_type: Literal["text/plain"] = "text/plain"
    data: str


class ImageBlock(BaseModel):
    """Image content block."""

    type: Literal["image"] = "image"
    source: Base64Source


class DocumentBlock(BaseModel):
    """Document content block (PDF or plain text)."""

    type: Literal["document"] = "document"
    source: Base64Source | PlainTextSource
    title: str | None = None


ContentBlock = TextBlock | ImageBlock | DocumentBlock
