"""Message models for the media bridge.

This module defines the event envelope posted by the WhatsApp gateway and
the normalized message representation used by the dispatcher.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class GatewayEvent(str, Enum):
    """Event names forwarded by the WhatsApp gateway."""

    QR = "qr"
    READY = "ready"
    AUTH_FAILURE = "auth_failure"
    DISCONNECTED = "disconnected"
    MESSAGE = "message"


class MediaPayload(BaseModel):
    """Media descriptor attached to a gateway message."""

    url: Optional[str] = None
    mimetype: Optional[str] = None
    filename: Optional[str] = None


class IncomingMessage(BaseModel):
    """A chat message as delivered by the gateway."""

    id: Optional[str] = None
    from_: str = Field(alias="from")
    body: str = ""
    has_media: bool = Field(default=False, alias="hasMedia")
    has_quoted_msg: bool = Field(default=False, alias="hasQuotedMsg")
    timestamp: Optional[int] = None
    media: Optional[MediaPayload] = None

    model_config = {"populate_by_name": True}

    @property
    def source_id(self) -> str:
        return self.from_

    @property
    def caption(self) -> str:
        return (self.body or "").strip()

    @property
    def mime_type(self) -> Optional[str]:
        return self.media.mimetype if self.media else None

    @property
    def received_at(self) -> datetime:
        # Gateway timestamps are Unix seconds.
        if self.timestamp:
            return datetime.fromtimestamp(int(self.timestamp), tz=timezone.utc)
        return datetime.now(timezone.utc)


class GatewayWebhook(BaseModel):
    """Envelope of every webhook delivery: ``{"event": ..., "data": {...}}``."""

    event: str
    data: Dict[str, Any] = Field(default_factory=dict)


class DownloadedMedia(BaseModel):
    """Media bytes fetched from the gateway."""

    data: bytes
    mimetype: str
    filename: Optional[str] = None
