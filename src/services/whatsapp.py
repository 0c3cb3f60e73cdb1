"""WhatsApp gateway integration for the media bridge.

The WhatsApp session itself lives in an external gateway process. It posts
events to ``/webhook/whatsapp`` and exposes HTTP endpoints that this module
uses to download media, send text messages and list chats.
"""

from __future__ import annotations

import base64
import io
from typing import Any, Dict, List, Optional

import httpx
import qrcode

from src.core.errors import TransportError
from src.models.message import DownloadedMedia, IncomingMessage
from src.services.http import request_json, send_request
from src.utils.logger import log_error
from src.utils.logger import log_info


STATUS_READY = "READY"
STATUS_DISCONNECTED = "DISCONNECTED"
STATUS_AUTH_FAILURE = "AUTH_FAILURE"


def render_qr_data_url(qr: str) -> str:
    """Render a pairing code as a ``data:image/png;base64`` URL."""

    image = qrcode.make(qr)
    buffer = io.BytesIO()
    image.save(buffer, format="PNG")
    encoded = base64.b64encode(buffer.getvalue()).decode("ascii")
    return f"data:image/png;base64,{encoded}"


class ConnectionStatus:
    """Latest session status exposed by ``GET /qrcode``.

    ``value`` holds either a QR data URL waiting to be scanned, or one of
    ``READY``, ``DISCONNECTED``, ``AUTH_FAILURE``. Empty until the gateway
    reports anything.
    """

    def __init__(self) -> None:
        self.value: str = ""

    def on_qr(self, qr: str) -> None:
        log_info("QR code requested; rendering for the dashboard")
        self.value = render_qr_data_url(qr)

    def on_ready(self) -> None:
        log_info("WhatsApp client connected and ready")
        self.value = STATUS_READY

    def on_auth_failure(self, message: Optional[str] = None) -> None:
        log_error("WhatsApp authentication failure", reason=message)
        self.value = STATUS_AUTH_FAILURE

    def on_disconnected(self, reason: Optional[str] = None) -> None:
        log_info("WhatsApp client disconnected", reason=reason)
        self.value = STATUS_DISCONNECTED

    @property
    def is_ready(self) -> bool:
        return self.value == STATUS_READY


class WhatsAppGateway:
    """HTTP client for the gateway's send/download/list endpoints."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        base_url: str,
        session: str = "default",
        api_key: Optional[str] = None,
    ) -> None:
        self.client = client
        self.base_url = base_url.rstrip("/")
        self.session = session
        self.api_key = api_key

    def _headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.api_key:
            headers["X-Api-Key"] = self.api_key
        return headers

    async def send_message(self, chat_id: str, text: str) -> None:
        await request_json(
            self.client,
            "POST",
            f"{self.base_url}/api/sendText",
            json_body={"session": self.session, "chatId": chat_id, "text": text},
            headers=self._headers(),
            context="send WhatsApp message",
        )

    async def download_media(self, message: IncomingMessage) -> DownloadedMedia:
        """Fetch the bytes of the media attached to ``message``.

        Raises:
            TransportError: when the message carries no media URL or the
                download fails.
        """

        url = message.media.url if message.media else None
        if not url:
            raise TransportError("Message has media but the gateway sent no media URL")
        if url.startswith("/"):
            url = f"{self.base_url}{url}"

        resp = await send_request(self.client, "GET", url, headers=self._headers(), context="download media")
        mimetype = message.mime_type or resp.headers.get("content-type", "application/octet-stream")
        return DownloadedMedia(
            data=resp.content,
            mimetype=mimetype.split(";", 1)[0].strip(),
            filename=message.media.filename if message.media else None,
        )

    async def list_chats(self) -> List[Dict[str, Any]]:
        chats = await request_json(
            self.client,
            "GET",
            f"{self.base_url}/api/{self.session}/chats",
            headers=self._headers(),
            context="list WhatsApp chats",
        )
        return chats if isinstance(chats, list) else []

    async def list_groups(self) -> List[Dict[str, str]]:
        """Return ``[{id, name}]`` for every group chat (ids end in ``@g.us``)."""

        groups: List[Dict[str, str]] = []
        for chat in await self.list_chats():
            if not isinstance(chat, dict):
                continue
            chat_id = chat.get("id")
            if isinstance(chat_id, dict):
                chat_id = chat_id.get("_serialized")
            if isinstance(chat_id, str) and (chat.get("isGroup") or chat_id.endswith("@g.us")):
                groups.append({"id": chat_id, "name": str(chat.get("name") or "")})
        return groups
