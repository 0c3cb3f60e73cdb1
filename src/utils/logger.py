"""Logging utilities for the media bridge.

Webhook handling logs through :func:`log_info`, :func:`log_warn` and
:func:`log_error`, which emit one JSON object per line tagged with the
WhatsApp channel and, when known, the chat and the request id of the
delivery being processed.
"""

import json
import logging
import uuid
from typing import Optional


CHANNEL_TAG = "[MEDIA-BRIDGE-WHATSAPP]"
CHANNEL_LOGGER = "media_bridge.whatsapp"


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Return the named logger, configuring a console handler on first use."""

    if not logging.getLogger().handlers:
        logging.basicConfig(
            level=logging.INFO,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        )
    return logging.getLogger(name or "media_bridge")


def generate_request_id() -> str:
    """Generate a unique id correlating every log line of one delivery."""

    return str(uuid.uuid4())


def structured_message(
    message: str,
    chat_id: Optional[str] = None,
    request_id: Optional[str] = None,
    extra: Optional[dict] = None,
) -> str:
    payload: dict = {"message": f"{CHANNEL_TAG} {message}"}
    if chat_id is not None:
        payload["chat_id"] = chat_id
    if request_id is not None:
        payload["request_id"] = request_id
    if extra:
        payload["extra"] = extra
    return json.dumps(payload, default=str, ensure_ascii=False)


def _emit(level: int, msg: str, chat_id: Optional[str], request_id: Optional[str], extra: dict) -> None:
    get_logger(CHANNEL_LOGGER).log(level, structured_message(msg, chat_id, request_id, extra or None))


def log_info(msg: str, chat_id: Optional[str] = None, request_id: Optional[str] = None, **extra: object) -> None:
    _emit(logging.INFO, msg, chat_id, request_id, extra)


def log_warn(msg: str, chat_id: Optional[str] = None, request_id: Optional[str] = None, **extra: object) -> None:
    _emit(logging.WARNING, msg, chat_id, request_id, extra)


def log_error(msg: str, chat_id: Optional[str] = None, request_id: Optional[str] = None, **extra: object) -> None:
    _emit(logging.ERROR, msg, chat_id, request_id, extra)
