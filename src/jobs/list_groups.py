"""Print the id and name of every group the gateway session belongs to.

Use it once to find the value for ``TARGET_GROUP_ID``:
``python -m src.jobs.list_groups``.
"""

from __future__ import annotations

import asyncio
import os
from typing import Dict, List

from dotenv import load_dotenv

from src.core.errors import AuthError, BridgeError
from src.services.http import build_http_client
from src.services.whatsapp import WhatsAppGateway
from src.utils.logger import get_logger


logger = get_logger("media_bridge.jobs.list_groups")


def format_groups(groups: List[Dict[str, str]]) -> str:
    if not groups:
        return "No groups found for this session."
    lines = ["--- Groups ---"]
    lines.extend(f"- {group['name'] or '(no name)'} | ID: {group['id']}" for group in groups)
    return "\n".join(lines)


async def fetch_groups(gateway: WhatsAppGateway) -> List[Dict[str, str]]:
    groups = await gateway.list_groups()
    logger.info("Found %s groups", len(groups))
    return groups


async def _run() -> str:
    base_url = (os.getenv("WHATSAPP_API_URL") or "").strip()
    if not base_url:
        raise AuthError("WHATSAPP_API_URL is not set.")

    async with build_http_client() as client:
        gateway = WhatsAppGateway(
            client,
            base_url,
            session=(os.getenv("WHATSAPP_SESSION") or "default").strip(),
            api_key=(os.getenv("WHATSAPP_API_KEY") or "").strip() or None,
        )
        return format_groups(await fetch_groups(gateway))


def main() -> int:
    load_dotenv()
    try:
        print(asyncio.run(_run()))
    except BridgeError as exc:
        logger.error("Could not list groups: %s", exc.message)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
