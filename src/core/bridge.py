"""Process-wide wiring of the media bridge.

:func:`build_bridge` turns :class:`Settings` into the objects one pipeline
needs; :meth:`Bridge.aclose` releases the shared HTTP client. The FastAPI
lifespan owns one Bridge for the lifetime of the process.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import httpx

from src.config.settings import PIPELINE_SHEETS, Settings
from src.core.media_dispatch import MediaEventDispatcher
from src.core.media_record_writer import MediaRecordWriter
from src.core.name_resolver import NameResolver
from src.services.cloudinary_storage import CloudinaryStorage, configure_cloudinary
from src.services.drive import DriveStorage
from src.services.google_auth import GoogleServiceAccountAuth
from src.services.http import build_http_client
from src.services.sheets import SheetsTabStore
from src.services.trello import TrelloCardStore
from src.services.whatsapp import ConnectionStatus, WhatsAppGateway
from src.utils.logger import get_logger


logger = get_logger("media_bridge.bridge")


@dataclass
class Bridge:
    settings: Settings
    http_client: httpx.AsyncClient
    gateway: WhatsAppGateway
    dispatcher: MediaEventDispatcher
    status: ConnectionStatus

    async def aclose(self) -> None:
        await self.http_client.aclose()
        logger.info("Media bridge HTTP client closed")


def build_bridge(settings: Settings, http_client: Optional[httpx.AsyncClient] = None) -> Bridge:
    """Construct every collaborator for the configured pipeline.

    Raises:
        AuthError: when Google key material cannot be loaded.
    """

    client = http_client or build_http_client(settings.http_timeout)
    gateway = WhatsAppGateway(
        client,
        settings.whatsapp_api_url,
        session=settings.whatsapp_session,
        api_key=settings.whatsapp_api_key,
    )

    if settings.pipeline == PIPELINE_SHEETS:
        auth = GoogleServiceAccountAuth(settings.google)
        store = SheetsTabStore(client, auth, settings.spreadsheet_id)
        storage = DriveStorage(client, auth, settings.drive_folder_id)
        folder = settings.drive_folder_id
    else:
        configure_cloudinary(
            settings.cloudinary_cloud_name,
            settings.cloudinary_api_key,
            settings.cloudinary_api_secret,
        )
        store = TrelloCardStore(
            client,
            settings.trello_api_key,
            settings.trello_auth_token,
            settings.trello_board_id,
            settings.trello_list_id,
            tz_name=settings.display_timezone,
        )
        storage = CloudinaryStorage(settings.cloudinary_folder)
        folder = settings.cloudinary_folder

    dispatcher = MediaEventDispatcher(
        messenger=gateway,
        resolver=NameResolver(store),
        writer=MediaRecordWriter(store),
        storage=storage,
        target_group_id=settings.target_group_id,
        operator_chat_id=settings.operator_chat_id,
        pipeline=settings.pipeline,
        storage_folder=folder,
        tz_name=settings.display_timezone,
    )

    logger.info(
        "Media bridge ready: pipeline=%s, monitoring group %s",
        settings.pipeline,
        settings.target_group_id,
    )
    return Bridge(
        settings=settings,
        http_client=client,
        gateway=gateway,
        dispatcher=dispatcher,
        status=ConnectionStatus(),
    )
