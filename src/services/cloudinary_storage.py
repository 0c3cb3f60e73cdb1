"""Cloudinary object storage for the media bridge."""

from __future__ import annotations

import asyncio
import base64
from typing import Optional

import cloudinary
import cloudinary.exceptions
import cloudinary.uploader

from src.core.errors import TransportError
from src.models.records import UploadedObject
from src.utils.logger import get_logger


logger = get_logger("media_bridge.cloudinary")


def configure_cloudinary(cloud_name: str, api_key: str, api_secret: str) -> None:
    cloudinary.config(
        cloud_name=cloud_name,
        api_key=api_key,
        api_secret=api_secret,
        secure=True,
    )
    logger.info("Cloudinary configured for cloud '%s'", cloud_name)


def resource_type_for(mime_type: str) -> str:
    return "video" if (mime_type or "").startswith("video/") else "image"


def to_data_uri(data: bytes, mime_type: str) -> str:
    return f"data:{mime_type};base64,{base64.b64encode(data).decode('ascii')}"


class CloudinaryStorage:
    """Uploads media and returns its secure public URL."""

    def __init__(self, folder: str) -> None:
        self.folder = folder

    async def upload(
        self,
        data: bytes,
        mime_type: str,
        folder: Optional[str] = None,
        file_name: Optional[str] = None,
    ) -> UploadedObject:
        options = {
            "resource_type": resource_type_for(mime_type),
            "folder": folder or self.folder,
        }
        try:
            # The SDK is synchronous.
            result = await asyncio.to_thread(
                cloudinary.uploader.upload,
                to_data_uri(data, mime_type),
                **options,
            )
        except cloudinary.exceptions.Error as exc:
            logger.error("Cloudinary upload failed: %s", exc)
            raise TransportError("Falha ao obter URL pública da mídia.", details={"cause": str(exc)}) from exc

        url = (result or {}).get("secure_url")
        if not url:
            raise TransportError("Falha ao obter URL pública da mídia.")

        logger.info("Upload finished. URL: %s", url)
        return UploadedObject(
            public_url=url,
            object_id=result.get("public_id"),
            name=file_name or result.get("original_filename"),
        )
