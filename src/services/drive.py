"""Google Drive object storage for the media bridge.

Uploads use the multipart endpoint (metadata + bytes in one request) and
return the file's ``webViewLink``. Folder listing feeds the Drive to Sheets
job.
"""

from __future__ import annotations

import io
import json
import uuid
from email import encoders
from email.generator import BytesGenerator
from email.mime.multipart import MIMEMultipart
from email.mime.nonmultipart import MIMENonMultipart
from email.policy import compat32
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import httpx

from src.core.errors import TransportError
from src.models.records import UploadedObject
from src.services.google_auth import GoogleServiceAccountAuth
from src.services.http import request_json
from src.utils.logger import get_logger


_DRIVE_FILES_URL = "https://www.googleapis.com/drive/v3/files"
_DRIVE_UPLOAD_URL = "https://www.googleapis.com/upload/drive/v3/files"

logger = get_logger("media_bridge.drive")


@dataclass(frozen=True)
class DriveFile:
    id: str
    name: str
    created_time: Optional[str] = None

    @property
    def share_link(self) -> str:
        return f"https://drive.google.com/file/d/{self.id}/view?usp=sharing"


def build_multipart_body(metadata: Dict[str, Any], data: bytes, mime_type: str) -> tuple[bytes, str]:
    """Return ``(body, content_type)`` for a ``multipart/related`` upload."""

    boundary = uuid.uuid4().hex
    related = MIMEMultipart("related", boundary=boundary)

    meta_part = MIMENonMultipart("application", "json", charset="UTF-8")
    meta_part.set_payload(json.dumps(metadata))
    related.attach(meta_part)

    maintype, _, subtype = (mime_type or "application/octet-stream").partition("/")
    media_part = MIMENonMultipart(maintype, subtype or "octet-stream")
    media_part.set_payload(data)
    encoders.encode_base64(media_part)
    related.attach(media_part)

    buffer = io.BytesIO()
    BytesGenerator(buffer, mangle_from_=False, policy=compat32.clone(linesep="\r\n")).flatten(related)
    # Drop the top-level headers; the content type travels as the HTTP header.
    body = buffer.getvalue().split(b"\r\n\r\n", 1)[1]
    return body, f"multipart/related; boundary={boundary}"


class DriveStorage:
    """Object storage backed by a Drive folder."""

    def __init__(self, client: httpx.AsyncClient, auth: GoogleServiceAccountAuth, folder_id: str) -> None:
        self.client = client
        self.auth = auth
        self.folder_id = folder_id

    async def upload(
        self,
        data: bytes,
        mime_type: str,
        folder: Optional[str] = None,
        file_name: Optional[str] = None,
    ) -> UploadedObject:
        name = file_name or f"whatsapp-media-{uuid.uuid4().hex}"
        logger.info("Uploading file to Drive: %s", name)

        metadata = {"name": name, "parents": [folder or self.folder_id], "mimeType": mime_type}
        body, content_type = build_multipart_body(metadata, data, mime_type)
        headers = await self.auth.authorization_headers()
        headers["Content-Type"] = content_type

        created = await request_json(
            self.client,
            "POST",
            _DRIVE_UPLOAD_URL,
            params={"uploadType": "multipart", "fields": "id,name,webViewLink"},
            content=body,
            headers=headers,
            context=f"upload '{name}' to Drive",
        )
        created = created or {}
        file_id = created.get("id")
        if not file_id:
            raise TransportError(f"Drive returned no file id for '{name}'")

        link = created.get("webViewLink") or DriveFile(id=file_id, name=name).share_link
        return UploadedObject(public_url=link, object_id=file_id, name=created.get("name") or name)

    async def list_folder_files(self, folder_id: Optional[str] = None) -> List[DriveFile]:
        """List every non-trashed file in the folder, following pagination."""

        folder = folder_id or self.folder_id
        files: List[DriveFile] = []
        page_token: Optional[str] = None

        while True:
            params: Dict[str, Any] = {
                "q": f"'{folder}' in parents and trashed = false",
                "fields": "nextPageToken, files(id, name, createdTime)",
                "pageSize": 1000,
            }
            if page_token:
                params["pageToken"] = page_token

            payload = await request_json(
                self.client,
                "GET",
                _DRIVE_FILES_URL,
                params=params,
                headers=await self.auth.authorization_headers(),
                context="list Drive folder",
            ) or {}

            for item in payload.get("files") or []:
                if isinstance(item, dict) and item.get("id"):
                    files.append(
                        DriveFile(
                            id=str(item["id"]),
                            name=str(item.get("name") or ""),
                            created_time=item.get("createdTime"),
                        )
                    )

            page_token = payload.get("nextPageToken")
            if not page_token:
                break

        return files
