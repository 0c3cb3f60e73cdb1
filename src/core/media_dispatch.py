"""Inbound media event handling for the media bridge.

This module implements the single path a gateway message takes:

1. Drop anything that is not from the monitored group, carries no media, has
   no caption, or quotes another message.
2. Reject captions shorter than ``MIN_LABEL_LENGTH`` (operator is warned).
3. Drop media that is neither image nor video (logged only).
4. Under the label's lock: resolve the record, upload the media, write the
   record.
5. Notify the operator of the outcome.

Every failure after validation is logged and reported to the operator; the
event is then discarded. Nothing is retried.
"""

from __future__ import annotations

from typing import Any, Dict, Optional, Protocol

from src.config.settings import PIPELINE_SHEETS, PIPELINE_TRELLO
from src.core.errors import ValidationError
from src.core.media_record_writer import MediaRecordWriter
from src.core.name_resolver import LabelLocks, NameResolver
from src.models.message import DownloadedMedia, IncomingMessage
from src.models.records import MediaMetadata, ResolveResult, UploadedObject
from src.utils.format import extension_for_mime, format_pt_br_date, format_pt_br_datetime
from src.utils.logger import log_error
from src.utils.logger import log_info
from src.utils.logger import log_warn


MIN_LABEL_LENGTH = 3
SUPPORTED_MEDIA_PREFIXES = ("image/", "video/")

SHORT_LABEL_WARNING = (
    "⚠️ ALERTA: Mídia ignorada. Por favor, envie a mídia com o nome completo do aluno na legenda."
)


class ObjectStorage(Protocol):
    async def upload(
        self,
        data: bytes,
        mime_type: str,
        folder: Optional[str] = None,
        file_name: Optional[str] = None,
    ) -> UploadedObject:
        ...


class Messenger(Protocol):
    async def send_message(self, chat_id: str, text: str) -> None:
        ...

    async def download_media(self, message: IncomingMessage) -> DownloadedMedia:
        ...


def is_supported_media(mime_type: Optional[str]) -> bool:
    return bool(mime_type) and mime_type.startswith(SUPPORTED_MEDIA_PREFIXES)


def validate_label(caption: str) -> str:
    """Return the trimmed label, or raise when it is too short."""

    label = (caption or "").strip()
    if len(label) < MIN_LABEL_LENGTH:
        raise ValidationError(
            f"Label '{label}' is shorter than {MIN_LABEL_LENGTH} characters",
            reason="label_too_short",
        )
    return label


def validate_media_type(mime_type: Optional[str]) -> str:
    if not is_supported_media(mime_type):
        raise ValidationError(
            f"Media type '{mime_type}' is neither image nor video",
            reason="unsupported_media",
            details={"mimetype": mime_type},
        )
    return str(mime_type)


class MediaEventDispatcher:
    """Routes gateway messages through resolve, upload and write."""

    def __init__(
        self,
        messenger: Messenger,
        resolver: NameResolver,
        writer: MediaRecordWriter,
        storage: ObjectStorage,
        target_group_id: str,
        operator_chat_id: str,
        pipeline: str = PIPELINE_TRELLO,
        storage_folder: Optional[str] = None,
        tz_name: str = "America/Sao_Paulo",
        locks: Optional[LabelLocks] = None,
    ) -> None:
        self.messenger = messenger
        self.resolver = resolver
        self.writer = writer
        self.storage = storage
        self.target_group_id = target_group_id
        self.operator_chat_id = operator_chat_id
        self.pipeline = pipeline
        self.storage_folder = storage_folder
        self.tz_name = tz_name
        self.locks = locks or LabelLocks()

    async def notify(self, text: str, request_id: Optional[str] = None) -> bool:
        """Send ``text`` to the operator. Failures are logged, never raised."""

        try:
            await self.messenger.send_message(self.operator_chat_id, text)
        except Exception as exc:  # noqa: BLE001
            log_error(
                "Could not notify operator",
                chat_id=self.operator_chat_id,
                request_id=request_id,
                error=repr(exc),
            )
            return False
        return True

    def _ignore_reason(self, message: IncomingMessage) -> Optional[str]:
        if message.source_id != self.target_group_id:
            return "other_source"
        if not message.has_media:
            return "no_media"
        if not message.body:
            return "no_caption"
        if message.has_quoted_msg:
            return "quoted_message"
        return None

    def _file_name(self, label: str, media: DownloadedMedia) -> str:
        return f"{label}.{extension_for_mime(media.mimetype)}"

    def build_metadata(
        self,
        label: str,
        message: IncomingMessage,
        media: DownloadedMedia,
        uploaded: UploadedObject,
    ) -> MediaMetadata:
        if self.pipeline == PIPELINE_SHEETS:
            display_title = uploaded.name or self._file_name(label, media)
        else:
            display_title = (
                f"Anexo de Mídia para {label} ({format_pt_br_date(message.received_at, self.tz_name)})"
            )
        return MediaMetadata(
            display_title=display_title,
            url=uploaded.public_url,
            timestamp=format_pt_br_datetime(message.received_at, self.tz_name),
        )

    def success_message(self, label: str, result: ResolveResult, url: str, row: Optional[int]) -> str:
        if self.pipeline == PIPELINE_SHEETS:
            tab = result.record.title
            if result.is_new:
                text = f'🆕 Aba *"{tab}"* foi criada e a mídia de *"{label}"* foi registrada (linha {row}).'
            else:
                text = f'✅ Mídia de *"{label}"* registrada na aba *"{tab}"* (linha {row}).'
            return f"{text}\n\n🔗 *Link no Google Drive:* {url}"

        if result.is_new:
            text = f'🆕 Card para *"{label}"* foi criado e a mídia foi anexada com sucesso.'
        else:
            text = f'✅ Mídia anexada com sucesso ao Card de *"{label}"* no Trello.'
        return f"{text}\n\n🔗 *URL do Anexo no Cloudinary:* {url}"

    async def handle_message(self, message: IncomingMessage, request_id: Optional[str] = None) -> Dict[str, Any]:
        """Process one gateway message and return a summary of what happened."""

        reason = self._ignore_reason(message)
        if reason:
            return {"status": "ignored", "reason": reason}

        try:
            label = validate_label(message.caption)
        except ValidationError as exc:
            log_warn(SHORT_LABEL_WARNING, chat_id=message.source_id, request_id=request_id, label=message.caption)
            await self.notify(SHORT_LABEL_WARNING, request_id=request_id)
            return {"status": "rejected", "reason": exc.reason}

        # The gateway usually declares the type up front; skip the download then.
        if message.mime_type and not is_supported_media(message.mime_type):
            log_info("Media ignored (not image/video)", request_id=request_id, mimetype=message.mime_type)
            return {"status": "skipped", "reason": "unsupported_media", "mimetype": message.mime_type}

        try:
            media = await self.messenger.download_media(message)
            try:
                mime_type = validate_media_type(media.mimetype)
            except ValidationError:
                log_info("Media ignored (not image/video)", request_id=request_id, mimetype=media.mimetype)
                return {"status": "skipped", "reason": "unsupported_media", "mimetype": media.mimetype}

            async with self.locks.hold(label):
                result = await self.resolver.resolve(label)
                uploaded = await self.storage.upload(
                    media.data,
                    mime_type,
                    folder=self.storage_folder,
                    file_name=self._file_name(label, media),
                )
                metadata = self.build_metadata(label, message, media, uploaded)
                row = await self.writer.write(result, metadata)
        except Exception as exc:  # noqa: BLE001
            log_error(
                "Error in media flow",
                chat_id=message.source_id,
                request_id=request_id,
                label=label,
                error=repr(exc),
            )
            detail = getattr(exc, "message", None) or str(exc)
            await self.notify(
                f'❌ ALERTA DE ERRO: Ocorreu um erro ao processar e anexar a mídia do aluno *"{label}"*: {detail}',
                request_id=request_id,
            )
            return {"status": "failed", "label": label, "error": detail}

        log_info(
            "Media recorded",
            chat_id=message.source_id,
            request_id=request_id,
            label=label,
            record=result.record.title,
            is_new=result.is_new,
            row=row,
        )
        await self.notify(self.success_message(label, result, uploaded.public_url, row), request_id=request_id)
        return {
            "status": "processed",
            "label": label,
            "record": result.to_dict(),
            "url": uploaded.public_url,
            "row": row,
        }
