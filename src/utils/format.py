"""Formatting helpers for the media bridge.

pt-BR date rendering for card descriptions, attachment titles and sheet
rows, plus file-name helpers.
"""

from datetime import datetime, timezone
from typing import Optional
from zoneinfo import ZoneInfo


DEFAULT_TIMEZONE = "America/Sao_Paulo"


def _localize(moment: Optional[datetime], tz_name: str) -> datetime:
    moment = moment or datetime.now(timezone.utc)
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(ZoneInfo(tz_name))


def format_pt_br_date(moment: Optional[datetime] = None, tz_name: str = DEFAULT_TIMEZONE) -> str:
    """Render ``moment`` as ``dd/mm/yyyy`` in ``tz_name``."""

    return _localize(moment, tz_name).strftime("%d/%m/%Y")


def format_pt_br_datetime(moment: Optional[datetime] = None, tz_name: str = DEFAULT_TIMEZONE) -> str:
    """Render ``moment`` as ``dd/mm/yyyy, HH:MM:SS`` in ``tz_name``."""

    return _localize(moment, tz_name).strftime("%d/%m/%Y, %H:%M:%S")


def parse_rfc3339(value: Optional[str]) -> Optional[datetime]:
    """Parse a Google API timestamp such as ``2024-05-01T12:30:00.000Z``."""

    if not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None


def extension_for_mime(mime_type: str) -> str:
    """Return the subtype of a MIME type as a file extension (``dat`` if absent)."""

    subtype = (mime_type or "").split("/", 1)[1] if "/" in (mime_type or "") else ""
    subtype = subtype.split(";", 1)[0].strip()
    return subtype or "dat"


def strip_extension(file_name: str) -> str:
    """Return ``file_name`` without its last extension.

    ``"maria.souza.jpg"`` becomes ``"maria.souza"``; a name without a dot is
    returned unchanged.
    """

    if "." not in file_name:
        return file_name
    return file_name.rsplit(".", 1)[0]
