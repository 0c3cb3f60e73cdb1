"""Runtime settings for the media bridge.

Settings are read from the environment (``.env`` is loaded by the entry
points with ``python-dotenv``). Each media pipeline needs a different set of
credentials; :func:`load_settings` fails fast with :class:`AuthError` naming
every missing variable so the process never starts half-configured.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional

from src.core.errors import AuthError


PIPELINE_TRELLO = "trello"
PIPELINE_SHEETS = "sheets"
SUPPORTED_PIPELINES = (PIPELINE_TRELLO, PIPELINE_SHEETS)

DEFAULT_CLOUDINARY_FOLDER = "whatsapp_trello_anexos"
DEFAULT_HTTP_TIMEOUT = 15.0
DEFAULT_SESSION = "default"

_GATEWAY_VARS = ["WHATSAPP_API_URL", "TARGET_GROUP_ID", "OPERATOR_CHAT_ID"]
_TRELLO_VARS = [
    "TRELLO_API_KEY",
    "TRELLO_AUTH_TOKEN",
    "TRELLO_BOARD_ID",
    "TRELLO_LIST_ID",
    "CLOUDINARY_CLOUD_NAME",
    "CLOUDINARY_API_KEY",
    "CLOUDINARY_API_SECRET",
]
_SHEETS_VARS = ["GOOGLE_DRIVE_FOLDER_ID", "GOOGLE_SPREADSHEET_ID"]


@dataclass
class GoogleCredentials:
    """Service-account credentials, either inline or from a key file."""

    client_email: Optional[str] = None
    private_key: Optional[str] = None
    service_account_file: Optional[str] = None

    @property
    def configured(self) -> bool:
        return bool(self.service_account_file) or bool(self.client_email and self.private_key)


@dataclass
class Settings:
    pipeline: str = PIPELINE_TRELLO
    target_group_id: str = ""
    operator_chat_id: str = ""

    whatsapp_api_url: str = ""
    whatsapp_api_key: Optional[str] = None
    whatsapp_session: str = DEFAULT_SESSION

    trello_api_key: str = ""
    trello_auth_token: str = ""
    trello_board_id: str = ""
    trello_list_id: str = ""

    cloudinary_cloud_name: str = ""
    cloudinary_api_key: str = ""
    cloudinary_api_secret: str = ""
    cloudinary_folder: str = DEFAULT_CLOUDINARY_FOLDER

    google: GoogleCredentials = field(default_factory=GoogleCredentials)
    drive_folder_id: str = ""
    spreadsheet_id: str = ""
    sheet_name_map: Dict[str, str] = field(default_factory=dict)

    allowed_origins: List[str] = field(default_factory=list)
    http_timeout: float = DEFAULT_HTTP_TIMEOUT
    display_timezone: str = "America/Sao_Paulo"


def _get(env: Mapping[str, str], name: str, default: str = "") -> str:
    return (env.get(name) or default).strip()


def _parse_sheet_name_map(raw: str) -> Dict[str, str]:
    if not raw:
        return {}
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise AuthError(f"SHEET_NAME_MAP is not valid JSON: {exc.msg}") from exc
    if not isinstance(data, dict):
        raise AuthError("SHEET_NAME_MAP must be a JSON object")
    return {str(k).strip().lower(): str(v) for k, v in data.items()}


def _parse_timeout(raw: str) -> float:
    if not raw:
        return DEFAULT_HTTP_TIMEOUT
    try:
        return float(raw)
    except ValueError as exc:
        raise AuthError(f"HTTP_TIMEOUT_SECONDS must be a number, got {raw!r}") from exc


def load_google_credentials(env: Optional[Mapping[str, str]] = None) -> GoogleCredentials:
    env = os.environ if env is None else env
    private_key = _get(env, "GOOGLE_PRIVATE_KEY")
    return GoogleCredentials(
        client_email=_get(env, "GOOGLE_CLIENT_EMAIL") or None,
        # Keys pasted into .env files carry literal "\n" sequences.
        private_key=private_key.replace("\\n", "\n") or None,
        service_account_file=_get(env, "GOOGLE_SERVICE_ACCOUNT_FILE") or None,
    )


def required_variables(pipeline: str, include_gateway: bool = True) -> List[str]:
    names: List[str] = list(_GATEWAY_VARS) if include_gateway else []
    if pipeline == PIPELINE_TRELLO:
        names.extend(_TRELLO_VARS)
    else:
        names.extend(_SHEETS_VARS)
    return names


def load_settings(
    env: Optional[Mapping[str, str]] = None,
    include_gateway: bool = True,
    pipeline: Optional[str] = None,
) -> Settings:
    """Build :class:`Settings` from ``env`` (defaults to ``os.environ``).

    ``include_gateway=False`` skips the WhatsApp variables, for one-shot jobs
    that only talk to Google. ``pipeline`` overrides ``MEDIA_PIPELINE``.

    Raises:
        AuthError: if the pipeline is unknown or a required variable is unset.
    """

    env = os.environ if env is None else env

    selected = (pipeline or _get(env, "MEDIA_PIPELINE", PIPELINE_TRELLO)).lower()
    if selected not in SUPPORTED_PIPELINES:
        raise AuthError(
            f"Unknown MEDIA_PIPELINE '{selected}'. Expected one of: {', '.join(SUPPORTED_PIPELINES)}"
        )

    missing = [name for name in required_variables(selected, include_gateway) if not _get(env, name)]

    google = load_google_credentials(env)
    if selected == PIPELINE_SHEETS and not google.configured:
        missing.append("GOOGLE_CLIENT_EMAIL/GOOGLE_PRIVATE_KEY or GOOGLE_SERVICE_ACCOUNT_FILE")

    if missing:
        raise AuthError(
            f"Missing required environment variables: {', '.join(missing)}",
            details={"missing": missing, "pipeline": selected},
        )

    origins = [o.strip() for o in _get(env, "ALLOWED_ORIGINS").split(",") if o.strip()]

    return Settings(
        pipeline=selected,
        target_group_id=_get(env, "TARGET_GROUP_ID"),
        operator_chat_id=_get(env, "OPERATOR_CHAT_ID"),
        whatsapp_api_url=_get(env, "WHATSAPP_API_URL").rstrip("/"),
        whatsapp_api_key=_get(env, "WHATSAPP_API_KEY") or None,
        whatsapp_session=_get(env, "WHATSAPP_SESSION", DEFAULT_SESSION),
        trello_api_key=_get(env, "TRELLO_API_KEY"),
        trello_auth_token=_get(env, "TRELLO_AUTH_TOKEN"),
        trello_board_id=_get(env, "TRELLO_BOARD_ID"),
        trello_list_id=_get(env, "TRELLO_LIST_ID"),
        cloudinary_cloud_name=_get(env, "CLOUDINARY_CLOUD_NAME"),
        cloudinary_api_key=_get(env, "CLOUDINARY_API_KEY"),
        cloudinary_api_secret=_get(env, "CLOUDINARY_API_SECRET"),
        cloudinary_folder=_get(env, "CLOUDINARY_FOLDER", DEFAULT_CLOUDINARY_FOLDER),
        google=google,
        drive_folder_id=_get(env, "GOOGLE_DRIVE_FOLDER_ID"),
        spreadsheet_id=_get(env, "GOOGLE_SPREADSHEET_ID"),
        sheet_name_map=_parse_sheet_name_map(_get(env, "SHEET_NAME_MAP")),
        allowed_origins=origins,
        http_timeout=_parse_timeout(_get(env, "HTTP_TIMEOUT_SECONDS")),
        display_timezone=_get(env, "DISPLAY_TIMEZONE", "America/Sao_Paulo"),
    )
