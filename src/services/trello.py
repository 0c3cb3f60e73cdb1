"""Trello card store for the media bridge.

Cards on one board act as records: the resolver lists them, creates a card
in the configured list when no title matches, and the writer attaches the
public media URL to the resolved card.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import httpx

from src.core.errors import TransportError
from src.models.records import MatchPolicy, Record, WriteStyle
from src.services.http import request_json
from src.utils.format import format_pt_br_datetime
from src.utils.logger import get_logger


_TRELLO_BASE_URL = "https://api.trello.com/1"

logger = get_logger("media_bridge.trello")


class TrelloCardStore:
    """Attachment-style record store backed by a Trello board."""

    match_policy = MatchPolicy.SUBSTRING
    write_style = WriteStyle.ATTACHMENT

    def __init__(
        self,
        client: httpx.AsyncClient,
        api_key: str,
        token: str,
        board_id: str,
        list_id: str,
        tz_name: str = "America/Sao_Paulo",
    ) -> None:
        self.client = client
        self.api_key = api_key
        self.token = token
        self.board_id = board_id
        self.list_id = list_id
        self.tz_name = tz_name

    def _auth_params(self) -> Dict[str, str]:
        return {"key": self.api_key, "token": self.token}

    async def list_cards(self, board_id: Optional[str] = None) -> List[Dict[str, Any]]:
        """Return ``[{id, name}]`` for every open card on the board."""

        params = self._auth_params()
        params["fields"] = "name,id"
        cards = await request_json(
            self.client,
            "GET",
            f"{_TRELLO_BASE_URL}/boards/{board_id or self.board_id}/cards",
            params=params,
            context="list Trello cards",
        )
        return cards if isinstance(cards, list) else []

    async def create_card(self, list_id: str, title: str, description: str) -> Dict[str, Any]:
        card = await request_json(
            self.client,
            "POST",
            f"{_TRELLO_BASE_URL}/cards",
            params={**self._auth_params(), "idList": list_id},
            json_body={"name": title, "desc": description},
            headers={"Accept": "application/json"},
            context="create Trello card",
        )
        card = card if isinstance(card, dict) else {}
        logger.info("Card created for '%s'. ID: %s", title, card.get("id"))
        return card

    async def attach_url(self, card_id: str, title: str, url: str) -> None:
        await request_json(
            self.client,
            "POST",
            f"{_TRELLO_BASE_URL}/cards/{card_id}/attachments",
            params=self._auth_params(),
            json_body={"url": url, "name": title},
            headers={"Accept": "application/json"},
            context="attach URL to Trello card",
        )
        logger.info("Attachment added to card %s", card_id)

    # RecordStore interface ---------------------------------------------------

    async def list_records(self) -> List[Record]:
        return [
            Record(id=str(card["id"]), title=str(card.get("name") or ""))
            for card in await self.list_cards()
            if isinstance(card, dict) and card.get("id")
        ]

    async def create_record(self, title: str) -> Record:
        description = (
            f"Card criado automaticamente após receber a primeira mídia de {title} "
            f"em {format_pt_br_datetime(tz_name=self.tz_name)}."
        )
        card = await self.create_card(self.list_id, title, description)
        if not card.get("id"):
            raise TransportError(f"Trello returned no card id for '{title}'")
        return Record(id=str(card.get("id") or ""), title=str(card.get("name") or title))
