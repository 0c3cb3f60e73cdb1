import asyncio
import json
import unittest
from typing import List

import httpx

from src.core.errors import TransportError
from src.models.message import IncomingMessage
from src.services.whatsapp import ConnectionStatus, WhatsAppGateway


def _gateway(handler, api_key=None) -> WhatsAppGateway:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return WhatsAppGateway(client, "http://gateway:3000/", session="bridge", api_key=api_key)


def _message(url="/api/files/msg-1.jpeg", mimetype="image/jpeg") -> IncomingMessage:
    return IncomingMessage.model_validate(
        {
            "id": "msg-1",
            "from": "120363421997659113@g.us",
            "body": "Ana Lima",
            "hasMedia": True,
            "media": {"url": url, "mimetype": mimetype, "filename": None},
        }
    )


class TestWhatsAppGateway(unittest.TestCase):
    def test_send_message_posts_text_with_api_key(self):
        seen: List[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(201, json={"id": "out-1"})

        async def run():
            await _gateway(handler, api_key="secret").send_message("5519992897178@c.us", "ok")

            request = seen[0]
            self.assertEqual(str(request.url), "http://gateway:3000/api/sendText")
            self.assertEqual(request.headers["X-Api-Key"], "secret")
            self.assertEqual(
                json.loads(request.content),
                {"session": "bridge", "chatId": "5519992897178@c.us", "text": "ok"},
            )

        asyncio.run(run())

    def test_download_media_resolves_relative_url(self):
        seen: List[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, content=b"\xff\xd8", headers={"content-type": "image/jpeg"})

        async def run():
            media = await _gateway(handler).download_media(_message())

            self.assertEqual(str(seen[0].url), "http://gateway:3000/api/files/msg-1.jpeg")
            self.assertEqual(media.data, b"\xff\xd8")
            self.assertEqual(media.mimetype, "image/jpeg")

        asyncio.run(run())

    def test_download_media_uses_response_type_when_undeclared(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, content=b"OggS", headers={"content-type": "audio/ogg; codecs=opus"})

        async def run():
            media = await _gateway(handler).download_media(_message(url="http://cdn/x", mimetype=None))
            self.assertEqual(media.mimetype, "audio/ogg")

        asyncio.run(run())

    def test_download_without_url_fails(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise AssertionError("no request expected")

        async def run():
            with self.assertRaises(TransportError):
                await _gateway(handler).download_media(_message(url=None))

        asyncio.run(run())

    def test_list_groups_keeps_group_chats_only(self):
        def handler(request: httpx.Request) -> httpx.Response:
            self.assertEqual(request.url.path, "/api/bridge/chats")
            return httpx.Response(
                200,
                json=[
                    {"id": "120363421997659113@g.us", "name": "Turma A"},
                    {"id": {"_serialized": "120363000000000000@g.us"}, "name": "Turma B"},
                    {"id": "5519992897178@c.us", "name": "Operador"},
                ],
            )

        async def run():
            groups = await _gateway(handler).list_groups()
            self.assertEqual(
                groups,
                [
                    {"id": "120363421997659113@g.us", "name": "Turma A"},
                    {"id": "120363000000000000@g.us", "name": "Turma B"},
                ],
            )

        asyncio.run(run())


class TestConnectionStatus(unittest.TestCase):
    def test_transitions(self):
        status = ConnectionStatus()
        self.assertEqual(status.value, "")

        status.on_qr("2@pairing-code")
        self.assertTrue(status.value.startswith("data:image/png;base64,"))
        self.assertFalse(status.is_ready)

        status.on_ready()
        self.assertTrue(status.is_ready)

        status.on_disconnected("NAVIGATION")
        self.assertEqual(status.value, "DISCONNECTED")

        status.on_auth_failure("bad session")
        self.assertEqual(status.value, "AUTH_FAILURE")


if __name__ == "__main__":
    unittest.main()
