import unittest
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

from fastapi.testclient import TestClient

from main import create_app
from src.config.settings import Settings
from src.services.whatsapp import ConnectionStatus


GROUP = "120363421997659113@g.us"


def _bridge(result=None, error=None):
    dispatcher = MagicMock()
    dispatcher.handle_message = AsyncMock(return_value=result, side_effect=error)
    return SimpleNamespace(
        settings=Settings(pipeline="trello", target_group_id=GROUP),
        status=ConnectionStatus(),
        dispatcher=dispatcher,
    )


MESSAGE_EVENT = {
    "event": "message",
    "data": {
        "id": "msg-1",
        "from": GROUP,
        "body": "Ana Lima",
        "hasMedia": True,
        "timestamp": 1714566600,
        "media": {"url": "/api/files/msg-1.jpeg", "mimetype": "image/jpeg"},
    },
}


class TestHttpSurface(unittest.TestCase):
    def test_root_and_health(self):
        bridge = _bridge()
        with TestClient(create_app(settings=bridge.settings, bridge=bridge)) as client:
            root = client.get("/")
            health = client.get("/health")

        self.assertEqual(root.status_code, 200)
        self.assertIn("running", root.text)
        self.assertEqual(health.json(), {"status": "ok", "pipeline": "trello"})

    def test_connection_events_update_qrcode_status(self):
        bridge = _bridge()
        with TestClient(create_app(settings=bridge.settings, bridge=bridge)) as client:
            self.assertEqual(client.get("/qrcode").json(), {"qr": ""})

            client.post("/webhook/whatsapp", json={"event": "qr", "data": {"qr": "2@pairing"}})
            self.assertTrue(client.get("/qrcode").json()["qr"].startswith("data:image/png;base64,"))

            client.post("/webhook/whatsapp", json={"event": "ready", "data": {}})
            self.assertEqual(client.get("/qrcode").json(), {"qr": "READY"})

            client.post("/webhook/whatsapp", json={"event": "disconnected", "data": {"reason": "LOGOUT"}})
            self.assertEqual(client.get("/qrcode").json(), {"qr": "DISCONNECTED"})

            client.post("/webhook/whatsapp", json={"event": "auth_failure", "data": {"message": "bad"}})
            self.assertEqual(client.get("/qrcode").json(), {"qr": "AUTH_FAILURE"})


class TestWebhook(unittest.TestCase):
    def test_message_is_dispatched(self):
        bridge = _bridge(result={"status": "processed", "label": "Ana Lima"})
        with TestClient(create_app(settings=bridge.settings, bridge=bridge)) as client:
            resp = client.post("/webhook/whatsapp", json=MESSAGE_EVENT)

        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["result"]["status"], "processed")
        message = bridge.dispatcher.handle_message.await_args.args[0]
        self.assertEqual(message.source_id, GROUP)
        self.assertEqual(message.caption, "Ana Lima")
        self.assertEqual(message.mime_type, "image/jpeg")

    def test_malformed_and_unknown_events_are_ignored(self):
        bridge = _bridge()
        with TestClient(create_app(settings=bridge.settings, bridge=bridge)) as client:
            bad_json = client.post(
                "/webhook/whatsapp", content=b"not json", headers={"Content-Type": "application/json"}
            )
            no_from = client.post("/webhook/whatsapp", json={"event": "message", "data": {"body": "x"}})
            unknown = client.post("/webhook/whatsapp", json={"event": "presence", "data": {}})

        self.assertEqual(bad_json.json(), {"status": "ignored", "reason": "malformed"})
        self.assertEqual(no_from.json(), {"status": "ignored", "reason": "malformed"})
        self.assertEqual(unknown.json(), {"status": "ignored", "reason": "unknown_event"})
        bridge.dispatcher.handle_message.assert_not_awaited()

    def test_dispatcher_crash_still_answers_200(self):
        bridge = _bridge(error=RuntimeError("boom"))
        with TestClient(create_app(settings=bridge.settings, bridge=bridge)) as client:
            resp = client.post("/webhook/whatsapp", json=MESSAGE_EVENT)

        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json(), {"status": "error"})


if __name__ == "__main__":
    unittest.main()
