"""Main entrypoint for the WhatsApp media bridge FastAPI application.

This module wires the bridge into a FastAPI app and exposes the health,
connection-status and gateway webhook endpoints.
"""

import os
from contextlib import asynccontextmanager
from typing import Callable, List, Optional

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi import Request
from fastapi import status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.responses import PlainTextResponse
from pydantic import ValidationError as PayloadValidationError

from src.config.settings import Settings, load_settings
from src.core.bridge import Bridge, build_bridge
from src.models.message import GatewayEvent, GatewayWebhook, IncomingMessage
from src.utils.logger import generate_request_id
from src.utils.logger import log_error
from src.utils.logger import log_info
from src.utils.logger import log_warn


load_dotenv()


def _allowed_origins(settings: Optional[Settings]) -> List[str]:
    if settings is not None:
        return settings.allowed_origins
    raw = os.getenv("ALLOWED_ORIGINS") or ""
    return [o.strip() for o in raw.split(",") if o.strip()]


def create_app(
    settings: Optional[Settings] = None,
    bridge: Optional[Bridge] = None,
    bridge_factory: Callable[[Settings], Bridge] = build_bridge,
) -> FastAPI:
    """Build the application.

    When ``bridge`` is given it is used as-is and left open on shutdown;
    otherwise settings are loaded (``AuthError`` aborts startup) and a bridge
    is built and closed with the app.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if bridge is not None:
            app.state.bridge = bridge
            yield
            return

        owned = bridge_factory(settings or load_settings())
        app.state.bridge = owned
        try:
            yield
        finally:
            await owned.aclose()

    app = FastAPI(title="WhatsApp Media Bridge", version="0.1.0", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=_allowed_origins(settings),
        allow_methods=["GET", "OPTIONS"],
        allow_headers=["Content-Type"],
    )

    @app.get("/", response_class=PlainTextResponse)
    async def root() -> str:
        return "Media bridge is running and ready for health checks."

    @app.get("/health", status_code=status.HTTP_200_OK)
    async def health_check(request: Request) -> dict:
        """Health check endpoint to verify that the service is running."""

        current: Bridge = request.app.state.bridge
        return {"status": "ok", "pipeline": current.settings.pipeline}

    @app.get("/qrcode")
    async def qrcode_status(request: Request) -> dict:
        """Return the pairing QR code (data URL) or the connection status."""

        current: Bridge = request.app.state.bridge
        return {"qr": current.status.value}

    @app.post("/webhook/whatsapp", status_code=status.HTTP_200_OK)
    async def whatsapp_webhook(request: Request) -> dict:
        """Gateway webhook endpoint.

        Always answers 200 so the gateway does not replay deliveries;
        processing errors are logged.
        """

        request_id = generate_request_id()
        request.state.request_id = request_id
        current: Bridge = request.app.state.bridge

        try:
            envelope = GatewayWebhook.model_validate(await request.json())
        except (ValueError, PayloadValidationError) as exc:
            log_warn("Received malformed gateway event", request_id=request_id, error=str(exc))
            return {"status": "ignored", "reason": "malformed"}

        event = envelope.event
        data = envelope.data
        log_info("Received gateway event", request_id=request_id, event_name=event)

        if event == GatewayEvent.QR.value:
            qr = data.get("qr")
            if isinstance(qr, str) and qr:
                current.status.on_qr(qr)
            return {"status": "ok"}
        if event == GatewayEvent.READY.value:
            current.status.on_ready()
            log_info(f"Monitoring only group: {current.settings.target_group_id}", request_id=request_id)
            return {"status": "ok"}
        if event == GatewayEvent.AUTH_FAILURE.value:
            current.status.on_auth_failure(data.get("message"))
            return {"status": "ok"}
        if event == GatewayEvent.DISCONNECTED.value:
            current.status.on_disconnected(data.get("reason"))
            return {"status": "ok"}
        if event != GatewayEvent.MESSAGE.value:
            return {"status": "ignored", "reason": "unknown_event"}

        try:
            message = IncomingMessage.model_validate(data)
        except PayloadValidationError as exc:
            log_warn("Received malformed message event", request_id=request_id, error=str(exc))
            return {"status": "ignored", "reason": "malformed"}

        try:
            result = await current.dispatcher.handle_message(message, request_id=request_id)
        except Exception as exc:  # noqa: BLE001
            log_error("Error while handling gateway message", request_id=request_id, error=repr(exc))
            return {"status": "error"}

        return {"status": "ok", "result": result}

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Catch-all handler for uncaught exceptions."""

        request_id = getattr(request.state, "request_id", None)
        log_error("Unhandled exception", request_id=request_id, error=str(exc))

        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": "Internal server error"},
        )

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "main:app",
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "3000")),
    )
