# main.py
import asyncio
import logging
import uuid
from contextlib import asynccontextmanager
from typing import Any, Mapping, Optional

from fastapi import FastAPI, HTTPException, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from pydantic import ValidationError

import codec
from config import settings
from dispatcher import EventDispatcher
from hub import Hub
from models import DecodeRequest, EncodeRequest, Frame
from notifier import EmailNotifier

log = logging.getLogger("messagecaller.main")


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def create_app(config: Optional[Mapping[str, Any]] = None) -> FastAPI:
    """Build the relay app; every call gets its own, empty in-memory state."""
    config = settings if config is None else config

    hub = Hub()
    notifier = EmailNotifier(config)
    dispatcher = EventDispatcher(hub.emit, notifier=notifier)

    # -------------------- lifespan (startup/shutdown) --------------------
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        log.info("MessageCaller relay ready (email notifications %s)",
                 "on" if notifier.enabled else "off")
        try:
            yield
        finally:
            await notifier.aclose()

    app = FastAPI(title="MessageCaller Relay", lifespan=lifespan)
    app.add_middleware(CORSMiddleware, allow_origins=list(config.get("cors_origins", ["*"])),
                       allow_methods=["GET", "POST"], allow_headers=["*"])
    app.state.dispatcher = dispatcher
    app.state.hub = hub
    app.state.notifier = notifier

    # -------------------- WebSocket event channel --------------------
    @app.websocket("/ws")
    async def ws_endpoint(ws: WebSocket):
        await ws.accept()
        session_id = uuid.uuid4().hex
        outbox = hub.attach(session_id, ws)
        writer = asyncio.create_task(outbox.pump())
        dispatcher.connect(session_id)
        try:
            while True:
                raw = await ws.receive_text()
                try:
                    frame = Frame.model_validate_json(raw)
                except ValidationError:
                    dispatcher.error(session_id, "Malformed frame")
                    continue
                dispatcher.dispatch(session_id, frame.event, frame.data)
        except WebSocketDisconnect:
            pass
        finally:
            dispatcher.disconnect(session_id)
            hub.detach(session_id)
            writer.cancel()
            await asyncio.gather(writer, return_exceptions=True)

    # -------------------- API endpoints --------------------

    @app.get("/health")
    async def health():
        return {
            "ok": True,
            "users": len(dispatcher.directory),
            "sessions": len(dispatcher.sessions),
            "pendingSignIns": len(dispatcher.arbiter),
        }

    @app.get("/api/user/{number}")
    async def get_user(number: str):
        user = dispatcher.directory.get(number)
        if user is None:
            raise HTTPException(status_code=404, detail="User not found")
        return user.public().model_dump()

    @app.post("/api/encode")
    async def encode_text(data: EncodeRequest):
        if not data.text:
            raise HTTPException(status_code=400, detail="Text is required")
        return {"encoded": codec.encode(data.text)}

    @app.post("/api/decode")
    async def decode_text(data: DecodeRequest):
        if not data.encoded:
            raise HTTPException(status_code=400, detail="Encoded text is required")
        try:
            decoded = codec.decode(data.encoded)
        except ValueError:
            raise HTTPException(status_code=400, detail="Invalid encoded format")
        return {"decoded": decoded}

    return app


configure_logging(settings.get("log_level", "INFO"))
app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=settings["host"], port=int(settings["port"]))
