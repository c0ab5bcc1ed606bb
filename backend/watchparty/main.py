import logging
from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
import socketio
from watchparty import config
from watchparty.exceptions import SessionNotFound
from watchparty.models.session import SessionSnapshot
from watchparty.services import media
from watchparty.services.coordinator import SessionCoordinator
from watchparty.services.rooms import RoomBroadcaster
from watchparty.services.session import SessionRegistry

# Configure logging
logging.basicConfig(level=config.LOG_LEVEL)
logger = logging.getLogger(__name__)

origins = config.ALLOWED_ORIGINS

app = FastAPI()

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

sio = socketio.AsyncServer(async_mode='asgi', cors_allowed_origins=origins if origins != ["*"] else "*")
socket_app = socketio.ASGIApp(sio, app)

registry = SessionRegistry()
rooms = RoomBroadcaster(sio)
coordinator = SessionCoordinator(
    registry,
    rooms,
    media_validator=media.can_play if config.VALIDATE_MEDIA else None,
)
coordinator.register(sio)


# REST API
@app.get("/api/health")
async def health():
    return {"status": "ok", "sessions": len(registry)}


@app.get("/api/session/{session_id}", response_model=SessionSnapshot)
async def get_session(session_id: str):
    try:
        return registry.snapshot(session_id)
    except SessionNotFound:
        raise HTTPException(status_code=404, detail="Session not found")


@app.get("/api/can_play")
async def check_media(url: str):
    return {"playable": media.can_play(url)}


def run():
    import uvicorn

    logger.info(f"Starting watch party server on {config.HOST}:{config.PORT}")
    uvicorn.run(socket_app, host=config.HOST, port=config.PORT)


if __name__ == "__main__":
    run()
