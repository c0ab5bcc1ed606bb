import logging
import uuid
from typing import Awaitable, Callable, Optional
import socketio
from pydantic import ValidationError
from watchparty.client.reconciler import ReconciliationEngine, VideoPlayer
from watchparty.exceptions import InvalidMedia, SessionAlreadyExists, WatchPartyError
from watchparty.models.session import PlayerState
from watchparty.models import events
from watchparty.services.media import ensure_playable

logger = logging.getLogger(__name__)

ACK_TIMEOUT = 10


class WatchSessionClient:
    """
    One viewer of a watch session.

    Forwards player notifications to a ReconciliationEngine and relays what
    it decides to the server; states pushed by the server go the other way.
    """

    def __init__(self, player: VideoPlayer, sio: Optional[socketio.AsyncClient] = None,
                 on_url: Optional[Callable[[str], Awaitable[None]]] = None,
                 on_not_found: Optional[Callable[[], Awaitable[None]]] = None):
        self.player = player
        self.sio = sio or socketio.AsyncClient()
        self.engine = ReconciliationEngine(player)
        self.session_id: Optional[str] = None
        self.media_ref: Optional[str] = None
        self.watching = False
        self.on_url = on_url
        self.on_not_found = on_not_found

        self.sio.on(events.UPDATE_URL, self._handle_update_url)
        self.sio.on(events.SESSION_NOT_FOUND, self._handle_session_not_found)
        self.sio.on(events.SET_PLAYER_STATE, self._handle_set_player_state)

    async def connect(self, url: str):
        await self.sio.connect(url)

    async def disconnect(self):
        await self.sio.disconnect()

    async def create_session(self, media_ref: str) -> str:
        media_ref = ensure_playable(media_ref)
        session_id = str(uuid.uuid4())
        ack = await self.sio.call(events.CREATE_SESSION, (session_id, media_ref), timeout=ACK_TIMEOUT)
        if not ack or not ack.get("ok"):
            error = (ack or {}).get("error")
            if error == "already_exists":
                raise SessionAlreadyExists(session_id)
            if error == "invalid_media":
                raise InvalidMedia(media_ref)
            raise WatchPartyError(f"Could not create session: {error}")
        logger.info(f"Created session {session_id}")
        return session_id

    async def join_session(self, session_id: str):
        if self.session_id and self.session_id != session_id:
            await self.leave_session()
        self.session_id = session_id
        await self.sio.emit(events.JOIN_SESSION, session_id)

    async def leave_session(self):
        if self.session_id is None:
            return
        session_id = self.session_id
        # Corrections from the old session must not reach the player any more
        self.session_id = None
        self.media_ref = None
        self.watching = False
        self.engine.reset()
        await self.sio.emit(events.LEAVE_SESSION, session_id)

    async def switch_url(self, media_ref: str):
        media_ref = ensure_playable(media_ref)
        ack = await self.sio.call(events.SWITCH_URL, media_ref, timeout=ACK_TIMEOUT)
        if not ack or not ack.get("ok"):
            error = (ack or {}).get("error")
            if error == "invalid_media":
                raise InvalidMedia(media_ref)
            raise WatchPartyError(f"Could not switch media: {error}")

    async def start_watching(self) -> bool:
        """Ask the server for the session state. Returns True on a cold start."""
        self.watching = True
        ack = await self.sio.call(events.PLAYER_STATE_INIT, timeout=ACK_TIMEOUT)
        cold_start = bool(ack and ack.get("cold_start"))
        if cold_start:
            # First viewer: this player is the reference now
            self.player.set_playing(True)
        return cold_start

    async def on_progress(self, played_seconds: float):
        if not self.watching:
            return
        outbound = self.engine.on_progress(self.player.is_playing(), played_seconds)
        if outbound is not None:
            logger.info(f"Emitting player state {outbound.to_wire()}")
            await self.sio.emit(events.PLAYER_STATE_CHANGED, outbound.to_wire())

    def on_play(self):
        self.engine.on_play()

    def on_pause(self):
        self.engine.on_pause()

    def on_ended(self):
        self.engine.on_ended()

    async def _handle_update_url(self, media_ref):
        if self.media_ref is not None and media_ref != self.media_ref:
            # New video, the old timeline means nothing
            self.engine.reset()
        self.media_ref = media_ref
        if self.on_url is not None:
            await self.on_url(media_ref)

    async def _handle_session_not_found(self):
        logger.warning(f"Session {self.session_id} not found")
        self.session_id = None
        self.watching = False
        self.engine.reset()
        if self.on_not_found is not None:
            await self.on_not_found()

    async def _handle_set_player_state(self, data):
        if self.session_id is None:
            logger.debug(f"Dropping player state {data} outside of a session")
            return
        try:
            state = PlayerState.model_validate(data)
        except ValidationError as e:
            logger.warning(f"Invalid player state from server: {e}")
            return
        self.engine.apply_remote_state(state)
