import asyncio
import logging
from typing import Callable, Optional
from pydantic import ValidationError
from watchparty.exceptions import SessionAlreadyExists, SessionNotFound
from watchparty.models.events import (
    CREATE_SESSION,
    JOIN_SESSION,
    LEAVE_SESSION,
    PLAYER_STATE_CHANGED,
    PLAYER_STATE_INIT,
    SESSION_NOT_FOUND,
    SET_PLAYER_STATE,
    SWITCH_URL,
    UPDATE_URL,
)
from watchparty.models.session import PlayerState
from watchparty.services.rooms import RoomBroadcaster
from watchparty.services.session import SessionRegistry

logger = logging.getLogger(__name__)


class SessionCoordinator:
    """
    Server side event handlers for watch sessions.

    Wires client events to the registry and the room broadcaster. A session
    goes from created (not started) to active once its first member starts
    playback, and lives until its room is empty.
    """

    def __init__(self, registry: SessionRegistry, rooms: RoomBroadcaster,
                 media_validator: Optional[Callable[[str], bool]] = None):
        self.registry = registry
        self.rooms = rooms
        self.media_validator = media_validator
        rooms.on_room_empty(self.room_empty)

    def register(self, sio):
        sio.on("connect", self.connect)
        sio.on("disconnect", self.disconnect)
        sio.on(CREATE_SESSION, self.create_session)
        sio.on(JOIN_SESSION, self.join_session)
        sio.on(LEAVE_SESSION, self.leave_session)
        sio.on(SWITCH_URL, self.switch_url)
        sio.on(PLAYER_STATE_INIT, self.player_state_init)
        sio.on(PLAYER_STATE_CHANGED, self.player_state_changed)

    async def _playable(self, media_ref) -> bool:
        if not isinstance(media_ref, str) or not media_ref:
            return False
        if self.media_validator is None:
            return True
        # Extractor matching is CPU bound, keep it off the event loop
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self.media_validator, media_ref)

    def _sessions_of(self, sid: str):
        # A connection normally sits in at most one session room
        return sorted(room for room in self.rooms.rooms_of(sid) if room in self.registry)

    async def connect(self, sid, environ=None, auth=None):
        logger.info(f"Client {sid} connected")

    async def disconnect(self, sid, reason=None):
        try:
            logger.info(f"Client {sid} disconnected")
            await self.rooms.disconnect(sid)
        except Exception as e:
            logger.error(f"Error in disconnect: {e}", exc_info=True)

    async def create_session(self, sid, session_id, media_ref):
        try:
            if not await self._playable(media_ref):
                logger.warning(f"Rejected session {session_id}: unplayable media {media_ref!r}")
                return {"ok": False, "error": "invalid_media"}
            self.registry.create(session_id, media_ref)
            return {"ok": True}
        except SessionAlreadyExists:
            logger.warning(f"Client {sid} tried to recreate session {session_id}")
            return {"ok": False, "error": "already_exists"}
        except Exception as e:
            logger.error(f"Error in create_session: {e}", exc_info=True)
            return {"ok": False, "error": "internal"}

    async def join_session(self, sid, session_id):
        try:
            session = self.registry.find(session_id)
            if session is None:
                logger.warning(f"Session {session_id} not found for join request")
                await self.rooms.reply(sid, SESSION_NOT_FOUND)
                return
            await self.rooms.join(sid, session_id)
            logger.info(f"Client {sid} joined session {session_id}")
            await self.rooms.reply(sid, UPDATE_URL, session.media_ref)
        except Exception as e:
            logger.error(f"Error in join_session: {e}", exc_info=True)

    async def leave_session(self, sid, session_id):
        try:
            await self.rooms.leave(sid, session_id)
            logger.info(f"Client {sid} left session {session_id}")
        except Exception as e:
            logger.error(f"Error in leave_session: {e}", exc_info=True)

    async def switch_url(self, sid, media_ref):
        try:
            if not await self._playable(media_ref):
                logger.warning(f"Client {sid} sent unplayable media {media_ref!r}")
                return {"ok": False, "error": "invalid_media"}
            sessions = self._sessions_of(sid)
            if not sessions:
                await self.rooms.reply(sid, SESSION_NOT_FOUND)
                return {"ok": False, "error": "not_found"}
            for session_id in sessions:
                async with self.registry.lock(session_id):
                    self.registry.switch_media(session_id, media_ref)
                    await self.rooms.broadcast_all(session_id, UPDATE_URL, media_ref)
            return {"ok": True}
        except SessionNotFound as e:
            logger.warning(str(e))
            return {"ok": False, "error": "not_found"}
        except Exception as e:
            logger.error(f"Error in switch_url: {e}", exc_info=True)
            return {"ok": False, "error": "internal"}

    async def player_state_init(self, sid):
        """Sync a member that is ready to play, or tell it to start cold."""
        try:
            sessions = self._sessions_of(sid)
            if not sessions:
                await self.rooms.reply(sid, SESSION_NOT_FOUND)
                return {"cold_start": False}

            cold_start = False
            for session_id in sessions:
                async with self.registry.lock(session_id):
                    session = self.registry.get(session_id)
                    if session.started:
                        state = PlayerState(playing=session.playing,
                                            position=self.registry.current_position(session_id))
                        await self.rooms.reply(sid, SET_PLAYER_STATE, state.to_wire())
                        logger.info(f"Client {sid} syncing with state {state.to_wire()}")
                    else:
                        # Nothing to sync to yet, the caller becomes the reference
                        self.registry.mark_bootstrapped(session_id)
                        cold_start = True
                        logger.info(f"First client {sid} started session {session_id}")
            return {"cold_start": cold_start}
        except SessionNotFound as e:
            logger.warning(str(e))
            await self.rooms.reply(sid, SESSION_NOT_FOUND)
            return {"cold_start": False}
        except Exception as e:
            logger.error(f"Error in player_state_init: {e}", exc_info=True)
            return {"cold_start": False}

    async def player_state_changed(self, sid, data):
        try:
            state = PlayerState.model_validate(data)
        except ValidationError as e:
            logger.warning(f"Invalid player state from {sid}: {e}")
            return
        try:
            sessions = self._sessions_of(sid)
            if not sessions:
                await self.rooms.reply(sid, SESSION_NOT_FOUND)
                return
            for session_id in sessions:
                async with self.registry.lock(session_id):
                    self.registry.apply_state_change(session_id, state.playing, state.position)
                    # Peers get what the sender intended, not the recomputed reference
                    await self.rooms.broadcast_excluding_self(sid, session_id, SET_PLAYER_STATE, state.to_wire())
            logger.info(f"Player state changed to {state.to_wire()} by {sid}")
        except SessionNotFound as e:
            logger.warning(str(e))
        except Exception as e:
            logger.error(f"Error in player_state_changed: {e}", exc_info=True)

    async def room_empty(self, room: str):
        if room in self.registry:
            self.registry.remove(room)
