import asyncio
import logging
import time
from typing import Callable, Dict, Optional
from watchparty.exceptions import SessionAlreadyExists, SessionNotFound
from watchparty.models.session import Session, SessionSnapshot
from watchparty.services.position import extrapolate

logger = logging.getLogger(__name__)


class SessionRegistry:
    """Authoritative playback state of every session, keyed by session id.

    Mutators are plain synchronous methods, so each one is atomic on the event
    loop. Callers that must keep a mutation and the broadcast that follows it
    in order take the per-session lock from `lock()`.
    """

    def __init__(self, clock: Callable[[], float] = time.time):
        self._clock = clock
        self._sessions: Dict[str, Session] = {}
        self._locks: Dict[str, asyncio.Lock] = {}

    def __contains__(self, session_id: str) -> bool:
        return session_id in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)

    def lock(self, session_id: str) -> asyncio.Lock:
        lock = self._locks.get(session_id)
        if lock is None:
            lock = self._locks[session_id] = asyncio.Lock()
        return lock

    def create(self, session_id: str, media_ref: str) -> Session:
        if session_id in self._sessions:
            raise SessionAlreadyExists(session_id)
        session = Session(id=session_id, media_ref=media_ref, reference_wall_time=self._clock())
        self._sessions[session_id] = session
        logger.info(f"Created session {session_id} with media {media_ref}")
        return session

    def get(self, session_id: str) -> Session:
        session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFound(session_id)
        return session

    def find(self, session_id: str) -> Optional[Session]:
        return self._sessions.get(session_id)

    def current_position(self, session_id: str) -> float:
        session = self.get(session_id)
        # The wall clock may step backwards; a position never does
        return max(0.0, extrapolate(session.reference_position, session.reference_wall_time,
                                    session.playing, self._clock()))

    def snapshot(self, session_id: str) -> SessionSnapshot:
        session = self.get(session_id)
        return SessionSnapshot(
            id=session.id,
            media_ref=session.media_ref,
            playing=session.playing,
            position=self.current_position(session_id),
            started=session.started,
        )

    def apply_state_change(self, session_id: str, playing: bool, position: Optional[float] = None) -> Session:
        session = self.get(session_id)
        now = self._clock()
        if position is None:
            # Keep the time elapsed since the last reference on a bare play/pause toggle
            position = max(0.0, extrapolate(session.reference_position, session.reference_wall_time,
                                            session.playing, now))
        session.reference_position = position
        session.reference_wall_time = now
        session.playing = playing
        session.started = True
        return session

    def mark_bootstrapped(self, session_id: str) -> Session:
        session = self.get(session_id)
        # The first member starts from the current reference; later joiners sync to it
        session.reference_wall_time = self._clock()
        session.started = True
        return session

    def switch_media(self, session_id: str, media_ref: str) -> Session:
        self.get(session_id)
        # A new video restarts the timeline from scratch
        session = Session(id=session_id, media_ref=media_ref, reference_wall_time=self._clock())
        self._sessions[session_id] = session
        logger.info(f"Session {session_id} switched media to {media_ref}")
        return session

    def remove(self, session_id: str) -> None:
        if self._sessions.pop(session_id, None) is not None:
            logger.info(f"Session {session_id} deleted")
        self._locks.pop(session_id, None)
