import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set

logger = logging.getLogger(__name__)

RoomEmptyHandler = Callable[[str], Awaitable[None]]


class RoomBroadcaster:
    """Room membership and fan-out on top of a Socket.IO server.

    Membership is mirrored in explicit room -> sids and sid -> rooms maps so
    lookups do not have to scan the transport, and so the room-empty
    callback fires exactly when the last member goes away.
    """

    def __init__(self, sio):
        self.sio = sio
        self._members: Dict[str, Set[str]] = {}
        self._rooms_of: Dict[str, Set[str]] = {}
        self._on_room_empty: List[RoomEmptyHandler] = []

    def on_room_empty(self, handler: RoomEmptyHandler) -> None:
        self._on_room_empty.append(handler)

    def members(self, room: str) -> Set[str]:
        return set(self._members.get(room, ()))

    def rooms_of(self, sid: str) -> Set[str]:
        return set(self._rooms_of.get(sid, ()))

    async def join(self, sid: str, room: str):
        await self.sio.enter_room(sid, room)
        self._members.setdefault(room, set()).add(sid)
        self._rooms_of.setdefault(sid, set()).add(room)

    async def leave(self, sid: str, room: str):
        await self.sio.leave_room(sid, room)
        await self._forget(sid, room)

    async def disconnect(self, sid: str):
        # The transport drops the sid from its rooms on its own
        for room in self._rooms_of.pop(sid, set()):
            await self._forget(sid, room)

    async def _forget(self, sid: str, room: str):
        rooms = self._rooms_of.get(sid)
        if rooms is not None:
            rooms.discard(room)
            if not rooms:
                del self._rooms_of[sid]

        members = self._members.get(room)
        if members is None or sid not in members:
            return
        members.discard(sid)
        if not members:
            del self._members[room]
            logger.info(f"Room {room} is empty")
            for handler in self._on_room_empty:
                await handler(room)

    async def reply(self, sid: str, event: str, data: Optional[Any] = None):
        await self.sio.emit(event, data, to=sid)

    async def broadcast_all(self, room: str, event: str, data: Optional[Any] = None):
        await self.sio.emit(event, data, room=room)

    async def broadcast_excluding_self(self, sid: str, room: str, event: str, data: Optional[Any] = None):
        await self.sio.emit(event, data, room=room, skip_sid=sid)
