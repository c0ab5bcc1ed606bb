from typing import Optional

import pytest

from watchparty.services.coordinator import SessionCoordinator
from watchparty.services.rooms import RoomBroadcaster
from watchparty.services.session import SessionRegistry


class FakeClock:
    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeServer:
    """Records what a socketio.AsyncServer would deliver to each sid."""

    def __init__(self) -> None:
        self.rooms: dict[str, set[str]] = {}
        self.handlers: dict[str, object] = {}
        self.sent: list[tuple[str, str, object]] = []

    def on(self, event, handler=None):
        self.handlers[event] = handler

    async def enter_room(self, sid, room):
        self.rooms.setdefault(room, set()).add(sid)

    async def leave_room(self, sid, room):
        self.rooms.get(room, set()).discard(sid)

    async def emit(self, event, data=None, to=None, room=None, skip_sid=None):
        if to is not None:
            targets = [to]
        else:
            targets = sorted(self.rooms.get(room, set()) - {skip_sid})
        for sid in targets:
            self.sent.append((sid, event, data))

    def received(self, sid: str, event: Optional[str] = None) -> list:
        return [
            data
            for target, name, data in self.sent
            if target == sid and (event is None or name == event)
        ]


class FakePlayer:
    def __init__(self, duration: Optional[float] = 600.0) -> None:
        self.playing = False
        self.position = 0.0
        self.duration = duration
        self.seeks: list[float] = []

    def is_playing(self) -> bool:
        return self.playing

    def set_playing(self, playing: bool) -> None:
        self.playing = playing

    def seek_to(self, seconds: float) -> None:
        self.position = seconds
        self.seeks.append(seconds)

    def get_current_time(self) -> float:
        return self.position

    def get_duration(self) -> Optional[float]:
        return self.duration


class FakeClient:
    """Stands in for socketio.AsyncClient."""

    def __init__(self, acks: Optional[dict] = None) -> None:
        self.handlers: dict[str, object] = {}
        self.emitted: list[tuple[str, object]] = []
        self.acks = acks or {}

    def on(self, event, handler=None):
        self.handlers[event] = handler

    async def emit(self, event, data=None):
        self.emitted.append((event, data))

    async def call(self, event, data=None, timeout=None):
        self.emitted.append((event, data))
        return self.acks.get(event)

    async def deliver(self, event, *args):
        await self.handlers[event](*args)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def registry(clock: FakeClock) -> SessionRegistry:
    return SessionRegistry(clock=clock)


@pytest.fixture
def server() -> FakeServer:
    return FakeServer()


@pytest.fixture
def rooms(server: FakeServer) -> RoomBroadcaster:
    return RoomBroadcaster(server)


@pytest.fixture
def coordinator(registry: SessionRegistry, rooms: RoomBroadcaster, server: FakeServer) -> SessionCoordinator:
    coordinator = SessionCoordinator(registry, rooms)
    coordinator.register(server)
    return coordinator


@pytest.fixture
def player() -> FakePlayer:
    return FakePlayer()


@pytest.fixture
def client_sio() -> FakeClient:
    return FakeClient()
