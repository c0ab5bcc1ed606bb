import logging
from typing import Optional, Protocol
from watchparty.models.session import ObservedState, PlayerState

logger = logging.getLogger(__name__)

DELTA_T = 1.3 # Seconds of forward drift still counted as natural progress


def within_threshold(prev_time: float, cur_time: float, delta: float = DELTA_T) -> bool:
    """True when cur_time is at most `delta` seconds ahead of prev_time and never behind it."""
    return 0 <= cur_time - prev_time <= delta


class VideoPlayer(Protocol):
    def is_playing(self) -> bool: ...

    def set_playing(self, playing: bool) -> None: ...

    def seek_to(self, seconds: float) -> None: ...

    def get_current_time(self) -> float: ...

    def get_duration(self) -> Optional[float]: ...


class ReconciliationEngine:
    """
    Turns local player progress into outbound state changes.

    While a state imposed by the server is pending, progress only drives the
    player towards it and nothing is sent back, so a client never echoes a
    correction it is still applying. Once converged, a jump in position is
    reported as a seek and a flip of the playing flag as a play/pause.
    """

    def __init__(self, player: VideoPlayer, delta: float = DELTA_T):
        self.player = player
        self.delta = delta
        self.desired: Optional[PlayerState] = None
        self.last_observed = ObservedState(playing=False, position=0.0)
        self.ended = False

    def apply_remote_state(self, state: PlayerState):
        logger.info(f"Change player state to {state.to_wire()}")
        if state.position is not None:
            duration = self.player.get_duration()
            position = max(state.position, 0.0)
            if duration:
                position = min(position, duration)
            state = PlayerState(playing=state.playing, position=position)
        self.desired = state
        self._drive(state)

    def _drive(self, state: PlayerState):
        self.player.set_playing(state.playing)
        if state.position is not None:
            self.player.seek_to(state.position)

    def _converged(self, observed: ObservedState) -> bool:
        desired = self.desired
        if desired is None:
            return True
        return desired.playing == observed.playing and (
            desired.position is None or within_threshold(desired.position, observed.position, self.delta)
        )

    def on_progress(self, playing: bool, played_seconds: float) -> Optional[PlayerState]:
        """Feed one progress sample; returns the state to send to the server, if any."""
        if self.ended:
            # Progress keeps firing short of the end once playback is over
            duration = self.player.get_duration()
            if duration:
                played_seconds = duration
        observed = ObservedState(playing=playing, position=played_seconds)

        outbound = None
        if self.desired is not None:
            if self._converged(observed):
                self.desired = None
            else:
                self._drive(self.desired)
        else:
            outbound = self._detect_change(observed)
        self.last_observed = observed
        return outbound

    def _detect_change(self, observed: ObservedState) -> Optional[PlayerState]:
        prev = self.last_observed
        if not within_threshold(prev.position, observed.position, self.delta):
            logger.debug(f"Seek detected: {prev.position} -> {observed.position}")
            return PlayerState(playing=observed.playing, position=observed.position)
        if observed.playing != prev.playing:
            # Let the server extrapolate the position rather than trust this sample
            return PlayerState(playing=observed.playing)
        return None

    def on_play(self):
        self.ended = False

    def on_pause(self):
        self.ended = False

    def on_ended(self):
        logger.info("Video ended")
        self.ended = True

    def reset(self):
        self.desired = None
        self.ended = False
        self.last_observed = ObservedState(playing=False, position=0.0)
