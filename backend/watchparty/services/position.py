def extrapolate(position: float, wall_time: float, playing: bool, now: float) -> float:
    """Logical playback position at `now` given a reference snapshot.

    A paused snapshot does not move; a playing one advances one second of
    video per second of wall-clock time.
    """
    if playing:
        return position + (now - wall_time)
    return position
