class WatchPartyError(Exception):
    """Base error of the watch party backend and client."""


class SessionNotFound(WatchPartyError):
    def __init__(self, session_id: str):
        super().__init__(f"Session {session_id} not found")
        self.session_id = session_id


class SessionAlreadyExists(WatchPartyError):
    def __init__(self, session_id: str):
        super().__init__(f"Session {session_id} already exists")
        self.session_id = session_id


class InvalidMedia(WatchPartyError):
    def __init__(self, media_ref: str):
        super().__init__(f"Media {media_ref!r} is not playable")
        self.media_ref = media_ref
