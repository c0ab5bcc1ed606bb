from pydantic import BaseModel, Field
from typing import Optional


class Session(BaseModel):
    id: str
    media_ref: str # Unvalidated locator of the video
    playing: bool = True
    reference_wall_time: float = 0.0 # Server time when reference_position was set
    reference_position: float = 0.0 # Seconds into the video at reference_wall_time
    started: bool = False # Latched once the first member begins playback


class PlayerState(BaseModel):
    """Wire payload of set_player_state / player_state_changed.

    Also used client side as the desired state. A missing position means
    only the playing flag matters.
    """
    playing: bool
    position: Optional[float] = Field(default=None, ge=0, allow_inf_nan=False)

    def to_wire(self) -> dict:
        return self.model_dump(exclude_none=True)


class ObservedState(BaseModel):
    playing: bool
    position: float


class SessionSnapshot(BaseModel):
    id: str
    media_ref: str
    playing: bool
    position: float
    started: bool
