from pydantic import BaseModel
from uuid import UUID
from datetime import datetime


class AvailableCelebritySchema(BaseModel):
    id: UUID
    name: str
    age: int
    created_at: datetime | None = None

    class Config:
        from_attributes = True


class PickSchema(BaseModel):
    pick_number: int
    seat: int
    celebrity_id: UUID
    picked_at: datetime | None = None

    class Config:
        from_attributes = True


class DraftStateSchema(BaseModel):
    id: int
    turn_seat: int
    pick_number: int
    updated_at: datetime | None = None

    class Config:
        from_attributes = True


class BoardRowSchema(BaseModel):
    """One pick joined with its player and celebrity, as shown on the board."""

    pick_number: int
    seat: int
    player_name: str
    celebrity_id: UUID
    celebrity_name: str
    celebrity_age: int
    picked_at: datetime | None = None

    class Config:
        from_attributes = True
