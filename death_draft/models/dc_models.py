from pydantic import BaseModel, Field
from enum import Enum
from uuid import UUID
from typing import Optional, Dict, Any, List
from datetime import datetime


class PlayerModel(BaseModel):
    seat: int
    name: str


class ChangeEventType(str, Enum):
    insert = "INSERT"
    update = "UPDATE"
    delete = "DELETE"


class RealtimeStatus(str, Enum):
    connecting = "connecting"
    subscribed = "subscribed"
    timed_out = "timed_out"
    closed = "closed"
    channel_error = "channel_error"


class ChangeEventModel(BaseModel):
    """Row-level change notification carried on the change feed."""

    event_type: ChangeEventType
    table: str
    schema_name: str = Field(default="public", alias="schema")
    new: Dict[str, Any] = Field(default_factory=dict)
    old: Dict[str, Any] = Field(default_factory=dict)
    commit_timestamp: Optional[datetime] = None

    class Config:
        populate_by_name = True


class PickRequestModel(BaseModel):
    celebrity_id: UUID


class PickResultModel(BaseModel):
    ok: bool
    message: Optional[str] = None


class HomeTileModel(BaseModel):
    href: str
    title: str
    subtitle: Optional[str] = None


class HomeModel(BaseModel):
    title: str
    celebrity_count: Optional[int] = None
    error: Optional[str] = None
    tiles: List[HomeTileModel]
    draft_order: str


class InvalidSeatModel(BaseModel):
    detail: str = "Invalid seat"
    message: str
    home: str = "/"
