from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.schema import Column, ForeignKey
from sqlalchemy.types import Integer, String, Uuid, DateTime
from uuid6 import uuid7
from datetime import datetime, timezone


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    pass


class Celebrity(Base):
    __tablename__ = "death_draft_celebrities"
    id = Column(Uuid, primary_key=True, default=uuid7)
    name = Column(String, nullable=False)
    age = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utc_now)


class Pick(Base):
    __tablename__ = "death_draft_picks"
    pick_number = Column(Integer, primary_key=True, autoincrement=False)
    seat = Column(Integer, nullable=False)
    celebrity_id = Column(
        Uuid, ForeignKey("death_draft_celebrities.id"), unique=True, nullable=False
    )
    picked_at = Column(DateTime(timezone=True), default=utc_now)


class DraftState(Base):
    __tablename__ = "death_draft_state"
    id = Column(Integer, primary_key=True, autoincrement=False)
    turn_seat = Column(Integer, nullable=False, default=1)
    pick_number = Column(Integer, nullable=False, default=0)
    updated_at = Column(DateTime(timezone=True), default=utc_now)
