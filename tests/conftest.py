"""Shared pytest fixtures for the draft tests."""

import asyncio
from datetime import datetime, timezone
from typing import Dict, List, Optional
from uuid import UUID, uuid4

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from death_draft.converter import DataConverter, STATE_TABLE
from death_draft.domain.board import name_collation_key
from death_draft.domain.roster import DEFAULT_ROSTER, Roster
from death_draft.errors import DataAccessError
from death_draft.models.dc_models import ChangeEventModel, ChangeEventType, PickResultModel
from death_draft.models.schema_models import (
    AvailableCelebritySchema,
    BoardRowSchema,
    DraftStateSchema,
    PickSchema,
)
from death_draft.models.schemas import Base
from death_draft.redis_subscriber import Subscription

converter = DataConverter()
PICKED_AT = datetime(2026, 1, 5, 18, 30, tzinfo=timezone.utc)


# =============================================================================
# Collaborator test double
# =============================================================================


class FakeDataAccess:
    """In-memory stand-in for DraftDataAccess with the same rules for picks."""

    def __init__(self, roster: Roster = DEFAULT_ROSTER):
        self.roster = roster
        self.celebrities: Dict[UUID, AvailableCelebritySchema] = {}
        self.rows: List[BoardRowSchema] = []
        self.state = DraftStateSchema(id=1, turn_seat=1, pick_number=0)
        self.subscriptions: List[Subscription] = []
        self.make_pick_calls: List[tuple] = []
        self.board_reads = 0
        self.available_reads = 0
        self.fail_reads = False
        self.fail_board_row = False
        self.fail_make_pick = False

    def add_celebrity(self, name: str, age: int) -> UUID:
        celebrity_id = uuid4()
        self.celebrities[celebrity_id] = AvailableCelebritySchema(id=celebrity_id, name=name, age=age)
        return celebrity_id

    def _check(self):
        if self.fail_reads:
            raise DataAccessError("connection refused")

    async def count_celebrities(self) -> int:
        self._check()
        return len(self.celebrities)

    async def read_board(self) -> List[BoardRowSchema]:
        self._check()
        self.board_reads += 1
        return list(self.rows)

    async def read_board_row(self, pick_number: int) -> Optional[BoardRowSchema]:
        self._check()
        if self.fail_board_row:
            raise DataAccessError("row fetch failed")
        return next((r for r in self.rows if r.pick_number == pick_number), None)

    async def read_available(self) -> List[AvailableCelebritySchema]:
        self._check()
        self.available_reads += 1
        taken = {r.celebrity_id for r in self.rows}
        available = [c for c in self.celebrities.values() if c.id not in taken]
        return sorted(available, key=lambda c: (-c.age, name_collation_key(c.name)))

    async def read_draft_state(self) -> DraftStateSchema:
        self._check()
        return self.state

    async def make_pick(self, seat: int, celebrity_id: UUID) -> PickResultModel:
        self.make_pick_calls.append((seat, celebrity_id))
        if self.fail_make_pick:
            raise DataAccessError("connection reset")
        if seat != self.state.turn_seat:
            return PickResultModel(ok=False, message="Not your turn.")
        if any(r.celebrity_id == celebrity_id for r in self.rows):
            return PickResultModel(ok=False, message="Already taken.")
        celebrity = self.celebrities.get(celebrity_id)
        if celebrity is None:
            return PickResultModel(ok=False, message="Celebrity not found.")
        pick_number = self.state.pick_number + 1
        self.rows.append(
            BoardRowSchema(
                pick_number=pick_number,
                seat=seat,
                player_name=self.roster.seat_to_name(seat),
                celebrity_id=celebrity_id,
                celebrity_name=celebrity.name,
                celebrity_age=celebrity.age,
                picked_at=PICKED_AT,
            )
        )
        self.state = DraftStateSchema(
            id=1, turn_seat=self.roster.next_seat(seat), pick_number=pick_number
        )
        return PickResultModel(ok=True, message=f"Picked {celebrity.name}.")

    def subscribe(self, name, filters, handler, on_status=None, on_malformed=None) -> Subscription:
        subscription = Subscription(name, filters, handler, on_status, on_malformed)
        self.subscriptions.append(subscription)
        return subscription

    async def emit(self, event: ChangeEventModel):
        await self.emit_raw(event.model_dump_json(by_alias=True))

    async def emit_raw(self, raw: str):
        for subscription in list(self.subscriptions):
            if subscription.status != "closed":
                await subscription.deliver(raw)


class FakeRedis:
    """Records what the pick procedure publishes."""

    def __init__(self):
        self.published: List[tuple] = []

    async def publish(self, channel: str, message: str):
        self.published.append((channel, message))
        return 0


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def fake_data_access() -> FakeDataAccess:
    return FakeDataAccess()


@pytest.fixture
def data_access_factory():
    """FakeDataAccess for a custom roster."""
    return FakeDataAccess


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def make_row():
    """Factory for board rows with sensible defaults."""

    def _make_row(pick_number: int, seat: int, name: str, age: int, celebrity_id=None) -> BoardRowSchema:
        return BoardRowSchema(
            pick_number=pick_number,
            seat=seat,
            player_name=DEFAULT_ROSTER.seat_to_name(seat),
            celebrity_id=celebrity_id or uuid4(),
            celebrity_name=name,
            celebrity_age=age,
            picked_at=PICKED_AT,
        )

    return _make_row


@pytest.fixture
def pick_event():
    """Factory for change events on the picks table."""

    def _pick_event(event_type: ChangeEventType, row: BoardRowSchema) -> ChangeEventModel:
        pick = PickSchema(
            pick_number=row.pick_number,
            seat=row.seat,
            celebrity_id=row.celebrity_id,
            picked_at=row.picked_at,
        )
        return converter.pick_change_event(event_type, pick, PICKED_AT)

    return _pick_event


@pytest.fixture
def state_event():
    """Factory for DraftState update events."""

    def _state_event(turn_seat: int, pick_number: int, row_id: int = 1) -> ChangeEventModel:
        return ChangeEventModel(
            event_type=ChangeEventType.update,
            table=STATE_TABLE,
            new={"id": row_id, "turn_seat": turn_seat, "pick_number": pick_number},
            old={},
            commit_timestamp=PICKED_AT,
        )

    return _state_event


@pytest.fixture
def run_db(tmp_path):
    """Run an async scenario against a fresh SQLite database.

    The scenario receives a session factory; the database has all tables.
    """
    url = f"sqlite+aiosqlite:///{tmp_path / 'draft.sqlite3'}"

    def _run(scenario):
        async def runner():
            engine = create_async_engine(url, poolclass=NullPool)
            async with engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
            Session = async_sessionmaker(
                autocommit=False, class_=AsyncSession, bind=engine, expire_on_commit=False
            )
            try:
                return await scenario(Session)
            finally:
                await engine.dispose()

        return asyncio.run(runner())

    return _run
