import logging
from typing import List, Optional
from uuid import UUID

from redis.asyncio import Redis
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker

from death_draft.crud import ReadData
from death_draft.domain.changes import ChangeFilter
from death_draft.domain.roster import Roster
from death_draft.errors import DataAccessError
from death_draft.models.dc_models import PickResultModel
from death_draft.models.schema_models import (
    AvailableCelebritySchema,
    BoardRowSchema,
    DraftStateSchema,
)
from death_draft.redis_subscriber import (
    ChangeHandler,
    MalformedHandler,
    RedisSubscriber,
    StatusHandler,
    Subscription,
)
from death_draft.services import draft_db


class DraftDataAccess:
    """Everything the views need from the backend: reads, the pick call and the change feed.

    Views only ever talk to this object, so a test double with the same
    methods can stand in for the database and Redis.
    """

    def __init__(self, Session: async_sessionmaker, redis: Redis, roster: Roster):
        self.Session: async_sessionmaker = Session
        self.redis: Redis = redis
        self.roster: Roster = roster
        self.subscriber = RedisSubscriber(redis)

    async def count_celebrities(self) -> int:
        async with self.Session() as session:
            return await ReadData.count_celebrities(session)

    async def read_board(self) -> List[BoardRowSchema]:
        async with self.Session() as session:
            return await ReadData.read_board_data(session, self.roster)

    async def read_board_row(self, pick_number: int) -> Optional[BoardRowSchema]:
        async with self.Session() as session:
            return await ReadData.read_board_row(pick_number, session, self.roster)

    async def read_available(self) -> List[AvailableCelebritySchema]:
        async with self.Session() as session:
            return await ReadData.read_available_data(session)

    async def read_draft_state(self) -> DraftStateSchema:
        async with self.Session() as session:
            return await ReadData.read_draft_state_data(session)

    async def make_pick(self, seat: int, celebrity_id: UUID) -> PickResultModel:
        """Call the atomic pick procedure.

        Args:
            seat (int): Seat submitting the pick
            celebrity_id (UUID): Celebrity being picked

        Raises:
            DataAccessError: The database could not be reached or failed

        Returns:
            PickResultModel: ok=False for rejections such as wrong turn or already taken
        """
        try:
            return await draft_db.make_pick(
                self.Session, self.redis, self.roster, seat, celebrity_id
            )
        except (SQLAlchemyError, RuntimeError) as e:
            logging.error(f"Pick procedure failed for seat {seat}: {e}")
            raise DataAccessError(str(e)) from e

    def subscribe(
        self,
        name: str,
        filters: List[ChangeFilter],
        handler: ChangeHandler,
        on_status: Optional[StatusHandler] = None,
        on_malformed: Optional[MalformedHandler] = None,
    ) -> Subscription:
        return self.subscriber.subscribe(name, filters, handler, on_status, on_malformed)
