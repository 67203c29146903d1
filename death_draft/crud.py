from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, desc, asc, exists, func
from typing import List
from uuid import UUID
import logging

from death_draft.domain.board import name_collation_key
from death_draft.domain.roster import Roster
from death_draft.errors import DataAccessError
from death_draft.models.schema_models import (
    AvailableCelebritySchema,
    BoardRowSchema,
    DraftStateSchema,
)
from death_draft.models.schemas import Celebrity, DraftState, Pick

DRAFT_STATE_ID = 1


def board_select():
    """Picks joined with their celebrity, the columns the board needs."""
    return select(
        Pick.pick_number,
        Pick.seat,
        Pick.celebrity_id,
        Pick.picked_at,
        Celebrity.name.label("celebrity_name"),
        Celebrity.age.label("celebrity_age"),
    ).join(Celebrity, Celebrity.id == Pick.celebrity_id)


def to_board_row(row, roster: Roster) -> BoardRowSchema:
    return BoardRowSchema(
        pick_number=row.pick_number,
        seat=row.seat,
        player_name=roster.seat_to_name(row.seat),
        celebrity_id=row.celebrity_id,
        celebrity_name=row.celebrity_name,
        celebrity_age=row.celebrity_age,
        picked_at=row.picked_at,
    )


class CreateData:
    @staticmethod
    async def create_draft_state_data(session: AsyncSession) -> bool:
        """Seed the singleton draft state row if it does not exist yet

        Returns:
            bool: True if the row was created, False if it already existed
        """
        async with session:
            try:
                result = await session.get(DraftState, DRAFT_STATE_ID)
                if result is not None:
                    return False

                session.add(DraftState(id=DRAFT_STATE_ID, turn_seat=1, pick_number=0))
                await session.commit()
                return True
            except Exception as e:
                logging.error(f"Failed to create draft state data: {e}")
                raise DataAccessError(str(e)) from e


class ReadData:
    @staticmethod
    async def count_celebrities(session: AsyncSession) -> int:
        async with session:
            try:
                result = await session.execute(select(func.count()).select_from(Celebrity))
                return result.scalar_one()
            except Exception as e:
                logging.error(f"Failed to count celebrities: {e}")
                raise DataAccessError(str(e)) from e

    @staticmethod
    async def read_board_data(session: AsyncSession, roster: Roster) -> List[BoardRowSchema]:
        """Read every pick joined with player and celebrity

        Args:
            roster (Roster): To resolve seat numbers into player names

        Returns:
            List[BoardRowSchema]: Board rows in pick order
        """
        async with session:
            try:
                stmt = board_select().order_by(asc(Pick.pick_number))
                result = await session.execute(stmt)
                return [to_board_row(row, roster) for row in result.all()]
            except Exception as e:
                logging.error(f"Failed to read board data: {e}")
                raise DataAccessError(str(e)) from e

    @staticmethod
    async def read_board_row(
        pick_number: int, session: AsyncSession, roster: Roster
    ) -> BoardRowSchema | None:
        """Read the board row of one pick

        Args:
            pick_number (int): To identify the pick

        Returns:
            BoardRowSchema | None: The joined row, None if the pick does not exist
        """
        async with session:
            try:
                stmt = board_select().where(Pick.pick_number == pick_number)
                result = await session.execute(stmt)
                row = result.first()
                if row is None:
                    return None
                return to_board_row(row, roster)
            except Exception as e:
                logging.error(f"Failed to read board row {pick_number}: {e}")
                raise DataAccessError(str(e)) from e

    @staticmethod
    async def read_available_data(session: AsyncSession) -> List[AvailableCelebritySchema]:
        """Read celebrities nobody has picked yet, oldest first then by name"""
        async with session:
            try:
                picked = exists().where(Pick.celebrity_id == Celebrity.id)
                stmt = (
                    select(Celebrity)
                    .where(~picked)
                    .order_by(desc(Celebrity.age), asc(Celebrity.name))
                )
                result = await session.execute(stmt)
                available = [
                    AvailableCelebritySchema.model_validate(celebrity)
                    for celebrity in result.scalars().all()
                ]
                # Name ties in SQL follow the database collation; reapply ours.
                return sorted(available, key=lambda c: (-c.age, name_collation_key(c.name)))
            except Exception as e:
                logging.error(f"Failed to read available celebrities: {e}")
                raise DataAccessError(str(e)) from e

    @staticmethod
    async def read_draft_state_data(session: AsyncSession) -> DraftStateSchema:
        async with session:
            try:
                result = await session.get(DraftState, DRAFT_STATE_ID)
            except Exception as e:
                logging.error(f"Failed to read draft state data: {e}")
                raise DataAccessError(str(e)) from e

            if result is None:
                raise DataAccessError("Draft state has not been seeded.")
            return DraftStateSchema.model_validate(result)

    @staticmethod
    async def read_celebrity_id(name: str, session: AsyncSession) -> UUID | None:
        """Look up a celebrity by exact name

        Args:
            name (str): Celebrity name

        Returns:
            UUID | None: The celebrity id, None if there is no such celebrity
        """
        async with session:
            try:
                stmt = select(Celebrity.id).where(Celebrity.name == name)
                result = await session.execute(stmt)
                return result.scalars().first()
            except Exception as e:
                logging.error(f"Failed to read celebrity id: {e}")
                raise DataAccessError(str(e)) from e
