"""DB service layer for draft use cases.

- Views and routers should not touch DB sessions directly; they go through
  DraftDataAccess, which calls this module for anything transactional.
- This layer owns session/transaction boundaries.
- Change events are published only after the transaction has committed.
"""

import logging
from typing import Iterable, List, Optional, Tuple
from uuid import UUID

from redis.asyncio import Redis
from sqlalchemy import desc, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import async_sessionmaker

from death_draft.converter import DataConverter
from death_draft.crud import DRAFT_STATE_ID, CreateData
from death_draft.domain.roster import Roster
from death_draft.models.dc_models import ChangeEventModel, ChangeEventType, PickResultModel
from death_draft.models.schema_models import DraftStateSchema, PickSchema
from death_draft.models.schemas import Celebrity, DraftState, Pick, utc_now
from death_draft.redis_subscriber import publish_change

data_converter = DataConverter()

NOT_YOUR_TURN = "Not your turn."
ALREADY_TAKEN = "Already taken."
CELEBRITY_NOT_FOUND = "Celebrity not found."
INVALID_SEAT = "Invalid seat."


async def seed_draft_state(Session: async_sessionmaker) -> bool:
    async with Session() as session:
        created = await CreateData.create_draft_state_data(session)
    if created:
        logging.info("Seeded draft state: turn_seat=1, pick_number=0")
    return created


async def publish_changes(redis: Redis, events: List[ChangeEventModel]) -> None:
    """Publish committed changes; a feed outage must not undo a committed pick."""
    for event in events:
        try:
            await publish_change(redis, event)
        except Exception as e:
            logging.error(f"Failed to publish {event.event_type.value} on {event.table}: {e}")


async def _lock_draft_state(session) -> DraftState:
    stmt = select(DraftState).where(DraftState.id == DRAFT_STATE_ID).with_for_update()
    result = await session.execute(stmt)
    state_row = result.scalars().first()
    if state_row is None:
        raise RuntimeError("Draft state row not found.")
    return state_row


async def make_pick(
    Session: async_sessionmaker,
    redis: Redis,
    roster: Roster,
    seat: int,
    celebrity_id: UUID,
) -> PickResultModel:
    """Assign a celebrity to the seat on the clock and advance the turn, atomically.

    The DraftState row is locked for the whole transaction, so concurrent
    calls are serialized and each sees the turn left by the previous one.
    Logical rejections come back as ok=False; database failures raise.

    Args:
        Session (async_sessionmaker): Session factory
        redis (Redis): Change feed connection
        roster (Roster): Players in draft order
        seat (int): Seat submitting the pick
        celebrity_id (UUID): Celebrity being picked

    Returns:
        PickResultModel: ok with a confirmation, or not ok with the reason
    """
    if not roster.is_valid_seat(seat):
        return PickResultModel(ok=False, message=INVALID_SEAT)

    try:
        async with Session() as session:
            async with session.begin():
                state_row = await _lock_draft_state(session)
                if state_row.turn_seat != seat:
                    return PickResultModel(ok=False, message=NOT_YOUR_TURN)

                celebrity = await session.get(Celebrity, celebrity_id)
                if celebrity is None:
                    return PickResultModel(ok=False, message=CELEBRITY_NOT_FOUND)

                taken = await session.execute(
                    select(Pick.pick_number).where(Pick.celebrity_id == celebrity_id)
                )
                if taken.first() is not None:
                    return PickResultModel(ok=False, message=ALREADY_TAKEN)

                old_state = DraftStateSchema.model_validate(state_row)
                now = utc_now()
                pick_number = state_row.pick_number + 1
                pick = Pick(
                    pick_number=pick_number,
                    seat=seat,
                    celebrity_id=celebrity_id,
                    picked_at=now,
                )
                session.add(pick)
                state_row.pick_number = pick_number
                state_row.turn_seat = roster.next_seat(state_row.turn_seat)
                state_row.updated_at = now
                await session.flush()

                pick_data = PickSchema.model_validate(pick)
                new_state = DraftStateSchema.model_validate(state_row)
                celebrity_name = celebrity.name
    except IntegrityError as e:
        # Unique pick_number / celebrity_id lost a race with another transaction.
        logging.warning(f"Pick by seat {seat} rejected by constraint: {e}")
        return PickResultModel(ok=False, message=ALREADY_TAKEN)

    logging.info(f"Pick #{pick_data.pick_number}: seat {seat} took {celebrity_name}")
    await publish_changes(
        redis,
        [
            data_converter.pick_change_event(ChangeEventType.insert, pick_data, now),
            data_converter.draft_state_change_event(old_state, new_state, now),
        ],
    )
    return PickResultModel(ok=True, message=f"Picked {celebrity_name}.")


async def undo_last_pick(
    Session: async_sessionmaker, redis: Redis
) -> Optional[PickSchema]:
    """Delete the most recent pick and hand the turn back to its seat.

    This is an out-of-band correction; normal play never deletes picks.

    Returns:
        Optional[PickSchema]: The removed pick, None when there were no picks
    """
    async with Session() as session:
        async with session.begin():
            state_row = await _lock_draft_state(session)
            result = await session.execute(
                select(Pick).order_by(desc(Pick.pick_number)).limit(1)
            )
            pick = result.scalars().first()
            if pick is None:
                return None

            old_state = DraftStateSchema.model_validate(state_row)
            removed = PickSchema.model_validate(pick)
            now = utc_now()
            await session.delete(pick)
            state_row.pick_number = removed.pick_number - 1
            state_row.turn_seat = removed.seat
            state_row.updated_at = now
            await session.flush()
            new_state = DraftStateSchema.model_validate(state_row)

    logging.info(f"Removed pick #{removed.pick_number} (seat {removed.seat})")
    await publish_changes(
        redis,
        [
            data_converter.pick_change_event(ChangeEventType.delete, removed, now),
            data_converter.draft_state_change_event(old_state, new_state, now),
        ],
    )
    return removed


async def load_celebrities(
    Session: async_sessionmaker, celebrities: Iterable[Tuple[str, int]]
) -> int:
    """Bulk-load the celebrity pool, skipping names that are already present.

    Returns:
        int: Number of celebrities added
    """
    added = 0
    async with Session() as session:
        async with session.begin():
            existing = set((await session.execute(select(Celebrity.name))).scalars().all())
            for name, age in celebrities:
                if name in existing:
                    logging.info(f"Skipping {name}: already loaded")
                    continue
                session.add(Celebrity(name=name, age=age, created_at=utc_now()))
                existing.add(name)
                added += 1
    return added
