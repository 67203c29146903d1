"""Keeping a view's local copy in step with the backend.

Each view opens one change-feed subscription and routes events to its own
handlers through a ChangeReconciler. Full reloads and incremental events may
interleave; a later full reload simply overwrites whatever was applied
before it, so the copy converges without any ordering guarantees.
"""

import logging
from typing import Awaitable, Callable, List, Optional, Tuple

from death_draft.converter import PICKS_TABLE, STATE_TABLE
from death_draft.crud import DRAFT_STATE_ID
from death_draft.domain.changes import ChangeFilter
from death_draft.models.dc_models import ChangeEventModel
from death_draft.models.schema_models import BoardRowSchema

STATE_ROW_FILTER = f"id=eq.{DRAFT_STATE_ID}"

EventHandler = Callable[[ChangeEventModel], Awaitable[None]]


def picks_filter(event: str = "*") -> ChangeFilter:
    return ChangeFilter(table=PICKS_TABLE, event=event)


def draft_state_filter() -> ChangeFilter:
    return ChangeFilter(table=STATE_TABLE, event="*", filter=STATE_ROW_FILTER)


def append_board_row(rows: List[BoardRowSchema], row: BoardRowSchema) -> List[BoardRowSchema]:
    """Add a row unless one with the same pick number is already there.

    The feed can deliver the same insert twice, or race a reload that already
    picked the row up.
    """
    if any(r.pick_number == row.pick_number for r in rows):
        return rows
    return rows + [row]


def remove_board_row(rows: List[BoardRowSchema], celebrity_id) -> List[BoardRowSchema]:
    return [r for r in rows if str(r.celebrity_id) != str(celebrity_id)]


class ChangeReconciler:
    """Routes change events to handlers, first matching filter wins."""

    def __init__(self, routes: List[Tuple[ChangeFilter, EventHandler]]):
        self.routes = routes

    @property
    def filters(self) -> List[ChangeFilter]:
        return [change_filter for change_filter, _ in self.routes]

    def handler_for(self, event: ChangeEventModel) -> Optional[EventHandler]:
        for change_filter, handler in self.routes:
            if change_filter.matches(event):
                return handler
        return None

    async def dispatch(self, event: ChangeEventModel):
        handler = self.handler_for(event)
        if handler is None:
            logging.debug(f"No route for {event.event_type.value} on {event.table}")
            return
        await handler(event)
