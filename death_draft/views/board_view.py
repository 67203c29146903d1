import logging
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

from death_draft.converter import DataConverter
from death_draft.crud import DRAFT_STATE_ID
from death_draft.domain.board import group_by_seat, most_recent_pick_number
from death_draft.domain.export import board_to_csv, export_filename
from death_draft.domain.roster import DEFAULT_ROSTER, Roster
from death_draft.errors import DataAccessError
from death_draft.models.dc_models import ChangeEventModel, RealtimeStatus
from death_draft.models.schema_models import BoardRowSchema, DraftStateSchema
from death_draft.services.board_image import export_board_png
from death_draft.views.reconciliation import (
    ChangeReconciler,
    append_board_row,
    draft_state_filter,
    picks_filter,
    remove_board_row,
)

data_converter = DataConverter()

ChangeCallback = Callable[[], Awaitable[None]]


class BoardView:
    """Read-only live board: every pick grouped by seat.

    The board never writes. It loads all picks on mount, then follows the
    change feed: inserts are fetched one row at a time, deletes drop the
    matching row, and anything unusual falls back to a full reload.
    """

    def __init__(
        self,
        data_access,
        roster: Roster = DEFAULT_ROSTER,
        on_change: Optional[ChangeCallback] = None,
        name: str = "death-draft-board",
    ):
        self.data_access = data_access
        self.roster = roster
        self.on_change = on_change
        self.name = name

        self.rows: List[BoardRowSchema] = []
        self.draft_state: Optional[DraftStateSchema] = None
        self.loading: bool = True
        self.error: Optional[str] = None
        self.rt_status: str = RealtimeStatus.connecting.value
        self.rt_events: int = 0

        self._alive = False
        self._subscription = None
        self.reconciler = ChangeReconciler(
            [
                (picks_filter("INSERT"), self._on_pick_insert),
                (picks_filter("DELETE"), self._on_pick_delete),
                (picks_filter("UPDATE"), self._on_pick_update),
                (draft_state_filter(), self._on_draft_state),
            ]
        )

    @property
    def alive(self) -> bool:
        return self._alive

    @property
    def by_seat(self) -> Dict[int, List[BoardRowSchema]]:
        return group_by_seat(self.rows, self.roster)

    @property
    def last_pick_number(self) -> Optional[int]:
        return most_recent_pick_number(self.rows)

    async def mount(self, subscribe: bool = True):
        """Open the change-feed subscription, then do the first full load.

        Subscribing first means nothing committed during the load is missed;
        the load result overwrites anything the feed applied meanwhile.

        Args:
            subscribe (bool): False for a one-off snapshot without live updates
        """
        self._alive = True
        self.loading = True
        self.rt_status = RealtimeStatus.connecting.value
        if subscribe:
            self._subscription = self.data_access.subscribe(
                self.name,
                self.reconciler.filters,
                self.reconciler.dispatch,
                on_status=self._on_status,
                on_malformed=self.resync,
            )
        try:
            await self.load()
        finally:
            if self._alive:
                self.loading = False

    async def unmount(self):
        self._alive = False
        if self._subscription is not None:
            await self._subscription.close()
            self._subscription = None

    async def load(self):
        """Replace local rows and turn state with a fresh read."""
        self.error = None
        try:
            rows = await self.data_access.read_board()
            draft_state = await self.data_access.read_draft_state()
        except DataAccessError as e:
            if self._alive:
                self.error = str(e)
            return

        if not self._alive:
            return
        self.rows = rows
        self.draft_state = draft_state

    async def resync(self):
        await self.load()
        await self._notify()

    async def handle_visibility_change(self, visible: bool):
        if visible and self._alive:
            await self.resync()

    async def _notify(self):
        if self._alive and self.on_change is not None:
            await self.on_change()

    def _on_status(self, status: str):
        if self._alive:
            self.rt_status = status

    async def _on_pick_insert(self, event: ChangeEventModel):
        try:
            row = await self.data_access.read_board_row(int(event.new["pick_number"]))
        except (DataAccessError, KeyError, TypeError, ValueError) as e:
            logging.warning(f"Board row fetch failed, reloading board: {e}")
            row = None
        if row is None:
            await self.load()
        elif self._alive:
            self.rows = append_board_row(self.rows, row)
        self.rt_events += 1
        await self._notify()

    async def _on_pick_delete(self, event: ChangeEventModel):
        celebrity_id = event.old.get("celebrity_id")
        if celebrity_id is None:
            await self.load()
        elif self._alive:
            self.rows = remove_board_row(self.rows, celebrity_id)
        self.rt_events += 1
        await self._notify()

    async def _on_pick_update(self, event: ChangeEventModel):
        # Picks are never updated in normal play; refetch instead of patching.
        await self.load()
        self.rt_events += 1
        await self._notify()

    async def _on_draft_state(self, event: ChangeEventModel):
        if event.new.get("id") != DRAFT_STATE_ID:
            return
        if self._alive:
            self.draft_state = data_converter.payload_to_draft_state(event.new)
        self.rt_events += 1
        await self._notify()

    def export_csv(self, now: Optional[datetime] = None) -> Tuple[str, str]:
        """Board as CSV.

        Returns:
            Tuple[str, str]: File name and CSV text
        """
        now = now or datetime.now(timezone.utc)
        return export_filename(now, "csv"), board_to_csv(self.by_seat, self.roster)

    def export_png(self, now: Optional[datetime] = None) -> Tuple[str, bytes]:
        now = now or datetime.now(timezone.utc)
        image = export_board_png(self.by_seat, self.roster, self.last_pick_number)
        return export_filename(now, "png"), image

    def snapshot(self) -> Dict[str, Any]:
        payload = data_converter.board_snapshot(self.rows, self.roster, self.draft_state)
        payload.update(
            {
                "loading": self.loading,
                "error": self.error,
                "rt_status": self.rt_status,
                "rt_events": self.rt_events,
            }
        )
        return payload
