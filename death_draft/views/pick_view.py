import asyncio
import logging
from datetime import datetime
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional
from uuid import UUID

from death_draft.converter import DataConverter
from death_draft.crud import DRAFT_STATE_ID
from death_draft.domain.roster import DEFAULT_ROSTER, Roster
from death_draft.errors import DataAccessError
from death_draft.models.dc_models import ChangeEventModel, PickResultModel, RealtimeStatus
from death_draft.models.schema_models import AvailableCelebritySchema, DraftStateSchema
from death_draft.views.reconciliation import ChangeReconciler, draft_state_filter, picks_filter

data_converter = DataConverter()

ChangeCallback = Callable[[], Awaitable[None]]

PICK_FAILED = "Pick failed."


class SubmissionPhase(str, Enum):
    idle = "idle"
    pending_confirmation = "pending_confirmation"
    submitting = "submitting"


class PickView:
    """One player's pick screen.

    Picking goes idle -> pending_confirmation (select) -> submitting (confirm)
    -> idle. Both steps are gated on the cached turn seat and on nothing
    being in flight. That gate only decides what the screen offers: the
    cached turn may be stale, and the pick transaction is what actually
    accepts or rejects a pick. A rejection is shown to the player and never
    retried.
    """

    def __init__(
        self,
        data_access,
        seat: int,
        roster: Roster = DEFAULT_ROSTER,
        on_change: Optional[ChangeCallback] = None,
    ):
        self.data_access = data_access
        self.seat = seat
        self.roster = roster
        self.on_change = on_change
        self.is_valid_seat = roster.is_valid_seat(seat)

        self.state: Optional[DraftStateSchema] = None
        self.available: List[AvailableCelebritySchema] = []
        self.loading: bool = True
        self.error: Optional[str] = None
        self.rt_status: str = RealtimeStatus.connecting.value
        self.rt_events: int = 0
        self.rt_last: str = ""

        self.pending_pick: Optional[AvailableCelebritySchema] = None
        self.picking_id: Optional[UUID] = None
        self.last_result: Optional[PickResultModel] = None

        self._alive = False
        self._subscription = None
        self.reconciler = ChangeReconciler(
            [
                (draft_state_filter(), self._on_draft_state),
                (picks_filter("*"), self._on_picks_changed),
            ]
        )

    @property
    def alive(self) -> bool:
        return self._alive

    @property
    def my_name(self) -> str:
        return self.roster.seat_to_name(self.seat) if self.is_valid_seat else "Unknown"

    @property
    def turn_seat(self) -> Optional[int]:
        return self.state.turn_seat if self.state else None

    @property
    def is_my_turn(self) -> bool:
        return self.is_valid_seat and self.turn_seat == self.seat

    @property
    def live_label(self) -> str:
        if self.rt_status == RealtimeStatus.subscribed.value:
            return "Live"
        if self.rt_status == RealtimeStatus.channel_error.value:
            return "Not Live - Refresh"
        return "Connecting"

    @property
    def phase(self) -> SubmissionPhase:
        if self.picking_id is not None:
            return SubmissionPhase.submitting
        if self.pending_pick is not None:
            return SubmissionPhase.pending_confirmation
        return SubmissionPhase.idle

    @property
    def can_pick(self) -> bool:
        return self.is_my_turn and self.picking_id is None

    async def load_state(self):
        state = await self.data_access.read_draft_state()
        if self._alive:
            self.state = state

    async def load_available(self):
        available = await self.data_access.read_available()
        if self._alive:
            self.available = available

    async def load_all(self):
        self.error = None
        await asyncio.gather(self.load_state(), self.load_available())

    async def mount(self, subscribe: bool = True):
        if not self.is_valid_seat:
            return
        self._alive = True
        self.loading = True
        self.rt_status = RealtimeStatus.connecting.value
        if subscribe:
            self._subscription = self.data_access.subscribe(
                f"death-draft-pick-seat-{self.seat}",
                self.reconciler.filters,
                self.reconciler.dispatch,
                on_status=self._on_status,
                on_malformed=self.resync,
            )
        try:
            await self.load_all()
        except DataAccessError as e:
            if self._alive:
                self.error = str(e) or "Failed to load."
        finally:
            if self._alive:
                self.loading = False

    async def unmount(self):
        self._alive = False
        if self._subscription is not None:
            await self._subscription.close()
            self._subscription = None

    async def refresh(self):
        """Manual refresh button."""
        if not self._alive:
            return
        self.error = None
        self.loading = True
        try:
            await self.load_all()
        except DataAccessError as e:
            if self._alive:
                self.error = str(e) or "Failed to refresh."
        finally:
            if self._alive:
                self.loading = False

    async def resync(self):
        """Background reload that leaves the error banner alone on failure."""
        if not self._alive:
            return
        try:
            await self.load_all()
        except DataAccessError as e:
            logging.warning(f"Resync of seat {self.seat} failed: {e}")
        await self._notify()

    async def handle_visibility_change(self, visible: bool):
        if visible and self._alive:
            await self.resync()

    def select(self, celebrity_id: UUID) -> bool:
        """Open the confirmation step for a celebrity.

        Returns:
            bool: False when the pick is not offered right now
        """
        if not self.can_pick:
            return False
        celebrity = next((c for c in self.available if c.id == celebrity_id), None)
        if celebrity is None:
            self.error = "That celebrity is no longer available."
            return False
        self.error = None
        self.pending_pick = celebrity
        return True

    def cancel(self) -> bool:
        if self.picking_id is not None:
            return False
        self.pending_pick = None
        return True

    async def confirm(self) -> Optional[PickResultModel]:
        """Submit the pending pick.

        The turn is checked again because it may have moved on while the
        confirmation was open. When the check fails nothing is sent.

        Returns:
            Optional[PickResultModel]: None if nothing was submitted, else the outcome
        """
        if not self.can_pick or self.pending_pick is None:
            return None

        pending = self.pending_pick
        self.error = None
        self.picking_id = pending.id
        try:
            try:
                result = await self.data_access.make_pick(self.seat, pending.id)
            except DataAccessError as e:
                result = PickResultModel(ok=False, message=str(e) or PICK_FAILED)

            if not self._alive:
                return result
            self.last_result = result
            self.pending_pick = None
            if not result.ok:
                self.error = result.message or PICK_FAILED
                return result

            # The change feed will catch up too, but it may lag or be down.
            try:
                await self.load_all()
            except DataAccessError as e:
                if self._alive:
                    self.error = str(e) or "Failed to load."
            return result
        finally:
            self.picking_id = None

    async def _notify(self):
        if self._alive and self.on_change is not None:
            await self.on_change()

    def _on_status(self, status: str):
        if self._alive:
            self.rt_status = status

    def _touch(self):
        self.rt_events += 1
        self.rt_last = datetime.now().strftime("%H:%M:%S")

    async def _on_draft_state(self, event: ChangeEventModel):
        if event.new.get("id") != DRAFT_STATE_ID:
            return
        if self._alive:
            self.state = data_converter.payload_to_draft_state(event.new)
            self._touch()
        await self._notify()

    async def _on_picks_changed(self, event: ChangeEventModel):
        if self._alive:
            self._touch()
        try:
            await self.load_available()
        except DataAccessError as e:
            logging.info(f"Ignoring transient availability reload failure: {e}")
        await self._notify()

    def snapshot(self) -> Dict[str, Any]:
        if not self.is_valid_seat:
            return {
                "valid": False,
                "seat": self.seat,
                "message": f"This page expects a seat from 1 to {len(self.roster)}.",
                "home": "/",
            }
        pending = self.pending_pick
        return {
            "valid": True,
            "seat": self.seat,
            "name": self.my_name,
            "turn_seat": self.turn_seat,
            "turn_name": self.roster.seat_to_name(self.turn_seat) if self.turn_seat else None,
            "is_my_turn": self.is_my_turn,
            "pick_label": f"Pick #{self.state.pick_number + 1}" if self.state else "",
            "available": data_converter.available_payload(self.available),
            "can_pick": self.can_pick,
            "phase": self.phase.value,
            "pending_pick": (
                {"id": str(pending.id), "name": pending.name, "age": pending.age}
                if pending
                else None
            ),
            "picking_id": str(self.picking_id) if self.picking_id else None,
            "loading": self.loading,
            "error": self.error,
            "live_label": self.live_label,
            "rt_status": self.rt_status,
            "rt_events": self.rt_events,
            "rt_last": self.rt_last,
            "draft_complete": not self.loading and not self.available,
            "last_result": self.last_result.model_dump() if self.last_result else None,
        }
