from datetime import datetime
from typing import Any, Dict, List, Optional

from death_draft.domain.board import group_by_seat, most_recent_pick_number
from death_draft.domain.roster import Roster
from death_draft.models.dc_models import ChangeEventModel, ChangeEventType
from death_draft.models.schema_models import (
    AvailableCelebritySchema,
    BoardRowSchema,
    DraftStateSchema,
    PickSchema,
)

PICKS_TABLE = "death_draft_picks"
STATE_TABLE = "death_draft_state"


class DataConverter:
    """This class is used to convert data between rows, change events and client payloads."""

    def pick_to_row_payload(self, pick: PickSchema) -> Dict[str, Any]:
        return pick.model_dump(mode="json")

    def draft_state_to_row_payload(self, state: DraftStateSchema) -> Dict[str, Any]:
        return state.model_dump(mode="json")

    def pick_change_event(
        self,
        event_type: ChangeEventType,
        pick: PickSchema,
        commit_timestamp: datetime,
    ) -> ChangeEventModel:
        """Build the change event for an inserted or deleted pick

        Args:
            event_type (ChangeEventType): INSERT or DELETE
            pick (PickSchema): The pick row
            commit_timestamp (datetime): When the transaction committed

        Returns:
            ChangeEventModel: Event with the row as "new" (insert) or "old" (delete)
        """
        payload = self.pick_to_row_payload(pick)
        return ChangeEventModel(
            event_type=event_type,
            table=PICKS_TABLE,
            new=payload if event_type != ChangeEventType.delete else {},
            old=payload if event_type == ChangeEventType.delete else {},
            commit_timestamp=commit_timestamp,
        )

    def draft_state_change_event(
        self,
        old_state: DraftStateSchema,
        new_state: DraftStateSchema,
        commit_timestamp: datetime,
    ) -> ChangeEventModel:
        return ChangeEventModel(
            event_type=ChangeEventType.update,
            table=STATE_TABLE,
            new=self.draft_state_to_row_payload(new_state),
            old=self.draft_state_to_row_payload(old_state),
            commit_timestamp=commit_timestamp,
        )

    def payload_to_draft_state(self, payload: Dict[str, Any]) -> DraftStateSchema:
        """Read a DraftState row out of an event payload; raises if it is incomplete."""
        return DraftStateSchema(
            id=payload["id"],
            turn_seat=payload["turn_seat"],
            pick_number=payload["pick_number"],
            updated_at=payload.get("updated_at"),
        )

    def board_snapshot(
        self,
        rows: List[BoardRowSchema],
        roster: Roster,
        draft_state: Optional[DraftStateSchema] = None,
    ) -> Dict[str, Any]:
        """Convert board rows into the payload sent to board screens

        Args:
            rows (List[BoardRowSchema]): All board rows
            roster (Roster): Players in draft order
            draft_state (Optional[DraftStateSchema]): Current turn, if known

        Returns:
            Dict[str, Any]: Columns per player with the latest pick flagged
        """
        by_seat = group_by_seat(rows, roster)
        last_pick_number = most_recent_pick_number(rows)
        columns = []
        for player in roster:
            columns.append(
                {
                    "seat": player.seat,
                    "name": player.name,
                    "picks": [
                        {
                            "pick_number": row.pick_number,
                            "celebrity_id": str(row.celebrity_id),
                            "celebrity_name": row.celebrity_name,
                            "celebrity_age": row.celebrity_age,
                            "latest": row.pick_number == last_pick_number,
                        }
                        for row in by_seat[player.seat]
                    ],
                }
            )
        return {
            "pick_count": len(rows),
            "last_pick_number": last_pick_number,
            "turn_seat": draft_state.turn_seat if draft_state else None,
            "turn_name": roster.seat_to_name(draft_state.turn_seat) if draft_state else None,
            "columns": columns,
        }

    def available_payload(self, available: List[AvailableCelebritySchema]) -> List[Dict[str, Any]]:
        return [
            {"id": str(c.id), "name": c.name, "age": c.age}
            for c in available
        ]
