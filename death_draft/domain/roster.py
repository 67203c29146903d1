"""Roster and turn-order rules.

The roster is the ordered list of players; seat numbers run from 1 to the
roster size and the draft visits them in that order, wrapping around.

Turn order derived here is for display and consistency checks only. The
authoritative turn-holder is DraftState.turn_seat, and the only legality
check that counts is the one done inside the pick transaction.
"""

from typing import Iterator, List, Optional, Sequence

from death_draft.models.dc_models import PlayerModel

DEFAULT_PLAYER_NAMES = ["Scoot", "Brian", "Stephan", "Bee", "Ryan", "Thomas"]


class Roster:
    def __init__(self, players: Sequence[PlayerModel]):
        if not players:
            raise ValueError("roster must contain at least one player")
        seats = [p.seat for p in players]
        if seats != list(range(1, len(players) + 1)):
            raise ValueError("roster seats must be numbered 1..N in draft order")
        self._players: List[PlayerModel] = list(players)

    @classmethod
    def from_names(cls, names: Sequence[str]) -> "Roster":
        return cls([PlayerModel(seat=i + 1, name=name) for i, name in enumerate(names)])

    @classmethod
    def from_config(cls, value: str) -> "Roster":
        """Build a roster from a comma separated list of names."""
        names = [name.strip() for name in value.split(",") if name.strip()]
        return cls.from_names(names)

    def __iter__(self) -> Iterator[PlayerModel]:
        return iter(self._players)

    def __len__(self) -> int:
        return len(self._players)

    @property
    def players(self) -> List[PlayerModel]:
        return list(self._players)

    @property
    def seats(self) -> List[int]:
        return [p.seat for p in self._players]

    def is_valid_seat(self, seat: int) -> bool:
        return 1 <= seat <= len(self._players)

    def seat_to_name(self, seat: int) -> str:
        if self.is_valid_seat(seat):
            return self._players[seat - 1].name
        return f"Seat {seat}"

    def turn_holder_for(self, picks_so_far: int) -> PlayerModel:
        """Player on the clock once `picks_so_far` picks have been made."""
        if picks_so_far < 0:
            raise ValueError("picks_so_far must be >= 0")
        return self._players[picks_so_far % len(self._players)]

    def next_seat(self, seat: int) -> int:
        if not self.is_valid_seat(seat):
            raise ValueError(f"invalid seat: {seat}")
        return seat % len(self._players) + 1

    def draft_order_label(self) -> str:
        return " → ".join(p.name for p in self._players)

    def parse_seat(self, raw: str) -> Optional[int]:
        """Parse a route segment into a seat, or None when it is not one."""
        raw = raw.strip()
        if not raw.isdigit():
            return None
        seat = int(raw)
        return seat if self.is_valid_seat(seat) else None


DEFAULT_ROSTER = Roster.from_names(DEFAULT_PLAYER_NAMES)
