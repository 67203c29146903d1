import unicodedata
from typing import Dict, Iterable, List, Optional

from death_draft.domain.roster import Roster
from death_draft.models.schema_models import BoardRowSchema


def name_collation_key(name: str) -> tuple:
    """Dictionary order for names: accents and case only break ties.

    "adam" sorts before "Bob" and "Émile" between "Bob" and "Zed"; two names
    that differ only in case or accents still order deterministically.
    """
    folded = unicodedata.normalize("NFKD", name).casefold()
    base = "".join(c for c in folded if not unicodedata.combining(c))
    return (base, folded, name)


def board_sort_key(row: BoardRowSchema) -> tuple:
    """Oldest first; equal ages fall back to the celebrity name."""
    return (-row.celebrity_age, name_collation_key(row.celebrity_name))


def sort_seat_rows(rows: Iterable[BoardRowSchema]) -> List[BoardRowSchema]:
    return sorted(rows, key=board_sort_key)


def group_by_seat(
    rows: Iterable[BoardRowSchema], roster: Roster
) -> Dict[int, List[BoardRowSchema]]:
    """Group board rows by seat and sort each seat's picks.

    Every roster seat gets an entry, empty when it has no picks yet. Rows for
    seats outside the roster are kept under their own key after the roster
    seats.

    Args:
        rows (Iterable[BoardRowSchema]): Board rows in any order
        roster (Roster): Players in draft order

    Returns:
        Dict[int, List[BoardRowSchema]]: Seat to sorted rows
    """
    grouped: Dict[int, List[BoardRowSchema]] = {seat: [] for seat in roster.seats}
    for row in rows:
        grouped.setdefault(row.seat, []).append(row)

    return {seat: sort_seat_rows(seat_rows) for seat, seat_rows in grouped.items()}


def most_recent_pick_number(rows: Iterable[BoardRowSchema]) -> Optional[int]:
    numbers = [row.pick_number for row in rows]
    if not numbers:
        return None
    return max(numbers)
