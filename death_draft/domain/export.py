"""Board snapshot formatting for downloads.

The CSV layout mirrors the board: two columns per seat (name, age) in roster
order, one line per pick slot, short seats padded with empty cells.
"""

from datetime import datetime
from typing import Dict, List

from death_draft.domain.board import sort_seat_rows
from death_draft.domain.roster import Roster
from death_draft.models.schema_models import BoardRowSchema

EXPORT_FILE_PREFIX = "death-draft-board"
QUOTE_TRIGGERS = ("\n", "\r", ",", "\"")


def csv_headers(roster: Roster) -> List[str]:
    headers: List[str] = []
    for player in roster:
        headers.append(player.name)
        headers.append(f"{player.name} Age")
    return headers


def board_grid(
    by_seat: Dict[int, List[BoardRowSchema]], roster: Roster
) -> List[List[str]]:
    """Lay the grouped board out as rows of cells, headers excluded."""
    lists = {player.seat: sort_seat_rows(by_seat.get(player.seat, [])) for player in roster}
    max_len = max([0] + [len(rows) for rows in lists.values()])

    grid: List[List[str]] = []
    for i in range(max_len):
        line: List[str] = []
        for player in roster:
            seat_rows = lists[player.seat]
            item = seat_rows[i] if i < len(seat_rows) else None
            line.append(item.celebrity_name if item else "")
            line.append(str(item.celebrity_age) if item else "")
        grid.append(line)
    return grid


def escape_field(value: str) -> str:
    if any(c in value for c in QUOTE_TRIGGERS):
        return '"' + value.replace('"', '""') + '"'
    return value


def board_to_csv(by_seat: Dict[int, List[BoardRowSchema]], roster: Roster) -> str:
    """Render the grouped board as CSV text.

    Fields containing a comma, a double quote, CR or LF are quoted with inner
    quotes doubled. Lines are joined with LF and there is no trailing newline.

    Args:
        by_seat (Dict[int, List[BoardRowSchema]]): Rows grouped by seat
        roster (Roster): Players in draft order

    Returns:
        str: CSV document
    """
    lines = [csv_headers(roster)] + board_grid(by_seat, roster)
    return "\n".join(",".join(escape_field(cell) for cell in line) for line in lines)


def export_stamp(now: datetime) -> str:
    """Timestamp safe for file names, e.g. 2026-01-05-18-30-00."""
    return now.isoformat()[:19].replace(":", "-").replace("T", "-")


def export_filename(now: datetime, extension: str) -> str:
    return f"{EXPORT_FILE_PREFIX}-{export_stamp(now)}.{extension}"
