"""Matching change-feed events against subscription filters.

Row filters use the `column=eq.value` form, e.g. `id=eq.1`. Values are
compared as strings so that `1` in a filter matches the integer 1 in a row.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional

from death_draft.models.dc_models import ChangeEventModel, ChangeEventType

ANY_EVENT = "*"


@dataclass(frozen=True)
class RowFilter:
    column: str
    value: str

    @classmethod
    def parse(cls, expression: str) -> "RowFilter":
        column, sep, rest = expression.partition("=")
        operator, dot, value = rest.partition(".")
        if not sep or not dot or operator != "eq" or not column:
            raise ValueError(f"unsupported row filter: {expression!r}")
        return cls(column=column.strip(), value=value.strip())

    def matches(self, row: Dict[str, Any]) -> bool:
        if self.column not in row or row[self.column] is None:
            return False
        return str(row[self.column]) == self.value


@dataclass(frozen=True)
class ChangeFilter:
    table: str
    event: str = ANY_EVENT
    filter: Optional[str] = None

    def __post_init__(self):
        if self.event != ANY_EVENT:
            ChangeEventType(self.event)
        if self.filter is not None:
            RowFilter.parse(self.filter)

    def matches(self, event: ChangeEventModel) -> bool:
        if event.table != self.table:
            return False
        if self.event != ANY_EVENT and event.event_type.value != self.event:
            return False
        if self.filter is None:
            return True
        row_filter = RowFilter.parse(self.filter)
        # Deletes only carry the old row.
        row = event.new or event.old
        return row_filter.matches(row)
