"""Sort and grouping preferences for the quote table."""

from __future__ import annotations

from dataclasses import dataclass

# Column picker has nothing selected
NO_COLUMN = -1


@dataclass
class SortState:
    """Current sort column, direction and grouping flag.

    Attributes:
        column: Index of the column the quotes are sorted by.
        ascending: True when sort order is ascending.
        grouped: True when quotes are grouped by advancing/declining.
        selected_column: Column picked in the column editor, waiting for
            ``reorder()``. Not persisted.

    """

    column: int = 0
    ascending: bool = True
    grouped: bool = False
    selected_column: int = NO_COLUMN

    def reorder(self) -> None:
        """Reverse the order of the current column or switch to the selected one.

        Column bounds are not checked; the column editor only offers
        columns that exist.
        """
        if self.selected_column == self.column:
            self.ascending = not self.ascending
        else:
            self.column = self.selected_column

    def regroup(self) -> None:
        """Toggle grouping by advancing/declining issues."""
        self.grouped = not self.grouped
