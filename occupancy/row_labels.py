"""Editable labels attached to grid rows."""

from __future__ import annotations

from .errors import ValidationError


class RowLabelRegistry:
    """At most one text label per row index."""

    def __init__(self):
        self._labels: dict[int, str] = {}

    def __len__(self) -> int:
        return len(self._labels)

    def __contains__(self, row: int) -> bool:
        return row in self._labels

    @staticmethod
    def _check_row(row: int) -> None:
        if row < 0:
            raise ValidationError("Row index must not be negative")

    def add(self, row: int, text: str) -> bool:
        """Set the label of ``row``, replacing any existing one.

        Blank text is ignored and ``False`` is returned.
        """

        self._check_row(row)
        text = (text or "").strip()
        if not text:
            return False
        self._labels[row] = text
        return True

    def edit(self, row: int, text: str) -> bool:
        self._check_row(row)
        text = (text or "").strip()
        if row not in self._labels or not text:
            return False
        self._labels[row] = text
        return True

    def delete(self, row: int) -> bool:
        return self._labels.pop(row, None) is not None

    def get(self, row: int) -> str | None:
        return self._labels.get(row)

    def items(self) -> list[tuple[int, str]]:
        return sorted(self._labels.items())

    def clear(self) -> None:
        self._labels.clear()
