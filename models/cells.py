"""Typed spreadsheet cell values as handed over by the workbook decoder."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union


@dataclass(frozen=True, slots=True)
class EmptyCell:
    """A blank or missing cell."""


@dataclass(frozen=True, slots=True)
class TextCell:
    value: str


@dataclass(frozen=True, slots=True)
class NumericCell:
    value: float


Cell = Union[EmptyCell, TextCell, NumericCell]

EMPTY = EmptyCell()


def cell_at(row: list[Cell], index: int) -> Cell:
    """Return the cell at ``index``, treating short rows as padded with blanks."""
    if 0 <= index < len(row):
        return row[index]
    return EMPTY
