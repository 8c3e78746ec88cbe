from __future__ import annotations

from dataclasses import dataclass, replace

from .model import RawDataValidation
from .parser.utils import DIGITS_RE, col_to_index, index_to_col

UNPARSED = -1


@dataclass(slots=True, frozen=True)
class RangeBounds:
    start_row: int
    start_col: int
    end_row: int
    end_col: int


@dataclass(slots=True)
class DataValidation:
    type: str = ""
    allow_blank: str = ""
    show_input_message: str = ""
    show_error_message: str = ""
    sqref: str = ""
    formula1: str = ""
    formula2: str = ""
    sheet_name: str = ""
    depend_row: int = 0
    depend_col: int = 0
    bounds: RangeBounds | None = None

    @property
    def start_row(self) -> int:
        return self.bounds.start_row if self.bounds is not None else UNPARSED

    @start_row.setter
    def start_row(self, value: int) -> None:
        self._move(start_row=value)

    @property
    def start_col(self) -> int:
        return self.bounds.start_col if self.bounds is not None else UNPARSED

    @start_col.setter
    def start_col(self, value: int) -> None:
        self._move(start_col=value)

    @property
    def end_row(self) -> int:
        return self.bounds.end_row if self.bounds is not None else UNPARSED

    @end_row.setter
    def end_row(self, value: int) -> None:
        self._move(end_row=value)

    @property
    def end_col(self) -> int:
        return self.bounds.end_col if self.bounds is not None else UNPARSED

    @end_col.setter
    def end_col(self, value: int) -> None:
        self._move(end_col=value)

    def _move(self, **changes: int) -> None:
        if self.bounds is None:
            raise ValueError("Cannot move the bounds of an unparsed validation")
        self.bounds = replace(self.bounds, **changes)

    @property
    def is_list(self) -> bool:
        return self.type == "list"

    @classmethod
    def from_raw(cls, raw: RawDataValidation) -> DataValidation:
        validation = cls(
            type=raw.type,
            allow_blank=raw.allow_blank,
            show_input_message=raw.show_input_message,
            show_error_message=raw.show_error_message,
            sqref=raw.sqref,
            formula1=raw.formula1,
            formula2=raw.formula2,
        )
        validation.decode_formula()
        return validation

    def decode_formula(self) -> None:
        if not self.is_list:
            return
        self.bounds = None

        groups = self.formula1.split(":")
        if len(groups) not in (1, 2):
            return

        first = _parse_anchor(groups[0], allow_sheet=True)
        if first is None:
            return
        sheet_name, start_col, start_row = first

        end_col, end_row = start_col, start_row
        if len(groups) == 2:
            second = _parse_anchor(groups[1], allow_sheet=False)
            if second is None:
                return
            _, end_col, end_row = second

        if sheet_name:
            self.sheet_name = sheet_name
        self.bounds = RangeBounds(start_row=start_row, start_col=start_col, end_row=end_row, end_col=end_col)

    def encode_formula(self) -> None:
        if not self.is_list or self.bounds is None:
            return
        prefix = f"{self.sheet_name}!" if self.sheet_name else ""
        b = self.bounds
        start = f"${index_to_col(b.start_col)}${b.start_row + 1}"
        if b.start_row == b.end_row and b.start_col == b.end_col:
            self.formula1 = prefix + start
        else:
            self.formula1 = f"{prefix}{start}:${index_to_col(b.end_col)}${b.end_row + 1}"

    def encode_layered_formula(self) -> None:
        """Rebuild Formula1 as a cascading list keyed on another cell.

        The list name is read from the cell at (`depend_col`, `depend_row`),
        where `depend_col` is 0-based and `depend_row` is the row number as
        written in A1 notation, and suffixed with the start column letters.
        """
        if not self.is_list or self.bounds is None:
            return
        anchor = f"{index_to_col(self.depend_col)}{self.depend_row}"
        self.formula1 = f'INDIRECT({anchor}&"{index_to_col(self.start_col)}")'


def _parse_anchor(group: str, *, allow_sheet: bool) -> tuple[str, int, int] | None:
    tokens = group.split("$")
    if len(tokens) != 3:
        return None
    prefix, letters, digits = tokens
    sheet_name = ""
    if prefix:
        if not (allow_sheet and prefix.endswith("!") and len(prefix) > 1):
            return None
        sheet_name = prefix[:-1]
    if not DIGITS_RE.match(digits):
        return None
    try:
        col = col_to_index(letters)
    except ValueError:
        return None
    row = int(digits)
    if row < 1:
        return None
    return sheet_name, col, row - 1
