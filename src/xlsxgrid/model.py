from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from .validation import DataValidation

NO_ROW_LIMIT = None


@dataclass(slots=True)
class ReadOptions:
    row_limit: int | None = NO_ROW_LIMIT
    max_workers: int = 1
    include_hidden_sheets: bool = True
    decode_validations: bool = True


class CellType(str, Enum):
    STRING = "string"
    INLINE = "inline"
    BOOL = "bool"
    ERROR = "error"
    STRING_FORMULA = "string_formula"
    DATE = "date"
    NUMERIC = "numeric"
    GENERAL = "general"


@dataclass(slots=True)
class RangeRef:
    ref: str
    start_row: int
    start_col: int
    end_row: int
    end_col: int


@dataclass(slots=True, frozen=True)
class CellStyle:
    index: int
    num_fmt_id: int = 0
    font_id: int = 0
    fill_id: int = 0
    border_id: int = 0
    horizontal: str | None = None
    vertical: str | None = None
    wrap_text: bool = False


class SharedStringResolver(Protocol):
    def resolve(self, index: int) -> str: ...


class StyleResolver(Protocol):
    def style_for(self, index: int) -> CellStyle | None: ...

    def number_format_for(self, index: int) -> tuple[str, bool]: ...


@dataclass(slots=True)
class RawFormula:
    text: str
    kind: str | None = None
    shared_index: int | None = None
    ref: str | None = None


@dataclass(slots=True)
class RawCell:
    ref: str
    type_code: str
    value: str
    style_index: int | None = None
    formula: RawFormula | None = None
    inline_text: str | None = None


@dataclass(slots=True)
class RawRow:
    number: str | None
    cells: list[RawCell] = field(default_factory=list)


@dataclass(slots=True)
class RawColumn:
    min: int
    max: int
    width: float | None = None
    hidden: bool = False
    style_index: int | None = None


@dataclass(slots=True)
class RawDataValidation:
    type: str
    sqref: str
    allow_blank: str = ""
    show_input_message: str = ""
    show_error_message: str = ""
    formula1: str = ""
    formula2: str = ""


@dataclass(slots=True)
class RawWorksheet:
    dimension_ref: str = ""
    columns: list[RawColumn] = field(default_factory=list)
    rows: list[RawRow] = field(default_factory=list)
    merge_refs: list[str] = field(default_factory=list)
    data_validations: list[RawDataValidation] = field(default_factory=list)


@dataclass(slots=True)
class Cell:
    value: str = ""
    cell_type: CellType = CellType.GENERAL
    h_merge: int = 0
    v_merge: int = 0
    formula: str | None = None
    style_ref: int | None = None
    num_fmt: str = ""
    is_time_format: bool = False
    style: CellStyle | None = None


@dataclass(slots=True)
class SheetContent:
    name: str = ""
    path: str = ""
    dimension_ref: str = ""
    content: dict[int, dict[int, Cell]] = field(default_factory=dict)
    blank_cols: set[int] = field(default_factory=set)
    blank_rows: set[int] = field(default_factory=set)
    max_row: int = 0
    max_col: int = 0
    rows: int = 0
    cols: int = 0
    data_validations: list[DataValidation] = field(default_factory=list)

    def cell(self, row: int, col: int) -> Cell | None:
        return self.content.get(row, {}).get(col)


@dataclass(slots=True)
class DeclaredSheet:
    index: int
    name: str
    sheet_id: str
    rid: str
    state: str = "visible"
