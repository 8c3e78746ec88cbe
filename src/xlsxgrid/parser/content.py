from __future__ import annotations

import logging
import re
from datetime import date, datetime, timedelta

from ..errors import MergeReferenceError, SheetDecodeError
from ..model import (
    Cell,
    CellType,
    RangeRef,
    RawCell,
    RawWorksheet,
    SharedStringResolver,
    SheetContent,
    StyleResolver,
)
from ..validation import DataValidation
from .utils import parse_cell_reference, parse_range_ref, rowcol_to_coord

logger = logging.getLogger(__name__)

_TRIM = " \t\n\r"

_PASSTHROUGH_TYPES = {
    "b": CellType.BOOL,
    "e": CellType.ERROR,
    "str": CellType.STRING_FORMULA,
    "d": CellType.DATE,
}

_LITERAL_RE = re.compile(r"(\"(?:[^\"]|\"\")*\"|'(?:[^']|'')*')")
_A1_RE = re.compile(r"(?<![A-Za-z0-9_$.])(\$?)([A-Z]{1,3})(\$?)([0-9]+)(?![A-Za-z0-9_(!])")


def excel_serial_to_date(serial: float, date1904: bool = False) -> date:
    """Convert a spreadsheet serial day count to a calendar date.

    The 1900 system counts a non-existent 1900-02-29 as day 60, so serials
    before it are anchored one day later than the rest.
    """
    if date1904:
        base = datetime(1904, 1, 1)
    elif serial < 61:
        base = datetime(1899, 12, 31)
    else:
        base = datetime(1899, 12, 30)
    return (base + timedelta(days=serial)).date()


class MergeTable:
    def __init__(self, merge_refs: list[str]) -> None:
        self._by_anchor: dict[str, str] = {}
        self._ranges: list[RangeRef] = []
        self._row_spans: dict[int, list[RangeRef]] = {}
        for ref in merge_refs:
            if ":" not in ref:
                continue
            anchor = ref.split(":", 1)[0].replace("$", "").upper()
            self._by_anchor.setdefault(anchor, ref)
            try:
                self._ranges.append(parse_range_ref(ref))
            except ValueError:
                # Raised as MergeReferenceError once a cell sits on the anchor.
                continue

    def __len__(self) -> int:
        return len(self._by_anchor)

    def extent(self, cell_ref: str) -> tuple[int, int]:
        ref = self._by_anchor.get(cell_ref.replace("$", "").upper())
        if ref is None:
            return 0, 0
        try:
            rng = parse_range_ref(ref)
        except ValueError as exc:
            raise MergeReferenceError(f"Malformed merge reference {ref!r}") from exc
        return rng.end_col - rng.start_col, rng.end_row - rng.start_row

    def covers(self, cell_ref: str, col: int, row: int) -> bool:
        if not self._ranges or cell_ref.replace("$", "").upper() in self._by_anchor:
            return False
        spans = self._row_spans.get(row)
        if spans is None:
            spans = [rng for rng in self._ranges if rng.start_row <= row <= rng.end_row]
            self._row_spans[row] = spans
        return any(rng.start_col <= col <= rng.end_col for rng in spans)


class SharedFormulaTable:
    def __init__(self) -> None:
        self._masters: dict[int, tuple[int, int, str]] = {}

    def formula_for(self, raw: RawCell) -> str | None:
        formula = raw.formula
        if formula is None:
            return None
        if formula.kind != "shared" or formula.shared_index is None:
            return formula.text.strip(_TRIM) or None

        try:
            col, row = parse_cell_reference(raw.ref)
        except ValueError:
            return formula.text.strip(_TRIM) or None

        if formula.ref:
            self._masters[formula.shared_index] = (col, row, formula.text)
            return formula.text.strip(_TRIM) or None

        master = self._masters.get(formula.shared_index)
        if master is None:
            return None
        master_col, master_row, text = master
        shifted = shift_formula(text, col - master_col, row - master_row)
        return shifted.strip(_TRIM) or None


def shift_formula(text: str, dx: int, dy: int) -> str:
    if dx == 0 and dy == 0:
        return text

    def shift(match: re.Match[str]) -> str:
        fixed_col, letters, fixed_row, digits = match.groups()
        try:
            col, row = parse_cell_reference(letters + digits)
        except ValueError:
            return match.group(0)
        if not fixed_col:
            col += dx
        if not fixed_row:
            row += dy
        if col < 0 or row < 0:
            return "#REF!"
        return rowcol_to_coord(row, col, fixed_row=bool(fixed_row), fixed_col=bool(fixed_col))

    parts = _LITERAL_RE.split(text)
    # re.split with one capturing group alternates code and literal segments.
    return "".join(part if idx % 2 else _A1_RE.sub(shift, part) for idx, part in enumerate(parts))


def fill_cell_value(
    raw: RawCell,
    cell: Cell,
    shared_strings: SharedStringResolver,
    date1904: bool = False,
) -> bool:
    val = raw.value.strip(_TRIM)
    code = raw.type_code

    if code == "s":
        cell.cell_type = CellType.STRING
        if val:
            try:
                index = int(val)
            except ValueError as exc:
                raise SheetDecodeError(f"Invalid shared string index {val!r} in {raw.ref}") from exc
            cell.value = shared_strings.resolve(index)
        return True

    if code == "inlineStr":
        cell.cell_type = CellType.INLINE
        cell.value = raw.inline_text or ""
        return True

    if code in _PASSTHROUGH_TYPES:
        cell.cell_type = _PASSTHROUGH_TYPES[code]
        cell.value = val
        return True

    if code in {"", "n"}:
        if cell.is_time_format:
            try:
                cell.value = excel_serial_to_date(float(val), date1904).strftime("%Y-%m-%d")
                cell.cell_type = CellType.DATE
                return True
            except (ValueError, OverflowError):
                pass
        cell.cell_type = CellType.NUMERIC
        cell.value = val
        return True

    cell.cell_type = CellType.GENERAL
    cell.value = val
    return False


def build_sheet_content(
    raw: RawWorksheet,
    *,
    shared_strings: SharedStringResolver,
    styles: StyleResolver | None = None,
    name: str = "",
    path: str = "",
    date1904: bool = False,
    decode_validations: bool = True,
) -> SheetContent:
    merges = MergeTable(raw.merge_refs)
    formulas = SharedFormulaTable()
    content: dict[int, dict[int, Cell]] = {}
    touched_cols: set[int] = set()
    value_rows: set[int] = set()
    unknown_codes: set[str] = set()
    max_col = 0
    max_row = 0

    # Rows are indexed by position; the r attribute of <row> is ignored.
    for row_idx, raw_row in enumerate(raw.rows):
        row: dict[int, Cell] = {}
        for raw_cell in raw_row.cells:
            h_merge, v_merge = merges.extent(raw_cell.ref)
            try:
                col, ref_row = parse_cell_reference(raw_cell.ref)
            except ValueError as exc:
                raise SheetDecodeError(f"Invalid cell reference {raw_cell.ref!r}") from exc

            cell = Cell(h_merge=h_merge, v_merge=v_merge, style_ref=raw_cell.style_index)
            if styles is not None:
                style_index = raw_cell.style_index if raw_cell.style_index is not None else 0
                cell.style = styles.style_for(style_index)
                cell.num_fmt, cell.is_time_format = styles.number_format_for(style_index)
            cell.formula = formulas.formula_for(raw_cell)
            if not fill_cell_value(raw_cell, cell, shared_strings, date1904):
                unknown_codes.add(raw_cell.type_code)

            # Cells swallowed by a merge count toward the row and column sets only.
            if not merges.covers(raw_cell.ref, col, ref_row):
                row[col] = cell
            max_col = max(max_col, col)
            touched_cols.update(range(col, col + h_merge + 1))
            if cell.value != "":
                value_rows.add(row_idx)
        content[row_idx] = row
        max_row = max(max_row, row_idx)

    if unknown_codes:
        logger.warning("Sheet %r: unknown cell type codes %s read as general", name, sorted(unknown_codes))

    # A vertically merged block carries a value if any of its rows does.
    for row_idx, row in content.items():
        for cell in row.values():
            if cell.v_merge <= 0:
                continue
            span = range(row_idx, row_idx + cell.v_merge + 1)
            if any(idx in value_rows for idx in span):
                value_rows.update(span)

    sheet = SheetContent(
        name=name,
        path=path,
        dimension_ref=raw.dimension_ref,
        content=content,
        blank_cols={idx for idx in range(max_col + 1) if idx not in touched_cols},
        blank_rows={idx for idx in range(len(content)) if idx not in value_rows},
        max_row=max_row,
        max_col=max_col,
        rows=len(content),
        cols=len(touched_cols),
    )
    if decode_validations:
        sheet.data_validations = [DataValidation.from_raw(dv) for dv in raw.data_validations]
    return sheet
