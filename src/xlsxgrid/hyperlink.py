from __future__ import annotations

from typing import Iterator

from .model import SheetContent
from .parser.utils import parse_cell_reference

PREFIX = "HYPERLINK("
SUFFIX = ")"


class Hyperlink:
    def __init__(self, formula: str, row: int, col: int) -> None:
        self.formula = formula
        self.row = row
        self.col = col
        self.cell_value = ""
        self.sheet_name = ""
        self.start_row = 0
        self.start_col = 0
        self.end_row = 0
        self.end_col = 0
        self.valid = self._decode()

    def __repr__(self) -> str:
        return (
            f"Hyperlink(sheet_name={self.sheet_name!r}, cell_value={self.cell_value!r}, "
            f"start=({self.start_row}, {self.start_col}), end=({self.end_row}, {self.end_col}), "
            f"valid={self.valid})"
        )

    def _decode(self) -> bool:
        if not is_hyperlink_formula(self.formula):
            return False
        args = _split_arguments(self.formula[len(PREFIX) : -len(SUFFIX)])
        if len(args) != 2:
            return False
        target, display = args
        self.cell_value = display.replace('"', "")

        target = target.replace('"', "").replace("！", "!").replace("：", ":")
        sheet_and_range = target.split("!")
        if len(sheet_and_range) != 2:
            return False
        sheet_token, range_token = sheet_and_range
        if len(sheet_token) <= 2 or not sheet_token.startswith("#"):
            return False
        self.sheet_name = sheet_token[1:]

        anchors = range_token.split(":")
        if len(anchors) not in (1, 2):
            return False
        try:
            start_col, start_row = parse_cell_reference(anchors[0])
            end_col, end_row = parse_cell_reference(anchors[-1])
        except ValueError:
            return False
        self.start_row, self.start_col = start_row, start_col
        self.end_row, self.end_col = end_row, end_col
        return True


def is_hyperlink_formula(formula: str) -> bool:
    return formula.startswith(PREFIX) and formula.endswith(SUFFIX) and len(formula) > len(PREFIX)


def get_hyperlink(formula: str, row: int, col: int) -> Hyperlink | None:
    if not is_hyperlink_formula(formula):
        return None
    return Hyperlink(formula, row, col)


def iter_hyperlinks(sheet: SheetContent) -> Iterator[Hyperlink]:
    for row_idx in sorted(sheet.content):
        row = sheet.content[row_idx]
        for col_idx in sorted(row):
            formula = row[col_idx].formula
            if formula:
                link = get_hyperlink(formula, row_idx, col_idx)
                if link is not None:
                    yield link


def _split_arguments(text: str) -> list[str]:
    args: list[str] = []
    current: list[str] = []
    in_quote = False
    for ch in text:
        if ch == '"':
            in_quote = not in_quote
        elif ch == "," and not in_quote:
            args.append("".join(current))
            current = []
            continue
        current.append(ch)
    args.append("".join(current))
    return args
