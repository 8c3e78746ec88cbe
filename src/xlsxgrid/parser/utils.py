from __future__ import annotations

import posixpath
import re

from ..model import RangeRef

LETTERS_RE = re.compile(r"^[A-Z]+$")
DIGITS_RE = re.compile(r"^[0-9]+$")


def col_to_index(col: str) -> int:
    letters = col.replace("$", "").upper()
    if not LETTERS_RE.match(letters):
        raise ValueError(f"Invalid column letters: {col!r}")
    value = 0
    for char in letters:
        value = value * 26 + (ord(char) - 64)
    return value - 1


def index_to_col(index: int) -> str:
    if index < 0:
        raise ValueError("Column index must be >= 0")
    result: list[str] = []
    value = index + 1
    while value > 0:
        value, rem = divmod(value - 1, 26)
        result.append(chr(65 + rem))
    return "".join(reversed(result))


def split_cell_reference(ref: str) -> tuple[str, str]:
    for idx, char in enumerate(ref):
        if "0" <= char <= "9":
            return ref[:idx], ref[idx:]
    return ref, ""


def parse_cell_reference(ref: str) -> tuple[int, int]:
    letters, digits = split_cell_reference(ref.replace("$", ""))
    if not letters or not DIGITS_RE.match(digits):
        raise ValueError(f"Invalid cell reference: {ref!r}")
    row = int(digits)
    if row < 1:
        raise ValueError(f"Invalid cell reference: {ref!r}")
    return col_to_index(letters), row - 1


def rowcol_to_coord(row: int, col: int, *, fixed_row: bool = False, fixed_col: bool = False) -> str:
    if row < 0 or col < 0:
        raise ValueError("row/col must be >= 0")
    col_part = ("$" if fixed_col else "") + index_to_col(col)
    row_part = ("$" if fixed_row else "") + str(row + 1)
    return col_part + row_part


def parse_range_ref(ref: str) -> RangeRef:
    normalized = ref.replace("$", "").strip()
    if ":" in normalized:
        start, end = normalized.split(":", 1)
    else:
        start = end = normalized
    sc, sr = parse_cell_reference(start)
    ec, er = parse_cell_reference(end)
    return RangeRef(
        ref=normalized,
        start_row=min(sr, er),
        start_col=min(sc, ec),
        end_row=max(sr, er),
        end_col=max(sc, ec),
    )


def resolve_target(base_path: str, target: str) -> str:
    if target.startswith("/"):
        return posixpath.normpath(target[1:])
    joined = posixpath.normpath(posixpath.join(posixpath.dirname(base_path), target))
    if joined.startswith("/"):
        joined = joined[1:]
    return joined


def parse_int(value: str | None) -> int | None:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except ValueError:
        return None
