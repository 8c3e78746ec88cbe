from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from .api import load_sheet_contents
from .errors import XlsxGridError
from .model import ReadOptions, SheetContent
from .parser.utils import rowcol_to_coord


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Dump the cell grid of an .xlsx file as JSON")
    parser.add_argument("input", type=Path, help="Input .xlsx file")
    parser.add_argument("-o", "--output", type=Path, help="Output path (default: stdout)")
    parser.add_argument(
        "--row-limit",
        type=int,
        default=None,
        help="Read at most this many rows per worksheet",
    )
    parser.add_argument(
        "--workers",
        type=int,
        default=1,
        help="Number of worksheets decoded concurrently",
    )
    parser.add_argument(
        "--skip-hidden",
        action="store_true",
        help="Skip hidden and very hidden sheets",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
    )
    return parser


def sheet_to_dict(sheet: SheetContent) -> dict:
    cells = []
    for row_idx in sorted(sheet.content):
        row = sheet.content[row_idx]
        for col_idx in sorted(row):
            cell = row[col_idx]
            entry: dict[str, object] = {
                "ref": rowcol_to_coord(row_idx, col_idx),
                "value": cell.value,
                "type": cell.cell_type.value,
            }
            if cell.formula:
                entry["formula"] = cell.formula
            if cell.h_merge or cell.v_merge:
                entry["merge"] = [cell.h_merge, cell.v_merge]
            cells.append(entry)
    return {
        "name": sheet.name,
        "rows": sheet.rows,
        "cols": sheet.cols,
        "max_row": sheet.max_row,
        "max_col": sheet.max_col,
        "blank_rows": sorted(sheet.blank_rows),
        "blank_cols": sorted(sheet.blank_cols),
        "cells": cells,
    }


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(level=args.log_level, format="%(levelname)s %(name)s: %(message)s")

    options = ReadOptions(
        row_limit=args.row_limit,
        max_workers=args.workers,
        include_hidden_sheets=not args.skip_hidden,
    )
    try:
        sheets = load_sheet_contents(args.input, options=options)
    except XlsxGridError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1

    payload = json.dumps({"sheets": [sheet_to_dict(sheet) for sheet in sheets]}, ensure_ascii=False, indent=2)
    if args.output is None:
        print(payload)
    else:
        args.output.write_text(payload + "\n", encoding="utf-8")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
