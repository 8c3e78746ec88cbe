from .api import load_sheet_contents, read_sheet_contents, read_zip_contents
from .errors import (
    ArchiveStructureError,
    FormatError,
    SheetDecodeError,
    WorksheetFormatError,
    XlsxGridError,
)
from .hyperlink import Hyperlink, get_hyperlink, iter_hyperlinks
from .model import NO_ROW_LIMIT, Cell, CellType, ReadOptions, SheetContent
from .validation import DataValidation, RangeBounds

__all__ = [
    "NO_ROW_LIMIT",
    "ArchiveStructureError",
    "Cell",
    "CellType",
    "DataValidation",
    "FormatError",
    "Hyperlink",
    "RangeBounds",
    "ReadOptions",
    "SheetContent",
    "SheetDecodeError",
    "WorksheetFormatError",
    "XlsxGridError",
    "get_hyperlink",
    "iter_hyperlinks",
    "load_sheet_contents",
    "read_sheet_contents",
    "read_zip_contents",
]
