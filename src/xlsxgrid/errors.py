from __future__ import annotations

from typing import Any


class XlsxGridError(Exception):
    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if not self.details:
            return self.message
        extra = ", ".join(f"{key}={value!r}" for key, value in self.details.items())
        return f"{self.message} ({extra})"


class ArchiveStructureError(XlsxGridError):
    pass


class FormatError(XlsxGridError):
    def __init__(self, message: str, path: str = "", details: dict[str, Any] | None = None) -> None:
        super().__init__(message, details)
        self.path = path


class WorksheetFormatError(FormatError):
    pass


class SheetDecodeError(XlsxGridError):
    def __init__(self, message: str, sheet_name: str = "", details: dict[str, Any] | None = None) -> None:
        super().__init__(message, details)
        self.sheet_name = sheet_name


class MergeReferenceError(SheetDecodeError):
    pass


class SharedStringError(SheetDecodeError):
    pass
