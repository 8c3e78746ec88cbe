from __future__ import annotations

import io
from pathlib import Path
from zipfile import BadZipFile, ZipFile

from .errors import ArchiveStructureError
from .model import ReadOptions, SheetContent
from .parser.ooxml import OOXMLContentReader


def read_zip_contents(zip_file: ZipFile, *, options: ReadOptions | None = None) -> list[SheetContent]:
    opts = options or ReadOptions()
    return OOXMLContentReader(zip_file, opts).read()


def read_sheet_contents(data: bytes, *, options: ReadOptions | None = None) -> list[SheetContent]:
    try:
        zip_file = ZipFile(io.BytesIO(data))
    except BadZipFile as exc:
        raise ArchiveStructureError(f"Input is not a zip archive: {exc}") from exc
    with zip_file:
        return read_zip_contents(zip_file, options=options)


def load_sheet_contents(path: str | Path, *, options: ReadOptions | None = None) -> list[SheetContent]:
    source = Path(path)
    try:
        zip_file = ZipFile(source)
    except BadZipFile as exc:
        raise ArchiveStructureError(f"{source.name} is not a zip archive: {exc}") from exc
    with zip_file:
        return read_zip_contents(zip_file, options=options)
