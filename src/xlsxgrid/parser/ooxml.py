from __future__ import annotations

import logging
import zlib
from zipfile import BadZipFile, ZipFile

from ..errors import ArchiveStructureError, FormatError
from ..model import ReadOptions, SheetContent
from .archive import ArchiveParts, triage_archive
from .pipeline import SheetPipeline
from .relationships import WorkbookRelationships, parse_workbook, resolve_declared_sheets
from .shared_strings import SharedStringTable
from .styles import StyleSheet

logger = logging.getLogger(__name__)


class OOXMLContentReader:
    def __init__(self, zip_file: ZipFile, options: ReadOptions) -> None:
        self.zip_file = zip_file
        self.options = options

    def read(self) -> list[SheetContent]:
        parts = triage_archive(self.zip_file.namelist())

        relationships = WorkbookRelationships.from_xml(self._read_part(parts.relationships))
        workbook = parse_workbook(self._read_part(parts.workbook))
        shared_strings = self._load_shared_strings(parts)
        styles = self._load_styles(parts)

        declared = resolve_declared_sheets(
            workbook,
            relationships,
            parts.worksheets,
            include_hidden=self.options.include_hidden_sheets,
        )
        pipeline = SheetPipeline(
            self.zip_file,
            shared_strings=shared_strings,
            styles=styles,
            options=self.options,
            date1904=workbook.date1904,
        )
        sheets = pipeline.run(declared)
        logger.info(
            "Read %d of %d declared sheets (%d worksheet parts)",
            len(sheets),
            len(workbook.sheets),
            len(parts.worksheets),
        )
        return sheets

    def _read_part(self, path: str | None) -> bytes:
        if path is None:
            raise FormatError("Missing required part")
        try:
            return self.zip_file.read(path)
        except (BadZipFile, zlib.error) as exc:
            raise ArchiveStructureError(f"Corrupt archive member {path}: {exc}", details={"path": path}) from exc

    def _load_shared_strings(self, parts: ArchiveParts) -> SharedStringTable:
        if parts.shared_strings is None:
            return SharedStringTable()
        return SharedStringTable.from_xml(self._read_part(parts.shared_strings))

    def _load_styles(self, parts: ArchiveParts) -> StyleSheet | None:
        if parts.styles is None:
            return None
        return StyleSheet.from_xml(self._read_part(parts.styles))
