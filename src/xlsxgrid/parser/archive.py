from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Iterable

from ..errors import ArchiveStructureError

logger = logging.getLogger(__name__)

WORKBOOK_PATH = "xl/workbook.xml"
WORKBOOK_RELS_PATH = "xl/_rels/workbook.xml.rels"
SHARED_STRINGS_PATH = "xl/sharedStrings.xml"
STYLES_PATH = "xl/styles.xml"
THEME_PATH = "xl/theme/theme1.xml"

WORKSHEET_RE = re.compile(r"^xl/worksheets/[^/]+\.xml$")


@dataclass(slots=True)
class ArchiveParts:
    workbook: str | None = None
    relationships: str | None = None
    shared_strings: str | None = None
    styles: str | None = None
    theme: str | None = None
    worksheets: dict[str, str] = field(default_factory=dict)


def worksheet_key(path: str) -> str:
    return path.rsplit("/", 1)[-1][: -len(".xml")]


def triage_archive(names: Iterable[str]) -> ArchiveParts:
    parts = ArchiveParts()
    for name in names:
        if name == WORKBOOK_PATH:
            parts.workbook = name
        elif name == WORKBOOK_RELS_PATH:
            parts.relationships = name
        elif name == SHARED_STRINGS_PATH:
            parts.shared_strings = name
        elif name == STYLES_PATH:
            parts.styles = name
        elif name == THEME_PATH:
            parts.theme = name
        elif WORKSHEET_RE.match(name):
            parts.worksheets[worksheet_key(name)] = name

    if parts.relationships is None:
        raise ArchiveStructureError(f"{WORKBOOK_RELS_PATH} not found in input xlsx")
    if not parts.worksheets:
        raise ArchiveStructureError("Input xlsx contains no worksheets")
    if parts.workbook is None:
        raise ArchiveStructureError(f"{WORKBOOK_PATH} not found in input xlsx")

    logger.debug("Archive triage found %d worksheet parts", len(parts.worksheets))
    return parts
