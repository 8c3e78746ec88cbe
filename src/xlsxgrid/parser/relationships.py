from __future__ import annotations

import logging
from dataclasses import dataclass, field
from xml.etree import ElementTree as ET

from ..errors import FormatError
from ..model import DeclaredSheet
from .archive import WORKBOOK_PATH, WORKBOOK_RELS_PATH, WORKSHEET_RE, worksheet_key
from .namespaces import NS, PACKAGE_REL_NS, RID_ATTR
from .utils import resolve_target

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class WorkbookInfo:
    sheets: list[DeclaredSheet] = field(default_factory=list)
    date1904: bool = False


class WorkbookRelationships:
    def __init__(self, targets: dict[str, str] | None = None) -> None:
        self.targets = dict(targets or {})

    @classmethod
    def from_xml(cls, payload: bytes) -> WorkbookRelationships:
        try:
            root = ET.fromstring(payload)
        except ET.ParseError as exc:
            raise FormatError(f"Malformed workbook relationships: {exc}", path=WORKBOOK_RELS_PATH) from exc

        targets: dict[str, str] = {}
        for rel in root.findall(f"{{{PACKAGE_REL_NS}}}Relationship"):
            rel_id = rel.attrib.get("Id")
            target = rel.attrib.get("Target")
            if rel_id and target and rel.attrib.get("TargetMode") != "External":
                targets[rel_id] = resolve_target(WORKBOOK_PATH, target)
        return cls(targets)

    def worksheet_path_for(self, sheet: DeclaredSheet, worksheets: dict[str, str]) -> str | None:
        target = self.targets.get(sheet.rid)
        if target is None:
            # Some writers omit the relationship and rely on sheetN naming.
            if not sheet.sheet_id:
                return None
            return worksheets.get(f"sheet{sheet.sheet_id}")
        if not WORKSHEET_RE.match(target):
            return None
        return worksheets.get(worksheet_key(target))


def parse_workbook(payload: bytes) -> WorkbookInfo:
    try:
        root = ET.fromstring(payload)
    except ET.ParseError as exc:
        raise FormatError(f"Malformed workbook part: {exc}", path=WORKBOOK_PATH) from exc

    info = WorkbookInfo()
    workbook_pr = root.find("a:workbookPr", NS)
    if workbook_pr is not None:
        info.date1904 = workbook_pr.attrib.get("date1904", "").lower() in {"1", "true"}

    for idx, sheet in enumerate(root.findall("a:sheets/a:sheet", NS)):
        info.sheets.append(
            DeclaredSheet(
                index=idx,
                name=sheet.attrib.get("name", f"Sheet{idx + 1}"),
                sheet_id=sheet.attrib.get("sheetId", ""),
                rid=sheet.attrib.get(RID_ATTR, ""),
                state=sheet.attrib.get("state", "visible"),
            )
        )
    return info


def resolve_declared_sheets(
    info: WorkbookInfo,
    relationships: WorkbookRelationships,
    worksheets: dict[str, str],
    *,
    include_hidden: bool = True,
) -> list[tuple[DeclaredSheet, str]]:
    resolved: list[tuple[DeclaredSheet, str]] = []
    for sheet in info.sheets:
        if sheet.state != "visible" and not include_hidden:
            continue
        path = relationships.worksheet_path_for(sheet, worksheets)
        if path is None:
            logger.warning("Sheet %r has no worksheet part; skipping", sheet.name)
            continue
        resolved.append((sheet, path))
    return resolved
