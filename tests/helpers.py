from __future__ import annotations

import io
from xml.sax.saxutils import escape
from zipfile import ZIP_DEFLATED, ZipFile

SPREADSHEET_NS = "http://schemas.openxmlformats.org/spreadsheetml/2006/main"
DOCUMENT_REL_NS = "http://schemas.openxmlformats.org/officeDocument/2006/relationships"
PACKAGE_REL_NS = "http://schemas.openxmlformats.org/package/2006/relationships"

WORKSHEET_REL = f"{DOCUMENT_REL_NS}/worksheet"
CHARTSHEET_REL = f"{DOCUMENT_REL_NS}/chartsheet"

# cellXfs: 0 = General, 1 = built-in date (14), 2 = custom yyyy-mm-dd, 3 = plain number
STYLES_XML = f"""<?xml version="1.0" encoding="UTF-8" standalone="yes"?>
<styleSheet xmlns="{SPREADSHEET_NS}">
  <numFmts count="1"><numFmt numFmtId="164" formatCode="yyyy\\-mm\\-dd"/></numFmts>
  <cellXfs count="4">
    <xf numFmtId="0" fontId="0" fillId="0" borderId="0"/>
    <xf numFmtId="14" fontId="0" fillId="0" borderId="0" applyNumberFormat="1"/>
    <xf numFmtId="164" fontId="1" fillId="0" borderId="0" applyNumberFormat="1">
      <alignment horizontal="center" wrapText="1"/>
    </xf>
    <xf numFmtId="2" fontId="0" fillId="0" borderId="0"/>
  </cellXfs>
</styleSheet>
"""


def worksheet_xml(rows: str, *, merges: list[str] | None = None, extra: str = "", dimension: str = "A1") -> str:
    merge_xml = ""
    if merges:
        items = "".join(f'<mergeCell ref="{ref}"/>' for ref in merges)
        merge_xml = f'<mergeCells count="{len(merges)}">{items}</mergeCells>'
    return (
        '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>\n'
        f'<worksheet xmlns="{SPREADSHEET_NS}" xmlns:r="{DOCUMENT_REL_NS}">'
        f'<dimension ref="{dimension}"/>'
        f"<sheetData>{rows}</sheetData>{merge_xml}{extra}</worksheet>"
    )


def shared_strings_xml(values: list[str]) -> str:
    items = "".join(f"<si><t>{escape(value)}</t></si>" for value in values)
    return (
        '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>\n'
        f'<sst xmlns="{SPREADSHEET_NS}" count="{len(values)}" uniqueCount="{len(values)}">{items}</sst>'
    )


def build_xlsx(
    sheets: list[tuple[str, str | None]],
    *,
    shared_strings: list[str] | None = None,
    styles: bool = True,
    hidden: set[str] | None = None,
    date1904: bool = False,
    skip: set[str] | None = None,
) -> bytes:
    """Build an in-memory workbook.

    Each sheet is (name, worksheet xml); a None body declares a chart sheet
    with no grid part. Part names listed in `skip` are left out of the zip.
    """
    hidden = hidden or set()
    skip = skip or set()
    sheet_entries: list[str] = []
    rels: list[str] = []
    parts: dict[str, str] = {}

    for idx, (name, body) in enumerate(sheets, start=1):
        state = ' state="hidden"' if name in hidden else ""
        sheet_entries.append(f'<sheet name="{escape(name)}" sheetId="{idx}"{state} r:id="rId{idx}"/>')
        if body is None:
            rels.append(f'<Relationship Id="rId{idx}" Type="{CHARTSHEET_REL}" Target="chartsheets/sheet{idx}.xml"/>')
            parts[f"xl/chartsheets/sheet{idx}.xml"] = f'<chartsheet xmlns="{SPREADSHEET_NS}"/>'
        else:
            rels.append(f'<Relationship Id="rId{idx}" Type="{WORKSHEET_REL}" Target="worksheets/sheet{idx}.xml"/>')
            parts[f"xl/worksheets/sheet{idx}.xml"] = body

    workbook_pr = '<workbookPr date1904="1"/>' if date1904 else "<workbookPr/>"
    parts["xl/workbook.xml"] = (
        '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>\n'
        f'<workbook xmlns="{SPREADSHEET_NS}" xmlns:r="{DOCUMENT_REL_NS}">'
        f"{workbook_pr}<sheets>{''.join(sheet_entries)}</sheets></workbook>"
    )
    parts["xl/_rels/workbook.xml.rels"] = (
        '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>\n'
        f'<Relationships xmlns="{PACKAGE_REL_NS}">{"".join(rels)}</Relationships>'
    )
    if shared_strings is not None:
        parts["xl/sharedStrings.xml"] = shared_strings_xml(shared_strings)
    if styles:
        parts["xl/styles.xml"] = STYLES_XML

    buffer = io.BytesIO()
    with ZipFile(buffer, "w", ZIP_DEFLATED) as zf:
        for path, payload in parts.items():
            if path in skip:
                continue
            zf.writestr(path, payload)
    return buffer.getvalue()


def simple_rows(count: int, *, prefix: str = "v") -> str:
    return "".join(
        f'<row r="{idx}"><c r="A{idx}" t="inlineStr"><is><t>{prefix}{idx}</t></is></c></row>'
        for idx in range(1, count + 1)
    )
