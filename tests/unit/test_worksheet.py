from __future__ import annotations

import io
from xml.etree import ElementTree as ET

import pytest

from tests.helpers import simple_rows, worksheet_xml
from xlsxgrid.errors import WorksheetFormatError
from xlsxgrid.parser.worksheet import RowTruncator, decode_worksheet, truncate_rows


def _decode(xml: str, row_limit: int | None = None):
    return decode_worksheet(io.BytesIO(xml.encode("utf-8")), row_limit)


def _truncate(data: bytes, limit: int, chunk: int | None = None) -> bytes:
    if chunk is None:
        chunks = [data]
    else:
        chunks = [data[idx : idx + chunk] for idx in range(0, len(data), chunk)]
    return b"".join(truncate_rows(iter(chunks), limit))


def test_decode_reads_cells_formulas_and_merges() -> None:
    xml = worksheet_xml(
        '<row r="1">'
        '<c r="A1" t="s" s="2"><v>0</v></c>'
        '<c r="B1"><f t="shared" ref="B1:B2" si="0">A1*2</f><v>4</v></c>'
        '<c r="C1" t="inlineStr"><is><r><t>ri</t></r><r><t>ch</t></r></is></c>'
        "</row>",
        merges=["A1:A2"],
        dimension="A1:C2",
        extra=(
            '<dataValidations count="1"><dataValidation type="list" allowBlank="1" sqref="D1:D9">'
            "<formula1>$B$2:$C$4</formula1></dataValidation></dataValidations>"
        ),
    )
    raw = _decode(xml)

    assert raw.dimension_ref == "A1:C2"
    assert raw.merge_refs == ["A1:A2"]
    cells = raw.rows[0].cells
    assert [cell.ref for cell in cells] == ["A1", "B1", "C1"]
    assert cells[0].type_code == "s" and cells[0].value == "0" and cells[0].style_index == 2
    assert cells[1].formula is not None
    assert (cells[1].formula.text, cells[1].formula.kind, cells[1].formula.shared_index) == ("A1*2", "shared", 0)
    assert cells[1].formula.ref == "B1:B2"
    assert cells[2].inline_text == "rich"
    dv = raw.data_validations[0]
    assert (dv.type, dv.allow_blank, dv.show_error_message, dv.formula1) == ("list", "1", "", "$B$2:$C$4")


def test_decode_infers_missing_cell_references() -> None:
    raw = _decode(worksheet_xml('<row r="3"><c><v>1</v></c><c r="D3"><v>2</v></c><c><v>3</v></c></row>'))
    assert [cell.ref for cell in raw.rows[0].cells] == ["A3", "D3", "E3"]


def test_decode_reads_column_definitions() -> None:
    cols = '<cols><col min="1" max="2" width="12.5" style="3"/><col min="5" max="5" hidden="1" width="x"/></cols>'
    raw = _decode(worksheet_xml(simple_rows(1), extra=cols))
    assert [(c.min, c.max, c.width, c.hidden, c.style_index) for c in raw.columns] == [
        (1, 2, 12.5, False, 3),
        (5, 5, None, True, None),
    ]


def test_decode_malformed_xml_raises_format_error() -> None:
    with pytest.raises(WorksheetFormatError):
        _decode("<worksheet><sheetData><row></sheetData></worksheet>")


def test_truncate_keeps_first_rows_and_closes_document() -> None:
    data = b'<worksheet><sheetData><row r="1"><c r="A1"/></row><row r="2"/><row r="3"/></sheetData><mergeCells/></worksheet>'
    assert _truncate(data, 2) == b'<worksheet><sheetData><row r="1"><c r="A1"/></row><row r="2"/></sheetData></worksheet>'


def test_truncate_passes_short_documents_through() -> None:
    data = b"<worksheet><sheetData><row/><row/></sheetData></worksheet>"
    assert _truncate(data, 10) == data


def test_truncate_is_independent_of_chunk_boundaries() -> None:
    rows = "<!-- </row> --><row r=\"1\"><c r=\"A1\" t=\"str\" x='a>b'><v><![CDATA[</row>]]></v></c></row>"
    rows += "".join(f'<row r="{idx}"><c r="A{idx}"><v>{idx}</v></c></row>' for idx in range(2, 7))
    xml = worksheet_xml(rows, merges=["A1:B1"]).encode("utf-8")

    expected = _truncate(xml, 3)
    for size in (1, 2, 7, 64):
        assert _truncate(xml, 3, chunk=size) == expected

    root = ET.fromstring(expected)
    ns = {"a": "http://schemas.openxmlformats.org/spreadsheetml/2006/main"}
    assert len(root.findall("a:sheetData/a:row", ns)) == 3
    assert root.findtext("a:sheetData/a:row/a:c/a:v", namespaces=ns) == "</row>"
    assert root.find("a:mergeCells", ns) is None


def test_decode_with_row_limit_drops_trailing_rows_and_merges() -> None:
    xml = worksheet_xml(simple_rows(5), merges=["A4:A5"])
    raw = _decode(xml, row_limit=2)
    assert len(raw.rows) == 2
    assert raw.rows[1].cells[0].inline_text == "v2"
    assert raw.merge_refs == []


def test_row_limit_zero_yields_empty_sheet_data() -> None:
    raw = _decode(worksheet_xml(simple_rows(3)), row_limit=0)
    assert raw.rows == []


def test_row_limit_counts_prefixed_and_self_closing_rows() -> None:
    xml = (
        '<x:worksheet xmlns:x="http://schemas.openxmlformats.org/spreadsheetml/2006/main">'
        '<x:sheetData><x:row r="1"/><x:row r="2"><x:c r="A2"><x:v>1</x:v></x:c></x:row><x:row r="3"/></x:sheetData>'
        "</x:worksheet>"
    )
    raw = _decode(xml, row_limit=2)
    assert len(raw.rows) == 2
    assert raw.rows[1].cells[0].value == "1"


def test_truncator_rejects_negative_limit() -> None:
    with pytest.raises(ValueError):
        RowTruncator(-1)
