from __future__ import annotations

import logging
import re
from typing import BinaryIO, Iterable, Iterator
from xml.etree import ElementTree as ET

from ..errors import WorksheetFormatError
from ..model import RawCell, RawColumn, RawDataValidation, RawFormula, RawRow, RawWorksheet
from .namespaces import NS
from .utils import index_to_col, parse_cell_reference, parse_int

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024

_TAG_NAME_RE = re.compile(rb"<([^\s/>]+)")


def iter_chunks(stream: BinaryIO, size: int = CHUNK_SIZE) -> Iterator[bytes]:
    while True:
        chunk = stream.read(size)
        if not chunk:
            return
        yield chunk


def _local(name: bytes) -> bytes:
    return name.rsplit(b":", 1)[-1]


class RowTruncator:
    def __init__(self, limit: int) -> None:
        if limit < 0:
            raise ValueError("row limit must be >= 0")
        self.limit = limit
        self.rows_seen = 0
        self.done = False
        self._stack: list[bytes] = []
        self._buffer = bytearray()

    def feed(self, chunk: bytes) -> bytes:
        self._buffer += chunk
        buf = self._buffer
        out = bytearray()
        pos = 0
        while not self.done:
            start = buf.find(b"<", pos)
            if start == -1:
                out += buf[pos:]
                pos = len(buf)
                break
            out += buf[pos:start]
            pos = start
            end = self._markup_end(buf, start)
            if end is None:
                break
            markup = bytes(buf[start:end])
            out += markup
            pos = end
            self._on_markup(markup)
        if self.done:
            out += self._closing_tags()
            buf.clear()
        else:
            del buf[:pos]
        return bytes(out)

    def flush(self) -> bytes:
        remainder = bytes(self._buffer)
        self._buffer.clear()
        return remainder

    def _markup_end(self, buf: bytearray, start: int) -> int | None:
        for opener, closer in ((b"<!--", b"-->"), (b"<![CDATA[", b"]]>"), (b"<?", b"?>")):
            if buf.startswith(opener, start):
                idx = buf.find(closer, start + len(opener))
                return None if idx == -1 else idx + len(closer)

        close = buf.find(b">", start + 1)
        if close == -1:
            return None
        segment = buf[start + 1 : close]
        if b'"' not in segment and b"'" not in segment:
            return close + 1

        quote = 0
        for idx in range(start + 1, len(buf)):
            byte = buf[idx]
            if quote:
                if byte == quote:
                    quote = 0
            elif byte in (0x22, 0x27):
                quote = byte
            elif byte == 0x3E:
                return idx + 1
        return None

    def _on_markup(self, markup: bytes) -> None:
        if markup.startswith((b"<!", b"<?")):
            return
        if markup.startswith(b"</"):
            name = markup[2:-1].strip()
            if self._stack:
                self._stack.pop()
            if _local(name) == b"row" and self._in_sheet_data():
                self._row_closed()
            return

        match = _TAG_NAME_RE.match(markup)
        if match is None:
            return
        name = match.group(1)
        if markup.endswith(b"/>"):
            if _local(name) == b"row" and self._in_sheet_data():
                self._row_closed()
            return
        self._stack.append(name)
        if self.limit == 0 and _local(name) == b"sheetData":
            self.done = True

    def _in_sheet_data(self) -> bool:
        return bool(self._stack) and _local(self._stack[-1]) == b"sheetData"

    def _row_closed(self) -> None:
        self.rows_seen += 1
        if self.rows_seen >= self.limit:
            self.done = True

    def _closing_tags(self) -> bytes:
        return b"".join(b"</" + name + b">" for name in reversed(self._stack))


def truncate_rows(chunks: Iterable[bytes], limit: int) -> Iterator[bytes]:
    truncator = RowTruncator(limit)
    for chunk in chunks:
        data = truncator.feed(chunk)
        if data:
            yield data
        if truncator.done:
            logger.debug("Worksheet truncated after %d rows", truncator.rows_seen)
            return
    tail = truncator.flush()
    if tail:
        yield tail


def decode_worksheet(stream: BinaryIO, row_limit: int | None = None, *, path: str = "") -> RawWorksheet:
    chunks: Iterable[bytes] = iter_chunks(stream)
    if row_limit is not None:
        chunks = truncate_rows(chunks, row_limit)

    parser = ET.XMLParser()
    try:
        for chunk in chunks:
            parser.feed(chunk)
        root = parser.close()
    except ET.ParseError as exc:
        raise WorksheetFormatError(f"Malformed worksheet XML: {exc}", path=path) from exc
    return build_raw_worksheet(root)


def build_raw_worksheet(root: ET.Element) -> RawWorksheet:
    worksheet = RawWorksheet()

    dim_elem = root.find("a:dimension", NS)
    if dim_elem is not None:
        worksheet.dimension_ref = dim_elem.attrib.get("ref", "")

    for col_elem in root.findall("a:cols/a:col", NS):
        width = col_elem.attrib.get("width")
        try:
            width_value = float(width) if width is not None else None
        except ValueError:
            width_value = None
        worksheet.columns.append(
            RawColumn(
                min=parse_int(col_elem.attrib.get("min")) or 0,
                max=parse_int(col_elem.attrib.get("max")) or 0,
                width=width_value,
                hidden=col_elem.attrib.get("hidden") in {"1", "true"},
                style_index=parse_int(col_elem.attrib.get("style")),
            )
        )

    for position, row_elem in enumerate(root.findall("a:sheetData/a:row", NS)):
        row_number = row_elem.attrib.get("r")
        row = RawRow(number=row_number)
        next_col = 0
        for cell_elem in row_elem.findall("a:c", NS):
            ref = cell_elem.attrib.get("r")
            if not ref:
                # Cells may omit r and rely on document order.
                ref = f"{index_to_col(next_col)}{row_number or position + 1}"
            cell = _build_raw_cell(cell_elem, ref)
            row.cells.append(cell)
            try:
                next_col = parse_cell_reference(ref)[0] + 1
            except ValueError:
                next_col += 1
        worksheet.rows.append(row)

    for merge in root.findall("a:mergeCells/a:mergeCell", NS):
        ref = merge.attrib.get("ref")
        if ref:
            worksheet.merge_refs.append(ref)

    for dv in root.findall("a:dataValidations/a:dataValidation", NS):
        worksheet.data_validations.append(
            RawDataValidation(
                type=dv.attrib.get("type", ""),
                sqref=dv.attrib.get("sqref", ""),
                allow_blank=dv.attrib.get("allowBlank", ""),
                show_input_message=dv.attrib.get("showInputMessage", ""),
                show_error_message=dv.attrib.get("showErrorMessage", ""),
                formula1=dv.findtext("a:formula1", default="", namespaces=NS),
                formula2=dv.findtext("a:formula2", default="", namespaces=NS),
            )
        )

    return worksheet


def _build_raw_cell(cell_elem: ET.Element, ref: str) -> RawCell:
    formula = None
    formula_elem = cell_elem.find("a:f", NS)
    if formula_elem is not None:
        formula = RawFormula(
            text=formula_elem.text or "",
            kind=formula_elem.attrib.get("t"),
            shared_index=parse_int(formula_elem.attrib.get("si")),
            ref=formula_elem.attrib.get("ref"),
        )

    inline_text = None
    inline = cell_elem.find("a:is", NS)
    if inline is not None:
        direct = inline.find("a:t", NS)
        if direct is not None and direct.text:
            inline_text = direct.text
        else:
            inline_text = "".join((node.text or "") for node in inline.findall("a:r/a:t", NS))

    return RawCell(
        ref=ref,
        type_code=cell_elem.attrib.get("t", ""),
        value=cell_elem.findtext("a:v", default="", namespaces=NS),
        style_index=parse_int(cell_elem.attrib.get("s")),
        formula=formula,
        inline_text=inline_text,
    )
