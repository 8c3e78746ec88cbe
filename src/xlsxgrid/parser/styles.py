from __future__ import annotations

import logging
import re
from xml.etree import ElementTree as ET

from ..errors import FormatError
from ..model import CellStyle
from .namespaces import NS
from .utils import parse_int

logger = logging.getLogger(__name__)

STYLES_PATH = "xl/styles.xml"

BUILTIN_NUMFMTS: dict[int, str] = {
    0: "General",
    1: "0",
    2: "0.00",
    3: "#,##0",
    4: "#,##0.00",
    9: "0%",
    10: "0.00%",
    11: "0.00E+00",
    12: "# ?/?",
    13: "# ??/??",
    14: "m/d/yyyy",
    15: "d-mmm-yy",
    16: "d-mmm",
    17: "mmm-yy",
    18: "h:mm AM/PM",
    19: "h:mm:ss AM/PM",
    20: "h:mm",
    21: "h:mm:ss",
    22: "m/d/yyyy h:mm",
    37: "#,##0 ;(#,##0)",
    38: "#,##0 ;[Red](#,##0)",
    39: "#,##0.00;(#,##0.00)",
    40: "#,##0.00;[Red](#,##0.00)",
    45: "mm:ss",
    46: "[h]:mm:ss",
    47: "mmss.0",
    48: "##0.0E+0",
    49: "@",
}

# Locale-dependent built-in ids (27-36, 50-58) carry no code in the file but
# are date formats in every East Asian locale that uses them.
BUILTIN_TIME_IDS = frozenset([*range(14, 23), *range(27, 37), *range(45, 48), *range(50, 59)])

_DATE_TOKEN_RE = re.compile(r"(?:y+|m+|d+|h+|s+|AM/PM|A/P)", re.IGNORECASE)
_BRACKET_RE = re.compile(r"\[(?!h+\]|m+\]|s+\])[^\]]*\]", re.IGNORECASE)


def is_time_format(code: str, num_fmt_id: int | None = None) -> bool:
    if num_fmt_id is not None and num_fmt_id in BUILTIN_TIME_IDS:
        return True
    if not code or code.lower() == "general":
        return False
    primary = code.split(";")[0]
    cleaned = _BRACKET_RE.sub("", _strip_literals(primary))
    return bool(_DATE_TOKEN_RE.search(cleaned))


def _strip_literals(fmt: str) -> str:
    out: list[str] = []
    in_quote = False
    escaped = False
    for ch in fmt:
        if escaped:
            escaped = False
            continue
        if ch == "\\" and not in_quote:
            escaped = True
            continue
        if ch == '"':
            in_quote = not in_quote
            continue
        if not in_quote:
            out.append(ch)
    return "".join(out)


class StyleSheet:
    def __init__(self, styles: list[CellStyle] | None = None, custom_numfmts: dict[int, str] | None = None) -> None:
        self._styles = list(styles or [])
        self._custom_numfmts = dict(custom_numfmts or {})

    def style_for(self, index: int) -> CellStyle | None:
        if 0 <= index < len(self._styles):
            return self._styles[index]
        return None

    def number_format_for(self, index: int) -> tuple[str, bool]:
        style = self.style_for(index)
        if style is None:
            return "", False
        fmt_id = style.num_fmt_id
        code = self._custom_numfmts.get(fmt_id) or BUILTIN_NUMFMTS.get(fmt_id, "")
        return code, is_time_format(code, fmt_id)

    @classmethod
    def from_xml(cls, payload: bytes) -> StyleSheet:
        try:
            root = ET.fromstring(payload)
        except ET.ParseError as exc:
            raise FormatError(f"Malformed styles part: {exc}", path=STYLES_PATH) from exc

        custom_numfmts = _parse_custom_numfmts(root)
        styles: list[CellStyle] = []
        for idx, xf in enumerate(root.findall("a:cellXfs/a:xf", NS)):
            alignment = xf.find("a:alignment", NS)
            horizontal = vertical = None
            wrap_text = False
            if alignment is not None:
                horizontal = alignment.attrib.get("horizontal")
                vertical = alignment.attrib.get("vertical")
                wrap_text = alignment.attrib.get("wrapText") in {"1", "true"}
            styles.append(
                CellStyle(
                    index=idx,
                    num_fmt_id=parse_int(xf.attrib.get("numFmtId")) or 0,
                    font_id=parse_int(xf.attrib.get("fontId")) or 0,
                    fill_id=parse_int(xf.attrib.get("fillId")) or 0,
                    border_id=parse_int(xf.attrib.get("borderId")) or 0,
                    horizontal=horizontal,
                    vertical=vertical,
                    wrap_text=wrap_text,
                )
            )
        logger.debug("Loaded %d cell styles, %d custom number formats", len(styles), len(custom_numfmts))
        return cls(styles, custom_numfmts)


def _parse_custom_numfmts(styles_root: ET.Element) -> dict[int, str]:
    result: dict[int, str] = {}
    for num_fmt in styles_root.findall("a:numFmts/a:numFmt", NS):
        fmt_id = parse_int(num_fmt.attrib.get("numFmtId"))
        code = num_fmt.attrib.get("formatCode")
        if fmt_id is None or code is None:
            continue
        result[fmt_id] = code
    return result
