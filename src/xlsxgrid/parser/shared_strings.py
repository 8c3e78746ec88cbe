from __future__ import annotations

import logging
from xml.etree import ElementTree as ET

from ..errors import FormatError, SharedStringError
from .namespaces import NS

logger = logging.getLogger(__name__)

SHARED_STRINGS_PATH = "xl/sharedStrings.xml"


class SharedStringTable:
    def __init__(self, values: list[str] | None = None) -> None:
        self._values = list(values or [])

    def __len__(self) -> int:
        return len(self._values)

    def resolve(self, index: int) -> str:
        if not 0 <= index < len(self._values):
            raise SharedStringError(
                "Shared string index out of range",
                details={"index": index, "count": len(self._values)},
            )
        return self._values[index]

    @classmethod
    def from_xml(cls, payload: bytes) -> SharedStringTable:
        try:
            root = ET.fromstring(payload)
        except ET.ParseError as exc:
            raise FormatError(f"Malformed shared strings part: {exc}", path=SHARED_STRINGS_PATH) from exc

        values: list[str] = []
        for si in root.findall("a:si", NS):
            direct = si.find("a:t", NS)
            if direct is not None:
                values.append(direct.text or "")
                continue
            # Phonetic runs (rPh) are not part of the displayed text.
            values.append("".join((node.text or "") for node in si.findall("a:r/a:t", NS)))
        logger.debug("Loaded %d shared strings", len(values))
        return cls(values)
