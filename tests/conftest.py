from __future__ import annotations

from pathlib import Path

import pytest

from tests.helpers import build_xlsx, simple_rows, worksheet_xml


@pytest.fixture
def five_sheet_workbook() -> bytes:
    return build_xlsx([(f"Sheet{idx}", worksheet_xml(simple_rows(idx, prefix=f"s{idx}-"))) for idx in range(1, 6)])


@pytest.fixture
def workbook_path(tmp_path: Path, five_sheet_workbook: bytes) -> Path:
    path = tmp_path / "five.xlsx"
    path.write_bytes(five_sheet_workbook)
    return path
