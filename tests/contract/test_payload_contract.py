from __future__ import annotations

import json
from pathlib import Path

from indicator_sync.cli import main as cli_main

"""Shape of the value-set documents handed to the submitter."""

DATA_VALUE_KEYS = {
    "dataElement",
    "period",
    "orgUnit",
    "categoryOptionCombo",
    "attributeOptionCombo",
    "value",
    "comment",
}


def test_payload_document_shape(temp_workdir: Path, write_config, write_workbook, capsys):
    write_workbook(
        temp_workdir / "data" / "monthly.xlsx",
        {"S": [["Indicator", "Value"], ["TX_NEW", 85], ["TX_CURR", 40]]},
    )
    assert cli_main([]) == 0
    [doc_path] = (temp_workdir / "outbox").glob("*.json")
    assert doc_path.name == "monthly_xlsx-202506.json"
    body = json.loads(doc_path.read_text(encoding="utf-8"))

    assert set(body) == {
        "dataSet",
        "period",
        "orgUnit",
        "completeDate",
        "dataValues",
        "matchStats",
        "generatedAt",
        "metadata",
    }
    assert (body["dataSet"], body["period"], body["orgUnit"]) == ("BfMAe6Itzgt", "202506", "rXoaHGAXWy9")
    # One data value per vocabulary entry; unmatched ones submitted as zero
    assert [dv["dataElement"] for dv in body["dataValues"]] == ["dwEq7wi6nXV", "ZiOVcrSjSYe", "FTRrcoaog83"]
    assert [dv["value"] for dv in body["dataValues"]] == [85, 40, 0]
    assert all(set(dv) == DATA_VALUE_KEYS for dv in body["dataValues"])
    assert body["dataValues"][2]["comment"] == "HTS_TST (default)"
    assert body["matchStats"] == {
        "exact": 2,
        "partial": 0,
        "none": 1,
        "byType": {"exact": 2, "exact_ci": 0, "partial": 0, "fuzzy": 0, "default": 1},
    }
    assert body["metadata"]["sourceFile"] == "monthly.xlsx"
    assert body["metadata"]["profile"] == "generic"
    assert body["generatedAt"].endswith("Z")
