from __future__ import annotations

from indicator_sync.excel.header import build_header_map, locate_header_row


def test_locate_header_skips_title_and_blank_rows():
    rows = [
        ["Malawi HIV Programme", None],
        [None, None],
        ["Indicator", "Value"],
        ["TX_NEW", 85],
    ]
    assert locate_header_row(rows) == 2


def test_locate_header_ignores_non_string_cells():
    rows = [[2025, 6], ["Site", "Query", "Result"]]
    assert locate_header_row(rows) == 1


def test_locate_header_respects_scan_window():
    rows = [["x"]] * 10 + [["Indicator", "Value"]]
    assert locate_header_row(rows) is None
    assert locate_header_row(rows, scan_rows=11) == 10


def test_strict_match_beats_loose_match():
    # "Facility Total Count" loosely matches site and value; "Facility" is the strict site column
    hmap = build_header_map(["Facility Total Count", "Facility", "Indicator", "Value"], 0)
    assert hmap.index("site") == 1
    assert hmap.index("indicator") == 2
    assert hmap.index("value") == 3
    assert hmap.sources["site"] == "header"


def test_loose_patterns_and_case():
    hmap = build_header_map(["Health Facility Name", "Query Description", "Total Result"], 0)
    assert hmap.index("site") == 0
    assert hmap.index("indicator") == 1
    assert hmap.index("value") == 2


def test_column_claimed_once():
    hmap = build_header_map(["Indicator", "Indicator"], 0)
    assert hmap.index("indicator") == 0
    assert hmap.index("value") is None


def test_positional_fallback_only_for_free_columns():
    hmap = build_header_map(
        ["Name", "Query", "Amount Reported"],
        0,
        positional_fields=("site", "indicator", "value"),
    )
    assert hmap.index("indicator") == 1
    assert hmap.sources["indicator"] == "header"
    assert hmap.index("site") == 0
    assert hmap.sources["site"] == "position"
    assert hmap.index("value") == 2
    assert hmap.sources["value"] == "position"


def test_period_and_org_unit_columns():
    hmap = build_header_map(["Indicator", "Value", "Period", "Org Unit"], 0)
    assert hmap.index("period") == 2
    assert hmap.index("org_unit") == 3
    assert hmap.label(3) == "Org Unit"
    assert hmap.label(9) == ""
