from __future__ import annotations

import pytest

from indicator_sync.models.canonical_record import CanonicalRecord
from indicator_sync.models.config_models import IndicatorVocabulary, MatchingOptions
from indicator_sync.models.match_result import MatchType
from indicator_sync.services.match_strategies import ExactStrategy
from indicator_sync.services.matcher import build_observed_index, match


def rec(indicator: str, value: float, row: int = 2) -> CanonicalRecord:
    return CanonicalRecord(
        site=None,
        indicator=indicator,
        value=value,
        period="202506",
        org_unit="MW_DEFAULT",
        sheet_name="S",
        row_index=row,
    )


def test_exact_match():
    report = match({"TX_NEW": "code123"}, [rec("TX_NEW", 85)])
    [r] = report.results
    assert (r.indicator_key, r.backend_code, r.value, r.match_type) == (
        "TX_NEW",
        "code123",
        85,
        MatchType.EXACT,
    )
    assert r.source_indicator_name == "TX_NEW"


def test_fuzzy_match():
    report = match({"TX_NEW": "code123"}, [rec("Tx New Patients", 40)])
    [r] = report.results
    assert r.match_type is MatchType.FUZZY
    assert r.value == 40
    assert r.source_indicator_name == "Tx New Patients"


def test_missing_indicator_defaults_to_zero():
    report = match({"TX_NEW": "a", "TB_ART": "b"}, [rec("TX_NEW", 5)])
    tb = report.results[1]
    assert tb.match_type is MatchType.DEFAULT
    assert tb.value == 0
    assert tb.source_indicator_name is None
    assert not tb.matched
    assert report.stats.none == 1


def test_one_result_per_vocabulary_entry_in_order():
    vocab = IndicatorVocabulary({"TX_NEW": "a", "TX_CURR": "b", "HTS_TST": "c", "TB_ART": "d"})
    records = [rec("hts tst total", 3), rec("tx_curr", 2), rec("TX_NEW", 1), rec("junk", 9)]
    report = match(vocab, records)
    assert [r.indicator_key for r in report.results] == list(vocab)
    assert [r.match_type for r in report.results] == [
        MatchType.EXACT,
        MatchType.EXACT_CI,
        MatchType.FUZZY,
        MatchType.DEFAULT,
    ]
    assert report.stats.exact == 2
    assert report.stats.partial == 1
    assert report.stats.none == 1
    assert report.observed_count == 4


def test_no_records_all_default():
    report = match({"TX_NEW": "a", "TX_CURR": "b"}, [])
    assert [r.match_type for r in report.results] == [MatchType.DEFAULT, MatchType.DEFAULT]
    assert report.observed_count == 0


def test_cascade_prefers_exact_over_partial():
    report = match({"TX_NEW": "a"}, [rec("TX_NEW total", 1), rec("TX_NEW", 2)])
    assert report.results[0].match_type is MatchType.EXACT
    assert report.results[0].value == 2


def test_partial_match():
    report = match({"PMTCT_STAT": "a"}, [rec("PMTCT_STAT (%)", 55)])
    assert report.results[0].match_type is MatchType.PARTIAL
    assert report.results[0].value == 55


def test_duplicates_last_wins_by_default():
    report = match({"TX_NEW": "a"}, [rec("TX_NEW", 10), rec("TX_NEW", 7)])
    assert report.results[0].value == 7


def test_duplicates_max_policy():
    opts = MatchingOptions(duplicate_policy="max")
    report = match({"TX_NEW": "a"}, [rec("TX_NEW", 10), rec("TX_NEW", 7)], opts)
    assert report.results[0].value == 10


def test_observed_index_keeps_first_insertion_position():
    index = build_observed_index([rec("A", 1), rec("B", 2), rec("A", 3)])
    assert list(index.items()) == [("A", 3), ("B", 2)]


def test_unknown_duplicate_policy():
    with pytest.raises(ValueError, match="unknown duplicate policy"):
        build_observed_index([], policy="first")


def test_fuzzy_threshold_from_options():
    opts = MatchingOptions(fuzzy_threshold=2.0)
    report = match({"TX_NEW": "a"}, [rec("Tx New Patients", 40)], opts)
    assert report.results[0].match_type is MatchType.DEFAULT


def test_custom_strategy_cascade():
    report = match({"TX_NEW": "a"}, [rec("tx_new", 1)], strategies=[ExactStrategy()])
    assert report.results[0].match_type is MatchType.DEFAULT


def test_match_is_deterministic():
    vocab = {"TX_NEW": "a", "TX_CURR": "b", "HTS_TST": "c"}
    records = [rec("Tx New", 1), rec("tx new patients", 2), rec("TX CURR", 3)]
    assert match(vocab, records) == match(vocab, records)


def test_shared_token_is_enough_for_a_fuzzy_match():
    # ["tx","curr"] vs ["tx","new"]: one equal token pair scores 2 / 2 = 1.0
    report = match({"TX_CURR": "b"}, [rec("TX_NEW", 85)])
    assert report.results[0].match_type is MatchType.FUZZY
    assert report.results[0].source_indicator_name == "TX_NEW"
