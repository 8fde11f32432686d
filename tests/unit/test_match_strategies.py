from __future__ import annotations

import pytest

from indicator_sync.models.match_result import MatchType
from indicator_sync.services.match_strategies import (
    CaseInsensitiveStrategy,
    ExactStrategy,
    FuzzyTokenStrategy,
    PartialStrategy,
    default_strategies,
    token_overlap_score,
    tokenize,
)


def test_tokenize_splits_and_drops_empty_tokens():
    assert tokenize("Tx New  Patients") == ["tx", "new", "patients"]
    assert tokenize("TX_NEW") == ["tx", "new"]
    assert tokenize("-HTS--TST-") == ["hts", "tst"]
    assert tokenize("") == []


def test_token_overlap_score_formula():
    # 2 per equal token pair, normalized by the longer token list
    assert token_overlap_score(["tx", "new"], ["tx", "new", "patients"]) == pytest.approx(4 / 3)
    # Containment scores 1: "curr" in "current"
    assert token_overlap_score(["tx", "curr"], ["current"]) == pytest.approx(1 / 2)
    assert token_overlap_score([], ["tx"]) == 0.0


def test_exact_strategy():
    observed = {"TX_NEW": 1.0, "tx_new": 2.0}
    assert ExactStrategy().find("TX_NEW", observed) == "TX_NEW"
    assert ExactStrategy().find("TX_CURR", observed) is None
    assert ExactStrategy.match_type is MatchType.EXACT


def test_case_insensitive_strategy_first_wins():
    observed = {"tx_new": 1.0, "Tx_New": 2.0}
    assert CaseInsensitiveStrategy().find("TX_NEW", observed) == "tx_new"


def test_partial_strategy_either_direction():
    s = PartialStrategy()
    assert s.find("TX_NEW", {"Number TX_NEW (Q1)": 1.0}) == "Number TX_NEW (Q1)"
    assert s.find("HTS_TST_POS", {"hts_tst": 1.0}) == "hts_tst"
    assert s.find("TX_NEW", {"PMTCT": 1.0}) is None


def test_partial_strategy_ignores_empty_names():
    assert PartialStrategy().find("TX_NEW", {"": 1.0}) is None


def test_fuzzy_threshold_is_strict():
    # ["tx","curr"] vs ["current"] scores exactly 0.5
    assert FuzzyTokenStrategy(0.5).find("TX_CURR", {"current": 1.0}) is None
    assert FuzzyTokenStrategy(0.4).find("TX_CURR", {"current": 1.0}) == "current"


def test_fuzzy_picks_best_and_first_on_ties():
    observed = {"tx new a": 1.0, "tx new b": 2.0, "tx new": 3.0}
    # "tx new" scores 2.0, the others 4/3
    assert FuzzyTokenStrategy().find("TX_NEW", observed) == "tx new"
    tied = {"tx new a": 1.0, "tx new b": 2.0}
    assert FuzzyTokenStrategy().find("TX_NEW", tied) == "tx new a"


def test_default_strategy_order():
    types = [s.match_type for s in default_strategies()]
    assert types == [MatchType.EXACT, MatchType.EXACT_CI, MatchType.PARTIAL, MatchType.FUZZY]
