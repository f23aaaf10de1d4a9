"""Tests for suggested-contract matching."""

from app.services.matching import suggest_contract

CANDIDATES = [
    ("c-acme", "Acme Corporation"),
    ("c-acme", "Acme Master Services Agreement"),
    ("c-globex", "Globex LLC"),
    ("c-initech", "Initech Software License"),
]


def test_vendor_match_above_threshold():
    assert suggest_contract(CANDIDATES, vendor="ACME Corporation") == "c-acme"


def test_token_set_ignores_extra_words():
    assert suggest_contract(CANDIDATES, vendor="Globex LLC, a Delaware company") == "c-globex"


def test_title_used_when_vendor_missing():
    assert suggest_contract(CANDIDATES, title="Initech Software License") == "c-initech"


def test_no_match_below_threshold():
    assert suggest_contract(CANDIDATES, vendor="Umbrella Pharmaceuticals") is None


def test_threshold_is_configurable():
    assert suggest_contract(CANDIDATES, vendor="Acme Corp", threshold=100) is None


def test_empty_inputs():
    assert suggest_contract([], vendor="Acme") is None
    assert suggest_contract(CANDIDATES) is None
    assert suggest_contract(CANDIDATES, vendor="   ", title="") is None
