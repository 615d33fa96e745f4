import pytest

from chart_sync.models.tooth_record import ToothStatus
from chart_sync.services.tooth_state_classification import (
    classify_final_status,
    classify_initial_status,
)


@pytest.mark.parametrize(
    ("diagnosis", "plan", "expected"),
    [
        ("Deep caries on occlusal surface", "", ToothStatus.caries),
        ("Tooth missing", None, ToothStatus.missing),
        ("Previously extracted", "", ToothStatus.missing),
        ("", "Extraction done last year", ToothStatus.missing),
        ("Irreversible pulpitis", "", ToothStatus.attention),
        ("Periapical lesion", "", ToothStatus.attention),
        ("Needs endo assessment", "", ToothStatus.attention),
        ("Cusp fracture", "", ToothStatus.attention),
        ("Cracked tooth syndrome", "", ToothStatus.attention),
        ("Periodontal pocketing", "", ToothStatus.attention),
        ("Buccal abscess", "", ToothStatus.attention),
        ("Impacted third molar", "", ToothStatus.attention),
        ("Interproximal cavity", "", ToothStatus.caries),
        ("Early decay", "", ToothStatus.caries),
        ("Demineralisation on buccal", "", ToothStatus.caries),
        ("Routine observation", "Review in 6 months", ToothStatus.healthy),
    ],
)
def test_classify_initial_status_keyword_buckets(diagnosis, plan, expected):
    assert classify_initial_status(diagnosis, plan) == expected


def test_classify_initial_status_rule_order_prefers_missing_over_caries():
    assert classify_initial_status("Caries, tooth later extracted", "") == ToothStatus.missing


def test_classify_initial_status_rule_order_prefers_attention_over_caries():
    assert classify_initial_status("Deep caries with pulpitis", "") == ToothStatus.attention


def test_classify_initial_status_reads_plan_text():
    assert classify_initial_status("Sensitivity", "Restore cavity") == ToothStatus.caries


def test_classify_initial_status_is_case_insensitive():
    assert classify_initial_status("DEEP CARIES", "") == ToothStatus.caries


@pytest.mark.parametrize(
    ("treatment", "expected"),
    [
        ("Root Canal Treatment", ToothStatus.root_canal),
        ("RCT stage 2", ToothStatus.root_canal),
        ("Composite filling", ToothStatus.filled),
        ("Amalgam restoration", ToothStatus.filled),
        ("Porcelain crown", ToothStatus.crown),
        ("Gold onlay", ToothStatus.crown),
        ("Temporary cap", ToothStatus.crown),
        ("Surgical extraction", ToothStatus.missing),
        ("Implant placement", ToothStatus.implant),
        ("Scaling", ToothStatus.healthy),
        ("Polishing", ToothStatus.healthy),
        ("Periodontal therapy", ToothStatus.attention),
    ],
)
def test_classify_final_status_keyword_buckets(treatment, expected):
    assert classify_final_status(treatment) == expected


def test_classify_final_status_rule_order_prefers_root_canal_over_crown():
    assert classify_final_status("RCT followed by crown") == ToothStatus.root_canal


def test_classify_final_status_rule_order_prefers_crown_over_implant():
    assert classify_final_status("Implant crown") == ToothStatus.crown


@pytest.mark.parametrize("treatment", [None, "", "   ", "Fluoride varnish application"])
def test_classify_final_status_unrecognized_returns_none(treatment):
    assert classify_final_status(treatment) is None


@pytest.mark.parametrize(
    "text",
    [None, "", "   ", "???", "x" * 5000, "Ünïcödé notes ✓", "\n\t", "0"],
)
def test_classifiers_never_raise(text):
    assert classify_initial_status(text, text) in set(ToothStatus)
    result = classify_final_status(text)
    assert result is None or result in set(ToothStatus)
