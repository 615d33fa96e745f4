import pytest

from chart_sync.models.tooth_record import ToothStatus
from chart_sync.services.errors import InvalidReferenceError
from chart_sync.services.tooth_status import (
    STATUS_COLORS,
    VALID_FDI_TOOTH_NUMBERS,
    color_of,
    is_treatment_complete,
    is_valid_fdi_tooth_number,
    normalize_tooth_number,
    parse_tooth_status,
    requires_attention,
)


@pytest.mark.parametrize(
    ("status", "expected"),
    [
        (ToothStatus.healthy, "#22c55e"),
        (ToothStatus.caries, "#ef4444"),
        (ToothStatus.filled, "#3b82f6"),
        (ToothStatus.crown, "#eab308"),
        (ToothStatus.missing, "#6b7280"),
        (ToothStatus.attention, "#f97316"),
        (ToothStatus.extraction_needed, "#f97316"),
        (ToothStatus.root_canal, "#8b5cf6"),
        (ToothStatus.implant, "#06b6d4"),
    ],
)
def test_color_of_known_statuses(status, expected):
    assert color_of(status) == expected
    assert color_of(status.value) == expected


def test_color_map_covers_every_status():
    assert set(STATUS_COLORS) == set(ToothStatus)


@pytest.mark.parametrize("status", [None, "", "bridge", "garbage", 42, "CROWN "])
def test_color_of_unknown_defaults_to_healthy_except_tolerant_parse(status):
    expected = "#eab308" if status == "CROWN " else "#22c55e"
    assert color_of(status) == expected


def test_parse_tooth_status_rejects_bridge():
    assert parse_tooth_status("bridge") is None
    assert parse_tooth_status(" Root_Canal ") == ToothStatus.root_canal


def test_attention_and_completion_helpers():
    assert requires_attention(ToothStatus.caries)
    assert requires_attention("extraction_needed")
    assert not requires_attention(ToothStatus.filled)
    assert is_treatment_complete(ToothStatus.root_canal)
    assert is_treatment_complete("healthy")
    assert not is_treatment_complete(ToothStatus.missing)
    assert not is_treatment_complete("unknown")


def test_fdi_tooth_numbers():
    assert len(VALID_FDI_TOOTH_NUMBERS) == 32
    assert is_valid_fdi_tooth_number("46")
    assert is_valid_fdi_tooth_number(11)
    for value in ("10", "19", "51", "00", "4", "460", "", None, "ab"):
        assert not is_valid_fdi_tooth_number(value)


def test_normalize_tooth_number_rejects_instead_of_guessing():
    assert normalize_tooth_number(" 38 ") == "38"
    with pytest.raises(InvalidReferenceError) as excinfo:
        normalize_tooth_number("49")
    assert excinfo.value.entity_type == "tooth"
    assert excinfo.value.entity_id == "49"
