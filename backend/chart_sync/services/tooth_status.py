from __future__ import annotations

from chart_sync.models.tooth_record import ToothStatus
from chart_sync.services.errors import InvalidReferenceError

HEALTHY_COLOR = "#22c55e"

STATUS_COLORS: dict[ToothStatus, str] = {
    ToothStatus.healthy: HEALTHY_COLOR,
    ToothStatus.caries: "#ef4444",
    ToothStatus.filled: "#3b82f6",
    ToothStatus.crown: "#eab308",
    ToothStatus.missing: "#6b7280",
    ToothStatus.attention: "#f97316",
    ToothStatus.extraction_needed: "#f97316",
    ToothStatus.root_canal: "#8b5cf6",
    ToothStatus.implant: "#06b6d4",
}

_ATTENTION_STATUSES = frozenset(
    {ToothStatus.caries, ToothStatus.attention, ToothStatus.extraction_needed}
)
_TREATED_STATUSES = frozenset(
    {
        ToothStatus.filled,
        ToothStatus.crown,
        ToothStatus.root_canal,
        ToothStatus.implant,
        ToothStatus.healthy,
    }
)

VALID_FDI_TOOTH_NUMBERS: frozenset[str] = frozenset(
    f"{quadrant}{position}" for quadrant in range(1, 5) for position in range(1, 9)
)


def parse_tooth_status(value: object) -> ToothStatus | None:
    if isinstance(value, ToothStatus):
        return value
    label = str(value or "").strip().lower()
    try:
        return ToothStatus(label)
    except ValueError:
        return None


def color_of(status: object) -> str:
    parsed = parse_tooth_status(status)
    if parsed is None:
        return HEALTHY_COLOR
    return STATUS_COLORS.get(parsed, HEALTHY_COLOR)


def requires_attention(status: object) -> bool:
    return parse_tooth_status(status) in _ATTENTION_STATUSES


def is_treatment_complete(status: object) -> bool:
    return parse_tooth_status(status) in _TREATED_STATUSES


def is_valid_fdi_tooth_number(value: object) -> bool:
    return str(value or "").strip() in VALID_FDI_TOOTH_NUMBERS


def normalize_tooth_number(value: object) -> str:
    tooth = str(value if value is not None else "").strip()
    if tooth not in VALID_FDI_TOOTH_NUMBERS:
        raise InvalidReferenceError("tooth", value, "not a permanent FDI tooth number")
    return tooth
