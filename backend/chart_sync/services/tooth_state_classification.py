from __future__ import annotations

from chart_sync.models.tooth_record import ToothStatus

_INITIAL_RULES: tuple[tuple[ToothStatus, tuple[str, ...]], ...] = (
    (ToothStatus.missing, ("missing", "extracted", "extraction done")),
    (ToothStatus.attention, ("pulpitis", "periapical", "endo")),
    (ToothStatus.attention, ("fracture", "crack")),
    (ToothStatus.attention, ("periodontal", "abscess")),
    (ToothStatus.attention, ("impacted",)),
    (ToothStatus.caries, ("caries", "cavity", "decay", "demineral")),
)

_FINAL_RULES: tuple[tuple[ToothStatus, tuple[str, ...]], ...] = (
    (ToothStatus.root_canal, ("root canal", "rct")),
    (ToothStatus.filled, ("filling", "restoration", "composite", "amalgam")),
    (ToothStatus.crown, ("crown", "onlay", "cap")),
    (ToothStatus.missing, ("extraction",)),
    (ToothStatus.implant, ("implant",)),
    (ToothStatus.healthy, ("scaling", "polishing")),
    (ToothStatus.attention, ("periodontal",)),
)


def _normalize(text: object) -> str:
    return str(text or "").strip().lower()


def _first_match(
    text: str, rules: tuple[tuple[ToothStatus, tuple[str, ...]], ...]
) -> ToothStatus | None:
    for mapped_status, keywords in rules:
        if any(keyword in text for keyword in keywords):
            return mapped_status
    return None


def classify_initial_status(diagnosis: str | None, plan: str | None = None) -> ToothStatus:
    text = f"{_normalize(diagnosis)} {_normalize(plan)}"
    return _first_match(text, _INITIAL_RULES) or ToothStatus.healthy


def classify_final_status(treatment: str | None) -> ToothStatus | None:
    """Map a performed treatment to the tooth's resulting status.

    Returns None when nothing matches; callers decide the fallback.
    """
    text = _normalize(treatment)
    if not text:
        return None
    return _first_match(text, _FINAL_RULES)
