"""Status migration: legacy / free-form status strings -> canonical stage ids.

Records written before the stage model existed carry statuses like
"submitted" or "shortlisted". `resolve_status` is pure and total: every
input maps to a stage id present in the given registry.
"""

from typing import Optional

from pipeline_server.errors import InvalidOperation, UnresolvedStatus
from pipeline_server.stages import StageRegistry

LEGACY_STATUS_MAP = {
    "submitted": "new",
    "reviewing": "screening",
    "shortlisted": "phone_screen",
    "interviewing": "interview",
    "accepted": "hired",
}


def is_legacy_status(raw_status: Optional[str]) -> bool:
    return (raw_status or "").strip().lower() in LEGACY_STATUS_MAP


def match_status(raw_status: Optional[str], registry: StageRegistry) -> Optional[str]:
    """Stage id for a status, or None when nothing matches.

    Order: exact stage id, case-insensitive stage id, legacy table.
    """
    status = (raw_status or "").strip()
    if status in registry:
        return status

    lowered = status.lower()
    if lowered in registry:
        return lowered

    mapped = LEGACY_STATUS_MAP.get(lowered)
    if mapped and mapped in registry:
        return mapped
    return None


def resolve_status(raw_status: Optional[str], registry: StageRegistry) -> str:
    """Map a stored status to a stage id of `registry`, else its fallback stage."""
    return _checked(match_status(raw_status, registry) or registry.fallback_stage_id, registry)


def canonical_status(raw_status: Optional[str], registry: StageRegistry) -> str:
    """Validate a requested status: a stage id, or a legacy value with a known target.

    Raises:
        InvalidOperation: if the status matches no stage of `registry`
    """
    stage_id = match_status(raw_status, registry)
    if stage_id is None:
        raise InvalidOperation(f"Unknown status: {raw_status}")
    return stage_id


def _checked(stage_id: str, registry: StageRegistry) -> str:
    # A registry always holds its fallback stage, so this cannot fire
    if stage_id not in registry:
        raise UnresolvedStatus(f"Status resolved to unknown stage {stage_id}")
    return stage_id
