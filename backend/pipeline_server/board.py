"""Server-side board commands: status transitions and stage management.

These are the persisted counterparts of the client's optimistic moves.
"""

import logging
from typing import Optional

from pipeline_server import data
from pipeline_server.errors import RecordNotFoundError
from pipeline_server.migration import canonical_status, resolve_status
from pipeline_server.models import ApplicationRecord, PipelineSettingsUpdate, Stage, StageColor
from pipeline_server.settings_store import load_registry, save_settings, settings_lock
from pipeline_server.stages import StageRegistry
from pipeline_server.transitions import advance_target, reject_target

logger = logging.getLogger(__name__)


def _get_or_raise(record_id: str) -> ApplicationRecord:
    record = data.get_record(record_id)
    if record is None:
        raise RecordNotFoundError(f"Application {record_id} not found")
    return record


# --- Status Transitions ---


def set_status(
    record_id: str,
    new_status: str,
    registry: StageRegistry,
    note: Optional[str] = None,
) -> tuple[ApplicationRecord, bool]:
    """Persist a status change. Returns (record, changed).

    Moving a record to the stage it is already in changes nothing,
    history included.
    """
    target = canonical_status(new_status, registry)
    record = _get_or_raise(record_id)
    if resolve_status(record.status, registry) == target:
        return record, False
    updated = data.update_record_status(record_id, target, note)
    if updated is None:
        raise RecordNotFoundError(f"Application {record_id} not found")
    return updated, True


def advance(record_id: str, registry: StageRegistry) -> tuple[ApplicationRecord, bool]:
    """Advance one stage. No-op when there is no next stage."""
    record = _get_or_raise(record_id)
    target = advance_target(record.status, registry)
    if target is None:
        return record, False
    return set_status(record_id, target.id, registry, note="Advanced")


def reject(record_id: str, registry: StageRegistry) -> tuple[ApplicationRecord, bool]:
    return set_status(record_id, reject_target(registry), registry, note="Rejected")


# --- Stage Management ---


def add_stage(user_id: str, name: str, color: StageColor | str = StageColor.GRAY) -> Stage:
    with settings_lock:
        registry = load_registry(user_id)
        stage = registry.add_custom_stage(name, color)
        save_settings(user_id, PipelineSettingsUpdate(custom_stages=registry.list_stages()))
    return stage


def update_stage(user_id: str, stage_id: str, name: Optional[str] = None, color: Optional[str] = None) -> Stage:
    with settings_lock:
        registry = load_registry(user_id)
        stage = registry.update_stage(stage_id, name=name, color=color)
        save_settings(user_id, PipelineSettingsUpdate(custom_stages=registry.list_stages()))
    return stage


def remove_stage(user_id: str, stage_id: str) -> tuple[Stage, int]:
    """Remove a custom stage and move its records to the fallback stage.

    Returns (removed_stage, records_moved).
    """
    with settings_lock:
        registry = load_registry(user_id)
        remaining = StageRegistry(registry.list_stages())
        removed = remaining.remove_stage(stage_id)
        save_settings(user_id, PipelineSettingsUpdate(custom_stages=remaining.list_stages()))

    # Resolve against the old registry so records still map to the removed id
    moved = data.reassign_stage(stage_id, remaining.fallback_stage_id, registry)
    logger.info("User %s removed stage %s (%d record(s) moved)", user_id, stage_id, moved)
    return removed, moved
