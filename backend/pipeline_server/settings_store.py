"""Per-user pipeline settings: one JSON document per user, merged on save."""

import logging
import re
import threading
from pathlib import Path
from typing import Union

from pydantic import ValidationError

from pipeline_server.data import DATA_DIR, _read_json, _write_json
from pipeline_server.errors import InvalidOperation, PersistenceFailure
from pipeline_server.models import BackgroundTheme, PipelineSettings, PipelineSettingsUpdate, now_iso
from pipeline_server.stages import StageRegistry, default_stages

logger = logging.getLogger(__name__)

SETTINGS_DIR = DATA_DIR / "settings"

# Transparency applied when a background is first chosen over opaque columns
AUTO_TRANSPARENCY = 70

_USER_ID_RE = re.compile(r"^[A-Za-z0-9_.@-]+$")

# Guards read-merge-write of settings documents
settings_lock = threading.RLock()


def _settings_path(user_id: str) -> Path:
    if not user_id or ".." in user_id or not _USER_ID_RE.match(user_id):
        raise InvalidOperation(f"Invalid user id: {user_id!r}")
    return SETTINGS_DIR / f"{user_id}.json"


def default_settings() -> PipelineSettings:
    return PipelineSettings(
        custom_stages=default_stages(),
        background_theme=BackgroundTheme.NONE,
        column_transparency=0,
    )


def load_settings(user_id: str) -> PipelineSettings:
    """Load settings, creating the defaults on first access.

    Never fails the caller: a missing or corrupt document yields defaults.
    """
    path = _settings_path(user_id)
    data = _read_json(path, {})
    if data:
        try:
            settings = PipelineSettings.model_validate(data)
        except ValidationError as e:
            logger.warning("Settings for %s are invalid, using defaults: %s", user_id, e.error_count())
            return default_settings()
        if not settings.custom_stages:
            settings.custom_stages = default_stages()
        return settings

    settings = default_settings()
    settings.created_at = settings.updated_at = now_iso()
    try:
        _write_json(path, settings.model_dump(mode="json"))
        logger.info("Created default pipeline settings for %s", user_id)
    except PersistenceFailure as e:
        logger.error("Could not create settings for %s: %s", user_id, e.message)
    return settings


def load_registry(user_id: str) -> StageRegistry:
    return StageRegistry(load_settings(user_id).custom_stages)


def apply_background_coupling(
    current: PipelineSettings,
    proposed: PipelineSettings,
    sets_transparency: bool,
) -> PipelineSettings:
    """Raise transparency when a background is picked over opaque columns.

    `proposed` is the validated merge, so a custom theme without a url has
    already fallen back to none and does not count as a background. Fires
    only when no background was active before and transparency is still 0,
    unless the same update sets transparency itself.
    """
    if (
        proposed.background_theme != BackgroundTheme.NONE
        and not sets_transparency
        and current.background_theme == BackgroundTheme.NONE
        and current.column_transparency == 0
    ):
        return proposed.model_copy(update={"column_transparency": AUTO_TRANSPARENCY})
    return proposed


def save_settings(user_id: str, partial: Union[PipelineSettingsUpdate, dict]) -> PipelineSettings:
    """Merge a partial update into the stored settings.

    Omitted fields keep their stored values. Returns the merged settings.

    Raises:
        PersistenceFailure: if the document cannot be written
    """
    if isinstance(partial, dict):
        partial = PipelineSettingsUpdate.model_validate(partial)
    # An explicit null only clears the background url
    updates = {
        k: v for k, v in partial.model_dump(exclude_unset=True).items()
        if v is not None or k == "custom_background_url"
    }
    if "custom_stages" in updates:
        # Re-normalize through the registry (dense order, built-ins present)
        updates["custom_stages"] = StageRegistry(partial.custom_stages).list_stages()

    with settings_lock:
        current = load_settings(user_id)
        merged = current.model_dump()
        merged.update(updates)
        merged["updated_at"] = now_iso()
        if not merged.get("created_at"):
            merged["created_at"] = merged["updated_at"]
        settings = PipelineSettings.model_validate(merged)
        settings = apply_background_coupling(current, settings, "column_transparency" in updates)

        _write_json(_settings_path(user_id), settings.model_dump(mode="json"))
    return settings
