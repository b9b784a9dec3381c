"""Live board session: optimistic moves against the running server.

Usage:
    session = BoardSession.connect("recruiter_1")
    asyncio.run(session.controller.move("app_3f2a9c01b7de", "offer"))
"""

from __future__ import annotations

import asyncio
import logging
from typing import Iterable, Optional

from pipeline_client import tool
from pipeline_server.errors import PersistenceFailure
from pipeline_server.models import ApplicationRecord, PipelineSettings, PipelineSettingsUpdate, Stage
from pipeline_server.stages import StageRegistry
from pipeline_server.transitions import DragGesture, TransitionController

logger = logging.getLogger(__name__)


class BoardSession:
    """Client-side board state for one recruiter.

    The status update runs in a worker thread, so several moves can be in
    flight on one event loop.
    """

    def __init__(
        self,
        user_id: str,
        settings: Optional[PipelineSettings] = None,
        records: Iterable[ApplicationRecord] = (),
    ):
        self.user_id = user_id
        self.settings = settings or PipelineSettings()
        self.gesture = DragGesture()
        self.controller = TransitionController(StageRegistry(self.settings.custom_stages), self._persist, records)

    @classmethod
    def connect(cls, user_id: str) -> "BoardSession":
        """Load settings and the record snapshot from the server."""
        settings_result = tool.get_settings(user_id, full=True)
        if settings_result.get("status") == "error":
            raise PersistenceFailure(settings_result.get("error", "Could not load settings"))
        records_result = tool.get_applications(full=True)
        if records_result.get("status") == "error":
            raise PersistenceFailure(records_result.get("error", "Could not load applications"))
        return cls(
            user_id,
            PipelineSettings.model_validate(settings_result["settings"]),
            [ApplicationRecord.model_validate(a) for a in records_result.get("applications", [])],
        )

    async def _persist(self, record_id: str, new_status: str) -> dict:
        result = await asyncio.to_thread(tool.update_status, record_id, new_status, user_id=self.user_id, full=True)
        if result.get("status") == "error":
            raise PersistenceFailure(result.get("error", "Status update failed"))
        return result

    @property
    def registry(self) -> StageRegistry:
        return self.controller.registry

    def stages(self) -> list[Stage]:
        return self.registry.list_stages()

    def apply_snapshot(self, message: dict) -> None:
        """Handle a record stream message ({"event": ..., "data": ...})."""
        if message.get("event") != "records_updated":
            return
        applications = (message.get("data") or {}).get("applications", [])
        self.controller.apply_snapshot(ApplicationRecord.model_validate(a) for a in applications)

    def apply_settings(self, settings: PipelineSettings) -> None:
        self.settings = settings
        self.controller.set_registry(StageRegistry(settings.custom_stages))

    async def update_settings(self, **changes) -> PipelineSettings:
        """Apply a background change locally, then save it.

        If the save fails the local settings keep the change and
        PersistenceFailure is raised so the user can be told.
        """
        update = PipelineSettingsUpdate(**changes)
        merged = {**self.settings.model_dump(), **update.model_dump(exclude_unset=True)}
        self.settings = PipelineSettings.model_validate(merged)
        result = await asyncio.to_thread(tool.update_settings, self.user_id, full=True, **changes)
        if result.get("status") == "error":
            logger.error("Settings for %s not saved: %s", self.user_id, result.get("error"))
            raise PersistenceFailure(result.get("error", "Settings not saved"))
        self.apply_settings(PipelineSettings.model_validate(result["settings"]))
        return self.settings

    async def drop(self, raw_payload, target_stage_id: str):
        return await self.controller.handle_drop(raw_payload, target_stage_id, self.gesture)
