"""Drag-transition control: gesture state machine and optimistic status moves.

A drag gesture runs Idle -> Dragging -> Hovering -> Dropped | Cancelled. Only
a drop issues a status change, and each change is a two-phase commit: the
local record is updated first, then the persistence call is awaited and the
local change is reverted if it fails.
"""

import itertools
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Iterable, Optional

from pipeline_server.errors import InvalidOperation, MalformedDragPayload, PersistenceFailure, RecordNotFoundError
from pipeline_server.grouping import group_records
from pipeline_server.migration import resolve_status
from pipeline_server.models import ApplicationRecord, DragPayload, Stage
from pipeline_server.stages import StageRegistry

logger = logging.getLogger(__name__)

PersistFn = Callable[[str, str], Awaitable[Any]]


# --- Quick-action targets (shared with the HTTP routes) ---


def advance_target(status: str, registry: StageRegistry) -> Optional[Stage]:
    """Next stage for a record, or None if there is nowhere to advance.

    Raises:
        InvalidOperation: if the record already sits in a terminal stage
    """
    current = registry.get(resolve_status(status, registry))
    if current.is_terminal:
        raise InvalidOperation(f"Cannot advance from terminal stage '{current.name}'")
    return registry.next_stage(current.id)


def reject_target(registry: StageRegistry) -> str:
    return registry.rejected_stage_id


# --- Gesture State Machine ---


class DragPhase(str, Enum):
    IDLE = "idle"
    DRAGGING = "dragging"
    HOVERING = "hovering"
    DROPPED = "dropped"
    CANCELLED = "cancelled"


@dataclass
class DragState:
    phase: DragPhase = DragPhase.IDLE
    record_id: Optional[str] = None
    source_stage_id: Optional[str] = None
    hover_stage_id: Optional[str] = None
    target_stage_id: Optional[str] = None

    @property
    def active(self) -> bool:
        return self.phase in (DragPhase.DRAGGING, DragPhase.HOVERING)


class DragGesture:
    """Per-board drag tracking, inspectable without a pointer device."""

    def __init__(self):
        self.state = DragState()

    @property
    def phase(self) -> DragPhase:
        return self.state.phase

    def start(self, record_id: str, source_stage_id: str) -> str:
        """Begin dragging a card. Returns the encoded drag payload."""
        if self.state.active:
            raise InvalidOperation("A drag is already in progress")
        payload = DragPayload(record_id=record_id, from_stage=source_stage_id)
        self.state = DragState(
            phase=DragPhase.DRAGGING,
            record_id=record_id,
            source_stage_id=source_stage_id,
        )
        return payload.encode()

    def hover(self, stage_id: str) -> None:
        if not self.state.active:
            return
        self.state.phase = DragPhase.HOVERING
        self.state.hover_stage_id = stage_id

    def leave_board(self) -> None:
        """Pointer left the board container: clear the highlight, keep dragging."""
        if self.state.phase == DragPhase.HOVERING:
            self.state.phase = DragPhase.DRAGGING
        self.state.hover_stage_id = None

    def drop(self, target_stage_id: str) -> DragState:
        self.state.phase = DragPhase.DROPPED
        self.state.target_stage_id = target_stage_id
        self.state.hover_stage_id = None
        return self.state

    def cancel(self) -> None:
        """Released outside any drop target. Nothing is persisted."""
        self.state.phase = DragPhase.CANCELLED
        self.state.hover_stage_id = None

    def reset(self) -> None:
        self.state = DragState()

    def is_drop_target(self, stage_id: str) -> bool:
        return self.state.phase == DragPhase.HOVERING and self.state.hover_stage_id == stage_id


# --- Optimistic Transitions ---


@dataclass
class TransitionResult:
    record_id: str
    from_stage: str
    to_stage: str


@dataclass
class _Pending:
    token: int
    target: str
    previous_status: str  # Last status known to be persisted


class TransitionController:
    """Holds the local record snapshot and applies status moves optimistically.

    `persist(record_id, new_status)` is awaited for every move; any exception
    it raises reverts the move and is re-raised as PersistenceFailure.
    Several moves may be in flight at once; confirmations can arrive in any
    order and only the latest move of a record decides its local status.
    """

    def __init__(self, registry: StageRegistry, persist: PersistFn, records: Iterable[ApplicationRecord] = ()):
        self.registry = registry
        self._persist = persist
        self._records: dict[str, ApplicationRecord] = {}
        self._pending: dict[str, _Pending] = {}
        self._seq = itertools.count(1)
        self.apply_snapshot(records)

    # --- Snapshot ---

    def apply_snapshot(self, records: Iterable[ApplicationRecord]) -> None:
        """Replace local state with a full snapshot from the record stream.

        Moves still in flight stay applied on top of the snapshot.
        """
        self._records = {r.id: r.model_copy(deep=True) for r in records}
        for record_id, pending in self._pending.items():
            record = self._records.get(record_id)
            if record is not None:
                record.status = pending.target

    def set_registry(self, registry: StageRegistry) -> None:
        self.registry = registry

    def records(self) -> list[ApplicationRecord]:
        return list(self._records.values())

    def get(self, record_id: str) -> ApplicationRecord:
        record = self._records.get(record_id)
        if record is None:
            raise RecordNotFoundError(f"Application {record_id} not found")
        return record

    def grouped(self) -> dict[str, list[ApplicationRecord]]:
        return group_records(self.records(), self.registry)

    def current_stage(self, record_id: str) -> str:
        return resolve_status(self.get(record_id).status, self.registry)

    def in_flight(self) -> set[str]:
        return set(self._pending)

    # --- Commands ---

    async def move(self, record_id: str, target_stage_id: str) -> Optional[TransitionResult]:
        """Move a record to a stage. Returns None when already there."""
        record = self.get(record_id)
        if target_stage_id not in self.registry:
            raise InvalidOperation(f"Unknown stage: {target_stage_id}")

        source = resolve_status(record.status, self.registry)
        if source == target_stage_id:
            return None

        token = next(self._seq)
        previous = self._pending.get(record_id)
        self._pending[record_id] = _Pending(
            token=token,
            target=target_stage_id,
            previous_status=previous.previous_status if previous else record.status,
        )
        record.status = target_stage_id

        try:
            await self._persist(record_id, target_stage_id)
        except Exception as e:
            failure = e if isinstance(e, PersistenceFailure) else PersistenceFailure(f"Status update failed: {e}")
            self._revert(record_id, token)
            logger.error("Move of %s to %s failed: %s", record_id, target_stage_id, failure.message)
            raise failure from e

        pending = self._pending.get(record_id)
        if pending is not None:
            if pending.token == token:
                del self._pending[record_id]
            else:
                # A newer move is in flight; if it fails it reverts to this one
                pending.previous_status = target_stage_id
        return TransitionResult(record_id=record_id, from_stage=source, to_stage=target_stage_id)

    def _revert(self, record_id: str, token: int) -> None:
        pending = self._pending.get(record_id)
        if pending is None or pending.token != token:
            return  # Superseded by a newer move
        del self._pending[record_id]
        record = self._records.get(record_id)
        if record is not None:
            record.status = pending.previous_status

    async def handle_drop(self, raw_payload, target_stage_id: str, gesture: Optional[DragGesture] = None) -> Optional[TransitionResult]:
        """Process a drop event. Malformed payloads are logged and ignored."""
        if gesture is not None:
            gesture.drop(target_stage_id)
        try:
            payload = DragPayload.decode(raw_payload)
        except MalformedDragPayload as e:
            logger.warning("Ignoring drop onto %s: %s", target_stage_id, e.message)
            return None
        finally:
            if gesture is not None:
                gesture.reset()

        if payload.from_stage == target_stage_id:
            return None
        return await self.move(payload.record_id, target_stage_id)

    async def advance(self, record_id: str) -> Optional[TransitionResult]:
        """Move to the next stage; None if the record is at the last stage."""
        target = advance_target(self.get(record_id).status, self.registry)
        if target is None:
            return None
        return await self.move(record_id, target.id)

    async def reject(self, record_id: str) -> Optional[TransitionResult]:
        return await self.move(record_id, reject_target(self.registry))
