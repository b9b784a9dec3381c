"""API routes for the pipeline board.

Errors raised from the board core (PipelineError subclasses) are rendered
by the app-level handler as {"status": "error", "error": ..., "code": ...}.
"""

from typing import Optional

from fastapi import APIRouter
from pydantic import BaseModel, Field

from pipeline_server import board
from pipeline_server.data import (
    create_record,
    delete_record,
    get_record,
    get_records,
    update_record,
)
from pipeline_server.errors import RecordNotFoundError
from pipeline_server.migration import resolve_status
from pipeline_server.models import PipelineSettingsUpdate, StageColor
from pipeline_server.presentation import build_board
from pipeline_server.settings_store import load_registry, load_settings, save_settings
from pipeline_server.stages import StageRegistry
from pipeline_server.websocket import broadcast_records_updated, broadcast_settings_updated

router = APIRouter(prefix="/api")


def _registry_for(user_id: Optional[str]) -> StageRegistry:
    return load_registry(user_id) if user_id else StageRegistry()


# --- Slim Serializer (for terse tool output) ---


def serialize_app_slim(record, registry: StageRegistry) -> dict:
    """Flat, minimal application representation for tool calls."""
    return {
        "id": record.id,
        "applicant": record.applicant_id,
        "stage": resolve_status(record.status, registry),
        "rating": record.rating,
        "match": record.match_score,
    }


# --- Request Models ---


class CreateApplicationRequest(BaseModel):
    applicant_id: str
    posting_id: str
    resume_ref: Optional[str] = None
    match_score: Optional[int] = Field(default=None, ge=0, le=100)


class UpdateApplicationRequest(BaseModel):
    """Partial update for HR fields."""
    rating: Optional[int] = Field(default=None, ge=1, le=5)
    match_score: Optional[int] = Field(default=None, ge=0, le=100)
    hr_notes: Optional[str] = None
    resume_ref: Optional[str] = None


class UpdateStatusRequest(BaseModel):
    status: str
    user_id: str
    note: Optional[str] = None


class BoardRequestNames(BaseModel):
    display_names: dict[str, str] = Field(default_factory=dict)


class AddStageRequest(BaseModel):
    name: str = "New Stage"
    color: StageColor = StageColor.GRAY


class UpdateStageRequest(BaseModel):
    name: Optional[str] = None
    color: Optional[StageColor] = None


# --- Status ---


@router.get("/status")
def get_status():
    """Server status with record count."""
    return {"status": "ok", "applications": len(get_records())}


# --- Board ---


@router.get("/board")
def get_board(user_id: str):
    """Board view model for a recruiter (names unresolved)."""
    return build_board(get_records(), load_registry(user_id), load_settings(user_id))


@router.post("/board")
def post_board(user_id: str, req: BoardRequestNames):
    """Board view model with caller-supplied display names (applicant_id -> name)."""
    return build_board(get_records(), load_registry(user_id), load_settings(user_id), req.display_names)


# --- Applications ---


@router.get("/applications")
def get_applications(user_id: Optional[str] = None, slim: bool = False):
    """List all application records (full snapshot)."""
    records = get_records()
    if slim:
        registry = _registry_for(user_id)
        return {
            "status": "ok",
            "applications": [serialize_app_slim(r, registry) for r in records],
            "total": len(records),
        }
    return {"status": "ok", "applications": [r.model_dump(mode="json") for r in records], "total": len(records)}


@router.post("/applications")
def post_application(req: CreateApplicationRequest):
    record = create_record(req.applicant_id, req.posting_id, req.resume_ref, req.match_score)
    broadcast_records_updated()
    return {"status": "ok", "application": record.model_dump(mode="json")}


@router.get("/applications/{record_id}")
def get_application_detail(record_id: str):
    record = get_record(record_id)
    if record is None:
        raise RecordNotFoundError(f"Application {record_id} not found")
    return {"status": "ok", "application": record.model_dump(mode="json")}


@router.patch("/applications/{record_id}")
def patch_application(record_id: str, req: UpdateApplicationRequest):
    """Update rating, match score, notes or resume reference."""
    updates = req.model_dump(exclude_unset=True)
    record = update_record(record_id, updates)
    if record is None:
        raise RecordNotFoundError(f"Application {record_id} not found")
    broadcast_records_updated()
    return {"status": "ok", "application": record.model_dump(mode="json")}


@router.delete("/applications/{record_id}")
def remove_application(record_id: str):
    if not delete_record(record_id):
        raise RecordNotFoundError(f"Application {record_id} not found")
    broadcast_records_updated()
    return {"status": "ok", "deleted": record_id}


@router.put("/applications/{record_id}/status")
def update_status(record_id: str, req: UpdateStatusRequest):
    """Status-transition command: {record_id, new_status}."""
    record, changed = board.set_status(record_id, req.status, load_registry(req.user_id), req.note)
    if changed:
        broadcast_records_updated()
    return {"status": "ok", "changed": changed, "application": record.model_dump(mode="json")}


@router.post("/applications/{record_id}/advance")
def advance_application(record_id: str, user_id: str):
    record, changed = board.advance(record_id, load_registry(user_id))
    if changed:
        broadcast_records_updated()
    return {"status": "ok", "changed": changed, "application": record.model_dump(mode="json")}


@router.post("/applications/{record_id}/reject")
def reject_application(record_id: str, user_id: str):
    record, changed = board.reject(record_id, load_registry(user_id))
    if changed:
        broadcast_records_updated()
    return {"status": "ok", "changed": changed, "application": record.model_dump(mode="json")}


# --- Settings ---


@router.get("/settings/{user_id}")
def get_settings(user_id: str):
    return {"status": "ok", "settings": load_settings(user_id).model_dump(mode="json")}


@router.patch("/settings/{user_id}")
def patch_settings(user_id: str, req: PipelineSettingsUpdate):
    """Settings-mutation command. Omitted fields keep their stored values."""
    settings = save_settings(user_id, req)
    broadcast_settings_updated(user_id)
    return {"status": "ok", "settings": settings.model_dump(mode="json")}


# --- Stages ---


@router.get("/settings/{user_id}/stages")
def get_stages(user_id: str):
    stages = load_registry(user_id).list_stages()
    return {"status": "ok", "stages": [s.model_dump(mode="json") for s in stages]}


@router.post("/settings/{user_id}/stages")
def add_stage(user_id: str, req: AddStageRequest):
    stage = board.add_stage(user_id, req.name, req.color)
    broadcast_settings_updated(user_id)
    return {"status": "ok", "stage": stage.model_dump(mode="json")}


@router.patch("/settings/{user_id}/stages/{stage_id}")
def patch_stage(user_id: str, stage_id: str, req: UpdateStageRequest):
    stage = board.update_stage(user_id, stage_id, req.name, req.color)
    broadcast_settings_updated(user_id)
    return {"status": "ok", "stage": stage.model_dump(mode="json")}


@router.delete("/settings/{user_id}/stages/{stage_id}")
def delete_stage(user_id: str, stage_id: str):
    """Remove a custom stage; its records move to the fallback stage."""
    removed, moved = board.remove_stage(user_id, stage_id)
    broadcast_settings_updated(user_id)
    if moved:
        broadcast_records_updated()
    return {"status": "ok", "removed": removed.id, "moved": moved}
