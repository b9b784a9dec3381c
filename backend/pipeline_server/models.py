"""Pydantic models for pipeline board data structures."""

import json
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import AliasChoices, BaseModel, Field, ValidationError, field_validator, model_validator

from pipeline_server.errors import MalformedDragPayload


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# --- Enums ---


class StageColor(str, Enum):
    """Colour tag of a pipeline column."""
    BLUE = "blue"
    PURPLE = "purple"
    INDIGO = "indigo"
    ORANGE = "orange"
    PINK = "pink"
    EMERALD = "emerald"
    GREEN = "green"
    RED = "red"
    YELLOW = "yellow"
    TEAL = "teal"
    CYAN = "cyan"
    GRAY = "gray"


class BackgroundTheme(str, Enum):
    NONE = "none"
    GRADIENT = "gradient"
    GEOMETRIC = "geometric"
    MOUNTAINS = "mountains"
    ABSTRACT = "abstract"
    PARTICLES = "particles"
    CUSTOM = "custom"


# --- Stage Models ---


class Stage(BaseModel):
    """One column of the board. `id` is immutable once created."""
    id: str = Field(min_length=1)
    name: str
    order: int = Field(ge=0)
    color: StageColor = StageColor.GRAY
    is_terminal: bool = False  # No forward advancement from here
    is_custom: bool = False  # User-created, removable

    @field_validator("color", mode="before")
    @classmethod
    def coerce_unknown_color(cls, v):
        """Handle colours that are no longer offered."""
        if isinstance(v, str) and v not in StageColor._value2member_map_:
            return StageColor.GRAY
        return v


# --- Application Record Models ---


class StatusHistoryEntry(BaseModel):
    status: str
    timestamp: str = Field(default_factory=now_iso)
    note: Optional[str] = None


class ApplicationRecord(BaseModel):
    """One candidate's application to one posting, owned by the HR side."""
    id: str
    applicant_id: str
    posting_id: str
    resume_ref: Optional[str] = None
    status: str = "new"  # Stage id, or a legacy value resolved on read
    status_history: list[StatusHistoryEntry] = Field(default_factory=list)
    rating: Optional[int] = Field(default=None, ge=1, le=5)
    match_score: Optional[int] = Field(default=None, ge=0, le=100)
    hr_notes: Optional[str] = None
    applied_at: str = Field(default_factory=now_iso)
    updated_at: str = Field(default_factory=now_iso)

    @field_validator("status_history", mode="before")
    @classmethod
    def coerce_none_to_list(cls, v):
        """Handle legacy None values."""
        if v is None:
            return []
        return v


class ApplicationRecords(BaseModel):
    applications: list[ApplicationRecord] = Field(default_factory=list)


# --- Pipeline Settings Models ---


class PipelineSettings(BaseModel):
    """Per-user board configuration. Persists across sessions."""
    custom_stages: Optional[list[Stage]] = None
    background_theme: BackgroundTheme = BackgroundTheme.NONE
    custom_background_url: Optional[str] = None
    column_transparency: int = Field(default=0, ge=0, le=100)  # 0 = opaque, 100 = fully transparent
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @model_validator(mode="after")
    def custom_theme_needs_url(self):
        if self.background_theme == BackgroundTheme.CUSTOM and not self.custom_background_url:
            self.background_theme = BackgroundTheme.NONE
        return self


class PipelineSettingsUpdate(BaseModel):
    """Partial settings update. Only fields explicitly set are merged."""
    custom_stages: Optional[list[Stage]] = None
    background_theme: Optional[BackgroundTheme] = None
    custom_background_url: Optional[str] = None
    column_transparency: Optional[int] = Field(default=None, ge=0, le=100)


# --- Drag Payload ---


class DragPayload(BaseModel):
    """Data carried by a drag gesture. Both fields are required.

    Also accepts the camelCase keys older boards wrote ({"appId", "fromStage"}).
    """
    record_id: str = Field(min_length=1, validation_alias=AliasChoices("record_id", "appId"))
    from_stage: str = Field(min_length=1, validation_alias=AliasChoices("from_stage", "fromStage"))

    def encode(self) -> str:
        return json.dumps({"record_id": self.record_id, "from_stage": self.from_stage})

    @classmethod
    def decode(cls, raw) -> "DragPayload":
        """Parse a transport payload (JSON text, bytes or dict).

        Raises:
            MalformedDragPayload: if unparseable or missing a required field
        """
        try:
            data = json.loads(raw) if isinstance(raw, (str, bytes)) else raw
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise MalformedDragPayload(f"Drag payload is not JSON: {e}") from e
        if not isinstance(data, dict):
            raise MalformedDragPayload("Drag payload must be an object")
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            raise MalformedDragPayload(f"Drag payload missing fields: {e.error_count()} error(s)") from e
