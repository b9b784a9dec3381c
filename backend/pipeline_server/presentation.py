"""Board presentation: view model of columns and cards for the UI.

Pure composition over grouping, stages, settings and drag state.
"""

from datetime import datetime
from typing import Optional

from pipeline_server.grouping import group_records, stage_counts, visible_stages
from pipeline_server.models import ApplicationRecord, BackgroundTheme, PipelineSettings, Stage
from pipeline_server.stages import StageRegistry
from pipeline_server.transitions import DragGesture
from pipeline_server.utils import initials, match_tier, relative_date_label

UNKNOWN_CANDIDATE = "Unknown"

HEADER_CLASSES = {
    "blue": "bg-blue-500",
    "purple": "bg-purple-500",
    "indigo": "bg-indigo-500",
    "orange": "bg-orange-500",
    "pink": "bg-pink-500",
    "emerald": "bg-emerald-500",
    "green": "bg-green-500",
    "red": "bg-red-500",
    "yellow": "bg-yellow-500",
    "teal": "bg-teal-500",
    "cyan": "bg-cyan-500",
    "gray": "bg-gray-500",
}


def background_style(settings: PipelineSettings) -> dict:
    """CSS properties for the board container."""
    theme = settings.background_theme
    if theme == BackgroundTheme.NONE:
        return {}
    if theme == BackgroundTheme.CUSTOM:
        if not settings.custom_background_url:
            return {}
        image = settings.custom_background_url
    else:
        image = f"/backgrounds/pipeline_bg_{theme.value}.png"
    return {
        "backgroundImage": f"url({image})",
        "backgroundSize": "cover",
        "backgroundPosition": "center",
        "backgroundRepeat": "no-repeat",
    }


def column_style(transparency: int) -> dict:
    style = {}
    if transparency > 0:
        style["backgroundColor"] = f"rgba(255, 255, 255, {round(1 - transparency / 100, 2)})"
    if transparency > 20:
        style["backdropFilter"] = "blur(10px)"
    return style


def build_card(
    record: ApplicationRecord,
    stage: Stage,
    registry: StageRegistry,
    display_names: dict[str, str],
    now: Optional[datetime] = None,
) -> dict:
    name = display_names.get(record.applicant_id) or UNKNOWN_CANDIDATE
    actions = []
    if not stage.is_terminal and registry.next_stage(stage.id) is not None:
        actions.append("advance")
    if stage.id != registry.rejected_stage_id:
        actions.append("reject")
    return {
        "id": record.id,
        "applicant_id": record.applicant_id,
        "name": name,
        "initials": initials(name),
        "rating": record.rating,
        "match_score": record.match_score,
        "match_tier": match_tier(record.match_score),
        "applied": relative_date_label(record.applied_at, now),
        "resume_ref": record.resume_ref,
        "quick_actions": actions,
    }


def build_board(
    records: list[ApplicationRecord],
    registry: StageRegistry,
    settings: PipelineSettings,
    display_names: Optional[dict[str, str]] = None,
    gesture: Optional[DragGesture] = None,
    now: Optional[datetime] = None,
) -> dict:
    """Compose the full board: one column per visible stage, one card per record."""
    display_names = display_names or {}
    grouped = group_records(records, registry)
    counts = stage_counts(grouped)
    transparency = settings.column_transparency

    columns = []
    for stage in visible_stages(grouped, registry):
        columns.append({
            "stage_id": stage.id,
            "name": stage.name,
            "color": stage.color.value,
            "header_class": HEADER_CLASSES.get(stage.color.value, HEADER_CLASSES["blue"]),
            "is_terminal": stage.is_terminal,
            "is_custom": stage.is_custom,
            "count": counts.get(stage.id, 0),
            "is_drop_target": gesture.is_drop_target(stage.id) if gesture else False,
            "style": column_style(transparency),
            "cards": [build_card(r, stage, registry, display_names, now) for r in grouped[stage.id]],
        })

    return {
        "columns": columns,
        "drop_targets": list(grouped.keys()),
        "background": {
            "theme": settings.background_theme.value,
            "style": background_style(settings),
        },
        "column_transparency": transparency,
        "total": sum(counts.values()),
    }
