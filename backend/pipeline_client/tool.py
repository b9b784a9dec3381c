"""
Pipeline Board API Client.

These functions call the pipeline board server API. The server must be
running (PIPELINE_SERVER_URL, default localhost:8000) for these to work.

Usage:
    from pipeline_client import get_board, update_status, add_stage

    # Show the board for a recruiter
    print(get_board("recruiter_1"))

    # Move an application
    update_status("app_3f2a9c01b7de", "phone_screen", user_id="recruiter_1")

    # Add a custom column
    add_stage("recruiter_1", "Take-home", color="teal")
"""

from __future__ import annotations

from typing import Optional

from pipeline_client import http


def _failed(result: dict) -> bool:
    return not isinstance(result, dict) or result.get("status") == "error"


def _err(result: dict) -> str:
    if not isinstance(result, dict):
        return "ERROR: Unexpected response"
    code = result.get("code")
    message = result.get("error", "Failed")
    return f"ERROR: {code}: {message}" if code else f"ERROR: {message}"


# --- Terse Output Formatters ---


def _sanitize(s: Optional[str]) -> str:
    """Replace pipe delimiters in source data."""
    return (s or "").replace("|", "-")


def _short_id(record_id: str) -> str:
    """Shorten record id: app_3f2a9c01b7de -> 3f2a9c01b7de."""
    return record_id[4:] if record_id.startswith("app_") else record_id


def _normalize_id(record_id: str) -> str:
    """Expand short ids back to full: 3f2a9c01b7de -> app_3f2a9c01b7de."""
    return record_id if record_id.startswith("app_") else f"app_{record_id}"


def _fmt_application(a: dict) -> str:
    """Format application as pipe-delimited string for terse output."""
    return "|".join([
        _short_id(a.get("id", "")),
        _sanitize(a.get("applicant") or a.get("applicant_id")),
        a.get("stage") or a.get("status") or "-",
        str(a.get("rating") or "-"),
        str(a.get("match") or a.get("match_score") or "-"),
    ])


def _fmt_card(c: dict) -> str:
    return "|".join([
        _short_id(c.get("id", "")),
        _sanitize(c.get("name")),
        str(c.get("match_score") or "-"),
        str(c.get("rating") or "-"),
        c.get("applied") or "-",
        ",".join(c.get("quick_actions") or []) or "-",
    ])


def _fmt_stage(s: dict) -> str:
    flags = []
    if s.get("is_terminal"):
        flags.append("terminal")
    if s.get("is_custom"):
        flags.append("custom")
    return "|".join([
        str(s.get("order", "-")),
        s.get("id", ""),
        _sanitize(s.get("name")),
        s.get("color") or "-",
        ",".join(flags) or "-",
    ])


def _fmt_settings(s: dict) -> str:
    theme = s.get("background_theme") or "none"
    if theme == "custom" and s.get("custom_background_url"):
        theme = f"custom({s['custom_background_url']})"
    return f"theme: {theme} | transparency: {s.get('column_transparency', 0)} | stages: {len(s.get('custom_stages') or [])}"


def _fmt_move(result: dict, verb: str) -> str:
    app = result.get("application") or {}
    if not result.get("changed"):
        return f"Unchanged: {_short_id(app.get('id', ''))} in {app.get('status', '-')}"
    return f"{verb}: {_short_id(app.get('id', ''))} -> {app.get('status', '-')}"


# --- Status ---


def status(full: bool = False) -> str | dict:
    """Server health check.

    Returns (terse): "OK | applications: N" or "ERROR: ..."
    """
    result = http.get("/api/status", error_code="SERVER_ERROR")
    if full:
        return result
    if _failed(result):
        return _err(result)
    return f"OK | applications: {result.get('applications', 0)}"


# --- Board ---


def get_board(user_id: str, display_names: Optional[dict[str, str]] = None, full: bool = False) -> str | dict:
    """Board view for a recruiter.

    Args:
        user_id: Recruiter whose stages and background apply
        display_names: applicant_id -> name, resolved by the caller
        full: If True, return the full view model

    Terse format: one "--- Stage (count) ---" header per column, then
    {id}|{name}|{match}|{rating}|{applied}|{actions}
    """
    params = {"user_id": user_id}
    if display_names:
        result = http.post("/api/board", params=params, json={"display_names": display_names})
    else:
        result = http.get("/api/board", params=params)
    if full:
        return result
    if _failed(result):
        return _err(result)
    lines = []
    for col in result.get("columns", []):
        lines.append(f"--- {col.get('name')} ({col.get('count', 0)}) ---")
        lines.extend(_fmt_card(c) for c in col.get("cards", []))
    return "\n".join(lines) or "(empty board)"


# --- Applications ---


def get_applications(user_id: Optional[str] = None, full: bool = False) -> str | dict:
    """List all applications.

    Terse format: {id}|{applicant}|{stage}|{rating}|{match}
    """
    params = {} if full else {"slim": "true"}
    if user_id:
        params["user_id"] = user_id
    result = http.get("/api/applications", params=params)
    if full:
        return result
    if _failed(result):
        return _err(result)
    return "\n".join(_fmt_application(a) for a in result.get("applications", [])) or "(no applications)"


def get_application(record_id: str) -> dict:
    """Get full application record."""
    return http.get(f"/api/applications/{_normalize_id(record_id)}", error_code="RECORD_NOT_FOUND")


def create_application(
    applicant_id: str,
    posting_id: str,
    resume_ref: Optional[str] = None,
    match_score: Optional[int] = None,
    full: bool = False,
) -> str | dict:
    """Create an application in the New stage."""
    payload = {"applicant_id": applicant_id, "posting_id": posting_id}
    if resume_ref is not None:
        payload["resume_ref"] = resume_ref
    if match_score is not None:
        payload["match_score"] = match_score
    result = http.post("/api/applications", json=payload)
    if full:
        return result
    if _failed(result):
        return _err(result)
    return f"Created: {_short_id(result['application']['id'])}"


def update_application(record_id: str, full: bool = False, **fields) -> str | dict:
    """Update HR fields: rating, match_score, hr_notes, resume_ref."""
    result = http.patch(f"/api/applications/{_normalize_id(record_id)}", error_code="RECORD_NOT_FOUND", json=fields)
    if full:
        return result
    if _failed(result):
        return _err(result)
    return f"Updated: {', '.join(sorted(fields)) or 'nothing'}"


def delete_application(record_id: str, full: bool = False) -> str | dict:
    result = http.delete(f"/api/applications/{_normalize_id(record_id)}", error_code="RECORD_NOT_FOUND")
    if full:
        return result
    if _failed(result):
        return _err(result)
    return f"Deleted: {_short_id(result.get('deleted', record_id))}"


# --- Status Transitions ---


def update_status(
    record_id: str,
    status: str,
    user_id: str,
    note: Optional[str] = None,
    full: bool = False,
) -> str | dict:
    """Move an application to a stage (status-transition command)."""
    payload = {"status": status, "user_id": user_id}
    if note:
        payload["note"] = note
    result = http.put(
        f"/api/applications/{_normalize_id(record_id)}/status",
        error_code="PERSISTENCE_FAILED",
        json=payload,
    )
    if full:
        return result
    if _failed(result):
        return _err(result)
    return _fmt_move(result, "Moved")


def advance(record_id: str, user_id: str, full: bool = False) -> str | dict:
    """Advance one stage (never into Rejected)."""
    params = {"user_id": user_id}
    result = http.post(f"/api/applications/{_normalize_id(record_id)}/advance", params=params)
    if full:
        return result
    if _failed(result):
        return _err(result)
    return _fmt_move(result, "Advanced")


def reject(record_id: str, user_id: str, full: bool = False) -> str | dict:
    params = {"user_id": user_id}
    result = http.post(f"/api/applications/{_normalize_id(record_id)}/reject", params=params)
    if full:
        return result
    if _failed(result):
        return _err(result)
    return _fmt_move(result, "Rejected")


# --- Settings ---


def get_settings(user_id: str, full: bool = False) -> str | dict:
    result = http.get(f"/api/settings/{user_id}")
    if full:
        return result
    if _failed(result):
        return _err(result)
    return _fmt_settings(result.get("settings", {}))


def update_settings(
    user_id: str,
    background_theme: Optional[str] = None,
    custom_background_url: Optional[str] = None,
    column_transparency: Optional[int] = None,
    full: bool = False,
) -> str | dict:
    """Partial settings update. Only the given fields are sent."""
    payload = {}
    if background_theme is not None:
        payload["background_theme"] = background_theme
    if custom_background_url is not None:
        payload["custom_background_url"] = custom_background_url
    if column_transparency is not None:
        payload["column_transparency"] = column_transparency
    result = http.patch(f"/api/settings/{user_id}", error_code="PERSISTENCE_FAILED", json=payload)
    if full:
        return result
    if _failed(result):
        return _err(result)
    return _fmt_settings(result.get("settings", {}))


# --- Stages ---


def get_stages(user_id: str, full: bool = False) -> str | dict:
    """Ordered stage list.

    Terse format: {order}|{id}|{name}|{color}|{flags}
    """
    result = http.get(f"/api/settings/{user_id}/stages")
    if full:
        return result
    if _failed(result):
        return _err(result)
    return "\n".join(_fmt_stage(s) for s in result.get("stages", [])) or "(no stages)"


def add_stage(user_id: str, name: str = "New Stage", color: str = "gray", full: bool = False) -> str | dict:
    result = http.post(f"/api/settings/{user_id}/stages", json={"name": name, "color": color})
    if full:
        return result
    if _failed(result):
        return _err(result)
    return f"Added: {_fmt_stage(result.get('stage', {}))}"


def update_stage(
    user_id: str,
    stage_id: str,
    name: Optional[str] = None,
    color: Optional[str] = None,
    full: bool = False,
) -> str | dict:
    """Rename or recolour a stage. The id never changes."""
    payload = {}
    if name is not None:
        payload["name"] = name
    if color is not None:
        payload["color"] = color
    result = http.patch(f"/api/settings/{user_id}/stages/{stage_id}", error_code="STAGE_NOT_FOUND", json=payload)
    if full:
        return result
    if _failed(result):
        return _err(result)
    return f"Updated: {_fmt_stage(result.get('stage', {}))}"


def remove_stage(user_id: str, stage_id: str, full: bool = False) -> str | dict:
    """Remove a custom stage. Its applications move to New."""
    result = http.delete(f"/api/settings/{user_id}/stages/{stage_id}", error_code="STAGE_NOT_FOUND")
    if full:
        return result
    if _failed(result):
        return _err(result)
    return f"Removed: {result.get('removed')} ({result.get('moved', 0)} moved)"
