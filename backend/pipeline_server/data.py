"""Data layer for application records - JSON file read/write helpers.

Records are owned by the HR side. Status changes append to status_history;
the history is never rewritten.
"""

import json
import logging
import os
import tempfile
import threading
import uuid
from pathlib import Path
from typing import Optional

from pipeline_server.config import get_config
from pipeline_server.errors import PersistenceFailure
from pipeline_server.migration import resolve_status
from pipeline_server.models import ApplicationRecord, ApplicationRecords, StatusHistoryEntry, now_iso
from pipeline_server.stages import StageRegistry

__all__ = [
    "DATA_DIR", "APPLICATIONS_FILE",
    "_read_json", "_write_json",
    "get_records", "get_record", "create_record", "update_record_status",
    "update_record", "delete_record", "reassign_stage",
]

logger = logging.getLogger(__name__)

DATA_DIR = get_config().data_dir
APPLICATIONS_FILE = DATA_DIR / "applications.json"

# HR-editable fields; id and status go through their own paths
EDITABLE_FIELDS = {"rating", "match_score", "hr_notes", "resume_ref"}

# Guards every read-modify-write of APPLICATIONS_FILE
_records_lock = threading.RLock()


# --- File Operations ---


def _read_json(path: Path, default: dict) -> dict:
    """Read JSON file, return default if not exists or invalid.

    Args:
        path: Path to JSON file
        default: Value to return if file missing or malformed
    """
    if not path.exists():
        return default
    try:
        data = json.loads(path.read_text())
        # Must be a dict, not a list
        if not isinstance(data, dict):
            return default
        return data
    except (json.JSONDecodeError, IOError):
        return default


def _write_json(path: Path, data: dict) -> None:
    """Write JSON file with pretty formatting.

    Raises:
        PersistenceFailure: if the file cannot be written
    """
    tmp_name = None
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        # Unique temp name per write
        with tempfile.NamedTemporaryFile(
            "w", dir=path.parent, prefix=f".{path.name}.", suffix=".tmp", delete=False,
        ) as tmp:
            tmp_name = tmp.name
            tmp.write(json.dumps(data, indent=2))
        os.replace(tmp_name, path)
    except OSError as e:
        if tmp_name and os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise PersistenceFailure(f"Could not write {path.name}: {e}") from e


def _load() -> ApplicationRecords:
    return ApplicationRecords.model_validate(_read_json(APPLICATIONS_FILE, {"applications": []}))


def _save(records: ApplicationRecords) -> None:
    _write_json(APPLICATIONS_FILE, records.model_dump(mode="json"))


# --- Records API ---


def get_records() -> list[ApplicationRecord]:
    """Full snapshot of application records, in stored order."""
    return _load().applications


def get_record(record_id: str) -> Optional[ApplicationRecord]:
    return next((r for r in get_records() if r.id == record_id), None)


def create_record(
    applicant_id: str,
    posting_id: str,
    resume_ref: Optional[str] = None,
    match_score: Optional[int] = None,
) -> ApplicationRecord:
    """Add a new application in the `new` stage."""
    now = now_iso()
    record = ApplicationRecord(
        id=f"app_{uuid.uuid4().hex[:12]}",
        applicant_id=applicant_id,
        posting_id=posting_id,
        resume_ref=resume_ref,
        status="new",
        status_history=[StatusHistoryEntry(status="new", timestamp=now, note="Application submitted")],
        match_score=match_score,
        applied_at=now,
        updated_at=now,
    )
    with _records_lock:
        records = _load()
        records.applications.append(record)
        _save(records)
    return record


def update_record_status(record_id: str, new_status: str, note: Optional[str] = None) -> Optional[ApplicationRecord]:
    """Set status and append a history entry.

    Returns:
        Updated record, or None if record_id not found
    """
    with _records_lock:
        records = _load()
        for record in records.applications:
            if record.id == record_id:
                now = now_iso()
                record.status = new_status
                record.status_history.append(StatusHistoryEntry(status=new_status, timestamp=now, note=note))
                record.updated_at = now
                _save(records)
                return record
    return None


def update_record(record_id: str, updates: dict) -> Optional[ApplicationRecord]:
    """Update HR fields (rating, match_score, hr_notes, resume_ref).

    Unknown fields, id and status are ignored.
    """
    with _records_lock:
        records = _load()
        for i, record in enumerate(records.applications):
            if record.id == record_id:
                data = record.model_dump()
                for key, value in updates.items():
                    if key in EDITABLE_FIELDS:
                        data[key] = value
                data["updated_at"] = now_iso()
                updated = ApplicationRecord.model_validate(data)
                records.applications[i] = updated
                _save(records)
                return updated
    return None


def delete_record(record_id: str) -> bool:
    """Delete a record. Returns True if found and deleted."""
    with _records_lock:
        records = _load()
        original_count = len(records.applications)
        records.applications = [r for r in records.applications if r.id != record_id]
        if len(records.applications) < original_count:
            _save(records)
            return True
    return False


def reassign_stage(from_stage_id: str, to_stage_id: str, registry: StageRegistry) -> int:
    """Move every record that resolves to `from_stage_id` into `to_stage_id`.

    `registry` must still contain `from_stage_id`. Returns count moved.
    """
    moved = 0
    now = now_iso()
    with _records_lock:
        records = _load()
        for record in records.applications:
            if resolve_status(record.status, registry) == from_stage_id:
                record.status = to_stage_id
                record.status_history.append(StatusHistoryEntry(
                    status=to_stage_id,
                    timestamp=now,
                    note=f"Stage {from_stage_id} removed",
                ))
                record.updated_at = now
                moved += 1
        if moved > 0:
            _save(records)
    if moved > 0:
        logger.info("Reassigned %d record(s) from %s to %s", moved, from_stage_id, to_stage_id)
    return moved
