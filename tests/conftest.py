"""Shared fixtures: every test gets its own JSON store under tmp_path."""

import json
from unittest.mock import patch

import pytest

from pipeline_server.models import ApplicationRecord


@pytest.fixture
def store(tmp_path):
    """Point the record and settings stores at a temp directory."""
    applications_file = tmp_path / "applications.json"
    settings_dir = tmp_path / "settings"
    with patch("pipeline_server.data.APPLICATIONS_FILE", applications_file), \
         patch("pipeline_server.settings_store.SETTINGS_DIR", settings_dir):
        yield applications_file, settings_dir


def make_record(record_id: str, status: str = "new", applied_at: str = "2024-03-01T09:00:00+00:00", **kwargs) -> ApplicationRecord:
    return ApplicationRecord(
        id=record_id,
        applicant_id=kwargs.pop("applicant_id", f"cand_{record_id}"),
        posting_id=kwargs.pop("posting_id", "post_1"),
        status=status,
        applied_at=applied_at,
        **kwargs,
    )


def write_records(path, records: list[ApplicationRecord]) -> None:
    path.write_text(json.dumps({"applications": [r.model_dump(mode="json") for r in records]}))
