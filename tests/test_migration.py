"""Tests for legacy status resolution."""

import pytest

from pipeline_server.errors import InvalidOperation
from pipeline_server.migration import (
    LEGACY_STATUS_MAP,
    canonical_status,
    is_legacy_status,
    match_status,
    resolve_status,
)
from pipeline_server.stages import StageRegistry


@pytest.fixture
def registry():
    return StageRegistry()


class TestResolveStatus:
    @pytest.mark.parametrize("legacy,expected", [
        ("submitted", "new"),
        ("reviewing", "screening"),
        ("shortlisted", "phone_screen"),
        ("interviewing", "interview"),
        ("accepted", "hired"),
    ])
    def test_legacy_values(self, registry, legacy, expected):
        assert resolve_status(legacy, registry) == expected

    def test_stage_id_passes_through(self, registry):
        for stage_id in registry.ids():
            assert resolve_status(stage_id, registry) == stage_id

    def test_case_insensitive(self, registry):
        assert resolve_status("Offer", registry) == "offer"
        assert resolve_status("SHORTLISTED", registry) == "phone_screen"

    def test_unknown_goes_to_fallback(self, registry):
        assert resolve_status("ghosted", registry) == "new"

    def test_missing_goes_to_fallback(self, registry):
        assert resolve_status(None, registry) == "new"
        assert resolve_status("", registry) == "new"

    def test_custom_stage_id(self, registry):
        stage = registry.add_custom_stage("Take-home")
        assert resolve_status(stage.id, registry) == stage.id

    def test_removed_custom_stage_goes_to_fallback(self, registry):
        assert resolve_status("custom_1700000000000", registry) == "new"

    def test_always_resolves_into_registry(self, registry):
        for raw in ["new", "x", "Accepted", " interview ", None, "rejected", *LEGACY_STATUS_MAP]:
            assert resolve_status(raw, registry) in registry


class TestIsLegacyStatus:
    def test_detects_legacy(self):
        assert is_legacy_status("Submitted")
        assert not is_legacy_status("new")
        assert not is_legacy_status(None)


class TestMatchStatus:
    def test_no_match_is_none(self, registry):
        assert match_status("ghosted", registry) is None
        assert match_status(None, registry) is None


class TestCanonicalStatus:
    def test_stage_id(self, registry):
        assert canonical_status("offer", registry) == "offer"

    def test_legacy_value(self, registry):
        assert canonical_status("Shortlisted", registry) == "phone_screen"

    def test_custom_stage_id(self, registry):
        stage = registry.add_custom_stage("Take-home")
        assert canonical_status(stage.id, registry) == stage.id

    @pytest.mark.parametrize("raw", ["ghosted", "", None, "custom_1700000000000"])
    def test_unknown(self, registry, raw):
        with pytest.raises(InvalidOperation):
            canonical_status(raw, registry)

    def test_agrees_with_resolve_status(self, registry):
        for raw in ["new", "Offer", " interview ", "ghosted", None, *LEGACY_STATUS_MAP]:
            if match_status(raw, registry) is None:
                with pytest.raises(InvalidOperation):
                    canonical_status(raw, registry)
            else:
                assert canonical_status(raw, registry) == resolve_status(raw, registry)
