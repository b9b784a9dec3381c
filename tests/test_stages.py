"""Tests for the stage registry."""

import pytest

from pipeline_server.errors import InvalidOperation, StageNotFoundError
from pipeline_server.models import Stage, StageColor
from pipeline_server.stages import DEFAULT_STAGES, StageRegistry


class TestDefaults:
    def test_seeds_eight_builtin_stages(self):
        registry = StageRegistry()
        assert registry.ids() == [
            "new", "screening", "phone_screen", "interview",
            "final_round", "offer", "hired", "rejected",
        ]

    def test_orders_are_dense(self):
        registry = StageRegistry()
        assert [s.order for s in registry.list_stages()] == list(range(8))

    def test_hired_and_rejected_are_terminal(self):
        registry = StageRegistry()
        terminal = {s.id for s in registry.list_stages() if s.is_terminal}
        assert terminal == {"hired", "rejected"}

    def test_does_not_share_stage_objects_with_defaults(self):
        registry = StageRegistry()
        registry.update_stage("new", name="Inbox")
        assert DEFAULT_STAGES[0].name == "New"


class TestReadsReturnCopies:
    def test_mutating_listed_stage_leaves_registry_intact(self):
        registry = StageRegistry()
        stages = registry.list_stages()
        stages[0].name = "Inbox"
        stages[6].is_terminal = False
        stages.pop()
        assert registry.get("new").name == "New"
        assert registry.get("hired").is_terminal
        assert len(registry.list_stages()) == 8

    def test_mutating_fetched_stage_leaves_registry_intact(self):
        registry = StageRegistry()
        registry.get("offer").color = StageColor.RED
        assert registry.get("offer").color != StageColor.RED

    def test_returned_custom_stage_is_detached(self):
        registry = StageRegistry()
        stage = registry.add_custom_stage("Take-home")
        stage.order = 0
        assert registry.get(stage.id).order == 8
        assert registry.ids()[0] == "new"


class TestNormalization:
    def test_reseeds_missing_builtins(self):
        registry = StageRegistry([Stage(id="new", name="New", order=0)])
        assert len(registry) == 8
        assert "rejected" in registry

    def test_dedupes_by_id(self):
        stages = [Stage(id="new", name="New", order=0), Stage(id="new", name="Dup", order=3)]
        registry = StageRegistry(stages)
        assert registry.get("new").name == "New"
        assert registry.ids().count("new") == 1

    def test_densifies_sparse_orders(self):
        stages = [s.model_copy(update={"order": s.order * 10}) for s in DEFAULT_STAGES]
        registry = StageRegistry(stages)
        assert [s.order for s in registry.list_stages()] == list(range(8))


class TestNextStage:
    def test_shortlisted_flow_advances_to_interview(self):
        assert StageRegistry().next_stage("phone_screen").id == "interview"

    def test_final_round_advances_to_offer(self):
        assert StageRegistry().next_stage("final_round").id == "offer"

    def test_terminal_has_no_next(self):
        registry = StageRegistry()
        assert registry.next_stage("hired") is None
        assert registry.next_stage("rejected") is None

    def test_unknown_has_no_next(self):
        assert StageRegistry().next_stage("nope") is None

    def test_never_advances_into_rejected(self):
        stages = [s for s in DEFAULT_STAGES if s.id != "hired"]
        registry = StageRegistry(stages)
        # hired is re-seeded after rejected, so offer sits right before rejected
        assert registry.ids()[-2:] == ["rejected", "hired"]
        assert registry.next_stage("offer") is None


class TestAddCustomStage:
    def test_appends_at_end(self):
        registry = StageRegistry()
        stage = registry.add_custom_stage("Take-home", "teal")
        assert stage.id.startswith("custom_")
        assert stage.order == 8
        assert stage.is_custom
        assert stage.color == StageColor.TEAL
        assert registry.list_stages()[-1].id == stage.id

    def test_ids_are_unique_within_same_millisecond(self):
        registry = StageRegistry()
        a = registry.add_custom_stage("A")
        b = registry.add_custom_stage("B")
        assert a.id != b.id

    def test_blank_name_gets_default(self):
        assert StageRegistry().add_custom_stage("   ").name == "New Stage"

    def test_unknown_color_falls_back_to_gray(self):
        assert StageRegistry().add_custom_stage("X", "magenta").color == StageColor.GRAY


class TestUpdateStage:
    def test_rename_keeps_id(self):
        registry = StageRegistry()
        stage = registry.update_stage("screening", name="Resume Review")
        assert stage.id == "screening"
        assert registry.get("screening").name == "Resume Review"

    def test_recolour(self):
        registry = StageRegistry()
        registry.update_stage("offer", color="cyan")
        assert registry.get("offer").color == StageColor.CYAN

    def test_unknown_stage(self):
        with pytest.raises(StageNotFoundError):
            StageRegistry().update_stage("nope", name="X")

    def test_invalid_color(self):
        with pytest.raises(InvalidOperation):
            StageRegistry().update_stage("offer", color="magenta")


class TestRemoveStage:
    def test_remove_custom_redensifies(self):
        registry = StageRegistry()
        a = registry.add_custom_stage("A")
        b = registry.add_custom_stage("B")
        registry.remove_stage(a.id)
        assert a.id not in registry
        assert registry.get(b.id).order == 8
        assert [s.order for s in registry.list_stages()] == list(range(9))

    def test_builtin_cannot_be_removed(self):
        registry = StageRegistry()
        with pytest.raises(InvalidOperation):
            registry.remove_stage("interview")
        assert "interview" in registry

    def test_unknown_stage(self):
        with pytest.raises(StageNotFoundError):
            StageRegistry().remove_stage("custom_1")
