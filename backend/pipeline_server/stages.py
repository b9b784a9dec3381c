"""Stage registry: the ordered set of pipeline columns.

Built-in stages are seeded on first use and cannot be removed. Custom stages
are appended by the user and can be removed; their records then fall back
to the registry's default stage.
"""

import logging
import time
from typing import Iterable, Optional

from pipeline_server.errors import InvalidOperation, StageNotFoundError
from pipeline_server.models import Stage, StageColor

logger = logging.getLogger(__name__)

FALLBACK_STAGE_ID = "new"
REJECTED_STAGE_ID = "rejected"

DEFAULT_STAGES: list[Stage] = [
    Stage(id="new", name="New", order=0, color=StageColor.BLUE),
    Stage(id="screening", name="Screening", order=1, color=StageColor.PURPLE),
    Stage(id="phone_screen", name="Phone Screen", order=2, color=StageColor.INDIGO),
    Stage(id="interview", name="Interview", order=3, color=StageColor.ORANGE),
    Stage(id="final_round", name="Final Round", order=4, color=StageColor.PINK),
    Stage(id="offer", name="Offer", order=5, color=StageColor.EMERALD),
    Stage(id="hired", name="Hired", order=6, color=StageColor.GREEN, is_terminal=True),
    Stage(id="rejected", name="Rejected", order=7, color=StageColor.RED, is_terminal=True),
]

BUILTIN_STAGE_IDS = frozenset(s.id for s in DEFAULT_STAGES)


def default_stages() -> list[Stage]:
    """Fresh copies of the built-in stages."""
    return [s.model_copy() for s in DEFAULT_STAGES]


class StageRegistry:
    """Ordered, mutable stage list for one user's board."""

    def __init__(self, stages: Optional[Iterable[Stage]] = None):
        stages = [s.model_copy() for s in stages] if stages else default_stages()
        # Dedupe by id, first occurrence wins
        seen = set()
        unique = []
        for s in sorted(stages, key=lambda s: s.order):
            if s.id not in seen:
                seen.add(s.id)
                unique.append(s)
        # Re-seed built-ins missing from an older stored list
        for builtin in DEFAULT_STAGES:
            if builtin.id not in seen:
                logger.info("Re-seeding missing built-in stage %s", builtin.id)
                unique.append(builtin.model_copy(update={"order": len(unique)}))
        self._stages = unique
        self._densify()

    def _densify(self) -> None:
        """Renumber orders 0..n-1 keeping relative position."""
        self._stages.sort(key=lambda s: s.order)
        for i, s in enumerate(self._stages):
            s.order = i

    # --- Queries ---

    def _find(self, stage_id: str) -> Optional[Stage]:
        return next((s for s in self._stages if s.id == stage_id), None)

    def list_stages(self) -> list[Stage]:
        """Copies of the stages in ascending order (left-to-right column position)."""
        return [s.model_copy() for s in self._stages]

    def get(self, stage_id: str) -> Optional[Stage]:
        stage = self._find(stage_id)
        return stage.model_copy() if stage is not None else None

    def ids(self) -> list[str]:
        return [s.id for s in self._stages]

    def __contains__(self, stage_id: str) -> bool:
        return self._find(stage_id) is not None

    def __len__(self) -> int:
        return len(self._stages)

    @property
    def fallback_stage_id(self) -> str:
        """Stage that receives records whose status resolves nowhere."""
        if FALLBACK_STAGE_ID in self:
            return FALLBACK_STAGE_ID
        return self._stages[0].id

    @property
    def rejected_stage_id(self) -> str:
        return REJECTED_STAGE_ID

    def next_stage(self, stage_id: str) -> Optional[Stage]:
        """Stage at order + 1, or None if current is last, terminal or unknown.

        The rejection stage is never an advance target; rejecting is its own action.
        """
        current = self._find(stage_id)
        if current is None or current.is_terminal:
            return None
        candidate = next((s for s in self._stages if s.order == current.order + 1), None)
        if candidate is None or candidate.id == self.rejected_stage_id:
            return None
        return candidate

    # --- Mutations ---

    def add_custom_stage(self, name: str, color: StageColor | str = StageColor.GRAY) -> Stage:
        """Append a user-created stage at the end of the board."""
        base_id = f"custom_{int(time.time() * 1000)}"
        stage_id = base_id
        counter = 1
        while stage_id in self:
            stage_id = f"{base_id}_{counter}"
            counter += 1
        stage = Stage(
            id=stage_id,
            name=name.strip() or "New Stage",
            order=len(self._stages),
            color=color,
            is_custom=True,
        )
        self._stages.append(stage)
        return stage.model_copy()

    def update_stage(self, stage_id: str, name: Optional[str] = None, color: Optional[StageColor | str] = None) -> Stage:
        """Rename or recolour a stage. The id never changes."""
        stage = self._find(stage_id)
        if stage is None:
            raise StageNotFoundError(f"Stage {stage_id} not found")
        updates = {}
        if name is not None and name.strip():
            updates["name"] = name.strip()
        if color is not None:
            try:
                updates["color"] = StageColor(color)
            except ValueError:
                raise InvalidOperation(f"Unknown stage color: {color}")
        updated = stage.model_copy(update=updates)
        self._stages[self._stages.index(stage)] = updated
        return updated.model_copy()

    def remove_stage(self, stage_id: str) -> Stage:
        """Remove a custom stage. Built-in stages cannot be removed.

        Callers are responsible for moving the stage's records to
        `fallback_stage_id`; see board.remove_stage.

        Raises:
            StageNotFoundError: if stage_id is unknown
            InvalidOperation: if stage_id is a built-in stage
        """
        stage = self._find(stage_id)
        if stage is None:
            raise StageNotFoundError(f"Stage {stage_id} not found")
        if not stage.is_custom or stage.id in BUILTIN_STAGE_IDS:
            raise InvalidOperation(f"Built-in stage '{stage.name}' cannot be removed")
        self._stages.remove(stage)
        self._densify()
        return stage
