"""Board grouping: partition application records into per-stage buckets."""

from datetime import datetime, timezone
from typing import Iterable

from pipeline_server.migration import resolve_status
from pipeline_server.models import ApplicationRecord, Stage
from pipeline_server.stages import StageRegistry
from pipeline_server.utils import parse_timestamp

# Records without a readable applied_at sort first
_NO_TIMESTAMP = datetime.min.replace(tzinfo=timezone.utc)


def _applied_key(record: ApplicationRecord) -> datetime:
    return parse_timestamp(record.applied_at) or _NO_TIMESTAMP


def group_records(records: Iterable[ApplicationRecord], registry: StageRegistry) -> dict[str, list[ApplicationRecord]]:
    """Bucket records by resolved stage id.

    Every stage gets a bucket (terminal ones included, so drops onto an empty
    terminal column stay valid). Buckets are ordered by applied_at as an
    instant (offsets and `Z` honoured), ties kept in input order, so a regroup
    after an update does not reshuffle cards.
    """
    grouped: dict[str, list[ApplicationRecord]] = {s.id: [] for s in registry.list_stages()}
    fallback = registry.fallback_stage_id

    for record in records:
        stage_id = resolve_status(record.status, registry)
        # Stage deleted after the record was last written
        grouped.get(stage_id, grouped[fallback]).append(record)

    for stage_id, bucket in grouped.items():
        grouped[stage_id] = sorted(bucket, key=_applied_key)
    return grouped


def visible_stages(grouped: dict[str, list[ApplicationRecord]], registry: StageRegistry) -> list[Stage]:
    """Stages to render: empty terminal stages are hidden."""
    return [
        s for s in registry.list_stages()
        if not s.is_terminal or grouped.get(s.id)
    ]


def stage_counts(grouped: dict[str, list[ApplicationRecord]]) -> dict[str, int]:
    return {stage_id: len(bucket) for stage_id, bucket in grouped.items()}
