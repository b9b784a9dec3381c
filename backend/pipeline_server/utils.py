"""Shared utility functions for timestamps and card rendering."""

from datetime import datetime, timezone
from typing import Optional


def parse_timestamp(timestamp: Optional[str]) -> Optional[datetime]:
    """Parse an ISO timestamp (`Z` suffix allowed). Naive values are taken as UTC."""
    if not timestamp:
        return None
    try:
        parsed = datetime.fromisoformat(timestamp.replace("Z", "+00:00"))
    except (ValueError, TypeError, AttributeError):
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def compute_days_ago(timestamp: Optional[str], now: Optional[datetime] = None) -> Optional[int]:
    """Compute whole days since an ISO timestamp."""
    then = parse_timestamp(timestamp)
    if then is None:
        return None
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return max(0, (now - then).days)


def relative_date_label(timestamp: Optional[str], now: Optional[datetime] = None) -> str:
    """Today / Yesterday / N days ago, else the calendar date."""
    days = compute_days_ago(timestamp, now)
    if days is None:
        return "N/A"
    if days == 0:
        return "Today"
    if days == 1:
        return "Yesterday"
    if days < 7:
        return f"{days} days ago"
    return timestamp[:10]


def initials(name: str) -> str:
    """First letters of up to two words: 'Ada Lovelace' -> 'AL'."""
    return "".join(part[0] for part in name.split() if part).upper()[:2]


def match_tier(score: Optional[int]) -> Optional[str]:
    if not score:
        return None
    if score >= 80:
        return "high"
    if score >= 60:
        return "medium"
    return "low"
