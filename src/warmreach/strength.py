"""
warmreach strength classifier - how warm is a relationship?

Three tiers derived from recency and meeting frequency:
- weak: a single meeting (or none), whatever the recency
- strong: seen recently AND met repeatedly
- medium: seen within the looser window
Thresholds are policy; override them via WARMREACH_* env vars.
"""

import os
from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, Field

from .models import BestStrength, Strength

# Sort rank: lower is stronger
STRENGTH_RANK: dict[str, int] = {"strong": 0, "medium": 1, "weak": 2, "none": 3}


class StrengthPolicy(BaseModel):
    """Thresholds for the strength tiers."""

    model_config = ConfigDict(extra="forbid")

    strong_days: int = Field(default=7, ge=0, description="Max days since last seen for strong")
    medium_days: int = Field(default=21, ge=0, description="Max days since last seen for medium")
    strong_meetings: int = Field(
        default=2, ge=2, description="Min meetings for strong (a single meeting is never strong)"
    )

    @classmethod
    def from_env(cls) -> "StrengthPolicy":
        """Build a policy from WARMREACH_* environment overrides."""
        defaults = cls()
        return cls(
            strong_days=int(os.getenv("WARMREACH_STRONG_DAYS", defaults.strong_days)),
            medium_days=int(os.getenv("WARMREACH_MEDIUM_DAYS", defaults.medium_days)),
            strong_meetings=int(os.getenv("WARMREACH_STRONG_MEETINGS", defaults.strong_meetings)),
        )


DEFAULT_POLICY = StrengthPolicy()


def days_since(moment: datetime | None, now: datetime | None = None) -> float | None:
    """Whole days elapsed since `moment`. Naive datetimes are read as UTC."""
    if moment is None:
        return None
    now = now or datetime.now(UTC)
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=UTC)
    if now.tzinfo is None:
        now = now.replace(tzinfo=UTC)
    return (now - moment).total_seconds() // 86400


def classify_strength(
    last_seen_at: datetime | None,
    meetings_count: int,
    policy: StrengthPolicy = DEFAULT_POLICY,
    now: datetime | None = None,
) -> Strength:
    """Classify a single contact as strong, medium or weak."""
    if meetings_count <= 1:
        return "weak"

    elapsed = days_since(last_seen_at, now)
    if elapsed is None:
        return "weak"

    if elapsed <= policy.strong_days and meetings_count >= policy.strong_meetings:
        return "strong"
    if elapsed <= policy.medium_days:
        return "medium"
    return "weak"


def strength_rank(strength: BestStrength | None) -> int:
    """Rank for ascending sort: strong(0) < medium(1) < weak(2) < none(3)."""
    return STRENGTH_RANK.get(strength or "none", 3)
