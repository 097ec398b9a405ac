"""
warmreach enrichment normalization - one place that turns raw enrichment
strings into comparable values.

Enrichment arrives as free text ("$1.2M", "Series A", "12000000"). Both the
filter evaluator and any display layer go through these functions.
"""

import re
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Literal

FundingCategory = Literal["no-funding", "pre-seed", "series-a", "series-b", "raw"]

# Inclusive bounds; None means open-ended
EMPLOYEE_RANGES: dict[str, tuple[int, int | None]] = {
    "1-10": (1, 10),
    "11-50": (11, 50),
    "51-200": (51, 200),
    "201-1000": (201, 1000),
    "1001-5000": (1001, 5000),
    "5000+": (5001, None),
}

# Lower bound inclusive, upper bound exclusive (USD)
REVENUE_RANGES: dict[str, tuple[float, float | None]] = {
    "0-1m": (0, 1_000_000),
    "1-10m": (1_000_000, 10_000_000),
    "10-50m": (10_000_000, 50_000_000),
    "50-100m": (50_000_000, 100_000_000),
    "100m+": (100_000_000, None),
}

FUNDING_RECENCY_DAYS: dict[str, int] = {
    "6m": 183,
    "1y": 365,
    "2y": 730,
}

_MONEY_SUFFIXES = {"k": 1e3, "m": 1e6, "mm": 1e6, "b": 1e9, "bn": 1e9, "t": 1e12}
_MONEY_WORDS = {"thousand": 1e3, "million": 1e6, "billion": 1e9}
_MONEY_RE = re.compile(r"([0-9][0-9,]*(?:\.[0-9]+)?)\s*([a-z]+)?")

_PRE_SEED_TOKENS = ("pre-seed", "pre seed", "preseed", "seed", "angel")
_SERIES_A_TOKENS = ("series a",)
_LATE_TOKENS = (
    "series b",
    "series c",
    "series d",
    "series e",
    "series f",
    "series g",
    "series h",
    "growth",
    "private equity",
    "ipo",
    "post-ipo",
    "public",
)


@dataclass(frozen=True)
class FundingInfo:
    """Normalized funding state of a company."""

    category: FundingCategory
    raw: str | None = None


def parse_money(value: str | int | float | None) -> float | None:
    """Parse "$1.2M", "12,000,000", "3.5 billion" into a float. None if unparseable."""
    if value is None:
        return None
    if isinstance(value, int | float):
        return float(value)
    text = value.strip().lower().replace("$", "").replace("usd", "").strip()
    if not text:
        return None
    match = _MONEY_RE.search(text)
    if not match:
        return None
    try:
        amount = float(match.group(1).replace(",", ""))
    except ValueError:
        return None
    suffix = match.group(2)
    if suffix:
        if suffix in _MONEY_SUFFIXES:
            amount *= _MONEY_SUFFIXES[suffix]
        elif suffix in _MONEY_WORDS:
            amount *= _MONEY_WORDS[suffix]
    return amount


def categorize_funding(
    last_funding_round: str | None,
    total_funding: str | None = None,
) -> FundingCategory | None:
    """Map raw funding strings to a category.

    Returns None when there is nothing to categorize (no round and no total).
    Unrecognized rounds come back as "raw".
    """
    if last_funding_round and last_funding_round.strip():
        text = last_funding_round.strip().lower().replace("_", " ")
        # "series_b" and "series-b" both arrive from enrichment providers
        text = re.sub(r"series[-\s]+", "series ", text)
        if any(tok in text for tok in _LATE_TOKENS):
            return "series-b"
        if any(tok in text for tok in _SERIES_A_TOKENS):
            return "series-a"
        if any(tok in text for tok in _PRE_SEED_TOKENS):
            return "pre-seed"
        if text in {"none", "no funding", "bootstrapped", "unfunded"}:
            return "no-funding"
        return "raw"

    amount = parse_money(total_funding)
    if amount is not None:
        return "no-funding" if amount == 0 else "raw"
    return None


def funding_info(
    last_funding_round: str | None,
    total_funding: str | None,
    enriched: bool,
) -> FundingInfo | None:
    """Funding state for filtering; None when the company is unknown territory.

    An enriched company with no funding data at all counts as "no-funding".
    An unenriched one has no funding state.
    """
    category = categorize_funding(last_funding_round, total_funding)
    if category is None:
        return FundingInfo(category="no-funding") if enriched else None
    return FundingInfo(category=category, raw=last_funding_round or total_funding)


def in_employee_range(employee_count: int | None, range_key: str) -> bool:
    """Employee count inside a named range. Missing count never matches."""
    if employee_count is None or range_key not in EMPLOYEE_RANGES:
        return False
    low, high = EMPLOYEE_RANGES[range_key]
    return employee_count >= low and (high is None or employee_count <= high)


def in_revenue_range(annual_revenue: str | None, range_key: str) -> bool:
    """Annual revenue inside a named range. Missing or unparseable never matches."""
    amount = parse_money(annual_revenue)
    if amount is None or range_key not in REVENUE_RANGES:
        return False
    low, high = REVENUE_RANGES[range_key]
    return amount >= low and (high is None or amount < high)


def funded_within(
    last_funding_date: datetime | None,
    recency: str,
    now: datetime | None = None,
) -> bool:
    """Last funding date inside the recency window. "any" always matches."""
    if recency == "any":
        return True
    if last_funding_date is None or recency not in FUNDING_RECENCY_DAYS:
        return False
    now = now or datetime.now(UTC)
    if last_funding_date.tzinfo is None:
        last_funding_date = last_funding_date.replace(tzinfo=UTC)
    if now.tzinfo is None:
        now = now.replace(tzinfo=UTC)
    return now - last_funding_date <= timedelta(days=FUNDING_RECENCY_DAYS[recency])


def format_money(value: str | None) -> str:
    """Display form of a raw money string ("$1.2M"); the raw text if unparseable."""
    amount = parse_money(value)
    if amount is None:
        return value or ""
    for divisor, suffix in ((1e9, "B"), (1e6, "M"), (1e3, "K")):
        if amount >= divisor:
            return f"${amount / divisor:.1f}{suffix}".replace(".0", "")
    return f"${amount:.0f}"
