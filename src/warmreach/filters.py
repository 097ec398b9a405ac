"""
warmreach filter evaluator - decide inclusion and tag hunt matches.

All active dimensions are AND-combined; values inside one multi-value
dimension are OR-combined. Structural filters fail closed: a company
missing the field never matches a positive filter on it. Hunt matching is
advisory tagging and only excludes when a hunt is selected as the filter.
"""

import re
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime

from .enrichment import funded_within, funding_info, in_employee_range, in_revenue_range
from .models import FilterState, Hunt, HuntFilters, MergedCompany


@dataclass
class FilterResult:
    """Outcome of evaluating one company."""

    passed: bool
    matching_hunt_ids: list[str] = field(default_factory=list)


# =============================================================================
# TEXT MATCHING
# =============================================================================


def company_text(company: MergedCompany) -> str:
    """Everything keyword matching looks at, lower-cased."""
    parts = [
        company.name,
        company.domain,
        company.description or "",
        company.industry or "",
        company.city or "",
        company.country or "",
    ]
    for contact in company.all_contacts:
        parts.append(contact.name)
        parts.append(contact.title or "")
    return " ".join(parts).lower()


def matches_search(company: MergedCompany, query: str) -> bool:
    """Case-insensitive substring on name, domain, or any contact's name/title."""
    needle = query.strip().lower()
    if not needle:
        return True
    if needle in company.name.lower() or needle in company.domain.lower():
        return True
    return any(
        needle in contact.name.lower() or needle in (contact.title or "").lower()
        for contact in company.all_contacts
    )


def matches_keywords(company: MergedCompany, keywords: list[str], text: str | None = None) -> bool:
    """True if any keyword occurs in the company's text."""
    haystack = text if text is not None else company_text(company)
    return any(kw.lower() in haystack for kw in keywords if kw.strip())


def is_excluded(company: MergedCompany, excluded: list[str]) -> bool:
    """True if name, description or industry contains an excluded keyword."""
    if not excluded:
        return False
    text = " ".join(
        [company.name, company.description or "", company.industry or ""]
    ).lower()
    return any(kw.lower() in text for kw in excluded if kw.strip())


# =============================================================================
# COARSE FILTERS
# =============================================================================


def passes_source(company: MergedCompany, source_filter: str) -> bool:
    if source_filter == "mine":
        return company.my_count > 0
    if source_filter == "shared":
        return company.shared_count > 0
    if source_filter == "both":
        return company.source == "both"
    return True


def passes_strength(company: MergedCompany, strength_filter: str) -> bool:
    if strength_filter == "all":
        return True
    return any(c.strength == strength_filter for c in company.my_contacts)


def passes_connected_date(company: MergedCompany, years: list[int], months: list[int]) -> bool:
    """At least one own contact first seen in an active year AND an active month."""
    if not years and not months:
        return True
    for contact in company.my_contacts:
        seen = contact.first_seen_at
        if seen is None:
            continue
        if years and seen.year not in years:
            continue
        if months and seen.month not in months:
            continue
        return True
    return False


def passes_scope(company: MergedCompany, space_id: str | None, connection_id: str | None) -> bool:
    if space_id and space_id not in company.space_ids:
        return False
    if connection_id and connection_id not in company.connection_ids:
        return False
    return True


# =============================================================================
# STRUCTURAL FILTERS
# =============================================================================


def _matches_place(field_value: str | None, wanted: str) -> bool:
    """Whole-word, case-insensitive: "Oman" does not match "Romania"."""
    wanted = wanted.strip()
    if not field_value or not wanted:
        return False
    return re.search(rf"(?<!\w){re.escape(wanted)}(?!\w)", field_value, re.IGNORECASE) is not None


def passes_enrichment_filters(
    company: MergedCompany,
    filters: HuntFilters,
    now: datetime | None = None,
) -> bool:
    """Range/set/substring tests against enrichment fields."""
    if filters.employee_ranges and not any(
        in_employee_range(company.employee_count, r) for r in filters.employee_ranges
    ):
        return False

    if filters.revenue_ranges and not any(
        in_revenue_range(company.annual_revenue, r) for r in filters.revenue_ranges
    ):
        return False

    if filters.founded_from is not None or filters.founded_to is not None:
        year = company.founded_year
        if year is None:
            return False
        if filters.founded_from is not None and year < filters.founded_from:
            return False
        if filters.founded_to is not None and year > filters.founded_to:
            return False

    if filters.funding_rounds:
        info = funding_info(
            company.last_funding_round,
            company.total_funding,
            enriched=company.enriched_at is not None,
        )
        if info is None or info.category not in filters.funding_rounds:
            return False

    if filters.funding_recency != "any" and not funded_within(
        company.last_funding_date, filters.funding_recency, now
    ):
        return False

    if filters.country and not _matches_place(company.country, filters.country):
        return False

    if filters.city and not _matches_place(company.city, filters.city):
        return False

    if filters.technologies:
        techs = [t.lower() for t in company.technologies]
        if not any(
            wanted.strip().lower() in tech for wanted in filters.technologies for tech in techs
        ):
            return False

    return True


def matches_structural(
    company: MergedCompany,
    filters: HuntFilters,
    now: datetime | None = None,
) -> bool:
    """Every dimension present in `filters` is satisfied (empty filters never match)."""
    if filters.is_empty():
        return False
    return (
        passes_source(company, filters.source_filter)
        and passes_strength(company, filters.strength_filter)
        and passes_enrichment_filters(company, filters, now)
    )


# =============================================================================
# HUNTS
# =============================================================================


def match_hunt(
    company: MergedCompany,
    hunt: Hunt,
    now: datetime | None = None,
    text: str | None = None,
) -> bool:
    """Keyword match OR saved-structural match."""
    if hunt.keywords and matches_keywords(company, hunt.keywords, text):
        return True
    if hunt.filters is not None and matches_structural(company, hunt.filters, now):
        return True
    return False


def matching_hunts(
    company: MergedCompany,
    hunts: list[Hunt],
    now: datetime | None = None,
) -> list[str]:
    """Ids of the active hunts this company matches, in hunt order."""
    text = company_text(company)
    return [h.id for h in hunts if h.is_active and match_hunt(company, h, now, text)]


# =============================================================================
# EVALUATION
# =============================================================================


def evaluate_company(
    company: MergedCompany,
    state: FilterState,
    hunts: list[Hunt] | None = None,
    now: datetime | None = None,
) -> FilterResult:
    """Apply every active predicate in `state` and tag hunt matches."""
    hunts = hunts or []
    hunt_ids = matching_hunts(company, hunts, now)
    return FilterResult(passed=_passes(company, state, hunts, now), matching_hunt_ids=hunt_ids)


def _passes(
    company: MergedCompany,
    state: FilterState,
    hunts: list[Hunt],
    now: datetime | None,
) -> bool:
    if not passes_source(company, state.source_filter):
        return False
    if not passes_strength(company, state.strength_filter):
        return False
    if not passes_connected_date(company, state.connected_years, state.connected_months):
        return False
    if not passes_scope(company, state.space_id, state.connection_id):
        return False
    if state.search and not matches_search(company, state.search):
        return False
    if state.ai_keywords and not matches_keywords(company, state.ai_keywords):
        return False
    if is_excluded(company, state.exclude_keywords):
        return False
    if not passes_enrichment_filters(company, state.structural(), now):
        return False

    if state.hunt_id and not state.hunt_highlight_only:
        selected = next((h for h in hunts if h.id == state.hunt_id), None)
        if selected is not None and not match_hunt(company, selected, now):
            return False

    return True


def filter_companies(
    companies: Iterable[MergedCompany],
    state: FilterState,
    hunts: list[Hunt] | None = None,
    now: datetime | None = None,
) -> list[MergedCompany]:
    """Companies passing `state`, in input order, tagged with their hunt matches.

    Returns copies; the input companies are left untouched.
    """
    kept: list[MergedCompany] = []
    for company in companies:
        result = evaluate_company(company, state, hunts, now)
        if result.passed:
            kept.append(company.model_copy(update={"matching_hunt_ids": result.matching_hunt_ids}))
    return kept
