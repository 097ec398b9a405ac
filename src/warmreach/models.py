"""
warmreach data models - strict Pydantic schemas for relationship aggregation.

Design principles:
- Raw payloads (what a data provider hands us) accept camelCase and ignore
  unknown keys, since they come straight off an API
- Everything the engine produces is extra="forbid"
- MergedCompany derives its counts, source and best strength from its
  contact lists
- Enrichment absence is None, never zero
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, computed_field
from pydantic.alias_generators import to_camel

# =============================================================================
# TYPE LITERALS
# =============================================================================

Strength = Literal["strong", "medium", "weak"]
BestStrength = Literal["strong", "medium", "weak", "none"]

SourceKind = Literal["mine", "space", "connection"]
CompanySource = Literal["mine", "shared", "both"]

SourceFilter = Literal["all", "mine", "shared", "both"]
StrengthFilter = Literal["all", "strong", "medium", "weak"]

SortBy = Literal["relevance", "name", "contacts", "strength"]

EmployeeRange = Literal["1-10", "11-50", "51-200", "201-1000", "1001-5000", "5000+"]
RevenueRange = Literal["0-1m", "1-10m", "10-50m", "50-100m", "100m+"]
FundingRound = Literal["no-funding", "pre-seed", "series-a", "series-b"]
FundingRecency = Literal["any", "6m", "1y", "2y"]

UNKNOWN_DOMAIN = "unknown"

_RAW_CONFIG = ConfigDict(extra="ignore", alias_generator=to_camel, populate_by_name=True)


# =============================================================================
# RAW INPUT (owned by the data provider)
# =============================================================================


class CompanyData(BaseModel):
    """Company enrichment as delivered alongside a contact."""

    model_config = _RAW_CONFIG

    name: str | None = None
    domain: str | None = None
    industry: str | None = None
    description: str | None = None
    employee_count: int | None = None
    founded_year: int | None = None
    annual_revenue: str | None = Field(default=None, description='Raw string, e.g. "$1.2M"')
    total_funding: str | None = Field(default=None, description="Raw string")
    last_funding_round: str | None = Field(default=None, description='e.g. "Series A"')
    last_funding_date: datetime | None = None
    city: str | None = None
    country: str | None = None
    linkedin_url: str | None = None
    logo: str | None = None
    technologies: list[str] = Field(default_factory=list)
    enriched_at: datetime | None = None


class RawContact(BaseModel):
    """One of the user's own contacts, as fetched."""

    model_config = _RAW_CONFIG

    id: str
    name: str | None = None
    email: str = ""
    title: str | None = None
    company_name: str | None = None
    company_domain: str | None = None
    last_seen_at: datetime | None = None
    first_seen_at: datetime | None = None
    meetings_count: int = Field(default=0, ge=0)

    # Enrichment
    linkedin_url: str | None = None
    photo_url: str | None = None
    city: str | None = None
    country: str | None = None
    headline: str | None = None

    company_data: CompanyData | None = None


class ReachContact(BaseModel):
    """A contact inside a space or connection reach listing."""

    model_config = _RAW_CONFIG

    id: str
    name: str | None = None
    email: str = ""
    title: str | None = None
    user_id: str | None = None
    user_name: str | None = None
    linkedin_url: str | None = None
    photo_url: str | None = None
    city: str | None = None
    country: str | None = None
    headline: str | None = None
    meetings_count: int = Field(default=0, ge=0)
    last_seen_at: datetime | None = None
    first_seen_at: datetime | None = None


class ReachCompany(CompanyData):
    """A company in a space/connection reach listing, with its contacts."""

    contacts: list[ReachContact] = Field(default_factory=list)


class ReachSources(BaseModel):
    """Everything one aggregation pass consumes. Any list may be empty."""

    model_config = ConfigDict(extra="forbid")

    my_contacts: list[RawContact] = Field(default_factory=list)
    spaces: dict[str, list[ReachCompany]] = Field(
        default_factory=dict, description="space id -> reach"
    )
    connections: dict[str, list[ReachCompany]] = Field(
        default_factory=dict, description="connection id -> reach"
    )
    space_names: dict[str, str] = Field(default_factory=dict)
    connection_names: dict[str, str] = Field(default_factory=dict)
    errors: list[str] = Field(default_factory=list)


# =============================================================================
# NORMALIZED CONTACT
# =============================================================================


class NormalizedContact(BaseModel):
    """A contact from any source, projected to one shape and tagged with provenance."""

    model_config = ConfigDict(extra="forbid")

    id: str
    name: str
    email: str
    title: str | None = None
    company_name: str | None = None
    company_domain: str = UNKNOWN_DOMAIN

    last_seen_at: datetime | None = None
    first_seen_at: datetime | None = None
    meetings_count: int = Field(default=0, ge=0)

    linkedin_url: str | None = None
    photo_url: str | None = None
    city: str | None = None
    country: str | None = None
    headline: str | None = None
    owner_name: str | None = Field(default=None, description="Who shared it, if shared")

    company_data: CompanyData | None = None

    source_kind: SourceKind = "mine"
    source_id: str | None = None
    strength: Strength | None = Field(default=None, description="Only set for own contacts")

    @property
    def provenance(self) -> str:
        """`mine`, `space:<id>` or `connection:<id>`."""
        if self.source_kind == "mine":
            return "mine"
        return f"{self.source_kind}:{self.source_id}"

    @property
    def email_key(self) -> str:
        return self.email.strip().lower()


# =============================================================================
# MERGED COMPANY
# =============================================================================


class MergedCompany(BaseModel):
    """Per-domain aggregate of every contact reachable at a company."""

    model_config = ConfigDict(extra="forbid")

    domain: str
    name: str

    my_contacts: list[NormalizedContact] = Field(default_factory=list)
    shared_contacts: list[NormalizedContact] = Field(default_factory=list)

    space_ids: set[str] = Field(default_factory=set)
    connection_ids: set[str] = Field(default_factory=set)

    # Enrichment (first write wins)
    industry: str | None = None
    description: str | None = None
    employee_count: int | None = None
    founded_year: int | None = None
    annual_revenue: str | None = None
    total_funding: str | None = None
    last_funding_round: str | None = None
    last_funding_date: datetime | None = None
    city: str | None = None
    country: str | None = None
    linkedin_url: str | None = None
    logo: str | None = None
    technologies: list[str] = Field(default_factory=list)
    enriched_at: datetime | None = None

    # Tagging output of the filter evaluator
    matching_hunt_ids: list[str] = Field(default_factory=list)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def my_count(self) -> int:
        return len(self.my_contacts)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def shared_count(self) -> int:
        return len(self.shared_contacts)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def total_count(self) -> int:
        return self.my_count + self.shared_count

    @computed_field  # type: ignore[prop-decorator]
    @property
    def source(self) -> CompanySource:
        if self.my_count > 0 and self.shared_count > 0:
            return "both"
        if self.my_count > 0:
            return "mine"
        return "shared"

    @computed_field  # type: ignore[prop-decorator]
    @property
    def best_strength(self) -> BestStrength:
        found = {c.strength for c in self.my_contacts}
        for level in ("strong", "medium", "weak"):
            if level in found:
                return level  # type: ignore[return-value]
        return "none"

    @property
    def all_contacts(self) -> list[NormalizedContact]:
        return [*self.my_contacts, *self.shared_contacts]

    def has_enrichment(self) -> bool:
        """True if any enrichment field has been populated."""
        return any(
            value is not None
            for value in (
                self.industry,
                self.description,
                self.employee_count,
                self.founded_year,
                self.annual_revenue,
                self.total_funding,
                self.last_funding_round,
                self.last_funding_date,
                self.city,
                self.country,
                self.enriched_at,
            )
        ) or bool(self.technologies)


# =============================================================================
# HUNTS (saved searches)
# =============================================================================


class HuntFilters(BaseModel):
    """Snapshot of structural filter values saved with a hunt."""

    model_config = ConfigDict(extra="forbid")

    employee_ranges: list[EmployeeRange] = Field(default_factory=list)
    revenue_ranges: list[RevenueRange] = Field(default_factory=list)
    funding_rounds: list[FundingRound] = Field(default_factory=list)
    funding_recency: FundingRecency = "any"
    founded_from: int | None = None
    founded_to: int | None = None
    country: str | None = None
    city: str | None = None
    technologies: list[str] = Field(default_factory=list)
    source_filter: SourceFilter = "all"
    strength_filter: StrengthFilter = "all"

    def is_empty(self) -> bool:
        """True if no structural dimension is set."""
        return not (
            self.employee_ranges
            or self.revenue_ranges
            or self.funding_rounds
            or self.funding_recency != "any"
            or self.founded_from is not None
            or self.founded_to is not None
            or self.country
            or self.city
            or self.technologies
            or self.source_filter != "all"
            or self.strength_filter != "all"
        )


class Hunt(BaseModel):
    """A saved, named search that tags matching companies."""

    model_config = ConfigDict(extra="forbid")

    id: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1)
    keywords: list[str] = Field(default_factory=list, description="Lower-cased, length > 2")
    filters: HuntFilters | None = None
    is_active: bool = True
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


# =============================================================================
# FILTER STATE
# =============================================================================


class FilterState(BaseModel):
    """Every predicate currently applied to the merged view."""

    model_config = ConfigDict(extra="forbid")

    # Coarse filters
    source_filter: SourceFilter = "all"
    strength_filter: StrengthFilter = "all"

    # Scope (one space or one connection)
    space_id: str | None = None
    connection_id: str | None = None

    # Text
    search: str = Field(default="", description="Submitted free-text search")
    ai_keywords: list[str] = Field(default_factory=list)
    exclude_keywords: list[str] = Field(default_factory=list)

    # Structural
    employee_ranges: list[EmployeeRange] = Field(default_factory=list)
    revenue_ranges: list[RevenueRange] = Field(default_factory=list)
    funding_rounds: list[FundingRound] = Field(default_factory=list)
    funding_recency: FundingRecency = "any"
    founded_from: int | None = None
    founded_to: int | None = None
    country: str | None = None
    city: str | None = None
    technologies: list[str] = Field(default_factory=list)

    # Connected-date tags (firstSeenAt of own contacts)
    connected_years: list[int] = Field(default_factory=list)
    connected_months: list[int] = Field(default_factory=list)

    # Hunt selection
    hunt_id: str | None = None
    hunt_highlight_only: bool = Field(
        default=False, description="Sort hunt matches first instead of excluding the rest"
    )

    @property
    def is_scoped(self) -> bool:
        return bool(self.space_id or self.connection_id)

    def structural(self) -> HuntFilters:
        """The structural subset, in the shape hunts store it."""
        return HuntFilters(
            employee_ranges=list(self.employee_ranges),
            revenue_ranges=list(self.revenue_ranges),
            funding_rounds=list(self.funding_rounds),
            funding_recency=self.funding_recency,
            founded_from=self.founded_from,
            founded_to=self.founded_to,
            country=self.country,
            city=self.city,
            technologies=list(self.technologies),
            source_filter=self.source_filter,
            strength_filter=self.strength_filter,
        )


# =============================================================================
# RESULTS
# =============================================================================


class Page(BaseModel):
    """One fixed-size page of ranked companies."""

    model_config = ConfigDict(extra="forbid")

    items: list[MergedCompany] = Field(default_factory=list)
    page: int = Field(default=0, ge=0)
    page_size: int = Field(default=50, ge=1)
    total_items: int = Field(default=0, ge=0)
    total_pages: int = Field(default=1, ge=1)

    @property
    def has_next(self) -> bool:
        return self.page + 1 < self.total_pages

    @property
    def has_prev(self) -> bool:
        return self.page > 0


class ScopedPartition(BaseModel):
    """A space/connection view split by whether the user already knows the company."""

    model_config = ConfigDict(extra="forbid")

    new_to_you: list[MergedCompany] = Field(default_factory=list)
    already_known: list[MergedCompany] = Field(default_factory=list)
