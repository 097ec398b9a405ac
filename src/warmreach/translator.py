"""
warmreach query translator bridge - free text in, FilterState out.

One submission runs: Idle -> Parsing -> (Applied | FallbackApplied) -> Idle.
Every submission takes a token from a monotonically increasing counter; a
result whose token is no longer the latest is reported as stale and must be
ignored by the caller (last-submitted-wins).

The new FilterState is built in one step from the old one, so a failing
collaborator can never leave it half-updated.
"""

import re
import threading
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from .ai import KeywordExpander, ParsedFilters, ParsedQuery, ParseRequest, QueryParser
from .hunts import HuntRegistry, hunt_from_filter_state, keywords_from_text
from .logger import ReachLogger
from .models import FilterState, Hunt, SourceFilter

BridgeStatus = Literal["idle", "parsing", "applied", "fallback_applied"]
ResultStatus = Literal["applied", "fallback_applied", "stale"]

_YEAR_RE = re.compile(r"\b(1[89]\d\d|2\d\d\d)\b")


class TranslationResult(BaseModel):
    """Outcome of one submission."""

    model_config = ConfigDict(extra="forbid")

    token: int
    query: str
    status: ResultStatus
    state: FilterState | None = Field(default=None, description="None when stale")
    filters: ParsedFilters = Field(default_factory=ParsedFilters)
    explanation: str = ""
    keywords: list[str] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)

    @property
    def is_stale(self) -> bool:
        return self.status == "stale"


# =============================================================================
# PURE HELPERS
# =============================================================================


def parse_year(value: str | int | None) -> int | None:
    """Year out of "2020", "since 2019" or 2021. None if there isn't one."""
    if value is None:
        return None
    if isinstance(value, int):
        return value
    match = _YEAR_RE.search(value)
    return int(match.group(1)) if match else None


def map_source_filter(value: str | None) -> SourceFilter:
    """The parser says "spaces" where the engine says "shared"."""
    if value == "spaces":
        return "shared"
    if value in ("mine", "shared", "both"):
        return value  # type: ignore[return-value]
    return "all"


def clean_keywords(keywords: list[str]) -> list[str]:
    """Lower-case, strip, drop empties and duplicates, keep order."""
    seen: set[str] = set()
    result = []
    for kw in keywords:
        kw = kw.strip().lower()
        if kw and kw not in seen:
            seen.add(kw)
            result.append(kw)
    return result


def expansion_text(filters: ParsedFilters, semantic_keywords: list[str]) -> str:
    """What the keyword expander gets: description plus semantic keywords."""
    parts = [filters.description or "", *semantic_keywords]
    return " ".join(p.strip() for p in parts if p and p.strip())


def apply_parsed_filters(state: FilterState, filters: ParsedFilters) -> FilterState:
    """Copy of `state` with the parser's structural fields applied.

    Clears any selected scope and hunt. Fields outside the parser's
    vocabulary (technologies, funding recency, exclusions, connected
    dates) are carried over unchanged.
    """
    return state.model_copy(
        update={
            "space_id": None,
            "connection_id": None,
            "hunt_id": None,
            "hunt_highlight_only": False,
            "source_filter": map_source_filter(filters.source_filter),
            "strength_filter": filters.strength_filter or "all",
            "employee_ranges": list(filters.employee_ranges),
            "revenue_ranges": list(filters.revenue_ranges),
            "funding_rounds": list(filters.funding_rounds),
            "founded_from": parse_year(filters.founded_from),
            "founded_to": parse_year(filters.founded_to),
            "country": (filters.country or "").strip() or None,
            "city": (filters.city or "").strip() or None,
        }
    )


# =============================================================================
# BRIDGE
# =============================================================================


class QueryTranslatorBridge:
    """Runs the parse -> apply -> expand sequence for natural-language searches."""

    def __init__(
        self,
        parser: QueryParser,
        expander: KeywordExpander,
        logger: ReachLogger | None = None,
    ):
        self.parser = parser
        self.expander = expander
        self.logger = logger
        self._lock = threading.Lock()
        self._token = 0
        self.status: BridgeStatus = "idle"
        self.last_status: BridgeStatus = "idle"

    @property
    def current_token(self) -> int:
        with self._lock:
            return self._token

    @property
    def is_busy(self) -> bool:
        return self.status == "parsing"

    def begin(self) -> int:
        """Start a submission and return its token. Supersedes any in flight."""
        with self._lock:
            self._token += 1
            self.status = "parsing"
            return self._token

    def is_current(self, token: int) -> bool:
        with self._lock:
            return token == self._token

    def _warn(self, msg: str) -> None:
        if self.logger:
            self.logger.warning(msg)

    def submit(
        self,
        query: str,
        state: FilterState,
        available_countries: list[str] | None = None,
        available_space_names: list[str] | None = None,
        token: int | None = None,
    ) -> TranslationResult:
        """Translate `query` into a new FilterState derived from `state`.

        Never raises. Pass a token from begin() when the call runs on a
        worker; otherwise a fresh one is taken.
        """
        if token is None:
            token = self.begin()
        errors: list[str] = []

        parsed = self._parse(query, available_countries, available_space_names, errors)
        if parsed is None:
            parsed = ParsedQuery(semantic_keywords=keywords_from_text(query))

        next_state = apply_parsed_filters(state, parsed.filters)
        semantic = clean_keywords(parsed.semantic_keywords)

        expanded = self._expand(expansion_text(parsed.filters, semantic), errors)
        keywords = expanded if expanded else semantic
        next_state = next_state.model_copy(update={"ai_keywords": keywords, "search": ""})

        status: BridgeStatus = "fallback_applied" if errors else "applied"

        with self._lock:
            if token != self._token:
                return TranslationResult(
                    token=token, query=query, status="stale", errors=errors
                )
            self.last_status = status
            self.status = "idle"

        if self.logger:
            self.logger.search(query, parsed.explanation)
            self.logger.keywords(keywords)

        return TranslationResult(
            token=token,
            query=query,
            status=status,
            state=next_state,
            filters=parsed.filters,
            explanation=parsed.explanation,
            keywords=keywords,
            errors=errors,
        )

    def _parse(
        self,
        query: str,
        available_countries: list[str] | None,
        available_space_names: list[str] | None,
        errors: list[str],
    ) -> ParsedQuery | None:
        if not query.strip():
            return None
        request = ParseRequest(
            query=query,
            available_countries=available_countries or [],
            available_space_names=available_space_names or [],
        )
        try:
            return self.parser.parse(request)
        except Exception as e:
            errors.append(f"Query parsing failed: {e}")
            self._warn(f"Query parsing failed, using query keywords: {e}")
            return None

    def _expand(self, text: str, errors: list[str]) -> list[str]:
        if not text:
            return []
        try:
            return clean_keywords(self.expander.expand(text).keywords)
        except Exception as e:
            errors.append(f"Keyword expansion failed: {e}")
            self._warn(f"Keyword expansion failed, using semantic keywords: {e}")
            return []

    def save_as_hunt(
        self,
        title: str,
        state: FilterState,
        registry: HuntRegistry | None = None,
    ) -> Hunt:
        """Snapshot the state's keywords and structural filters into a hunt."""
        hunt = hunt_from_filter_state(title, state)
        if registry is not None:
            registry.add(hunt)
        return hunt
