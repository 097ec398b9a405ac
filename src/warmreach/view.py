"""
warmreach view controller - owns the FilterState and everything derived from it.

One ReachView per mounted view. Recomputation is a pure function of
(sources, FilterState, hunts, sort order) and is memoized against those
inputs:
- the merge is recomputed only when sources change
- filtering/ranking is recomputed only when its key changes
The page index resets to 0 whenever filters change or the result size does.
"""

import os
from datetime import datetime
from typing import Any

from .filters import filter_companies
from .hunts import HuntRegistry, hunt_from_filter_state
from .logger import ReachLogger
from .merge import merge_contacts, merge_stats
from .models import FilterState, Hunt, HuntFilters, MergedCompany, Page, ReachSources, ScopedPartition, SortBy
from .normalize import normalize_sources
from .ranking import DEFAULT_PAGE_SIZE, clamp_page, paginate, partition_scoped, prioritize_hunt, sort_companies
from .strength import StrengthPolicy
from .translator import TranslationResult


class ReachView:
    """Controller for the merged, filtered and paginated relationship view."""

    def __init__(
        self,
        sources: ReachSources | None = None,
        hunts: HuntRegistry | None = None,
        policy: StrengthPolicy | None = None,
        page_size: int | None = None,
        logger: ReachLogger | None = None,
        now: datetime | None = None,
    ):
        self.hunts = hunts if hunts is not None else HuntRegistry()
        self.policy = policy or StrengthPolicy.from_env()
        self.page_size = (
            page_size if page_size is not None else int(os.getenv("WARMREACH_PAGE_SIZE", DEFAULT_PAGE_SIZE))
        )
        if self.page_size < 1:
            raise ValueError("Page size must be at least 1")
        self.logger = logger
        self.now = now

        self.filters = FilterState()
        self.search_draft = ""
        self.sort_by: SortBy = "relevance"
        self.page_index = 0

        self._sources = ReachSources()
        self._merged: list[MergedCompany] | None = None
        self._merge_generation = 0
        self._results_key: tuple[Any, ...] | None = None
        self._results: list[MergedCompany] = []
        self._last_result_size: int | None = None

        if sources is not None:
            self.set_sources(sources)

    # =========================================================================
    # INPUTS
    # =========================================================================

    @property
    def sources(self) -> ReachSources:
        return self._sources

    def set_sources(self, sources: ReachSources) -> None:
        """Replace the raw data. Invalidates the merge."""
        self._sources = sources
        self._merged = None
        self._merge_generation += 1

    def set_filters(self, state: FilterState) -> None:
        """Replace the whole filter state."""
        if state == self.filters:
            return
        self.filters = state
        self.page_index = 0

    def update_filters(self, **changes: Any) -> FilterState:
        """Change some filter fields; validated like a fresh FilterState."""
        data = self.filters.model_dump()
        data.update(changes)
        self.set_filters(FilterState.model_validate(data))
        return self.filters

    def select_space(self, space_id: str) -> None:
        """Scope to one space. Clears the coarse source/strength filters."""
        self.update_filters(
            space_id=space_id, connection_id=None, source_filter="all", strength_filter="all"
        )

    def select_connection(self, connection_id: str) -> None:
        """Scope to one connection. Clears the coarse source/strength filters."""
        self.update_filters(
            connection_id=connection_id, space_id=None, source_filter="all", strength_filter="all"
        )

    def clear_scope(self) -> None:
        self.update_filters(space_id=None, connection_id=None)

    def type_search(self, text: str) -> None:
        """Update the search draft. Nothing is filtered until submit_search()."""
        self.search_draft = text

    def submit_search(self, text: str | None = None) -> None:
        """Apply the draft (or `text`) as the free-text search."""
        if text is not None:
            self.search_draft = text
        self.update_filters(search=self.search_draft.strip())

    def set_sort(self, sort_by: SortBy) -> None:
        self.sort_by = sort_by

    def apply_translation(self, result: TranslationResult) -> bool:
        """Install a translator result unless it is stale. Returns True if applied."""
        if result.is_stale or result.state is None:
            return False
        self.search_draft = result.query
        self.set_filters(result.state)
        return True

    # =========================================================================
    # HUNTS
    # =========================================================================

    def select_hunt(self, hunt_id: str | None, highlight_only: bool = False) -> None:
        """Use one hunt as the active filter (or just float its matches)."""
        if hunt_id is not None and self.hunts.get(hunt_id) is None:
            raise KeyError(f"Unknown hunt: {hunt_id}")
        self.update_filters(hunt_id=hunt_id, hunt_highlight_only=highlight_only)

    def add_hunt(
        self,
        title: str,
        keywords: list[str] | None = None,
        filters: HuntFilters | None = None,
    ) -> Hunt:
        return self.hunts.create(title, keywords, filters)

    def save_current_as_hunt(self, title: str) -> Hunt:
        """Snapshot the current keywords and structural filters into a hunt."""
        return self.hunts.add(hunt_from_filter_state(title, self.filters))

    def remove_hunt(self, hunt_id: str) -> bool:
        """Delete a hunt; deselects it if it was the active filter."""
        removed = self.hunts.delete(hunt_id)
        if removed and self.filters.hunt_id == hunt_id:
            self.update_filters(hunt_id=None, hunt_highlight_only=False)
        return removed

    # =========================================================================
    # DERIVED
    # =========================================================================

    def merged(self) -> list[MergedCompany]:
        """All merged companies in relevance order (memoized on sources)."""
        if self._merged is None:
            contacts = normalize_sources(self._sources, self.policy, self.now)
            by_domain = merge_contacts(contacts)
            self._merged = sort_companies(by_domain.values(), "relevance")
            if self.logger:
                self.logger.merged(merge_stats(by_domain))
        return self._merged

    def _key(self) -> tuple[Any, ...]:
        hunts_key = tuple(h.model_dump_json() for h in self.hunts.list_hunts())
        return (self._merge_generation, self.filters.model_dump_json(), hunts_key, self.sort_by)

    def results(self) -> list[MergedCompany]:
        """Filtered and ranked companies (memoized on every input)."""
        key = self._key()
        if key != self._results_key:
            merged = self.merged()
            filtered = filter_companies(merged, self.filters, self.hunts.list_hunts(), self.now)
            ranked = sort_companies(filtered, self.sort_by)
            if self.filters.hunt_id:
                ranked = prioritize_hunt(ranked, self.filters.hunt_id)
            self._results = ranked
            self._results_key = key
            if self.logger:
                self.logger.filtered(len(merged), len(ranked))

        if len(self._results) != self._last_result_size:
            self._last_result_size = len(self._results)
            self.page_index = 0
        return self._results

    def page(self) -> Page:
        """The current page of results."""
        results = self.results()
        self.page_index = clamp_page(self.page_index, len(results), self.page_size)
        return paginate(results, self.page_index, self.page_size)

    def goto_page(self, index: int) -> Page:
        results = self.results()
        self.page_index = clamp_page(index, len(results), self.page_size)
        return self.page()

    def next_page(self) -> Page:
        return self.goto_page(self.page_index + 1)

    def prev_page(self) -> Page:
        return self.goto_page(self.page_index - 1)

    def scoped_partition(self) -> ScopedPartition | None:
        """New-to-you / already-known split; None unless scoped to one source."""
        if not self.filters.is_scoped:
            return None
        return partition_scoped(self.results())

    def available_countries(self) -> list[str]:
        """Distinct company countries in the merged data, sorted."""
        return sorted({c.country for c in self.merged() if c.country})

    def available_space_names(self) -> list[str]:
        return sorted(self._sources.space_names.values())

    def reset(self) -> None:
        """Back to the freshly-mounted state: no data, default filters, page 0."""
        self.filters = FilterState()
        self.search_draft = ""
        self.sort_by = "relevance"
        self.page_index = 0
        self.set_sources(ReachSources())
        self._results_key = None
        self._results = []
        self._last_result_size = None
