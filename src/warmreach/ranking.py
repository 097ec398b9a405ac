"""
warmreach ranker & paginator.

Every sort is stable and starts from relevance order, so ties always fall
back to relevance (source priority, then strength, then contact count).
"""

import math
import unicodedata
from collections.abc import Iterable

from .models import MergedCompany, Page, ScopedPartition, SortBy
from .strength import strength_rank

DEFAULT_PAGE_SIZE = 50

SOURCE_PRIORITY: dict[str, int] = {"both": 0, "mine": 1, "shared": 2}


def relevance_key(company: MergedCompany) -> tuple[int, int, int]:
    return (
        SOURCE_PRIORITY[company.source],
        strength_rank(company.best_strength),
        -company.total_count,
    )


def name_key(company: MergedCompany) -> str:
    """Accent- and case-insensitive collation key."""
    decomposed = unicodedata.normalize("NFKD", company.name)
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return stripped.casefold()


def sort_companies(companies: Iterable[MergedCompany], sort_by: SortBy = "relevance") -> list[MergedCompany]:
    """Order companies by the chosen strategy."""
    ordered = sorted(companies, key=relevance_key)
    if sort_by == "name":
        ordered.sort(key=name_key)
    elif sort_by == "contacts":
        ordered.sort(key=lambda c: -c.total_count)
    elif sort_by == "strength":
        ordered.sort(key=lambda c: strength_rank(c.best_strength))
    return ordered


def prioritize_hunt(companies: list[MergedCompany], hunt_id: str | None) -> list[MergedCompany]:
    """Stable-partition companies matching `hunt_id` to the front."""
    if not hunt_id:
        return list(companies)
    matched = [c for c in companies if hunt_id in c.matching_hunt_ids]
    rest = [c for c in companies if hunt_id not in c.matching_hunt_ids]
    return matched + rest


def total_pages(total_items: int, page_size: int = DEFAULT_PAGE_SIZE) -> int:
    return max(1, math.ceil(total_items / page_size))


def clamp_page(page: int, total_items: int, page_size: int = DEFAULT_PAGE_SIZE) -> int:
    return max(0, min(page, total_pages(total_items, page_size) - 1))


def paginate(
    companies: list[MergedCompany],
    page: int = 0,
    page_size: int = DEFAULT_PAGE_SIZE,
) -> Page:
    """Slice one page out of the ranked list. Out-of-range pages are clamped."""
    page = clamp_page(page, len(companies), page_size)
    start = page * page_size
    return Page(
        items=companies[start : start + page_size],
        page=page,
        page_size=page_size,
        total_items=len(companies),
        total_pages=total_pages(len(companies), page_size),
    )


def partition_scoped(companies: list[MergedCompany]) -> ScopedPartition:
    """Split a space/connection view into new-to-you and already-known.

    Already known means you have your own contacts there and the scope adds
    nobody new. Everything else is new to you, so the two lists together
    always cover the whole input. Order within each list follows the input.
    """
    partition = ScopedPartition()
    for company in companies:
        if company.my_count > 0 and company.shared_count == 0:
            partition.already_known.append(company)
        else:
            partition.new_to_you.append(company)
    return partition
