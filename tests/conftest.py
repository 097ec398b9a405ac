"""Pytest configuration and fixtures."""

from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from typing import Any

import pytest

from warmreach.models import (
    CompanyData,
    MergedCompany,
    NormalizedContact,
    RawContact,
    ReachCompany,
    ReachContact,
    ReachSources,
)

# Fixed evaluation clock so strength and recency tests are deterministic
NOW = datetime(2025, 6, 15, 12, 0, tzinfo=UTC)


@pytest.fixture
def now() -> datetime:
    """The evaluation clock used across tests."""
    return NOW


@pytest.fixture
def raw_contact() -> Callable[..., RawContact]:
    """Factory for own contacts; `days_ago` sets lastSeenAt relative to NOW."""

    def _make(
        id: str,
        email: str,
        name: str | None = None,
        meetings: int = 5,
        days_ago: int | None = 2,
        **fields: Any,
    ) -> RawContact:
        last_seen = NOW - timedelta(days=days_ago) if days_ago is not None else None
        return RawContact(
            id=id,
            email=email,
            name=name,
            meetings_count=meetings,
            last_seen_at=last_seen,
            **fields,
        )

    return _make


@pytest.fixture
def reach_company() -> Callable[..., ReachCompany]:
    """Factory for a reach listing entry with contacts given as (id, email, title) tuples."""

    def _make(
        domain: str,
        name: str,
        contacts: list[tuple[str, str, str | None]],
        **enrichment: Any,
    ) -> ReachCompany:
        return ReachCompany(
            domain=domain,
            name=name,
            contacts=[
                ReachContact(id=cid, email=email, name=email.split("@")[0].title(), title=title)
                for cid, email, title in contacts
            ],
            **enrichment,
        )

    return _make


@pytest.fixture
def contact() -> Callable[..., NormalizedContact]:
    """Factory for normalized contacts."""

    def _make(email: str, source_kind: str = "mine", **fields: Any) -> NormalizedContact:
        domain = email.rsplit("@", 1)[-1].lower() if "@" in email else "unknown"
        defaults: dict[str, Any] = {
            "id": f"{source_kind}-{email}",
            "name": email.split("@")[0].title(),
            "email": email,
            "company_domain": domain,
            "source_kind": source_kind,
        }
        if source_kind == "mine":
            defaults["strength"] = "weak"
        else:
            defaults["source_id"] = "S1"
        defaults.update(fields)
        return NormalizedContact(**defaults)

    return _make


@pytest.fixture
def company(contact: Callable[..., NormalizedContact]) -> Callable[..., MergedCompany]:
    """Factory for merged companies with `mine`/`shared` counts of generated contacts."""

    def _make(
        name: str,
        domain: str | None = None,
        mine: int = 0,
        shared: int = 0,
        **fields: Any,
    ) -> MergedCompany:
        domain = domain or f"{name.lower().replace(' ', '')}.com"
        strength = fields.pop("strength", "weak")
        my_contacts = fields.pop("my_contacts", None)
        if my_contacts is None:
            my_contacts = [contact(f"me{i}@{domain}", strength=strength) for i in range(mine)]
        shared_contacts = fields.pop("shared_contacts", None)
        if shared_contacts is None:
            shared_contacts = [
                contact(f"them{i}@{domain}", source_kind="space") for i in range(shared)
            ]
        return MergedCompany(
            domain=domain,
            name=name,
            my_contacts=my_contacts,
            shared_contacts=shared_contacts,
            **fields,
        )

    return _make


@pytest.fixture
def acme_data() -> CompanyData:
    """Enrichment for acme.com."""
    return CompanyData(
        name="Acme",
        domain="acme.com",
        industry="Financial Services",
        description="Payments infrastructure for marketplaces",
        employee_count=150,
        founded_year=2018,
        annual_revenue="$12M",
        total_funding="$40M",
        last_funding_round="Series B",
        last_funding_date=NOW - timedelta(days=100),
        city="Berlin",
        country="Germany",
        technologies=["Python", "Kubernetes"],
        enriched_at=NOW - timedelta(days=10),
    )


@pytest.fixture
def sample_sources(
    raw_contact: Callable[..., RawContact],
    reach_company: Callable[..., ReachCompany],
    acme_data: CompanyData,
) -> ReachSources:
    """Own contacts, one space and one connection overlapping at acme.com."""
    return ReachSources(
        my_contacts=[
            raw_contact("c1", "alice@acme.com", name="Alice", company_data=acme_data),
            raw_contact("c2", "carol@globex.io", name="Carol", meetings=1, title="CTO"),
        ],
        spaces={
            "S1": [
                reach_company("acme.com", "Acme", [("s1", "bob@acme.com", "VP Sales")]),
                reach_company(
                    "initech.com",
                    "Initech",
                    [("s2", "dave@initech.com", "Chief Technology Officer")],
                    employee_count=40,
                    country="United States",
                ),
            ]
        },
        connections={
            "C1": [
                reach_company("acme.com", "Acme", [("k1", "ALICE@acme.com", None)]),
            ]
        },
        space_names={"S1": "Founders Circle"},
        connection_names={"C1": "Dana"},
    )
