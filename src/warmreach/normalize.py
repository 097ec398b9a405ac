"""
warmreach source normalizer - three raw shapes in, one contact shape out.

Never raises on a bad record: a contact without a resolvable domain lands in
the `unknown` bucket.
"""

from datetime import datetime
from urllib.parse import urlparse

from .models import (
    UNKNOWN_DOMAIN,
    CompanyData,
    NormalizedContact,
    RawContact,
    ReachCompany,
    ReachSources,
    SourceKind,
)
from .strength import DEFAULT_POLICY, StrengthPolicy, classify_strength


def normalize_domain(url_or_domain: str | None) -> str:
    """Normalize a domain or URL to a bare lower-case host."""
    if not url_or_domain:
        return ""
    if url_or_domain.startswith("http"):
        domain = urlparse(url_or_domain).netloc
    else:
        domain = url_or_domain
    domain = domain.lower().strip()
    if domain.startswith("www."):
        domain = domain[4:]
    return domain.split("/")[0]


def email_domain(email: str | None) -> str:
    """Domain part of an email address, or "" if there is none."""
    if not email or "@" not in email:
        return ""
    return normalize_domain(email.rsplit("@", 1)[1])


def derive_company_domain(company_domain: str | None, email: str | None) -> str:
    """Explicit domain, else the email's domain, else `unknown`."""
    return normalize_domain(company_domain) or email_domain(email) or UNKNOWN_DOMAIN


def _display_name(name: str | None, email: str) -> str:
    if name and name.strip():
        return name.strip()
    if email and "@" in email:
        return email.split("@")[0]
    return email or "Unknown"


def normalize_my_contact(
    raw: RawContact,
    policy: StrengthPolicy = DEFAULT_POLICY,
    now: datetime | None = None,
) -> NormalizedContact:
    """Project one of the user's own contacts; strength is computed here."""
    explicit = raw.company_domain or (raw.company_data.domain if raw.company_data else None)
    company_name = raw.company_name or (raw.company_data.name if raw.company_data else None)
    return NormalizedContact(
        id=raw.id,
        name=_display_name(raw.name, raw.email),
        email=raw.email,
        title=raw.title,
        company_name=company_name,
        company_domain=derive_company_domain(explicit, raw.email),
        last_seen_at=raw.last_seen_at,
        first_seen_at=raw.first_seen_at,
        meetings_count=raw.meetings_count,
        linkedin_url=raw.linkedin_url,
        photo_url=raw.photo_url,
        city=raw.city,
        country=raw.country,
        headline=raw.headline,
        company_data=raw.company_data,
        source_kind="mine",
        strength=classify_strength(raw.last_seen_at, raw.meetings_count, policy, now),
    )


def _company_data_of(company: ReachCompany) -> CompanyData:
    """Strip the contact list off a reach company, keeping its enrichment."""
    return CompanyData.model_validate(company.model_dump(exclude={"contacts"}))


def normalize_reach(
    companies: list[ReachCompany],
    source_kind: SourceKind,
    source_id: str,
) -> list[NormalizedContact]:
    """Flatten a space or connection reach listing into tagged contacts."""
    contacts: list[NormalizedContact] = []
    for company in companies:
        company_data = _company_data_of(company)
        for rc in company.contacts:
            contacts.append(
                NormalizedContact(
                    id=rc.id,
                    name=_display_name(rc.name, rc.email),
                    email=rc.email,
                    title=rc.title,
                    company_name=company.name,
                    company_domain=derive_company_domain(company.domain, rc.email),
                    last_seen_at=rc.last_seen_at,
                    first_seen_at=rc.first_seen_at,
                    meetings_count=rc.meetings_count,
                    linkedin_url=rc.linkedin_url,
                    photo_url=rc.photo_url,
                    city=rc.city,
                    country=rc.country,
                    headline=rc.headline,
                    owner_name=rc.user_name,
                    company_data=company_data,
                    source_kind=source_kind,
                    source_id=source_id,
                )
            )
    return contacts


def normalize_sources(
    sources: ReachSources,
    policy: StrengthPolicy = DEFAULT_POLICY,
    now: datetime | None = None,
) -> list[NormalizedContact]:
    """Normalize every source: own contacts first, then spaces, then connections."""
    contacts = [normalize_my_contact(raw, policy, now) for raw in sources.my_contacts]
    for space_id, companies in sources.spaces.items():
        contacts.extend(normalize_reach(companies, "space", space_id))
    for connection_id, companies in sources.connections.items():
        contacts.extend(normalize_reach(companies, "connection", connection_id))
    return contacts
