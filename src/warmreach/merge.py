"""
warmreach company merger - fold normalized contacts into one aggregate per domain.

Rules:
- Dedupe is by email (case-insensitive), never by id: the same person has a
  different synthetic id in every source
- Own contacts are folded first so they win over shared copies
- Provenance ids are recorded even when the contact itself is a duplicate
- Enrichment is first-write-wins, field by field; once a company carries an
  enrichment timestamp no later source touches it
"""

from .models import UNKNOWN_DOMAIN, CompanyData, MergedCompany, NormalizedContact

ENRICHMENT_FIELDS = (
    "industry",
    "description",
    "employee_count",
    "founded_year",
    "annual_revenue",
    "total_funding",
    "last_funding_round",
    "last_funding_date",
    "city",
    "country",
    "linkedin_url",
    "logo",
    "enriched_at",
)


class _EmailIndex:
    """email -> owning bucket, per company."""

    def __init__(self) -> None:
        self._by_domain: dict[str, dict[str, str]] = {}

    def owner(self, domain: str, email_key: str) -> str | None:
        return self._by_domain.get(domain, {}).get(email_key)

    def add(self, domain: str, email_key: str, bucket: str) -> None:
        self._by_domain.setdefault(domain, {})[email_key] = bucket


def _company_name(contact: NormalizedContact) -> str:
    if contact.company_name:
        return contact.company_name
    if contact.company_data and contact.company_data.name:
        return contact.company_data.name
    if contact.company_domain == UNKNOWN_DOMAIN:
        return "Unknown"
    return contact.company_domain


def apply_enrichment(company: MergedCompany, data: CompanyData | None) -> None:
    """Fill missing enrichment fields from `data`; never overwrite."""
    if data is None or company.enriched_at is not None:
        return
    for field in ENRICHMENT_FIELDS:
        if getattr(company, field) is None:
            value = getattr(data, field)
            if value is not None:
                setattr(company, field, value)
    if not company.technologies and data.technologies:
        company.technologies = list(data.technologies)


def _record_provenance(company: MergedCompany, contact: NormalizedContact) -> None:
    if contact.source_kind == "space" and contact.source_id:
        company.space_ids.add(contact.source_id)
    elif contact.source_kind == "connection" and contact.source_id:
        company.connection_ids.add(contact.source_id)


def merge_contacts(contacts: list[NormalizedContact]) -> dict[str, MergedCompany]:
    """Merge normalized contacts into a domain -> MergedCompany mapping."""
    by_domain: dict[str, MergedCompany] = {}
    index = _EmailIndex()

    # Stable: own contacts first, source order otherwise preserved
    ordered = sorted(contacts, key=lambda c: c.source_kind != "mine")

    for contact in ordered:
        domain = contact.company_domain or UNKNOWN_DOMAIN
        company = by_domain.get(domain)
        if company is None:
            company = MergedCompany(domain=domain, name=_company_name(contact))
            by_domain[domain] = company

        _record_provenance(company, contact)

        key = contact.email_key
        if key and index.owner(domain, key) is not None:
            continue

        if contact.source_kind == "mine":
            company.my_contacts.append(contact)
            bucket = "mine"
        else:
            company.shared_contacts.append(contact)
            bucket = "shared"
        if key:
            index.add(domain, key, bucket)

        apply_enrichment(company, contact.company_data)

    return by_domain


def merge_stats(companies: dict[str, MergedCompany]) -> dict[str, int]:
    """Summary counts for logging."""
    return {
        "companies": len(companies),
        "mine": sum(1 for c in companies.values() if c.source == "mine"),
        "shared": sum(1 for c in companies.values() if c.source == "shared"),
        "both": sum(1 for c in companies.values() if c.source == "both"),
        "contacts": sum(c.total_count for c in companies.values()),
    }
