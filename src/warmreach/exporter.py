"""
warmreach exporter - CSV/Excel/JSON/markdown views of a ranked result.

JSON is the canonical dump (MergedCompany.model_dump); CSV and Excel share
one flat row schema.
"""

import csv
import json
from datetime import UTC, datetime
from pathlib import Path
from typing import TextIO

from .enrichment import categorize_funding, format_money
from .models import FilterState, Hunt, MergedCompany

# CSV column order (stable schema - derived from MergedCompany)
CSV_COLUMNS = [
    # Company
    "company_name",
    "domain",
    "industry",
    "country",
    "city",
    "employee_count",
    "founded_year",
    "annual_revenue",
    "total_funding",
    "funding_round",
    "funding_category",
    "description",
    # Relationship
    "source",
    "best_strength",
    "my_count",
    "shared_count",
    "total_count",
    "spaces",
    "connections",
    # Best contact
    "contact_name",
    "contact_title",
    "contact_email",
    "contact_via",
    # Hunts
    "matching_hunts",
]


def _best_contact(company: MergedCompany):
    """Strongest own contact, else the first shared one."""
    if company.my_contacts:
        order = {"strong": 0, "medium": 1, "weak": 2}
        return min(company.my_contacts, key=lambda c: order.get(c.strength or "weak", 2))
    if company.shared_contacts:
        return company.shared_contacts[0]
    return None


def company_to_row(company: MergedCompany, hunt_titles: dict[str, str] | None = None) -> dict:
    """Convert a MergedCompany to a flat CSV row dict."""
    hunt_titles = hunt_titles or {}
    contact = _best_contact(company)

    via = ""
    if contact is not None:
        via = "you" if contact.source_kind == "mine" else (contact.owner_name or contact.provenance)

    return {
        # Company
        "company_name": company.name,
        "domain": company.domain,
        "industry": company.industry or "",
        "country": company.country or "",
        "city": company.city or "",
        "employee_count": company.employee_count if company.employee_count is not None else "",
        "founded_year": company.founded_year if company.founded_year is not None else "",
        "annual_revenue": format_money(company.annual_revenue),
        "total_funding": format_money(company.total_funding),
        "funding_round": company.last_funding_round or "",
        "funding_category": categorize_funding(company.last_funding_round, company.total_funding) or "",
        "description": company.description or "",
        # Relationship
        "source": company.source,
        "best_strength": company.best_strength,
        "my_count": company.my_count,
        "shared_count": company.shared_count,
        "total_count": company.total_count,
        "spaces": ";".join(sorted(company.space_ids)),
        "connections": ";".join(sorted(company.connection_ids)),
        # Contact
        "contact_name": contact.name if contact else "",
        "contact_title": (contact.title or "") if contact else "",
        "contact_email": contact.email if contact else "",
        "contact_via": via,
        # Hunts
        "matching_hunts": ";".join(hunt_titles.get(h, h) for h in company.matching_hunt_ids),
    }


def export_csv(
    companies: list[MergedCompany],
    output: Path | TextIO,
    hunt_titles: dict[str, str] | None = None,
) -> int:
    """Export companies to CSV file. Returns number of rows written."""
    rows = [company_to_row(c, hunt_titles) for c in companies]

    if isinstance(output, Path):
        output.parent.mkdir(parents=True, exist_ok=True)
        with open(output, "w", newline="", encoding="utf-8") as f:
            writer = csv.DictWriter(f, fieldnames=CSV_COLUMNS)
            writer.writeheader()
            writer.writerows(rows)
    else:
        writer = csv.DictWriter(output, fieldnames=CSV_COLUMNS)
        writer.writeheader()
        writer.writerows(rows)

    return len(rows)


def export_excel(
    companies: list[MergedCompany],
    output: Path,
    hunt_titles: dict[str, str] | None = None,
) -> int:
    """Export companies to Excel file with auto-fitted column widths."""
    from openpyxl import Workbook
    from openpyxl.styles import Font
    from openpyxl.utils import get_column_letter

    rows = [company_to_row(c, hunt_titles) for c in companies]
    output.parent.mkdir(parents=True, exist_ok=True)

    wb = Workbook()
    ws = wb.active
    ws.title = "Companies"

    ws.append(CSV_COLUMNS)
    for row_data in rows:
        ws.append([row_data.get(col, "") for col in CSV_COLUMNS])

    # Auto-fit column widths, capped so descriptions don't blow up the sheet
    for col_idx, col_name in enumerate(CSV_COLUMNS, 1):
        max_length = len(col_name)
        for row_data in rows:
            max_length = max(max_length, min(len(str(row_data.get(col_name, ""))), 50))
        ws.column_dimensions[get_column_letter(col_idx)].width = max_length + 2

    ws.freeze_panes = "A2"
    for cell in ws[1]:
        cell.font = Font(bold=True)

    wb.save(output)
    return len(rows)


def export_json(companies: list[MergedCompany], output: Path) -> int:
    """Export companies to JSON file (canonical format)."""
    output.parent.mkdir(parents=True, exist_ok=True)
    data = [c.model_dump(mode="json") for c in companies]
    with open(output, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2, default=str)
    return len(data)


def _describe_filters(state: FilterState) -> list[str]:
    lines = []
    if state.source_filter != "all":
        lines.append(f"Source: {state.source_filter}")
    if state.strength_filter != "all":
        lines.append(f"Strength: {state.strength_filter}")
    if state.space_id:
        lines.append(f"Space: {state.space_id}")
    if state.connection_id:
        lines.append(f"Connection: {state.connection_id}")
    if state.search:
        lines.append(f"Search: {state.search}")
    if state.ai_keywords:
        lines.append(f"Keywords: {', '.join(state.ai_keywords)}")
    if state.exclude_keywords:
        lines.append(f"Excluding: {', '.join(state.exclude_keywords)}")
    if state.employee_ranges:
        lines.append(f"Employees: {', '.join(state.employee_ranges)}")
    if state.revenue_ranges:
        lines.append(f"Revenue: {', '.join(state.revenue_ranges)}")
    if state.funding_rounds:
        lines.append(f"Funding: {', '.join(state.funding_rounds)}")
    if state.funding_recency != "any":
        lines.append(f"Funded within: {state.funding_recency}")
    if state.founded_from is not None or state.founded_to is not None:
        lines.append(f"Founded: {state.founded_from or '...'} - {state.founded_to or '...'}")
    if state.country:
        lines.append(f"Country: {state.country}")
    if state.city:
        lines.append(f"City: {state.city}")
    if state.technologies:
        lines.append(f"Technologies: {', '.join(state.technologies)}")
    return lines


def generate_report(
    companies: list[MergedCompany],
    output: Path,
    state: FilterState | None = None,
    hunts: list[Hunt] | None = None,
    explanation: str = "",
) -> None:
    """Generate a markdown summary of a search result."""
    output.parent.mkdir(parents=True, exist_ok=True)
    state = state or FilterState()
    hunts = hunts or []

    by_source: dict[str, int] = {}
    by_strength: dict[str, int] = {}
    by_country: dict[str, int] = {}
    for company in companies:
        by_source[company.source] = by_source.get(company.source, 0) + 1
        by_strength[company.best_strength] = by_strength.get(company.best_strength, 0) + 1
        country = company.country or "Unknown"
        by_country[country] = by_country.get(country, 0) + 1

    filter_lines = _describe_filters(state) or ["(none)"]

    report = f"""# warmreach Search Report

Generated: {datetime.now(UTC).isoformat()}

## Filters
{chr(10).join(f"- {line}" for line in filter_lines)}
"""
    if explanation:
        report += f"\nUnderstood as: {explanation}\n"

    report += f"""
## Summary
| Metric | Count |
|---|---|
| Companies | {len(companies)} |
| Contacts | {sum(c.total_count for c in companies)} |
| Own contacts | {sum(c.my_count for c in companies)} |
| Shared contacts | {sum(c.shared_count for c in companies)} |

## By Source
| Source | Count |
|---|---|
"""
    for source, count in sorted(by_source.items(), key=lambda x: -x[1]):
        report += f"| {source} | {count} |\n"

    report += """
## By Best Strength
| Strength | Count |
|---|---|
"""
    for strength in ("strong", "medium", "weak", "none"):
        if strength in by_strength:
            report += f"| {strength} | {by_strength[strength]} |\n"

    report += """
## By Country
| Country | Count |
|---|---|
"""
    for country, count in sorted(by_country.items(), key=lambda x: -x[1])[:15]:
        report += f"| {country} | {count} |\n"

    if hunts:
        report += """
## Hunts
| Hunt | Active | Matches |
|---|---|---|
"""
        for hunt in hunts:
            matches = sum(1 for c in companies if hunt.id in c.matching_hunt_ids)
            report += f"| {hunt.title} | {'yes' if hunt.is_active else 'no'} | {matches} |\n"

    report += """
## Top Companies
| Company | Domain | Source | Strength | Contacts |
|---|---|---|---|---|
"""
    for company in companies[:20]:
        report += (
            f"| {company.name} | {company.domain} | {company.source} | "
            f"{company.best_strength} | {company.total_count} |\n"
        )

    with open(output, "w", encoding="utf-8") as f:
        f.write(report)
