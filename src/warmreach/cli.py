"""
warmreach CLI - command line interface.
"""

import sys
from pathlib import Path

import click
from dotenv import load_dotenv

from .enrichment import EMPLOYEE_RANGES, FUNDING_RECENCY_DAYS, REVENUE_RANGES
from .logger import ReachLogger
from .models import MergedCompany, ReachSources

# Load environment variables
load_dotenv()

FUNDING_CHOICES = ["no-funding", "pre-seed", "series-a", "series-b"]


@click.group()
@click.version_option(version="0.1.0", prog_name="warmreach")
def main() -> None:
    """warmreach - who can you reach, and through whom"""
    pass


# =============================================================================
# HELPERS
# =============================================================================


def _load_sources(snapshot: str | None, logger: ReachLogger) -> ReachSources:
    """Fetch from the snapshot file if given, else from the relationship API."""
    from .providers import get_reach_provider

    logger.phase("Fetch", snapshot or "relationship API")
    if snapshot:
        provider = get_reach_provider("snapshot", snapshot=Path(snapshot), logger=logger)
    else:
        provider = get_reach_provider("http", logger=logger)
    sources = provider.fetch()
    for err in sources.errors[:5]:
        logger.warning(err)
    if len(sources.errors) > 5:
        logger.warning(f"... and {len(sources.errors) - 5} more source errors")
    return sources


def _company_line(company: MergedCompany, hunt_titles: dict[str, str]) -> str:
    tags = ""
    if company.matching_hunt_ids:
        tags = " [" + ", ".join(hunt_titles.get(h, h) for h in company.matching_hunt_ids) + "]"
    return (
        f"{company.name[:30]:<30} {company.domain[:25]:<25} {company.source:<7} "
        f"{company.best_strength:<7} {company.my_count:>3}/{company.shared_count:<3}{tags}"
    )


def _print_companies(companies: list[MergedCompany], hunt_titles: dict[str, str]) -> None:
    click.echo(f"{'Company':<30} {'Domain':<25} {'Source':<7} {'Best':<7} Mine/Shared")
    click.echo("-" * 84)
    for company in companies:
        click.echo(_company_line(company, hunt_titles))


def _show_results(view, page: int) -> None:
    """Print the scoped partition, or one page of results."""
    hunt_titles = {h.id: h.title for h in view.hunts.list_hunts()}
    partition = view.scoped_partition()
    if partition is not None:
        click.echo(f"\nNew to you ({len(partition.new_to_you)})\n")
        _print_companies(partition.new_to_you, hunt_titles)
        click.echo(f"\nAlready known ({len(partition.already_known)})\n")
        _print_companies(partition.already_known, hunt_titles)
        return

    result = view.goto_page(page)
    if result.total_items == 0:
        click.echo("\nNo companies match these filters.")
        return
    click.echo(
        f"\nPage {result.page + 1}/{result.total_pages} ({result.total_items} companies)\n"
    )
    _print_companies(result.items, hunt_titles)


def _export(view, output: str, explanation: str = "") -> None:
    from .exporter import export_csv, export_excel, export_json, generate_report

    out_dir = Path(output)
    companies = view.results()
    hunt_titles = {h.id: h.title for h in view.hunts.list_hunts()}
    export_json(companies, out_dir / "companies.json")
    export_csv(companies, out_dir / "companies.csv", hunt_titles)
    export_excel(companies, out_dir / "companies.xlsx", hunt_titles)
    generate_report(
        companies, out_dir / "report.md", view.filters, view.hunts.list_hunts(), explanation
    )
    click.echo(f"\nExported {len(companies)} companies to {out_dir}/")


def _build_view(snapshot: str | None, hunts_dir: str | None, verbose: bool):
    from .hunts import HuntRegistry, HuntStore
    from .view import ReachView

    logger = ReachLogger(verbose=verbose)
    store = HuntStore(Path(hunts_dir) if hunts_dir else None)
    registry = HuntRegistry(store.list_hunts())
    store.attach(registry)
    view = ReachView(_load_sources(snapshot, logger), hunts=registry, logger=logger)
    return view, logger


# =============================================================================
# COMMANDS
# =============================================================================


@main.command()
def check() -> None:
    """Check if required configuration is present."""
    import os

    click.echo("Checking configuration...\n")

    api_url = os.getenv("WARMREACH_API_URL")
    api_token = os.getenv("WARMREACH_API_TOKEN")
    openai_key = os.getenv("OPENAI_API_KEY")

    click.echo("Required:")
    if api_url:
        click.echo(f"  WARMREACH_API_URL:   {api_url}")
    else:
        click.echo("  WARMREACH_API_URL:   NOT SET (required unless --snapshot is used)")

    if openai_key:
        click.echo(f"  OPENAI_API_KEY:      {openai_key[:8]}...{openai_key[-4:]}")
    else:
        click.echo("  OPENAI_API_KEY:      NOT SET (required for 'ask')")

    click.echo("\nOptional:")
    if api_token:
        click.echo(f"  WARMREACH_API_TOKEN: {api_token[:4]}...{api_token[-4:]}")
    else:
        click.echo("  WARMREACH_API_TOKEN: NOT SET (unauthenticated requests)")
    click.echo(f"  WARMREACH_MODEL:     {os.getenv('WARMREACH_MODEL', 'gpt-4o-mini')}")

    if api_url and openai_key:
        click.echo("\nAll required settings are present. Ready to run!")
    else:
        click.echo("\nMissing settings. Add them to .env and try again.")
        sys.exit(1)


@main.command()
@click.option("--snapshot", type=click.Path(exists=True, dir_okay=False), help="Read sources from a JSON snapshot")
@click.option("--query", "-q", default="", help="Free-text search (name, domain, contact name/title)")
@click.option("--source", type=click.Choice(["all", "mine", "shared", "both"]), default="all")
@click.option("--strength", type=click.Choice(["all", "strong", "medium", "weak"]), default="all")
@click.option("--space", default=None, help="Scope to one space id")
@click.option("--connection", default=None, help="Scope to one connection id")
@click.option("--employees", type=click.Choice(list(EMPLOYEE_RANGES)), multiple=True)
@click.option("--revenue", type=click.Choice(list(REVENUE_RANGES)), multiple=True)
@click.option("--funding", type=click.Choice(FUNDING_CHOICES), multiple=True)
@click.option("--funded-within", type=click.Choice(["any", *FUNDING_RECENCY_DAYS]), default="any")
@click.option("--founded-from", type=int, default=None)
@click.option("--founded-to", type=int, default=None)
@click.option("--country", default=None)
@click.option("--city", default=None)
@click.option("--tech", multiple=True, help="Technology keyword (can specify multiple)")
@click.option("--keyword", "-k", multiple=True, help="Keyword; any match keeps a company")
@click.option("--exclude", "-x", multiple=True, help="Exclude companies mentioning this")
@click.option("--hunt", "hunt_id", default=None, help="Filter by a saved hunt id")
@click.option("--highlight", is_flag=True, help="With --hunt: float matches to the top instead of filtering")
@click.option("--sort", "sort_by", type=click.Choice(["relevance", "name", "contacts", "strength"]), default="relevance")
@click.option("--page", type=int, default=1, help="Page number, starting at 1")
@click.option("--output", "-o", type=click.Path(), default=None, help="Export results to this directory")
@click.option("--hunts-dir", type=click.Path(), default=None, help="Hunt directory (default: hunts/)")
@click.option("--verbose", "-v", is_flag=True)
def search(
    snapshot: str | None,
    query: str,
    source: str,
    strength: str,
    space: str | None,
    connection: str | None,
    employees: tuple[str, ...],
    revenue: tuple[str, ...],
    funding: tuple[str, ...],
    funded_within: str,
    founded_from: int | None,
    founded_to: int | None,
    country: str | None,
    city: str | None,
    tech: tuple[str, ...],
    keyword: tuple[str, ...],
    exclude: tuple[str, ...],
    hunt_id: str | None,
    highlight: bool,
    sort_by: str,
    page: int,
    output: str | None,
    hunts_dir: str | None,
    verbose: bool,
) -> None:
    """Search the merged relationship view with explicit filters."""
    try:
        view, logger = _build_view(snapshot, hunts_dir, verbose)
        view.update_filters(
            source_filter=source,
            strength_filter=strength,
            employee_ranges=list(employees),
            revenue_ranges=list(revenue),
            funding_rounds=list(funding),
            funding_recency=funded_within,
            founded_from=founded_from,
            founded_to=founded_to,
            country=country,
            city=city,
            technologies=list(tech),
            ai_keywords=[k.lower() for k in keyword],
            exclude_keywords=list(exclude),
        )
        if space:
            view.select_space(space)
        elif connection:
            view.select_connection(connection)
        if hunt_id:
            view.select_hunt(hunt_id, highlight_only=highlight)
        if query:
            view.submit_search(query)
        view.set_sort(sort_by)

        logger.phase("Filter")
        _show_results(view, page - 1)
        if output:
            _export(view, output)
        logger.finish(len(view.results()), output or "")

    except KeyError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    except ValueError as e:
        click.echo(f"Error: {e}", err=True)
        click.echo("Make sure WARMREACH_API_URL is set in .env or pass --snapshot", err=True)
        sys.exit(1)
    except Exception as e:
        click.echo(f"Search error: {e}", err=True)
        sys.exit(1)


@main.command()
@click.argument("query")
@click.option("--snapshot", type=click.Path(exists=True, dir_okay=False), help="Read sources from a JSON snapshot")
@click.option("--save-hunt", default=None, help="Save the translated search as a hunt with this title")
@click.option("--page", type=int, default=1, help="Page number, starting at 1")
@click.option("--output", "-o", type=click.Path(), default=None, help="Export results to this directory")
@click.option("--hunts-dir", type=click.Path(), default=None, help="Hunt directory (default: hunts/)")
@click.option("--verbose", "-v", is_flag=True)
def ask(
    query: str,
    snapshot: str | None,
    save_hunt: str | None,
    page: int,
    output: str | None,
    hunts_dir: str | None,
    verbose: bool,
) -> None:
    """Search in plain language, e.g. "CTOs at series A fintechs in Germany"."""
    from .ai import get_keyword_expander, get_query_parser
    from .translator import QueryTranslatorBridge

    try:
        bridge = QueryTranslatorBridge(get_query_parser(), get_keyword_expander())
        view, logger = _build_view(snapshot, hunts_dir, verbose)
        bridge.logger = logger

        logger.phase("Translate", query)
        result = bridge.submit(
            query,
            view.filters,
            available_countries=view.available_countries(),
            available_space_names=view.available_space_names(),
        )
        view.apply_translation(result)
        if result.status == "fallback_applied":
            logger.warning("Applied a keyword-only fallback search")

        if save_hunt:
            hunt = view.save_current_as_hunt(save_hunt)
            click.echo(f"Saved hunt: {hunt.title} ({hunt.id})")

        _show_results(view, page - 1)
        if output:
            _export(view, output, result.explanation)
        logger.finish(len(view.results()), output or "")

    except ValueError as e:
        click.echo(f"Error: {e}", err=True)
        click.echo("Make sure OPENAI_API_KEY is set in .env", err=True)
        sys.exit(1)
    except Exception as e:
        click.echo(f"Search error: {e}", err=True)
        sys.exit(1)


# =============================================================================
# HUNTS
# =============================================================================


@main.group()
def hunt() -> None:
    """Manage saved hunts (searches that tag matching companies)."""
    pass


@hunt.command("list")
@click.option("--hunts-dir", type=click.Path(), default=None)
def hunt_list(hunts_dir: str | None) -> None:
    """List all saved hunts."""
    from .hunts import HuntStore

    hunts = HuntStore(Path(hunts_dir) if hunts_dir else None).list_hunts()

    if not hunts:
        click.echo("No hunts found. Create one with: warmreach hunt create")
        return

    click.echo(f"\nSaved Hunts ({len(hunts)})\n")
    click.echo(f"{'Id':<14} {'Active':<7} {'Title'}")
    click.echo("-" * 60)

    for h in hunts:
        click.echo(f"{h.id:<14} {'yes' if h.is_active else 'no':<7} {h.title}")


@hunt.command("show")
@click.argument("hunt_id")
@click.option("--hunts-dir", type=click.Path(), default=None)
def hunt_show(hunt_id: str, hunts_dir: str | None) -> None:
    """Show details of a hunt."""
    from .hunts import HuntStore

    try:
        h = HuntStore(Path(hunts_dir) if hunts_dir else None).load(hunt_id)
    except FileNotFoundError:
        click.echo(f"Hunt not found: {hunt_id}", err=True)
        sys.exit(1)
    except ValueError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    click.echo(f"\nHunt: {h.title}")
    click.echo("-" * 40)
    click.echo(f"Id:        {h.id}")
    click.echo(f"Active:    {'yes' if h.is_active else 'no'}")
    click.echo(f"Created:   {h.created_at.isoformat()}")
    if h.keywords:
        click.echo(f"Keywords:  {', '.join(h.keywords)}")
    if h.filters is not None:
        for name, value in h.filters.model_dump(exclude_defaults=True).items():
            click.echo(f"{name + ':':<18} {value}")


@hunt.command("create")
@click.option("--title", "-t", required=True, help="What you are hunting for")
@click.option("--keyword", "-k", multiple=True, help="Keyword (default: words of the title)")
@click.option("--employees", type=click.Choice(list(EMPLOYEE_RANGES)), multiple=True)
@click.option("--revenue", type=click.Choice(list(REVENUE_RANGES)), multiple=True)
@click.option("--funding", type=click.Choice(FUNDING_CHOICES), multiple=True)
@click.option("--country", default=None)
@click.option("--city", default=None)
@click.option("--hunts-dir", type=click.Path(), default=None)
def hunt_create(
    title: str,
    keyword: tuple[str, ...],
    employees: tuple[str, ...],
    revenue: tuple[str, ...],
    funding: tuple[str, ...],
    country: str | None,
    city: str | None,
    hunts_dir: str | None,
) -> None:
    """Create a new hunt."""
    from .hunts import HuntStore, create_hunt
    from .models import HuntFilters

    try:
        filters = HuntFilters(
            employee_ranges=list(employees),
            revenue_ranges=list(revenue),
            funding_rounds=list(funding),
            country=country,
            city=city,
        )
        h = create_hunt(title, keywords=list(keyword) or None, filters=filters)
    except ValueError as e:
        click.echo(f"Invalid hunt: {e}", err=True)
        sys.exit(1)

    if not h.keywords and h.filters is None:
        click.echo("A hunt needs at least one keyword or filter", err=True)
        sys.exit(1)

    path = HuntStore(Path(hunts_dir) if hunts_dir else None).save(h)
    click.echo(f"Created hunt: {h.id}")
    click.echo(f"  Saved to: {path}")


@hunt.command("delete")
@click.argument("hunt_id")
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation")
@click.option("--hunts-dir", type=click.Path(), default=None)
def hunt_delete(hunt_id: str, yes: bool, hunts_dir: str | None) -> None:
    """Delete a hunt."""
    from .hunts import HuntStore

    store = HuntStore(Path(hunts_dir) if hunts_dir else None)
    try:
        h = store.load(hunt_id)
    except FileNotFoundError:
        click.echo(f"Hunt not found: {hunt_id}", err=True)
        sys.exit(1)
    except ValueError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    if not yes:
        click.confirm(f"Delete hunt '{h.title}'?", abort=True)

    if store.delete(hunt_id):
        click.echo(f"Deleted: {hunt_id}")
    else:
        click.echo(f"Failed to delete: {hunt_id}", err=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
