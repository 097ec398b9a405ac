"""
warmreach console logging - what the engine is doing, one line at a time.

Answers three questions:
1. Which phase is running (fetch, merge, filter, search)?
2. How much data went in and came out?
3. Did a collaborator fail and fall back?
"""

import sys
from datetime import UTC, datetime

# Force line buffering for immediate output (important on Windows/PowerShell)
try:
    sys.stdout.reconfigure(line_buffering=True)  # type: ignore
except (AttributeError, ValueError):
    pass  # Non-reconfigurable stream (e.g. captured by a test runner)


def _print(*args: object, **kwargs: object) -> None:
    """Print with immediate flush."""
    print(*args, **kwargs, flush=True)


def _eprint(*args: object, **kwargs: object) -> None:
    """Print to stderr with immediate flush."""
    print(*args, **kwargs, file=sys.stderr, flush=True)


class ReachLogger:
    """
    Structured progress logger for aggregation and search passes.

    The library never prints on its own; callers hand one of these to the
    view or the translator bridge when they want output.
    """

    def __init__(self, verbose: bool = False):
        self.verbose = verbose
        self.start_time = datetime.now(UTC)
        self.phase_times: dict[str, datetime] = {}

    def phase(self, name: str, detail: str = "") -> None:
        """Log a major phase transition."""
        now = datetime.now(UTC)
        self.phase_times[name] = now
        elapsed = (now - self.start_time).total_seconds()

        if detail:
            _print(f"[Phase] {name}: {detail} ({elapsed:.1f}s)")
        else:
            _print(f"[Phase] {name} ({elapsed:.1f}s)")

    def fetched(self, source: str, count: int) -> None:
        """Log one fetched source list (verbose only)."""
        if self.verbose:
            _print(f"    [Fetched] {source}: {count} records")

    def merged(self, stats: dict[str, int]) -> None:
        """Log merge results."""
        _print(
            f"  [Merged] {stats.get('contacts', 0)} contacts -> "
            f"{stats.get('companies', 0)} companies "
            f"(both={stats.get('both', 0)}, mine={stats.get('mine', 0)}, "
            f"shared={stats.get('shared', 0)})"
        )

    def filtered(self, before: int, after: int) -> None:
        """Log filter results."""
        _print(f"  [Filtered] {before} -> {after} companies")

    def search(self, query: str, explanation: str = "") -> None:
        """Log an applied natural-language search."""
        truncated = query[:60] + "..." if len(query) > 60 else query
        if explanation:
            _print(f"  [Search] {truncated} -> {explanation}")
        else:
            _print(f"  [Search] {truncated}")

    def keywords(self, keywords: list[str]) -> None:
        """Log the active AI keyword list (verbose only)."""
        if self.verbose:
            _print(f"    [Keywords] {', '.join(keywords) if keywords else '(none)'}")

    def skip(self, reason: str, detail: str) -> None:
        """Log a skipped record with reason (verbose only)."""
        if self.verbose:
            _print(f"    [Skip] {reason}: {detail[:60]}")

    def finish(self, companies: int, output: str = "") -> None:
        """Log pass completion."""
        elapsed = (datetime.now(UTC) - self.start_time).total_seconds()
        _print(f"\n[warmreach] Done in {elapsed:.1f}s")
        _print(f"  Companies: {companies}")
        if output:
            _print(f"  Output: {output}")

    def error(self, msg: str) -> None:
        """Log an error."""
        _eprint(f"[Error] {msg}")

    def warning(self, msg: str) -> None:
        """Log a warning."""
        _eprint(f"[Warning] {msg}")
