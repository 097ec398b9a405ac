"""
warmreach raw data provider - fetch the three relationship sources.

Sources are fetched independently. A failing space or connection degrades
to an empty list for that source, and an invalid record is skipped; both
are recorded in ReachSources.errors instead of failing the whole pass.
"""

import json
import os
import time
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Literal

import httpx
from pydantic import ValidationError
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from .logger import ReachLogger
from .models import RawContact, ReachCompany, ReachSources


class RateLimitError(Exception):
    """Raised when the API returns 429 Too Many Requests."""

    pass


# =============================================================================
# RECORD PARSING (shared by every provider)
# =============================================================================


def _contact_payload(item: dict[str, Any]) -> dict[str, Any]:
    """Lift the API's nested `company` object into the RawContact shape."""
    payload = dict(item)
    company = payload.get("company")
    if isinstance(company, dict):
        payload.setdefault("companyName", company.get("name"))
        payload.setdefault("companyDomain", company.get("domain"))
        payload.setdefault("companyData", company)
    if "meetingsCount" not in payload and isinstance(payload.get("meetings"), list):
        payload["meetingsCount"] = len(payload["meetings"])
    return payload


def _skip(errors: list[str], message: str, logger: ReachLogger | None) -> None:
    errors.append(message)
    if logger:
        logger.skip("invalid record", message)


def parse_contacts(
    items: list[Any],
    errors: list[str],
    label: str = "my contacts",
    logger: ReachLogger | None = None,
) -> list[RawContact]:
    """Validate own-contact records, skipping and recording invalid ones."""
    contacts = []
    for i, item in enumerate(items):
        if not isinstance(item, dict):
            _skip(errors, f"{label}[{i}]: not an object", logger)
            continue
        try:
            contacts.append(RawContact.model_validate(_contact_payload(item)))
        except ValidationError as e:
            _skip(errors, f"{label}[{i}]: {e.error_count()} validation error(s)", logger)
    return contacts


def parse_reach(
    items: list[Any],
    errors: list[str],
    label: str,
    logger: ReachLogger | None = None,
) -> list[ReachCompany]:
    """Validate reach companies, skipping and recording invalid ones."""
    companies = []
    for i, item in enumerate(items):
        if not isinstance(item, dict):
            _skip(errors, f"{label}[{i}]: not an object", logger)
            continue
        try:
            companies.append(ReachCompany.model_validate(item))
        except ValidationError as e:
            _skip(errors, f"{label}[{i}]: {e.error_count()} validation error(s)", logger)
    return companies


def _entry_id(entry: Any, kind: str, index: int, errors: list[str], logger: ReachLogger | None) -> str:
    """Id of a space/connection listing entry, or "" (recorded) if unusable."""
    if not isinstance(entry, dict):
        _skip(errors, f"{kind}[{index}]: not an object", logger)
        return ""
    entry_id = str(entry.get("id") or "")
    if not entry_id:
        _skip(errors, f"{kind} without id skipped", logger)
    return entry_id


# =============================================================================
# PROVIDERS
# =============================================================================


class ReachProvider(ABC):
    """Abstract raw data provider interface."""

    @abstractmethod
    def fetch(self) -> ReachSources:
        """Fetch own contacts, space reach and connection reach."""
        pass


class HttpReachProvider(ReachProvider):
    """Relationship API provider with retry on rate limits."""

    PAGE_LIMIT = 200

    def __init__(
        self,
        base_url: str | None = None,
        token: str | None = None,
        transport: httpx.BaseTransport | None = None,
        logger: ReachLogger | None = None,
    ):
        self.base_url = (base_url or os.getenv("WARMREACH_API_URL") or "").rstrip("/")
        if not self.base_url:
            raise ValueError("WARMREACH_API_URL not set")
        self.token = token or os.getenv("WARMREACH_API_TOKEN")
        self.transport = transport
        self.logger = logger

    def _client(self) -> httpx.Client:
        headers = {"Accept": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return httpx.Client(
            base_url=self.base_url,
            headers=headers,
            timeout=30,
            transport=self.transport,
        )

    @retry(
        retry=retry_if_exception_type(RateLimitError),
        stop=stop_after_attempt(5),
        wait=wait_exponential(multiplier=2, min=4, max=60),
        reraise=True,
    )
    def _get_with_retry(self, client: httpx.Client, path: str, params: dict[str, Any] | None = None) -> Any:
        """GET a JSON document with retry on rate limit."""
        resp = client.get(path, params=params)

        # Handle rate limiting
        if resp.status_code == 429:
            retry_after = int(resp.headers.get("Retry-After", "0") or 0)
            if self.logger:
                self.logger.warning(f"Rate limited on {path}, retry after {retry_after}s")
            if retry_after:
                time.sleep(retry_after)
            raise RateLimitError(f"Rate limited on {path}")

        resp.raise_for_status()
        return resp.json()

    def _fetch_my_contacts(self, client: httpx.Client, contacts: list[RawContact], errors: list[str]) -> None:
        """Page through own contacts, appending to `contacts` as pages arrive."""
        page = 1
        while True:
            body = self._get_with_retry(
                client,
                "/api/relationships/contacts",
                {"approved": "true", "page": page, "limit": self.PAGE_LIMIT},
            )
            items = body.get("data", []) if isinstance(body, dict) else body
            contacts.extend(parse_contacts(items or [], errors, logger=self.logger))
            pagination = body.get("pagination", {}) if isinstance(body, dict) else {}
            if not pagination.get("hasMore"):
                break
            page += 1

    def _fetch_reach(self, client: httpx.Client, path: str, label: str, errors: list[str]) -> list[ReachCompany]:
        try:
            body = self._get_with_retry(client, path)
        except (httpx.HTTPError, RateLimitError, ValueError) as e:
            errors.append(f"{label}: {e}")
            if self.logger:
                self.logger.warning(f"Could not fetch {label}: {e}")
            return []
        items = body.get("companies", []) if isinstance(body, dict) else []
        return parse_reach(items or [], errors, label, self.logger)

    def _fetch_listing(self, client: httpx.Client, path: str, label: str, errors: list[str]) -> list[Any]:
        try:
            body = self._get_with_retry(client, path)
        except (httpx.HTTPError, RateLimitError, ValueError) as e:
            errors.append(f"{label}: {e}")
            if self.logger:
                self.logger.warning(f"Could not fetch {label}: {e}")
            return []
        return body if isinstance(body, list) else []

    def fetch(self) -> ReachSources:
        sources = ReachSources()
        with self._client() as client:
            # Pages fetched before a failure are kept
            try:
                self._fetch_my_contacts(client, sources.my_contacts, sources.errors)
            except (httpx.HTTPError, RateLimitError, ValueError) as e:
                sources.errors.append(f"my contacts: {e}")
                if self.logger:
                    self.logger.warning(f"Could not fetch all own contacts: {e}")
            if self.logger:
                self.logger.fetched("my contacts", len(sources.my_contacts))

            spaces = self._fetch_listing(client, "/api/spaces", "spaces", sources.errors)
            for i, space in enumerate(spaces):
                space_id = _entry_id(space, "space", i, sources.errors, self.logger)
                if not space_id:
                    continue
                sources.space_names[space_id] = space.get("name") or space_id
                label = f"space:{space_id}"
                sources.spaces[space_id] = self._fetch_reach(
                    client, f"/api/spaces/{space_id}/reach", label, sources.errors
                )
                if self.logger:
                    self.logger.fetched(label, len(sources.spaces[space_id]))

            connections = self._fetch_listing(client, "/api/connections", "connections", sources.errors)
            for i, conn in enumerate(connections):
                conn_id = _entry_id(conn, "connection", i, sources.errors, self.logger)
                if not conn_id or conn.get("status", "accepted") != "accepted":
                    continue
                peer = conn.get("peer") or {}
                sources.connection_names[conn_id] = peer.get("name") or peer.get("email") or conn_id
                label = f"connection:{conn_id}"
                sources.connections[conn_id] = self._fetch_reach(
                    client, f"/api/connections/{conn_id}/reach", label, sources.errors
                )
                if self.logger:
                    self.logger.fetched(label, len(sources.connections[conn_id]))

        return sources


class SnapshotReachProvider(ReachProvider):
    """Reads all three sources from one JSON file.

    Layout:
        {
          "myContacts": [...],
          "spaces": [{"id", "name", "companies": [...]}],
          "connections": [{"id", "name", "companies": [...]}]
        }
    """

    def __init__(self, path: Path, logger: ReachLogger | None = None):
        self.path = path
        self.logger = logger

    def _listing(self, data: dict[str, Any], key: str, errors: list[str]) -> list[Any]:
        value = data.get(key) or []
        if not isinstance(value, list):
            errors.append(f"{key}: not a list")
            return []
        return value

    def fetch(self) -> ReachSources:
        with open(self.path, encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError(f"Invalid snapshot file: {self.path}")

        sources = ReachSources()
        sources.my_contacts = parse_contacts(
            self._listing(data, "myContacts", sources.errors), sources.errors, logger=self.logger
        )

        for i, space in enumerate(self._listing(data, "spaces", sources.errors)):
            space_id = _entry_id(space, "space", i, sources.errors, self.logger)
            if not space_id:
                continue
            label = f"space:{space_id}"
            sources.space_names[space_id] = space.get("name") or space_id
            sources.spaces[space_id] = parse_reach(
                space.get("companies") or [], sources.errors, label, self.logger
            )

        for i, conn in enumerate(self._listing(data, "connections", sources.errors)):
            conn_id = _entry_id(conn, "connection", i, sources.errors, self.logger)
            if not conn_id:
                continue
            label = f"connection:{conn_id}"
            sources.connection_names[conn_id] = conn.get("name") or conn_id
            sources.connections[conn_id] = parse_reach(
                conn.get("companies") or [], sources.errors, label, self.logger
            )

        return sources


class MockReachProvider(ReachProvider):
    """Mock provider for testing - returns predefined sources."""

    def __init__(self, sources: ReachSources | None = None):
        self.sources = sources or ReachSources()

    def fetch(self) -> ReachSources:
        return self.sources.model_copy(deep=True)


def get_reach_provider(
    kind: Literal["http", "snapshot", "mock"],
    snapshot: Path | None = None,
    logger: ReachLogger | None = None,
) -> ReachProvider:
    """Factory to get the configured raw data provider."""
    if kind == "http":
        return HttpReachProvider(logger=logger)
    elif kind == "snapshot":
        if snapshot is None:
            raise ValueError("Snapshot provider needs a file path")
        return SnapshotReachProvider(snapshot, logger)
    elif kind == "mock":
        return MockReachProvider()
    else:
        raise ValueError(f"Unknown reach provider: {kind}")
