"""Tests for raw data providers."""

import json
from pathlib import Path
from typing import Any

import httpx
import pytest
from tenacity import wait_none

from warmreach.logger import ReachLogger
from warmreach.providers import (
    HttpReachProvider,
    MockReachProvider,
    RateLimitError,
    SnapshotReachProvider,
    get_reach_provider,
    parse_contacts,
    parse_reach,
)

ACME_REACH = {
    "companies": [
        {
            "domain": "acme.com",
            "name": "Acme",
            "employeeCount": 150,
            "contacts": [{"id": "s1", "name": "Bob", "email": "bob@acme.com", "userName": "Dana"}],
        }
    ]
}


def _routes(overrides: dict[str, Any] | None = None) -> dict[str, Any]:
    routes: dict[str, Any] = {
        "/api/relationships/contacts": {
            "data": [
                {
                    "id": "c1",
                    "name": "Alice",
                    "email": "alice@acme.com",
                    "company": {"id": "co1", "name": "Acme", "domain": "acme.com"},
                    "meetings": [{}, {}, {}],
                    "lastSeenAt": "2025-06-14T09:00:00Z",
                }
            ],
            "pagination": {"page": 1, "limit": 200, "total": 1, "totalPages": 1, "hasMore": False},
        },
        "/api/spaces": [{"id": "S1", "name": "Founders Circle"}],
        "/api/spaces/S1/reach": ACME_REACH,
        "/api/connections": [
            {"id": "C1", "status": "accepted", "peer": {"name": "Dana"}},
            {"id": "C2", "status": "pending", "peer": {"name": "Eve"}},
        ],
        "/api/connections/C1/reach": ACME_REACH,
    }
    routes.update(overrides or {})
    return routes


def _provider(routes: dict[str, Any], seen: list[httpx.Request] | None = None) -> HttpReachProvider:
    def handler(request: httpx.Request) -> httpx.Response:
        if seen is not None:
            seen.append(request)
        body = routes.get(request.url.path)
        if body is None:
            return httpx.Response(404, json={"error": "not found"})
        if isinstance(body, httpx.Response):
            return body
        return httpx.Response(200, json=body)

    return HttpReachProvider(
        base_url="https://reach.example.com",
        token="secret",
        transport=httpx.MockTransport(handler),
    )


class TestRecordParsing:
    """Tests for parse_contacts() and parse_reach()."""

    def test_nested_company_lifted(self) -> None:
        errors: list[str] = []
        contacts = parse_contacts(
            [{"id": "c1", "email": "a@acme.com", "company": {"name": "Acme", "domain": "acme.com"}}],
            errors,
        )
        assert contacts[0].company_name == "Acme"
        assert contacts[0].company_domain == "acme.com"
        assert errors == []

    def test_invalid_records_skipped_and_recorded(self) -> None:
        errors: list[str] = []
        contacts = parse_contacts(
            [{"email": "no-id@acme.com"}, "junk", {"id": "ok", "email": "ok@acme.com"}], errors
        )
        assert [c.id for c in contacts] == ["ok"]
        assert len(errors) == 2

    def test_negative_meetings_rejected(self) -> None:
        errors: list[str] = []
        assert parse_contacts([{"id": "c1", "meetingsCount": -1}], errors) == []
        assert len(errors) == 1

    def test_parse_reach(self) -> None:
        errors: list[str] = []
        companies = parse_reach(ACME_REACH["companies"] + [{"contacts": "nope"}], errors, "space:S1")
        assert len(companies) == 1
        assert companies[0].contacts[0].user_name == "Dana"
        assert errors[0].startswith("space:S1[1]")


class TestHttpReachProvider:
    """Tests for HttpReachProvider with a mock transport."""

    def test_fetch_all_sources(self) -> None:
        seen: list[httpx.Request] = []
        sources = _provider(_routes(), seen).fetch()

        assert [c.email for c in sources.my_contacts] == ["alice@acme.com"]
        assert sources.my_contacts[0].meetings_count == 3
        assert sources.my_contacts[0].company_domain == "acme.com"
        assert list(sources.spaces) == ["S1"]
        assert sources.space_names == {"S1": "Founders Circle"}
        assert list(sources.connections) == ["C1"]
        assert sources.connection_names == {"C1": "Dana"}
        assert sources.errors == []
        assert seen[0].headers["Authorization"] == "Bearer secret"

    def test_pending_connections_skipped(self) -> None:
        seen: list[httpx.Request] = []
        _provider(_routes(), seen).fetch()
        assert "/api/connections/C2/reach" not in [r.url.path for r in seen]

    def test_contacts_paginated(self) -> None:
        pages = {
            "1": {"data": [{"id": "c1", "email": "a@x.com"}], "pagination": {"hasMore": True}},
            "2": {"data": [{"id": "c2", "email": "b@x.com"}], "pagination": {"hasMore": False}},
        }

        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/api/relationships/contacts":
                return httpx.Response(200, json=pages[request.url.params["page"]])
            return httpx.Response(200, json=[])

        provider = HttpReachProvider("https://reach.example.com", transport=httpx.MockTransport(handler))
        sources = provider.fetch()
        assert [c.id for c in sources.my_contacts] == ["c1", "c2"]

    def test_failing_source_degrades_to_empty(self) -> None:
        routes = _routes({"/api/spaces/S1/reach": httpx.Response(500, json={"error": "boom"})})
        sources = _provider(routes).fetch()

        assert sources.spaces == {"S1": []}
        assert len(sources.connections["C1"]) == 1
        assert len(sources.my_contacts) == 1
        assert any(e.startswith("space:S1") for e in sources.errors)

    def test_rate_limit_retried(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(HttpReachProvider._get_with_retry.retry, "wait", wait_none())
        calls = {"n": 0}
        routes = _routes()

        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/api/spaces":
                calls["n"] += 1
                if calls["n"] < 3:
                    return httpx.Response(429)
            return httpx.Response(200, json=routes[request.url.path])

        provider = HttpReachProvider("https://reach.example.com", transport=httpx.MockTransport(handler))
        sources = provider.fetch()
        assert calls["n"] == 3
        assert list(sources.spaces) == ["S1"]

    def test_rate_limit_gives_up(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(HttpReachProvider._get_with_retry.retry, "wait", wait_none())
        provider = HttpReachProvider(
            "https://reach.example.com",
            transport=httpx.MockTransport(lambda request: httpx.Response(429)),
        )
        with pytest.raises(RateLimitError):
            with provider._client() as client:
                provider._get_with_retry(client, "/api/spaces")

    def test_requires_url(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("WARMREACH_API_URL", raising=False)
        with pytest.raises(ValueError, match="WARMREACH_API_URL"):
            HttpReachProvider()


class TestSnapshotReachProvider:
    """Tests for the JSON snapshot provider."""

    def test_reads_snapshot(self, tmp_path: Path) -> None:
        path = tmp_path / "reach.json"
        path.write_text(
            json.dumps(
                {
                    "myContacts": [{"id": "c1", "email": "alice@acme.com", "meetingsCount": 4}],
                    "spaces": [{"id": "S1", "name": "Founders", "companies": ACME_REACH["companies"]}],
                    "connections": [{"id": "C1", "companies": []}, {"name": "no id"}],
                }
            ),
            encoding="utf-8",
        )
        sources = SnapshotReachProvider(path).fetch()

        assert len(sources.my_contacts) == 1
        assert sources.space_names == {"S1": "Founders"}
        assert sources.connections == {"C1": []}
        assert sources.connection_names == {"C1": "C1"}
        assert sources.errors == ["connection without id skipped"]

    def test_rejects_non_object(self, tmp_path: Path) -> None:
        path = tmp_path / "reach.json"
        path.write_text("[]", encoding="utf-8")
        with pytest.raises(ValueError):
            SnapshotReachProvider(path).fetch()


class TestFactory:
    """Tests for get_reach_provider()."""

    def test_snapshot_needs_path(self) -> None:
        with pytest.raises(ValueError):
            get_reach_provider("snapshot")

    def test_mock_returns_copy(self) -> None:
        provider = get_reach_provider("mock")
        assert isinstance(provider, MockReachProvider)
        first = provider.fetch()
        first.errors.append("mutated")
        assert provider.fetch().errors == []

    def test_unknown(self) -> None:
        with pytest.raises(ValueError):
            get_reach_provider("ftp")  # type: ignore[arg-type]


class TestMalformedListings:
    """Listing entries and later pages that go wrong."""

    def test_non_object_entries_recorded(self) -> None:
        routes = _routes(
            {
                "/api/spaces": ["junk", {"id": "S1", "name": "Founders Circle"}],
                "/api/connections": [42, {"id": "C1", "status": "accepted", "peer": {"name": "Dana"}}],
            }
        )
        sources = _provider(routes).fetch()

        assert list(sources.spaces) == ["S1"]
        assert list(sources.connections) == ["C1"]
        assert "space[0]: not an object" in sources.errors
        assert "connection[0]: not an object" in sources.errors

    def test_snapshot_non_object_entries_recorded(self, tmp_path: Path) -> None:
        path = tmp_path / "reach.json"
        path.write_text(
            json.dumps({"spaces": ["junk"], "connections": [None], "myContacts": []}),
            encoding="utf-8",
        )
        sources = SnapshotReachProvider(path).fetch()

        assert sources.spaces == {}
        assert sources.connections == {}
        assert sources.errors == ["space[0]: not an object", "connection[0]: not an object"]

    def test_earlier_contact_pages_kept(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/api/relationships/contacts":
                if request.url.params["page"] == "1":
                    return httpx.Response(
                        200,
                        json={"data": [{"id": "c1", "email": "a@x.com"}], "pagination": {"hasMore": True}},
                    )
                return httpx.Response(500, json={"error": "boom"})
            return httpx.Response(200, json=[])

        provider = HttpReachProvider("https://reach.example.com", transport=httpx.MockTransport(handler))
        sources = provider.fetch()

        assert [c.id for c in sources.my_contacts] == ["c1"]
        assert any(e.startswith("my contacts:") for e in sources.errors)

    def test_skipped_records_logged_when_verbose(
        self, tmp_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        path = tmp_path / "reach.json"
        path.write_text(json.dumps({"myContacts": [{"email": "no-id@x.com"}]}), encoding="utf-8")

        sources = get_reach_provider("snapshot", snapshot=path, logger=ReachLogger(verbose=True)).fetch()

        assert sources.my_contacts == []
        assert "[Skip] invalid record: my contacts[0]" in capsys.readouterr().out
