"""Tests for the query translator bridge and AI collaborators."""

import pytest

from warmreach.ai import (
    MockKeywordExpander,
    MockQueryParser,
    ParsedFilters,
    ParsedQuery,
    ParseRequest,
    build_parse_prompt,
    get_keyword_expander,
    get_query_parser,
)
from warmreach.hunts import HuntRegistry
from warmreach.models import FilterState
from warmreach.translator import (
    QueryTranslatorBridge,
    apply_parsed_filters,
    clean_keywords,
    expansion_text,
    map_source_filter,
    parse_year,
)


@pytest.fixture
def parsed() -> ParsedQuery:
    """What the parser returns for "CTOs at mid-size fintechs in Germany"."""
    return ParsedQuery(
        filters=ParsedFilters(
            description="fintech",
            employee_ranges=["51-200", "201-1000"],
            country="Germany",
            source_filter="spaces",
            founded_from="2018",
        ),
        semantic_keywords=["CTO", "Chief Technology Officer"],
        explanation="Technical leaders at mid-size German fintechs",
    )


class TestHelpers:
    """Tests for pure bridge helpers."""

    def test_parse_year(self) -> None:
        assert parse_year("2020") == 2020
        assert parse_year("since 2019") == 2019
        assert parse_year(2021) == 2021
        assert parse_year("recent") is None
        assert parse_year(None) is None

    def test_map_source_filter(self) -> None:
        assert map_source_filter("spaces") == "shared"
        assert map_source_filter("mine") == "mine"
        assert map_source_filter(None) == "all"
        assert map_source_filter("everything") == "all"

    def test_clean_keywords(self) -> None:
        assert clean_keywords([" CTO ", "cto", "", "AI"]) == ["cto", "ai"]

    def test_expansion_text(self, parsed: ParsedQuery) -> None:
        assert expansion_text(parsed.filters, ["cto"]) == "fintech cto"
        assert expansion_text(ParsedFilters(), []) == ""

    def test_apply_clears_scope_and_hunt(self, parsed: ParsedQuery) -> None:
        state = FilterState(
            space_id="S1",
            hunt_id="h1",
            employee_ranges=["1-10"],
            exclude_keywords=["agency"],
            technologies=["python"],
        )
        applied = apply_parsed_filters(state, parsed.filters)
        assert applied.space_id is None
        assert applied.hunt_id is None
        assert applied.employee_ranges == ["51-200", "201-1000"]
        assert applied.source_filter == "shared"
        assert applied.founded_from == 2018
        assert applied.exclude_keywords == ["agency"]
        assert applied.technologies == ["python"]
        # Original is untouched
        assert state.space_id == "S1"
        assert state.employee_ranges == ["1-10"]

    def test_build_parse_prompt_includes_hints(self) -> None:
        prompt = build_parse_prompt(
            ParseRequest(
                query="fintech CTOs",
                available_countries=["Germany", "France"],
                available_space_names=["Founders Circle"],
            )
        )
        assert "fintech CTOs" in prompt
        assert "Germany, France" in prompt
        assert "Founders Circle" in prompt


class TestBridge:
    """Tests for QueryTranslatorBridge.submit()."""

    def test_applied_with_expansion(self, parsed: ParsedQuery) -> None:
        expander = MockKeywordExpander(["CTO", "vp engineering", "payments"])
        bridge = QueryTranslatorBridge(MockQueryParser(parsed), expander)

        result = bridge.submit("CTOs at mid-size fintechs in Germany", FilterState(space_id="S1"))

        assert result.status == "applied"
        assert result.state is not None
        assert result.state.ai_keywords == ["cto", "vp engineering", "payments"]
        assert result.state.country == "Germany"
        assert result.state.space_id is None
        assert result.explanation == "Technical leaders at mid-size German fintechs"
        assert expander.texts == ["fintech cto chief technology officer"]
        assert bridge.status == "idle"
        assert bridge.last_status == "applied"

    def test_parser_receives_context(self, parsed: ParsedQuery) -> None:
        parser = MockQueryParser(parsed)
        bridge = QueryTranslatorBridge(parser, MockKeywordExpander(["x"]))
        bridge.submit("fintech", FilterState(), ["Germany"], ["Founders Circle"])
        assert parser.requests[0].available_countries == ["Germany"]
        assert parser.requests[0].available_space_names == ["Founders Circle"]

    def test_empty_expansion_uses_semantic_keywords(self, parsed: ParsedQuery) -> None:
        """An empty expansion is not an error."""
        bridge = QueryTranslatorBridge(MockQueryParser(parsed), MockKeywordExpander([]))
        result = bridge.submit("CTOs", FilterState())
        assert result.status == "applied"
        assert result.errors == []
        assert result.keywords == ["cto", "chief technology officer"]

    def test_expansion_failure_falls_back(self, parsed: ParsedQuery) -> None:
        expander = MockKeywordExpander(error=RuntimeError("service down"))
        bridge = QueryTranslatorBridge(MockQueryParser(parsed), expander)

        result = bridge.submit("CTOs", FilterState(ai_keywords=["stale"]))

        assert result.status == "fallback_applied"
        assert result.state is not None
        assert result.state.ai_keywords == ["cto", "chief technology officer"]
        assert result.state.employee_ranges == ["51-200", "201-1000"]
        assert "service down" in result.errors[0]

    def test_parse_failure_falls_back_to_query_keywords(self) -> None:
        parser = MockQueryParser(error=TimeoutError("timed out"))
        expander = MockKeywordExpander(error=RuntimeError("also down"))
        bridge = QueryTranslatorBridge(parser, expander)
        previous = FilterState(employee_ranges=["1-10"], hunt_id="h1")

        result = bridge.submit("fintech founders", previous)

        assert result.status == "fallback_applied"
        assert result.state is not None
        assert result.state.ai_keywords == ["fintech", "founders"]
        assert result.state.employee_ranges == []
        assert result.state.hunt_id is None
        assert len(result.errors) == 2

    def test_failure_is_logged(self, parsed: ParsedQuery, capsys: pytest.CaptureFixture[str]) -> None:
        from warmreach.logger import ReachLogger

        expander = MockKeywordExpander(error=RuntimeError("service down"))
        bridge = QueryTranslatorBridge(MockQueryParser(parsed), expander, ReachLogger())
        bridge.submit("CTOs", FilterState())
        captured = capsys.readouterr()
        assert "[Warning]" in captured.err
        assert "[Search]" in captured.out

    def test_last_submitted_wins(self, parsed: ParsedQuery) -> None:
        bridge = QueryTranslatorBridge(MockQueryParser(parsed), MockKeywordExpander(["x"]))
        first = bridge.begin()
        second = bridge.begin()

        stale = bridge.submit("old query", FilterState(), token=first)
        fresh = bridge.submit("new query", FilterState(), token=second)

        assert stale.is_stale
        assert stale.state is None
        assert not fresh.is_stale
        assert fresh.state is not None
        assert bridge.is_current(second)
        assert not bridge.is_current(first)

    def test_tokens_increase(self, parsed: ParsedQuery) -> None:
        bridge = QueryTranslatorBridge(MockQueryParser(parsed), MockKeywordExpander())
        a = bridge.submit("one", FilterState())
        b = bridge.submit("two", FilterState())
        assert b.token > a.token
        assert bridge.current_token == b.token

    def test_busy_while_parsing(self, parsed: ParsedQuery) -> None:
        bridge = QueryTranslatorBridge(MockQueryParser(parsed), MockKeywordExpander())
        bridge.begin()
        assert bridge.is_busy

    def test_save_as_hunt(self, parsed: ParsedQuery) -> None:
        bridge = QueryTranslatorBridge(MockQueryParser(parsed), MockKeywordExpander(["cto"]))
        registry = HuntRegistry()
        result = bridge.submit("CTOs", FilterState())
        assert result.state is not None

        hunt = bridge.save_as_hunt("German fintech CTOs", result.state, registry)

        assert hunt.keywords == ["cto"]
        assert hunt.filters is not None
        assert hunt.filters.country == "Germany"
        assert registry.get(hunt.id) == hunt


class TestFactories:
    """Tests for collaborator factories."""

    def test_mock_providers(self) -> None:
        assert isinstance(get_query_parser("mock"), MockQueryParser)
        assert isinstance(get_keyword_expander("mock"), MockKeywordExpander)

    def test_openai_requires_key(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        with pytest.raises(ValueError, match="OPENAI_API_KEY"):
            get_query_parser("openai")

    def test_unknown_provider(self) -> None:
        with pytest.raises(ValueError):
            get_query_parser("nope")  # type: ignore[arg-type]
