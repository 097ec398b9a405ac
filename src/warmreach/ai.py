"""
warmreach AI collaborators - natural language to structured filters.

Two black boxes sit behind small interfaces:
- QueryParser: free text -> structured filters + semantic keywords + explanation
- KeywordExpander: text -> expanded keyword list (synonyms, related titles)
Both have an OpenAI implementation (structured outputs) and a mock for tests.
Neither retries; the translator bridge owns failure handling.
"""

import os
from abc import ABC, abstractmethod
from typing import Literal, TypeVar

from openai import OpenAI
from pydantic import BaseModel, ConfigDict, Field

from .models import EmployeeRange, FundingRound, RevenueRange, StrengthFilter

# =============================================================================
# SCHEMAS
# =============================================================================


class ParsedFilters(BaseModel):
    """Structured filters the parser understood from the query."""

    model_config = ConfigDict(extra="forbid")

    description: str | None = Field(
        default=None, description='Business type or industry keyword, e.g. "fintech"'
    )
    employee_ranges: list[EmployeeRange] = Field(default_factory=list)
    country: str | None = Field(default=None, description='Full country name, e.g. "Germany"')
    city: str | None = None
    funding_rounds: list[FundingRound] = Field(
        default_factory=list, description='"series-b" includes Series B and later'
    )
    founded_from: str | None = Field(default=None, description='Minimum founding year, e.g. "2020"')
    founded_to: str | None = Field(default=None, description='Maximum founding year, e.g. "2024"')
    revenue_ranges: list[RevenueRange] = Field(default_factory=list)
    source_filter: Literal["all", "mine", "spaces", "shared", "both"] | None = None
    strength_filter: StrengthFilter | None = None


class ParseRequest(BaseModel):
    """Input to the query parser."""

    model_config = ConfigDict(extra="forbid")

    query: str = Field(..., min_length=1)
    available_countries: list[str] = Field(default_factory=list)
    available_space_names: list[str] = Field(default_factory=list)


class ParsedQuery(BaseModel):
    """Output of the query parser."""

    model_config = ConfigDict(extra="forbid")

    filters: ParsedFilters = Field(default_factory=ParsedFilters)
    semantic_keywords: list[str] = Field(
        default_factory=list, description="Synonyms, related terms and job titles"
    )
    explanation: str = Field(default="", description="One-sentence summary for display")


class ExpansionResult(BaseModel):
    """Output of the keyword expander."""

    model_config = ConfigDict(extra="forbid")

    keywords: list[str] = Field(default_factory=list)


PARSE_SYSTEM_PROMPT = """You turn search queries for a professional networking tool into structured filters.
Users search the companies and people reachable through their own contacts, their groups (spaces) and their direct connections.

RULES:
1. Fill only the filter fields the query clearly asks for. Leave everything else empty.
2. Job titles, roles, company types and other concepts without a structured field go into semantic_keywords,
   expanded with synonyms and related terms.
   - "CTO" -> ["cto", "chief technology officer", "vp engineering", "technical co-founder"]
   - "fintech" -> ["fintech", "financial technology", "payments", "banking"]
3. Casual size language: "startup" -> 1-10 or 11-50, "mid-size" -> 51-200 or 201-1000, "enterprise" -> 1001-5000 or 5000+.
4. Use full country names ("United States", not "US").
5. "recent" or "new" companies -> founded_from a recent year such as "2020".
6. "my network" / "my contacts" -> source_filter "mine"; "from spaces" / "shared" -> "spaces".
7. explanation is one short natural sentence describing what you understood.
"""

PARSE_USER_PROMPT = """{context}Search query: "{query}"
"""

EXPAND_SYSTEM_PROMPT = """You expand search text into keywords for substring matching against
company names, descriptions, industries, locations, contact names and job titles.
Return lower-case keywords: the original terms, close synonyms, common abbreviations and related job titles.
Keep it to at most 25 short keywords. Do not return sentences.
"""

ResponseT = TypeVar("ResponseT", bound=BaseModel)


def build_parse_prompt(request: ParseRequest) -> str:
    """User message for the parser, with the data's available values as hints."""
    hints = []
    if request.available_countries:
        hints.append(
            f"Available countries in the data: {', '.join(request.available_countries[:30])}"
        )
    if request.available_space_names:
        hints.append(f"Available spaces (groups): {', '.join(request.available_space_names)}")
    context = f"Context:\n{chr(10).join(hints)}\n\n" if hints else ""
    return PARSE_USER_PROMPT.format(context=context, query=request.query)


# =============================================================================
# INTERFACES
# =============================================================================


class QueryParser(ABC):
    """Natural-language query parsing collaborator."""

    @abstractmethod
    def parse(self, request: ParseRequest) -> ParsedQuery:
        """Parse a query. May raise on any service failure."""
        pass


class KeywordExpander(ABC):
    """Keyword expansion collaborator."""

    @abstractmethod
    def expand(self, text: str) -> ExpansionResult:
        """Expand text into keywords. May raise; an empty list means no expansion."""
        pass


# =============================================================================
# OPENAI
# =============================================================================


class _OpenAIClient:
    """Shared OpenAI setup for both collaborators."""

    DEFAULT_MODEL = "gpt-4o-mini"

    def __init__(self, api_key: str | None = None, model: str | None = None):
        self.api_key = api_key or os.getenv("OPENAI_API_KEY")
        if not self.api_key:
            raise ValueError("OPENAI_API_KEY not set")
        self.client = OpenAI(api_key=self.api_key)
        # Model can be set via env var WARMREACH_MODEL
        self.model = model or os.getenv("WARMREACH_MODEL", self.DEFAULT_MODEL)

    def _call_model(
        self, system_prompt: str, user_prompt: str, response_format: type[ResponseT]
    ) -> ResponseT:
        """Call the model with structured output. Returns parsed result or raises."""
        completion = self.client.chat.completions.parse(
            model=self.model,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            response_format=response_format,
            temperature=0.1,
        )
        parsed = completion.choices[0].message.parsed
        if parsed is None:
            raise ValueError("Empty response from model")
        return parsed


class OpenAIQueryParser(_OpenAIClient, QueryParser):
    """Query parser backed by OpenAI structured outputs."""

    def parse(self, request: ParseRequest) -> ParsedQuery:
        return self._call_model(PARSE_SYSTEM_PROMPT, build_parse_prompt(request), ParsedQuery)


class OpenAIKeywordExpander(_OpenAIClient, KeywordExpander):
    """Keyword expander backed by OpenAI structured outputs."""

    def expand(self, text: str) -> ExpansionResult:
        return self._call_model(EXPAND_SYSTEM_PROMPT, f"Text: {text}", ExpansionResult)


# =============================================================================
# MOCKS
# =============================================================================


class MockQueryParser(QueryParser):
    """Mock parser for testing - returns a fixed result or raises a fixed error."""

    def __init__(self, result: ParsedQuery | None = None, error: Exception | None = None):
        self.result = result or ParsedQuery()
        self.error = error
        self.requests: list[ParseRequest] = []

    def parse(self, request: ParseRequest) -> ParsedQuery:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return self.result


class MockKeywordExpander(KeywordExpander):
    """Mock expander for testing - returns fixed keywords or raises a fixed error."""

    def __init__(self, keywords: list[str] | None = None, error: Exception | None = None):
        self.keywords = keywords or []
        self.error = error
        self.texts: list[str] = []

    def expand(self, text: str) -> ExpansionResult:
        self.texts.append(text)
        if self.error is not None:
            raise self.error
        return ExpansionResult(keywords=list(self.keywords))


def get_query_parser(provider: Literal["openai", "mock"] = "openai") -> QueryParser:
    """Factory to get the configured query parser."""
    if provider == "openai":
        return OpenAIQueryParser()
    elif provider == "mock":
        return MockQueryParser()
    else:
        raise ValueError(f"Unknown AI provider: {provider}")


def get_keyword_expander(provider: Literal["openai", "mock"] = "openai") -> KeywordExpander:
    """Factory to get the configured keyword expander."""
    if provider == "openai":
        return OpenAIKeywordExpander()
    elif provider == "mock":
        return MockKeywordExpander()
    else:
        raise ValueError(f"Unknown AI provider: {provider}")
