"""
warmreach hunts - saved searches that tag matching companies.

Hunts live in memory in a HuntRegistry, which emits created/deleted events
for whoever persists them. HuntStore is one such persister: YAML files in
`hunts/` that define:
- title: What the user is hunting for
- keywords: Lower-cased tokens matched against company text
- filters: Structural snapshot (employee ranges, funding, location, ...)
"""

import os
import re
import uuid
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Literal

import yaml

from .models import FilterState, Hunt, HuntFilters

_TOKEN_RE = re.compile(r"[a-z0-9][a-z0-9+#.\-]*[a-z0-9+#]|[a-z0-9]")


def keywords_from_text(text: str) -> list[str]:
    """Lower-cased tokens longer than 2 characters, de-duplicated in order."""
    seen: set[str] = set()
    keywords = []
    for token in _TOKEN_RE.findall(text.lower()):
        if len(token) > 2 and token not in seen:
            seen.add(token)
            keywords.append(token)
    return keywords


def normalize_keywords(keywords: list[str]) -> list[str]:
    """Lower-case, strip, drop short/duplicate entries. Multi-word phrases are kept."""
    seen: set[str] = set()
    result = []
    for kw in keywords:
        kw = kw.strip().lower()
        if len(kw) > 2 and kw not in seen:
            seen.add(kw)
            result.append(kw)
    return result


def new_hunt_id() -> str:
    return uuid.uuid4().hex[:12]


def create_hunt(
    title: str,
    keywords: list[str] | None = None,
    filters: HuntFilters | None = None,
    hunt_id: str | None = None,
) -> Hunt:
    """Create a hunt. Keywords default to the title's tokens."""
    words = normalize_keywords(keywords) if keywords is not None else keywords_from_text(title)
    if filters is not None and filters.is_empty():
        filters = None
    return Hunt(
        id=hunt_id or new_hunt_id(),
        title=title.strip(),
        keywords=words,
        filters=filters,
    )


def hunt_from_filter_state(title: str, state: FilterState) -> Hunt:
    """Snapshot the current keyword list and structural filters into a new hunt."""
    keywords = list(state.ai_keywords)
    if not keywords and state.search:
        keywords = keywords_from_text(state.search)
    return create_hunt(title, keywords=keywords, filters=state.structural())


# =============================================================================
# IN-MEMORY REGISTRY
# =============================================================================


@dataclass(frozen=True)
class HuntEvent:
    """Emitted whenever the registry changes."""

    kind: Literal["created", "deleted", "updated"]
    hunt: Hunt


HuntListener = Callable[[HuntEvent], None]


class HuntRegistry:
    """The session's hunts, in creation order."""

    def __init__(self, hunts: list[Hunt] | None = None):
        self._hunts: dict[str, Hunt] = {h.id: h for h in hunts or []}
        self._listeners: list[HuntListener] = []

    def subscribe(self, listener: HuntListener) -> None:
        self._listeners.append(listener)

    def _emit(self, event: HuntEvent) -> None:
        for listener in self._listeners:
            listener(event)

    def list_hunts(self) -> list[Hunt]:
        return list(self._hunts.values())

    def get(self, hunt_id: str) -> Hunt | None:
        return self._hunts.get(hunt_id)

    def add(self, hunt: Hunt) -> Hunt:
        self._hunts[hunt.id] = hunt
        self._emit(HuntEvent("created", hunt))
        return hunt

    def create(
        self,
        title: str,
        keywords: list[str] | None = None,
        filters: HuntFilters | None = None,
    ) -> Hunt:
        return self.add(create_hunt(title, keywords, filters))

    def delete(self, hunt_id: str) -> bool:
        hunt = self._hunts.pop(hunt_id, None)
        if hunt is None:
            return False
        self._emit(HuntEvent("deleted", hunt))
        return True

    def toggle(self, hunt_id: str) -> Hunt | None:
        """Flip a hunt's active flag."""
        hunt = self._hunts.get(hunt_id)
        if hunt is None:
            return None
        updated = hunt.model_copy(update={"is_active": not hunt.is_active})
        self._hunts[hunt_id] = updated
        self._emit(HuntEvent("updated", updated))
        return updated

    def __len__(self) -> int:
        return len(self._hunts)


# =============================================================================
# YAML STORE
# =============================================================================


class HuntStore:
    """One YAML file per hunt under a directory."""

    def __init__(self, directory: Path | None = None):
        self.directory = directory or Path(os.getenv("WARMREACH_HUNTS_DIR", "hunts"))

    def _path(self, hunt_id: str) -> Path:
        return self.directory / f"{hunt_id}.yml"

    def list_hunts(self) -> list[Hunt]:
        """All valid hunts on disk, oldest first."""
        if not self.directory.exists():
            return []

        hunts = []
        for path in self.directory.glob("*.yml"):
            try:
                hunts.append(self.load(path.stem))
            except ValueError:
                continue  # Skip invalid hunt files

        return sorted(hunts, key=lambda h: (h.created_at, h.id))

    def load(self, hunt_id: str) -> Hunt:
        """Load a hunt by id.

        Raises:
            FileNotFoundError: If the hunt doesn't exist.
            ValueError: If the file is not a valid hunt.
        """
        path = self._path(hunt_id)
        if not path.exists():
            raise FileNotFoundError(f"Hunt not found: {hunt_id}")

        with open(path, encoding="utf-8") as f:
            try:
                data = yaml.safe_load(f)
            except yaml.YAMLError as e:
                raise ValueError(f"Invalid hunt file: {path}: {e}") from e

        if not isinstance(data, dict):
            raise ValueError(f"Invalid hunt file: {path}")

        # Ensure id matches filename
        data["id"] = hunt_id

        return Hunt(**data)

    def save(self, hunt: Hunt) -> Path:
        """Write a hunt to disk and return its path."""
        self.directory.mkdir(parents=True, exist_ok=True)
        path = self._path(hunt.id)

        data = hunt.model_dump(mode="json", exclude_none=True)

        with open(path, "w", encoding="utf-8") as f:
            yaml.dump(data, f, default_flow_style=False, sort_keys=False, allow_unicode=True)

        return path

    def delete(self, hunt_id: str) -> bool:
        path = self._path(hunt_id)
        if path.exists():
            path.unlink()
            return True
        return False

    def attach(self, registry: HuntRegistry) -> None:
        """Persist registry changes as they happen."""

        def _on_event(event: HuntEvent) -> None:
            if event.kind == "deleted":
                self.delete(event.hunt.id)
            else:
                self.save(event.hunt)

        registry.subscribe(_on_event)
