"""Card catalog and default prompt sources.

Content is read once and treated as read-only afterwards. The JSON source
accepts the catalog files the web client ships with:

- cards: ``[{"id": ..., "name": ..., "path": ...}, ...]``
- prompts: ``[{"name": ...}, ...]`` or a plain list of strings
"""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from pathlib import Path
from typing import TYPE_CHECKING

from pydantic import BaseModel, TypeAdapter, ValidationError

from party.logic.models import CardTemplate

if TYPE_CHECKING:
    from collections.abc import Sequence

DEFAULT_DATA_DIR = Path(__file__).resolve().parent.parent / "data"
DEFAULT_CARDS_PATH = DEFAULT_DATA_DIR / "memes.json"
DEFAULT_PROMPTS_PATH = DEFAULT_DATA_DIR / "prompts.json"


class ContentError(ValueError):
    """Content files are missing, malformed, or empty."""


class ContentSource(ABC):
    """Read-only supplier of the card catalog and the default prompts."""

    @abstractmethod
    def cards(self) -> Sequence[CardTemplate]: ...

    @abstractmethod
    def prompts(self) -> Sequence[str]: ...


class StaticContentSource(ContentSource):
    """In-memory content, mainly for tests and embedding."""

    def __init__(self, cards: Sequence[CardTemplate], prompts: Sequence[str]) -> None:
        if not cards:
            raise ContentError("card catalog must not be empty")
        if not prompts:
            raise ContentError("prompt list must not be empty")
        self._cards = tuple(cards)
        self._prompts = tuple(prompts)

    def cards(self) -> Sequence[CardTemplate]:
        return self._cards

    def prompts(self) -> Sequence[str]:
        return self._prompts


class _CardEntry(BaseModel):
    id: str | int
    name: str
    path: str | None = None


class _PromptEntry(BaseModel):
    name: str


_card_entries = TypeAdapter(list[_CardEntry])
_prompt_entries = TypeAdapter(list[_PromptEntry | str])


def _read_json(path: Path) -> object:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise ContentError(f"cannot read content file {path}: {e}") from e


def load_cards(path: Path) -> list[CardTemplate]:
    try:
        entries = _card_entries.validate_python(_read_json(path))
    except ValidationError as e:
        raise ContentError(f"invalid card catalog {path}: {e}") from e
    return [CardTemplate(id=str(entry.id), label=entry.name, image_ref=entry.path) for entry in entries]


def load_prompts(path: Path) -> list[str]:
    try:
        entries = _prompt_entries.validate_python(_read_json(path))
    except ValidationError as e:
        raise ContentError(f"invalid prompt list {path}: {e}") from e
    prompts = [entry if isinstance(entry, str) else entry.name for entry in entries]
    return [prompt.strip() for prompt in prompts if prompt.strip()]


class JsonContentSource(StaticContentSource):
    """Content loaded from JSON files on disk."""

    def __init__(self, cards_path: Path | str, prompts_path: Path | str) -> None:
        self.cards_path = Path(cards_path)
        self.prompts_path = Path(prompts_path)
        super().__init__(load_cards(self.cards_path), load_prompts(self.prompts_path))


def load_content(cards_path: Path | str | None = None, prompts_path: Path | str | None = None) -> JsonContentSource:
    """Load content from the given files, falling back to the bundled catalog."""
    return JsonContentSource(cards_path or DEFAULT_CARDS_PATH, prompts_path or DEFAULT_PROMPTS_PATH)
