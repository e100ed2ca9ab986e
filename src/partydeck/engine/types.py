from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from enum import Enum

MAX_CARDS = 2**53 - 1  # "as many as pass filtering"


class Tag(str, Enum):
    CHOSEN_TARGET = "chosen_target"
    RANDOM_TARGET = "random_target"
    PHYSICAL = "physical"
    CREATIVE = "creative"
    ROLEPLAY = "roleplay"
    VOTING = "voting"
    HUMILIATION = "humiliation"
    KNOWLEDGE = "knowledge"
    EVENT = "event"
    CLASSIC = "classic"
    # Filter sentinel only: matches cards with no tags. Never stored on a card.
    UNTAGGED = "untagged"


class Language(str, Enum):
    FI = "fi"
    EN = "en"


FALLBACK_LANGUAGE = Language.EN


class ApplicationState(str, Enum):
    START = "start"
    LOBBY = "lobby"
    PLAYING = "playing"
    ENDING = "ending"


@dataclass(frozen=True)
class CatalogCard:
    """A raw catalog entry with text for every language."""

    id: int
    title: Mapping[str, str]
    description: Mapping[str, str]
    tags: tuple[Tag, ...] = ()
    required: bool = False

    def has_any(self, tags: Sequence[Tag]) -> bool:
        return any(t in tags for t in self.tags)

    def text_for(self, field_name: str, language: Language) -> str:
        texts: Mapping[str, str] = getattr(self, field_name)
        if language.value in texts:
            return texts[language.value]
        return texts.get(FALLBACK_LANGUAGE.value, "")


@dataclass(frozen=True)
class CardCatalog:
    """Immutable catalog as returned by a catalog source."""

    cards: tuple[CatalogCard, ...]


@dataclass
class LocalizedCard:
    id: int
    title: str
    description: str
    tags: tuple[Tag, ...] = ()
    required: bool = False
    timed_event: bool = False
    target_player: bool = False

    @staticmethod
    def from_catalog(card: CatalogCard, language: Language) -> "LocalizedCard":
        return LocalizedCard(
            id=card.id,
            title=card.text_for("title", language),
            description=card.text_for("description", language),
            tags=tuple(card.tags),
            required=card.required,
            timed_event=Tag.EVENT in card.tags,
            target_player=Tag.RANDOM_TARGET in card.tags,
        )


@dataclass
class LanguageData:
    cards: list[LocalizedCard]
    language: Language
