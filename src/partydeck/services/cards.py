"""Card selection pipeline.

Fetch -> tag filter -> seeded shuffle -> required-card guarantee -> one
localized list per language. Failures never cross this module's boundary:
they are logged and turned into None, 0 or an empty pool.
"""

from __future__ import annotations

import logging
import random
from typing import Iterable, Mapping, Sequence

from partydeck.engine.seed import seeded_shuffle
from partydeck.engine.types import (
    MAX_CARDS,
    CatalogCard,
    Language,
    LanguageData,
    LocalizedCard,
    Tag,
)

from .content import CatalogSource
from .storage import LanguageDataStore

logger = logging.getLogger(__name__)

LanguagePool = dict[Language, LanguageData]


def filter_cards(
    cards: Iterable[CatalogCard], included: Sequence[Tag], excluded: Sequence[Tag]
) -> list[CatalogCard]:
    """Keep cards with an included tag, then drop cards with an excluded tag.

    `Tag.UNTAGGED` in either list matches cards that have no tags at all.
    Exclusion wins over inclusion.
    """
    include_untagged = Tag.UNTAGGED in included
    exclude_untagged = Tag.UNTAGGED in excluded
    kept: list[CatalogCard] = []
    for card in cards:
        if not (card.has_any(included) or (include_untagged and not card.tags)):
            continue
        if card.has_any(excluded) or (exclude_untagged and not card.tags):
            continue
        kept.append(card)
    return kept


def _fetch_and_filter(
    source: CatalogSource, included: Sequence[Tag], excluded: Sequence[Tag], seed: float
) -> list[CatalogCard]:
    try:
        catalog = source.fetch()
    except Exception:
        logger.error("Failed to fetch cards", exc_info=True)
        return []
    return list(seeded_shuffle(filter_cards(catalog.cards, included, excluded), seed))


def select_cards(cards: Sequence[CatalogCard], card_amount: int) -> list[CatalogCard]:
    """All required cards first, then non-required ones up to `card_amount`.

    Required cards are never cut, even if there are more of them than
    `card_amount`.
    """
    required = [c for c in cards if c.required]
    optional = [c for c in cards if not c.required]
    return required + optional[: max(0, card_amount - len(required))]


def create_cards(
    source: CatalogSource,
    card_amount: int,
    included: Sequence[Tag],
    excluded: Sequence[Tag],
    *,
    rng: random.Random | None = None,
) -> LanguagePool | None:
    """Build one shuffled card list per language, or None on failure.

    One seed is drawn per call and shared by every language, so position i
    refers to the same catalog card in every list. Each list holds at most
    `card_amount` cards, taken from the front of the selection.
    """
    try:
        seed = (rng or random.Random()).random()
        shuffled = _fetch_and_filter(source, included, excluded, seed)
        selection = select_cards(shuffled, card_amount)
        logger.debug(
            "Selected %d cards (%d required) with seed %r",
            len(selection),
            sum(1 for c in selection if c.required),
            seed,
        )
        return {
            lang: LanguageData(
                cards=[LocalizedCard.from_catalog(c, lang) for c in selection[:card_amount]],
                language=lang,
            )
            for lang in Language
        }
    except Exception:
        logger.error("Failed to create cards", exc_info=True)
        return None


def min_card_count(pool: Mapping[Language, LanguageData]) -> int:
    if not pool:
        return 0
    return min(len(ld.cards) for ld in pool.values())


class CardPool:
    """Per-language card lists for the current session."""

    def __init__(
        self,
        source: CatalogSource,
        *,
        store: LanguageDataStore | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self._source = source
        self._store = store
        self._rng = rng or random.Random()
        self.data: LanguagePool | None = store.load() if store is not None else None

    def _set(self, data: LanguagePool) -> None:
        self.data = data
        if self._store is not None:
            self._store.save(data)

    def load_cards(self, included: Sequence[Tag], excluded: Sequence[Tag]) -> int:
        """Replace the pool with every card passing the filters.

        Returns the card count of the scarcest language, or 0 on failure.
        """
        try:
            data = create_cards(self._source, MAX_CARDS, included, excluded, rng=self._rng)
            if data is None:
                return 0
            self._set(data)
            return min_card_count(data)
        except Exception:
            logger.error("Failed to load cards", exc_info=True)
            return 0

    def load_single_card(
        self, card_index: int, included: Sequence[Tag], excluded: Sequence[Tag]
    ) -> bool:
        """Reroll the card at `card_index` in every language.

        Returns True when at least one language was updated.
        """
        try:
            if not self.data:
                return False
            fresh = create_cards(self._source, 1, included, excluded, rng=self._rng)
            if fresh is None:
                return False

            replaced = False
            for lang in Language:
                current = self.data.get(lang)
                new_cards = fresh[lang].cards
                if current is None or not new_cards:
                    continue
                if 0 <= card_index < len(current.cards):
                    current.cards[card_index] = new_cards[0]
                    replaced = True
                current.language = lang
            if replaced:
                self._set(self.data)
            return replaced
        except Exception:
            logger.error("Failed to load a single card", exc_info=True)
            return False

    def cards_for(self, language: Language) -> list[LocalizedCard] | None:
        if not self.data or language not in self.data:
            return None
        return self.data[language].cards
