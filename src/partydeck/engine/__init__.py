"""Deterministic, headless core of partydeck.

IMPORTANT: This package must never do I/O (files, network, logging setup).
"""

from .game import (
    GameEvent,
    GameState,
    Player,
    add_player,
    change_game_state,
    current_card,
    current_player,
    get_target,
    new_game,
    remove_player,
    show_next_card,
    start_game,
)
from .seed import seeded_random, seeded_shuffle
from .types import (
    MAX_CARDS,
    ApplicationState,
    CardCatalog,
    CatalogCard,
    Language,
    LanguageData,
    LocalizedCard,
    Tag,
)

__all__ = [
    "MAX_CARDS",
    "ApplicationState",
    "CardCatalog",
    "CatalogCard",
    "GameEvent",
    "GameState",
    "Language",
    "LanguageData",
    "LocalizedCard",
    "Player",
    "Tag",
    "add_player",
    "change_game_state",
    "current_card",
    "current_player",
    "get_target",
    "new_game",
    "remove_player",
    "seeded_random",
    "seeded_shuffle",
    "show_next_card",
    "start_game",
]
