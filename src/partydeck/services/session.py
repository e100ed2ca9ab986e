from __future__ import annotations

import logging
import random
from threading import RLock
from typing import Callable, Sequence

from partydeck.engine import game
from partydeck.engine.game import GameState
from partydeck.engine.types import ApplicationState, Language, LocalizedCard, Tag
from partydeck.paths import Paths, get_paths

from .cards import CardPool
from .content import CatalogSource, DeckConfig, catalog_source_for
from .storage import GameStateStore, LanguageDataStore, LanguagePreferenceStore, TargetStore
from .telemetry import TelemetryService

logger = logging.getLogger(__name__)

LanguageChangeCallback = Callable[[Language], None]


class GameSession:
    """Single owner of the mutable game state and its card pool.

    Every mutating call is serialized with a lock and persisted explicitly
    once it completes.
    """

    def __init__(
        self,
        pool: CardPool,
        *,
        state_store: GameStateStore | None = None,
        targets: TargetStore | None = None,
        language_store: LanguagePreferenceStore | None = None,
        telemetry: TelemetryService | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self._lock = RLock()
        self.pool = pool
        self._state_store = state_store
        self._targets = targets
        self._language_store = language_store
        self._telemetry = telemetry
        self._rng = rng or random.Random()
        self._on_language_change: LanguageChangeCallback | None = None
        self.state: GameState = game.new_game()
        self.language: Language = language_store.get() if language_store else Language.EN

    @classmethod
    def create(
        cls,
        paths: Paths | None = None,
        config: DeckConfig | None = None,
        *,
        source: CatalogSource | None = None,
    ) -> "GameSession":
        """Wire a session with file-backed stores under the userdata directory."""
        p = paths or get_paths()
        src = source or catalog_source_for(config or DeckConfig(), p)
        userdata = p.userdata_dir
        session = cls(
            CardPool(src, store=LanguageDataStore(userdata / "language_data.json")),
            state_store=GameStateStore(userdata / "game_state.json"),
            targets=TargetStore(userdata / "targets.json"),
            language_store=LanguagePreferenceStore(userdata / "language.json"),
            telemetry=TelemetryService(userdata / "telemetry.jsonl"),
        )
        session.load_saved_state()
        return session

    # -------- Persistence --------
    def _save(self) -> None:
        if self._state_store is None:
            return
        try:
            self._state_store.save(self.state)
        except OSError:
            logger.error("Failed to save game state", exc_info=True)

    def _track(self, event_name: str, payload: dict[str, object] | None = None) -> None:
        if self._telemetry is not None:
            self._telemetry.track(event_name, payload)

    def load_saved_state(self) -> bool:
        with self._lock:
            if self._state_store is None:
                return False
            saved = self._state_store.load()
            if saved is None:
                return False
            logger.debug("Loaded saved game state")
            self.state = saved
            return True

    def reset(self) -> None:
        with self._lock:
            self.state = game.new_game()
            if self._state_store is not None:
                self._state_store.clear()
            if self._targets is not None:
                self._targets.clear()

    # -------- Lobby --------
    def add_player(self, name: str) -> None:
        with self._lock:
            game.add_player(self.state, name)
            self._save()

    def remove_player(self, player_id: int) -> None:
        with self._lock:
            game.remove_player(self.state, player_id)
            self._save()

    def change_game_state(self, new_state: ApplicationState) -> None:
        with self._lock:
            game.change_game_state(self.state, new_state)
            self._save()

    def set_card_amount(self, amount: int) -> None:
        with self._lock:
            self.state.card_amount = max(0, amount)
            self._save()

    def set_tags(self, included: Sequence[Tag], excluded: Sequence[Tag]) -> None:
        with self._lock:
            self.state.included_tags = list(included)
            self.state.excluded_tags = list(excluded)
            self._save()

    def initialize_max_cards(self) -> int:
        """Load the pool for the current filters and record how many cards it offers."""
        with self._lock:
            max_cards = self.pool.load_cards(self.state.included_tags, self.state.excluded_tags)
            if max_cards:
                self.state.max_cards = max_cards
                if self.state.card_amount > max_cards:
                    self.state.card_amount = max_cards
                self._save()
            return max_cards

    # -------- Play --------
    def start_game(self) -> bool:
        """Draw a fresh pool and start playing. False if not enough cards."""
        with self._lock:
            max_cards = self.pool.load_cards(self.state.included_tags, self.state.excluded_tags)
            cards = self.pool.cards_for(self.language)
            if not cards:
                logger.warning("Cannot start game: no cards available")
                return False
            if self.state.card_amount <= 0:
                self.state.card_amount = len(cards)
            if len(cards) < self.state.card_amount:
                logger.warning(
                    "Cannot start game: %d cards requested, %d available",
                    self.state.card_amount,
                    len(cards),
                )
                return False

            self.state.cards = list(cards)
            self.state.max_cards = max_cards
            if self._targets is not None:
                self._targets.clear()
            game.start_game(self.state, self._rng)
            self._save()
            self._track(
                "game-started",
                {"players": len(self.state.players), "cards": self.state.card_amount},
            )
            return True

    def show_next_card(self) -> None:
        with self._lock:
            game.show_next_card(self.state)
            self._save()
            if self.state.state == ApplicationState.ENDING:
                self._track("game-ended", {"cards_shown": self.state.current_card_index})

    def update_cards(self) -> None:
        """Swap the in-game cards for the current language's projection."""
        with self._lock:
            cards = self.pool.cards_for(self.language)
            if cards is None:
                logger.warning("No card data available for language: %s", self.language.value)
                return
            self.state.cards = list(cards)
            self._save()

    def reroll_card(self, card_index: int | None = None) -> bool:
        with self._lock:
            index = self.state.current_card_index if card_index is None else card_index
            replaced = self.pool.load_single_card(
                index, self.state.included_tags, self.state.excluded_tags
            )
            if not replaced:
                return False
            if self._targets is not None:
                self._targets.clear()
            if self.state.cards:
                self.update_cards()
            self._track("card-rerolled", {"index": index})
            return True

    def current_card(self) -> LocalizedCard | None:
        return game.current_card(self.state)

    def target_for_current_card(self) -> str:
        """Target player for the active card, stable across repeated calls."""
        with self._lock:
            index = self.state.current_card_index
            if self._targets is not None:
                stored = self._targets.get(index)
                if stored:
                    return stored
            target = game.get_target(self.state, self._rng)
            if target and self._targets is not None:
                try:
                    self._targets.set(index, target)
                except OSError:
                    logger.error("Failed to save target for card %d", index, exc_info=True)
            return target

    # -------- Language --------
    def on_language_change(self, callback: LanguageChangeCallback | None) -> None:
        """Register the single callback run after the language changes."""
        self._on_language_change = callback

    def change_language(self, language: Language) -> bool:
        with self._lock:
            if language == self.language:
                return False
            self.language = language
            if self._language_store is not None:
                self._language_store.set(language)
            if self.state.cards:
                self.update_cards()
            self._track("language-changed", {"language": language.value})
        if self._on_language_change is not None:
            self._on_language_change(language)
        return True
