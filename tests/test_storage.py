from __future__ import annotations

import logging

import pytest

from partydeck.engine.game import GameEvent, GameState, Player, add_player, show_next_card
from partydeck.engine.serialize import game_state_from_dict, game_state_to_dict
from partydeck.engine.types import ApplicationState, Language, LocalizedCard, Tag
from partydeck.services import storage
from partydeck.services.storage import (
    GameStateStore,
    LanguagePreferenceStore,
    TargetStore,
)


def _playing_state() -> GameState:
    state = GameState(
        state=ApplicationState.PLAYING,
        cards=[
            LocalizedCard(id=1, title="Plain", description="-"),
            LocalizedCard(id=2, title="Whisper", description="-", tags=(Tag.EVENT,), timed_event=True),
            LocalizedCard(id=3, title="Plain", description="-"),
        ],
        card_amount=3,
        max_cards=20,
        excluded_tags=[Tag.HUMILIATION],
    )
    add_player(state, "Aino")
    add_player(state, "Ben")
    show_next_card(state)
    return state


def test_round_trip_relinks_player_events() -> None:
    state = _playing_state()
    assert state.events and state.players[1].event is state.events[0]

    restored = game_state_from_dict(game_state_to_dict(state))

    assert restored == state
    assert restored.players[1].event is restored.events[0]
    assert restored.excluded_tags == [Tag.HUMILIATION]


def test_game_state_store_round_trip(tmp_path) -> None:
    store = GameStateStore(tmp_path / "game_state.json")
    assert store.load() is None

    state = _playing_state()
    store.save(state)
    loaded = store.load()

    assert loaded is not None
    assert loaded.current_card_index == 1
    assert [p.name for p in loaded.players] == ["Aino", "Ben"]
    assert loaded.events == [GameEvent(title="Whisper", person="Ben", starting_index=1)]

    store.clear()
    assert store.load() is None


@pytest.mark.parametrize("content", ["{broken", "[1, 2]", '{"state": "party"}', '{"state": "lobby"}'])
def test_corrupt_state_loads_as_nothing(tmp_path, caplog: pytest.LogCaptureFixture, content: str) -> None:
    path = tmp_path / "game_state.json"
    path.write_text(content, encoding="utf-8")
    with caplog.at_level(logging.WARNING):
        assert GameStateStore(path).load() is None
    assert "Discarding saved game state" in caplog.text


def test_target_store(tmp_path) -> None:
    targets = TargetStore(tmp_path / "targets.json")
    assert targets.get(0) is None

    targets.set(0, "Aino")
    targets.set(3, "Ben")
    assert targets.get(0) == "Aino"
    assert targets.get(3) == "Ben"
    assert targets.get(1) is None

    targets.clear()
    assert targets.get(0) is None


def test_language_preference(tmp_path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LANG", "fi_FI.UTF-8")
    prefs = LanguagePreferenceStore(tmp_path / "language.json")
    assert prefs.get() == Language.FI

    prefs.set(Language.EN)
    assert prefs.get() == Language.EN


def test_unknown_locale_falls_back_to_english(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LANG", "C.UTF-8")
    monkeypatch.setenv("LC_ALL", "")
    monkeypatch.setattr(storage.locale, "getlocale", lambda: (None, None))
    assert storage.detect_language() == Language.EN


def test_players_without_events_round_trip() -> None:
    state = GameState(players=[Player(id=1, name="Solo")])
    restored = game_state_from_dict(game_state_to_dict(state))
    assert restored.players == [Player(id=1, name="Solo", event=None)]
    assert restored.included_tags == list(Tag)
