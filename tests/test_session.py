from __future__ import annotations

import json
import logging
import random

import pytest

from partydeck.engine.game import GameState, Player
from partydeck.engine.types import ApplicationState, Language, LocalizedCard, Tag
from partydeck.paths import Paths, get_paths
from partydeck.services.cards import CardPool
from partydeck.services.content import FileCatalogSource
from partydeck.services.session import GameSession
from partydeck.services.storage import TargetStore


@pytest.fixture
def paths(tmp_path, monkeypatch: pytest.MonkeyPatch) -> Paths:
    monkeypatch.setenv("LANG", "en_US.UTF-8")
    real = get_paths()
    return Paths(
        repo_root=tmp_path,
        data_dir=real.data_dir,
        schema_dir=real.schema_dir,
        userdata_dir=tmp_path / "userdata",
    )


def _session_with_players(paths: Paths, *names: str) -> GameSession:
    session = GameSession.create(paths)
    for name in names:
        session.add_player(name)
    return session


def test_full_game_flow(paths: Paths) -> None:
    session = _session_with_players(paths, "Aino", "Ben", "Cleo")
    session.set_card_amount(5)

    assert session.start_game()
    assert session.state.state == ApplicationState.PLAYING
    assert len(session.state.cards) >= 5

    for _ in range(5):
        session.show_next_card()
    assert session.state.state == ApplicationState.ENDING

    lines = (paths.userdata_dir / "telemetry.jsonl").read_text(encoding="utf-8").splitlines()
    events = [json.loads(line)["event"] for line in lines]
    assert events == ["game-started", "game-ended"]


def test_state_survives_restart(paths: Paths) -> None:
    session = _session_with_players(paths, "Aino", "Ben")
    session.set_card_amount(4)
    session.start_game()
    session.show_next_card()

    again = GameSession.create(paths)
    assert [p.name for p in again.state.players] == [p.name for p in session.state.players]
    assert again.state.current_card_index == 1
    assert again.state.state == ApplicationState.PLAYING


def test_start_refused_without_enough_cards(paths: Paths) -> None:
    session = _session_with_players(paths, "Aino", "Ben")
    session.set_card_amount(50)
    assert not session.start_game()
    assert session.state.state == ApplicationState.START


def test_initialize_max_cards_respects_filters(paths: Paths) -> None:
    session = GameSession.create(paths)
    session.set_tags([Tag.CLASSIC], [Tag.KNOWLEDGE])
    assert session.initialize_max_cards() == 3
    assert session.state.max_cards == 3


def test_reset_clears_everything(paths: Paths) -> None:
    session = _session_with_players(paths, "Aino")
    session.reset()
    assert session.state.players == []
    assert session.state.state == ApplicationState.START
    assert not (paths.userdata_dir / "game_state.json").exists()
    assert GameSession.create(paths).state.players == []


def test_language_change_runs_callback_once(paths: Paths) -> None:
    session = _session_with_players(paths, "Aino", "Ben")
    session.set_card_amount(3)
    session.start_game()
    seen: list[Language] = []
    session.on_language_change(seen.append)

    assert session.change_language(Language.FI)
    assert not session.change_language(Language.FI)

    assert seen == [Language.FI]
    fi_cards = session.pool.cards_for(Language.FI)
    assert fi_cards is not None
    assert [c.title for c in session.state.cards] == [c.title for c in fi_cards]
    assert GameSession.create(paths).language == Language.FI


def test_reroll_updates_game_cards(paths: Paths) -> None:
    session = _session_with_players(paths, "Aino", "Ben")
    session.set_card_amount(6)
    session.start_game()

    assert session.reroll_card(2)
    pool_cards = session.pool.cards_for(session.language)
    assert pool_cards is not None
    assert session.state.cards[2].id == pool_cards[2].id


def _target_session(tmp_path, card: LocalizedCard) -> GameSession:
    pool = CardPool(FileCatalogSource(get_paths().cards_path))
    session = GameSession(pool, targets=TargetStore(tmp_path / "targets.json"), rng=random.Random(8))
    session.state = GameState(
        state=ApplicationState.PLAYING,
        cards=[card],
        card_amount=1,
        players=[Player(id=i, name=n) for i, n in enumerate(["Aino", "Ben", "Cleo", "Dan"], start=1)],
    )
    return session


def test_target_is_stable_across_calls(tmp_path) -> None:
    card = LocalizedCard(id=3, title="The Jury", description="-", target_player=True)
    session = _target_session(tmp_path, card)

    first = session.target_for_current_card()
    assert first in {"Ben", "Cleo", "Dan"}
    for _ in range(5):
        assert session.target_for_current_card() == first


def test_plain_card_has_no_target(tmp_path) -> None:
    card = LocalizedCard(id=4, title="Push-ups", description="-")
    session = _target_session(tmp_path, card)
    assert session.target_for_current_card() == ""
    assert TargetStore(tmp_path / "targets.json").get(0) is None


class ReadOnlyTargetStore(TargetStore):
    def set(self, index: int, name: str) -> None:
        raise PermissionError("read-only userdata")


def test_target_survives_unwritable_store(tmp_path, caplog: pytest.LogCaptureFixture) -> None:
    card = LocalizedCard(id=3, title="The Jury", description="-", target_player=True)
    session = _target_session(tmp_path, card)
    session._targets = ReadOnlyTargetStore(tmp_path / "targets.json")

    with caplog.at_level(logging.ERROR):
        target = session.target_for_current_card()

    assert target in {"Ben", "Cleo", "Dan"}
    assert "Failed to save target" in caplog.text
    assert not (tmp_path / "targets.json").exists()
