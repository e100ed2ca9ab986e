from __future__ import annotations

from typing import Mapping

from .game import GameEvent, GameState, Player
from .types import ApplicationState, Language, LanguageData, LocalizedCard, Tag


def _require(obj: Mapping[str, object], key: str, kind: type | tuple[type, ...]) -> object:
    v = obj.get(key)
    if not isinstance(v, kind) or (kind is int and isinstance(v, bool)):
        raise ValueError(f"Expected {kind} for {key}")
    return v


def _tags(raw: object) -> list[Tag]:
    if not isinstance(raw, list):
        raise ValueError("tags must be a list")
    out: list[Tag] = []
    for t in raw:
        try:
            out.append(Tag(t))
        except ValueError:
            continue  # unknown tags from older saves are dropped
    return out


def card_to_dict(c: LocalizedCard) -> dict[str, object]:
    return {
        "id": c.id,
        "title": c.title,
        "description": c.description,
        "tags": [t.value for t in c.tags],
        "required": c.required,
        "timed_event": c.timed_event,
        "target_player": c.target_player,
    }


def card_from_dict(d: Mapping[str, object]) -> LocalizedCard:
    return LocalizedCard(
        id=_require(d, "id", int),  # type: ignore[arg-type]
        title=_require(d, "title", str),  # type: ignore[arg-type]
        description=_require(d, "description", str),  # type: ignore[arg-type]
        tags=tuple(_tags(d.get("tags", []))),
        required=bool(d.get("required", False)),
        timed_event=bool(d.get("timed_event", False)),
        target_player=bool(d.get("target_player", False)),
    )


def _event_to_dict(e: GameEvent | None) -> dict[str, object] | None:
    if e is None:
        return None
    return {
        "title": e.title,
        "person": e.person,
        "starting_index": e.starting_index,
        "ended": e.ended,
    }


def _event_from_dict(d: object) -> GameEvent | None:
    if d is None:
        return None
    if not isinstance(d, dict):
        raise ValueError("event must be an object")
    return GameEvent(
        title=_require(d, "title", str),  # type: ignore[arg-type]
        person=_require(d, "person", str),  # type: ignore[arg-type]
        starting_index=_require(d, "starting_index", int),  # type: ignore[arg-type]
        ended=bool(d.get("ended", False)),
    )


def game_state_to_dict(state: GameState) -> dict[str, object]:
    """Return a JSON-serializable snapshot of the game state."""
    return {
        "state": state.state.value,
        "cards": [card_to_dict(c) for c in state.cards],
        "card_amount": state.card_amount,
        "max_cards": state.max_cards,
        "current_card_index": state.current_card_index,
        "current_player_index": state.current_player_index,
        "players": [
            {"id": p.id, "name": p.name, "event": _event_to_dict(p.event)} for p in state.players
        ],
        "events": [_event_to_dict(e) for e in state.events],
        "included_tags": [t.value for t in state.included_tags],
        "excluded_tags": [t.value for t in state.excluded_tags],
        "ending_event": _event_to_dict(state.ending_event),
    }


def game_state_from_dict(d: Mapping[str, object]) -> GameState:
    """Rebuild a GameState from `game_state_to_dict` output.

    Raises ValueError for structurally invalid documents. Player `event`
    references are re-linked to the restored events list so identity
    survives the round trip.
    """
    try:
        app_state = ApplicationState(d.get("state"))
    except ValueError as e:
        raise ValueError(f"Unknown application state: {d.get('state')!r}") from e

    raw_cards = _require(d, "cards", list)
    cards = [card_from_dict(c) for c in raw_cards if isinstance(c, dict)]  # type: ignore[union-attr]

    events: list[GameEvent] = []
    for raw in _require(d, "events", list):  # type: ignore[union-attr]
        ev = _event_from_dict(raw)
        if ev is not None:
            events.append(ev)

    players: list[Player] = []
    for raw in _require(d, "players", list):  # type: ignore[union-attr]
        if not isinstance(raw, dict):
            raise ValueError("player must be an object")
        players.append(
            Player(
                id=_require(raw, "id", int),  # type: ignore[arg-type]
                name=_require(raw, "name", str),  # type: ignore[arg-type]
            )
        )
    for p in players:
        for e in events:
            if not e.ended and e.person == p.name:
                p.event = e
                break

    max_cards = d.get("max_cards")
    if max_cards is not None and not isinstance(max_cards, int):
        raise ValueError("Expected int or null for max_cards")

    return GameState(
        state=app_state,
        cards=cards,
        card_amount=_require(d, "card_amount", int),  # type: ignore[arg-type]
        max_cards=max_cards,
        current_card_index=_require(d, "current_card_index", int),  # type: ignore[arg-type]
        current_player_index=_require(d, "current_player_index", int),  # type: ignore[arg-type]
        players=players,
        events=events,
        included_tags=_tags(d.get("included_tags", [t.value for t in Tag])),
        excluded_tags=_tags(d.get("excluded_tags", [])),
        ending_event=_event_from_dict(d.get("ending_event")),
    )


def language_data_to_dict(data: Mapping[Language, LanguageData]) -> dict[str, object]:
    return {
        lang.value: {"language": ld.language.value, "cards": [card_to_dict(c) for c in ld.cards]}
        for lang, ld in data.items()
    }


def language_data_from_dict(d: Mapping[str, object]) -> dict[Language, LanguageData]:
    out: dict[Language, LanguageData] = {}
    for key, raw in d.items():
        try:
            lang = Language(key)
        except ValueError:
            continue
        if not isinstance(raw, dict):
            raise ValueError(f"language data for {key} must be an object")
        cards = [card_from_dict(c) for c in _require(raw, "cards", list) if isinstance(c, dict)]  # type: ignore[union-attr]
        out[lang] = LanguageData(cards=cards, language=lang)
    return out
