from __future__ import annotations

import random
from dataclasses import dataclass, field

from .types import ApplicationState, LocalizedCard, Tag


def _all_tags() -> list[Tag]:
    return list(Tag)


@dataclass
class GameEvent:
    title: str
    person: str
    starting_index: int
    ended: bool = False


@dataclass
class Player:
    id: int
    name: str
    # Derived from GameState.events on every turn step; not authoritative.
    event: GameEvent | None = None


@dataclass
class GameState:
    state: ApplicationState = ApplicationState.START
    cards: list[LocalizedCard] = field(default_factory=list)
    card_amount: int = 0
    max_cards: int | None = None
    current_card_index: int = 0
    current_player_index: int = 0
    players: list[Player] = field(default_factory=list)
    events: list[GameEvent] = field(default_factory=list)
    included_tags: list[Tag] = field(default_factory=_all_tags)
    excluded_tags: list[Tag] = field(default_factory=list)
    ending_event: GameEvent | None = None


def new_game() -> GameState:
    return GameState()


def current_card(state: GameState) -> LocalizedCard | None:
    if 0 <= state.current_card_index < len(state.cards):
        return state.cards[state.current_card_index]
    return None


def current_player(state: GameState) -> Player | None:
    if 0 <= state.current_player_index < len(state.players):
        return state.players[state.current_player_index]
    return None


def change_game_state(state: GameState, new_state: ApplicationState) -> GameState:
    """Set the lifecycle state. Callers are responsible for valid sequencing."""
    state.state = new_state
    return state


def start_game(state: GameState, rng: random.Random | None = None) -> GameState:
    # Turn order only needs to be fair, not reproducible.
    (rng or random.Random()).shuffle(state.players)
    state.current_card_index = 0
    state.current_player_index = 0
    state.events = []
    state.ending_event = None
    _refresh_player_events(state)
    return change_game_state(state, ApplicationState.PLAYING)


def add_player(state: GameState, name: str) -> GameState:
    # Ids may repeat after a removal; that is accepted.
    state.players = [*state.players, Player(id=len(state.players) + 1, name=name)]
    return state


def remove_player(state: GameState, player_id: int) -> GameState:
    for i, p in enumerate(state.players):
        if p.id == player_id:
            state.players = state.players[:i] + state.players[i + 1 :]
            break
    return state


def _end_events_for_vacated_slot(state: GameState) -> None:
    if state.current_player_index > 0:
        check_index = state.current_player_index - 1
    else:
        check_index = len(state.players) - 1

    previous = state.ending_event
    ending: GameEvent | None = None
    for event in state.events:
        if event.ended or event.starting_index != check_index:
            continue
        event.ended = True
        # Several events on one slot: the first-created one is surfaced.
        if ending is None:
            ending = event

    # An event is surfaced as "just ended" exactly once.
    if ending is None or ending is previous:
        state.ending_event = None
    else:
        state.ending_event = ending


def _refresh_player_events(state: GameState) -> None:
    alive = [e for e in state.events if not e.ended]
    for p in state.players:
        p.event = None
        for e in alive:
            if e.person == p.name:
                p.event = e
                break


def show_next_card(state: GameState) -> GameState:
    """Advance to the next card and player.

    Events whose starting slot is being vacated end (at most one is reported
    as `ending_event`), resolved events are dropped, and a timed-event card
    starts a new event for the newly active player. Running out of cards ends
    every event and moves the game to ENDING.
    """
    _end_events_for_vacated_slot(state)
    state.events = [e for e in state.events if not e.ended]

    state.current_card_index += 1
    state.current_player_index += 1
    if state.players:
        state.current_player_index %= len(state.players)
    else:
        state.current_player_index = 0

    if state.current_card_index >= state.card_amount:
        for e in state.events:
            e.ended = True
        state.ending_event = None
        _refresh_player_events(state)
        return change_game_state(state, ApplicationState.ENDING)

    card = current_card(state)
    player = current_player(state)
    if card is not None and card.timed_event and player is not None:
        state.events.append(
            GameEvent(
                title=card.title,
                person=player.name,
                starting_index=state.current_player_index,
                ended=False,
            )
        )

    _refresh_player_events(state)
    return state


def get_target(state: GameState, rng: random.Random | None = None) -> str:
    """Pick a random player other than the active one for a targeting card.

    Returns an empty string when the card does not target anyone or there is
    nobody else to target.
    """
    card = current_card(state)
    if card is None or not card.target_player:
        return ""
    if len(state.players) <= 1:
        return ""

    r = rng or random.Random()
    index = state.current_player_index
    while index == state.current_player_index:
        index = r.randrange(len(state.players))
    return state.players[index].name
