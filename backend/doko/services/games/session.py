"""Game session: the caller side of the round engine.

Starts games, applies edits to the active round by index, and keeps the
latest ``GameState`` per game in a process-local registry backed by the
blob store. Persistence is handled by ``autosave`` and never gates a
transition.
"""

import uuid
from typing import Any, Dict, Optional

from .errors import InconsistentState, InvalidInput, NoActiveGameState, NotLastAccepted, error_context
from .positions import calculate_positions
from .rules import DEFAULT_PLAYER_COLORS, DEFAULT_RULES, SPRITZE_MODES, SPRITZE_TYPES, Rules
from .rounds import (
    can_reset_round,
    create_new_round,
    reset_last_round,
    round_at,
    toggle_winner as toggle_round_winner,
    update_spritze as update_round_spritze,
)
from .types import GameConfig, GameState, Player, SpritzeState, load_record

STORAGE_KEY_PREFIX = 'doppelkopf-game-state'

# game id -> latest state
_games: Dict[str, GameState] = {}


def storage_key(game_id: str) -> str:
    return f'{STORAGE_KEY_PREFIX}:{game_id}'


def game_config_from_payload(data: Dict[str, Any]) -> GameConfig:
    """Build a GameConfig from request JSON, filling in seat colors."""
    data = dict(data or {})
    players = data.get('players')
    if isinstance(players, list):
        filled = []
        for index, p in enumerate(players):
            if isinstance(p, dict) and not p.get('color'):
                p = dict(p, color=DEFAULT_PLAYER_COLORS[index % len(DEFAULT_PLAYER_COLORS)])
            filled.append(p)
        data['players'] = filled
    return load_record(GameConfig, data, 'game_config_from_payload')


def validate_game_config(config: GameConfig, rules: Rules = DEFAULT_RULES) -> None:
    if len(config.players) != rules.player_count:
        raise InvalidInput(
            f'Game config must include exactly {rules.player_count} players',
            error_context('validate_game_config', player_count=len(config.players)),
        )
    if config.spritze_mode not in SPRITZE_MODES:
        raise InvalidInput(
            f'Unknown spritze mode {config.spritze_mode!r}',
            error_context('validate_game_config', mode=config.spritze_mode),
        )
    for index, p in enumerate(config.players):
        name = p.name.strip()
        if not name or len(name) > rules.max_player_name_length:
            raise InvalidInput(
                f'Player name at seat {index + 1} must be 1-{rules.max_player_name_length} characters',
                error_context('validate_game_config', index=index),
            )
    unknown = [t for t in config.enabled_spritze_types if t not in SPRITZE_TYPES]
    if unknown:
        raise InvalidInput(
            f'Unknown spritze types: {unknown}',
            error_context('validate_game_config', mode=config.spritze_mode),
        )


def start_game(config: GameConfig, rules: Rules = DEFAULT_RULES) -> GameState:
    validate_game_config(config, rules)
    players = calculate_positions(
        [
            Player(id=f'player-{index + 1}', name=p.name.strip(), color=p.color)
            for index, p in enumerate(config.players)
        ],
        rules,
    )
    return GameState(
        id=str(uuid.uuid4()),
        config=config,
        players=tuple(players),
        active_round=create_new_round((), config.spritze_mode, rules),
    )


def toggle_winner(game_state: GameState, round_index: int, player_id: str) -> GameState:
    round_ = round_at(game_state, round_index, 'toggle_winner')
    if player_id not in game_state.player_ids:
        raise InvalidInput(
            f'Unknown player id {player_id!r}',
            error_context('toggle_winner', player_id=player_id, round_index=round_index),
        )
    return game_state.touched(active_round=toggle_round_winner(round_, player_id))


def update_spritze(game_state: GameState, round_index: int, spritze_state: SpritzeState) -> GameState:
    config = game_state.config
    round_ = round_at(game_state, round_index, 'update_spritze')
    updated = update_round_spritze(round_, spritze_state, config.spritze_mode)
    if config.spritze_mode == 'normal':
        disabled = [t for t in spritze_state.selected_types if t not in config.enabled_spritze_types]
        if disabled:
            raise InconsistentState(
                f'Spritze types not enabled for this game: {disabled}',
                error_context('update_spritze', round_index=round_index, mode=config.spritze_mode),
            )
    for field in ('announced_by', 'active_announcements'):
        strangers = [pid for pid in getattr(spritze_state, field) or () if pid not in game_state.player_ids]
        if strangers:
            raise InvalidInput(
                f'{field} contains unknown player ids: {strangers}',
                error_context('update_spritze', round_index=round_index),
            )
    return game_state.touched(active_round=updated)


def reset_round(game_state: GameState, round_index: int, rules: Rules = DEFAULT_RULES) -> GameState:
    if not can_reset_round(game_state, round_index):
        raise NotLastAccepted(
            'Cannot reset this round. Only the most recently accepted round can be reset.',
            error_context('reset_round', round_index=round_index),
        )
    return reset_last_round(game_state, rules)


def can_reset_current_round(game_state: GameState) -> bool:
    if not game_state.accepted_rounds:
        return False
    return can_reset_round(game_state, len(game_state.accepted_rounds) - 1)


def put_game(game_state: GameState) -> GameState:
    _games[game_state.id] = game_state
    return game_state


def peek_game(game_id: str) -> Optional[GameState]:
    return _games.get(game_id)


def get_game(game_id: str, store) -> GameState:
    """Latest state for ``game_id``, loading it from ``store`` on a cache miss."""
    state = _games.get(game_id)
    if state is not None:
        return state
    blob = store.load(storage_key(game_id))
    if blob is None:
        raise NoActiveGameState(
            f'No game with id {game_id}',
            error_context('get_game'),
        )
    return put_game(load_record(GameState, blob, 'get_game'))


def drop_game(game_id: str, store) -> None:
    _games.pop(game_id, None)
    store.clear(storage_key(game_id))


def clear_sessions() -> None:
    _games.clear()
