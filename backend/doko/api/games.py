from typing import List

from flask import Blueprint, jsonify, request, current_app
from pydantic import BaseModel
from doko.socketio_events import broadcast_state_update
from doko.storage import GameStore
from doko.services.games.autosave import cancel_pending, schedule_save
from doko.services.games.errors import GameError, InvalidInput, error_context
from doko.services.games.positions import calculate_positions
from doko.services.games.rounds import accept_round, can_reset_round, get_current_round, reset_last_round
from doko.services.games.rules import Rules
from doko.services.games.scoring import get_all_spritze_types
from doko.services.games.session import (
    can_reset_current_round,
    drop_game,
    game_config_from_payload,
    get_game,
    put_game,
    reset_round,
    start_game,
    toggle_winner,
    update_spritze,
)
from doko.services.games.types import Player, SpritzeState, load_record


games = Blueprint('games', __name__)


class Roster(BaseModel):
    players: List[Player]

# Error kind -> HTTP status
STATUS_BY_KIND = {
    'InvalidInput': 400,
    'InconsistentState': 400,
    'LimitExceeded': 400,
    'MalformedEntry': 400,
    'NoActiveGameState': 404,
    'IndexOutOfBounds': 404,
    'AlreadyAccepted': 409,
    'NotLastAccepted': 409,
    'NoRoundsToReset': 409,
    'NoAcceptedRounds': 409,
    'CannotModifyAccepted': 409,
}


@games.errorhandler(GameError)
def handle_game_error(exc: GameError):
    status = STATUS_BY_KIND.get(exc.kind, 400)
    current_app.logger.info(f"[game-error] kind={exc.kind} status={status} {exc.message}")
    expose = bool(current_app.config.get('EXPOSE_ERROR_CONTEXT', False))
    return jsonify(exc.to_dict(expose_context=expose)), status


def _rules() -> Rules:
    return Rules.from_config(current_app.config)


def _load(game_id: str):
    return get_game(game_id, GameStore())


def _commit(state):
    """Publish a new state: registry first, then clients, then storage."""
    put_game(state)
    broadcast_state_update(state.id)
    schedule_save(current_app._get_current_object(), state.id)
    return state


def _state_payload(state) -> dict:
    payload = state.model_dump(mode='json')
    current = get_current_round(state)
    payload['current_round'] = current.model_dump(mode='json') if current else None
    payload['can_reset'] = can_reset_current_round(state)
    return payload


def _json_body() -> dict:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise InvalidInput('Request body must be a JSON object', error_context(request.endpoint or 'request'))
    return data


@games.route('/create', methods=['POST'])
def create_game():
    config = game_config_from_payload(_json_body())
    state = _commit(start_game(config, _rules()))
    current_app.logger.info(f"[game-start] game={state.id} mode={config.spritze_mode}")
    return jsonify(_state_payload(state)), 201


@games.route('/spritze-types', methods=['GET'])
def list_spritze_types():
    return jsonify(get_all_spritze_types())


@games.route('/positions', methods=['POST'])
def rank_players():
    """Rank an arbitrary roster without touching any stored game."""
    roster = load_record(Roster, _json_body(), 'rank_players')
    ranked = calculate_positions(roster.players, _rules())
    return jsonify([p.model_dump(mode='json') for p in ranked])


@games.route('/<string:game_id>/state', methods=['GET'])
def get_game_state(game_id):
    return jsonify(_state_payload(_load(game_id)))


@games.route('/<string:game_id>/rounds/<int:round_index>/winners', methods=['POST'])
def toggle_round_winner(game_id, round_index):
    player_id = _json_body().get('player_id')
    state = _commit(toggle_winner(_load(game_id), round_index, player_id))
    return jsonify(_state_payload(state))


@games.route('/<string:game_id>/rounds/<int:round_index>/spritze', methods=['PUT'])
def update_round_spritze(game_id, round_index):
    spritze_state = load_record(SpritzeState, _json_body(), 'update_round_spritze')
    state = _commit(update_spritze(_load(game_id), round_index, spritze_state))
    return jsonify(_state_payload(state))


@games.route('/<string:game_id>/rounds/<int:round_index>/accept', methods=['POST'])
def accept_game_round(game_id, round_index):
    state = accept_round(_load(game_id), round_index, _rules())
    _commit(state)
    accepted = state.accepted_rounds[-1]
    current_app.logger.info(
        f"[accept] game={game_id} round={accepted.round_number} points={accepted.points_awarded}"
    )
    return jsonify(_state_payload(state))


@games.route('/<string:game_id>/rounds/<int:round_index>/can-reset', methods=['GET'])
def can_reset_game_round(game_id, round_index):
    return jsonify({'can_reset': can_reset_round(_load(game_id), round_index)})


@games.route('/<string:game_id>/rounds/<int:round_index>/reset', methods=['POST'])
def reset_game_round(game_id, round_index):
    state = _commit(reset_round(_load(game_id), round_index, _rules()))
    current_app.logger.info(f"[reset] game={game_id} round_index={round_index}")
    return jsonify(_state_payload(state))


@games.route('/<string:game_id>/reset-last', methods=['POST'])
def reset_last_game_round(game_id):
    state = _commit(reset_last_round(_load(game_id), _rules()))
    current_app.logger.info(f"[reset] game={game_id} last accepted round")
    return jsonify(_state_payload(state))


@games.route('/<string:game_id>', methods=['DELETE'])
def clear_game(game_id):
    _load(game_id)
    cancel_pending(game_id)
    drop_game(game_id, GameStore())
    broadcast_state_update(game_id)
    current_app.logger.info(f"[clear] game={game_id}")
    return jsonify({'message': 'Game cleared'})
