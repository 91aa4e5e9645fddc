"""Round lifecycle: create, edit, accept and reset.

A round starts active (editable), becomes accepted (frozen, scores
committed) and may be reset only while it is the most recently accepted
round, which removes it and undoes its effects. Every function returns new
values; the ``GameState`` passed in is never changed.
"""

import logging
import re
import uuid
from typing import List, Optional, Sequence

from .carry_over import (
    failed_announcers,
    generate_announcement_carry_overs,
    process_carry_over_spritzes,
    remove_carry_overs_from_round,
)
from .errors import (
    AlreadyAccepted,
    CannotModifyAccepted,
    InconsistentState,
    IndexOutOfBounds,
    InvalidInput,
    LimitExceeded,
    MalformedEntry,
    NoAcceptedRounds,
    NoActiveGameState,
    NoRoundsToReset,
    NotLastAccepted,
    error_context,
)
from .positions import calculate_positions
from .rules import DEFAULT_RULES, SPRITZE_MODES, Rules
from .scoring import calculate_round_points, count_total_spritzes, is_valid_spritze_state
from .types import GameState, PlayerRoundResult, Round, SpritzeState

logger = logging.getLogger(__name__)

UUID_RE = re.compile(
    r'^[0-9a-f]{8}-[0-9a-f]{4}-4[0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}$',
    re.IGNORECASE,
)


def _require_state(game_state, operation: str) -> GameState:
    if not isinstance(game_state, GameState):
        raise NoActiveGameState(
            'No active game state',
            error_context(operation),
        )
    return game_state


def round_at(game_state: GameState, round_index, operation: str) -> Round:
    if not isinstance(round_index, int) or isinstance(round_index, bool) or round_index < 0:
        raise InvalidInput(
            f'round_index must be a non-negative integer, got {round_index!r}',
            error_context(operation, round_index=round_index),
        )
    rounds = game_state.rounds
    if round_index >= len(rounds):
        raise IndexOutOfBounds(
            f'round_index {round_index} is out of bounds. Total rounds: {len(rounds)}',
            error_context(operation, round_index=round_index, round_count=len(rounds)),
        )
    return rounds[round_index]


def create_new_round(
    existing_rounds: Sequence[Round], spritze_mode: str = 'normal', rules: Rules = DEFAULT_RULES
) -> Round:
    """Open a round numbered one past the highest existing round number."""
    if len(existing_rounds) >= rules.max_rounds:
        raise LimitExceeded(
            f'Too many rounds. Maximum allowed: {rules.max_rounds}',
            error_context('create_new_round', round_count=len(existing_rounds), max_allowed=rules.max_rounds),
        )
    if spritze_mode not in SPRITZE_MODES:
        raise InvalidInput(
            f'Unknown spritze mode {spritze_mode!r}',
            error_context('create_new_round', mode=spritze_mode),
        )
    # Integrity check of what we are building on, not a game rule
    for index, existing in enumerate(existing_rounds):
        if not isinstance(existing, Round):
            raise MalformedEntry(
                f'Invalid round at index {index}',
                error_context('create_new_round', round_index=index),
            )
        if not isinstance(existing.id, str) or not UUID_RE.match(existing.id):
            raise MalformedEntry(
                f'Invalid round id at index {index}: must be a UUID',
                error_context('create_new_round', round_index=index),
            )
        number = existing.round_number
        if not isinstance(number, int) or isinstance(number, bool) or number < 1:
            raise MalformedEntry(
                f'Invalid round number at index {index}: must be a positive integer',
                error_context('create_new_round', round_index=index),
            )

    next_number = max((r.round_number for r in existing_rounds), default=0) + 1
    return Round(
        id=str(uuid.uuid4()),
        round_number=next_number,
        spritze_state=SpritzeState.empty(spritze_mode),
    )


def accept_round(game_state: GameState, round_index: int, rules: Rules = DEFAULT_RULES) -> GameState:
    """Commit the round at ``round_index`` and open the next active round.

    Winners gain the round's points, standings are recomputed, failed
    announcers spawn carry-overs, and the round's own carry-overs tick
    down into the new round.
    """
    game_state = _require_state(game_state, 'accept_round')
    round_ = round_at(game_state, round_index, 'accept_round')
    if round_.is_accepted:
        raise AlreadyAccepted(
            f'Round at index {round_index} is already accepted',
            error_context('accept_round', round_index=round_index, round_number=round_.round_number),
        )

    mode = game_state.config.spritze_mode
    total_spritzes = count_total_spritzes(round_.spritze_state, round_.carry_over_spritzes, mode, rules)
    points = calculate_round_points(total_spritzes, rules)

    # Only failed announcements carry over; plain losses do not.
    # Custom mode has no announcements, so nothing carries over there.
    new_carry_overs = []
    spritze_state = round_.spritze_state
    if mode == 'normal':
        new_carry_overs = generate_announcement_carry_overs(round_, game_state.player_ids, rules)
        spritze_state = spritze_state.model_copy(
            update={'active_announcements': tuple(failed_announcers(round_))}
        )

    winners = set(round_.winners)
    results = tuple(
        PlayerRoundResult(
            player_id=p.id,
            is_winner=p.id in winners,
            points_gained=points if p.id in winners else 0,
        )
        for p in game_state.players
    )
    gained = {r.player_id: r.points_gained for r in results}
    players = calculate_positions(
        [p.model_copy(update={'total_score': p.total_score + gained[p.id]}) for p in game_state.players],
        rules,
    )

    accepted = round_.model_copy(update={
        'is_accepted': True,
        'points_awarded': points,
        'player_results': results,
        'spritze_state': spritze_state,
    })

    carried = process_carry_over_spritzes(round_.carry_over_spritzes, rules) + new_carry_overs
    if len(carried) > rules.max_carry_overs:
        raise LimitExceeded(
            f'Too many carry-over spritzes: {len(carried)}. Maximum allowed: {rules.max_carry_overs}',
            error_context(
                'accept_round',
                round_index=round_index,
                carry_over_count=len(carried),
                max_allowed=rules.max_carry_overs,
            ),
        )
    accepted_rounds = game_state.accepted_rounds + (accepted,)
    next_round = create_new_round(accepted_rounds, mode, rules).model_copy(
        update={'carry_over_spritzes': tuple(carried)}
    )

    logger.info(
        'Accepted round %s: %s spritzes, %s points, %s new carry-overs',
        round_.round_number,
        total_spritzes,
        points,
        len(new_carry_overs),
    )
    return game_state.touched(
        players=tuple(players),
        accepted_rounds=accepted_rounds,
        active_round=next_round,
    )


def _strip_carry_overs(round_: Round, origin_round_index: int, rules: Rules) -> Round:
    kept = remove_carry_overs_from_round(round_.carry_over_spritzes, origin_round_index, rules)
    if len(kept) == len(round_.carry_over_spritzes):
        return round_
    return round_.model_copy(update={'carry_over_spritzes': tuple(kept)})


def reset_last_round(game_state: GameState, rules: Rules = DEFAULT_RULES) -> GameState:
    """Remove the most recently accepted round and undo its effects.

    Scores lose what the round awarded (never below zero), standings are
    recomputed and every carry-over the round spawned is dropped. The
    active round takes over the removed round's number.
    """
    game_state = _require_state(game_state, 'reset_last_round')
    if not game_state.rounds:
        raise NoRoundsToReset(
            'No rounds to reset',
            error_context('reset_last_round', round_count=0),
        )
    if not game_state.accepted_rounds:
        raise NoAcceptedRounds(
            'No accepted rounds to reset',
            error_context('reset_last_round', round_count=len(game_state.rounds)),
        )

    last_index = len(game_state.accepted_rounds) - 1
    if not can_reset_round(game_state, last_index):
        raise NotLastAccepted(
            f'Cannot reset round at index {last_index}. Only the last accepted round can be reset.',
            error_context('reset_last_round', round_index=last_index),
        )
    last = game_state.accepted_rounds[last_index]

    gained = {r.player_id: r.points_gained for r in last.player_results}
    players = calculate_positions(
        [p.model_copy(update={'total_score': max(0, p.total_score - gained.get(p.id, 0))}) for p in game_state.players],
        rules,
    )

    origin = last.round_number - 1
    accepted_rounds = tuple(
        _strip_carry_overs(r, origin, rules) for r in game_state.accepted_rounds[:last_index]
    )
    active = game_state.active_round
    if active is not None:
        active = _strip_carry_overs(active, origin, rules).model_copy(update={'round_number': last.round_number})

    logger.info('Reset round %s (%s points reverted)', last.round_number, last.points_awarded)
    return game_state.touched(
        players=tuple(players),
        accepted_rounds=accepted_rounds,
        active_round=active,
    )


def can_reset_round(game_state: GameState, round_index: int) -> bool:
    """True only for the most recently accepted round; resets run newest first."""
    game_state = _require_state(game_state, 'can_reset_round')
    round_ = round_at(game_state, round_index, 'can_reset_round')
    if not round_.is_accepted:
        return False
    last_accepted = max(i for i, r in enumerate(game_state.rounds) if r.is_accepted)
    return round_index == last_accepted


def toggle_winner(round_: Round, player_id: str) -> Round:
    if round_.is_accepted:
        raise CannotModifyAccepted(
            'Cannot modify winners in an accepted round',
            error_context('toggle_winner', round_number=round_.round_number),
        )
    if not isinstance(player_id, str) or not player_id:
        raise InvalidInput(
            'player_id must be a non-empty string',
            error_context('toggle_winner', round_number=round_.round_number),
        )
    if player_id in round_.winners:
        winners = tuple(pid for pid in round_.winners if pid != player_id)
    else:
        winners = round_.winners + (player_id,)
    return round_.model_copy(update={'winners': winners})


def update_spritze(round_: Round, spritze_state: SpritzeState, mode: str) -> Round:
    if round_.is_accepted:
        raise CannotModifyAccepted(
            'Cannot modify Spritze in an accepted round',
            error_context('update_spritze', round_number=round_.round_number),
        )
    if not is_valid_spritze_state(spritze_state, mode):
        raise InconsistentState(
            f'Invalid Spritze state for {mode} mode',
            error_context('update_spritze', round_number=round_.round_number, mode=mode),
        )
    return round_.model_copy(update={'spritze_state': spritze_state})


def get_current_round(game_state: GameState) -> Optional[Round]:
    game_state = _require_state(game_state, 'get_current_round')
    active = game_state.active_round
    if active is None or active.is_accepted:
        return None
    return active


def get_accepted_rounds(game_state: GameState) -> List[Round]:
    game_state = _require_state(game_state, 'get_accepted_rounds')
    return list(game_state.accepted_rounds)


def has_accepted_rounds(game_state: GameState) -> bool:
    return bool(get_accepted_rounds(game_state))
