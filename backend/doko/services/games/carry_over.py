"""Carry-over spritzes: penalties that keep counting for later rounds.

A carry-over is created when a round is accepted and lives in the next
active round. Each acceptance ticks it down by one; at zero it is gone.
Resetting a round strips every carry-over that round created.
"""

import logging
from typing import List, Sequence

from .errors import InvalidInput, LimitExceeded, MalformedEntry, error_context
from .rules import DEFAULT_RULES, Rules
from .types import CARRY_OVER_TYPES, CarryOverSpritze, Round

logger = logging.getLogger(__name__)


def _is_count(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value >= 0


def validate_carry_over(carry_over, index: int, operation: str) -> None:
    """Raise MalformedEntry unless ``carry_over`` is a well-formed entry."""
    if not isinstance(carry_over, CarryOverSpritze):
        raise MalformedEntry(
            f'Invalid carry-over at index {index}: must be a CarryOverSpritze',
            error_context(operation, index=index),
        )
    if not isinstance(carry_over.player_id, str) or not carry_over.player_id:
        raise MalformedEntry(
            f'Invalid player_id in carry-over at index {index}: must be a non-empty string',
            error_context(operation, index=index),
        )
    if not _is_count(carry_over.rounds_remaining):
        raise MalformedEntry(
            f'Invalid rounds_remaining in carry-over at index {index}: {carry_over.rounds_remaining!r}',
            error_context(operation, index=index),
        )
    if not _is_count(carry_over.origin_round_index):
        raise MalformedEntry(
            f'Invalid origin_round_index in carry-over at index {index}: {carry_over.origin_round_index!r}',
            error_context(operation, index=index),
        )
    if carry_over.type not in CARRY_OVER_TYPES:
        raise MalformedEntry(
            f'Invalid type in carry-over at index {index}: {carry_over.type!r}',
            error_context(operation, index=index),
        )


def _check_list(carry_overs: Sequence[CarryOverSpritze], operation: str, rules: Rules) -> None:
    if len(carry_overs) > rules.max_carry_overs:
        raise LimitExceeded(
            f'Carry-over list exceeds the maximum of {rules.max_carry_overs} entries',
            error_context(operation, carry_over_count=len(carry_overs), max_allowed=rules.max_carry_overs),
        )
    for index, carry_over in enumerate(carry_overs):
        validate_carry_over(carry_over, index, operation)


def _check_round(round_: Round, all_player_ids: Sequence[str], operation: str, rules: Rules) -> None:
    if not all_player_ids:
        raise InvalidInput(
            'all_player_ids cannot be empty',
            error_context(operation, player_count=0),
        )
    if len(all_player_ids) > rules.max_players:
        raise LimitExceeded(
            f'all_player_ids exceeds the maximum of {rules.max_players} players',
            error_context(operation, player_count=len(all_player_ids), max_allowed=rules.max_players),
        )
    if not isinstance(round_.round_number, int) or round_.round_number < 1:
        raise InvalidInput(
            'round must have a positive round_number',
            error_context(operation, round_number=round_.round_number),
        )
    known = set(all_player_ids)
    unknown = [pid for pid in round_.winners if pid not in known]
    if unknown:
        raise InvalidInput(
            f'round.winners contains unknown player ids: {unknown}',
            error_context(operation, round_number=round_.round_number),
        )
    unknown = [pid for pid in round_.spritze_state.announced_by or () if pid not in known]
    if unknown:
        raise InvalidInput(
            f'announced_by contains unknown player ids: {unknown}',
            error_context(operation, round_number=round_.round_number),
        )


def generate_carry_over_spritzes(
    round_: Round, all_player_ids: Sequence[str], rules: Rules = DEFAULT_RULES
) -> List[CarryOverSpritze]:
    """One ``loss`` carry-over for every player who did not win ``round_``."""
    _check_round(round_, all_player_ids, 'generate_carry_over_spritzes', rules)
    winners = set(round_.winners)
    return [
        CarryOverSpritze(
            player_id=pid,
            rounds_remaining=rules.carry_over_duration,
            origin_round_index=round_.round_number - 1,
            type='loss',
        )
        for pid in all_player_ids
        if pid not in winners
    ]


def failed_announcers(round_: Round) -> List[str]:
    """Players who announced a win in ``round_`` but are not among its winners."""
    winners = set(round_.winners)
    return [pid for pid in round_.spritze_state.announced_by or () if pid not in winners]


def generate_announcement_carry_overs(
    round_: Round, all_player_ids: Sequence[str], rules: Rules = DEFAULT_RULES
) -> List[CarryOverSpritze]:
    """One ``announcement`` carry-over for every failed announcer of ``round_``."""
    _check_round(round_, all_player_ids, 'generate_announcement_carry_overs', rules)
    return [
        CarryOverSpritze(
            player_id=pid,
            rounds_remaining=rules.carry_over_duration,
            origin_round_index=round_.round_number - 1,
            type='announcement',
        )
        for pid in failed_announcers(round_)
    ]


def process_carry_over_spritzes(
    carry_overs: Sequence[CarryOverSpritze], rules: Rules = DEFAULT_RULES
) -> List[CarryOverSpritze]:
    """Tick every carry-over down by one round and drop the expired ones."""
    _check_list(carry_overs, 'process_carry_over_spritzes', rules)
    processed = []
    for carry_over in carry_overs:
        remaining = carry_over.rounds_remaining - 1
        if remaining > 0:
            processed.append(carry_over.model_copy(update={'rounds_remaining': remaining}))
        else:
            logger.debug(
                'Carry-over for %s from round index %s expired',
                carry_over.player_id,
                carry_over.origin_round_index,
            )
    return processed


def remove_carry_overs_from_round(
    carry_overs: Sequence[CarryOverSpritze], origin_round_index: int, rules: Rules = DEFAULT_RULES
) -> List[CarryOverSpritze]:
    if not _is_count(origin_round_index):
        raise InvalidInput(
            'origin_round_index must be a non-negative integer',
            error_context('remove_carry_overs_from_round', index=origin_round_index),
        )
    _check_list(carry_overs, 'remove_carry_overs_from_round', rules)
    return [c for c in carry_overs if c.origin_round_index != origin_round_index]


def deduplicate_carry_overs(
    loss_carry_overs: Sequence[CarryOverSpritze],
    announcement_carry_overs: Sequence[CarryOverSpritze],
    rules: Rules = DEFAULT_RULES,
) -> List[CarryOverSpritze]:
    """Merge both lists keeping one entry per player; the loss entry wins."""
    _check_list(loss_carry_overs, 'deduplicate_carry_overs', rules)
    _check_list(announcement_carry_overs, 'deduplicate_carry_overs', rules)
    by_player = {}
    for carry_over in loss_carry_overs:
        by_player[carry_over.player_id] = carry_over.model_copy(update={'type': 'loss'})
    merged = list(by_player.values())
    for carry_over in announcement_carry_overs:
        if carry_over.player_id not in by_player:
            merged.append(carry_over.model_copy(update={'type': 'announcement'}))
    return merged


def get_player_carry_overs(
    carry_overs: Sequence[CarryOverSpritze], player_id: str, rules: Rules = DEFAULT_RULES
) -> List[CarryOverSpritze]:
    if not isinstance(player_id, str) or not player_id:
        raise InvalidInput(
            'player_id must be a non-empty string',
            error_context('get_player_carry_overs', player_id=player_id),
        )
    _check_list(carry_overs, 'get_player_carry_overs', rules)
    return [c for c in carry_overs if c.player_id == player_id]


def player_has_carry_overs(
    carry_overs: Sequence[CarryOverSpritze], player_id: str, rules: Rules = DEFAULT_RULES
) -> bool:
    return bool(get_player_carry_overs(carry_overs, player_id, rules))


def get_total_carry_over_count(
    carry_overs: Sequence[CarryOverSpritze], rules: Rules = DEFAULT_RULES
) -> int:
    _check_list(carry_overs, 'get_total_carry_over_count', rules)
    return len(carry_overs)
