"""Standings: rank players by total score.

Ties share a position and the next distinct score takes the following
number, so scores ``30, 30, 10`` rank ``1, 1, 2``.
"""

from typing import List, Optional, Sequence

from .errors import InvalidInput, LimitExceeded, error_context
from .rules import DEFAULT_RULES, Rules
from .types import Player


def _validate_players(players: Sequence[Player], operation: str, rules: Rules) -> None:
    if not players:
        raise InvalidInput(
            'players cannot be empty',
            error_context(operation, player_count=0),
        )
    if len(players) > rules.max_players:
        raise LimitExceeded(
            f'Too many players: {len(players)}. Maximum allowed: {rules.max_players}',
            error_context(operation, player_count=len(players), max_allowed=rules.max_players),
        )
    seen = set()
    for index, player in enumerate(players):
        if not isinstance(player, Player):
            raise InvalidInput(
                f'Invalid player at index {index}',
                error_context(operation, index=index),
            )
        if not isinstance(player.id, str) or not player.id:
            raise InvalidInput(
                f'Invalid player id at index {index}',
                error_context(operation, index=index),
            )
        score = player.total_score
        if not isinstance(score, int) or isinstance(score, bool) or score < 0:
            raise InvalidInput(
                f'Invalid total_score for player {player.id}: {score!r}',
                error_context(operation, index=index, player_id=player.id, total_score=score),
            )
        if player.id in seen:
            raise InvalidInput(
                f'Duplicate player id: {player.id}',
                error_context(operation, index=index, player_id=player.id),
            )
        seen.add(player.id)


def calculate_positions(players: Sequence[Player], rules: Rules = DEFAULT_RULES) -> List[Player]:
    """Return ``players`` in input order with ``position`` recomputed."""
    _validate_players(players, 'calculate_positions', rules)
    # sorted() is stable, so equal scores keep their seat order
    ranked = sorted(players, key=lambda p: p.total_score, reverse=True)
    distinct_scores = []
    for player in ranked:
        if not distinct_scores or distinct_scores[-1] != player.total_score:
            distinct_scores.append(player.total_score)
    rank_by_score = {score: index + 1 for index, score in enumerate(distinct_scores)}
    return [p.model_copy(update={'position': rank_by_score[p.total_score]}) for p in players]


def validate_positions(players: Sequence[Player]) -> bool:
    """True if no player with a higher or equal score sits behind a lower one."""
    for a in players:
        for b in players:
            if a.total_score >= b.total_score and a.position > b.position:
                return False
    return True


def get_player_position(players: Sequence[Player], player_id: str) -> Optional[int]:
    for player in players:
        if player.id == player_id:
            return player.position
    return None


def get_players_at_position(players: Sequence[Player], position: int) -> List[Player]:
    return [p for p in players if p.position == position]
