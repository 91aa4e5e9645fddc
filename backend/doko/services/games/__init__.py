"""Game domain services: the round engine and its session layer.

This package holds the scoring rules, carry-over bookkeeping, standings
and the round state machine. HTTP routes and socket handlers import from
here, keeping transport concerns separated from core game mechanics.
"""

from .errors import GameError
from .rounds import (
    accept_round,
    can_reset_round,
    create_new_round,
    get_current_round,
    reset_last_round,
    toggle_winner,
    update_spritze,
)
from .positions import calculate_positions
from .rules import DEFAULT_RULES, Rules
from .types import GameState

__all__ = [
    'DEFAULT_RULES',
    'GameError',
    'GameState',
    'Rules',
    'accept_round',
    'calculate_positions',
    'can_reset_round',
    'create_new_round',
    'get_current_round',
    'reset_last_round',
    'toggle_winner',
    'update_spritze',
]
