"""Round point calculation.

A round is worth ``base_points * 2 ** n`` where ``n`` counts every active
spritze: the selected types, this round's announcements, announcements
still being paid off, and carry-overs from earlier rounds. Custom mode
skips all of that and uses the number entered by hand.
"""

import logging
from typing import Any, Dict, List, Sequence

from .carry_over import validate_carry_over
from .errors import InconsistentState, InvalidInput, LimitExceeded, error_context
from .rules import DEFAULT_RULES, SPRITZE_MODES, SPRITZE_TYPES, Rules
from .types import CarryOverSpritze, SpritzeState

logger = logging.getLogger(__name__)


def _is_count(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value >= 0


def is_safe_spritze_count(total_spritzes: int, rules: Rules = DEFAULT_RULES) -> bool:
    return 0 <= total_spritzes <= rules.max_safe_spritze_count


def calculate_round_points(total_spritzes: int, rules: Rules = DEFAULT_RULES) -> int:
    """Points for a round with ``total_spritzes`` active spritzes.

    Counts above ``rules.max_safe_spritze_count`` are still scored, only
    logged, since each extra spritze doubles the value.
    """
    if not _is_count(total_spritzes):
        raise InvalidInput(
            f'Invalid total_spritzes: {total_spritzes!r}. Must be a non-negative integer.',
            error_context('calculate_round_points', total_spritzes=total_spritzes),
        )
    points = rules.base_points * 2 ** total_spritzes
    if not is_safe_spritze_count(total_spritzes, rules):
        logger.warning(
            'High spritze count (%s) results in a very large point value: %s',
            total_spritzes,
            points,
        )
    return points


def _is_id_list(value) -> bool:
    return value is None or (
        isinstance(value, (list, tuple)) and all(isinstance(i, str) for i in value)
    )


def is_valid_spritze_state(state, mode: str) -> bool:
    """Structural check of ``state`` against the shape ``mode`` requires."""
    if not isinstance(state, SpritzeState) or mode not in SPRITZE_MODES:
        return False
    if not (_is_id_list(state.announced_by) and _is_id_list(state.active_announcements)):
        return False
    if mode == 'normal':
        if state.selected_types is None or state.custom_count is not None:
            return False
        return isinstance(state.selected_types, (list, tuple)) and all(
            t in SPRITZE_TYPES for t in state.selected_types
        )
    # Custom mode is the entered count alone; announcements belong to normal mode
    if state.custom_count is None or state.selected_types is not None:
        return False
    if state.announced_by is not None or state.active_announcements is not None:
        return False
    return _is_count(state.custom_count)


def count_total_spritzes(
    spritze_state: SpritzeState,
    carry_over_spritzes: Sequence[CarryOverSpritze],
    mode: str,
    rules: Rules = DEFAULT_RULES,
) -> int:
    if spritze_state is None:
        raise InvalidInput(
            'spritze_state is required',
            error_context('count_total_spritzes', mode=mode),
        )
    if not is_valid_spritze_state(spritze_state, mode):
        raise InconsistentState(
            f'Spritze state is inconsistent with mode {mode!r}',
            error_context('count_total_spritzes', mode=mode),
        )

    # Custom mode is the simplified path: carry-overs do not apply
    if mode == 'custom':
        total = spritze_state.custom_count
    else:
        if len(carry_over_spritzes) > rules.max_carry_overs:
            raise LimitExceeded(
                f'Too many carry-over spritzes: {len(carry_over_spritzes)}. '
                f'Maximum allowed: {rules.max_carry_overs}',
                error_context(
                    'count_total_spritzes',
                    carry_over_count=len(carry_over_spritzes),
                    max_allowed=rules.max_carry_overs,
                ),
            )
        for index, carry_over in enumerate(carry_over_spritzes):
            validate_carry_over(carry_over, index, 'count_total_spritzes')
        total = (
            len(spritze_state.selected_types)
            + len(spritze_state.announced_by or ())
            + len(spritze_state.active_announcements or ())
            + len(carry_over_spritzes)
        )

    if not is_safe_spritze_count(total, rules):
        logger.warning(
            'Total spritze count (%s) exceeds safe limit (%s)',
            total,
            rules.max_safe_spritze_count,
        )
    return total


def get_all_spritze_types() -> List[Dict[str, Any]]:
    return [{'type': t, 'description': d} for t, d in SPRITZE_TYPES.items()]
