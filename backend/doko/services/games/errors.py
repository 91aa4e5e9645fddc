"""Error taxonomy for the scoring engine.

Exception tree:
    GameError
    +-- InvalidInput          (malformed or out-of-range argument)
    +-- InconsistentState     (spritze shape contradicts the game mode)
    +-- IndexOutOfBounds
    +-- NoActiveGameState
    +-- AlreadyAccepted
    +-- NotLastAccepted
    +-- NoRoundsToReset
    +-- NoAcceptedRounds
    +-- CannotModifyAccepted
    +-- LimitExceeded         (a sanity ceiling was crossed)
    +-- MalformedEntry        (corrupt persisted or loaded record)
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional

# Context keys that may leave the process
PUBLIC_CONTEXT_FIELDS = (
    'operation', 'timestamp', 'round_index', 'round_number', 'round_count',
    'player_id', 'player_count', 'total_score', 'total_spritzes',
    'carry_over_count', 'max_allowed', 'mode', 'index',
)


def error_context(operation: str, **data: Any) -> Dict[str, Any]:
    """Build the structured context attached to every GameError."""
    context = {
        'operation': operation,
        'timestamp': datetime.now(timezone.utc).isoformat(),
    }
    context.update(data)
    return context


class GameError(Exception):
    """Base exception for all scoring engine errors."""

    kind = 'GameError'

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        self.message = message
        self.context = context or {}
        super().__init__(message)

    def public_context(self) -> Dict[str, Any]:
        return {k: v for k, v in self.context.items() if k in PUBLIC_CONTEXT_FIELDS}

    def to_dict(self, expose_context: bool = False) -> Dict[str, Any]:
        return {
            'error': self.message,
            'kind': self.kind,
            'context': dict(self.context) if expose_context else self.public_context(),
        }


class InvalidInput(GameError):
    kind = 'InvalidInput'


class InconsistentState(GameError):
    kind = 'InconsistentState'


class IndexOutOfBounds(GameError):
    kind = 'IndexOutOfBounds'


class NoActiveGameState(GameError):
    kind = 'NoActiveGameState'


class AlreadyAccepted(GameError):
    kind = 'AlreadyAccepted'


class NotLastAccepted(GameError):
    """Only the most recently accepted round may be reset."""

    kind = 'NotLastAccepted'


class NoRoundsToReset(GameError):
    kind = 'NoRoundsToReset'


class NoAcceptedRounds(GameError):
    kind = 'NoAcceptedRounds'


class CannotModifyAccepted(GameError):
    """Accepted rounds are frozen; edits go to the active round only."""

    kind = 'CannotModifyAccepted'


class LimitExceeded(GameError):
    kind = 'LimitExceeded'


class MalformedEntry(GameError):
    kind = 'MalformedEntry'
