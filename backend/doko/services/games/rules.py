"""Rule set and sanity ceilings shared by every engine function."""

from dataclasses import dataclass, fields

SPRITZE_MODES = ('normal', 'custom')

# Spritze type -> description
SPRITZE_TYPES = {
    'below_90': 'Losers below 90 points',
    'below_60': 'Losers below 60 points',
    'below_30': 'Losers below 30 points',
    'schwarz': 'Losers at 0 points',
    'against_queens': 'Won against queens',
    'solo': 'Solo game',
    'announced': 'Announced win',
}

DEFAULT_ENABLED_TYPES = ('below_90', 'below_60', 'below_30', 'schwarz')

DEFAULT_PLAYER_COLORS = ('#FF6B6B', '#4ECDC4', '#45B7D1', '#96CEB4')


@dataclass(frozen=True)
class Rules:
    """Configuration record handed to the scoring engine.

    Every limit is a guard against runaway input rather than a game rule,
    except ``base_points``, ``player_count`` and ``carry_over_duration``.
    """

    base_points: int = 10
    player_count: int = 4
    # Rounds a failed announcement keeps counting as a spritze
    carry_over_duration: int = 4
    max_rounds: int = 1000
    max_carry_overs: int = 100
    max_players: int = 50
    # 10 * 2**10 = 10240 points; above this we only warn
    max_safe_spritze_count: int = 10
    max_player_name_length: int = 20

    @classmethod
    def from_config(cls, config) -> 'Rules':
        """Build rules from a Flask config (upper-case keys), ignoring absent ones."""
        values = {}
        for f in fields(cls):
            key = f.name.upper()
            if key in config and config[key] is not None:
                values[f.name] = int(config[key])
        return cls(**values)


DEFAULT_RULES = Rules()
