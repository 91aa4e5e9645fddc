"""Immutable value types for a scoring session.

Pydantic v2 models, frozen so every transition in the engine builds new
instances with ``model_copy(update=...)``. ``model_validate`` /
``model_dump(mode='json')`` give the JSON shape used by the API and the
blob store; ``load_record`` turns a validation failure into
``MalformedEntry``.
"""

from datetime import datetime, timezone
from typing import Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, ValidationError, computed_field, model_serializer, model_validator
from typing_extensions import Annotated, Self

from .errors import MalformedEntry, error_context
from .rules import DEFAULT_ENABLED_TYPES

CARRY_OVER_TYPES = ('loss', 'announcement')

# bool is an int subclass; strict keeps it out of numeric fields
Count = Annotated[int, Field(ge=0, strict=True)]
RoundNumber = Annotated[int, Field(ge=1, strict=True)]
PlayerId = Annotated[str, Field(min_length=1)]


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


def load_record(model, data, operation: str):
    """Validate ``data`` as ``model``, raising MalformedEntry on failure."""
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        first = exc.errors()[0]
        where = '.'.join(str(part) for part in first['loc']) or model.__name__
        raise MalformedEntry(
            f'Invalid {model.__name__}: {where}: {first["msg"]}',
            error_context(operation, field=where, error_count=exc.error_count()),
        ) from exc


class Record(BaseModel):
    model_config = ConfigDict(frozen=True)


class Player(Record):
    id: PlayerId
    name: str
    color: str
    total_score: Count = 0
    position: RoundNumber = 1


class SpritzeState(Record):
    """Bonus selection for one round.

    Normal mode uses ``selected_types`` (plus the optional announcement
    lists); custom mode uses ``custom_count`` alone. Fields of the other
    mode stay ``None`` and are left out of the dump; which shape is legal
    is checked by ``scoring.is_valid_spritze_state``.
    """

    selected_types: Optional[Tuple[str, ...]] = None
    announced_by: Optional[Tuple[str, ...]] = None
    active_announcements: Optional[Tuple[str, ...]] = None
    custom_count: Optional[Count] = None

    @classmethod
    def empty(cls, mode: str) -> 'SpritzeState':
        if mode == 'custom':
            return cls(custom_count=0)
        return cls(selected_types=())

    @property
    def mode(self) -> Optional[str]:
        if self.selected_types is not None and self.custom_count is None:
            return 'normal'
        if self.custom_count is not None and self.selected_types is None:
            return 'custom'
        return None

    @model_serializer(mode='wrap')
    def drop_unused_fields(self, handler):
        return {k: v for k, v in handler(self).items() if v is not None}


class CarryOverSpritze(Record):
    player_id: PlayerId
    rounds_remaining: Count
    origin_round_index: Count
    type: Literal['loss', 'announcement'] = 'announcement'


class PlayerRoundResult(Record):
    player_id: PlayerId
    is_winner: bool
    points_gained: Count


class Round(Record):
    id: str
    round_number: RoundNumber
    spritze_state: SpritzeState
    winners: Tuple[str, ...] = ()
    carry_over_spritzes: Tuple[CarryOverSpritze, ...] = ()
    is_accepted: bool = False
    points_awarded: Optional[Count] = None
    player_results: Tuple[PlayerRoundResult, ...] = ()


class PlayerConfig(Record):
    name: str
    color: str


class GameConfig(Record):
    players: Tuple[PlayerConfig, ...]
    spritze_mode: str
    # Normal mode only
    enabled_spritze_types: Tuple[str, ...] = DEFAULT_ENABLED_TYPES


class GameState(Record):
    """One scoring session.

    Accepted rounds live in an append-only log; the single editable round
    sits in its own slot, so "the active round is the last round" holds by
    construction. ``rounds`` and ``current_round_index`` give the combined
    index-based view the round operations work on, and are what gets
    stored: loading splits ``rounds`` back into log and slot.
    """

    id: str
    config: GameConfig
    players: Tuple[Player, ...]
    accepted_rounds: Tuple[Round, ...] = Field(default=(), exclude=True)
    active_round: Optional[Round] = Field(default=None, exclude=True)
    created_at: str = Field(default_factory=utc_now)
    updated_at: str = Field(default_factory=utc_now)

    @model_validator(mode='before')
    @classmethod
    def split_rounds(cls, data):
        if not isinstance(data, dict) or 'rounds' not in data:
            return data
        data = dict(data)
        rounds = data.pop('rounds')
        stored_index = data.pop('current_round_index', None)
        if not isinstance(rounds, list):
            data['accepted_rounds'] = rounds
            return data
        if stored_index is not None and stored_index != len(rounds) - 1:
            raise ValueError('current_round_index does not point at the last round')
        if rounds and isinstance(rounds[-1], dict) and not rounds[-1].get('is_accepted'):
            data['active_round'] = rounds[-1]
            rounds = rounds[:-1]
        data['accepted_rounds'] = rounds
        return data

    @model_validator(mode='after')
    def check_log_is_closed(self) -> Self:
        for index, r in enumerate(self.accepted_rounds):
            if not r.is_accepted:
                raise ValueError(f'round at index {index} is open but is not the last round')
        if self.active_round is not None and self.active_round.is_accepted:
            raise ValueError('active round is already accepted')
        return self

    @computed_field
    @property
    def rounds(self) -> Tuple[Round, ...]:
        if self.active_round is None:
            return self.accepted_rounds
        return self.accepted_rounds + (self.active_round,)

    @computed_field
    @property
    def current_round_index(self) -> int:
        return len(self.rounds) - 1

    @property
    def player_ids(self) -> Tuple[str, ...]:
        return tuple(p.id for p in self.players)

    def touched(self, **changes) -> 'GameState':
        """Copy with ``changes`` applied and ``updated_at`` refreshed."""
        return self.model_copy(update=dict(changes, updated_at=utc_now()))
