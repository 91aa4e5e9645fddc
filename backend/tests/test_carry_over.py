import pytest

from doko.services.games.carry_over import (
    deduplicate_carry_overs,
    failed_announcers,
    generate_announcement_carry_overs,
    generate_carry_over_spritzes,
    get_player_carry_overs,
    get_total_carry_over_count,
    player_has_carry_overs,
    process_carry_over_spritzes,
    remove_carry_overs_from_round,
)
from doko.services.games.errors import InvalidInput, LimitExceeded, MalformedEntry
from doko.services.games.rules import Rules
from doko.services.games.types import CarryOverSpritze, Round, SpritzeState

PLAYERS = ['player-1', 'player-2', 'player-3', 'player-4']
ROUND_ID = '0b7b6a9e-2f1d-4c3a-9d1e-5f6a7b8c9d0e'


def _round(number=3, winners=(), announced_by=None):
    return Round(
        id=ROUND_ID,
        round_number=number,
        spritze_state=SpritzeState(selected_types=(), announced_by=announced_by),
        winners=tuple(winners),
    )


def _carry(player_id, remaining=4, origin=0, kind='announcement'):
    return CarryOverSpritze(player_id=player_id, rounds_remaining=remaining, origin_round_index=origin, type=kind)


def test_loss_carry_overs_for_every_non_winner():
    result = generate_carry_over_spritzes(_round(winners=['player-1', 'player-3']), PLAYERS)
    assert [c.player_id for c in result] == ['player-2', 'player-4']
    assert all(c.type == 'loss' for c in result)
    assert all(c.rounds_remaining == 4 for c in result)
    assert all(c.origin_round_index == 2 for c in result)


def test_duration_comes_from_rules():
    result = generate_carry_over_spritzes(_round(winners=['player-1']), PLAYERS, Rules(carry_over_duration=2))
    assert {c.rounds_remaining for c in result} == {2}


def test_generation_rejects_unknown_winner():
    with pytest.raises(InvalidInput):
        generate_carry_over_spritzes(_round(winners=['ghost']), PLAYERS)


def test_generation_rejects_empty_player_list():
    with pytest.raises(InvalidInput):
        generate_carry_over_spritzes(_round(), [])


def test_generation_rejects_too_many_players():
    ids = [f'p{i}' for i in range(51)]
    with pytest.raises(LimitExceeded):
        generate_carry_over_spritzes(_round(), ids)


def test_failed_announcers_excludes_winners():
    round_ = _round(winners=['player-1', 'player-2'], announced_by=('player-1', 'player-3'))
    assert failed_announcers(round_) == ['player-3']


def test_announcement_carry_overs_only_for_failed_announcers():
    round_ = _round(number=1, winners=['player-1', 'player-2'], announced_by=('player-1', 'player-3'))
    result = generate_announcement_carry_overs(round_, PLAYERS)
    assert result == [_carry('player-3', remaining=4, origin=0, kind='announcement')]


def test_announcement_generation_rejects_unknown_announcer():
    with pytest.raises(InvalidInput):
        generate_announcement_carry_overs(_round(announced_by=('ghost',)), PLAYERS)


def test_process_decrements_and_drops_expired():
    carry = [_carry('player-1', remaining=3), _carry('player-2', remaining=1), _carry('player-3', remaining=2)]
    result = process_carry_over_spritzes(carry)
    assert [(c.player_id, c.rounds_remaining) for c in result] == [('player-1', 2), ('player-3', 1)]


def test_process_never_leaves_zero_entries():
    carry = [_carry('player-1', remaining=r) for r in range(0, 5)]
    assert all(c.rounds_remaining > 0 for c in process_carry_over_spritzes(carry))


def test_process_rejects_malformed_entry():
    with pytest.raises(MalformedEntry):
        process_carry_over_spritzes([
            CarryOverSpritze.model_construct(player_id='', rounds_remaining=2, origin_round_index=0),
        ])
    with pytest.raises(MalformedEntry):
        process_carry_over_spritzes([{'player_id': 'player-1'}])


def test_process_rejects_oversized_list():
    with pytest.raises(LimitExceeded):
        process_carry_over_spritzes([_carry('player-1', origin=i) for i in range(101)])


def test_remove_by_origin():
    carry = [_carry('player-1', origin=0), _carry('player-2', origin=1), _carry('player-3', origin=0)]
    assert remove_carry_overs_from_round(carry, 0) == [_carry('player-2', origin=1)]


def test_remove_rejects_negative_origin():
    with pytest.raises(InvalidInput):
        remove_carry_overs_from_round([], -1)


def test_deduplicate_prefers_loss_entry():
    losses = [_carry('player-1', remaining=4, origin=2, kind='loss')]
    announcements = [_carry('player-1', remaining=2, origin=1), _carry('player-2', remaining=3, origin=1)]
    merged = deduplicate_carry_overs(losses, announcements)
    assert len(merged) == 2
    by_player = {c.player_id: c for c in merged}
    assert by_player['player-1'].type == 'loss'
    assert by_player['player-1'].rounds_remaining == 4
    assert by_player['player-2'].type == 'announcement'


def test_player_queries():
    carry = [_carry('player-1'), _carry('player-1', origin=1), _carry('player-2')]
    assert len(get_player_carry_overs(carry, 'player-1')) == 2
    assert player_has_carry_overs(carry, 'player-2')
    assert not player_has_carry_overs(carry, 'player-4')
    assert get_total_carry_over_count(carry) == 3
    with pytest.raises(InvalidInput):
        get_player_carry_overs(carry, '')
