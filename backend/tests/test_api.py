from doko.services.games.session import clear_sessions, storage_key
from doko.storage import GameStore

PLAYERS = [{'name': 'Anna'}, {'name': 'Ben'}, {'name': 'Clara'}, {'name': 'Dirk'}]


def _create(client, mode='normal', **extra):
    res = client.post('/api/games/create', json={'players': PLAYERS, 'spritze_mode': mode, **extra})
    assert res.status_code == 201
    return res.get_json()


def test_index(client):
    res = client.get('/')
    assert res.status_code == 200
    assert 'Doppelkopf' in res.get_json()['message']


def test_create_game(client):
    game = _create(client)
    assert game['id']
    assert [p['id'] for p in game['players']] == ['player-1', 'player-2', 'player-3', 'player-4']
    assert game['players'][0]['color'] == '#FF6B6B'
    assert game['current_round_index'] == 0
    assert game['current_round']['round_number'] == 1
    assert game['current_round']['spritze_state'] == {'selected_types': []}
    assert game['can_reset'] is False
    assert game['config']['enabled_spritze_types'] == ['below_90', 'below_60', 'below_30', 'schwarz']


def test_create_game_validation(client):
    res = client.post('/api/games/create', json={'players': PLAYERS[:3], 'spritze_mode': 'normal'})
    assert res.status_code == 400
    body = res.get_json()
    assert body['kind'] == 'InvalidInput'
    assert body['context']['operation'] == 'validate_game_config'

    res = client.post('/api/games/create', data='nope', content_type='text/plain')
    assert res.status_code == 400
    assert res.get_json()['kind'] == 'InvalidInput'

    res = client.post('/api/games/create', json={'spritze_mode': 'normal'})
    assert res.status_code == 400
    assert res.get_json()['kind'] == 'MalformedEntry'


def test_play_a_round(client):
    game = _create(client)
    gid = game['id']

    res = client.post(f'/api/games/{gid}/rounds/0/winners', json={'player_id': 'player-1'})
    assert res.status_code == 200
    assert res.get_json()['current_round']['winners'] == ['player-1']

    res = client.put(f'/api/games/{gid}/rounds/0/spritze', json={'selected_types': ['below_90'], 'announced_by': ['player-2']})
    assert res.status_code == 200

    res = client.post(f'/api/games/{gid}/rounds/0/accept')
    assert res.status_code == 200
    state = res.get_json()
    assert state['rounds'][0]['is_accepted'] is True
    assert state['rounds'][0]['points_awarded'] == 40
    assert [p['total_score'] for p in state['players']] == [40, 0, 0, 0]
    assert [p['position'] for p in state['players']] == [1, 2, 2, 2]
    assert state['current_round_index'] == 1
    assert state['current_round']['carry_over_spritzes'] == [
        {'player_id': 'player-2', 'rounds_remaining': 4, 'origin_round_index': 0, 'type': 'announcement'}
    ]
    assert state['can_reset'] is True

    fetched = client.get(f'/api/games/{gid}/state').get_json()
    assert fetched['rounds'] == state['rounds']


def test_round_errors_map_to_statuses(client):
    gid = _create(client)['id']
    client.post(f'/api/games/{gid}/rounds/0/accept')

    res = client.post(f'/api/games/{gid}/rounds/0/accept')
    assert res.status_code == 409
    assert res.get_json()['kind'] == 'AlreadyAccepted'

    res = client.post(f'/api/games/{gid}/rounds/0/winners', json={'player_id': 'player-1'})
    assert res.status_code == 409
    assert res.get_json()['kind'] == 'CannotModifyAccepted'

    res = client.put(f'/api/games/{gid}/rounds/1/spritze', json={'custom_count': 3})
    assert res.status_code == 400
    assert res.get_json()['kind'] == 'InconsistentState'

    res = client.post(f'/api/games/{gid}/rounds/7/accept')
    assert res.status_code == 404
    assert res.get_json()['kind'] == 'IndexOutOfBounds'

    res = client.get('/api/games/does-not-exist/state')
    assert res.status_code == 404
    assert res.get_json()['kind'] == 'NoActiveGameState'


def test_error_context_is_filtered(client, flask_app):
    res = client.post('/api/games/create', json={'players': PLAYERS, 'spritze_mode': 'tournament'})
    body = res.get_json()
    assert set(body['context']) <= {'operation', 'timestamp', 'mode'}


def test_reset_flow(client):
    gid = _create(client)['id']
    client.post(f'/api/games/{gid}/rounds/0/winners', json={'player_id': 'player-2'})
    client.post(f'/api/games/{gid}/rounds/0/accept')
    client.post(f'/api/games/{gid}/rounds/1/winners', json={'player_id': 'player-3'})
    client.post(f'/api/games/{gid}/rounds/1/accept')

    assert client.get(f'/api/games/{gid}/rounds/0/can-reset').get_json() == {'can_reset': False}
    assert client.get(f'/api/games/{gid}/rounds/1/can-reset').get_json() == {'can_reset': True}

    res = client.post(f'/api/games/{gid}/rounds/0/reset')
    assert res.status_code == 409
    assert res.get_json()['kind'] == 'NotLastAccepted'

    res = client.post(f'/api/games/{gid}/rounds/1/reset')
    assert res.status_code == 200
    state = res.get_json()
    assert [p['total_score'] for p in state['players']] == [0, 10, 0, 0]
    assert state['current_round']['round_number'] == 2

    res = client.post(f'/api/games/{gid}/reset-last')
    assert res.status_code == 200
    state = res.get_json()
    assert [p['total_score'] for p in state['players']] == [0, 0, 0, 0]
    assert state['can_reset'] is False

    res = client.post(f'/api/games/{gid}/reset-last')
    assert res.status_code == 409
    assert res.get_json()['kind'] == 'NoAcceptedRounds'


def test_custom_mode_game(client):
    gid = _create(client, mode='custom')['id']
    client.post(f'/api/games/{gid}/rounds/0/winners', json={'player_id': 'player-4'})
    res = client.put(f'/api/games/{gid}/rounds/0/spritze', json={'custom_count': 2})
    assert res.get_json()['current_round']['spritze_state'] == {'custom_count': 2}
    state = client.post(f'/api/games/{gid}/rounds/0/accept').get_json()
    assert state['players'][3]['total_score'] == 40
    assert state['current_round']['carry_over_spritzes'] == []

    res = client.put(f'/api/games/{gid}/rounds/1/spritze', json={'custom_count': 1, 'announced_by': ['player-1']})
    assert res.status_code == 400
    assert res.get_json()['kind'] == 'InconsistentState'


def test_spritze_types(client):
    types = client.get('/api/games/spritze-types').get_json()
    assert {t['type'] for t in types} == {
        'below_90', 'below_60', 'below_30', 'schwarz', 'against_queens', 'solo', 'announced',
    }


def test_rank_players(client):
    roster = [
        {'id': 'a', 'name': 'A', 'color': '#111111', 'total_score': 30},
        {'id': 'b', 'name': 'B', 'color': '#222222', 'total_score': 30},
        {'id': 'c', 'name': 'C', 'color': '#333333', 'total_score': 10},
    ]
    res = client.post('/api/games/positions', json={'players': roster})
    assert res.status_code == 200
    assert [p['position'] for p in res.get_json()] == [1, 1, 2]

    res = client.post('/api/games/positions', json={'players': [{'id': 'a', 'total_score': -1}]})
    assert res.status_code == 400
    assert res.get_json()['kind'] == 'MalformedEntry'

    res = client.post('/api/games/positions', json={'players': [roster[0], roster[0]]})
    assert res.status_code == 400
    assert res.get_json()['kind'] == 'InvalidInput'


def test_state_is_persisted_and_reloaded(client, flask_app):
    gid = _create(client)['id']
    client.post(f'/api/games/{gid}/rounds/0/winners', json={'player_id': 'player-1'})
    client.post(f'/api/games/{gid}/rounds/0/accept')

    stored = GameStore().load(storage_key(gid))
    assert stored['id'] == gid
    assert stored['current_round_index'] == 1

    clear_sessions()
    res = client.get(f'/api/games/{gid}/state')
    assert res.status_code == 200
    assert res.get_json()['players'][0]['total_score'] == 10


def test_clear_game(client):
    gid = _create(client)['id']
    res = client.delete(f'/api/games/{gid}')
    assert res.status_code == 200
    assert res.get_json() == {'message': 'Game cleared'}
    assert GameStore().load(storage_key(gid)) is None
    assert client.get(f'/api/games/{gid}/state').status_code == 404


def test_cli_list_and_reset(client, flask_app):
    gid = _create(client)['id']
    runner = flask_app.test_cli_runner()
    result = runner.invoke(args=['list-games'])
    assert gid in result.output

    result = runner.invoke(args=['db-reset'])
    assert 'reset' in result.output
    assert GameStore().keys() == []
