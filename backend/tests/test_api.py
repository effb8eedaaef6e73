from defuse import models
from defuse.models import get_session
from defuse.services.games import sessions
from defuse.services.games.scheduler import tick_session
from defuse.services.games.sessions import end_session


def test_index(client):
    res = client.get('/')
    assert res.status_code == 200
    assert 'message' in res.get_json()


def test_create_game(client):
    res = client.post('/api/games/create')
    assert res.status_code == 201
    data = res.get_json()
    assert 'game_code' in data
    assert len(data['game_code']) == 4


def test_unknown_game_is_404(client):
    assert client.get('/api/games/ZZZZ/state').status_code == 404
    assert client.post('/api/games/ZZZZ/advance').status_code == 404
    assert client.post('/api/games/ZZZZ/select', json={'number': 1}).status_code == 404
    assert client.post('/api/games/ZZZZ/restart').status_code == 404


def test_intro_rules_then_active(client, new_game):
    state = client.get(f'/api/games/{new_game}/state').get_json()
    assert state['stage'] == 'intro'
    assert state['state']['status'] == 'idle'
    assert state['durations'] == {'time_limit_ms': 120000, 'tick_interval_sec': 0.0}

    adv = client.post(f'/api/games/{new_game}/advance').get_json()
    assert adv['stage'] == 'rules'
    assert adv['state']['status'] == 'idle'

    adv = client.post(f'/api/games/{new_game}/advance').get_json()
    assert adv['stage'] == 'active'
    game = adv['state']
    assert game['active'] is True
    assert game['time_remaining_ms'] == 120000
    assert game['timer_display'] == '2:00'
    assert game['current_number'] != game['target_number']
    assert 1 <= len(game['candidates']) <= 5

    # Further confirms are ignored while playing
    again = client.post(f'/api/games/{new_game}/advance').get_json()
    assert again['stage'] == 'active'
    assert again['state'] == game


def test_state_lookup_is_case_insensitive(client, new_game):
    assert client.get(f'/api/games/{new_game.lower()}/state').status_code == 200


def test_select_before_start_conflicts(client, new_game):
    res = client.post(f'/api/games/{new_game}/select', json={'number': 1})
    assert res.status_code == 409


def test_select_validation(client, started_game):
    assert client.post(f'/api/games/{started_game}/select', json={}).status_code == 400
    assert client.post(f'/api/games/{started_game}/select', json={'number': 'three'}).status_code == 400
    assert client.post(f'/api/games/{started_game}/select', json={'number': True}).status_code == 400

    candidates = client.get(f'/api/games/{started_game}/state').get_json()['state']['candidates']
    res = client.post(f'/api/games/{started_game}/select', json={'number': max(candidates) + 1000})
    assert res.status_code == 400
    assert res.get_json()['candidates'] == candidates


def test_select_offered_number(client, started_game):
    before = client.get(f'/api/games/{started_game}/state').get_json()['state']
    res = client.post(f'/api/games/{started_game}/select', json={'number': before['candidates'][0]})
    assert res.status_code == 200
    data = res.get_json()
    assert data['outcome'] in ('continue', 'win')
    if data['outcome'] == 'continue':
        assert data['state']['current_operator'] == before['next_operator']


def test_winning_selection_finishes_game(client, started_game):
    session = get_session(started_game)
    engine = session.engine
    engine.current_number = 8
    engine.current_operator = '*'
    engine.candidates = (3, 4)
    engine.target_number = 24

    res = client.post(f'/api/games/{started_game}/select', json={'number': 3})
    data = res.get_json()
    assert data['outcome'] == 'win'
    assert data['stage'] == 'finished'
    assert data['state']['status'] == 'won'

    res = client.post(f'/api/games/{started_game}/select', json={'number': 4})
    assert res.status_code == 409


def test_restart_requires_started_game(client, new_game):
    assert client.post(f'/api/games/{new_game}/restart').status_code == 400
    client.post(f'/api/games/{new_game}/advance')
    assert client.post(f'/api/games/{new_game}/restart').status_code == 400


def test_restart_after_win(client, started_game):
    session = get_session(started_game)
    engine = session.engine
    engine.current_number, engine.current_operator = 5, '+'
    engine.candidates, engine.target_number = (5,), 10
    client.post(f'/api/games/{started_game}/select', json={'number': 5})
    assert client.get(f'/api/games/{started_game}/state').get_json()['stage'] == 'finished'

    res = client.post(f'/api/games/{started_game}/restart')
    assert res.status_code == 200
    data = res.get_json()
    assert data['stage'] == 'active'
    assert data['state']['status'] == 'active'
    assert data['state']['time_remaining_ms'] == 120000


def test_advance_is_debounced(flask_app, client, new_game):
    flask_app.config['CONTROLLER_DEBOUNCE_MS'] = 60000
    assert client.post(f'/api/games/{new_game}/advance').status_code == 200
    res = client.post(f'/api/games/{new_game}/advance')
    assert res.status_code == 202
    assert res.get_json()['message'] == 'debounced'
    assert client.get(f'/api/games/{new_game}/state').get_json()['stage'] == 'rules'


def test_idle_session_is_evicted_on_create(flask_app, client, new_game):
    flask_app.config['SESSION_IDLE_SEC'] = 60
    models._sessions[new_game].last_activity -= 3600
    fresh = client.post('/api/games/create').get_json()['game_code']
    assert new_game not in models._sessions
    assert client.get(f'/api/games/{new_game}/state').status_code == 404
    assert client.get(f'/api/games/{fresh}/state').status_code == 200


def test_recent_session_survives_sweep(flask_app, client, new_game):
    flask_app.config['SESSION_IDLE_SEC'] = 60
    client.post('/api/games/create')
    assert new_game in models._sessions


def test_played_sessions_do_not_pile_up(flask_app, client):
    flask_app.config['SESSION_IDLE_SEC'] = 0
    for _ in range(20):
        code = client.post('/api/games/create').get_json()['game_code']
        client.post(f'/api/games/{code}/advance')
        client.post(f'/api/games/{code}/advance')
        assert client.post(f'/api/games/{code}/restart').status_code == 200
    assert list(models._sessions) == [code]


def test_end_session_drops_debounce_keys(flask_app, client, new_game):
    flask_app.config['CONTROLLER_DEBOUNCE_MS'] = 60000
    client.post(f'/api/games/{new_game}/advance')
    assert f'advance:{new_game}' in sessions._last_controller_action
    assert end_session(flask_app, new_game) is True
    assert f'advance:{new_game}' not in sessions._last_controller_action
    assert end_session(flask_app, new_game) is False


def test_restart_retires_previous_timer(flask_app, client, started_game):
    session = get_session(started_game)
    old_epoch = session.timer_epoch
    assert client.post(f'/api/games/{started_game}/restart').status_code == 200
    assert session.timer_epoch != old_epoch
    assert tick_session(flask_app, started_game, old_epoch) is False
    assert session.engine.time_remaining_ms == 120000
    assert tick_session(flask_app, started_game, session.timer_epoch) is True
    assert session.engine.time_remaining_ms == 119000
