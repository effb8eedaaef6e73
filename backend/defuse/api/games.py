from flask import Blueprint, jsonify, request, current_app
from defuse.errors import DefuseError, GameNotActive, InvalidSelection
from defuse.models import create_session, get_session
from defuse.services.games.sessions import (
    advance_session, evict_idle_sessions, is_debounced, restart_session, select_number,
)


games = Blueprint('games', __name__)


def _not_found():
    return jsonify({'error': 'Game not found'}), 404


def _durations():
    cfg = current_app.config
    return {
        'time_limit_ms': int(cfg.get('GAME_TIME_LIMIT_MS', 120000)),
        'tick_interval_sec': float(cfg.get('TICK_INTERVAL_SEC', 1)),
    }


@games.route('/create', methods=['POST'])
def create_game():
    evict_idle_sessions(current_app._get_current_object())
    session = create_session(time_limit_ms=int(current_app.config.get('GAME_TIME_LIMIT_MS', 120000)))
    current_app.logger.info(f"[create] game={session.code}")
    return jsonify({
        'message': 'New game created!',
        'game_code': session.code,
    }), 201


@games.route('/<string:game_code>/state', methods=['GET'])
def get_game_state(game_code):
    session = get_session(game_code)
    if not session:
        return _not_found()
    payload = session.to_dict()
    # Include durations so clients can show countdowns
    payload['durations'] = _durations()
    return jsonify(payload)


@games.route('/<string:game_code>/advance', methods=['POST'])
def advance(game_code):
    session = get_session(game_code)
    if not session:
        return _not_found()
    if is_debounced(current_app, 'advance', game_code):
        return jsonify({'message': 'debounced'}), 202
    advance_session(current_app._get_current_object(), session)
    return jsonify(session.to_dict())


@games.route('/<string:game_code>/select', methods=['POST'])
def select(game_code):
    session = get_session(game_code)
    if not session:
        return _not_found()
    data = request.get_json(silent=True) or {}
    number = data.get('number')
    if number is None:
        return jsonify({'error': 'number is required'}), 400
    if not isinstance(number, int) or isinstance(number, bool):
        return jsonify({'error': 'number must be an integer'}), 400
    try:
        outcome = select_number(session, number)
    except GameNotActive as exc:
        return jsonify({'error': str(exc)}), 409
    except InvalidSelection as exc:
        return jsonify({'error': str(exc), 'candidates': list(exc.candidates)}), 400
    payload = session.to_dict()
    payload['outcome'] = outcome.value
    return jsonify(payload)


@games.route('/<string:game_code>/restart', methods=['POST'])
def restart(game_code):
    session = get_session(game_code)
    if not session:
        return _not_found()
    if is_debounced(current_app, 'restart', game_code):
        return jsonify({'message': 'debounced'}), 202
    try:
        restart_session(current_app._get_current_object(), session)
    except DefuseError as exc:
        return jsonify({'error': str(exc)}), 400
    return jsonify(session.to_dict())
