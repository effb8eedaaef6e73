from flask_socketio import join_room, leave_room, emit
from defuse import socketio
from flask import current_app, request
from defuse.errors import DefuseError
from defuse.models import get_session
from defuse.services.games.sessions import advance_session, end_session, restart_session, select_number
from typing import Dict, Any
import time


def handle_connect():
    emit('connected', {'message': 'Connected to /ws'})


def handle_disconnect(*args):
    # On disconnect, if this socket owned its session and no other owner
    # socket remains, end the session for that game code
    ctx = _sid_to_ctx.pop(_get_sid(), None)
    if not ctx:
        return
    game_code = ctx.get('game_code')
    if not (ctx.get('is_session_owner') and game_code):
        return
    session = get_session(game_code)
    if session:
        with session.lock:
            session.owner_count = max(0, session.owner_count - 1)
    app = current_app._get_current_object()
    # In tests, end immediately for determinism; in prod, allow grace period
    if app.config.get('TESTING'):
        if not session or session.owner_count == 0:
            end_session(app, game_code)
        return
    _schedule_end_if_no_owner(app, game_code, float(app.config.get('OWNER_GRACE_SEC', 2.0)))


def handle_join_game(data):
    game_code = (data or {}).get('game_code')
    is_session_owner = bool((data or {}).get('is_session_owner'))
    if not game_code:
        emit('error', {'message': 'game_code is required'})
        return
    session = get_session(game_code)
    if not session:
        emit('error', {'message': 'Game not found'})
        return
    join_room(session.room)
    _sid_to_ctx[_get_sid()] = {'game_code': session.code, 'is_session_owner': is_session_owner}
    if is_session_owner:
        with session.lock:
            session.owner_count += 1
        _cancel_scheduled_end(session.code)
    emit('joined', {'room': session.room})
    emit('state_update', {'game_code': session.code, 'stage': session.stage, 'state': session.engine.snapshot().to_dict()})


def handle_leave_game(data):
    game_code = (data or {}).get('game_code')
    if not game_code:
        emit('error', {'message': 'game_code is required'})
        return
    room = f"game:{game_code.upper()}"
    leave_room(room)
    emit('left', {'room': room})
    # Explicit quit by the owner ends the session immediately
    ctx = _sid_to_ctx.get(_get_sid())
    if ctx and ctx.get('is_session_owner') and ctx.get('game_code') == game_code.upper():
        end_session(current_app._get_current_object(), game_code.upper())


def handle_advance(data=None):
    session = _session_for(data)
    if session:
        advance_session(current_app._get_current_object(), session)


def handle_select(data):
    session = _session_for(data)
    if not session:
        return
    number = (data or {}).get('number')
    if not isinstance(number, int) or isinstance(number, bool):
        emit('error', {'message': 'number must be an integer'})
        return
    try:
        outcome = select_number(session, number)
    except DefuseError as exc:
        emit('error', {'message': str(exc)})
        return
    emit('selected', {'game_code': session.code, 'number': number, 'outcome': outcome.value})


def handle_restart(data=None):
    session = _session_for(data)
    if not session:
        return
    try:
        restart_session(current_app._get_current_object(), session)
    except DefuseError as exc:
        emit('error', {'message': str(exc)})


def handle_ping(data):
    emit('pong', data or {})

# ---- Session owner lifecycle helpers ----

_sid_to_ctx: Dict[str, Dict[str, Any]] = {}
_end_deadline: Dict[str, float] = {}

def _get_sid() -> str:
    # request.sid exists in Socket.IO context
    return request.sid  # type: ignore

def _session_for(data):
    """Resolve the session from the payload, falling back to the socket's joined game."""
    game_code = (data or {}).get('game_code') if isinstance(data, dict) else None
    if not game_code:
        game_code = (_sid_to_ctx.get(_get_sid()) or {}).get('game_code')
    session = get_session(game_code)
    if not session:
        emit('error', {'message': 'Game not found'})
    return session

def _schedule_end_if_no_owner(app, game_code: str, delay_sec: float = 2.0) -> None:
    session = get_session(game_code)
    if session and session.owner_count > 0:
        return
    _end_deadline[game_code] = time.time() + delay_sec

    def _runner(code: str, deadline: float):
        sleep_for = max(0.0, deadline - time.time())
        if sleep_for:
            time.sleep(sleep_for)
        current = get_session(code)
        if (not current or current.owner_count == 0) and _end_deadline.get(code) == deadline:
            _end_deadline.pop(code, None)
            with app.app_context():
                end_session(app, code)

    socketio.start_background_task(_runner, game_code, _end_deadline[game_code])

def _cancel_scheduled_end(game_code: str) -> None:
    _end_deadline.pop(game_code, None)


def register_socketio_handlers(testing: bool = False) -> None:
    """Register Socket.IO event handlers.

    Always register on namespace '/ws'. When testing is True, also mirror
    handlers on the default namespace '/' to accommodate the test harness.
    """
    namespaces = ['/ws', '/'] if testing else ['/ws']
    for namespace in namespaces:
        socketio.on_event('connect', handle_connect, namespace=namespace)
        socketio.on_event('disconnect', handle_disconnect, namespace=namespace)
        socketio.on_event('join_game', handle_join_game, namespace=namespace)
        socketio.on_event('leave_game', handle_leave_game, namespace=namespace)
        socketio.on_event('advance', handle_advance, namespace=namespace)
        socketio.on_event('select', handle_select, namespace=namespace)
        socketio.on_event('restart', handle_restart, namespace=namespace)
        socketio.on_event('ping', handle_ping, namespace=namespace)
