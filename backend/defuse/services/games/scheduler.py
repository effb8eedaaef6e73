import time

from defuse import socketio
from defuse.models import GameSession, get_session
from .engine import Outcome


def schedule_tick_timer(app, game_code: str) -> None:
    """Start the once-per-interval clock for the session's running game.

    - No-ops in TESTING mode unless ENABLE_SCHEDULER_IN_TESTS is set
    - Arming a new timer retires any earlier one for the same session
    - Stops on its own once the game is won, lost or restarted
    """
    if app.config.get('TESTING') and not app.config.get('ENABLE_SCHEDULER_IN_TESTS'):
        return

    session = get_session(game_code)
    if not session or not session.engine.active:
        return

    with session.lock:
        epoch = session.cancel_timer()
        interval = float(app.config.get('TICK_INTERVAL_SEC', 1))
        app.logger.info(
            f"[timer-set] game={session.code} epoch={epoch} interval={interval}s "
            f"remaining_ms={session.engine.time_remaining_ms}"
        )

    def _worker(code: str, expected_epoch: int, delay: float):
        while True:
            time.sleep(delay)
            with app.app_context():
                if not tick_session(app, code, expected_epoch):
                    return

    if app.config.get('TESTING'):
        _worker(session.code, epoch, interval)
    else:
        socketio.start_background_task(_worker, session.code, epoch, interval)


def tick_session(app, game_code: str, epoch: int) -> bool:
    """Deliver one tick. Returns False when the timer that sent it should stop."""
    session = get_session(game_code)
    if session is None:
        app.logger.info(f"[timer-abort] game={game_code} session gone")
        return False
    with session.lock:
        if session.timer_epoch != epoch or not session.engine.active:
            app.logger.info(
                f"[timer-abort] game={game_code} epoch={epoch} current_epoch={session.timer_epoch} "
                f"status={session.engine.status}"
            )
            return False
        outcome = session.engine.tick()
    return outcome == Outcome.CONTINUE


def cancel_tick_timer(app, session: GameSession) -> None:
    with session.lock:
        epoch = session.cancel_timer()
    app.logger.info(f"[timer-cancel] game={session.code} epoch={epoch}")
