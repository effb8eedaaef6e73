import os

class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-will-never-guess'
    # Round clock (milliseconds); the timer takes one second off per tick
    GAME_TIME_LIMIT_MS = int(os.environ.get('GAME_TIME_LIMIT_MS', '120000'))
    # Real-time spacing between ticks (seconds)
    TICK_INTERVAL_SEC = float(os.environ.get('TICK_INTERVAL_SEC', '1'))
    # Optional: debounce advance/restart actions (ms). 0 disables.
    CONTROLLER_DEBOUNCE_MS = int(os.environ.get('CONTROLLER_DEBOUNCE_MS', '0'))
    # Grace period before a session whose owner disconnected is torn down (seconds)
    OWNER_GRACE_SEC = float(os.environ.get('OWNER_GRACE_SEC', '2'))
    # Sessions untouched for this long are ended when the next game is created (seconds)
    SESSION_IDLE_SEC = float(os.environ.get('SESSION_IDLE_SEC', '900'))
