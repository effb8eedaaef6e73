"""Game domain services: rules, the round engine, session actions and the tick timer.

``rules`` and ``engine`` are pure and know nothing about Flask. HTTP routes
and socket handlers go through ``sessions``, which keeps transport concerns
separated from core game mechanics.
"""
