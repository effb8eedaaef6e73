from flask import Flask
from flask_cors import CORS
from flask_socketio import SocketIO
import click
import random
from config import Config

allowed_origins = [
    "http://localhost:5173",
    "http://127.0.0.1:5173",
    "http://localhost:5174",
    "http://127.0.0.1:5174",
]
socketio = SocketIO(cors_allowed_origins=allowed_origins, async_mode=None)

def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)

    CORS(flask_app, supports_credentials=True, origins=allowed_origins)

    # Initialize Socket.IO after app is created
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    from defuse.main import main
    flask_app.register_blueprint(main)

    from defuse.api.games import games
    # Mount game routes under /api to match frontend API client
    flask_app.register_blueprint(games, url_prefix='/api/games')

    # Register Socket.IO event handlers against the initialized socketio instance
    from defuse.socketio_events import register_socketio_handlers
    register_socketio_handlers(testing=flask_app.config.get('TESTING', False))

    @click.command('roll-round')
    @click.option('--current', type=int, required=True, help='Current number.')
    @click.option('--operator', type=click.Choice(['+', '-', '*', '/']), required=True)
    @click.option('--target', type=int, required=True, help='Deactivate number.')
    @click.option('--seed', type=int, default=None, help='Seed for a reproducible round.')
    def roll_round_command(current, operator, target, seed):
        """Generates one round and prints where each choice would lead."""
        from defuse.services.games.rules import (
            apply_operation, generate_round_candidates, preview_next_operator,
        )
        rng = random.Random(seed)
        candidates = generate_round_candidates(current, operator, target, rng)
        click.echo(f'{current} {operator} ? -> {target}')
        for n in candidates:
            click.echo(f'  {n:>3} => {apply_operation(current, operator, n)}')
        click.echo(f'next operator: {preview_next_operator(current, operator, candidates, target, rng)}')

    flask_app.cli.add_command(roll_round_command)

    return flask_app
