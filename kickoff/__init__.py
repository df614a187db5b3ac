import random

import click
from flask import Flask
from flask_cors import CORS
from flask_socketio import SocketIO

from kickoff.config import Config

socketio = SocketIO(async_mode=None)


def _origins(raw):
    origins = [o.strip() for o in (raw or '').split(',') if o.strip()]
    if not origins or '*' in origins:
        return '*'
    return origins


def create_app(config_class=Config, rng=None):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)

    allowed_origins = _origins(flask_app.config.get('CORS_ORIGINS'))
    CORS(flask_app, origins=allowed_origins)
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    from kickoff.services.matches import Broadcaster, MatchService
    namespace = flask_app.config.get('SOCKETIO_NAMESPACE', '/')
    flask_app.extensions['kickoff'] = MatchService(
        Broadcaster(socketio.emit, namespace=namespace),
        rng=rng if rng is not None else random.Random(),
        max_rounds=int(flask_app.config.get('MAX_ROUNDS', 5)),
        default_nick=flask_app.config.get('DEFAULT_NICK', 'Guest'),
        finished_retention_sec=int(flask_app.config.get('FINISHED_MATCH_RETENTION_SEC', 0)),
        invite_ttl_sec=int(flask_app.config.get('INVITE_TTL_SEC', 0)),
    )

    from kickoff.main import main
    flask_app.register_blueprint(main)

    from kickoff.socketio_events import register_socketio_handlers
    register_socketio_handlers(namespace=namespace)

    @click.command('prune-matches')
    def prune_matches_command():
        """Expires stale private invites and evicts old finished matches."""
        expired, evicted = flask_app.extensions['kickoff'].prune()
        click.echo(f'Expired {len(expired)} invite(s), evicted {len(evicted)} finished match(es).')

    flask_app.cli.add_command(prune_matches_command)

    return flask_app
