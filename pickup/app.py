from logging.config import dictConfig

from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from flask_socketio import SocketIO
from flask_cors import CORS
from pickup.config import config, default_logging

db = SQLAlchemy()
socketio = SocketIO()


def _parse_allowed_origins(raw_origins):
    if not raw_origins:
        return '*'

    if isinstance(raw_origins, (list, tuple, set)):
        cleaned = [origin for origin in raw_origins if origin]
        return cleaned or '*'

    raw_text = str(raw_origins).strip()
    if not raw_text or raw_text == '*':
        return '*'

    origins = [origin.strip() for origin in raw_text.split(',') if origin.strip()]
    return origins or '*'


def create_app(config_name='development'):
    app = Flask(__name__)
    app.config.from_object(config[config_name])
    dictConfig(default_logging(app.config.get('LOG_LEVEL', 'INFO')))

    allowed_origins = _parse_allowed_origins(app.config.get('CORS_ALLOWED_ORIGINS', '*'))
    if str(config_name).strip().lower() == 'production':
        secret_key = str(app.config.get('SECRET_KEY') or '').strip()
        if not secret_key or secret_key == 'dev-secret-key-change-in-prod':
            raise RuntimeError('SECRET_KEY must be set to a non-default value in production')
        if allowed_origins == '*':
            raise RuntimeError('CORS_ALLOWED_ORIGINS must be explicitly set in production')

    db.init_app(app)
    socketio.init_app(
        app,
        cors_allowed_origins=allowed_origins,
        async_mode=app.config.get('SOCKETIO_ASYNC_MODE', 'threading'),
    )
    CORS(app, resources={r'/api/*': {'origins': allowed_origins}})

    from pickup.errors import register_error_handlers
    from pickup.services.inflight import InFlightRequests

    register_error_handlers(app)
    app.extensions['inflight'] = InFlightRequests(
        ttl_seconds=app.config.get('INFLIGHT_TTL_SECONDS', 10),
    )

    from pickup.routes.auth import auth_bp
    from pickup.routes.games import games_bp
    from pickup.routes.users import users_bp
    from pickup.routes import live  # noqa: F401

    app.register_blueprint(auth_bp, url_prefix='/api/auth')
    app.register_blueprint(games_bp, url_prefix='/api/games')
    app.register_blueprint(users_bp, url_prefix='/api/users')

    with app.app_context():
        from pickup import models  # noqa: F401
        db.create_all()

    return app
