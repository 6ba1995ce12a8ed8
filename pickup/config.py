import os

basedir = os.path.abspath(os.path.dirname(__file__))


def _env_bool(name, default=False):
    raw = os.environ.get(name)
    if raw is None:
        return default
    return str(raw).strip().lower() in {'1', 'true', 'yes', 'on'}


def _env_int(name, default):
    raw = os.environ.get(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except (TypeError, ValueError):
        return default


def _normalize_database_url(raw_url):
    if not raw_url:
        return raw_url
    if raw_url.startswith('postgres://'):
        return raw_url.replace('postgres://', 'postgresql://', 1)
    return raw_url


def default_logging(level='INFO'):
    return {
        'version': 1,
        'disable_existing_loggers': False,
        'handlers': {
            'default': {'class': 'logging.StreamHandler', 'formatter': 'default'},
        },
        'formatters': {
            'default': {
                'format': '%(levelname)s %(name)s:%(funcName)s:%(lineno)d :: %(message)s',
            },
        },
        'root': {'level': 'INFO', 'handlers': ['default']},
        'loggers': {'pickup': {'level': level}},
    }


class BaseConfig:
    SECRET_KEY = os.environ.get('SECRET_KEY', 'dev-secret-key-change-in-prod')
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    JWT_EXPIRATION_HOURS = _env_int('JWT_EXPIRATION_HOURS', 24)
    JWT_REFRESH_EXPIRATION_DAYS = _env_int('JWT_REFRESH_EXPIRATION_DAYS', 7)
    CORS_ALLOWED_ORIGINS = os.environ.get('CORS_ALLOWED_ORIGINS', '*')
    SOCKETIO_ASYNC_MODE = os.environ.get('SOCKETIO_ASYNC_MODE', 'threading')
    # Rejects game dates earlier than today unless enabled.
    ALLOW_PAST_GAME_DATES = _env_bool('ALLOW_PAST_GAME_DATES', False)
    # 'members' (host + requesters) or 'public'
    PARTICIPANT_LIST_VISIBILITY = os.environ.get('PARTICIPANT_LIST_VISIBILITY', 'members')
    INFLIGHT_TTL_SECONDS = _env_int('INFLIGHT_TTL_SECONDS', 10)
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')


class DevelopmentConfig(BaseConfig):
    DEBUG = True
    SQLALCHEMY_DATABASE_URI = _normalize_database_url(
        os.environ.get(
            'DATABASE_URL',
            'sqlite:///' + os.path.join(basedir, '..', 'pickup_dev.db')
        )
    )


class TestingConfig(BaseConfig):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'
    ALLOW_PAST_GAME_DATES = False
    PARTICIPANT_LIST_VISIBILITY = 'members'
    LOG_LEVEL = 'WARNING'


class ProductionConfig(BaseConfig):
    DEBUG = False
    SQLALCHEMY_DATABASE_URI = _normalize_database_url(os.environ.get('DATABASE_URL'))


config = {
    'development': DevelopmentConfig,
    'testing': TestingConfig,
    'production': ProductionConfig,
}
