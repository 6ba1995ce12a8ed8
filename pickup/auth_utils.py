import secrets
from datetime import datetime, timedelta, timezone
from functools import wraps

import jwt
from flask import request, current_app
from pickup.app import db
from pickup.errors import Unauthenticated
from pickup.models import User


def _encode(payload):
    return jwt.encode(payload, current_app.config['SECRET_KEY'], algorithm='HS256')


def generate_token(user_id):
    """Generate a JWT access token for a user."""
    payload = {
        'user_id': user_id,
        'type': 'access',
        'exp': datetime.now(timezone.utc) + timedelta(
            hours=current_app.config.get('JWT_EXPIRATION_HOURS', 24)
        ),
    }
    return _encode(payload)


def generate_refresh_token(user_id):
    """Generate a long-lived refresh token; ``jti`` keeps rotations distinct."""
    payload = {
        'user_id': user_id,
        'type': 'refresh',
        'jti': secrets.token_hex(16),
        'exp': datetime.now(timezone.utc) + timedelta(
            days=current_app.config.get('JWT_REFRESH_EXPIRATION_DAYS', 7)
        ),
    }
    return _encode(payload)


def issue_token_pair(user):
    """Issue access + refresh tokens and remember the refresh token on the user."""
    refresh_token = generate_refresh_token(user.id)
    user.refresh_token = refresh_token
    db.session.commit()
    return generate_token(user.id), refresh_token


def _normalize_bearer_token(raw_token):
    token = str(raw_token or '').strip()
    if token.startswith('Bearer '):
        token = token.split(' ', 1)[1].strip()
    return token


def _decode_user_from_token(token, token_type='access'):
    normalized = _normalize_bearer_token(token)
    if not normalized:
        return None, 'Authentication required'
    try:
        payload = jwt.decode(
            normalized, current_app.config['SECRET_KEY'], algorithms=['HS256']
        )
    except jwt.ExpiredSignatureError:
        return None, 'Token expired'
    except jwt.InvalidTokenError:
        return None, 'Invalid token'

    if payload.get('type', 'access') != token_type or not payload.get('user_id'):
        return None, 'Invalid token'
    user = db.session.get(User, str(payload['user_id']))
    if not user or user.is_deleted:
        return None, 'User not found'
    return user, None


def get_user_from_token(token):
    """Resolve a user from a raw JWT/bearer token value."""
    user, _ = _decode_user_from_token(token)
    return user


def user_from_refresh_token(token):
    """Resolve the owner of a refresh token that is still the current one."""
    user, error = _decode_user_from_token(token, token_type='refresh')
    if error:
        raise Unauthenticated(error)
    if not user.refresh_token or not secrets.compare_digest(
        user.refresh_token, _normalize_bearer_token(token)
    ):
        raise Unauthenticated('Refresh token revoked')
    return user


def get_optional_user():
    """Return the authenticated user if a valid token is present, else None."""
    auth_header = request.headers.get('Authorization', '')
    if not auth_header:
        return None
    return get_user_from_token(auth_header)


def login_required(f):
    """Decorator to require authentication on a route."""
    @wraps(f)
    def decorated(*args, **kwargs):
        auth_header = request.headers.get('Authorization', '')
        user, error = _decode_user_from_token(auth_header)
        if error:
            raise Unauthenticated(error)
        request.current_user = user
        return f(*args, **kwargs)
    return decorated
