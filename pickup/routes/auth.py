import re
from logging import getLogger

from flask import Blueprint, request, jsonify
from sqlalchemy.exc import IntegrityError
from werkzeug.security import generate_password_hash, check_password_hash
from pickup.app import db
from pickup.models import User
from pickup.auth_utils import issue_token_pair, login_required, user_from_refresh_token
from pickup.errors import Conflict, Unauthenticated, ValidationError
from pickup.services.game_payloads import parse_skill_level

auth_bp = Blueprint('auth', __name__)
logger = getLogger(__name__)

_EMAIL_PATTERN = re.compile(r'^[^@\s]+@[^@\s]+\.[^@\s]+$')


def _password_complexity_error(raw_password):
    password = str(raw_password or '')
    if len(password) < 8:
        return 'Password must be at least 8 characters long'
    if not re.search(r'[A-Za-z]', password) or not re.search(r'\d', password):
        return 'Password must include at least one letter and one number'
    return None


def _normalize_email(raw_email):
    email = str(raw_email or '').strip().lower()
    if not _EMAIL_PATTERN.match(email):
        raise ValidationError('A valid email is required', field='email')
    return email


def _auth_response(user):
    token, refresh_token = issue_token_pair(user)
    return {'token': token, 'refresh_token': refresh_token, 'user': user.to_dict()}


@auth_bp.route('/register', methods=['POST'])
def register():
    data = request.get_json(silent=True)
    if not isinstance(data, dict) or not data.get('email') or not data.get('password'):
        raise ValidationError('Email and password are required')

    email = _normalize_email(data['email'])
    name = str(data.get('name') or '').strip()[:120]
    if not name:
        raise ValidationError('Name is required', field='name')
    password_error = _password_complexity_error(data.get('password'))
    if password_error:
        raise ValidationError(password_error, field='password')

    skill_level = None
    if data.get('skill_level') not in (None, ''):
        skill_level = parse_skill_level(data['skill_level'])

    if User.query.filter_by(email=email).first():
        raise Conflict('User with this email already exists', code='email_taken')

    user = User(
        email=email,
        name=name,
        password_hash=generate_password_hash(data['password']),
        skill_level=skill_level,
    )
    db.session.add(user)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise Conflict('User with this email already exists', code='email_taken') from None
    logger.info('User %s registered', user.id)
    return jsonify(_auth_response(user)), 201


@auth_bp.route('/login', methods=['POST'])
def login():
    data = request.get_json(silent=True)
    if not isinstance(data, dict) or not data.get('email') or not data.get('password'):
        raise ValidationError('Email and password are required')

    email = str(data['email']).strip().lower()
    user = User.active().filter_by(email=email).first()
    if not user or not check_password_hash(user.password_hash, str(data['password'])):
        raise Unauthenticated('Invalid email or password', code='invalid_credentials')
    return jsonify(_auth_response(user))


@auth_bp.route('/refresh', methods=['POST'])
def refresh():
    data = request.get_json(silent=True) or {}
    raw_token = data.get('refresh_token') if isinstance(data, dict) else None
    if not raw_token:
        raise ValidationError('refresh_token is required', field='refresh_token')
    user = user_from_refresh_token(raw_token)
    return jsonify(_auth_response(user))


@auth_bp.route('/logout', methods=['POST'])
@login_required
def logout():
    request.current_user.refresh_token = None
    db.session.commit()
    return jsonify({'message': 'Successfully logged out'})


@auth_bp.route('/me', methods=['GET'])
@login_required
def me():
    return jsonify({'user': request.current_user.to_dict()})
