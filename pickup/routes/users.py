"""User directory and self-service profile routes."""
from logging import getLogger

from flask import Blueprint, request, jsonify
from pickup.app import db
from pickup.models import User
from pickup.auth_utils import login_required
from pickup.errors import Forbidden, NotFound, ValidationError
from pickup.services.game_payloads import parse_skill_level

users_bp = Blueprint('users', __name__)
logger = getLogger(__name__)

_DEFAULT_PAGE_SIZE = 10
_MAX_PAGE_SIZE = 100


def _positive_int_arg(name, default):
    raw = request.args.get(name)
    if raw in (None, ''):
        return default
    try:
        value = int(raw)
    except (TypeError, ValueError):
        raise ValidationError(f'{name} must be a positive integer', field=name) from None
    if value < 1:
        raise ValidationError(f'{name} must be a positive integer', field=name)
    return value


def _get_active_user(user_id):
    user = User.active().filter_by(id=str(user_id)).first()
    if not user:
        raise NotFound('User not found')
    return user


def _require_self(user, action):
    if user.id != request.current_user.id:
        raise Forbidden(f'Not authorized to {action} this user')


@users_bp.route('', methods=['GET'])
@login_required
def list_users():
    page = _positive_int_arg('page', 1)
    limit = min(_positive_int_arg('limit', _DEFAULT_PAGE_SIZE), _MAX_PAGE_SIZE)

    query = User.active().order_by(User.created_at.desc())
    total = query.count()
    users = query.offset((page - 1) * limit).limit(limit).all()
    return jsonify({
        'users': [u.to_dict() for u in users],
        'pagination': {
            'total': total,
            'page': page,
            'limit': limit,
            'total_pages': (total + limit - 1) // limit,
        },
    })


@users_bp.route('/<user_id>', methods=['GET'])
@login_required
def get_user(user_id):
    return jsonify({'user': _get_active_user(user_id).to_dict()})


@users_bp.route('/<user_id>', methods=['PUT'])
@login_required
def update_user(user_id):
    user = _get_active_user(user_id)
    _require_self(user, 'update')

    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError('Invalid JSON payload')

    if 'name' in data:
        name = str(data.get('name') or '').strip()[:120]
        if not name:
            raise ValidationError('Name cannot be empty', field='name')
        user.name = name
    if 'skill_level' in data:
        raw_skill = data.get('skill_level')
        user.skill_level = None if raw_skill in (None, '') else parse_skill_level(raw_skill)

    db.session.commit()
    return jsonify({'message': 'User updated successfully', 'user': user.to_dict()})


@users_bp.route('/<user_id>', methods=['DELETE'])
@login_required
def delete_user(user_id):
    user = _get_active_user(user_id)
    _require_self(user, 'delete')
    user.soft_delete()
    user.refresh_token = None
    db.session.commit()
    logger.info('User %s soft-deleted', user.id)
    return jsonify({'message': 'User deleted successfully'})
