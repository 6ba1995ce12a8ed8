"""Live game rooms over Socket.IO."""
import re

from flask import request
from flask_socketio import emit, join_room, leave_room
from pickup.app import socketio
from pickup.auth_utils import get_user_from_token
from pickup.models import Game
from pickup.services.game_lifecycle import can_view_participants
from pickup.time_utils import utcnow_naive

_ROOM_PATTERN = re.compile(r'^game_([0-9a-fA-F-]{36})$')


def game_room(game_id):
    return f'game_{game_id}'


def _authorize_socket_join(room, token):
    user = get_user_from_token(token)
    if not user:
        return None, 'Authentication required'

    room_match = _ROOM_PATTERN.match(room)
    if not room_match:
        return None, 'Invalid room'

    game = Game.active().filter_by(id=room_match.group(1)).first()
    if not game:
        return None, 'Game not found'
    if not can_view_participants(game, user):
        return None, 'Forbidden room'

    return user, None


def emit_game_update(game, reason, approved=None):
    payload = {
        'game_id': game.id,
        'reason': reason,
        'status': game.status,
        'updated_at': utcnow_naive().isoformat(),
    }
    if approved is not None:
        payload['approved_count'] = approved
    socketio.emit('game_update', payload, room=game_room(game.id))


@socketio.on('join')
def on_join(data):
    payload = data if isinstance(data, dict) else {}
    room = str(payload.get('room') or '').strip()
    token = payload.get('token') or request.args.get('token') or ''
    _, error = _authorize_socket_join(room, token)
    if error:
        emit('status', {'error': error})
        return

    join_room(room)
    emit('status', {'message': f'Joined {room}'})


@socketio.on('leave')
def on_leave(data):
    room = data.get('room', '') if isinstance(data, dict) else ''
    if room:
        leave_room(room)
