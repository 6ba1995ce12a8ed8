from flask import Blueprint, request, jsonify, current_app
from pickup.auth_utils import get_optional_user, login_required
from pickup.errors import Forbidden, ValidationError
from pickup.routes.live import emit_game_update
from pickup.services import game_lifecycle as lifecycle

games_bp = Blueprint('games', __name__)


def _json_body():
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError('Invalid JSON payload')
    return data


def _inflight():
    return current_app.extensions['inflight']


@games_bp.route('', methods=['GET'])
def get_games():
    """List open games with their creator summary."""
    skill = request.args.get('skill_level', '')
    games = lifecycle.list_open_games(skill_level=skill)
    return jsonify({'games': [lifecycle.game_view(game) for game in games]})


@games_bp.route('', methods=['POST'])
@login_required
def create_game():
    game = lifecycle.create_game(request.current_user, _json_body())
    return jsonify({'game': lifecycle.game_view(game, approved=0)}), 201


@games_bp.route('/user', methods=['GET'])
@games_bp.route('/user/<user_id>', methods=['GET'])
@login_required
def get_my_games(user_id=None):
    """Join requests of the caller, each with its game and the game's creator."""
    uid = request.current_user.id
    if user_id is not None and user_id != uid:
        raise Forbidden('You can only view your own joined games')

    with _inflight().claim(uid, 'my_games'):
        participations = lifecycle.list_user_games(uid)
        return jsonify({
            'participations': [p.to_dict(include_game=True) for p in participations],
        })


@games_bp.route('/<game_id>', methods=['GET'])
def get_game(game_id):
    game = lifecycle.get_game(game_id)
    return jsonify({'game': lifecycle.game_view(game)})


@games_bp.route('/<game_id>', methods=['PUT'])
@login_required
def update_game(game_id):
    game = lifecycle.update_game(game_id, request.current_user, _json_body())
    view = lifecycle.game_view(game)
    emit_game_update(game, 'game_updated', approved=view['approved_count'])
    return jsonify({'game': view})


@games_bp.route('/<game_id>', methods=['DELETE'])
@login_required
def delete_game(game_id):
    game = lifecycle.delete_game(game_id, request.current_user)
    emit_game_update(game, 'game_deleted')
    return jsonify({'message': 'Game deleted successfully'})


@games_bp.route('/<game_id>/join', methods=['POST'])
@login_required
def join_game(game_id):
    with _inflight().claim(request.current_user.id, f'join:{game_id}'):
        participant = lifecycle.request_join(game_id, request.current_user)
    emit_game_update(participant.game, 'join_requested')
    return jsonify({'participant': participant.to_dict()}), 201


@games_bp.route('/<game_id>/participants', methods=['GET'])
def get_participants(game_id):
    participants = lifecycle.list_participants(game_id, get_optional_user())
    return jsonify({'participants': [p.to_dict() for p in participants]})


@games_bp.route('/<game_id>/participants/<participant_id>', methods=['PUT'])
@login_required
def update_participant_status(game_id, participant_id):
    """Approve or reject a join request (game creator only)."""
    data = _json_body()
    participant = lifecycle.decide_participant(
        game_id, participant_id, request.current_user, data.get('status'),
    )
    game = participant.game
    emit_game_update(
        game, f'participant_{participant.status}',
        approved=lifecycle.approved_count(game.id),
    )
    return jsonify({'participant': participant.to_dict()})
