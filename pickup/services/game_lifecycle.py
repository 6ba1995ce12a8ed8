"""Game lifecycle: creation, join requests, host decisions and capacity.

Capacity accounting: the creator holds one of ``max_players`` seats, so at
most ``max_players - 1`` participants can be approved. ``Game.status`` caches
that comparison as ``open``/``full`` until the creator moves the game to a
terminal state (``cancelled``/``completed``), after which it is no longer
recomputed.

Every count-and-act sequence runs inside one transaction with the game row
locked (``SELECT ... FOR UPDATE`` where the backend supports it), and the
approved count is always read before the new row/status is written.
"""
from logging import getLogger

from flask import current_app
from sqlalchemy.exc import IntegrityError

from pickup.app import db
from pickup.errors import Conflict, Forbidden, InvalidOperation, NotFound, Unauthenticated, ValidationError
from pickup.models import (
    GAME_FULL, GAME_OPEN, GAME_STATUSES, PARTICIPANT_APPROVED, PARTICIPANT_PENDING,
    PARTICIPANT_REJECTED, TERMINAL_GAME_STATUSES, Game, GameParticipant,
)
from pickup.services.game_payloads import apply_game_changes, normalize_game_payload, parse_skill_level
from pickup.time_utils import utcnow_naive

logger = getLogger(__name__)

DECISION_STATUSES = (PARTICIPANT_APPROVED, PARTICIPANT_REJECTED)


def _allow_past_dates():
    return bool(current_app.config.get('ALLOW_PAST_GAME_DATES', False))


def approved_count(game_id, exclude_participant_id=None):
    query = GameParticipant.active().filter_by(game_id=game_id, status=PARTICIPANT_APPROVED)
    if exclude_participant_id is not None:
        query = query.filter(GameParticipant.id != exclude_participant_id)
    return query.count()


def derive_status(game, approved):
    """Status implied by the approved count; terminal states are kept as-is."""
    if game.status in TERMINAL_GAME_STATUSES:
        return game.status
    return GAME_FULL if approved >= game.participant_slots else GAME_OPEN


def game_view(game, approved=None):
    if approved is None:
        approved = approved_count(game.id)
    data = game.to_dict()
    data['approved_count'] = approved
    data['open_slots'] = max(0, game.participant_slots - approved)
    return data


def get_game(game_id):
    game = Game.active().filter_by(id=str(game_id)).first()
    if not game:
        raise NotFound('Game not found')
    return game


def _lock_game(game_id):
    stmt = (
        db.select(Game)
        .where(Game.id == str(game_id), Game.deleted_at.is_(None))
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    game = db.session.execute(stmt).scalar_one_or_none()
    if not game:
        raise NotFound('Game not found')
    return game


def _require_creator(game, user, action):
    if game.creator_id != user.id:
        raise Forbidden(f'Only the game creator can {action}')


def _refuse_full(game):
    """Persist the self-healed ``full`` status, then refuse the request."""
    if game.status == GAME_OPEN:
        game.status = GAME_FULL
        db.session.commit()
        logger.info('Game %s marked full after capacity check', game.id)
    raise Conflict('Game is full', code='game_full', game_status=game.status)


def create_game(creator, data):
    game_data = normalize_game_payload(data, allow_past=_allow_past_dates())
    game = Game(creator_id=creator.id, status=GAME_OPEN, **game_data)
    db.session.add(game)
    db.session.commit()
    logger.info('Game %s created by user %s', game.id, creator.id)
    return game


def update_game(game_id, user, data):
    if not isinstance(data, dict):
        raise ValidationError('Invalid JSON payload')
    game = _lock_game(game_id)
    _require_creator(game, user, 'update this game')

    target_status = None
    if data.get('status') is not None:
        target_status = str(data['status']).strip().lower()
        if target_status not in GAME_STATUSES:
            raise ValidationError(
                f'status must be one of: {", ".join(GAME_STATUSES)}', field='status',
            )
        if target_status == game.status:
            target_status = None
        elif target_status not in TERMINAL_GAME_STATUSES:
            raise ValidationError(
                'open and full are maintained automatically; '
                'only cancelled or completed can be set',
                field='status',
            )
        elif game.is_terminal:
            raise InvalidOperation(f'Game is already {game.status}')

    game_data = normalize_game_payload(
        data, partial=True, current=game, allow_past=_allow_past_dates(),
    )
    approved = approved_count(game.id)
    new_max = game_data.get('max_players', game.max_players)
    if new_max - 1 < approved:
        raise Conflict(
            f'max_players cannot be lower than the {approved} approved players plus the host',
            code='capacity_below_roster',
            approved_count=approved,
        )

    apply_game_changes(game, game_data)
    if target_status:
        game.status = target_status
    else:
        game.status = derive_status(game, approved)
    db.session.commit()
    logger.info('Game %s updated by user %s (status=%s)', game.id, user.id, game.status)
    return game


def delete_game(game_id, user):
    game = _lock_game(game_id)
    _require_creator(game, user, 'delete this game')
    now = utcnow_naive()
    game.deleted_at = now
    GameParticipant.active().filter_by(game_id=game.id).update(
        {'deleted_at': now}, synchronize_session=False,
    )
    db.session.commit()
    logger.info('Game %s soft-deleted by user %s', game.id, user.id)
    return game


def request_join(game_id, user):
    """Create a pending join request; preconditions are checked in order."""
    game = _lock_game(game_id)

    if game.creator_id == user.id:
        raise InvalidOperation('You cannot join your own game', code='cannot_join_own_game')

    if game.status != GAME_OPEN:
        raise InvalidOperation(
            f'Cannot join game with status: {game.status}',
            code='game_not_joinable',
            game_status=game.status,
        )

    existing = _existing_request(game.id, user.id)
    if existing:
        raise _duplicate_join(existing)

    if approved_count(game.id) >= game.participant_slots:
        _refuse_full(game)

    participant = GameParticipant(game_id=game.id, user_id=user.id, status=PARTICIPANT_PENDING)
    db.session.add(participant)
    try:
        db.session.flush()
    except IntegrityError:
        db.session.rollback()
        existing = _existing_request(str(game_id), user.id)
        if not existing:
            raise
        raise _duplicate_join(existing) from None
    db.session.commit()
    logger.info('User %s requested to join game %s', user.id, game.id)
    return participant


def _existing_request(game_id, user_id):
    return GameParticipant.query.filter_by(game_id=game_id, user_id=user_id).first()


def _duplicate_join(existing):
    return Conflict(
        'You have already requested to join this game',
        code='duplicate_join_request',
        status=existing.status,
        participant=existing.to_dict(),
    )


def decide_participant(game_id, participant_id, user, status):
    """Approve or reject a join request on behalf of the game's creator."""
    game = _lock_game(game_id)
    participant = GameParticipant.active().filter_by(
        id=str(participant_id), game_id=game.id,
    ).first()
    if not participant:
        raise NotFound('Participant not found')

    _require_creator(game, user, 'approve or reject join requests')

    target = str(status or '').strip().lower()
    if target not in DECISION_STATUSES:
        raise ValidationError(
            'Invalid status. Must be "approved" or "rejected"', field='status',
        )

    if target == PARTICIPANT_APPROVED:
        if game.is_terminal:
            raise InvalidOperation(
                f'Cannot approve players for a {game.status} game',
                code='game_not_joinable',
                game_status=game.status,
            )
        if approved_count(game.id, exclude_participant_id=participant.id) >= game.participant_slots:
            _refuse_full(game)

    participant.status = target
    db.session.flush()

    if target == PARTICIPANT_APPROVED:
        new_status = derive_status(game, approved_count(game.id))
        if new_status != game.status:
            game.status = new_status
            logger.info('Game %s is now %s', game.id, new_status)

    db.session.commit()
    logger.info('Participant %s %s for game %s', participant.id, target, game.id)
    return participant


def list_open_games(skill_level=None):
    query = Game.active().filter_by(status=GAME_OPEN)
    if skill_level and skill_level != 'all':
        query = query.filter_by(skill_level=parse_skill_level(skill_level))
    return query.order_by(Game.date.asc(), Game.start_time.asc()).all()


def can_view_participants(game, user):
    visibility = str(current_app.config.get('PARTICIPANT_LIST_VISIBILITY', 'members')).lower()
    if visibility == 'public':
        return True
    if not user:
        return False
    if game.creator_id == user.id:
        return True
    return GameParticipant.active().filter_by(game_id=game.id, user_id=user.id).first() is not None


def list_participants(game_id, user=None):
    game = get_game(game_id)
    if not can_view_participants(game, user):
        if not user:
            raise Unauthenticated('Authentication required')
        raise Forbidden('Only the host and players in this game can view its participants')
    return GameParticipant.active().filter_by(game_id=game.id).order_by(
        GameParticipant.created_at.asc()
    ).all()


def list_user_games(user_id):
    """Participations of a user joined with their (non-deleted) games."""
    return GameParticipant.active().join(Game, GameParticipant.game_id == Game.id).filter(
        GameParticipant.user_id == user_id,
        Game.deleted_at.is_(None),
    ).order_by(Game.date.asc(), Game.start_time.asc()).all()
