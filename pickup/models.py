import uuid

from pickup.app import db
from pickup.time_utils import utcnow_naive

SKILL_LEVELS = ('beginner', 'intermediate', 'advanced', 'pro')

GAME_OPEN = 'open'
GAME_FULL = 'full'
GAME_CANCELLED = 'cancelled'
GAME_COMPLETED = 'completed'
GAME_STATUSES = (GAME_OPEN, GAME_FULL, GAME_CANCELLED, GAME_COMPLETED)
# Creator-set states; once entered, open/full are no longer recomputed.
TERMINAL_GAME_STATUSES = (GAME_CANCELLED, GAME_COMPLETED)

PARTICIPANT_PENDING = 'pending'
PARTICIPANT_APPROVED = 'approved'
PARTICIPANT_REJECTED = 'rejected'
PARTICIPANT_STATUSES = (PARTICIPANT_PENDING, PARTICIPANT_APPROVED, PARTICIPANT_REJECTED)


def _uuid():
    return str(uuid.uuid4())


def _iso(value):
    return value.isoformat() if value else None


class SoftDeleteMixin:
    """Rows are hidden by setting ``deleted_at`` instead of being removed."""
    deleted_at = db.Column(db.DateTime, nullable=True, index=True)

    @property
    def is_deleted(self):
        return self.deleted_at is not None

    def soft_delete(self):
        self.deleted_at = utcnow_naive()

    @classmethod
    def active(cls):
        return cls.query.filter(cls.deleted_at.is_(None))


class User(SoftDeleteMixin, db.Model):
    __tablename__ = 'users'

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    name = db.Column(db.String(120), nullable=False, default='')
    email = db.Column(db.String(120), unique=True, nullable=False)
    password_hash = db.Column(db.String(256), nullable=False)
    skill_level = db.Column(db.String(20), nullable=True)
    refresh_token = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime, default=lambda: utcnow_naive())
    updated_at = db.Column(db.DateTime, default=lambda: utcnow_naive(),
                           onupdate=lambda: utcnow_naive())

    def to_summary(self):
        """Public attributes attached to game and participant views."""
        return {
            'id': self.id, 'name': self.name, 'email': self.email,
            'skill_level': self.skill_level,
        }

    def to_dict(self):
        data = self.to_summary()
        data['created_at'] = _iso(self.created_at)
        data['updated_at'] = _iso(self.updated_at)
        return data


class Game(SoftDeleteMixin, db.Model):
    """A scheduled game; ``status`` caches capacity unless creator-terminated."""
    __tablename__ = 'games'

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    location = db.Column(db.String(255), nullable=False)
    date = db.Column(db.Date, nullable=False)
    start_time = db.Column(db.Time, nullable=False)
    end_time = db.Column(db.Time, nullable=False)
    max_players = db.Column(db.Integer, nullable=False, default=4)
    skill_level = db.Column(db.String(20), nullable=False, default='intermediate')
    status = db.Column(db.String(20), nullable=False, default=GAME_OPEN)
    creator_id = db.Column(db.String(36), db.ForeignKey('users.id'), nullable=False)
    notes = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime, default=lambda: utcnow_naive())
    updated_at = db.Column(db.DateTime, default=lambda: utcnow_naive(),
                           onupdate=lambda: utcnow_naive())

    __table_args__ = (
        db.Index('ix_games_status_date', 'status', 'date'),
    )

    creator = db.relationship('User', backref='games_created')
    participants = db.relationship('GameParticipant', backref='game', lazy='select')

    @property
    def is_terminal(self):
        return self.status in TERMINAL_GAME_STATUSES

    @property
    def participant_slots(self):
        """Seats open to participants; one is reserved for the creator."""
        return self.max_players - 1

    def to_dict(self):
        return {
            'id': self.id,
            'location': self.location,
            'date': _iso(self.date),
            'start_time': self.start_time.strftime('%H:%M') if self.start_time else None,
            'end_time': self.end_time.strftime('%H:%M') if self.end_time else None,
            'max_players': self.max_players,
            'skill_level': self.skill_level,
            'status': self.status,
            'creator_id': self.creator_id,
            'notes': self.notes,
            'creator': self.creator.to_summary() if self.creator else None,
            'created_at': _iso(self.created_at),
            'updated_at': _iso(self.updated_at),
        }


class GameParticipant(SoftDeleteMixin, db.Model):
    """One user's request to take a participant slot in a game."""
    __tablename__ = 'game_participants'

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    game_id = db.Column(db.String(36), db.ForeignKey('games.id'), nullable=False)
    user_id = db.Column(db.String(36), db.ForeignKey('users.id'), nullable=False)
    status = db.Column(db.String(20), nullable=False, default=PARTICIPANT_PENDING)
    created_at = db.Column(db.DateTime, default=lambda: utcnow_naive())
    updated_at = db.Column(db.DateTime, default=lambda: utcnow_naive(),
                           onupdate=lambda: utcnow_naive())

    __table_args__ = (
        db.UniqueConstraint('game_id', 'user_id', name='uq_game_participants_game_user'),
        db.Index('ix_game_participants_game_status', 'game_id', 'status'),
    )

    user = db.relationship('User', backref='participations')

    def to_dict(self, include_game=False):
        data = {
            'id': self.id,
            'game_id': self.game_id,
            'user_id': self.user_id,
            'status': self.status,
            'created_at': _iso(self.created_at),
            'updated_at': _iso(self.updated_at),
            'user': self.user.to_summary() if self.user else None,
        }
        if include_game:
            data['game'] = self.game.to_dict() if self.game else None
        return data
