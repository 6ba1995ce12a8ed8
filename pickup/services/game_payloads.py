"""Shared payload helpers for creating and updating Game records."""

import re
from datetime import date, datetime, time

from pickup.errors import ValidationError
from pickup.models import SKILL_LEVELS
from pickup.time_utils import today_local

MIN_PLAYERS = 2
MAX_PLAYERS = 8
DEFAULT_MAX_PLAYERS = 4
DEFAULT_SKILL_LEVEL = 'intermediate'

GAME_WRITABLE_FIELDS = [
    'location', 'date', 'start_time', 'end_time',
    'max_players', 'skill_level', 'notes',
]

_TIME_PATTERN = re.compile(r'^([01]?\d|2[0-3]):([0-5]\d)$')
_LOCATION_MAX_LEN = 255
_NOTES_MAX_LEN = 2000


def _clean_text(value, max_len):
    if value is None:
        return ''
    text = str(value).strip()
    if len(text) > max_len:
        return text[:max_len]
    return text


def parse_game_date(value, allow_past=False):
    if isinstance(value, datetime):
        parsed = value.date()
    elif isinstance(value, date):
        parsed = value
    else:
        text = str(value or '').strip()
        if not text:
            raise ValidationError('date is required', field='date')
        try:
            parsed = date.fromisoformat(text)
        except ValueError:
            try:
                parsed = datetime.fromisoformat(text).date()
            except ValueError:
                raise ValidationError(
                    'date must be a valid calendar date (YYYY-MM-DD)', field='date',
                ) from None
    if not allow_past and parsed < today_local():
        raise ValidationError('date cannot be in the past', field='date')
    return parsed


def parse_time_of_day(value, field):
    if isinstance(value, time):
        return value.replace(second=0, microsecond=0)
    text = str(value or '').strip()
    match = _TIME_PATTERN.match(text)
    if not match:
        raise ValidationError(f'{field} must use 24-hour H:MM or HH:MM format', field=field)
    return time(int(match.group(1)), int(match.group(2)))


def parse_max_players(value):
    if isinstance(value, bool):
        parsed = None
    elif isinstance(value, float):
        parsed = int(value) if value.is_integer() else None
    else:
        try:
            parsed = int(str(value).strip())
        except (TypeError, ValueError):
            parsed = None
    if parsed is None:
        raise ValidationError('max_players must be an integer', field='max_players')
    if parsed < MIN_PLAYERS or parsed > MAX_PLAYERS:
        raise ValidationError(
            f'max_players must be between {MIN_PLAYERS} and {MAX_PLAYERS}',
            field='max_players',
        )
    return parsed


def parse_skill_level(value, field='skill_level'):
    normalized = str(value or '').strip().lower()
    if normalized not in SKILL_LEVELS:
        raise ValidationError(
            f'{field} must be one of: {", ".join(SKILL_LEVELS)}', field=field,
        )
    return normalized


def _parse_field(field, value, allow_past, current=None):
    if field == 'location':
        location = _clean_text(value, _LOCATION_MAX_LEN)
        if not location:
            raise ValidationError('location is required', field='location')
        return location
    if field == 'date':
        # An unchanged date on an existing game is kept even once it has passed.
        parsed = parse_game_date(value, allow_past=True)
        if parsed == getattr(current, 'date', None):
            return parsed
        return parse_game_date(parsed, allow_past=allow_past)
    if field in ('start_time', 'end_time'):
        return parse_time_of_day(value, field)
    if field == 'max_players':
        return parse_max_players(value)
    if field == 'skill_level':
        return parse_skill_level(value)
    notes = _clean_text(value, _NOTES_MAX_LEN)
    return notes or None


def normalize_game_payload(raw_data, partial=False, current=None, allow_past=False):
    """Return validated game fields or raise ``ValidationError``.

    With ``partial`` only supplied fields are returned, and the start/end
    ordering is checked against ``current`` for the fields left untouched.
    The first failure is raised with its field; all failures are attached
    under ``errors``.
    """
    if not isinstance(raw_data, dict):
        raise ValidationError('Invalid JSON payload')

    game_data = {}
    errors = {}
    for field in GAME_WRITABLE_FIELDS:
        if field not in raw_data:
            continue
        value = raw_data.get(field)
        if field in ('max_players', 'skill_level', 'notes') and value is None and not partial:
            continue
        try:
            game_data[field] = _parse_field(field, value, allow_past, current)
        except ValidationError as exc:
            errors[field] = exc.message

    if not partial:
        for field in ('location', 'date', 'start_time', 'end_time'):
            if field not in game_data and field not in errors:
                errors[field] = f'{field} is required'
        game_data.setdefault('max_players', DEFAULT_MAX_PLAYERS)
        game_data.setdefault('skill_level', DEFAULT_SKILL_LEVEL)

    start = game_data.get('start_time', getattr(current, 'start_time', None))
    end = game_data.get('end_time', getattr(current, 'end_time', None))
    if (
        start is not None and end is not None
        and 'start_time' not in errors and 'end_time' not in errors
        and end <= start
    ):
        errors['end_time'] = 'end_time must be after start_time'

    if errors:
        field, message = next(iter(errors.items()))
        raise ValidationError(message, field=field, errors=errors)
    return game_data


def apply_game_changes(game, game_data):
    for field, value in game_data.items():
        setattr(game, field, value)
