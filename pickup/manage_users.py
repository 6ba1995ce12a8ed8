"""CLI utility to inspect users and games and reset passwords."""

import argparse
import json

from werkzeug.security import generate_password_hash

from pickup.app import create_app, db
from pickup.models import GAME_STATUSES, Game, User


def _build_parser():
    parser = argparse.ArgumentParser(
        description='Inspect users and games, or reset a user password.',
    )
    parser.add_argument(
        '--env',
        default='development',
        choices=['development', 'testing', 'production'],
        help='App config environment to use (default: development).',
    )
    commands = parser.add_subparsers(dest='command', required=True)

    commands.add_parser('list-users', help='List all active users.')

    find_user = commands.add_parser('find-user', help='Find users by name or email substring.')
    find_user.add_argument('term')

    update_password = commands.add_parser('update-password', help='Set a new password for a user.')
    update_password.add_argument('email')
    update_password.add_argument('password')

    list_games = commands.add_parser('list-games', help='List active games.')
    list_games.add_argument('--status', choices=GAME_STATUSES)
    return parser


def list_users():
    users = User.active().order_by(User.created_at.asc()).all()
    return {'users': [u.to_summary() for u in users]}


def find_users(term):
    pattern = f'%{term.strip().lower()}%'
    users = User.active().filter(
        db.func.lower(User.name).like(pattern) | db.func.lower(User.email).like(pattern)
    ).all()
    return {'term': term, 'users': [u.to_summary() for u in users]}


def update_password(email, password):
    user = User.active().filter_by(email=email.strip().lower()).first()
    if not user:
        return {'updated': False, 'error': f'No user with email {email}'}
    user.password_hash = generate_password_hash(password)
    user.refresh_token = None
    db.session.commit()
    return {'updated': True, 'user': user.to_summary()}


def list_games(status=None):
    query = Game.active()
    if status:
        query = query.filter_by(status=status)
    games = query.order_by(Game.date.asc(), Game.start_time.asc()).all()
    return {'games': [g.to_dict() for g in games]}


def run(args):
    if args.command == 'list-users':
        return list_users()
    if args.command == 'find-user':
        return find_users(args.term)
    if args.command == 'update-password':
        return update_password(args.email, args.password)
    return list_games(args.status)


def main(argv=None):
    args = _build_parser().parse_args(argv)
    app = create_app(args.env)

    with app.app_context():
        result = run(args)
    print(json.dumps(result, indent=2))
    return 0 if result.get('updated', True) else 1


if __name__ == '__main__':
    raise SystemExit(main())
