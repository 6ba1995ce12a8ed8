"""Tests for game routes."""
import json
from datetime import date, timedelta

from pickup.app import db
from pickup.models import Game, GameParticipant


def _future(days=7):
    return (date.today() + timedelta(days=days)).isoformat()


def _auth(client, name='Game User', email='game@test.com'):
    res = client.post('/api/auth/register', json={
        'name': name, 'email': email, 'password': 'password123',
    })
    data = json.loads(res.data)
    return data['token'], data['user']


def _headers(token):
    return {'Authorization': f'Bearer {token}'}


def _game_payload(**overrides):
    data = {
        'location': 'Riverside Park Courts', 'date': _future(),
        'start_time': '09:00', 'end_time': '11:00',
        'max_players': 4, 'skill_level': 'intermediate', 'notes': 'Bring a paddle',
    }
    data.update(overrides)
    return data


def _create_game(client, token, **overrides):
    res = client.post('/api/games', json=_game_payload(**overrides), headers=_headers(token))
    assert res.status_code == 201, res.data
    return json.loads(res.data)['game']


def test_create_game(client):
    token, user = _auth(client)
    game = _create_game(client, token)
    assert game['status'] == 'open'
    assert game['creator_id'] == user['id']
    assert game['creator']['email'] == 'game@test.com'
    assert game['approved_count'] == 0
    assert game['open_slots'] == 3


def test_create_game_applies_defaults(client):
    token, _ = _auth(client)
    payload = _game_payload()
    del payload['max_players'], payload['skill_level'], payload['notes']
    res = client.post('/api/games', json=payload, headers=_headers(token))
    assert res.status_code == 201
    game = json.loads(res.data)['game']
    assert game['max_players'] == 4
    assert game['skill_level'] == 'intermediate'
    assert game['notes'] is None


def test_create_game_requires_auth(client):
    res = client.post('/api/games', json=_game_payload())
    assert res.status_code == 401


def test_create_game_round_trip(client):
    token, _ = _auth(client)
    created = _create_game(
        client, token, location='Lakeview Rec Center', start_time='18:30',
        end_time='20:00', max_players=6, skill_level='pro', notes='Indoor',
    )
    res = client.get(f'/api/games/{created["id"]}')
    assert res.status_code == 200
    game = json.loads(res.data)['game']
    for field in ('location', 'date', 'start_time', 'end_time', 'max_players',
                  'skill_level', 'notes'):
        assert game[field] == created[field]
    assert game['start_time'] == '18:30'
    assert game['max_players'] == 6


def test_create_game_validation_names_field(client):
    token, _ = _auth(client)
    cases = [
        ({'location': '   '}, 'location'),
        ({'date': 'not-a-date'}, 'date'),
        ({'date': (date.today() - timedelta(days=1)).isoformat()}, 'date'),
        ({'start_time': '9am'}, 'start_time'),
        ({'end_time': '24:00'}, 'end_time'),
        ({'start_time': '11:00', 'end_time': '11:00'}, 'end_time'),
        ({'start_time': '12:00', 'end_time': '10:00'}, 'end_time'),
        ({'max_players': 1}, 'max_players'),
        ({'max_players': 9}, 'max_players'),
        ({'max_players': 'four'}, 'max_players'),
        ({'skill_level': 'expert'}, 'skill_level'),
    ]
    for overrides, field in cases:
        res = client.post('/api/games', json=_game_payload(**overrides), headers=_headers(token))
        assert res.status_code == 400, overrides
        data = json.loads(res.data)
        assert data['code'] == 'validation_error'
        assert data['field'] == field, overrides


def test_create_game_missing_required_fields(client):
    token, _ = _auth(client)
    res = client.post('/api/games', json={'location': 'Somewhere'}, headers=_headers(token))
    assert res.status_code == 400
    errors = json.loads(res.data)['errors']
    assert set(errors) == {'date', 'start_time', 'end_time'}


def test_create_game_allows_today(client):
    token, _ = _auth(client)
    game = _create_game(client, token, date=date.today().isoformat())
    assert game['date'] == date.today().isoformat()


def test_past_dates_allowed_when_configured(client, app):
    app.config['ALLOW_PAST_GAME_DATES'] = True
    token, _ = _auth(client)
    past = (date.today() - timedelta(days=3)).isoformat()
    game = _create_game(client, token, date=past)
    assert game['date'] == past


def test_get_games_lists_only_open(client):
    token, _ = _auth(client)
    open_game = _create_game(client, token)
    cancelled = _create_game(client, token, location='Old Courts')
    client.put(f'/api/games/{cancelled["id"]}', json={'status': 'cancelled'},
        headers=_headers(token))

    res = client.get('/api/games')
    assert res.status_code == 200
    games = json.loads(res.data)['games']
    ids = [g['id'] for g in games]
    assert open_game['id'] in ids
    assert cancelled['id'] not in ids
    assert games[0]['creator']['email'] == 'game@test.com'


def test_get_games_skill_filter(client):
    token, _ = _auth(client)
    beginner = _create_game(client, token, skill_level='beginner')
    advanced = _create_game(client, token, skill_level='advanced')

    res = client.get('/api/games?skill_level=advanced')
    ids = [g['id'] for g in json.loads(res.data)['games']]
    assert advanced['id'] in ids
    assert beginner['id'] not in ids

    res = client.get('/api/games?skill_level=bogus')
    assert res.status_code == 400


def test_get_game_not_found(client):
    res = client.get('/api/games/00000000-0000-0000-0000-000000000000')
    assert res.status_code == 404
    assert json.loads(res.data)['error'] == 'Game not found'


def test_update_game(client):
    token, _ = _auth(client)
    game = _create_game(client, token)
    res = client.put(f'/api/games/{game["id"]}', json={
        'location': 'New Courts', 'end_time': '12:15', 'notes': '',
    }, headers=_headers(token))
    assert res.status_code == 200
    updated = json.loads(res.data)['game']
    assert updated['location'] == 'New Courts'
    assert updated['end_time'] == '12:15'
    assert updated['start_time'] == '09:00'
    assert updated['notes'] is None


def test_update_game_checks_merged_times(client):
    token, _ = _auth(client)
    game = _create_game(client, token)
    res = client.put(f'/api/games/{game["id"]}', json={'start_time': '11:30'},
        headers=_headers(token))
    assert res.status_code == 400
    assert json.loads(res.data)['field'] == 'end_time'


def test_update_game_not_creator(client):
    token1, _ = _auth(client, 'Owner', 'owner@test.com')
    token2, _ = _auth(client, 'Other', 'other@test.com')
    game = _create_game(client, token1)
    res = client.put(f'/api/games/{game["id"]}', json={'location': 'Mine now'},
        headers=_headers(token2))
    assert res.status_code == 403


def test_update_game_status_rules(client):
    token, _ = _auth(client)
    game = _create_game(client, token)
    url = f'/api/games/{game["id"]}'

    res = client.put(url, json={'status': 'full'}, headers=_headers(token))
    assert res.status_code == 400
    assert json.loads(res.data)['field'] == 'status'

    res = client.put(url, json={'status': 'archived'}, headers=_headers(token))
    assert res.status_code == 400

    res = client.put(url, json={'status': 'open', 'notes': 'Same status is a no-op'},
        headers=_headers(token))
    assert res.status_code == 200

    res = client.put(url, json={'status': 'completed'}, headers=_headers(token))
    assert res.status_code == 200
    assert json.loads(res.data)['game']['status'] == 'completed'

    res = client.put(url, json={'status': 'cancelled'}, headers=_headers(token))
    assert res.status_code == 400
    assert json.loads(res.data)['code'] == 'invalid_operation'


def test_terminal_status_survives_other_edits(client):
    token, _ = _auth(client)
    game = _create_game(client, token)
    url = f'/api/games/{game["id"]}'
    client.put(url, json={'status': 'cancelled'}, headers=_headers(token))
    res = client.put(url, json={'max_players': 6}, headers=_headers(token))
    assert res.status_code == 200
    assert json.loads(res.data)['game']['status'] == 'cancelled'


def test_delete_game_is_soft(client):
    token, _ = _auth(client)
    game = _create_game(client, token)

    res = client.delete(f'/api/games/{game["id"]}', headers=_headers(token))
    assert res.status_code == 200

    res = client.get(f'/api/games/{game["id"]}')
    assert res.status_code == 404
    ids = [g['id'] for g in json.loads(client.get('/api/games').data)['games']]
    assert game['id'] not in ids

    row = db.session.get(Game, game['id'])
    assert row is not None
    assert row.deleted_at is not None


def test_delete_game_soft_deletes_participants(client):
    token1, _ = _auth(client, 'Host', 'host@test.com')
    token2, _ = _auth(client, 'Joiner', 'joiner@test.com')
    game = _create_game(client, token1)
    client.post(f'/api/games/{game["id"]}/join', headers=_headers(token2))

    client.delete(f'/api/games/{game["id"]}', headers=_headers(token1))
    rows = GameParticipant.query.filter_by(game_id=game['id']).all()
    assert len(rows) == 1
    assert rows[0].deleted_at is not None

    res = client.get('/api/games/user', headers=_headers(token2))
    assert json.loads(res.data)['participations'] == []


def test_delete_game_not_creator(client):
    token1, _ = _auth(client, 'Owner', 'owner@test.com')
    token2, _ = _auth(client, 'Other', 'other@test.com')
    game = _create_game(client, token1)

    res = client.delete(f'/api/games/{game["id"]}', headers=_headers(token2))
    assert res.status_code == 403


def test_unknown_route_returns_json_404(client):
    res = client.get('/api/nope')
    assert res.status_code == 404
    assert 'error' in json.loads(res.data)


def test_create_game_accepts_single_digit_hour(client):
    token, _ = _auth(client)
    game = _create_game(client, token, start_time='7:30', end_time='9:05')
    assert game['start_time'] == '07:30'
    assert game['end_time'] == '09:05'


def test_complete_past_game_with_full_payload(client, app):
    app.config['ALLOW_PAST_GAME_DATES'] = True
    token, _ = _auth(client)
    yesterday = (date.today() - timedelta(days=1)).isoformat()
    game = _create_game(client, token, date=yesterday)
    app.config['ALLOW_PAST_GAME_DATES'] = False

    res = client.put(f'/api/games/{game["id"]}', json={
        'location': game['location'], 'date': yesterday,
        'start_time': game['start_time'], 'end_time': game['end_time'],
        'status': 'completed',
    }, headers=_headers(token))
    assert res.status_code == 200
    assert json.loads(res.data)['game']['status'] == 'completed'


def test_update_to_different_past_date_is_rejected(client, app):
    app.config['ALLOW_PAST_GAME_DATES'] = True
    token, _ = _auth(client)
    game = _create_game(client, token, date=(date.today() - timedelta(days=1)).isoformat())
    app.config['ALLOW_PAST_GAME_DATES'] = False

    res = client.put(f'/api/games/{game["id"]}', json={
        'date': (date.today() - timedelta(days=2)).isoformat(),
    }, headers=_headers(token))
    assert res.status_code == 400
    assert json.loads(res.data)['field'] == 'date'
