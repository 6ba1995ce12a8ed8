import pytest
from pickup.app import create_app, db


@pytest.fixture
def app():
    app = create_app('testing')
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def auth_headers(client):
    """Register a user and return auth headers."""
    res = client.post('/api/auth/register', json={
        'name': 'Test User', 'email': 'test@example.com',
        'password': 'password123',
    })
    token = res.get_json()['token']
    return {'Authorization': f'Bearer {token}', 'Content-Type': 'application/json'}
