from datetime import datetime

import pytest

from app import create_app
from models import db

# "now" for every app built in tests
FIXED_NOW = datetime(2024, 3, 15, 12, 0, 0)


def make_config(**overrides):
    config = {
        'environment': 'testing',
        'secret_key': 'test-secret',
        'database': {'url': 'sqlite://'},
        'auth': {'token_max_age_days': 7, 'min_password_length': 6},
        'pagination': {'default_limit': 10, 'max_limit': 100},
        'logging': {'level': 'WARNING'},
    }
    config.update(overrides)
    return config


@pytest.fixture
def make_app():
    """Factory building an app on a fresh in-memory database."""
    apps = []

    def _make(store=None, **config_overrides):
        app = create_app(make_config(**config_overrides), store=store, clock=lambda: FIXED_NOW)
        app.config['TESTING'] = True
        with app.app_context():
            db.create_all()
        apps.append(app)
        return app

    yield _make

    for app in apps:
        with app.app_context():
            db.session.remove()
            db.drop_all()


@pytest.fixture
def app(make_app):
    return make_app()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def signup(client):
    """Register a user and return the bearer headers for them."""

    def _signup(email='alex@example.com', name='Alex', password='secret123'):
        response = client.post('/api/auth/signup', json={
            'name': name, 'email': email, 'password': password,
        })
        assert response.status_code == 201, response.get_json()
        token = response.get_json()['token']
        return {'Authorization': f'Bearer {token}'}

    return _signup


@pytest.fixture
def auth_headers(signup):
    return signup()
