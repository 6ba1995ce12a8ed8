"""Tests for app startup helpers and production guards."""
import pytest

from pickup.app import _parse_allowed_origins, create_app
from pickup.config import ProductionConfig, default_logging


def test_parse_allowed_origins_handles_strings_and_lists():
    assert _parse_allowed_origins(None) == '*'
    assert _parse_allowed_origins(' * ') == '*'
    assert _parse_allowed_origins('https://a.example.com, https://b.example.com,') == [
        'https://a.example.com',
        'https://b.example.com',
    ]
    assert _parse_allowed_origins(['https://a.example.com', '']) == ['https://a.example.com']
    assert _parse_allowed_origins([]) == '*'


def test_production_requires_real_secret_key(monkeypatch):
    monkeypatch.setattr(ProductionConfig, 'SECRET_KEY', 'dev-secret-key-change-in-prod')
    monkeypatch.setattr(ProductionConfig, 'CORS_ALLOWED_ORIGINS', 'https://app.example.com')
    with pytest.raises(RuntimeError, match='SECRET_KEY'):
        create_app('production')


def test_production_requires_explicit_cors_origins(monkeypatch):
    monkeypatch.setattr(ProductionConfig, 'SECRET_KEY', 'a-real-secret')
    monkeypatch.setattr(ProductionConfig, 'CORS_ALLOWED_ORIGINS', '*')
    with pytest.raises(RuntimeError, match='CORS_ALLOWED_ORIGINS'):
        create_app('production')


def test_default_logging_sets_package_level():
    settings = default_logging('DEBUG')
    assert settings['loggers']['pickup']['level'] == 'DEBUG'
    assert settings['handlers']['default']['class'] == 'logging.StreamHandler'


def test_testing_app_registers_inflight_registry(app):
    registry = app.extensions['inflight']
    assert registry.ttl_seconds == app.config['INFLIGHT_TTL_SECONDS']
