"""
Tests for application assembly.
"""
import pytest

from trustnet.factory import _normalize_db_url


@pytest.mark.parametrize('url,expected', [
    ('postgres://u:p@db/trust', 'postgresql+psycopg://u:p@db/trust'),
    ('postgresql://u:p@db/trust', 'postgresql+psycopg://u:p@db/trust'),
    ('postgresql+psycopg://u:p@db/trust', 'postgresql+psycopg://u:p@db/trust'),
    ('sqlite:///tmp/trust.db', 'sqlite:///tmp/trust.db'),
])
def test_normalize_db_url(url, expected):
    assert _normalize_db_url(url) == expected


def test_blueprints_registered(app):
    assert 'trust' in app.blueprints
    assert 'health' in app.blueprints


def test_engine_config_defaults(app):
    assert app.config['TRUSTNET_METRIC_WINDOW_DAYS'] == 30
    assert app.config['TRUSTNET_DEFAULT_METRIC_VALUE'] == 50
    assert app.config['TRUSTNET_CONSENT_VERSION'] == '1.0'
    assert app.config['TRUSTNET_AUDIT_HASH_ALGORITHM'] == 'sha256'
    assert app.config['TRUSTNET_CONFLICT_RETRIES'] == 3


def test_error_envelope_carries_request_id(client):
    response = client.get('/api/v1/trust/export', headers={'X-Org-ID': 'org-1'})

    data = response.get_json()
    assert response.status_code == 403
    assert data['request_id'] == response.headers['X-Request-ID']
