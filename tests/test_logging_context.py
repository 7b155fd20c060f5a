# -*- coding: utf-8 -*-
"""
Test suite for structured logging and request context propagation.

Tests request_id generation, caller identity propagation, structured logging
format, and integration with the Flask request lifecycle.
"""

import pytest
import json
import uuid
import logging
import io
from unittest.mock import patch
from flask import Flask

from trustnet.services.request_context import (
    init_request_context, get_request_id, get_request_context, get_consent_metadata
)
from trustnet.services.structured_logging import (
    StructuredLogger, StructuredFormatter, get_logger,
    configure_logging, init_logging
)


@pytest.fixture
def app():
    """Create test Flask app."""
    app = Flask(__name__)
    app.config['TESTING'] = True
    return app


def _capture(logger_name):
    stream = io.StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter(json_enabled=True))
    logger = logging.getLogger(logger_name)
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG)
    return stream, handler


class TestRequestContextMiddleware:
    """Test request context middleware functionality."""

    def test_request_id_generation(self, app):
        """Test that request_id is generated for each request."""
        init_request_context(app)

        @app.route('/test')
        def test_route():
            return {'request_id': get_request_id()}

        response = app.test_client().get('/test')
        assert response.status_code == 200

        request_id = response.get_json()['request_id']
        uuid.UUID(request_id)
        assert response.headers['X-Request-ID'] == request_id
        assert response.headers['X-Response-Time'].endswith('ms')

    def test_incoming_request_id_is_honoured(self, app):
        init_request_context(app)

        @app.route('/test')
        def test_route():
            return {'request_id': get_request_id()}

        incoming = str(uuid.uuid4())
        response = app.test_client().get('/test', headers={'X-Request-ID': incoming})
        assert response.get_json()['request_id'] == incoming

    def test_malformed_request_id_is_replaced(self, app):
        init_request_context(app)

        @app.route('/test')
        def test_route():
            return {'request_id': get_request_id()}

        response = app.test_client().get('/test', headers={'X-Request-ID': 'not-a-uuid'})
        assert response.get_json()['request_id'] != 'not-a-uuid'

    def test_caller_identity_in_context(self, app):
        """Test that the gateway identity headers reach the request context."""
        init_request_context(app)

        @app.route('/test', methods=['POST'])
        def test_route():
            return get_request_context()

        response = app.test_client().post(
            '/test', json={}, headers={'X-Org-ID': 'org-1', 'X-User-ID': 'user-1'}
        )

        context = response.get_json()
        assert context['method'] == 'POST'
        assert context['path'] == '/test'
        assert context['organization_id'] == 'org-1'
        assert context['user_id'] == 'user-1'

    def test_consent_metadata(self, app):
        init_request_context(app)

        @app.route('/test')
        def test_route():
            return get_consent_metadata()

        response = app.test_client().get(
            '/test',
            headers={'X-Forwarded-For': '198.51.100.7, 10.0.0.1', 'User-Agent': 'erp-ui/2.1'},
        )

        assert response.get_json() == {'ip_address': '198.51.100.7', 'user_agent': 'erp-ui/2.1'}


class TestStructuredFormatter:
    """Test structured logging formatter."""

    def _record(self, **kwargs):
        return logging.LogRecord(
            name='test.logger',
            level=kwargs.get('level', logging.INFO),
            pathname='test.py',
            lineno=42,
            msg=kwargs.get('msg', 'Test message'),
            args=(),
            exc_info=kwargs.get('exc_info')
        )

    def test_json_formatting_enabled(self):
        """Test JSON formatting when enabled."""
        data = json.loads(StructuredFormatter(json_enabled=True).format(self._record()))

        assert data['level'] == 'INFO'
        assert data['logger'] == 'test.logger'
        assert data['message'] == 'Test message'
        assert data['line'] == 42
        assert 'timestamp' in data

    def test_json_formatting_disabled(self):
        """Test plain text formatting when JSON is disabled."""
        formatted = StructuredFormatter(json_enabled=False).format(self._record())

        with pytest.raises(json.JSONDecodeError):
            json.loads(formatted)
        assert 'Test message' in formatted

    def test_extra_fields_included(self):
        record = self._record()
        record.extra_fields = {'organization_id': 'org-1', 'score': 885}

        data = json.loads(StructuredFormatter(json_enabled=True).format(record))

        assert data['organization_id'] == 'org-1'
        assert data['score'] == 885

    def test_exception_formatting(self):
        try:
            raise ValueError("Test exception")
        except ValueError:
            import sys
            record = self._record(level=logging.ERROR, msg='Error occurred', exc_info=sys.exc_info())

        data = json.loads(StructuredFormatter(json_enabled=True).format(record))

        assert 'ValueError' in data['exception']
        assert 'Test exception' in data['exception']


class TestStructuredLogger:
    """Test structured logger functionality."""

    def test_log_levels(self):
        stream, handler = _capture('test.levels')
        logger = StructuredLogger('test.levels')

        logger.debug('Debug message')
        logger.info('Info message')
        logger.warning('Warning message')
        logger.error('Error message')
        logger.critical('Critical message')

        levels = [json.loads(line)['level'] for line in stream.getvalue().strip().split('\n')]
        assert levels == ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        logging.getLogger('test.levels').removeHandler(handler)

    def test_trust_event(self):
        stream, handler = _capture('test.trust')
        logger = get_logger('test.trust')

        logger.log_trust_event('score_calculated', 'org-1', score=885, status='guardian')

        data = json.loads(stream.getvalue().strip())
        assert data['event_type'] == 'trust'
        assert data['trust_event'] == 'score_calculated'
        assert data['organization_id'] == 'org-1'
        assert data['score'] == 885
        logging.getLogger('test.trust').removeHandler(handler)

    def test_error_event(self):
        stream, handler = _capture('test.errors')

        get_logger('test.errors').log_error_event('Database connection failed', 'database')

        data = json.loads(stream.getvalue().strip())
        assert data['level'] == 'ERROR'
        assert data['error_type'] == 'database'
        logging.getLogger('test.errors').removeHandler(handler)


class TestLoggingMiddleware:
    """Test logging middleware functionality."""

    def test_request_logging(self, app):
        init_logging(app)
        init_request_context(app)
        stream, handler = _capture('trustnet.requests')

        @app.route('/test')
        def test_route():
            return {'message': 'test'}

        response = app.test_client().get('/test', headers={'X-Org-ID': 'org-1'})
        assert response.status_code == 200

        events = {}
        for line in stream.getvalue().strip().split('\n'):
            data = json.loads(line)
            events[data.get('event_type')] = data

        assert events['request_start']['path'] == '/test'
        assert events['request_end']['status_code'] == 200
        assert events['request_end']['organization_id'] == 'org-1'
        assert 'duration_ms' in events['request_end']
        logging.getLogger('trustnet.requests').removeHandler(handler)

    def test_probe_endpoints_not_logged(self, app):
        init_logging(app)
        stream, handler = _capture('trustnet.requests')

        @app.route('/healthz')
        def health():
            return {'status': 'healthy'}

        @app.route('/readyz')
        def readiness():
            return {'status': 'ready'}

        client = app.test_client()
        client.get('/healthz')
        client.get('/readyz')

        assert stream.getvalue() == ''
        logging.getLogger('trustnet.requests').removeHandler(handler)


class TestLoggingConfiguration:
    """Test logging configuration."""

    @patch.dict('os.environ', {'TRUSTNET_LOG_JSON': 'true'})
    def test_json_logging_enabled(self, app):
        configure_logging(app)

        handler = logging.getLogger().handlers[0]
        assert isinstance(handler.formatter, StructuredFormatter)
        assert handler.formatter.json_enabled is True

    @patch.dict('os.environ', {'TRUSTNET_LOG_JSON': 'false'})
    def test_json_logging_disabled(self, app):
        configure_logging(app)

        handler = logging.getLogger().handlers[0]
        assert handler.formatter.json_enabled is False

    @patch.dict('os.environ', {'LOG_LEVEL': 'WARNING'})
    def test_log_level_configuration(self, app):
        configure_logging(app)

        assert logging.getLogger().level == logging.WARNING
        assert logging.getLogger('trustnet.score').level == logging.WARNING
