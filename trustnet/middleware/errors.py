"""
Error Handling Middleware
Renders engine errors and stray database errors as consistent JSON responses
"""
from flask import g, jsonify, request
from marshmallow import ValidationError as SchemaValidationError
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError

from trustnet.infra.log import get_logger
from trustnet.services.errors import TrustError
from trustnet.services.metrics import get_metrics_service

logger = get_logger('trustnet.errors')


def error_response(error: str, message: str, status_code: int, **extra):
    """Create a JSON error envelope carrying the request id"""
    body = {
        'error': error,
        'message': message,
        'request_id': getattr(g, 'request_id', None),
    }
    body.update(extra)
    return jsonify(body), status_code


def _record(error_type: str):
    metrics_service = get_metrics_service()
    if metrics_service:
        metrics_service.record_http_error(request.path, error_type)


def register_error_handlers(app):
    """Register error handlers for the trust API"""

    @app.errorhandler(TrustError)
    def handle_trust_error(e):
        if e.http_status >= 500:
            logger.log_error_event(e.message, error_type=e.code)
        else:
            logger.info(f"Trust request rejected: {e.message}", error_code=e.code)
        _record(e.code)
        extra = {'retryable': e.retryable}
        if e.details:
            extra['details'] = e.details
        return error_response(e.code, e.message, e.http_status, **extra)

    @app.errorhandler(SchemaValidationError)
    def handle_schema_error(e):
        _record('validation_error')
        return error_response('validation_error', 'Invalid request body', 400, details=e.messages)

    @app.errorhandler(OperationalError)
    def handle_operational_error(e):
        """Handle database operational errors (connection, table not found, etc.)"""
        error_msg = str(e.orig) if hasattr(e, 'orig') else str(e)

        if 'does not exist' in error_msg or 'no such table' in error_msg:
            logger.error(f"Database table not found: {error_msg}")
            _record('feature_not_ready')
            return error_response(
                'feature_not_ready',
                'This feature requires database migration. Please contact support.',
                503,
            )

        logger.log_error_event(error_msg, error_type="storage_unavailable")
        _record('storage_unavailable')
        return error_response(
            'storage_unavailable', 'Database operation failed. Please try again later.', 503,
            retryable=True,
        )

    @app.errorhandler(IntegrityError)
    def handle_integrity_error(e):
        error_msg = str(e.orig) if hasattr(e, 'orig') else str(e)
        logger.error(f"Database integrity error: {error_msg}")
        _record('conflict')
        return error_response('conflict', 'Data integrity constraint violated', 409, retryable=True)

    @app.errorhandler(SQLAlchemyError)
    def handle_sqlalchemy_error(e):
        logger.log_error_event(str(e), error_type="storage_unavailable")
        _record('storage_unavailable')
        return error_response(
            'storage_unavailable', 'Database operation failed. Please try again later.', 503,
            retryable=True,
        )
