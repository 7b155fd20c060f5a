# -*- coding: utf-8 -*-

from flask import Blueprint, jsonify
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
import time

from trustnet.infra.db import db
from trustnet.infra.log import get_logger

health_bp = Blueprint('health', __name__)
logger = get_logger('trustnet.health')


@health_bp.route('/healthz', methods=['GET', 'HEAD'])
def healthz():
    """Liveness check, no dependencies touched."""
    return jsonify({
        'status': 'healthy',
        'service': 'trustnet',
        'timestamp': time.time()
    }), 200


@health_bp.route('/readyz', methods=['GET', 'HEAD'])
def readyz():
    """Readiness check: the database must answer a trivial query."""
    try:
        db.session.execute(text('SELECT 1'))
        database_ok = True
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.warning("Readiness check failed", error=str(e))
        database_ok = False

    return jsonify({
        'status': 'ready' if database_ok else 'unavailable',
        'service': 'trustnet',
        'timestamp': time.time(),
        'checks': {
            'database': database_ok
        }
    }), 200 if database_ok else 503
