# -*- coding: utf-8 -*-
"""
Trust API Routes.

Score, consent, participation, benchmark and audit endpoints. The calling
organization and user come from the ``X-Org-ID`` / ``X-User-ID`` headers set
by the ERP gateway in front of this service.
"""
from functools import wraps

from flask import Blueprint, current_app, g, jsonify, request

from trustnet.infra.db import db
from trustnet.infra.log import get_logger
from trustnet.schemas.trust_schemas import (
    AppealCreateSchema,
    AuditEntrySchema,
    AuditQuerySchema,
    BenchmarkQuerySchema,
    ConsentGrantSchema,
    ContributionResponseSchema,
    HistoryQuerySchema,
    InsightCreateSchema,
    ScoreHistoryEntrySchema,
    ScoreResponseSchema,
)
from trustnet.services.audit import AuditTrail
from trustnet.services.consent_manager import ConsentManager
from trustnet.services.data_sharing import DataSharingService
from trustnet.services.errors import NotFoundError, StorageError
from trustnet.services.participant_lifecycle import ParticipantLifecycle
from trustnet.services.request_context import get_consent_metadata
from trustnet.services.score_engine import ScoreEngine
from trustnet.services.transactions import retry_on_conflict

trust_bp = Blueprint('trust', __name__, url_prefix='/api/v1/trust')
logger = get_logger('trustnet.api')


def require_org(f):
    """Reject requests that do not identify the calling organization."""
    @wraps(f)
    def decorated(*args, **kwargs):
        if not getattr(g, 'organization_id', None):
            return jsonify({
                'error': 'auth_required',
                'message': 'Missing organization identity.',
                'hint': 'Include X-Org-ID header',
                'request_id': getattr(g, 'request_id', None)
            }), 401
        return f(*args, **kwargs)
    return decorated


def _audit():
    return AuditTrail.from_config(db.session, current_app.config)


def _consents():
    return ConsentManager(
        db.session, _audit(), consent_version=current_app.config.get('TRUSTNET_CONSENT_VERSION', '1.0')
    )


def _engine():
    return ScoreEngine.from_config(db.session, db.engine, current_app.config)


def _lifecycle():
    audit = _audit()
    consents = ConsentManager(
        db.session, audit, consent_version=current_app.config.get('TRUSTNET_CONSENT_VERSION', '1.0')
    )
    return ParticipantLifecycle(db.session, consents, audit)


def _sharing():
    return DataSharingService(db.session, _consents(), _engine())


def _ok(payload, status_code=200):
    payload['request_id'] = getattr(g, 'request_id', None)
    return jsonify(payload), status_code


# ==================== SCORE ====================

@trust_bp.route('/score/calculate', methods=['POST'])
@require_org
def calculate_score():
    """
    Recompute the caller's trust score from fresh ERP metrics.

    On a storage failure the last known score is returned with a 503.
    """
    engine = _engine()
    org_id = g.organization_id
    attempts = current_app.config.get('TRUSTNET_CONFLICT_RETRIES', 3)

    try:
        result = retry_on_conflict(lambda: engine.calculate_trust_score(org_id), attempts=attempts)
    except StorageError as e:
        logger.error("Score recomputation failed", organization_id=org_id, error=e.message)
        return _ok({
            'error': e.code,
            'message': 'Score recomputation failed, showing last known score',
            'retryable': True,
            'last_known': engine.get_last_known(org_id),
        }, 503)

    return _ok(ScoreResponseSchema().dump(result.to_dict()))


@trust_bp.route('/score', methods=['GET'])
@require_org
def get_score():
    engine = _engine()
    breakdown = engine.get_score_breakdown(g.organization_id)
    breakdown['top_factors'] = engine.get_top_factors(breakdown)
    return _ok(breakdown)


@trust_bp.route('/score/history', methods=['GET'])
@require_org
def get_score_history():
    params = HistoryQuerySchema().load(request.args)
    history = _engine().get_score_history(g.organization_id, limit=params['limit'])
    return _ok({
        'organization_id': g.organization_id,
        'history': ScoreHistoryEntrySchema(many=True).dump(history),
    })


# ==================== CONSENT ====================

@trust_bp.route('/consent', methods=['GET'])
@require_org
def get_consents():
    consents = _consents()
    return _ok({
        'organization_id': g.organization_id,
        'status': consents.get_consent_status(g.organization_id),
        'history': consents.get_consent_history(g.organization_id),
    })


@trust_bp.route('/consent', methods=['POST'])
@require_org
def grant_consent():
    data = ConsentGrantSchema().load(request.get_json(silent=True) or {})
    metadata = get_consent_metadata()
    if data.get('consent_version'):
        metadata['consent_version'] = data['consent_version']

    result = _consents().grant_consent(
        g.organization_id, data['consent_type'], getattr(g, 'user_id', None), metadata
    )
    return _ok(result.to_dict())


@trust_bp.route('/consent/<consent_type>', methods=['DELETE'])
@require_org
def revoke_consent(consent_type):
    data = ConsentGrantSchema().load({'consent_type': consent_type})
    result = _consents().revoke_consent(
        g.organization_id, data['consent_type'], getattr(g, 'user_id', None)
    )
    if not result.success:
        raise NotFoundError(result.message, details={'consent_type': consent_type})
    return _ok(result.to_dict())


# ==================== PARTICIPATION ====================

@trust_bp.route('/marketplace/join', methods=['POST'])
@require_org
def join_marketplace():
    result = _consents().grant_marketplace_consents(
        g.organization_id, getattr(g, 'user_id', None), get_consent_metadata()
    )
    return _ok(result)


@trust_bp.route('/marketplace/eligibility', methods=['GET'])
@require_org
def marketplace_eligibility():
    return _ok({
        'organization_id': g.organization_id,
        'eligible': _lifecycle().can_participate(g.organization_id),
    })


@trust_bp.route('/exit', methods=['POST'])
@require_org
def exit_network():
    result = _lifecycle().exit_network(g.organization_id, getattr(g, 'user_id', None))
    return _ok(result)


@trust_bp.route('/insights', methods=['POST'])
@require_org
def submit_insight():
    data = InsightCreateSchema().load(request.get_json(silent=True) or {})
    result = _lifecycle().submit_insight(g.organization_id, data)
    return _ok(ContributionResponseSchema().dump(result), 201)


@trust_bp.route('/appeals', methods=['POST'])
@require_org
def submit_appeal():
    data = AppealCreateSchema().load(request.get_json(silent=True) or {})
    reason = data.get('reason') or (data.get('evidence') or {}).get('description')
    appeal = _lifecycle().submit_appeal(
        g.organization_id, data['appeal_type'], reason, getattr(g, 'user_id', None)
    )
    return _ok({'success': True, 'appeal': appeal.to_dict()}, 201)


@trust_bp.route('/appeals', methods=['GET'])
@require_org
def list_appeals():
    appeals = _lifecycle().list_appeals(g.organization_id)
    return _ok({'appeals': [appeal.to_dict() for appeal in appeals], 'count': len(appeals)})


# ==================== DATA SHARING ====================

@trust_bp.route('/benchmarks', methods=['GET'])
@require_org
def get_benchmarks():
    params = BenchmarkQuerySchema().load(request.args)
    return _ok(_sharing().compute_benchmarks(params['industry'], params['metric_key']))


@trust_bp.route('/export', methods=['GET'])
@require_org
def export_metrics():
    return _ok(_sharing().export_metrics(g.organization_id))


@trust_bp.route('/profile/<organization_id>', methods=['GET'])
def public_profile(organization_id):
    """Public profile of any organization that opted into one."""
    return _ok(_sharing().public_profile(organization_id))


# ==================== AUDIT ====================

@trust_bp.route('/audit', methods=['GET'])
@require_org
def get_audit_log():
    params = AuditQuerySchema().load(request.args)
    entries = _audit().query(
        organization_id=g.organization_id,
        since=params.get('since'),
        until=params.get('until'),
        action=params.get('action'),
        limit=params['limit'],
    )
    return _ok({
        'organization_id': g.organization_id,
        'entries': AuditEntrySchema(many=True).dump(entries),
        'count': len(entries),
    })


@trust_bp.route('/audit/verify', methods=['GET'])
@require_org
def verify_audit_chain():
    return _ok(_audit().verify_chain(g.organization_id).to_dict())
