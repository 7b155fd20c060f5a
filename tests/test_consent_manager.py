# -*- coding: utf-8 -*-
"""
Tests for the Consent Manager.
"""
import pytest

from trustnet.models.audit_log import CONSENT_GRANTED, CONSENT_REVOKED, TrustAuditLog
from trustnet.models.consent import Consent
from trustnet.services.errors import ConsentRequiredError, ValidationError


def _audit_actions(session, organization_id):
    return [
        entry.action
        for entry in session.query(TrustAuditLog)
        .filter_by(organization_id=organization_id)
        .order_by(TrustAuditLog.sequence)
    ]


class TestGrantConsent:

    def test_grant_creates_consent(self, consents, session):
        result = consents.grant_consent(
            'org-1', 'share_metrics', 'user-1',
            {'ip_address': '10.0.0.1', 'user_agent': 'pytest'},
        )

        assert result.success is True
        assert consents.check_consent('org-1', 'share_metrics') is True

        consent = session.query(Consent).filter_by(organization_id='org-1').one()
        assert consent.state == 'granted'
        assert consent.granted_by_user_id == 'user-1'
        assert consent.ip_address == '10.0.0.1'
        assert consent.user_agent == 'pytest'
        assert consent.consent_version == '1.0'

    def test_grant_is_idempotent(self, consents, session):
        consents.grant_consent('org-1', 'share_metrics', 'user-1')
        result = consents.grant_consent('org-1', 'share_metrics', 'user-2')

        assert result.success is True
        assert result.message == 'Consent already granted'
        assert session.query(Consent).filter_by(organization_id='org-1').count() == 1
        assert _audit_actions(session, 'org-1') == [CONSENT_GRANTED]

    def test_regrant_reuses_revoked_row(self, consents, session):
        consents.grant_consent('org-1', 'public_profile', 'user-1')
        consents.revoke_consent('org-1', 'public_profile', 'user-1')
        consents.grant_consent('org-1', 'public_profile', 'user-2', {'consent_version': '2.0'})

        rows = session.query(Consent).filter_by(organization_id='org-1').all()
        assert len(rows) == 1
        assert rows[0].is_active
        assert rows[0].revoked_at is None
        assert rows[0].granted_by_user_id == 'user-2'
        assert rows[0].consent_version == '2.0'
        assert _audit_actions(session, 'org-1') == [CONSENT_GRANTED, CONSENT_REVOKED, CONSENT_GRANTED]

    def test_unknown_type_rejected(self, consents, session):
        with pytest.raises(ValidationError):
            consents.grant_consent('org-1', 'sell_my_data', 'user-1')
        assert session.query(Consent).count() == 0

    def test_audit_entry_content(self, consents, session):
        consents.grant_consent('org-1', 'share_metrics', 'user-1')

        entry = session.query(TrustAuditLog).filter_by(organization_id='org-1').one()
        assert entry.entity_type == 'consent'
        assert entry.entity_id == 'share_metrics'
        assert entry.user_id == 'user-1'
        assert entry.new_value['consent_type'] == 'share_metrics'
        assert entry.new_value['version'] == '1.0'
        assert 'timestamp' in entry.new_value


class TestRevokeConsent:

    def test_revoke_active_consent(self, consents, session):
        consents.grant_consent('org-1', 'share_metrics', 'user-1')

        result = consents.revoke_consent('org-1', 'share_metrics', 'user-1')

        assert result.success is True
        assert consents.check_consent('org-1', 'share_metrics') is False
        consent = session.query(Consent).filter_by(organization_id='org-1').one()
        assert consent.state == 'revoked'
        assert consent.revoked_at is not None

    def test_revoke_without_consent(self, consents, session):
        result = consents.revoke_consent('org-1', 'share_metrics', 'user-1')

        assert result.success is False
        assert result.message == 'No active consent found'
        assert _audit_actions(session, 'org-1') == []

    def test_revoke_twice_is_noop(self, consents, session):
        consents.grant_consent('org-1', 'share_metrics', 'user-1')
        consents.revoke_consent('org-1', 'share_metrics', 'user-1')

        result = consents.revoke_consent('org-1', 'share_metrics', 'user-1')

        assert result.success is False
        assert _audit_actions(session, 'org-1') == [CONSENT_GRANTED, CONSENT_REVOKED]


class TestConsentQueries:

    def test_absent_consent_is_revoked(self, consents):
        assert consents.check_consent('org-1', 'industry_benchmarks') is False

    def test_check_consents_batch(self, consents):
        consents.grant_consent('org-1', 'share_metrics', 'user-1')
        consents.grant_consent('org-1', 'public_profile', 'user-1')
        consents.revoke_consent('org-1', 'public_profile', 'user-1')

        states = consents.check_consents('org-1', ['share_metrics', 'public_profile', 'industry_benchmarks'])

        assert states == {
            'share_metrics': True,
            'public_profile': False,
            'industry_benchmarks': False,
        }

    def test_consent_status(self, consents):
        consents.grant_consent('org-1', 'marketplace_participation', 'user-1')

        assert consents.get_consent_status('org-1') == {
            'share_metrics': False,
            'public_profile': False,
            'marketplace_participation': True,
            'industry_benchmarks': False,
        }

    def test_consent_history(self, consents):
        consents.grant_consent('org-1', 'share_metrics', 'user-1')
        consents.grant_consent('org-1', 'public_profile', 'user-1')
        consents.revoke_consent('org-1', 'public_profile', 'user-1')

        history = consents.get_consent_history('org-1')

        assert [c['type'] for c in history['active']] == ['share_metrics']
        assert history['active'][0]['version'] == '1.0'
        assert [c['type'] for c in history['revoked']] == ['public_profile']
        assert history['revoked'][0]['revoked_at'] is not None

    def test_reads_do_not_write(self, consents, session):
        consents.check_consent('org-1', 'share_metrics')
        consents.get_consent_status('org-1')
        consents.get_consent_history('org-1')

        assert session.query(TrustAuditLog).count() == 0
        assert session.query(Consent).count() == 0

    def test_require_consent(self, consents):
        consents.grant_consent('org-1', 'share_metrics', 'user-1')
        consents.require_consent('org-1', 'share_metrics')

        with pytest.raises(ConsentRequiredError) as exc_info:
            consents.require_consent('org-1', 'share_metrics', 'public_profile', 'marketplace_participation')

        assert exc_info.value.missing == ['marketplace_participation', 'public_profile']
        assert exc_info.value.http_status == 403


class TestBulkConsent:

    def test_grant_marketplace_consents(self, consents, session):
        result = consents.grant_marketplace_consents('org-1', 'user-1')

        assert result == {
            'success': True,
            'granted': ['share_metrics', 'public_profile', 'marketplace_participation'],
            'already_active': [],
        }
        assert consents.get_consent_status('org-1')['industry_benchmarks'] is False
        assert _audit_actions(session, 'org-1') == [CONSENT_GRANTED] * 3

    def test_grant_marketplace_consents_skips_active(self, consents, session):
        consents.grant_consent('org-1', 'share_metrics', 'user-1')

        result = consents.grant_marketplace_consents('org-1', 'user-1')

        assert result['granted'] == ['public_profile', 'marketplace_participation']
        assert result['already_active'] == ['share_metrics']
        assert _audit_actions(session, 'org-1') == [CONSENT_GRANTED] * 3

    def test_revoke_all_consents(self, consents, session):
        consents.grant_marketplace_consents('org-1', 'user-1')

        result = consents.revoke_all_consents('org-1', 'user-1')

        assert sorted(result['revoked']) == ['marketplace_participation', 'public_profile', 'share_metrics']
        assert not any(consents.get_consent_status('org-1').values())
        assert _audit_actions(session, 'org-1').count(CONSENT_REVOKED) == 3
