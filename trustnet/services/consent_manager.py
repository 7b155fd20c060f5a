# -*- coding: utf-8 -*-
"""
Consent Manager.

Tracks, per organization, which data-sharing purposes are currently granted.
Every grant/revoke transition is mirrored into the audit trail inside the
same transaction; repeated grants and revokes are no-ops.
"""
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

from trustnet.infra.db import utcnow
from trustnet.infra.log import get_logger
from trustnet.models.audit_log import CONSENT_GRANTED, CONSENT_REVOKED
from trustnet.models.consent import CONSENT_TYPES, MARKETPLACE_CONSENTS, Consent
from trustnet.services.audit import AuditTrail
from trustnet.services.errors import ConsentRequiredError, ValidationError
from trustnet.services.metrics import get_metrics_service
from trustnet.services.transactions import unit_of_work

logger = get_logger('trustnet.consent')


@dataclass
class ConsentResult:
    success: bool
    message: str

    def to_dict(self):
        return {'success': self.success, 'message': self.message}


def validate_consent_type(consent_type: str) -> str:
    if consent_type not in CONSENT_TYPES:
        raise ValidationError(
            f"Unknown consent type: {consent_type}",
            details={'consent_type': consent_type, 'allowed': list(CONSENT_TYPES)},
        )
    return consent_type


class ConsentManager:
    """Grant, revoke and check data-sharing consents."""

    def __init__(self, db, audit: AuditTrail, consent_version: str = '1.0'):
        self.db = db
        self.audit = audit
        self.consent_version = consent_version

    @classmethod
    def from_config(cls, session, config):
        return cls(
            session,
            audit=AuditTrail.from_config(session, config),
            consent_version=config.get('TRUSTNET_CONSENT_VERSION', '1.0'),
        )

    def _lock(self, organization_id: str, consent_type: str) -> Optional[Consent]:
        return (
            self.db.query(Consent)
            .filter(
                Consent.organization_id == organization_id,
                Consent.consent_type == consent_type,
            )
            .with_for_update()
            .populate_existing()
            .first()
        )

    def grant_consent(self, organization_id: str, consent_type: str,
                      user_id: Optional[str], metadata: Optional[Dict] = None) -> ConsentResult:
        """
        Grant consent for one purpose.

        ``metadata`` may carry ``ip_address``, ``user_agent`` and
        ``consent_version``.
        """
        validate_consent_type(consent_type)
        with unit_of_work(self.db):
            changed = self._grant(organization_id, consent_type, user_id, metadata or {})
        if not changed:
            return ConsentResult(True, 'Consent already granted')
        self._record_transition(organization_id, consent_type, 'grant')
        return ConsentResult(True, 'Consent granted successfully')

    def _grant(self, organization_id, consent_type, user_id, metadata) -> bool:
        now = utcnow()
        version = metadata.get('consent_version') or self.consent_version
        consent = self._lock(organization_id, consent_type)

        if consent is not None and consent.is_active:
            return False

        if consent is None:
            consent = Consent(organization_id=organization_id, consent_type=consent_type)
            self.db.add(consent)
        consent.granted_at = now
        consent.revoked_at = None
        consent.granted_by_user_id = user_id
        consent.ip_address = metadata.get('ip_address')
        consent.user_agent = metadata.get('user_agent')
        consent.consent_version = version

        self.audit.record(
            organization_id,
            CONSENT_GRANTED,
            entity_type='consent',
            entity_id=consent_type,
            new_value={'consent_type': consent_type, 'timestamp': now.isoformat(), 'version': version},
            user_id=user_id,
        )
        return True

    def revoke_consent(self, organization_id: str, consent_type: str,
                       user_id: Optional[str]) -> ConsentResult:
        validate_consent_type(consent_type)
        with unit_of_work(self.db):
            changed = self._revoke(organization_id, consent_type, user_id)
        if not changed:
            return ConsentResult(False, 'No active consent found')
        self._record_transition(organization_id, consent_type, 'revoke')
        return ConsentResult(True, 'Consent revoked successfully')

    def _revoke(self, organization_id, consent_type, user_id) -> bool:
        consent = self._lock(organization_id, consent_type)
        if consent is None or not consent.is_active:
            return False

        now = utcnow()
        consent.revoked_at = now
        self.audit.record(
            organization_id,
            CONSENT_REVOKED,
            entity_type='consent',
            entity_id=consent_type,
            old_value={'consent_type': consent_type, 'granted_at': consent.granted_at.isoformat()},
            new_value={'consent_type': consent_type, 'timestamp': now.isoformat()},
            user_id=user_id,
        )
        return True

    def check_consent(self, organization_id: str, consent_type: str) -> bool:
        validate_consent_type(consent_type)
        return self.check_consents(organization_id, [consent_type])[consent_type]

    def check_consents(self, organization_id: str, consent_types: Iterable[str]) -> Dict[str, bool]:
        """Active state for several purposes in a single query."""
        consent_types = [validate_consent_type(t) for t in consent_types]
        active = {
            row.consent_type
            for row in self.db.query(Consent.consent_type).filter(
                Consent.organization_id == organization_id,
                Consent.consent_type.in_(consent_types),
                Consent.revoked_at.is_(None),
            )
        }
        return {consent_type: consent_type in active for consent_type in consent_types}

    def require_consent(self, organization_id: str, *consent_types: str) -> None:
        states = self.check_consents(organization_id, consent_types)
        missing = [consent_type for consent_type, granted in states.items() if not granted]
        if missing:
            logger.info("Consent check refused", organization_id=organization_id, missing=missing)
            raise ConsentRequiredError(organization_id, missing)

    def get_consent_history(self, organization_id: str) -> Dict[str, List[Dict]]:
        consents = (
            self.db.query(Consent)
            .filter(Consent.organization_id == organization_id)
            .order_by(Consent.granted_at.desc())
            .all()
        )
        return {
            'active': [
                {
                    'type': c.consent_type,
                    'granted_at': c.granted_at.isoformat(),
                    'version': c.consent_version,
                }
                for c in consents if c.is_active
            ],
            'revoked': [
                {
                    'type': c.consent_type,
                    'granted_at': c.granted_at.isoformat(),
                    'revoked_at': c.revoked_at.isoformat(),
                }
                for c in consents if not c.is_active
            ],
        }

    def get_consent_status(self, organization_id: str) -> Dict[str, bool]:
        return self.check_consents(organization_id, CONSENT_TYPES)

    def grant_marketplace_consents(self, organization_id: str, user_id: Optional[str],
                                   metadata: Optional[Dict] = None) -> Dict:
        """Grant every purpose marketplace participation needs, atomically."""
        granted, already_active = [], []
        with unit_of_work(self.db):
            for consent_type in MARKETPLACE_CONSENTS:
                if self._grant(organization_id, consent_type, user_id, metadata or {}):
                    granted.append(consent_type)
                else:
                    already_active.append(consent_type)
        for consent_type in granted:
            self._record_transition(organization_id, consent_type, 'grant')
        return {'success': True, 'granted': granted, 'already_active': already_active}

    def revoke_all_consents(self, organization_id: str, user_id: Optional[str],
                            commit: bool = True) -> Dict:
        revoked = []
        with unit_of_work(self.db, commit=commit):
            for consent_type in CONSENT_TYPES:
                if self._revoke(organization_id, consent_type, user_id):
                    revoked.append(consent_type)
        for consent_type in revoked:
            self._record_transition(organization_id, consent_type, 'revoke')
        return {'revoked': revoked}

    def _record_transition(self, organization_id, consent_type, action):
        metrics_service = get_metrics_service()
        if metrics_service:
            metrics_service.record_consent_transition(consent_type, action)
        logger.log_trust_event(f'consent_{action}', organization_id, consent_type=consent_type)
