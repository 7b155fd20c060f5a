# -*- coding: utf-8 -*-
"""
Consent records for cross-tenant data sharing.

One canonical row per (organization, purpose). The state lives in the
nullable ``revoked_at`` column; callers read it through ``state`` and
``is_active`` instead of inspecting the timestamp.
"""
import uuid

from sqlalchemy import Column, DateTime, String, UniqueConstraint

from trustnet.infra.db import db, utcnow

SHARE_METRICS = 'share_metrics'
PUBLIC_PROFILE = 'public_profile'
MARKETPLACE_PARTICIPATION = 'marketplace_participation'
INDUSTRY_BENCHMARKS = 'industry_benchmarks'

CONSENT_TYPES = (SHARE_METRICS, PUBLIC_PROFILE, MARKETPLACE_PARTICIPATION, INDUSTRY_BENCHMARKS)

# industry_benchmarks stays a separate opt-in
MARKETPLACE_CONSENTS = (SHARE_METRICS, PUBLIC_PROFILE, MARKETPLACE_PARTICIPATION)

GRANTED = 'granted'
REVOKED = 'revoked'


class Consent(db.Model):
    __tablename__ = 'trust_consents'

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    organization_id = Column(String(36), nullable=False, index=True)
    consent_type = Column(String(40), nullable=False)
    granted_at = Column(DateTime, nullable=False, default=utcnow)
    revoked_at = Column(DateTime, nullable=True)
    granted_by_user_id = Column(String(36), nullable=True)
    ip_address = Column(String(64), nullable=True)
    user_agent = Column(String(512), nullable=True)
    consent_version = Column(String(16), nullable=False, default='1.0')

    __table_args__ = (
        UniqueConstraint('organization_id', 'consent_type', name='uq_trust_consent_org_type'),
    )

    @property
    def is_active(self) -> bool:
        return self.revoked_at is None

    @property
    def state(self) -> str:
        return GRANTED if self.is_active else REVOKED

    def to_dict(self):
        return {
            'id': self.id,
            'organization_id': self.organization_id,
            'consent_type': self.consent_type,
            'state': self.state,
            'granted_at': self.granted_at.isoformat() if self.granted_at else None,
            'revoked_at': self.revoked_at.isoformat() if self.revoked_at else None,
            'granted_by_user_id': self.granted_by_user_id,
            'consent_version': self.consent_version,
        }

    def __repr__(self):
        return f'<Consent {self.organization_id} {self.consent_type} {self.state}>'
