# -*- coding: utf-8 -*-
"""
Trust audit log.

Append-only record of every consent, score and lifecycle event. Entries are
numbered per organization and may carry a rolling hash:
``entry_hash = H(previous_hash || canonical_json(entry))``.
"""
import uuid
from typing import Any, Dict

from sqlalchemy import Column, DateTime, Index, Integer, String, UniqueConstraint, event
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.types import JSON as SA_JSON

from trustnet.infra.db import db, utcnow
from trustnet.services.errors import ImmutableRecordError

SCORE_CALCULATED = 'score_calculated'
CONSENT_GRANTED = 'consent_granted'
CONSENT_REVOKED = 'consent_revoked'
INSIGHT_SUBMITTED = 'insight_submitted'
PARTICIPANT_PENALIZED = 'participant_penalized'
APPEAL_SUBMITTED = 'appeal_submitted'

AUDIT_ACTIONS = (
    SCORE_CALCULATED,
    CONSENT_GRANTED,
    CONSENT_REVOKED,
    INSIGHT_SUBMITTED,
    PARTICIPANT_PENALIZED,
    APPEAL_SUBMITTED,
)

JSONColumn = SA_JSON().with_variant(JSONB(), 'postgresql')


class TrustAuditLog(db.Model):
    __tablename__ = 'trust_audit_logs'

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    organization_id = Column(String(36), nullable=False)
    # Position in the organization's chain, starting at 1
    sequence = Column(Integer, nullable=False)
    user_id = Column(String(36), nullable=True)  # None for system-initiated events
    action = Column(String(64), nullable=False)
    entity_type = Column(String(32), nullable=False)
    entity_id = Column(String(64), nullable=True)
    old_value = Column(JSONColumn, nullable=True)
    new_value = Column(JSONColumn, nullable=True)
    timestamp = Column(DateTime, nullable=False, default=utcnow)
    previous_hash = Column(String(128), nullable=True)
    entry_hash = Column(String(128), nullable=True)

    __table_args__ = (
        UniqueConstraint('organization_id', 'sequence', name='uq_trust_audit_org_sequence'),
        Index('ix_trust_audit_logs_org_timestamp', 'organization_id', 'timestamp'),
        Index('ix_trust_audit_logs_action', 'action'),
    )

    def hash_payload(self) -> Dict[str, Any]:
        """Fields covered by the entry hash, in serializable form."""
        return {
            'organization_id': self.organization_id,
            'sequence': self.sequence,
            'user_id': self.user_id,
            'action': self.action,
            'entity_type': self.entity_type,
            'entity_id': self.entity_id,
            'old_value': self.old_value,
            'new_value': self.new_value,
            'timestamp': self.timestamp.isoformat() if self.timestamp else None,
        }

    def to_dict(self) -> Dict[str, Any]:
        data = self.hash_payload()
        data.update({
            'id': self.id,
            'previous_hash': self.previous_hash,
            'entry_hash': self.entry_hash,
        })
        return data

    def __repr__(self) -> str:
        return f"<TrustAuditLog {self.organization_id}#{self.sequence} action={self.action}>"


@event.listens_for(TrustAuditLog, 'before_update')
def _reject_update(mapper, connection, target):
    raise ImmutableRecordError(f"Audit entry {target.id} is append-only")


@event.listens_for(TrustAuditLog, 'before_delete')
def _reject_delete(mapper, connection, target):
    raise ImmutableRecordError(f"Audit entry {target.id} cannot be deleted")
