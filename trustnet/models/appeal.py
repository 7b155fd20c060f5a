# -*- coding: utf-8 -*-
import uuid

from sqlalchemy import Column, DateTime, Index, String, Text

from trustnet.infra.db import db, utcnow

APPEAL_TYPES = ('score_dispute', 'metric_correction', 'privacy', 'transaction')

SUBMITTED = 'submitted'
APPEAL_STATUSES = (SUBMITTED, 'under_review', 'accepted', 'rejected', 'resolved')

NO_REASON = 'No reason provided'


class ScoreAppeal(db.Model):
    """Request by an organization to correct its score or the data behind it."""
    __tablename__ = 'trust_appeals'

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    organization_id = Column(String(36), nullable=False)
    appeal_type = Column(String(32), nullable=False)
    reason = Column(Text, nullable=False)
    status = Column(String(20), nullable=False, default=SUBMITTED)
    submitted_by_user_id = Column(String(36))
    created_at = Column(DateTime, nullable=False, default=utcnow)

    __table_args__ = (
        Index('ix_trust_appeals_org_created', 'organization_id', 'created_at'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'organization_id': self.organization_id,
            'appeal_type': self.appeal_type,
            'reason': self.reason,
            'status': self.status,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }
