# -*- coding: utf-8 -*-
import uuid

from sqlalchemy import CheckConstraint, Column, DateTime, Index, Integer, String
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.types import JSON as SA_JSON

from trustnet.infra.db import db, utcnow


class ScoreHistory(db.Model):
    """Immutable record of one Score Engine computation."""
    __tablename__ = 'trust_score_history'

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    organization_id = Column(String(36), nullable=False)
    score = Column(Integer, nullable=False)  # 0-1000
    status = Column(String(32), nullable=False)
    # metric_type -> raw value used (before polarity inversion)
    breakdown = Column(SA_JSON().with_variant(JSONB(), 'postgresql'), nullable=False)
    calculated_at = Column(DateTime, nullable=False, default=utcnow)

    __table_args__ = (
        CheckConstraint('score >= 0 AND score <= 1000', name='ck_trust_score_history_range'),
        Index('ix_trust_score_history_org_calculated', 'organization_id', 'calculated_at'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'organization_id': self.organization_id,
            'score': self.score,
            'status': self.status,
            'breakdown': self.breakdown,
            'calculated_at': self.calculated_at.isoformat() if self.calculated_at else None,
        }
