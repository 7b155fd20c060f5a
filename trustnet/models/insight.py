# -*- coding: utf-8 -*-
import uuid

from sqlalchemy import Column, DateTime, Index, Integer, String, Float

from trustnet.infra.db import db, utcnow


class SharedInsight(db.Model):
    """Anonymized data point an organization contributed for benchmarking."""
    __tablename__ = 'trust_shared_insights'

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    source_organization_id = Column(String(36), nullable=False, index=True)
    industry = Column(String(64), nullable=False)
    metric_key = Column(String(64), nullable=False)
    value = Column(Float, nullable=False)
    verification_score = Column(Integer, nullable=False, default=100)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    __table_args__ = (
        Index('ix_trust_shared_insights_industry_metric', 'industry', 'metric_key'),
    )

    def to_dict(self):
        # The source organization is never exposed
        return {
            'id': self.id,
            'industry': self.industry,
            'metric_key': self.metric_key,
            'value': self.value,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }
