# -*- coding: utf-8 -*-
"""
Metric Store.

Point-in-time operational metrics per organization. Every recomputation
cycle inserts new rows; old rows stay for audit and trend analysis.
"""
import uuid

from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, Index, Integer, String

from trustnet.infra.db import db, utcnow

PAYMENT_COMPLIANCE = 'payment_compliance'
DELIVERY_TIMELINESS = 'delivery_timeliness'
ORDER_FULFILLMENT = 'order_fulfillment'
DISPUTE_RATE = 'dispute_rate'

METRIC_TYPES = (PAYMENT_COMPLIANCE, DELIVERY_TIMELINESS, ORDER_FULFILLMENT, DISPUTE_RATE)

# Metrics where a lower value is better
INVERTED_METRICS = frozenset({DISPUTE_RATE})


class TrustMetric(db.Model):
    """One computed metric value over a measurement period."""
    __tablename__ = 'trust_metrics'

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    organization_id = Column(String(36), nullable=False)
    metric_type = Column(String(32), nullable=False)
    value = Column(Integer, nullable=False)  # 0-100
    period_start = Column(DateTime, nullable=False)
    period_end = Column(DateTime, nullable=False)
    source_count = Column(Integer, nullable=False)
    is_verified = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    __table_args__ = (
        CheckConstraint('period_start <= period_end', name='ck_trust_metric_period'),
        CheckConstraint('source_count > 0', name='ck_trust_metric_source_count'),
        CheckConstraint('value >= 0 AND value <= 100', name='ck_trust_metric_value_range'),
        CheckConstraint(
            "metric_type IN ('payment_compliance', 'delivery_timeliness', "
            "'order_fulfillment', 'dispute_rate')",
            name='ck_trust_metric_type'
        ),
        Index('ix_trust_metrics_org_type_created', 'organization_id', 'metric_type', 'created_at'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'organization_id': self.organization_id,
            'metric_type': self.metric_type,
            'value': self.value,
            'period_start': self.period_start.isoformat() if self.period_start else None,
            'period_end': self.period_end.isoformat() if self.period_end else None,
            'source_count': self.source_count,
            'is_verified': self.is_verified,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f'<TrustMetric {self.organization_id} {self.metric_type}={self.value}>'
