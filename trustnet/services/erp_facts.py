# -*- coding: utf-8 -*-
"""
Read-only adapter over ERP sales and purchases.

Each query returns how many facts in the window satisfy a metric's
condition and how many facts there were. Reads run on their own
connection so a failed aggregate never poisons the caller's session.
"""
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import and_, case, func, or_, select

from trustnet.models.erp import DELIVERED, PAID, REFUNDED, RETURNED, Purchase, Sale
from trustnet.models.metric import (
    DELIVERY_TIMELINESS,
    DISPUTE_RATE,
    ORDER_FULFILLMENT,
    PAYMENT_COMPLIANCE,
)


@dataclass(frozen=True)
class FactRatio:
    matching: int
    total: int


class ErpFactSource:
    """Aggregates raw ERP facts for the Metric Collector."""

    def __init__(self, engine):
        self.engine = engine
        self._queries = {
            PAYMENT_COMPLIANCE: self.payment_compliance,
            DELIVERY_TIMELINESS: self.delivery_timeliness,
            ORDER_FULFILLMENT: self.order_fulfillment,
            DISPUTE_RATE: self.dispute_rate,
        }

    def ratio(self, metric_type: str, organization_id: str, start: datetime, end: datetime) -> FactRatio:
        return self._queries[metric_type](organization_id, start, end)

    def payment_compliance(self, organization_id, start, end) -> FactRatio:
        """Purchases paid, out of all purchases in the window."""
        return self._count(Purchase, Purchase.payment_status == PAID, organization_id, start, end)

    def delivery_timeliness(self, organization_id, start, end) -> FactRatio:
        return self._count(Sale, Sale.delivery_status == DELIVERED, organization_id, start, end)

    def order_fulfillment(self, organization_id, start, end) -> FactRatio:
        """Sales both paid and delivered."""
        condition = and_(Sale.payment_status == PAID, Sale.delivery_status == DELIVERED)
        return self._count(Sale, condition, organization_id, start, end)

    def dispute_rate(self, organization_id, start, end) -> FactRatio:
        """Sales refunded or returned."""
        condition = or_(Sale.payment_status == REFUNDED, Sale.delivery_status == RETURNED)
        return self._count(Sale, condition, organization_id, start, end)

    def _count(self, model, condition, organization_id, start, end) -> FactRatio:
        stmt = select(
            func.count(),
            func.coalesce(func.sum(case((condition, 1), else_=0)), 0),
        ).select_from(model).where(
            model.organization_id == organization_id,
            model.date >= start,
            model.date <= end,
        )
        with self.engine.connect() as conn:
            total, matching = conn.execute(stmt).one()
        return FactRatio(matching=int(matching), total=int(total))
