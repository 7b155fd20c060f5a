# -*- coding: utf-8 -*-
"""
Metric Collector.

Turns raw ERP facts into the four canonical trust metrics over a trailing
window ending at ``as_of``. A metric type with no facts in the window is
skipped so a quiet period leaves the previous value as the latest one.
"""
from datetime import datetime, timedelta, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError

from trustnet.infra.db import utcnow
from trustnet.infra.log import get_logger
from trustnet.models.metric import METRIC_TYPES, TrustMetric
from trustnet.services.erp_facts import ErpFactSource
from trustnet.services.errors import ValidationError
from trustnet.services.metrics import get_metrics_service
from trustnet.services.transactions import unit_of_work

logger = get_logger('trustnet.collector')

DEFAULT_WINDOW_DAYS = 30


def to_percentage(matching: int, total: int) -> int:
    """Integer percentage, rounded half-up."""
    ratio = Decimal(matching) * 100 / Decimal(total)
    return int(ratio.quantize(Decimal('1'), rounding=ROUND_HALF_UP))


class MetricCollector:

    def __init__(self, session, fact_source: ErpFactSource, window_days: int = DEFAULT_WINDOW_DAYS):
        if not isinstance(window_days, int) or window_days < 1:
            raise ValidationError(f"window_days must be a positive integer, got {window_days!r}")
        self.session = session
        self.fact_source = fact_source
        self.window_days = window_days

    @classmethod
    def from_config(cls, session, engine, config):
        return cls(
            session,
            ErpFactSource(engine),
            window_days=config.get('TRUSTNET_METRIC_WINDOW_DAYS', DEFAULT_WINDOW_DAYS),
        )

    def window(self, as_of: Optional[datetime] = None):
        """Return the ``(start, end)`` collection window ending at ``as_of``."""
        if as_of is None:
            as_of = utcnow()
        elif not isinstance(as_of, datetime):
            raise ValidationError(f"as_of must be a datetime, got {type(as_of).__name__}")
        elif as_of.tzinfo is not None:
            as_of = as_of.astimezone(timezone.utc).replace(tzinfo=None)
        return as_of - timedelta(days=self.window_days), as_of

    def collect_metrics(self, organization_id: str, as_of: Optional[datetime] = None,
                        commit: bool = True) -> List[TrustMetric]:
        """
        Compute and insert fresh metrics for an organization.

        Returns the inserted rows; an organization with no operational
        history yields an empty list. A storage failure on one metric type
        is logged and the remaining types are still collected.
        """
        period_start, period_end = self.window(as_of)
        metrics_service = get_metrics_service()
        emitted = []

        with unit_of_work(self.session, commit=commit):
            for metric_type in METRIC_TYPES:
                try:
                    facts = self.fact_source.ratio(metric_type, organization_id, period_start, period_end)
                except SQLAlchemyError as e:
                    logger.warning(
                        "Metric computation failed, skipping",
                        organization_id=organization_id,
                        metric_type=metric_type,
                        error=str(e),
                    )
                    if metrics_service:
                        metrics_service.record_collector_failure(metric_type)
                    continue

                if facts.total == 0:
                    continue

                metric = TrustMetric(
                    organization_id=organization_id,
                    metric_type=metric_type,
                    value=to_percentage(facts.matching, facts.total),
                    period_start=period_start,
                    period_end=period_end,
                    source_count=facts.total,
                    is_verified=True,
                    created_at=utcnow(),
                )
                self.session.add(metric)
                emitted.append(metric)

        logger.info(
            "Metrics collected",
            organization_id=organization_id,
            emitted=[m.metric_type for m in emitted],
            period_start=period_start.isoformat(),
            period_end=period_end.isoformat(),
        )
        return emitted
