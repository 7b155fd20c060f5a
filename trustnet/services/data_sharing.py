# -*- coding: utf-8 -*-
"""
Consent-gated data sharing.

Every path that lets an organization's data leave its tenant goes through
this service, which checks the relevant consent first.
"""
import statistics
from typing import Dict, List

from trustnet.infra.log import get_logger
from trustnet.models.consent import INDUSTRY_BENCHMARKS, PUBLIC_PROFILE, SHARE_METRICS, Consent
from trustnet.models.insight import SharedInsight
from trustnet.services.consent_manager import ConsentManager
from trustnet.services.errors import ValidationError
from trustnet.services.score_engine import ScoreEngine

logger = get_logger('trustnet.consent')


def summarize(values: List[float]) -> Dict:
    """Average, median and quartiles of a sample."""
    if len(values) == 1:
        p25 = p75 = values[0]
    else:
        p25, _, p75 = statistics.quantiles(values, n=4, method='inclusive')
    return {
        'count': len(values),
        'average': round(statistics.fmean(values), 2),
        'median': round(statistics.median(values), 2),
        'p25': round(p25, 2),
        'p75': round(p75, 2),
    }


class DataSharingService:
    def __init__(self, db, consents: ConsentManager, engine: ScoreEngine):
        self.db = db
        self.consents = consents
        self.engine = engine

    def export_metrics(self, organization_id: str) -> Dict:
        """Latest metrics and score, for organizations sharing their metrics."""
        self.consents.require_consent(organization_id, SHARE_METRICS)
        latest = self.engine.get_latest_metrics(organization_id)
        breakdown = self.engine.get_score_breakdown(organization_id)
        logger.info("Metrics exported", organization_id=organization_id, metric_count=len(latest))
        return {
            'organization_id': organization_id,
            'score': breakdown['score'],
            'status': breakdown['status'],
            'metrics': {metric_type: metric.to_dict() for metric_type, metric in latest.items()},
        }

    def public_profile(self, organization_id: str) -> Dict:
        """Coarse profile other tenants may see: status and a score bucket."""
        self.consents.require_consent(organization_id, PUBLIC_PROFILE)
        breakdown = self.engine.get_score_breakdown(organization_id)
        return {
            'organization_id': organization_id,
            'status': breakdown['status'],
            'score_range': self.engine.bucket_score(breakdown['score']),
            'top_factors': [f['factor'] for f in self.engine.get_top_factors(breakdown)],
        }

    def compute_benchmarks(self, industry: str, metric_key: str) -> Dict:
        """
        Aggregate shared insights for one industry metric.

        Only insights from organizations with an active industry_benchmarks
        consent are included; the result never names a contributor.
        """
        if not industry or not metric_key:
            raise ValidationError("industry and metric_key are required")

        rows = (
            self.db.query(SharedInsight.value)
            .join(Consent, Consent.organization_id == SharedInsight.source_organization_id)
            .filter(
                SharedInsight.industry == industry,
                SharedInsight.metric_key == metric_key,
                Consent.consent_type == INDUSTRY_BENCHMARKS,
                Consent.revoked_at.is_(None),
            )
            .all()
        )
        values = [row.value for row in rows]
        result = {'industry': industry, 'metric_key': metric_key}
        if not values:
            result.update({'count': 0, 'average': None, 'median': None, 'p25': None, 'p75': None})
            return result
        result.update(summarize(values))
        return result
