# -*- coding: utf-8 -*-
"""
Score Engine.

Computes a 0-1000 operational trust score for an organization from the
latest verified metric of each canonical type, persists it and derives the
organization's status tier.
"""
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, List, Optional

from sqlalchemy import and_, func

from trustnet.infra.db import utcnow
from trustnet.infra.log import get_logger
from trustnet.models.audit_log import SCORE_CALCULATED
from trustnet.models.metric import (
    DELIVERY_TIMELINESS,
    DISPUTE_RATE,
    INVERTED_METRICS,
    METRIC_TYPES,
    ORDER_FULFILLMENT,
    PAYMENT_COMPLIANCE,
    TrustMetric,
)
from trustnet.models.participant import (
    ACTIVE,
    DEFAULT_MULTIPLIER,
    DEFAULT_TRUST_SCORE,
    EMERGING,
    GUARDIAN,
    OBSERVATION,
    REVIEW_REQUIRED,
    VERIFIED,
    Participant,
)
from trustnet.models.score_history import ScoreHistory
from trustnet.services.audit import AuditTrail
from trustnet.services.errors import ValidationError
from trustnet.services.metric_collector import MetricCollector
from trustnet.services.metrics import get_metrics_service
from trustnet.services.transactions import unit_of_work

logger = get_logger('trustnet.score')

MAX_SCORE = 1000
NEUTRAL_METRIC_VALUE = 50

# Evaluated top-down, first match wins
STATUS_THRESHOLDS = (
    (800, GUARDIAN),
    (500, VERIFIED),
    (300, ACTIVE),
    (100, EMERGING),
)


def round_half_up(value: Decimal) -> int:
    return int(value.quantize(Decimal('1'), rounding=ROUND_HALF_UP))


@dataclass
class ScoreResult:
    score: int
    breakdown: Dict[str, int]
    status: str

    def to_dict(self):
        return {'score': self.score, 'breakdown': dict(self.breakdown), 'status': self.status}


class ScoreEngine:
    """Operational trust scoring engine for organizations."""

    # Scoring weights (must sum to 1.0)
    DEFAULT_WEIGHTS = {
        PAYMENT_COMPLIANCE: 0.30,
        DELIVERY_TIMELINESS: 0.25,
        ORDER_FULFILLMENT: 0.25,
        DISPUTE_RATE: 0.20,
    }

    def __init__(self, db, collector: MetricCollector, audit: AuditTrail,
                 weights: Optional[Dict[str, float]] = None,
                 default_value: int = NEUTRAL_METRIC_VALUE):
        """Initialize the engine with a database session and its collaborators."""
        self.db = db
        self.collector = collector
        self.audit = audit
        self.weights = dict(weights or self.DEFAULT_WEIGHTS)
        self._decimal_weights = self._validate_weights(self.weights)
        self.default_value = default_value

    @classmethod
    def from_config(cls, session, engine, config):
        return cls(
            session,
            collector=MetricCollector.from_config(session, engine, config),
            audit=AuditTrail.from_config(session, config),
            weights=config.get('TRUSTNET_SCORE_WEIGHTS'),
            default_value=config.get('TRUSTNET_DEFAULT_METRIC_VALUE', NEUTRAL_METRIC_VALUE),
        )

    @staticmethod
    def _validate_weights(weights: Dict[str, float]) -> Dict[str, Decimal]:
        if set(weights) != set(METRIC_TYPES):
            raise ValidationError(
                "Weights must cover exactly the canonical metric types",
                details={'expected': list(METRIC_TYPES), 'got': sorted(weights)},
            )
        decimal_weights = {name: Decimal(str(weight)) for name, weight in weights.items()}
        if any(weight < 0 for weight in decimal_weights.values()):
            raise ValidationError("Weights must not be negative")
        total = sum(decimal_weights.values())
        if total != Decimal('1'):
            raise ValidationError(f"Weights must sum to 1.0, got {total}")
        return decimal_weights

    @staticmethod
    def effective_value(metric_type: str, value: int) -> int:
        """Apply polarity: for lower-is-better metrics use ``100 - value``."""
        return 100 - value if metric_type in INVERTED_METRICS else value

    def compute_score(self, values: Dict[str, int]) -> int:
        """Weighted 0-100 average scaled to the 0-1000 integer range."""
        raw = sum(
            Decimal(self.effective_value(metric_type, values[metric_type])) * weight
            for metric_type, weight in self._decimal_weights.items()
        )
        return max(0, min(MAX_SCORE, round_half_up(raw * 10)))

    @staticmethod
    def status_for(score: int) -> str:
        for threshold, status in STATUS_THRESHOLDS:
            if score >= threshold:
                return status
        return REVIEW_REQUIRED

    def calculate_trust_score(self, organization_id: str) -> ScoreResult:
        """
        Collect fresh metrics, score them and persist the result.

        Metric rows, the history row, the participant update and the audit
        entry are committed together or not at all.
        """
        with unit_of_work(self.db):
            self.collector.collect_metrics(organization_id, commit=False)

            latest = self.get_latest_metrics(organization_id)
            breakdown = {
                metric_type: latest[metric_type].value if metric_type in latest else self.default_value
                for metric_type in METRIC_TYPES
            }
            score = self.compute_score(breakdown)
            status = self.status_for(score)
            now = utcnow()

            self.db.add(ScoreHistory(
                organization_id=organization_id,
                score=score,
                status=status,
                breakdown=breakdown,
                calculated_at=now,
            ))

            participant = self._lock_participant(organization_id)
            if participant is None:
                previous = None
                participant = Participant(
                    organization_id=organization_id,
                    contribution_count=0,
                    multiplier=DEFAULT_MULTIPLIER,
                    contribution_score=DEFAULT_TRUST_SCORE,
                    contribution_status=OBSERVATION,
                )
                self.db.add(participant)
            else:
                previous = {'score': participant.trust_score, 'status': participant.status}

            participant.trust_score = score
            participant.status = status
            participant.last_active_at = now
            participant.penalized_at = None

            self.audit.record(
                organization_id,
                SCORE_CALCULATED,
                entity_type='score',
                new_value={'score': score, 'breakdown': breakdown},
                old_value=previous,
            )

        metrics_service = get_metrics_service()
        if metrics_service:
            metrics_service.record_score_calculation(score, status)
        logger.log_trust_event('score_calculated', organization_id, score=score, status=status)

        return ScoreResult(score=score, breakdown=breakdown, status=status)

    def _lock_participant(self, organization_id: str) -> Optional[Participant]:
        return (
            self.db.query(Participant)
            .filter(Participant.organization_id == organization_id)
            .with_for_update()
            .populate_existing()
            .first()
        )

    def get_latest_metrics(self, organization_id: str) -> Dict[str, TrustMetric]:
        """Most recent metric row per type, in one query."""
        newest = (
            self.db.query(
                TrustMetric.metric_type,
                func.max(TrustMetric.created_at).label('created_at'),
            )
            .filter(TrustMetric.organization_id == organization_id)
            .group_by(TrustMetric.metric_type)
            .subquery()
        )
        rows = (
            self.db.query(TrustMetric)
            .join(newest, and_(
                TrustMetric.metric_type == newest.c.metric_type,
                TrustMetric.created_at == newest.c.created_at,
            ))
            .filter(TrustMetric.organization_id == organization_id)
            .all()
        )
        latest = {}
        for row in rows:
            latest.setdefault(row.metric_type, row)
        return latest

    def get_score_breakdown(self, organization_id: str) -> Dict:
        """
        Latest score with per-metric value, weight (percent) and contribution
        (score points). An organization with no history gets a zeroed score
        and neutral metric values.
        """
        latest = (
            self.db.query(ScoreHistory)
            .filter(ScoreHistory.organization_id == organization_id)
            .order_by(ScoreHistory.calculated_at.desc())
            .first()
        )
        participant = self.db.get(Participant, organization_id)
        raw = (latest.breakdown if latest else None) or {}

        breakdown = {}
        for metric_type, weight in self._decimal_weights.items():
            value = raw.get(metric_type, self.default_value)
            effective = self.effective_value(metric_type, value)
            breakdown[metric_type] = {
                'value': value,
                'weight': float(weight * 100),
                'contribution': round_half_up(Decimal(effective) * weight * 10),
            }

        return {
            'score': latest.score if latest else 0,
            'status': participant.status if participant else OBSERVATION,
            'breakdown': breakdown,
            'last_calculated': latest.calculated_at.isoformat() if latest else None,
        }

    def get_score_history(self, organization_id: str, limit: int = 30) -> List[ScoreHistory]:
        return (
            self.db.query(ScoreHistory)
            .filter(ScoreHistory.organization_id == organization_id)
            .order_by(ScoreHistory.calculated_at.desc())
            .limit(limit)
            .all()
        )

    def get_last_known(self, organization_id: str) -> Optional[Dict]:
        """Stored score/status, shown when a recomputation fails."""
        participant = self.db.get(Participant, organization_id)
        if participant is None:
            return None
        return {
            'score': participant.trust_score,
            'status': participant.status,
            'last_active_at': participant.last_active_at.isoformat() if participant.last_active_at else None,
        }

    def get_top_factors(self, breakdown: Dict, limit: int = 3) -> List[Dict]:
        """Extract top N contributing factors from a ``get_score_breakdown`` result."""
        factors = breakdown.get('breakdown', {})
        sorted_factors = sorted(
            factors.items(),
            key=lambda x: x[1]['contribution'],
            reverse=True
        )
        return [
            {'factor': name, **data}
            for name, data in sorted_factors[:limit]
        ]

    def bucket_score(self, score: int) -> str:
        """Bucket score for public display (e.g., 885 -> '800-900')."""
        bucket_start = min((score // 100) * 100, MAX_SCORE - 100)
        return f"{bucket_start}-{bucket_start + 100}"
