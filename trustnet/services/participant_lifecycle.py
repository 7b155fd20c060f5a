# -*- coding: utf-8 -*-
"""
Participant lifecycle: enrollment, contributions and the exit penalty.

The contribution score rewards organizations that share anonymized
insights with the network. Leaving the network (or withdrawing consent)
zeroes the multiplier so future contributions no longer raise the score.
"""
import math
from typing import Dict, List, Optional

from trustnet.infra.db import utcnow
from trustnet.infra.log import get_logger
from trustnet.models.appeal import APPEAL_TYPES, NO_REASON, ScoreAppeal
from trustnet.models.audit_log import APPEAL_SUBMITTED, INSIGHT_SUBMITTED, PARTICIPANT_PENALIZED
from trustnet.models.consent import MARKETPLACE_CONSENTS
from trustnet.models.insight import SharedInsight
from trustnet.models.participant import (
    DEFAULT_MULTIPLIER,
    DEFAULT_TRUST_SCORE,
    GUARDIAN,
    OBSERVATION,
    PEER,
    VERIFIED,
    Participant,
)
from trustnet.services.audit import AuditTrail
from trustnet.services.consent_manager import ConsentManager
from trustnet.services.errors import ValidationError
from trustnet.services.transactions import unit_of_work

logger = get_logger('trustnet.lifecycle')

BASE_CONTRIBUTION_SCORE = 100
POINTS_PER_CONTRIBUTION = 5
MAX_CONTRIBUTION_SCORE = 1000


def contribution_score(contribution_count: int, multiplier: int) -> int:
    """``floor((100 + count * 5) * multiplier / 100)``, capped at 1000."""
    raw = (BASE_CONTRIBUTION_SCORE + contribution_count * POINTS_PER_CONTRIBUTION) * multiplier
    return min(MAX_CONTRIBUTION_SCORE, math.floor(raw / 100))


def contribution_status(score: int, current: str) -> str:
    if score > 800:
        return GUARDIAN
    if score > 500:
        return PEER
    if score > 300:
        return VERIFIED
    return current


class ParticipantLifecycle:
    def __init__(self, db, consents: ConsentManager, audit: AuditTrail):
        self.db = db
        self.consents = consents
        self.audit = audit

    @classmethod
    def from_config(cls, session, config):
        audit = AuditTrail.from_config(session, config)
        consents = ConsentManager(
            session, audit, consent_version=config.get('TRUSTNET_CONSENT_VERSION', '1.0')
        )
        return cls(session, consents, audit)

    def _lock(self, organization_id: str) -> Optional[Participant]:
        return (
            self.db.query(Participant)
            .filter(Participant.organization_id == organization_id)
            .with_for_update()
            .populate_existing()
            .first()
        )

    def _get_or_create(self, organization_id: str) -> Participant:
        participant = self._lock(organization_id)
        if participant is None:
            participant = Participant(
                organization_id=organization_id,
                trust_score=DEFAULT_TRUST_SCORE,
                status=OBSERVATION,
                contribution_count=0,
                multiplier=DEFAULT_MULTIPLIER,
                contribution_score=DEFAULT_TRUST_SCORE,
                contribution_status=OBSERVATION,
            )
            self.db.add(participant)
            logger.info("Participant enrolled", organization_id=organization_id)
        return participant

    def ensure_participant(self, organization_id: str) -> Participant:
        with unit_of_work(self.db):
            participant = self._get_or_create(organization_id)
        return participant

    def submit_insight(self, organization_id: str, insight: Dict) -> Dict:
        """
        Store a contributed insight and recompute the contribution score.

        ``insight`` needs ``industry``, ``metric_key`` and a numeric ``value``.
        """
        missing = [key for key in ('industry', 'metric_key', 'value') if insight.get(key) in (None, '')]
        if missing:
            raise ValidationError("Insight is incomplete", details={'missing': missing})
        if isinstance(insight['value'], bool) or not isinstance(insight['value'], (int, float)):
            raise ValidationError("Insight value must be numeric")

        with unit_of_work(self.db):
            participant = self._get_or_create(organization_id)
            self.db.add(SharedInsight(
                source_organization_id=organization_id,
                industry=insight['industry'],
                metric_key=insight['metric_key'],
                value=insight['value'],
                verification_score=100,
            ))

            participant.contribution_count = (participant.contribution_count or 0) + 1
            new_score = contribution_score(participant.contribution_count, participant.multiplier)
            new_status = contribution_status(new_score, participant.contribution_status)
            participant.contribution_score = new_score
            participant.contribution_status = new_status
            participant.last_active_at = utcnow()

            self.audit.record(
                organization_id,
                INSIGHT_SUBMITTED,
                entity_type='insight',
                entity_id=insight['metric_key'],
                new_value={
                    'industry': insight['industry'],
                    'metric_key': insight['metric_key'],
                    'contribution_count': participant.contribution_count,
                    'contribution_score': new_score,
                },
            )

        logger.log_trust_event(
            'insight_submitted', organization_id,
            contribution_score=new_score, contribution_status=new_status,
        )
        return {'new_score': new_score, 'new_status': new_status}

    def penalize_exit(self, organization_id: str, commit: bool = True) -> Participant:
        with unit_of_work(self.db, commit=commit):
            participant = self._get_or_create(organization_id)
            previous = {
                'multiplier': participant.multiplier,
                'status': participant.status,
                'contribution_status': participant.contribution_status,
            }
            participant.multiplier = 0
            participant.status = OBSERVATION
            participant.contribution_status = OBSERVATION
            participant.penalized_at = utcnow()

            self.audit.record(
                organization_id,
                PARTICIPANT_PENALIZED,
                entity_type='participant',
                entity_id=organization_id,
                old_value=previous,
                new_value={'multiplier': 0, 'status': OBSERVATION, 'contribution_status': OBSERVATION},
            )

        logger.log_trust_event('participant_penalized', organization_id)
        return participant

    def exit_network(self, organization_id: str, user_id: Optional[str]) -> Dict:
        """Withdraw every consent and apply the exit penalty, atomically."""
        with unit_of_work(self.db):
            revoked = self.consents.revoke_all_consents(organization_id, user_id, commit=False)
            participant = self.penalize_exit(organization_id, commit=False)
        return {'revoked': revoked['revoked'], 'participant': participant.to_dict()}

    def can_participate(self, organization_id: str) -> bool:
        return all(self.consents.check_consents(organization_id, MARKETPLACE_CONSENTS).values())

    def require_marketplace_eligibility(self, organization_id: str) -> None:
        self.consents.require_consent(organization_id, *MARKETPLACE_CONSENTS)

    def submit_appeal(self, organization_id: str, appeal_type: str, reason: Optional[str] = None,
                      user_id: Optional[str] = None) -> ScoreAppeal:
        """File an appeal against the organization's score or underlying data."""
        if appeal_type not in APPEAL_TYPES:
            raise ValidationError(f"Unknown appeal type: {appeal_type}",
                                  details={'allowed': list(APPEAL_TYPES)})
        with unit_of_work(self.db):
            appeal = ScoreAppeal(
                organization_id=organization_id,
                appeal_type=appeal_type,
                reason=reason or NO_REASON,
                submitted_by_user_id=user_id,
            )
            self.db.add(appeal)
            self.db.flush()
            self.audit.record(
                organization_id,
                APPEAL_SUBMITTED,
                entity_type='appeal',
                entity_id=appeal.id,
                new_value={'appeal_type': appeal_type, 'status': appeal.status},
                user_id=user_id,
            )
        logger.log_trust_event('appeal_submitted', organization_id, appeal_type=appeal_type)
        return appeal

    def list_appeals(self, organization_id: str) -> List[ScoreAppeal]:
        return (
            self.db.query(ScoreAppeal)
            .filter_by(organization_id=organization_id)
            .order_by(ScoreAppeal.created_at.desc())
            .all()
        )
