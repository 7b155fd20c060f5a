# -*- coding: utf-8 -*-
"""
Trust network participant.

One row per organization. Two scoring strategies share the row but write
separate fields:

- operational score (``trust_score``/``status``), owned by the Score Engine
- contribution score (``contribution_score``/``contribution_status``), owned
  by the data-sharing lifecycle

``version_id`` makes every UPDATE conditional on the version that was read,
so concurrent writers for the same organization cannot lose updates.
"""
from sqlalchemy import CheckConstraint, Column, DateTime, Integer, String

from trustnet.infra.db import db, utcnow

GUARDIAN = 'guardian'
VERIFIED = 'verified'
ACTIVE = 'active'
EMERGING = 'emerging'
REVIEW_REQUIRED = 'review_required'
PEER = 'peer'
OBSERVATION = 'observation'

OPERATIONAL_STATUSES = (GUARDIAN, VERIFIED, ACTIVE, EMERGING, REVIEW_REQUIRED)
CONTRIBUTION_STATUSES = (GUARDIAN, PEER, VERIFIED, OBSERVATION)

DEFAULT_TRUST_SCORE = 100
DEFAULT_MULTIPLIER = 100


class Participant(db.Model):
    __tablename__ = 'trust_participants'

    organization_id = Column(String(36), primary_key=True)

    trust_score = Column(Integer, nullable=False, default=DEFAULT_TRUST_SCORE)
    status = Column(String(32), nullable=False, default=OBSERVATION)

    contribution_count = Column(Integer, nullable=False, default=0)
    multiplier = Column(Integer, nullable=False, default=DEFAULT_MULTIPLIER)  # percent
    contribution_score = Column(Integer, nullable=False, default=DEFAULT_TRUST_SCORE)
    contribution_status = Column(String(32), nullable=False, default=OBSERVATION)

    last_active_at = Column(DateTime, nullable=True)
    # Set by the exit penalty, cleared by the next operational recomputation
    penalized_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    version_id = Column(Integer, nullable=False)

    __mapper_args__ = {'version_id_col': version_id}

    __table_args__ = (
        CheckConstraint('contribution_count >= 0', name='ck_participant_contribution_count'),
        CheckConstraint('multiplier >= 0 AND multiplier <= 100', name='ck_participant_multiplier'),
        CheckConstraint('trust_score >= 0 AND trust_score <= 1000', name='ck_participant_trust_score'),
        CheckConstraint(
            'contribution_score >= 0 AND contribution_score <= 1000',
            name='ck_participant_contribution_score'
        ),
    )

    @property
    def is_penalized(self) -> bool:
        return self.penalized_at is not None

    def to_dict(self):
        return {
            'organization_id': self.organization_id,
            'trust_score': self.trust_score,
            'status': self.status,
            'contribution_count': self.contribution_count,
            'multiplier': self.multiplier,
            'contribution_score': self.contribution_score,
            'contribution_status': self.contribution_status,
            'last_active_at': self.last_active_at.isoformat() if self.last_active_at else None,
            'penalized_at': self.penalized_at.isoformat() if self.penalized_at else None,
        }

    def __repr__(self):
        return f'<Participant {self.organization_id} score={self.trust_score} status={self.status}>'
