# -*- coding: utf-8 -*-
"""
Nightly Trust Score Update Job

Recalculates the operational trust score of every participant. A failure for
one organization is logged and skipped; the rest of the run continues.
"""
from typing import Dict

from flask import current_app

from trustnet.database import db
from trustnet.infra.log import get_logger
from trustnet.models.participant import Participant
from trustnet.services.errors import TrustError
from trustnet.services.score_engine import ScoreEngine
from trustnet.services.transactions import retry_on_conflict

logger = get_logger('trustnet.jobs.score_nightly')


def run_score_update(app=None) -> Dict:
    """The main function for the nightly trust score update job."""
    if app is None:
        return _run()
    with app.app_context():
        return _run()


def _run() -> Dict:
    config = current_app.config
    engine = ScoreEngine.from_config(db.session, db.engine, config)
    attempts = config.get('TRUSTNET_CONFLICT_RETRIES', 3)

    organization_ids = [
        row.organization_id
        for row in db.session.query(Participant.organization_id).order_by(Participant.organization_id)
    ]
    logger.info("Nightly score update started", participants=len(organization_ids))

    updated = 0
    failed = []
    for organization_id in organization_ids:
        try:
            retry_on_conflict(lambda: engine.calculate_trust_score(organization_id), attempts=attempts)
            updated += 1
        except TrustError as e:
            failed.append(organization_id)
            logger.error(
                "Score update failed",
                organization_id=organization_id,
                error_code=e.code,
                error=e.message,
            )

    logger.info("Nightly score update finished", updated=updated, failed=len(failed))
    return {'processed': len(organization_ids), 'updated': updated, 'failed': failed}


def main() -> int:
    from trustnet.factory import create_app

    result = run_score_update(create_app())
    return 1 if result['failed'] else 0


if __name__ == '__main__':
    raise SystemExit(main())
