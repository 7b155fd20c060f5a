# -*- coding: utf-8 -*-
"""
Tests for the nightly trust score update job.
"""
from unittest.mock import patch

from trustnet.jobs.score_nightly import run_score_update
from trustnet.models.participant import Participant
from trustnet.services.errors import ConflictError, StorageError
from trustnet.services.score_engine import ScoreEngine


def test_updates_every_participant(app, lifecycle, seed_erp, session):
    seed_erp('org-1')
    lifecycle.ensure_participant('org-1')
    lifecycle.ensure_participant('org-2')

    result = run_score_update()

    assert result == {'processed': 2, 'updated': 2, 'failed': []}
    assert session.get(Participant, 'org-1').trust_score == 885
    assert session.get(Participant, 'org-2').trust_score == 500


def test_failure_for_one_organization_does_not_stop_the_run(app, lifecycle):
    lifecycle.ensure_participant('org-1')
    lifecycle.ensure_participant('org-2')
    original = ScoreEngine.calculate_trust_score

    def flaky(self, organization_id):
        if organization_id == 'org-1':
            raise StorageError('db down')
        return original(self, organization_id)

    with patch.object(ScoreEngine, 'calculate_trust_score', flaky):
        result = run_score_update()

    assert result == {'processed': 2, 'updated': 1, 'failed': ['org-1']}


def test_conflicts_are_retried(app, lifecycle):
    lifecycle.ensure_participant('org-1')
    original = ScoreEngine.calculate_trust_score
    calls = []

    def conflicting_once(self, organization_id):
        calls.append(organization_id)
        if len(calls) == 1:
            raise ConflictError('concurrent update')
        return original(self, organization_id)

    with patch.object(ScoreEngine, 'calculate_trust_score', conflicting_once):
        result = run_score_update()

    assert calls == ['org-1', 'org-1']
    assert result['updated'] == 1


def test_runs_in_given_app_context(app):
    assert run_score_update(app) == {'processed': 0, 'updated': 0, 'failed': []}
