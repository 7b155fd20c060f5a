# -*- coding: utf-8 -*-
"""
Tests for consent-gated exports and industry benchmarks.
"""
import pytest

from trustnet.services.data_sharing import DataSharingService, summarize
from trustnet.services.errors import ConsentRequiredError, ValidationError


@pytest.fixture
def sharing(session, consents, engine):
    return DataSharingService(session, consents, engine)


def _contribute(lifecycle, consents, organization_id, value, opt_in=True):
    lifecycle.submit_insight(organization_id, {'industry': 'retail', 'metric_key': 'dso', 'value': value})
    if opt_in:
        consents.grant_consent(organization_id, 'industry_benchmarks', 'user-1')


def test_summarize():
    assert summarize([10, 20, 30, 40, 50]) == {
        'count': 5,
        'average': 30,
        'median': 30,
        'p25': 20,
        'p75': 40,
    }


def test_summarize_single_value():
    assert summarize([7.5]) == {'count': 1, 'average': 7.5, 'median': 7.5, 'p25': 7.5, 'p75': 7.5}


def test_export_requires_share_metrics(sharing, consents, engine, seed_erp):
    seed_erp('org-1')
    engine.calculate_trust_score('org-1')

    with pytest.raises(ConsentRequiredError) as exc_info:
        sharing.export_metrics('org-1')
    assert exc_info.value.missing == ['share_metrics']

    consents.grant_consent('org-1', 'share_metrics', 'user-1')
    export = sharing.export_metrics('org-1')

    assert export['score'] == 885
    assert export['status'] == 'guardian'
    assert export['metrics']['payment_compliance']['value'] == 90


def test_export_refused_after_revocation(sharing, consents):
    consents.grant_consent('org-1', 'share_metrics', 'user-1')
    consents.revoke_consent('org-1', 'share_metrics', 'user-1')

    with pytest.raises(ConsentRequiredError):
        sharing.export_metrics('org-1')


def test_public_profile(sharing, consents, engine, seed_erp):
    seed_erp('org-1')
    engine.calculate_trust_score('org-1')

    with pytest.raises(ConsentRequiredError):
        sharing.public_profile('org-1')

    consents.grant_consent('org-1', 'public_profile', 'user-1')
    profile = sharing.public_profile('org-1')

    assert profile['score_range'] == '800-900'
    assert profile['status'] == 'guardian'
    assert profile['top_factors'][0] == 'payment_compliance'


def test_benchmarks_only_count_consenting_organizations(sharing, lifecycle, consents):
    _contribute(lifecycle, consents, 'org-1', 30)
    _contribute(lifecycle, consents, 'org-2', 50)
    _contribute(lifecycle, consents, 'org-3', 1000, opt_in=False)

    result = sharing.compute_benchmarks('retail', 'dso')

    assert result['count'] == 2
    assert result['average'] == 40
    assert result['median'] == 40


def test_benchmarks_drop_revoked_organizations(sharing, lifecycle, consents):
    _contribute(lifecycle, consents, 'org-1', 30)
    _contribute(lifecycle, consents, 'org-2', 50)
    consents.revoke_consent('org-2', 'industry_benchmarks', 'user-1')

    result = sharing.compute_benchmarks('retail', 'dso')

    assert result['count'] == 1
    assert result['average'] == 30


def test_benchmarks_without_data(sharing):
    result = sharing.compute_benchmarks('retail', 'dso')

    assert result == {
        'industry': 'retail',
        'metric_key': 'dso',
        'count': 0,
        'average': None,
        'median': None,
        'p25': None,
        'p75': None,
    }


def test_benchmarks_require_keys(sharing):
    with pytest.raises(ValidationError):
        sharing.compute_benchmarks('', 'dso')
