# -*- coding: utf-8 -*-
"""
Trust API Schemas.

Marshmallow schemas for consent, insight and audit requests and for score
responses.
"""
from marshmallow import Schema, fields, validate, validates_schema, EXCLUDE, ValidationError

from trustnet.models.appeal import APPEAL_TYPES
from trustnet.models.audit_log import AUDIT_ACTIONS
from trustnet.models.consent import CONSENT_TYPES
from trustnet.models.participant import CONTRIBUTION_STATUSES, OPERATIONAL_STATUSES


class ConsentGrantSchema(Schema):
    """Schema for granting or revoking a consent."""
    class Meta:
        unknown = EXCLUDE

    consent_type = fields.Str(required=True, validate=validate.OneOf(CONSENT_TYPES))
    consent_version = fields.Str(validate=validate.Length(min=1, max=16))


class InsightCreateSchema(Schema):
    """Schema for submitting a shared insight."""
    class Meta:
        unknown = EXCLUDE

    industry = fields.Str(required=True, validate=validate.Length(min=1, max=64))
    metric_key = fields.Str(required=True, validate=validate.Length(min=1, max=64))
    value = fields.Float(required=True, allow_nan=False)


class AppealCreateSchema(Schema):
    """Schema for filing a score appeal."""
    class Meta:
        unknown = EXCLUDE

    appeal_type = fields.Str(required=True, validate=validate.OneOf(APPEAL_TYPES))
    reason = fields.Str(validate=validate.Length(max=2000))
    evidence = fields.Dict()


class BenchmarkQuerySchema(Schema):
    class Meta:
        unknown = EXCLUDE

    industry = fields.Str(required=True, validate=validate.Length(min=1, max=64))
    metric_key = fields.Str(required=True, validate=validate.Length(min=1, max=64))


class AuditQuerySchema(Schema):
    """Schema for audit log compliance queries."""
    class Meta:
        unknown = EXCLUDE

    since = fields.NaiveDateTime()
    until = fields.NaiveDateTime()
    action = fields.Str(validate=validate.OneOf(AUDIT_ACTIONS))
    limit = fields.Int(load_default=100, validate=validate.Range(min=1, max=1000))

    @validates_schema
    def validate_range(self, data, **kwargs):
        if data.get('since') and data.get('until') and data['since'] > data['until']:
            raise ValidationError('since must not be after until', field_name='since')


class HistoryQuerySchema(Schema):
    class Meta:
        unknown = EXCLUDE

    limit = fields.Int(load_default=30, validate=validate.Range(min=1, max=365))


class ScoreResponseSchema(Schema):
    """Schema for a score calculation response."""
    score = fields.Int(required=True, validate=validate.Range(min=0, max=1000))
    status = fields.Str(required=True, validate=validate.OneOf(OPERATIONAL_STATUSES))
    breakdown = fields.Dict(keys=fields.Str(), values=fields.Int(), required=True)


class ScoreHistoryEntrySchema(Schema):
    score = fields.Int(required=True)
    status = fields.Str(required=True)
    breakdown = fields.Dict()
    calculated_at = fields.DateTime(required=True)


class ContributionResponseSchema(Schema):
    new_score = fields.Int(required=True)
    new_status = fields.Str(required=True, validate=validate.OneOf(CONTRIBUTION_STATUSES))


class AuditEntrySchema(Schema):
    """Schema for an audit log entry."""
    id = fields.Str(required=True)
    organization_id = fields.Str(required=True)
    sequence = fields.Int(required=True)
    user_id = fields.Str(allow_none=True)
    action = fields.Str(required=True)
    entity_type = fields.Str(required=True)
    entity_id = fields.Str(allow_none=True)
    old_value = fields.Raw(allow_none=True)
    new_value = fields.Raw(allow_none=True)
    timestamp = fields.DateTime(required=True)
    previous_hash = fields.Str(allow_none=True)
    entry_hash = fields.Str(allow_none=True)
