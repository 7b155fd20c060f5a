# -*- coding: utf-8 -*-
"""
Trust engine error types.

Every error carries a machine-readable ``code``, the HTTP status the API
layer renders it with, and whether the caller may safely retry.
"""
from typing import Any, Dict, Optional


class TrustError(Exception):
    """Base class for all engine errors."""

    code = "trust_error"
    http_status = 500
    retryable = False

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        payload = {
            "error": self.code,
            "message": self.message,
            "retryable": self.retryable,
        }
        if self.details:
            payload["details"] = self.details
        return payload


class ValidationError(TrustError):
    """Unrecognized consent type, malformed window, bad weight table."""

    code = "validation_error"
    http_status = 400


class ConsentRequiredError(TrustError):
    """An export path was refused because a required consent is not active."""

    code = "consent_required"
    http_status = 403

    def __init__(self, organization_id: str, missing):
        missing = sorted(missing)
        super().__init__(
            f"Organization {organization_id} has not granted: {', '.join(missing)}",
            details={"organization_id": organization_id, "missing_consents": missing},
        )
        self.organization_id = organization_id
        self.missing = missing


class NotFoundError(TrustError):
    code = "not_found"
    http_status = 404


class ConflictError(TrustError):
    """Concurrent write detected; the whole operation can be retried."""

    code = "conflict"
    http_status = 409
    retryable = True


class StorageError(TrustError):
    """Transport or transaction failure in the storage layer."""

    code = "storage_unavailable"
    http_status = 503
    retryable = True


class ImmutableRecordError(TrustError):
    """Attempt to modify or delete an append-only record."""

    code = "immutable_record"
    http_status = 409
