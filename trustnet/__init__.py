"""
TrustNet: trust & reputation engine for multi-tenant ERP organizations.

Scores organizations from verified operational metrics, gates cross-tenant
data sharing behind revocable consent and keeps a hash-chained audit trail.
"""

__version__ = "0.1.0"
