# -*- coding: utf-8 -*-
"""
Audit trail for trust-relevant state changes.

Entries are appended inside the caller's unit of work and are never
committed here: an audit row exists if and only if the change it describes
was committed. With hash chaining enabled each entry commits to its
predecessor, so any edit made behind the ORM's back is detectable by
``verify_chain``.
"""
import hashlib
import json
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional

from trustnet.infra.db import utcnow
from trustnet.infra.log import get_logger
from trustnet.models.audit_log import TrustAuditLog
from trustnet.services.errors import ValidationError

logger = get_logger('trustnet.audit')


def canonical_bytes(payload: Dict[str, Any]) -> bytes:
    return json.dumps(payload, sort_keys=True, separators=(',', ':'), default=str).encode('utf-8')


def _jsonable(value):
    """Normalize a value to exactly what the JSON column will hand back."""
    if value is None:
        return None
    return json.loads(json.dumps(value, default=str))


@dataclass
class ChainVerification:
    valid: bool
    checked: int
    broken_at: Optional[int] = None
    error: Optional[str] = None

    def to_dict(self):
        return {
            'valid': self.valid,
            'checked': self.checked,
            'broken_at': self.broken_at,
            'error': self.error,
        }


class AuditTrail:

    def __init__(self, session, hash_chain: bool = True, hash_algorithm: str = 'sha256'):
        try:
            hashlib.new(hash_algorithm)
        except (ValueError, TypeError) as e:
            raise ValidationError(f"Unsupported audit hash algorithm: {hash_algorithm}") from e
        self.session = session
        self.hash_chain = hash_chain
        self.hash_algorithm = hash_algorithm

    @classmethod
    def from_config(cls, session, config):
        return cls(
            session,
            hash_chain=config.get('TRUSTNET_AUDIT_HASH_CHAIN', True),
            hash_algorithm=config.get('TRUSTNET_AUDIT_HASH_ALGORITHM', 'sha256'),
        )

    def compute_hash(self, previous_hash: Optional[str], payload: Dict[str, Any]) -> str:
        digest = hashlib.new(self.hash_algorithm)
        digest.update((previous_hash or '').encode('utf-8'))
        digest.update(canonical_bytes(payload))
        return digest.hexdigest()

    def record(self, organization_id: str, action: str, entity_type: str,
               entity_id: Optional[str] = None, new_value=None, old_value=None,
               user_id: Optional[str] = None) -> TrustAuditLog:
        """Append one entry to the organization's trail (flushes, never commits)."""
        last = self.last_entry(organization_id)

        entry = TrustAuditLog(
            organization_id=organization_id,
            sequence=(last.sequence + 1) if last else 1,
            user_id=user_id,
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            old_value=_jsonable(old_value),
            new_value=_jsonable(new_value),
            timestamp=utcnow(),
        )
        if self.hash_chain:
            entry.previous_hash = last.entry_hash if last else None
            entry.entry_hash = self.compute_hash(entry.previous_hash, entry.hash_payload())

        self.session.add(entry)
        self.session.flush()

        logger.debug(
            "Audit entry appended",
            organization_id=organization_id,
            action=action,
            sequence=entry.sequence,
        )
        return entry

    def last_entry(self, organization_id: str) -> Optional[TrustAuditLog]:
        return (
            self.session.query(TrustAuditLog)
            .filter(TrustAuditLog.organization_id == organization_id)
            .order_by(TrustAuditLog.sequence.desc())
            .first()
        )

    def query(self, organization_id: Optional[str] = None, since: Optional[datetime] = None,
              until: Optional[datetime] = None, action: Optional[str] = None,
              limit: Optional[int] = None) -> List[TrustAuditLog]:
        """Compliance export, oldest first."""
        if since and until and since > until:
            raise ValidationError("since must not be after until")

        q = self.session.query(TrustAuditLog)
        if organization_id:
            q = q.filter(TrustAuditLog.organization_id == organization_id)
        if since:
            q = q.filter(TrustAuditLog.timestamp >= since)
        if until:
            q = q.filter(TrustAuditLog.timestamp <= until)
        if action:
            q = q.filter(TrustAuditLog.action == action)
        q = q.order_by(TrustAuditLog.timestamp.asc(), TrustAuditLog.sequence.asc())
        if limit:
            q = q.limit(limit)
        return q.all()

    def count(self, organization_id: str) -> int:
        return (
            self.session.query(TrustAuditLog)
            .filter(TrustAuditLog.organization_id == organization_id)
            .count()
        )

    def verify_chain(self, organization_id: str) -> ChainVerification:
        """Recompute every hash of the organization's trail in order."""
        entries = (
            self.session.query(TrustAuditLog)
            .filter(TrustAuditLog.organization_id == organization_id)
            .order_by(TrustAuditLog.sequence.asc())
            .all()
        )

        previous_hash = None
        for index, entry in enumerate(entries, start=1):
            if entry.sequence != index:
                return self._broken(entry, index - 1, f"expected sequence {index}, found {entry.sequence}")
            if entry.entry_hash is None:
                return self._broken(entry, index - 1, "entry was written without a hash")
            if entry.previous_hash != previous_hash:
                return self._broken(entry, index - 1, "previous_hash does not match the preceding entry")
            if self.compute_hash(entry.previous_hash, entry.hash_payload()) != entry.entry_hash:
                return self._broken(entry, index - 1, "entry content does not match its hash")
            previous_hash = entry.entry_hash

        return ChainVerification(valid=True, checked=len(entries))

    def _broken(self, entry, checked, error):
        logger.warning(
            "Audit chain verification failed",
            organization_id=entry.organization_id,
            sequence=entry.sequence,
            error=error,
        )
        return ChainVerification(valid=False, checked=checked, broken_at=entry.sequence, error=error)
