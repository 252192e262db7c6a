"""
Tamper-evident signing of the traceability matrix.

The signature is a SHA-256 digest of the matrix serialized with sorted keys
and fixed separators. The audit trail itself and the wall-clock generation
stamp are left out of the digest, so identical inputs always give the same
signature.
"""

from __future__ import annotations

import copy
import hashlib
import json
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any

from .models import AuditTrail, Matrix


SIGNATURE_ALGORITHM = "sha256"
VOLATILE_METADATA_KEYS = ("generatedAt",)


def canonical_json(data: Any) -> str:
    return json.dumps(data, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def signable_body(matrix_data: dict[str, Any]) -> dict[str, Any]:
    """Copy of the matrix dict with the audit trail and volatile stamps removed."""
    body = copy.deepcopy(matrix_data)
    body.pop("auditTrail", None)
    metadata = body.get("metadata")
    if isinstance(metadata, dict):
        for key in VOLATILE_METADATA_KEYS:
            metadata.pop(key, None)
    return body


def compute_signature(matrix: Matrix) -> str:
    body = signable_body(matrix.to_dict(include_audit=False))
    return hashlib.sha256(canonical_json(body).encode("utf-8")).hexdigest()


def sign_matrix(matrix: Matrix, now: datetime | None = None) -> Matrix:
    """Return a copy of matrix carrying its audit trail. Call once every other field is final."""
    now = now or datetime.now(timezone.utc)
    trail = AuditTrail(
        signature=compute_signature(matrix),
        timestamp=now.isoformat().replace("+00:00", "Z"),
        algorithm=SIGNATURE_ALGORITHM,
    )
    return replace(matrix, audit_trail=trail)


def verify_signature(matrix: Matrix) -> bool:
    """True when the stored signature matches the matrix contents."""
    if matrix.audit_trail is None or not matrix.audit_trail.signature:
        return False
    if matrix.audit_trail.algorithm != SIGNATURE_ALGORITHM:
        return False
    return matrix.audit_trail.signature == compute_signature(matrix)
