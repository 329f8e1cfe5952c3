"""
Audit trail for bookkeeping mutations.
"""

import json
from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session

from zzpboek.infrastructure.database.models import AuditLog


def record_audit(
    db: Session,
    action: str,
    entity_type: str,
    entity_id: UUID | None = None,
    old_value: Any = None,
    new_value: Any = None,
    user_role: str = "expert",
) -> AuditLog:
    """Add an AuditLog row to the session; the caller commits."""

    def dump(value):
        if value is None or isinstance(value, str):
            return value
        return json.dumps(value, default=str, ensure_ascii=False)

    audit = AuditLog(
        user_role=user_role,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        old_value=dump(old_value),
        new_value=dump(new_value),
    )
    db.add(audit)
    return audit
