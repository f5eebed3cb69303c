"""
Audit Service

Best-effort before/after record of every engine mutation.
- Mirrors each entry to the structured "audit" logger first
- Then writes an AuditLog row through the store

A failed database write never fails the caller's operation; record()
returns a warning string instead.
"""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from filmflow.core.config import settings
from filmflow.core.permissions import Actor, Permission, require_permission
from filmflow.models import AuditLog
from filmflow.store import Store

logger = logging.getLogger(__name__)

# Structured audit logger
audit_logger = logging.getLogger("audit")
audit_logger.setLevel(logging.INFO)


def clamp_limit(limit: Optional[int], default: int, maximum: int) -> int:
    if limit is None:
        return default
    return max(1, min(int(limit), maximum))


class AuditService:

    def __init__(self, store: Store):
        self.store = store

    async def record(
        self,
        actor: Actor,
        action: str,
        table_name: str,
        record_id: Optional[int],
        old_data: Optional[Dict[str, Any]] = None,
        new_data: Optional[Dict[str, Any]] = None,
    ) -> Optional[str]:
        """
        Write one audit entry.

        Returns:
            None on success, otherwise a warning message for the caller's
            warnings list.
        """
        entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "user_id": actor.user_id,
            "role": actor.role,
            "action": action,
            "table_name": table_name,
            "record_id": record_id,
        }
        audit_logger.info(
            f"AUDIT: {action} {table_name}#{record_id} by user {actor.user_id}",
            extra={"audit": entry},
        )

        if not settings.AUDIT_LOG_ENABLED:
            return None

        try:
            await self.store.insert(AuditLog, {
                "user_id": actor.user_id,
                "action": action,
                "table_name": table_name,
                "record_id": record_id,
                "old_data": old_data,
                "new_data": new_data,
            })
        except Exception as e:
            logger.warning(
                "AUDIT_WRITE_FAILED: action=%s table=%s record_id=%s error=%s: %s",
                action, table_name, record_id, type(e).__name__, e,
            )
            return f"Audit log could not be written: {e}"
        return None

    async def list_logs(
        self,
        actor: Actor,
        table_name: Optional[str] = None,
        action: Optional[str] = None,
        user_id: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> List[AuditLog]:
        require_permission(actor, Permission.AUDIT_READ)
        filters: Dict[str, Any] = {}
        if table_name:
            filters["table_name"] = table_name
        if action:
            filters["action"] = action.upper()
        if user_id is not None:
            filters["user_id"] = user_id
        return await self.store.select(
            AuditLog,
            filters=filters,
            order_by="created_at",
            descending=True,
            limit=clamp_limit(limit, settings.AUDIT_LOGS_DEFAULT_LIMIT, settings.AUDIT_LOGS_MAX_LIMIT),
        )
