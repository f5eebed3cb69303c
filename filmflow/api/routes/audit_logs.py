"""
Audit trail routes
"""
from typing import List, Optional

from fastapi import APIRouter, Depends

from filmflow.api.deps import get_current_actor, get_store_dep
from filmflow.core.permissions import Actor
from filmflow.schemas.order import AuditLogResponse
from filmflow.services.audit_service import AuditService
from filmflow.store import Store

router = APIRouter()


@router.get("", response_model=List[AuditLogResponse])
async def list_audit_logs(
    table: Optional[str] = None,
    action: Optional[str] = None,
    user_id: Optional[int] = None,
    limit: Optional[int] = None,
    actor: Actor = Depends(get_current_actor),
    store: Store = Depends(get_store_dep),
):
    return await AuditService(store).list_logs(
        actor, table_name=table, action=action, user_id=user_id, limit=limit,
    )
