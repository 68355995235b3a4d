from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, desc
from app.core.db import get_session
from app.core.security import require_professional
from app.modules.audit.models import AuditLog

router = APIRouter()

@router.get("/audit", dependencies=[Depends(require_professional)])
async def list_audit(
    session: AsyncSession = Depends(get_session),
    entity: str | None = Query(None, max_length=128),
    entity_id: int | None = Query(None, ge=1),
    limit: int = Query(50, ge=1, le=200),
):
    q = select(AuditLog)
    if entity:
        q = q.where(AuditLog.entity == entity)
    if entity_id is not None:
        q = q.where(AuditLog.entity_id == entity_id)
    q = q.order_by(desc(AuditLog.created_at), desc(AuditLog.id)).limit(limit)
    res = await session.execute(q)
    # Return raw dicts for simplicity
    return [
        {
            "id": row.id,
            "user_id": row.user_id,
            "action": row.action,
            "entity": row.entity,
            "entity_id": row.entity_id,
            "details": row.details,
            "ip_address": row.ip_address,
            "user_agent": row.user_agent,
            "created_at": row.created_at,
        }
        for row in res.scalars().all()
    ]
