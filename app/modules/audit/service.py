from datetime import datetime, date
from enum import Enum
from typing import Any
from sqlalchemy.ext.asyncio import AsyncSession
from app.modules.audit.models import AuditLog
from app.platform.ports.audit import AuditPort

def _jsonable(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {k: _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [_jsonable(v) for v in value]
    return value

class AuditRecorder(AuditPort):
    """Appends immutable audit rows for one entity type on behalf of one actor."""

    def __init__(self,
                 session: AsyncSession,
                 entity: str,
                 actor_id: int | None = None,
                 ip: str | None = None,
                 user_agent: str | None = None):
        self.session = session
        self.entity = entity
        self.actor_id = actor_id
        self.ip = ip
        self.user_agent = user_agent

    async def record(self, action: str, entity_id: int, details: dict[str, Any]) -> None:
        ev = AuditLog(
            user_id=self.actor_id,
            action=action,
            entity=self.entity,
            entity_id=entity_id,
            details=_jsonable(details or {}),
            ip_address=self.ip,
            user_agent=(self.user_agent[:255] if self.user_agent else None),
        )
        self.session.add(ev)
        await self.session.commit()
