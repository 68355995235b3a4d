from datetime import datetime
from typing import Any, Protocol, runtime_checkable

@runtime_checkable
class AlertPort(Protocol):
    async def create(self,
                     patient_id: int,
                     kind: str,
                     severity: Any,
                     status: Any = None,
                     details: str | None = None,
                     created_at: datetime | None = None) -> Any: ...
