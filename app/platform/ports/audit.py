from typing import Any, Protocol, runtime_checkable

@runtime_checkable
class AuditPort(Protocol):
    async def record(self, action: str, entity_id: int, details: dict[str, Any]) -> None: ...
