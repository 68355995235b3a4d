from dataclasses import dataclass
from datetime import datetime
from typing import Protocol, runtime_checkable

@dataclass(frozen=True)
class IssuedSession:
    token: str
    expires_at: datetime

@runtime_checkable
class SessionIssuerPort(Protocol):
    async def create(self, patient_id: int) -> IssuedSession: ...
