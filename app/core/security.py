from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import jwt, JWTError
from passlib.context import CryptContext
from pydantic import BaseModel
from app.core.config import settings

http_bearer = HTTPBearer(auto_error=False)

# Salted argon2id hashes; verification is constant-time inside argon2-cffi.
pin_context = CryptContext(schemes=["argon2"], deprecated="auto")

def hash_pin(pin: str) -> str:
    return pin_context.hash(pin)

def verify_pin(pin: str, pin_hash: str) -> bool:
    try:
        return pin_context.verify(pin, pin_hash)
    except (ValueError, TypeError):
        # unknown or malformed hash format counts as a mismatch
        return False

class Principal(BaseModel):
    user_id: int
    roles: list[str] = []

def _decode_token(token: str) -> dict:
    try:
        payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALG], audience=settings.REQUIRED_AUDIENCE)
        return payload
    except JWTError as e:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=f"Invalid token: {e}")

async def get_principal(creds: HTTPAuthorizationCredentials | None = Depends(http_bearer)) -> Principal:
    # In local env, allow missing token and act as the dev professional
    if creds is None and settings.ENV == "local":
        return Principal(user_id=settings.DEV_PROFESSIONAL_ID, roles=["professional"])
    if creds is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="UNAUTHENTICATED")

    data = _decode_token(creds.credentials)
    raw_id = data.get("sub") or data.get("user_id")
    try:
        user_id = int(str(raw_id))
    except ValueError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token subject")
    roles = data.get("roles", [])
    return Principal(user_id=user_id, roles=roles)

def require_roles(*needed: str):
    def dep(principal: Principal = Depends(get_principal)) -> Principal:
        if "admin" in principal.roles:
            return principal
        if not set(needed).intersection(principal.roles):
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Insufficient role")
        return principal
    return dep

require_professional = require_roles("professional")
