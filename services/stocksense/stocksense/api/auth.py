from datetime import datetime, timedelta, timezone
from typing import Optional
import jwt
from fastapi import HTTPException, Request
from shared.core import set_request_context
from stocksense.core_settings import get_settings
from stocksense.domain.actor import Actor, Role

BEARER_PREFIX = "Bearer "

def create_access_token(subject: str, name: str, role: Role = Role.STAFF, expires_minutes: int = 60) -> str:
    """Mint a token for local tooling and tests; production tokens come from the identity provider."""
    settings = get_settings()
    now = datetime.now(timezone.utc)
    payload = {
        "sub": subject,
        "name": name,
        "role": Role(role).value,
        "iat": now,
        "exp": now + timedelta(minutes=expires_minutes),
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALG)

def decode_access_token(token: str) -> Optional[dict]:
    settings = get_settings()
    try:
        return jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALG])
    except jwt.PyJWTError:
        return None

async def get_current_actor(request: Request) -> Actor:
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith(BEARER_PREFIX):
        raise HTTPException(status_code=401, detail="Authentication required")
    claims = decode_access_token(auth_header.split(" ", 1)[1])
    if not claims or not claims.get("sub"):
        raise HTTPException(status_code=401, detail="Invalid token")
    try:
        role = Role(claims.get("role", Role.STAFF.value))
    except ValueError:
        raise HTTPException(status_code=401, detail="Invalid token")
    actor = Actor(id=claims["sub"], display_name=claims.get("name") or claims["sub"], role=role)
    set_request_context(actor_id=actor.id)
    return actor
