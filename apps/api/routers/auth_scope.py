"""Bearer-token dependencies that pin every credit call to the caller's account."""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from fastapi import Depends, HTTPException, Query
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from services.session_token import SessionTokenError, decode_session_token


auth_scheme = HTTPBearer(auto_error=False)
BEARER_CHALLENGE = {"WWW-Authenticate": "Bearer"}


@dataclass(frozen=True)
class AuthContext:
    user_id: str
    email: Optional[str] = None
    expires_at: Optional[datetime] = None


def ensure_user_scope(auth_user_id: str, supplied_user_id: Optional[str]) -> str:
    """Return the authenticated user_id, rejecting requests for another account."""
    supplied = (supplied_user_id or "").strip()
    if supplied and supplied != auth_user_id:
        raise HTTPException(status_code=403, detail="user_id does not match authenticated session.")
    return auth_user_id


async def get_auth_context(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(auth_scheme),
) -> AuthContext:
    if not credentials or credentials.scheme.lower() != "bearer":
        raise HTTPException(status_code=401, detail="Missing Bearer session token.", headers=BEARER_CHALLENGE)

    try:
        claims = decode_session_token(credentials.credentials)
    except SessionTokenError as exc:
        raise HTTPException(status_code=401, detail=str(exc), headers=BEARER_CHALLENGE) from exc

    return AuthContext(
        user_id=str(claims["sub"]).strip(),
        email=claims.get("email") or None,
        expires_at=datetime.fromtimestamp(claims["exp"], tz=timezone.utc),
    )


async def get_scoped_user_id(
    user_id: Optional[str] = Query(default=None),
    auth: AuthContext = Depends(get_auth_context),
) -> str:
    """Account id for read endpoints that accept an optional ``user_id`` query."""
    return ensure_user_scope(auth.user_id, user_id)
