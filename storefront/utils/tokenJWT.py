# storefront/utils/tokenJWT.py
import uuid
from calendar import timegm
from datetime import datetime, timedelta
from typing import Optional, Tuple

from jose import jwt, JWTError
from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from storefront.config import Settings, get_settings
from storefront.database import get_db
from storefront.exceptions import AuthenticationError, AuthorizationError
from storefront.models.users import Principal
from storefront.utils.time_utils import utcnow

ACCESS = "access"
REFRESH = "refresh"

# auto_error is off so missing/malformed headers go through our own 401 path
bearer_scheme = HTTPBearer(auto_error=False)


def _ts(dt: datetime) -> int:
    return timegm(dt.utctimetuple())


# Generate a short-lived access token carrying the principal's identity claims
def create_access_token(principal: Principal, settings: Settings, now: Optional[datetime] = None,
                        expires_delta: Optional[timedelta] = None) -> str:
    now = now or utcnow()
    expire = now + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode = {
        "sub": str(principal.id),
        "principal_id": principal.id,
        "email": principal.email.strip().lower(),
        "role": principal.role,
        "type": ACCESS,
        "iat": _ts(now),
        "exp": _ts(expire),
    }
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


# Generate a long-lived refresh token; returns (token, jti, expires_at)
def create_refresh_token(principal: Principal, settings: Settings,
                         now: Optional[datetime] = None) -> Tuple[str, str, datetime]:
    now = now or utcnow()
    expire = now + timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS)
    jti = uuid.uuid4().hex
    to_encode = {
        "sub": str(principal.id),
        "principal_id": principal.id,
        "role": principal.role,
        "type": REFRESH,
        "jti": jti,
        "iat": _ts(now),
        "exp": _ts(expire),
    }
    token = jwt.encode(to_encode, settings.refresh_secret, algorithm=settings.ALGORITHM)
    return token, jti, expire


def decode_token(token: str, secret: str, algorithm: str, expected_type: str,
                 now: Optional[datetime] = None) -> dict:
    """
    Verify signature and expiry of a token and return its claims.

    A token is rejected from the exact second of its ``exp`` claim onwards.
    """
    try:
        # Expiry is checked below so the boundary is exclusive
        payload = jwt.decode(token, secret, algorithms=[algorithm], options={"verify_exp": False})
    except JWTError:
        raise AuthenticationError("Invalid or expired token")

    exp = payload.get("exp")
    if not isinstance(exp, int) or _ts(now or utcnow()) >= exp:
        raise AuthenticationError("Invalid or expired token")
    if payload.get("type") != expected_type or not isinstance(payload.get("principal_id"), int):
        raise AuthenticationError("Invalid or expired token")
    return payload


def authenticate(db: Session, credentials: Optional[HTTPAuthorizationCredentials], settings: Settings,
                 now: Optional[datetime] = None) -> Principal:
    """
    Resolve a bearer credential to an active principal.

    The principal is reloaded on every call so a ban or deactivation takes
    effect on the next request, even while the access token is still valid.
    """
    if credentials is None or not credentials.credentials:
        raise AuthenticationError("Access token required")

    payload = decode_token(credentials.credentials, settings.SECRET_KEY, settings.ALGORITHM, ACCESS, now=now)

    principal = db.query(Principal).filter(Principal.id == payload["principal_id"]).first()
    if principal is None:
        raise AuthenticationError("Invalid token - principal not found")
    if not principal.is_active or principal.is_banned:
        raise AuthorizationError("Account is disabled or banned")
    return principal


# Retrieve the currently authenticated principal and attach its identity to the request
def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> Principal:
    principal = authenticate(db, credentials, settings)
    request.state.principal = {
        "id": principal.id,
        "email": principal.email,
        "name": principal.name,
        "role": principal.role,
    }
    return principal


# Dependency factory for Role-Based Access Control
def role_required(*allowed_roles):
    def _checker(current_user: Principal = Depends(get_current_user)):
        if allowed_roles and current_user.role not in allowed_roles:
            raise AuthorizationError("Forbidden")
        return current_user
    return _checker
