# storefront/services/session_service.py
"""
Token issuance and refresh.

Access tokens are stateless JWTs. Refresh tokens are JWTs too, but every
issued one is recorded (SHA-256 digest only) so it can be rotated on use
and revoked on logout, ban or detected reuse.
"""
import hashlib
import logging
from datetime import datetime
from typing import NamedTuple, Optional

from sqlalchemy.orm import Session

from storefront.config import Settings
from storefront.exceptions import AuthenticationError, AuthorizationError
from storefront.models.refresh_token import RefreshToken
from storefront.models.users import Principal
from storefront.utils.time_utils import utcnow
from storefront.utils.tokenJWT import REFRESH, create_access_token, create_refresh_token, decode_token

logger = logging.getLogger(__name__)


class IssuedTokens(NamedTuple):
    access_token: str
    refresh_token: str
    refresh_expires_at: datetime
    principal_id: int


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def _record_refresh_token(db: Session, principal: Principal, settings: Settings, now: datetime):
    token, jti, expires_at = create_refresh_token(principal, settings, now=now)
    db.add(RefreshToken(
        principal_id=principal.id,
        jti=jti,
        token_hash=hash_token(token),
        issued_at=now,
        expires_at=expires_at,
    ))
    return token, jti, expires_at


def issue_tokens(db: Session, principal: Principal, settings: Settings, now: Optional[datetime] = None) -> IssuedTokens:
    """Mint an access token and a recorded refresh token for a principal."""
    now = now or utcnow()
    access_token = create_access_token(principal, settings, now=now)
    refresh_token, _, expires_at = _record_refresh_token(db, principal, settings, now)
    db.commit()
    return IssuedTokens(access_token, refresh_token, expires_at, principal.id)


def revoke_all(db: Session, principal_id: int, now: Optional[datetime] = None) -> int:
    """Revoke every live refresh token of a principal; caller commits."""
    now = now or utcnow()
    return (
        db.query(RefreshToken)
        .filter(RefreshToken.principal_id == principal_id, RefreshToken.revoked_at.is_(None))
        .update({RefreshToken.revoked_at: now}, synchronize_session=False)
    )


def refresh_session(db: Session, refresh_token: Optional[str], settings: Settings,
                    now: Optional[datetime] = None) -> IssuedTokens:
    """
    Exchange a refresh token for a new access token and a rotated refresh token.

    Presenting a token that was already rotated or revoked is treated as
    theft: every outstanding refresh token of that principal is revoked.
    """
    if not refresh_token:
        raise AuthenticationError("Refresh token required")

    now = now or utcnow()
    payload = decode_token(refresh_token, settings.refresh_secret, settings.ALGORITHM, REFRESH, now=now)

    record = db.query(RefreshToken).filter(RefreshToken.token_hash == hash_token(refresh_token)).first()
    if record is None or record.jti != payload.get("jti") or record.principal_id != payload["principal_id"]:
        raise AuthenticationError("Invalid refresh token")

    if record.is_revoked:
        revoked = revoke_all(db, record.principal_id, now)
        db.commit()
        logger.warning("Refresh token reuse for principal %s, revoked %s live tokens", record.principal_id, revoked)
        raise AuthenticationError("Refresh token has been revoked")

    if record.expires_at <= now:
        raise AuthenticationError("Refresh token expired")

    principal = db.query(Principal).filter(Principal.id == record.principal_id).first()
    if principal is None:
        raise AuthenticationError("Invalid refresh token")
    if not principal.is_active or principal.is_banned:
        revoke_all(db, principal.id, now)
        db.commit()
        raise AuthorizationError("Account is disabled or banned")

    access_token = create_access_token(principal, settings, now=now)
    new_token, new_jti, expires_at = _record_refresh_token(db, principal, settings, now)
    # Compare-and-set so two concurrent refreshes cannot both rotate the same token
    claimed = (
        db.query(RefreshToken)
        .filter(RefreshToken.id == record.id, RefreshToken.revoked_at.is_(None))
        .update({RefreshToken.revoked_at: now, RefreshToken.replaced_by: new_jti}, synchronize_session=False)
    )
    if claimed != 1:
        db.rollback()
        raise AuthenticationError("Refresh token has been revoked")
    db.commit()
    return IssuedTokens(access_token, new_token, expires_at, principal.id)


def revoke_token(db: Session, refresh_token: Optional[str], now: Optional[datetime] = None) -> Optional[int]:
    """
    Revoke a single refresh token (logout).

    Returns the owning principal id, or None when nothing live was revoked.
    """
    if not refresh_token:
        return None
    record = db.query(RefreshToken).filter(RefreshToken.token_hash == hash_token(refresh_token)).first()
    if record is None or record.is_revoked:
        return None
    record.revoked_at = now or utcnow()
    db.commit()
    return record.principal_id
