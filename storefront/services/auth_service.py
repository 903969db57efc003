# storefront/services/auth_service.py
import logging
from datetime import timedelta
from typing import Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from storefront.config import Settings
from storefront.exceptions import AuthenticationError, AuthorizationError, ConflictError, NotFoundError
from storefront.models.users import Principal, Role
from storefront.utils.hashing import get_password_hash, verify_password
from storefront.utils.time_utils import utcnow

logger = logging.getLogger(__name__)


def normalize_email(email: str) -> str:
    return email.strip().lower()


def get_by_email(db: Session, email: str) -> Optional[Principal]:
    return db.query(Principal).filter(func.lower(Principal.email) == normalize_email(email)).first()


def get_principal(db: Session, principal_id: int) -> Principal:
    principal = db.query(Principal).filter(Principal.id == principal_id).first()
    if principal is None:
        raise NotFoundError("Principal not found")
    return principal


def create_principal(db: Session, email: str, password: str, name: str, role: str = Role.CLIENT.value) -> Principal:
    """Register a principal; raises ConflictError when the email is taken."""
    normalized_email = normalize_email(email)
    if get_by_email(db, normalized_email):
        raise ConflictError("Email already registered")

    principal = Principal(
        email=normalized_email,
        password_hash=get_password_hash(password),
        name=name.strip(),
        role=Role(role).value,
    )
    db.add(principal)
    try:
        db.commit()
    except IntegrityError:
        # Lost a race against a concurrent registration with the same email
        db.rollback()
        raise ConflictError("Email already registered")
    db.refresh(principal)
    logger.info("Registered principal %s with role %s", principal.id, principal.role)
    return principal


def verify_credentials(db: Session, email: str, password: str, settings: Settings, ip: Optional[str] = None) -> Principal:
    """
    Check an email/password pair.

    Repeated failures lock the account for LOGIN_LOCK_MINUTES; banned,
    inactive and locked accounts are refused even with the right password.
    """
    principal = get_by_email(db, email)
    if principal is None:
        raise AuthenticationError("Invalid email or password")

    if principal.is_banned:
        raise AuthorizationError("Your account is banned")
    if not principal.is_active:
        raise AuthorizationError("Your account is disabled")

    now = utcnow()
    if principal.locked_until and principal.locked_until > now:
        raise AuthorizationError("Account locked. Try again later.")

    if not verify_password(password, principal.password_hash):
        principal.failed_login_attempts = (principal.failed_login_attempts or 0) + 1
        if principal.failed_login_attempts >= settings.LOGIN_MAX_ATTEMPTS:
            principal.locked_until = now + timedelta(minutes=settings.LOGIN_LOCK_MINUTES)
            principal.failed_login_attempts = 0
            logger.warning("Principal %s locked after repeated login failures", principal.id)
        principal.last_login_ip = ip
        db.commit()
        raise AuthenticationError("Invalid email or password")

    principal.failed_login_attempts = 0
    principal.locked_until = None
    principal.last_login_at = now
    principal.last_login_ip = ip
    db.commit()
    db.refresh(principal)
    return principal


def set_banned(db: Session, principal: Principal, banned: bool) -> Principal:
    principal.is_banned = banned
    db.commit()
    db.refresh(principal)
    return principal


def set_active(db: Session, principal: Principal, active: bool) -> Principal:
    principal.is_active = active
    db.commit()
    db.refresh(principal)
    return principal
