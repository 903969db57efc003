# storefront/routes/auth.py
from typing import Optional

from fastapi import APIRouter, Depends, Request, Response, status
from sqlalchemy.orm import Session

from storefront.config import Settings, get_settings
from storefront.database import get_db
from storefront.exceptions import StorefrontError
from storefront.models.users import Principal
from storefront.schemas import user as schemas
from storefront.services import auth_service, session_service
from storefront.utils.audit import client_ip, write_log
from storefront.utils.tokenJWT import get_current_user

router = APIRouter(prefix="/auth", tags=["Auth"])


def _cookie_secure(request: Request, settings: Settings) -> bool:
    if settings.COOKIE_SECURE is not None:
        return settings.COOKIE_SECURE
    return request.url.scheme == "https"


# Refresh token travels only in an http-only, same-site-strict cookie
def _set_refresh_cookie(response: Response, request: Request, settings: Settings, token: str):
    response.set_cookie(
        key=settings.REFRESH_COOKIE_NAME,
        value=token,
        max_age=settings.REFRESH_TOKEN_EXPIRE_DAYS * 24 * 60 * 60,
        httponly=True,
        secure=_cookie_secure(request, settings),
        samesite="strict",
        path="/",
    )


def _clear_refresh_cookie(response: Response, request: Request, settings: Settings):
    response.delete_cookie(
        key=settings.REFRESH_COOKIE_NAME,
        httponly=True,
        secure=_cookie_secure(request, settings),
        samesite="strict",
        path="/",
    )


# Register a new client principal
@router.post("/register", response_model=schemas.AuthResponse, status_code=status.HTTP_201_CREATED)
def register(
    payload: schemas.PrincipalCreate,
    request: Request,
    response: Response,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    try:
        principal = auth_service.create_principal(db, payload.email, payload.password, payload.name)
    except StorefrontError as exc:
        write_log(db, user_id=None, action="REGISTER", resource="auth", status="FAIL",
                  ip=client_ip(request), meta={"email": payload.email, "reason": exc.message})
        raise

    tokens = session_service.issue_tokens(db, principal, settings)
    _set_refresh_cookie(response, request, settings, tokens.refresh_token)

    write_log(db, user_id=principal.id, action="REGISTER", resource="auth",
              ip=client_ip(request), meta={"email": principal.email})
    return {"access_token": tokens.access_token, "token_type": "bearer", "user": principal}


# Authenticate a principal and issue tokens
@router.post("/login", response_model=schemas.AuthResponse)
def login(
    payload: schemas.PrincipalLogin,
    request: Request,
    response: Response,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    ip = client_ip(request)
    try:
        principal = auth_service.verify_credentials(db, payload.email, payload.password, settings, ip=ip)
    except StorefrontError as exc:
        existing = auth_service.get_by_email(db, payload.email)
        write_log(db, user_id=(existing.id if existing else None), action="LOGIN", resource="auth",
                  status="FAIL", ip=ip, meta={"email": payload.email, "reason": exc.message})
        raise

    tokens = session_service.issue_tokens(db, principal, settings)
    _set_refresh_cookie(response, request, settings, tokens.refresh_token)

    write_log(db, user_id=principal.id, action="LOGIN", resource="auth", ip=ip, meta={"email": principal.email})
    return {"access_token": tokens.access_token, "token_type": "bearer", "user": principal}


# Exchange the refresh cookie for a new access token (the cookie is rotated)
@router.post("/refresh", response_model=schemas.Token)
def refresh(
    request: Request,
    response: Response,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    presented: Optional[str] = request.cookies.get(settings.REFRESH_COOKIE_NAME)
    try:
        tokens = session_service.refresh_session(db, presented, settings)
    except StorefrontError as exc:
        write_log(db, user_id=None, action="REFRESH", resource="auth", status="FAIL",
                  ip=client_ip(request), meta={"reason": exc.message})
        raise

    _set_refresh_cookie(response, request, settings, tokens.refresh_token)
    write_log(db, user_id=tokens.principal_id, action="REFRESH", resource="auth", ip=client_ip(request))
    return {"access_token": tokens.access_token, "token_type": "bearer"}


# Revoke the refresh token and clear the cookie
@router.post("/logout")
def logout(
    request: Request,
    response: Response,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    principal_id = session_service.revoke_token(db, request.cookies.get(settings.REFRESH_COOKIE_NAME))
    _clear_refresh_cookie(response, request, settings)
    write_log(db, user_id=principal_id, action="LOGOUT", resource="auth", ip=client_ip(request),
              meta={"revoked": principal_id is not None})
    return {"message": "Logged out successfully"}


# Retrieve current authenticated principal
@router.get("/me", response_model=schemas.PrincipalResponse)
def me(current_user: Principal = Depends(get_current_user)):
    return current_user
