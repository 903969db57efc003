# storefront/routes/admin.py
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from storefront.database import RowId, get_db
from storefront.exceptions import AuthorizationError, ValidationError
from storefront.models.users import OPERATOR_ROLES, Principal, Role
from storefront.schemas.user import PrincipalResponse, PrincipalsPage
from storefront.services import auth_service, session_service
from storefront.utils.audit import client_ip, write_log
from storefront.utils.tokenJWT import role_required

router = APIRouter(prefix="/admin", tags=["Admin"])

operator_required = role_required(*OPERATOR_ROLES)


# Operators manage clients; only a superoperator may touch another operator
def _load_target(db: Session, principal_id: int, current_user: Principal) -> Principal:
    target = auth_service.get_principal(db, principal_id)
    if target.id == current_user.id:
        raise ValidationError("You cannot change your own account status")
    if target.is_operator and current_user.role != Role.SUPEROPERATOR.value:
        raise AuthorizationError("Superoperator access required")
    return target


@router.get("/principals", response_model=PrincipalsPage)
def list_principals(
    q: Optional[str] = Query(None, description="Search by email"),
    role: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(10, ge=1, le=100),
    sort_by: Literal["id", "email", "role", "name"] = "id",
    order: Literal["asc", "desc"] = "asc",
    db: Session = Depends(get_db),
    current_user: Principal = Depends(operator_required),
):
    query = db.query(Principal)

    if q:
        query = query.filter(Principal.email.ilike(f"%{q.lower()}%"))
    if role:
        query = query.filter(Principal.role == role.lower())

    sort_map = {
        "id": Principal.id,
        "email": Principal.email,
        "role": Principal.role,
        "name": Principal.name,
    }
    col = sort_map.get(sort_by, Principal.id)
    query = query.order_by(col.asc() if order == "asc" else col.desc())

    total = query.count()
    items = query.offset((page - 1) * page_size).limit(page_size).all()
    return {"items": items, "total": total, "page": page, "page_size": page_size}


def _change_status(db: Session, request: Request, current_user: Principal, principal_id: int, action: str) -> Principal:
    target = _load_target(db, principal_id, current_user)

    if action in ("PRINCIPAL_BAN", "PRINCIPAL_UNBAN"):
        target = auth_service.set_banned(db, target, action == "PRINCIPAL_BAN")
    else:
        target = auth_service.set_active(db, target, action == "PRINCIPAL_ACTIVATE")

    # A disabled account must not be able to mint new access tokens either
    if target.is_banned or not target.is_active:
        session_service.revoke_all(db, target.id)
        db.commit()

    write_log(db, user_id=current_user.id, action=action, resource="principals", ip=client_ip(request),
              meta={"principal_id": target.id, "is_banned": target.is_banned, "is_active": target.is_active})
    return target


@router.patch("/principals/{principal_id}/ban", response_model=PrincipalResponse)
def ban_principal(principal_id: RowId, request: Request, db: Session = Depends(get_db),
                  current_user: Principal = Depends(operator_required)):
    return _change_status(db, request, current_user, principal_id, "PRINCIPAL_BAN")


@router.patch("/principals/{principal_id}/unban", response_model=PrincipalResponse)
def unban_principal(principal_id: RowId, request: Request, db: Session = Depends(get_db),
                    current_user: Principal = Depends(operator_required)):
    return _change_status(db, request, current_user, principal_id, "PRINCIPAL_UNBAN")


@router.patch("/principals/{principal_id}/activate", response_model=PrincipalResponse)
def activate_principal(principal_id: RowId, request: Request, db: Session = Depends(get_db),
                       current_user: Principal = Depends(operator_required)):
    return _change_status(db, request, current_user, principal_id, "PRINCIPAL_ACTIVATE")


@router.patch("/principals/{principal_id}/deactivate", response_model=PrincipalResponse)
def deactivate_principal(principal_id: RowId, request: Request, db: Session = Depends(get_db),
                         current_user: Principal = Depends(operator_required)):
    return _change_status(db, request, current_user, principal_id, "PRINCIPAL_DEACTIVATE")
