# storefront/routes/products.py
from typing import Optional, Literal

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy import or_
from sqlalchemy.orm import Session

from storefront.database import RowId, get_db
from storefront.exceptions import NotFoundError
from storefront.models.product import Product
from storefront.models.users import OPERATOR_ROLES, Principal
from storefront.utils.audit import client_ip, write_log
from storefront.utils.tokenJWT import role_required
import storefront.schemas.product as product_schemas

router = APIRouter(prefix="/products", tags=["Products"])

operator_required = role_required(*OPERATOR_ROLES)


def _get_product(db: Session, product_id: int) -> Product:
    product = db.query(Product).filter(Product.id == product_id).first()
    if not product:
        raise NotFoundError("Product not found")
    return product


@router.get("", response_model=product_schemas.ProductListPage)
def list_products(
    q: Optional[str] = Query(None, description="Search by name or category"),
    category: Optional[str] = Query(None),
    in_stock: bool = Query(False),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    sort_by: Literal["id", "name", "price_cents", "stock_count"] = "id",
    order: Literal["asc", "desc"] = "asc",
    db: Session = Depends(get_db),
):
    query = db.query(Product)

    if q:
        like = f"%{q}%"
        query = query.filter(or_(Product.name.ilike(like), Product.category.ilike(like)))
    if category:
        query = query.filter(Product.category.ilike(category))
    if in_stock:
        query = query.filter(Product.stock_count > 0)

    allowed = {
        "id": Product.id,
        "name": Product.name,
        "price_cents": Product.price_cents,
        "stock_count": Product.stock_count,
    }
    col = allowed.get(sort_by, Product.id)
    query = query.order_by(col.desc() if order == "desc" else col.asc())

    total = query.count()
    items = query.offset((page - 1) * page_size).limit(page_size).all()
    return {"items": items, "total": total, "page": page, "page_size": page_size}


@router.get("/{product_id}", response_model=product_schemas.ProductOut)
def get_product(product_id: RowId, db: Session = Depends(get_db)):
    return _get_product(db, product_id)


@router.post("", response_model=product_schemas.ProductOut, status_code=status.HTTP_201_CREATED)
def create_product(
    payload: product_schemas.ProductCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: Principal = Depends(operator_required),
):
    product = Product(**payload.model_dump())
    db.add(product)
    db.commit()
    db.refresh(product)

    write_log(db, user_id=current_user.id, action="PRODUCT_CREATE", resource="products",
              ip=client_ip(request), meta={"product_id": product.id})
    return product


# Partial update; price and stock edits never affect existing orders
@router.patch("/{product_id}", response_model=product_schemas.ProductOut)
def update_product(
    product_id: RowId,
    payload: product_schemas.ProductEditRequest,
    request: Request,
    db: Session = Depends(get_db),
    current_user: Principal = Depends(operator_required),
):
    product = _get_product(db, product_id)
    changes = payload.model_dump(exclude_unset=True)
    for field, value in changes.items():
        setattr(product, field, value)
    db.commit()
    db.refresh(product)

    write_log(db, user_id=current_user.id, action="PRODUCT_UPDATE", resource="products",
              ip=client_ip(request), meta={"product_id": product.id, "fields": sorted(changes)})
    return product
