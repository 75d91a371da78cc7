# app/api/routers/products.py
from decimal import Decimal

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.api.deps import get_user
from app.api.responses import envelope
from app.data.database import get_db
from app.domain.owner import Owner
from app.domain.schemas import ReviewIn
from app.services.catalog_service import CatalogService, product_to_dict
from app.services.review_service import ReviewService

router = APIRouter(prefix="/products", tags=["products"])


@router.get("/")
def list_products(
    search: str | None = Query(None, max_length=100),
    min_price: Decimal | None = Query(None, ge=0),
    max_price: Decimal | None = Query(None, ge=0),
    db: Session = Depends(get_db),
):
    products = CatalogService(db).list_products(search, min_price, max_price)
    return envelope(data=[product_to_dict(p) for p in products])


@router.get("/category/{slug}")
def list_category(slug: str, db: Session = Depends(get_db)):
    products = CatalogService(db).list_by_category(slug)
    return envelope(data=[product_to_dict(p) for p in products])


@router.get("/{product_id}/reviews")
def list_reviews(product_id: int, db: Session = Depends(get_db)):
    return envelope(data=ReviewService(db).list_reviews(product_id))


@router.post("/{product_id}/reviews", status_code=201)
def submit_review(
    product_id: int,
    payload: ReviewIn,
    user: Owner = Depends(get_user),
    db: Session = Depends(get_db),
):
    result = ReviewService(db).submit_review(user, product_id, payload.rating, payload.title, payload.comment)
    return envelope(data=result, message="Thank you for your review!", status_code=201)


@router.get("/{slug}")
def get_product(slug: str, db: Session = Depends(get_db)):
    return envelope(data=product_to_dict(CatalogService(db).get_product_by_slug(slug)))
