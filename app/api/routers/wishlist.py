# app/api/routers/wishlist.py
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.api.deps import get_cart_service, get_owner
from app.api.responses import envelope
from app.data.database import get_db
from app.domain.owner import Owner
from app.domain.schemas import MoveToCartIn, WishlistIn
from app.services.cart_service import CartService
from app.services.wishlist_service import WishlistService

router = APIRouter(prefix="/wishlist", tags=["wishlist"])


def get_service(
    db: Session = Depends(get_db),
    cart_service: CartService = Depends(get_cart_service),
) -> WishlistService:
    return WishlistService(db, cart_service)


@router.get("/")
def get_wishlist(owner: Owner = Depends(get_owner), svc: WishlistService = Depends(get_service)):
    return envelope(data=svc.get_wishlist(owner))


@router.post("/items")
def add_to_wishlist(
    payload: WishlistIn,
    owner: Owner = Depends(get_owner),
    svc: WishlistService = Depends(get_service),
):
    if not svc.add(owner, payload.product_id):
        return envelope(status="info", message="Product is already in your wishlist.")
    return envelope(
        data={"wishlist_count": svc.count(owner)},
        message="Product added to wishlist successfully!",
    )


@router.delete("/items/{product_id}")
def remove_from_wishlist(
    product_id: int,
    owner: Owner = Depends(get_owner),
    svc: WishlistService = Depends(get_service),
):
    svc.remove(owner, product_id)
    return envelope(
        data={"wishlist_count": svc.count(owner)},
        message="Product removed from wishlist successfully!",
    )


@router.post("/toggle")
def toggle_wishlist(
    payload: WishlistIn,
    owner: Owner = Depends(get_owner),
    svc: WishlistService = Depends(get_service),
):
    action = svc.toggle(owner, payload.product_id)
    return envelope(
        data={
            "action": action,
            "wishlist_count": svc.count(owner),
            "in_wishlist": action == "added",
        },
        message=f"Product {action} {'to' if action == 'added' else 'from'} wishlist successfully!",
    )


@router.post("/move-to-cart")
def move_to_cart(
    payload: MoveToCartIn,
    owner: Owner = Depends(get_owner),
    svc: WishlistService = Depends(get_service),
):
    result = svc.move_to_cart(owner, payload.product_id, payload.quantity)
    return envelope(data=result, message="Product moved to cart successfully!")


@router.delete("/")
def clear_wishlist(owner: Owner = Depends(get_owner), svc: WishlistService = Depends(get_service)):
    svc.clear(owner)
    return envelope(data={"wishlist_count": 0}, message="Wishlist cleared successfully!")


@router.get("/count")
def wishlist_count(owner: Owner = Depends(get_owner), svc: WishlistService = Depends(get_service)):
    return envelope(data={"wishlist_count": svc.count(owner)})


@router.get("/check")
def check_product(
    product_id: int = Query(..., gt=0),
    owner: Owner = Depends(get_owner),
    svc: WishlistService = Depends(get_service),
):
    return envelope(data={"in_wishlist": svc.contains(owner, product_id)})
