#app/api/routers/carts.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.api.deps import get_cart_service, get_owner, get_user
from app.api.responses import envelope
from app.data.database import get_db
from app.domain.owner import Owner
from app.domain.schemas import ItemIn, MergeIn, QuantityIn
from app.services.cart_service import CartService
from app.services.wishlist_service import WishlistService

router = APIRouter(prefix="/cart", tags=["cart"])


@router.get("/")
def get_cart(owner: Owner = Depends(get_owner), svc: CartService = Depends(get_cart_service)):
    return envelope(data=svc.get_cart(owner))


@router.post("/items")
def add_item(
    payload: ItemIn,
    owner: Owner = Depends(get_owner),
    svc: CartService = Depends(get_cart_service),
):
    result = svc.add_item(owner, payload.product_id, payload.quantity, payload.options)
    return envelope(data=result, message="Product added to cart successfully!")


@router.put("/items/{line_id}")
def update_item(
    line_id: int,
    payload: QuantityIn,
    owner: Owner = Depends(get_owner),
    svc: CartService = Depends(get_cart_service),
):
    return envelope(data=svc.update_quantity(owner, line_id, payload.quantity), message="Cart updated successfully!")


@router.delete("/items/{line_id}")
def remove_item(
    line_id: int,
    owner: Owner = Depends(get_owner),
    svc: CartService = Depends(get_cart_service),
):
    return envelope(data=svc.remove_item(owner, line_id), message="Item removed from cart successfully!")


@router.delete("/")
def clear_cart(owner: Owner = Depends(get_owner), svc: CartService = Depends(get_cart_service)):
    return envelope(data=svc.clear(owner), message="Cart cleared successfully!")


@router.get("/count")
def cart_count(owner: Owner = Depends(get_owner), svc: CartService = Depends(get_cart_service)):
    return envelope(data={"cart_count": svc.count(owner)})


@router.post("/merge")
def merge_guest_cart(
    payload: MergeIn,
    user: Owner = Depends(get_user),
    svc: CartService = Depends(get_cart_service),
    db: Session = Depends(get_db),
):
    """Po zalogowaniu: koszyk i lista zyczen goscia przechodza na usera."""
    guest = Owner.guest(payload.session_id)
    cart = svc.merge_guest_into(user, guest)
    WishlistService(db, svc).merge_guest_into(user, guest)
    return envelope(data=cart, message="Guest cart merged.")
