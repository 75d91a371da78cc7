# app/services/wishlist_service.py
from typing import Any, Dict

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.data.models.wishlist_item import WishlistItemModel
from app.domain.errors import CartBusy, NotFound, Unauthorized
from app.domain.owner import Owner
from app.repos.product_repo import ProductRepo
from app.repos.wishlist_repo import WishlistRepo
from app.services.cart_service import CartService
from app.utils.logging import get_logger

logger = get_logger(__name__)


class WishlistService:
    """
    Rownolegla struktura do koszyka, bez stanow magazynowych i platnosci.
    """

    def __init__(self, db: Session, cart_service: CartService):
        self.db = db
        self.repo = WishlistRepo(db)
        self.products = ProductRepo(db)
        self.cart_service = cart_service

    def get_wishlist(self, owner: Owner) -> Dict[str, Any]:
        items = self.repo.get_items(owner.key)
        return {
            "owner": owner.key,
            "items": [
                {
                    "product_id": i.product_id,
                    "product_name": i.product.name,
                    "product_slug": i.product.slug,
                    "price": i.product.effective_price,
                    "is_available": i.product.is_available,
                    "added_at": i.created_at,
                }
                for i in items
            ],
            "wishlist_count": len(items),
        }

    def add(self, owner: Owner, product_id: int) -> bool:
        """True gdy dodano, False gdy produkt juz byl na liscie."""
        self._product_or_404(product_id)

        if self.repo.find(owner.key, product_id):
            return False
        try:
            self.repo.add(WishlistItemModel(owner_key=owner.key, product_id=product_id))
            self.db.commit()
        except IntegrityError:
            # rownolegle dodanie tego samego produktu
            self.db.rollback()
            return False

        logger.info(f"Product {product_id} added to wishlist {owner.key}")
        return True

    def remove(self, owner: Owner, product_id: int) -> None:
        self._product_or_404(product_id)

        item = self.repo.find(owner.key, product_id)
        if not item:
            raise NotFound("Product not found in wishlist.")
        self.repo.delete(item)
        self.db.commit()

    def toggle(self, owner: Owner, product_id: int) -> str:
        self._product_or_404(product_id)

        item = self.repo.find(owner.key, product_id)
        if item:
            self.repo.delete(item)
            self.db.commit()
            return "removed"
        self.add(owner, product_id)
        return "added"

    def move_to_cart(self, owner: Owner, product_id: int, quantity: int = 1) -> Dict[str, Any]:
        """Dodaje do koszyka (te same walidacje co add_item), dopiero potem usuwa z listy."""
        self._product_or_404(product_id)

        result = self.cart_service.add_item(owner, product_id, quantity)

        item = self.repo.find(owner.key, product_id)
        if item:
            self.repo.delete(item)
            self.db.commit()

        return {
            "wishlist_count": self.repo.count(owner.key),
            "cart_count": result["cart_count"],
        }

    def clear(self, owner: Owner) -> None:
        self.repo.clear(owner.key)
        self.db.commit()

    def count(self, owner: Owner) -> int:
        return self.repo.count(owner.key)

    def contains(self, owner: Owner, product_id: int) -> bool:
        self._product_or_404(product_id)
        return self.repo.find(owner.key, product_id) is not None

    def merge_guest_into(self, user: Owner, guest: Owner) -> int:
        # duplikaty goscia sa usuwane, reszta zmienia wlasciciela
        if not user.is_user or guest.is_user:
            raise Unauthorized("Guest wishlists can only be merged into a user wishlist.")

        moved = 0
        with self.cart_service.lock_service.owner_lock(user.key):
            try:
                for guest_item in self.repo.get_items(guest.key):
                    if self.repo.find(user.key, guest_item.product_id):
                        self.repo.delete(guest_item)
                    else:
                        guest_item.owner_key = user.key
                        moved += 1
                self.db.commit()
            except IntegrityError:
                # rownolegle dodanie tego samego produktu do listy usera
                self.db.rollback()
                raise CartBusy("Your wishlist is being updated. Please try again.")
            except Exception:
                self.db.rollback()
                raise

        if moved:
            logger.info(f"Moved {moved} wishlist items from {guest.key} to {user.key}")
        return moved

    def _product_or_404(self, product_id: int):
        product = self.products.get_product(product_id)
        if not product:
            raise NotFound("Product not found.")
        return product
