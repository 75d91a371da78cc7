from typing import Dict, Any
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from app.data.models.cart_item import CartItemModel
from app.data.models.product import ProductModel
from app.domain.errors import InsufficientStock, InvalidInput, NotFound, Unauthorized, Unavailable
from app.domain.owner import Owner
from app.domain.pricing import ZERO, compute_totals, line_total, money, options_fingerprint
from app.repos.cart_repo import CartRepo
from app.repos.product_repo import ProductRepo
from app.services.lock_service import LockService
from app.utils.logging import get_logger

logger = get_logger(__name__)


class CartService:
    """
    Koszyk = jedyne zrodlo prawdy o tym, co zostaloby kupione teraz.
    commands (add, update, remove, clear, merge) modyfikuja stan
    query (get, count) tylko odczyt, totals liczone przy kazdym odczycie
    """

    def __init__(self, db: Session, lock_service: LockService):
        self.repo = CartRepo(db)
        self.products = ProductRepo(db)
        self.lock_service = lock_service

    #query - odczyt
    def get_cart(self, owner: Owner) -> Dict[str, Any]:
        lines = self.repo.get_cart_items(owner.key)
        totals = compute_totals((i.quantity, i.price) for i in lines)

        #dict przeksztalcany w jsona
        return {
            "owner": owner.key,
            "items": [self._line_dict(i) for i in lines],
            "item_count": sum(i.quantity for i in lines),
            "cart_total": totals.subtotal,
            "totals": totals.as_dict(),
        }

    def count(self, owner: Owner) -> int:
        return self.repo.count(owner.key)

    #commands
    def add_item(
        self,
        owner: Owner,
        product_id: int,
        quantity: int,
        options: dict | None = None,
    ) -> Dict[str, Any]:

        if quantity <= 0:
            raise InvalidInput("Quantity must be at least 1.")

        product = self.products.get_product(product_id)
        if not product:
            raise NotFound("Product not found.")
        if not product.is_available:
            raise Unavailable()

        fingerprint = options_fingerprint(options)

        with self.lock_service.owner_lock(owner.key):
            try:
                line = self._upsert_line(owner, product, quantity, options, fingerprint)
                self.repo.commit()
            except Exception:
                self.repo.rollback()
                raise

        logger.info(f"Added {quantity} x product {product_id} to cart {owner.key}, line now {line.quantity}")

        return {
            "item": self._line_dict(line),
            "cart_count": self.repo.count(owner.key),
        }

    def _upsert_line(self, owner, product, quantity, options, fingerprint) -> CartItemModel:
        existing = self.repo.get_cart_item(owner.key, product.id, fingerprint)
        if existing is None:
            self._check_stock(product, quantity)
            try:
                # savepoint: przy wyscigu unique constraint wycofuje tylko insert
                with self.repo.savepoint():
                    return self.repo.add_cart_item(
                        CartItemModel(
                            owner_key=owner.key,
                            product_id=product.id,
                            quantity=quantity,
                            price=money(product.effective_price),
                            product_options=options or None,
                            options_fingerprint=fingerprint,
                        )
                    )
            except IntegrityError:
                logger.info(f"Concurrent insert for {owner.key}/product {product.id}, merging into existing line")
                existing = self.repo.get_cart_item(owner.key, product.id, fingerprint)
                if existing is None:
                    raise

        self._check_stock(product, existing.quantity + quantity)
        self.repo.increment_quantity(existing.id, quantity, money(product.effective_price))
        self.repo.refresh(existing)
        return existing

    def update_quantity(self, owner: Owner, line_id: int, quantity: int) -> Dict[str, Any]:
        if quantity <= 0:
            raise InvalidInput("Quantity must be at least 1.")

        with self.lock_service.owner_lock(owner.key):
            line = self._owned_line(owner, line_id)
            product = line.product
            if product is None:
                raise NotFound("Product not found.")
            self._check_stock(product, quantity)

            line.quantity = quantity
            line.price = money(product.effective_price)  # update ceny
            self.repo.commit()

        logger.info(f"Cart line {line_id} of {owner.key} set to quantity {quantity}")
        return self.get_cart(owner)

    def remove_item(self, owner: Owner, line_id: int) -> Dict[str, Any]:
        with self.lock_service.owner_lock(owner.key):
            line = self._owned_line(owner, line_id)
            self.repo.delete_line(line)
            self.repo.commit()

        logger.info(f"Cart line {line_id} removed from {owner.key}")
        return self.get_cart(owner)

    def clear(self, owner: Owner) -> Dict[str, Any]:
        with self.lock_service.owner_lock(owner.key):
            removed = self.repo.clear(owner.key)
            self.repo.commit()

        logger.info(f"Cart {owner.key} cleared ({removed} lines)")
        return self.get_cart(owner)

    def merge_guest_into(self, user: Owner, guest: Owner) -> Dict[str, Any]:
        """
        Laczy koszyk goscia z koszykiem usera po zalogowaniu.
        Kolizje (ten sam produkt + opcje) sumuja ilosci, reszta zmienia wlasciciela.
        Drugie wywolanie nic nie robi, bo linii goscia juz nie ma.
        """
        if not user.is_user or guest.is_user:
            raise Unauthorized("Guest carts can only be merged into a user cart.")

        merged = moved = 0
        with self.lock_service.owner_lock(user.key):
            try:
                for guest_line in self.repo.get_cart_items(guest.key):
                    user_line = self.repo.get_cart_item(
                        user.key, guest_line.product_id, guest_line.options_fingerprint
                    )
                    if user_line:
                        user_line.quantity += guest_line.quantity
                        if user_line.product is not None:
                            user_line.price = money(user_line.product.effective_price)
                        self.repo.delete_line(guest_line)
                        merged += 1
                    else:
                        guest_line.owner_key = user.key
                        moved += 1
                self.repo.commit()
            except Exception:
                self.repo.rollback()
                raise

        if merged or moved:
            logger.info(f"Merged guest cart {guest.key} into {user.key}: {merged} merged, {moved} moved")
        return self.get_cart(user)

    # --- helpers ---

    def _owned_line(self, owner: Owner, line_id: int) -> CartItemModel:
        line = self.repo.get_line(line_id)
        if not line:
            raise NotFound("Cart item not found.")
        if line.owner_key != owner.key:
            raise Unauthorized()
        return line

    @staticmethod
    def _check_stock(product: ProductModel, wanted: int) -> None:
        if product.manage_stock and wanted > product.stock_quantity:
            raise InsufficientStock(
                f"Only {product.stock_quantity} items available in stock.",
                data={"available": product.stock_quantity},
            )

    @staticmethod
    def _line_dict(line: CartItemModel) -> Dict[str, Any]:
        product = line.product
        return {
            "id": line.id,
            "product_id": line.product_id,
            "product_name": product.name if product else "",
            "product_slug": product.slug if product else "",
            "quantity": line.quantity,
            "price": line.price,
            "total": line_total(line.quantity, line.price or ZERO),
            "options": line.product_options,
        }
