# app/services/catalog_service.py
from decimal import Decimal
from typing import Any, Dict, List

from sqlalchemy.orm import Session

from app.data.models.product import ProductModel
from app.domain.errors import InsufficientStock, InvalidInput, NotFound
from app.repos.product_repo import ProductRepo
from app.utils.logging import get_logger

logger = get_logger(__name__)


def product_to_dict(p: ProductModel) -> Dict[str, Any]:
    return {
        "id": p.id,
        "name": p.name,
        "slug": p.slug,
        "sku": p.sku,
        "category_id": p.category_id,
        "price": p.price,
        "sale_price": p.sale_price,
        "effective_price": p.effective_price,
        "is_on_sale": p.is_on_sale,
        "is_available": p.is_available,
        "stock_quantity": p.stock_quantity,
        "manage_stock": p.manage_stock,
        "status": p.status,
        "average_rating": p.average_rating,
        "reviews_count": p.reviews_count,
    }


class CatalogService:
    """
    Katalog jako wspolpracownik rdzenia: odczyty produktow i zmiany stanu.
    decrement/increment nie commituja, dzialaja w transakcji wolajacego.
    """

    def __init__(self, db: Session):
        self.repo = ProductRepo(db)

    def get_product(self, product_id: int) -> ProductModel:
        product = self.repo.get_product(product_id)
        if not product:
            raise NotFound("Product not found.")
        return product

    def get_product_by_slug(self, slug: str) -> ProductModel:
        product = self.repo.get_product_by_slug(slug)
        if not product or product.status != "active":
            raise NotFound("Product not found.")
        return product

    def list_by_category(self, category_slug: str) -> List[ProductModel]:
        category = self.repo.get_category_by_slug(category_slug)
        if not category:
            raise NotFound("Category not found.")
        return self.repo.list_by_category(category.id)

    def list_products(
        self,
        search: str | None = None,
        min_price: Decimal | None = None,
        max_price: Decimal | None = None,
    ) -> List[ProductModel]:
        return self.repo.list_active(search, min_price, max_price)

    def decrement_stock(self, product_id: int, quantity: int) -> None:
        if quantity <= 0:
            raise InvalidInput("Quantity must be at least 1.")
        product = self.get_product(product_id)
        if not product.manage_stock:
            return
        if not self.repo.decrement_stock(product_id, quantity):
            raise InsufficientStock(f"Only {product.stock_quantity} items available in stock.")

    def increment_stock(self, product_id: int, quantity: int) -> None:
        if quantity <= 0:
            raise InvalidInput("Quantity must be at least 1.")
        product = self.get_product(product_id)
        if product.manage_stock:
            self.repo.increment_stock(product_id, quantity)
