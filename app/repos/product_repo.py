# app/repos/product_repo.py
from decimal import Decimal
from typing import Iterable, List

from sqlalchemy import or_, select, update
from sqlalchemy.orm import Session

from app.data.models.category import CategoryModel
from app.data.models.product import ProductModel


class ProductRepo:
    """Katalog produktow: odczyty + atomowe zmiany stanu magazynowego."""

    def __init__(self, db: Session):
        self.db = db

    def get_product(self, product_id: int) -> ProductModel | None:
        return self.db.get(ProductModel, product_id)

    def get_product_by_slug(self, slug: str) -> ProductModel | None:
        return self.db.execute(
            select(ProductModel).where(ProductModel.slug == slug)
        ).scalar_one_or_none()

    def get_category_by_slug(self, slug: str) -> CategoryModel | None:
        return self.db.execute(
            select(CategoryModel).where(CategoryModel.slug == slug)
        ).scalar_one_or_none()

    def list_by_category(self, category_id: int) -> List[ProductModel]:
        return list(
            self.db.execute(
                select(ProductModel)
                .where(ProductModel.category_id == category_id, ProductModel.status == "active")
                .order_by(ProductModel.name)
            ).scalars()
        )

    def list_active(
        self,
        search: str | None = None,
        min_price: Decimal | None = None,
        max_price: Decimal | None = None,
    ) -> List[ProductModel]:
        stmt = select(ProductModel).where(ProductModel.status == "active")
        if search:
            like = f"%{search}%"
            stmt = stmt.where(
                or_(
                    ProductModel.name.ilike(like),
                    ProductModel.description.ilike(like),
                    ProductModel.sku.ilike(like),
                )
            )
        if min_price is not None:
            stmt = stmt.where(ProductModel.price >= min_price)
        if max_price is not None:
            stmt = stmt.where(ProductModel.price <= max_price)
        return list(self.db.execute(stmt.order_by(ProductModel.name)).scalars())

    def lock_products(self, product_ids: Iterable[int]) -> dict:
        """
        SELECT ... FOR UPDATE w rosnacej kolejnosci id,
        zeby dwa rownolegle checkouty nie zakleszczyly sie na wierszach.
        """
        ids = sorted(set(product_ids))
        if not ids:
            return {}
        rows = self.db.execute(
            select(ProductModel)
            .where(ProductModel.id.in_(ids))
            .order_by(ProductModel.id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalars()
        return {p.id: p for p in rows}

    def decrement_stock(self, product_id: int, quantity: int) -> bool:
        """
        Warunkowe zmniejszenie: UPDATE ... WHERE stock_quantity >= qty.
        False gdy zabraklo towaru (0 zmienionych wierszy).
        Dotyczy tylko produktow z manage_stock.
        """
        res = self.db.execute(
            update(ProductModel)
            .where(
                ProductModel.id == product_id,
                ProductModel.manage_stock.is_(True),
                ProductModel.stock_quantity >= quantity,
            )
            .values(stock_quantity=ProductModel.stock_quantity - quantity)
            .execution_options(synchronize_session="fetch")
        )
        return res.rowcount == 1

    def increment_stock(self, product_id: int, quantity: int) -> bool:
        res = self.db.execute(
            update(ProductModel)
            .where(ProductModel.id == product_id, ProductModel.manage_stock.is_(True))
            .values(stock_quantity=ProductModel.stock_quantity + quantity)
            .execution_options(synchronize_session="fetch")
        )
        return res.rowcount == 1
