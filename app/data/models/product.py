# app/data/models/product.py
from decimal import Decimal

from sqlalchemy import Boolean, Column, ForeignKey, Index, Integer, Numeric, String, Text
from sqlalchemy.orm import relationship

from app.data.database import Base


class ProductModel(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True)
    category_id = Column(Integer, ForeignKey("categories.id", ondelete="CASCADE"), nullable=True)

    name = Column(String(255), nullable=False)
    slug = Column(String(255), nullable=False, unique=True)
    sku = Column(String(64), nullable=False, unique=True)
    description = Column(Text, nullable=False, default="")

    price = Column(Numeric(10, 2), nullable=False)
    sale_price = Column(Numeric(10, 2), nullable=True)

    stock_quantity = Column(Integer, nullable=False, default=0)
    manage_stock = Column(Boolean, nullable=False, default=True)
    in_stock = Column(Boolean, nullable=False, default=True)
    status = Column(String(20), nullable=False, default="active")  # active, inactive, draft
    is_featured = Column(Boolean, nullable=False, default=False)

    average_rating = Column(Numeric(3, 2), nullable=False, default=Decimal("0.00"))
    reviews_count = Column(Integer, nullable=False, default=0)

    category = relationship("CategoryModel", back_populates="products")

    __table_args__ = (Index("ix_products_category_status", "category_id", "status"),)

    @property
    def effective_price(self) -> Decimal:
        # cena promocyjna tylko jesli jest nizsza od katalogowej
        if self.sale_price is not None and self.sale_price < self.price:
            return self.sale_price
        return self.price

    @property
    def is_on_sale(self) -> bool:
        return self.sale_price is not None and self.sale_price < self.price

    @property
    def is_available(self) -> bool:
        if self.status != "active" or not self.in_stock:
            return False
        if self.manage_stock and self.stock_quantity <= 0:
            return False
        return True
