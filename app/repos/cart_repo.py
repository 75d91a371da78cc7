# app/repos/cart_repo.py
from typing import List

from sqlalchemy import delete, func, select, update
from sqlalchemy.orm import Session, joinedload

from app.data.models.cart_item import CartItemModel


class CartRepo:
    def __init__(self, db: Session):
        self.db = db

    def get_cart_items(self, owner_key: str) -> List[CartItemModel]:
        return list(
            self.db.execute(
                select(CartItemModel)
                .options(joinedload(CartItemModel.product))
                .where(CartItemModel.owner_key == owner_key)
                .order_by(CartItemModel.id)
            ).scalars()
        )

    def get_line(self, line_id: int) -> CartItemModel | None:
        return self.db.get(CartItemModel, line_id)

    def get_cart_item(self, owner_key: str, product_id: int, fingerprint: str) -> CartItemModel | None:
        return self.db.execute(
            select(CartItemModel).where(
                CartItemModel.owner_key == owner_key,
                CartItemModel.product_id == product_id,
                CartItemModel.options_fingerprint == fingerprint,
            )
        ).scalar_one_or_none()

    def add_cart_item(self, item: CartItemModel) -> CartItemModel:
        self.db.add(item)
        self.db.flush()
        return item

    def increment_quantity(self, line_id: int, quantity: int, price) -> None:
        # atomowo po stronie bazy, bez read-modify-write
        self.db.execute(
            update(CartItemModel)
            .where(CartItemModel.id == line_id)
            .values(quantity=CartItemModel.quantity + quantity, price=price)
            .execution_options(synchronize_session=False)
        )

    def delete_line(self, line: CartItemModel) -> None:
        self.db.delete(line)
        self.db.flush()

    def clear(self, owner_key: str) -> int:
        res = self.db.execute(
            delete(CartItemModel)
            .where(CartItemModel.owner_key == owner_key)
            .execution_options(synchronize_session=False)
        )
        return res.rowcount

    def count(self, owner_key: str) -> int:
        total = self.db.execute(
            select(func.coalesce(func.sum(CartItemModel.quantity), 0)).where(
                CartItemModel.owner_key == owner_key
            )
        ).scalar_one()
        return int(total)

    def delete_stale_guest_lines(self, cutoff) -> int:
        res = self.db.execute(
            delete(CartItemModel)
            .where(CartItemModel.owner_key.like("guest:%"), CartItemModel.updated_at < cutoff)
            .execution_options(synchronize_session=False)
        )
        return res.rowcount

    def savepoint(self):
        return self.db.begin_nested()

    def refresh(self, obj) -> None:
        self.db.refresh(obj)

    def commit(self) -> None:
        self.db.commit()

    def rollback(self) -> None:
        self.db.rollback()
