# app/repos/order_repo.py
from typing import List, Tuple

from sqlalchemy import exists, func, select
from sqlalchemy.orm import Session, selectinload

from app.data.models.order import OrderModel
from app.data.models.order_item import OrderItemModel


class OrderRepo:
    def __init__(self, db: Session):
        self.db = db

    def add_order(self, order: OrderModel) -> OrderModel:
        self.db.add(order)
        self.db.flush()
        return order

    def get_order(self, order_id: int, for_update: bool = False) -> OrderModel | None:
        stmt = (
            select(OrderModel)
            .options(selectinload(OrderModel.items))
            .where(OrderModel.id == order_id)
        )
        if for_update:
            stmt = stmt.with_for_update(of=OrderModel).execution_options(populate_existing=True)
        return self.db.execute(stmt).scalar_one_or_none()

    def get_by_payment_id(self, payment_id: str) -> OrderModel | None:
        return self.db.execute(
            select(OrderModel)
            .options(selectinload(OrderModel.items))
            .where(OrderModel.payment_id == payment_id)
            .with_for_update(of=OrderModel)
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def order_number_exists(self, order_number: str) -> bool:
        return self.db.execute(
            select(exists().where(OrderModel.order_number == order_number))
        ).scalar()

    def list_for_user(
        self,
        user_id: int,
        status: str | None = None,
        search: str | None = None,
        page: int = 1,
        per_page: int = 10,
    ) -> Tuple[List[OrderModel], int]:
        stmt = select(OrderModel).where(OrderModel.user_id == user_id)
        if status:
            stmt = stmt.where(OrderModel.status == status)
        if search:
            stmt = stmt.where(OrderModel.order_number.like(f"%{search}%"))

        total = self.db.execute(
            select(func.count()).select_from(stmt.subquery())
        ).scalar_one()

        orders = self.db.execute(
            stmt.options(selectinload(OrderModel.items))
            .order_by(OrderModel.created_at.desc(), OrderModel.id.desc())
            .offset((page - 1) * per_page)
            .limit(per_page)
        ).scalars().all()
        return list(orders), total

    def count_for_user(self, user_id: int, status: str | None = None) -> int:
        stmt = select(func.count(OrderModel.id)).where(OrderModel.user_id == user_id)
        if status:
            stmt = stmt.where(OrderModel.status == status)
        return self.db.execute(stmt).scalar_one()

    def total_paid_for_user(self, user_id: int):
        return self.db.execute(
            select(func.coalesce(func.sum(OrderModel.total_amount), 0)).where(
                OrderModel.user_id == user_id,
                OrderModel.payment_status == "paid",
            )
        ).scalar_one()

    def find_paid_order_with_product(self, user_id: int, product_id: int) -> OrderModel | None:
        return self.db.execute(
            select(OrderModel)
            .join(OrderItemModel, OrderItemModel.order_id == OrderModel.id)
            .where(
                OrderModel.user_id == user_id,
                OrderModel.payment_status == "paid",
                OrderItemModel.product_id == product_id,
            )
            .order_by(OrderModel.id)
            .limit(1)
        ).scalar_one_or_none()
