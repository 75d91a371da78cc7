# app/repos/wishlist_repo.py
from typing import List

from sqlalchemy import delete, func, select
from sqlalchemy.orm import Session, joinedload

from app.data.models.wishlist_item import WishlistItemModel


class WishlistRepo:
    def __init__(self, db: Session):
        self.db = db

    def get_items(self, owner_key: str) -> List[WishlistItemModel]:
        return list(
            self.db.execute(
                select(WishlistItemModel)
                .options(joinedload(WishlistItemModel.product))
                .where(WishlistItemModel.owner_key == owner_key)
                .order_by(WishlistItemModel.created_at.desc(), WishlistItemModel.id.desc())
            ).scalars()
        )

    def find(self, owner_key: str, product_id: int) -> WishlistItemModel | None:
        return self.db.execute(
            select(WishlistItemModel).where(
                WishlistItemModel.owner_key == owner_key,
                WishlistItemModel.product_id == product_id,
            )
        ).scalar_one_or_none()

    def add(self, item: WishlistItemModel) -> WishlistItemModel:
        self.db.add(item)
        self.db.flush()
        return item

    def delete(self, item: WishlistItemModel) -> None:
        self.db.delete(item)
        self.db.flush()

    def clear(self, owner_key: str) -> int:
        res = self.db.execute(
            delete(WishlistItemModel)
            .where(WishlistItemModel.owner_key == owner_key)
            .execution_options(synchronize_session=False)
        )
        return res.rowcount

    def count(self, owner_key: str) -> int:
        return self.db.execute(
            select(func.count(WishlistItemModel.id)).where(WishlistItemModel.owner_key == owner_key)
        ).scalar_one()

    def delete_stale_guest_items(self, cutoff) -> int:
        res = self.db.execute(
            delete(WishlistItemModel)
            .where(WishlistItemModel.owner_key.like("guest:%"), WishlistItemModel.created_at < cutoff)
            .execution_options(synchronize_session=False)
        )
        return res.rowcount
