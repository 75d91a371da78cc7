# app/repos/review_repo.py
from typing import List

from sqlalchemy import func, select
from sqlalchemy.orm import Session, joinedload

from app.data.models.review import ReviewModel


class ReviewRepo:
    def __init__(self, db: Session):
        self.db = db

    def find(self, user_id: int, product_id: int) -> ReviewModel | None:
        return self.db.execute(
            select(ReviewModel).where(
                ReviewModel.user_id == user_id,
                ReviewModel.product_id == product_id,
            )
        ).scalar_one_or_none()

    def add(self, review: ReviewModel) -> ReviewModel:
        self.db.add(review)
        self.db.flush()
        return review

    def approved_for_product(self, product_id: int) -> List[ReviewModel]:
        return list(
            self.db.execute(
                select(ReviewModel)
                .options(joinedload(ReviewModel.user))
                .where(ReviewModel.product_id == product_id, ReviewModel.is_approved.is_(True))
                .order_by(ReviewModel.created_at.desc(), ReviewModel.id.desc())
            ).scalars()
        )

    def rating_stats(self, product_id: int):
        avg, count = self.db.execute(
            select(func.avg(ReviewModel.rating), func.count(ReviewModel.id)).where(
                ReviewModel.product_id == product_id,
                ReviewModel.is_approved.is_(True),
            )
        ).one()
        return avg, count
