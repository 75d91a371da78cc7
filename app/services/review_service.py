# app/services/review_service.py
from typing import Any, Dict

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.data.models.review import ReviewModel
from app.domain.errors import DuplicateReview, NotFound, Unauthenticated
from app.domain.owner import Owner
from app.domain.pricing import money
from app.repos.order_repo import OrderRepo
from app.repos.product_repo import ProductRepo
from app.repos.review_repo import ReviewRepo
from app.repos.user_repo import UserRepo
from app.utils.logging import get_logger

logger = get_logger(__name__)


def reviewer_name(name: str | None) -> str:
    """'Jan Kowalski' -> 'Jan K.', 'Anna' -> 'A**a'."""
    if not name:
        return "Anonymous"
    parts = name.split()
    if len(parts) > 1:
        return f"{parts[0]} {parts[1][0]}."
    if len(name) <= 2:
        return name[0] + "*" * (len(name) - 1)
    return name[0] + "*" * (len(name) - 2) + name[-1]


def review_to_dict(review: ReviewModel) -> Dict[str, Any]:
    return {
        "id": review.id,
        "rating": review.rating,
        "title": review.title,
        "comment": review.comment,
        "reviewer_name": reviewer_name(review.user.name if review.user else None),
        "is_verified_purchase": review.is_verified_purchase,
        "created_at": review.created_at,
    }


class ReviewService:
    """Jedna recenzja na (user, produkt), weryfikacja zakupu tylko przy tworzeniu."""

    def __init__(self, db: Session):
        self.db = db
        self.repo = ReviewRepo(db)
        self.products = ProductRepo(db)
        self.orders = OrderRepo(db)
        self.users = UserRepo(db)

    def list_reviews(self, product_id: int) -> Dict[str, Any]:
        product = self.products.get_product(product_id)
        if not product:
            raise NotFound("Product not found.")
        return {
            "reviews": [review_to_dict(r) for r in self.repo.approved_for_product(product_id)],
            "product_stats": {
                "average_rating": product.average_rating,
                "reviews_count": product.reviews_count,
            },
        }

    def submit_review(
        self,
        user: Owner,
        product_id: int,
        rating: int,
        title: str | None = None,
        comment: str | None = None,
    ) -> Dict[str, Any]:
        if not user.is_user or self.users.get_user(user.user_id) is None:
            raise Unauthenticated("You must be logged in to submit a review.")

        product = self.products.get_product(product_id)
        if not product:
            raise NotFound("Product not found.")

        if self.repo.find(user.user_id, product_id):
            raise DuplicateReview()

        paid_order = self.orders.find_paid_order_with_product(user.user_id, product_id)

        try:
            review = self.repo.add(
                ReviewModel(
                    user_id=user.user_id,
                    product_id=product_id,
                    order_id=paid_order.id if paid_order else None,
                    rating=rating,
                    title=title,
                    comment=comment,
                    is_verified_purchase=paid_order is not None,
                )
            )
            self._update_rating_stats(product)
            self.db.commit()
        except IntegrityError:
            # rownolegla recenzja tego samego usera
            self.db.rollback()
            raise DuplicateReview()

        self.db.refresh(review)
        logger.info(f"Review {review.id} for product {product_id} by user {user.user_id}")

        return {
            "review": review_to_dict(review),
            "product_stats": {
                "average_rating": product.average_rating,
                "reviews_count": product.reviews_count,
            },
        }

    def _update_rating_stats(self, product) -> None:
        avg, count = self.repo.rating_stats(product.id)
        product.average_rating = money(avg or 0)
        product.reviews_count = count
