# app/tasks/expire.py
from datetime import datetime, timezone, timedelta

from app.celery_worker import celery_app
from app.data.database import SessionLocal
from app.repos.cart_repo import CartRepo
from app.repos.wishlist_repo import WishlistRepo
from app.utils.settings import GUEST_CART_TTL_SECONDS
from app.utils.logging import get_logger

logger = get_logger(__name__)


def purge_guest_carts(db, ttl_seconds: int = GUEST_CART_TTL_SECONDS) -> dict:
    """Usuwa porzucone koszyki i listy zyczen gosci (sesje dawno wygasly)."""
    cutoff = datetime.now(timezone.utc) - timedelta(seconds=ttl_seconds)

    cart_lines = CartRepo(db).delete_stale_guest_lines(cutoff)
    wishlist_items = WishlistRepo(db).delete_stale_guest_items(cutoff)
    db.commit()

    logger.info(f"Purged {cart_lines} guest cart lines and {wishlist_items} guest wishlist items")
    return {"cart_lines": cart_lines, "wishlist_items": wishlist_items}


@celery_app.task(name="app.tasks.expire.purge_guest_carts_task")
def purge_guest_carts_task():
    logger.info("Purge guest carts task started")

    db = SessionLocal()
    try:
        return purge_guest_carts(db)
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
