# app/data/seed.py
import random
import re
from decimal import Decimal

from sqlalchemy.orm import Session

from app.data.database import SessionLocal
from app.data.models import CategoryModel, ProductModel, UserModel
from app.utils.logging import get_logger

logger = get_logger(__name__)

CATALOG = {
    "Smartphones": [
        ("iPhone 15 Pro Max", "1199.99", "1099.99"),
        ("Samsung Galaxy S24 Ultra", "1299.99", None),
        ("Google Pixel 8 Pro", "999.99", "899.99"),
        ("OnePlus 12", "799.99", None),
    ],
    "Laptops": [
        ('MacBook Pro 16"', "2499.99", "2299.99"),
        ("Dell XPS 15", "1899.99", None),
        ("Lenovo ThinkPad X1 Carbon", "1799.99", None),
    ],
    "Men's Clothing": [
        ("Classic Cotton T-Shirt", "29.99", "24.99"),
        ("Slim Fit Jeans", "79.99", None),
        ("Leather Jacket", "299.99", "249.99"),
    ],
    "Women's Clothing": [
        ("Floral Summer Dress", "69.99", "54.99"),
        ("Silk Blouse", "79.99", "64.99"),
        ("Cashmere Cardigan", "149.99", None),
    ],
    "Furniture": [
        ("Oak Dining Table", "899.99", None),
        ("Ergonomic Office Chair", "399.99", "349.99"),
    ],
}

USERS = [(1, "Test User", "user@example.com"), (2, "Admin User", "admin@example.com")]


def slugify(value: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", value.lower()).strip("-")


def seed_catalog(db: Session, rng: random.Random | None = None) -> int:
    """Zwraca liczbe dodanych produktow, 0 gdy katalog juz istnieje."""
    if db.query(ProductModel).first():
        return 0

    rng = rng or random.Random(42)
    created = 0
    for category_name, products in CATALOG.items():
        category = CategoryModel(name=category_name, slug=slugify(category_name))
        db.add(category)
        db.flush()
        for name, price, sale_price in products:
            created += 1
            db.add(
                ProductModel(
                    category_id=category.id,
                    name=name,
                    slug=slugify(name),
                    sku=f"SKU-{created:05d}",
                    description=f"{name} from our {category_name.lower()} range.",
                    price=Decimal(price),
                    sale_price=Decimal(sale_price) if sale_price else None,
                    stock_quantity=rng.randint(5, 50),
                    is_featured=rng.random() < 0.3,
                )
            )

    for user_id, name, email in USERS:
        if db.get(UserModel, user_id) is None:
            db.add(UserModel(id=user_id, name=name, email=email))

    db.commit()
    return created


def seed():
    db = SessionLocal()
    try:
        created = seed_catalog(db)
        logger.info(f"Seeded {created} products")
    finally:
        db.close()


if __name__ == "__main__":
    seed()
