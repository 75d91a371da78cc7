from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Integer, String

from app.data.database import Base


class UserModel(Base):
    """Klient sklepu. Koszyk i lista zyczen wiaza sie przez owner_key, nie FK."""

    __tablename__ = "users"
    id = Column(Integer, primary_key=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
