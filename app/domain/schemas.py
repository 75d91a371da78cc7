# app/domain/schemas.py
from pydantic import BaseModel, Field, ConfigDict, EmailStr
from typing import Any, Dict, Literal, Optional


# ---- koszyk ----

class ItemIn(BaseModel):
    """Schema dla dodawania produktu do koszyka."""

    product_id: int = Field(..., gt=0)
    quantity: int = Field(1, ge=1)
    options: Optional[Dict[str, Any]] = None


class QuantityIn(BaseModel):
    quantity: int = Field(..., ge=1)


class MergeIn(BaseModel):
    session_id: str = Field(..., min_length=1, max_length=100)


# ---- wishlist ----

class WishlistIn(BaseModel):
    product_id: int = Field(..., gt=0)


class MoveToCartIn(BaseModel):
    product_id: int = Field(..., gt=0)
    quantity: int = Field(1, ge=1)


# ---- checkout ----

class AddressIn(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    phone: str = Field(..., min_length=1, max_length=20)
    address: str = Field(..., min_length=1, max_length=255)
    city: str = Field(..., min_length=1, max_length=100)
    state: str = Field(..., min_length=1, max_length=100)
    postal_code: str = Field(..., min_length=1, max_length=20)
    country: str = Field(..., min_length=1, max_length=100)


class CheckoutIn(BaseModel):
    """Kwoty nie sa przyjmowane od klienta, liczy je serwer."""

    billing_address: AddressIn
    shipping_address: AddressIn
    payment_method: Literal["stripe", "paypal"]
    payment_token: str = Field(..., min_length=1)


class ShipIn(BaseModel):
    tracking_number: str = Field(..., min_length=1, max_length=64)


# ---- recenzje ----

class ReviewIn(BaseModel):
    rating: int = Field(..., ge=1, le=5)
    title: Optional[str] = Field(None, max_length=255)
    comment: Optional[str] = Field(None, max_length=1000)


# ---- uzytkownicy ----

class UserCreate(BaseModel):
    """Schema dla tworzenia użytkownika."""

    id: int = Field(..., gt=0, description="ID użytkownika (musi być > 0)")
    name: str = Field(..., min_length=1, max_length=100, description="Imię użytkownika")
    email: Optional[EmailStr] = None


class UserRead(BaseModel):
    """Schema dla użytkownika (response)."""

    id: int
    name: str
    email: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)
