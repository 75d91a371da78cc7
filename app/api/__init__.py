# app/api/__init__.py
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.api.responses import error
from app.api.routers import admin, carts, checkout, health, orders, payments, products, users, wishlist
from app.domain.errors import ShopError
from app.utils.logging import get_logger

logger = get_logger(__name__)


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(ShopError)
    async def shop_error_handler(request: Request, exc: ShopError):
        return error(exc.message, exc.status_code, exc.data)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return error("The given data was invalid.", 422, {"errors": exc.errors()})

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        return error(str(exc.detail), exc.status_code)

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        # szczegoly tylko w logach, klient dostaje ogolny komunikat
        logger.exception(f"Unhandled error on {request.method} {request.url.path}")
        return error("Something went wrong. Please try again.", 500)


def create_app() -> FastAPI:
    app = FastAPI(title="Shop Service", version="1.0.0")

    app.include_router(health.router)
    app.include_router(users.router)
    app.include_router(products.router)
    app.include_router(carts.router)
    app.include_router(wishlist.router)
    app.include_router(checkout.router)
    app.include_router(payments.router)
    app.include_router(orders.router)
    app.include_router(admin.router)

    register_exception_handlers(app)
    return app
