"""Checkout: cart -> immutable order in a single transaction."""

import re
from decimal import Decimal

from app.data.models import CartItemModel, OrderItemModel, OrderModel, ProductModel
from app.services import checkout_service
from app.services.notification_service import NotificationService
from app.utils.settings import ORDER_NUMBER_ATTEMPTS
from tests.conftest import checkout_payload


def _add(client, product_id, quantity=1, user_id=1):
    resp = client.post(
        "/cart/items", params={"user_id": user_id}, json={"product_id": product_id, "quantity": quantity}
    )
    assert resp.status_code == 200
    return resp


def _checkout(client, user_id=1, **kwargs):
    return client.post("/checkout/process", params={"user_id": user_id}, json=checkout_payload(**kwargs))


class TestCheckoutSummary:
    def test_summary(self, client, make_user, make_product):
        make_user(1)
        product = make_product(price="25.00")
        _add(client, product.id, 2)

        data = client.get("/checkout/", params={"user_id": 1}).json()["data"]

        assert data["currency"] == "USD"
        assert data["totals"]["total"] == "63.99"
        assert data["items"][0]["total"] == "50.00"

    def test_summary_of_empty_cart(self, client, make_user):
        make_user(1)

        resp = client.get("/checkout/", params={"user_id": 1})

        assert resp.status_code == 422
        assert resp.json()["message"] == "Your cart is empty."

    def test_payment_intent_uses_server_total(self, client, make_user, make_product):
        make_user(1)
        _add(client, make_product(price="25.00").id, 2)

        data = client.post("/checkout/payment-intent", params={"user_id": 1}).json()["data"]

        assert data == {"client_secret": "pi_secret_6399", "amount": "63.99"}


class TestPlaceOrder:
    def test_successful_checkout(self, client, db, make_user, make_product, payments):
        make_user(1)
        product = make_product(price="25.00", stock=5)
        _add(client, product.id, 2)

        resp = _checkout(client)

        assert resp.status_code == 201
        body = resp.json()
        assert body["message"] == "Order placed successfully!"
        order = body["data"]["order"]
        assert re.fullmatch(r"ORD-\d{4}-\d{6}", order["order_number"])
        assert order["status"] == "processing"
        assert order["payment_status"] == "paid"
        assert order["payment_id"] == "pi_tok_1"
        assert order["subtotal"] == "50.00"
        assert order["tax_amount"] == "4.00"
        assert order["shipping_amount"] == "9.99"
        assert order["total_amount"] == "63.99"
        assert order["total_items"] == 2
        assert order["items"][0]["product_sku"] == product.sku
        assert order["shipping_address"]["city"] == "Springfield"
        assert payments.captures == [("stripe", "tok_1", Decimal("63.99"))]

        db.expire_all()
        assert db.get(ProductModel, product.id).stock_quantity == 3
        assert db.query(CartItemModel).count() == 0

    def test_paypal_checkout(self, client, make_user, make_product):
        make_user(1)
        _add(client, make_product().id)

        resp = _checkout(client, method="paypal", token="PAY-1")

        assert resp.status_code == 201

    def test_guest_cannot_check_out(self, client, make_product):
        resp = client.post("/checkout/process", params={"session_id": "s"}, json=checkout_payload())
        assert resp.status_code == 401

    def test_unknown_user(self, client):
        resp = _checkout(client, user_id=42)
        assert resp.status_code == 401

    def test_empty_cart(self, client, make_user):
        make_user(1)

        resp = _checkout(client)

        assert resp.status_code == 422
        assert resp.json()["message"] == "Your cart is empty."

    def test_invalid_address(self, client, make_user):
        make_user(1)
        payload = checkout_payload()
        payload["billing_address"]["email"] = "not-an-email"

        resp = client.post("/checkout/process", params={"user_id": 1}, json=payload)

        assert resp.status_code == 422
        assert resp.json()["message"] == "The given data was invalid."
        assert checkout_payload()["billing_address"]["email"] == "jan@example.com"

    def test_payment_failure_rolls_everything_back(self, client, db, make_user, make_product, payments):
        make_user(1)
        product = make_product(stock=5)
        _add(client, product.id, 2)
        payments.succeed = False

        resp = _checkout(client)

        assert resp.status_code == 422
        assert resp.json()["message"] == "Payment failed: Your card was declined."
        db.expire_all()
        assert db.query(OrderModel).count() == 0
        assert db.query(OrderItemModel).count() == 0
        assert db.get(ProductModel, product.id).stock_quantity == 5
        assert db.query(CartItemModel).filter_by(owner_key="user:1").count() == 1

    def test_unexpected_error_is_internal(self, client, db, make_user, make_product, payments):
        make_user(1)
        product = make_product(stock=5)
        _add(client, product.id)

        def boom(*args):
            raise RuntimeError("gateway exploded")

        payments.capture_or_verify = boom

        resp = _checkout(client)

        assert resp.status_code == 500
        assert resp.json()["message"] == "Order processing failed. Please try again."
        db.expire_all()
        assert db.query(OrderModel).count() == 0
        assert db.get(ProductModel, product.id).stock_quantity == 5

    def test_last_unit_goes_to_first_checkout(self, client, db, make_user, make_product):
        make_user(1)
        make_user(2, name="Anna")
        product = make_product(stock=1, name="Last Laptop")
        _add(client, product.id, 1, user_id=1)
        _add(client, product.id, 1, user_id=2)

        first = _checkout(client, user_id=1)
        second = _checkout(client, user_id=2, token="tok_2")

        assert first.status_code == 201
        assert second.status_code == 422
        assert second.json()["message"] == "Only 0 of Last Laptop left in stock."
        db.expire_all()
        assert db.get(ProductModel, product.id).stock_quantity == 0
        assert db.query(OrderModel).count() == 1
        assert db.query(CartItemModel).filter_by(owner_key="user:2").count() == 1

    def test_inactive_product_aborts_checkout(self, client, db, make_user, make_product):
        make_user(1)
        product = make_product()
        _add(client, product.id)
        product.status = "inactive"
        db.commit()

        resp = _checkout(client)

        assert resp.status_code == 422
        assert db.query(OrderModel).count() == 0

    def test_order_snapshot_survives_price_change(self, client, db, make_user, make_product):
        make_user(1)
        product = make_product(price="25.00")
        _add(client, product.id)
        order_id = _checkout(client).json()["data"]["order_id"]

        product.price = 99
        product.name = "Renamed"
        db.commit()

        order = client.get(f"/account/orders/{order_id}", params={"user_id": 1}).json()["data"]
        assert order["items"][0]["unit_price"] == "25.00"
        assert order["items"][0]["product_name"] == "Product 1"
        assert order["total_amount"] == "36.99"

    def test_confirmation_is_queued(self, client, make_user, make_product, monkeypatch):
        sent = []
        monkeypatch.setattr(
            NotificationService,
            "send_order_confirmation",
            staticmethod(lambda *args: sent.append(args)),
        )
        make_user(1)
        _add(client, make_product().id)

        order = _checkout(client).json()["data"]

        assert sent == [(1, order["order_id"], order["order_number"])]

    def test_order_numbers_are_unique(self, client, make_user, make_product):
        make_user(1)
        product = make_product(stock=50)
        numbers = set()
        for i in range(5):
            _add(client, product.id)
            numbers.add(_checkout(client, token=f"tok_{i}").json()["data"]["order_number"])

        assert len(numbers) == 5


class TestOrderNumberCollisions:
    def _taken_number(self, client, db, make_user, make_product):
        make_user(1)
        product = make_product(stock=50)
        _add(client, product.id)
        first = _checkout(client).json()["data"]
        stored = db.get(OrderModel, first["order_id"])
        stored.order_number = "ORD-2026-000001"
        db.commit()
        _add(client, product.id)
        return product

    def test_insert_conflict_draws_a_new_number(self, client, db, make_user, make_product, monkeypatch):
        self._taken_number(client, db, make_user, make_product)
        # sprawdzenie istnienia nie widzi kolizji, dopiero constraint przy insercie
        candidates = iter(["ORD-2026-000001", "ORD-2026-777777"])
        monkeypatch.setattr(checkout_service, "generate_order_number", lambda is_taken: next(candidates))

        resp = _checkout(client, token="tok_2")

        assert resp.status_code == 201
        assert resp.json()["data"]["order_number"] == "ORD-2026-777777"
        assert db.query(OrderModel).count() == 2

    def test_gives_up_after_configured_attempts(self, client, db, make_user, make_product, monkeypatch):
        product = self._taken_number(client, db, make_user, make_product)
        attempts = []

        def always_taken(is_taken):
            attempts.append(1)
            return "ORD-2026-000001"

        monkeypatch.setattr(checkout_service, "generate_order_number", always_taken)

        resp = _checkout(client, token="tok_2")

        assert resp.status_code == 500
        assert resp.json()["message"] == "Could not allocate an order number."
        assert len(attempts) == ORDER_NUMBER_ATTEMPTS
        db.expire_all()
        assert db.query(OrderModel).count() == 1
        assert db.get(ProductModel, product.id).stock_quantity == 49
        assert db.query(CartItemModel).filter_by(owner_key="user:1").count() == 1
