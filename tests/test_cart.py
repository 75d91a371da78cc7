"""Cart API and cart engine behaviour."""

import pytest

from app.data.models import CartItemModel, WishlistItemModel
from app.domain.errors import CartBusy
from app.domain.owner import Owner
from app.services.cart_service import CartService
from app.services.wishlist_service import WishlistService


def _add(client, product_id, quantity=1, options=None, **owner):
    params = owner or {"session_id": "sess-1"}
    return client.post(
        "/cart/items",
        params=params,
        json={"product_id": product_id, "quantity": quantity, "options": options},
    )


class TestAddItem:
    def test_guest_adds_product(self, client, make_product):
        product = make_product(price="25.00")

        resp = _add(client, product.id, 2)

        assert resp.status_code == 200
        body = resp.json()
        assert body["status"] == "success"
        assert body["message"] == "Product added to cart successfully!"
        assert body["data"]["item"]["quantity"] == 2
        assert body["data"]["item"]["price"] == "25.00"
        assert body["data"]["cart_count"] == 2

    def test_same_product_merges_into_one_line(self, client, db, make_product):
        product = make_product()

        _add(client, product.id, 1)
        _add(client, product.id, 2)

        lines = db.query(CartItemModel).filter_by(owner_key="guest:sess-1").all()
        assert len(lines) == 1
        assert lines[0].quantity == 3

    def test_different_options_are_separate_lines(self, client, db, make_product):
        product = make_product()

        _add(client, product.id, 1, {"size": "M", "color": "red"})
        _add(client, product.id, 1, {"color": "red", "size": "M"})
        _add(client, product.id, 1, {"size": "L"})

        lines = db.query(CartItemModel).filter_by(owner_key="guest:sess-1").all()
        assert sorted(line.quantity for line in lines) == [1, 2]

    def test_sale_price_is_captured(self, client, make_product):
        product = make_product(price="30.00", sale_price="20.00")

        resp = _add(client, product.id, 1)

        assert resp.json()["data"]["item"]["price"] == "20.00"

    def test_quantity_above_stock_is_rejected(self, client, make_product):
        product = make_product(stock=3)

        resp = _add(client, product.id, 4)

        assert resp.status_code == 422
        assert resp.json()["status"] == "error"
        assert resp.json()["data"] == {"available": 3}

    def test_existing_quantity_counts_against_stock(self, client, make_product):
        product = make_product(stock=3)
        _add(client, product.id, 2)

        resp = _add(client, product.id, 2)

        assert resp.status_code == 422
        assert resp.json()["message"] == "Only 3 items available in stock."

    def test_unmanaged_stock_has_no_limit(self, client, make_product):
        product = make_product(stock=0, manage_stock=False)

        resp = _add(client, product.id, 50)

        assert resp.status_code == 200

    def test_inactive_product_is_unavailable(self, client, make_product):
        product = make_product(status="inactive")

        resp = _add(client, product.id)

        assert resp.status_code == 422
        assert resp.json()["message"] == "This product is currently out of stock."

    def test_unknown_product(self, client, make_product):
        resp = _add(client, 999)
        assert resp.status_code == 404

    def test_invalid_quantity(self, client, make_product):
        product = make_product()

        resp = _add(client, product.id, 0)

        assert resp.status_code == 422
        assert resp.json()["message"] == "The given data was invalid."

    def test_owner_is_required(self, client, make_product):
        product = make_product()

        resp = client.post("/cart/items", json={"product_id": product.id})

        assert resp.status_code == 401
        assert resp.json()["status"] == "error"

    def test_busy_cart_returns_conflict(self, client, lock_service, make_product):
        product = make_product()
        lock_service.held.add("guest:sess-1")

        resp = _add(client, product.id)

        assert resp.status_code == 409

    def test_concurrent_insert_merges_into_winner(self, db, lock_service, make_product):
        product = make_product()
        owner = Owner.guest("race")
        svc = CartService(db, lock_service)
        svc.add_item(owner, product.id, 1)

        # druga transakcja "nie widzi" istniejacej linii i probuje insertu
        real_lookup = svc.repo.get_cart_item
        calls = {"n": 0}

        def stale_lookup(*args):
            calls["n"] += 1
            if calls["n"] == 1:
                return None
            return real_lookup(*args)

        svc.repo.get_cart_item = stale_lookup
        result = svc.add_item(owner, product.id, 2)

        assert result["item"]["quantity"] == 3
        assert db.query(CartItemModel).filter_by(owner_key=owner.key).count() == 1


class TestCartQueries:
    def test_cart_totals(self, client, make_product):
        product = make_product(price="25.00")
        _add(client, product.id, 2)

        data = client.get("/cart/", params={"session_id": "sess-1"}).json()["data"]

        assert data["item_count"] == 2
        assert data["cart_total"] == "50.00"
        assert data["totals"] == {
            "subtotal": "50.00",
            "tax": "4.00",
            "shipping": "9.99",
            "discount": "0.00",
            "total": "63.99",
        }

    def test_count(self, client, make_product):
        a, b = make_product(), make_product()
        _add(client, a.id, 2)
        _add(client, b.id, 1)

        resp = client.get("/cart/count", params={"session_id": "sess-1"})

        assert resp.json()["data"] == {"cart_count": 3}

    def test_carts_are_isolated_per_owner(self, client, make_product):
        product = make_product()
        _add(client, product.id, 1, session_id="a")

        data = client.get("/cart/", params={"session_id": "b"}).json()["data"]

        assert data["items"] == []


class TestUpdateAndRemove:
    def _line_id(self, client):
        return client.get("/cart/", params={"session_id": "sess-1"}).json()["data"]["items"][0]["id"]

    def test_update_quantity(self, client, make_product):
        product = make_product()
        _add(client, product.id)

        resp = client.put(
            f"/cart/items/{self._line_id(client)}",
            params={"session_id": "sess-1"},
            json={"quantity": 4},
        )

        assert resp.status_code == 200
        assert resp.json()["message"] == "Cart updated successfully!"
        assert resp.json()["data"]["item_count"] == 4

    def test_update_refreshes_price(self, client, db, make_product):
        product = make_product(price="25.00")
        _add(client, product.id)
        product.price = 30
        db.commit()

        resp = client.put(
            f"/cart/items/{self._line_id(client)}",
            params={"session_id": "sess-1"},
            json={"quantity": 1},
        )

        assert resp.json()["data"]["items"][0]["price"] == "30.00"

    def test_update_above_stock(self, client, make_product):
        product = make_product(stock=2)
        _add(client, product.id)

        resp = client.put(
            f"/cart/items/{self._line_id(client)}",
            params={"session_id": "sess-1"},
            json={"quantity": 5},
        )

        assert resp.status_code == 422

    def test_foreign_line_is_forbidden(self, client, make_product):
        product = make_product()
        _add(client, product.id)
        line_id = self._line_id(client)

        put = client.put(f"/cart/items/{line_id}", params={"session_id": "other"}, json={"quantity": 2})
        delete = client.delete(f"/cart/items/{line_id}", params={"session_id": "other"})

        assert put.status_code == 403
        assert delete.status_code == 403

    def test_missing_line(self, client):
        resp = client.delete("/cart/items/12345", params={"session_id": "sess-1"})
        assert resp.status_code == 404

    def test_remove_item(self, client, make_product):
        product = make_product()
        _add(client, product.id)

        resp = client.delete(f"/cart/items/{self._line_id(client)}", params={"session_id": "sess-1"})

        assert resp.json()["message"] == "Item removed from cart successfully!"
        assert resp.json()["data"]["items"] == []

    def test_clear(self, client, make_product):
        _add(client, make_product().id)
        _add(client, make_product().id)

        resp = client.delete("/cart/", params={"session_id": "sess-1"})

        assert resp.json()["message"] == "Cart cleared successfully!"
        assert resp.json()["data"]["item_count"] == 0


class TestMerge:
    def test_guest_cart_merges_into_user_cart(self, client, db, make_user, make_product):
        make_user(1)
        a, b = make_product(), make_product()
        _add(client, a.id, 2, session_id="guest-1")
        _add(client, b.id, 1, session_id="guest-1")
        _add(client, a.id, 1, user_id=1)

        resp = client.post("/cart/merge", params={"user_id": 1}, json={"session_id": "guest-1"})

        assert resp.status_code == 200
        items = {i["product_id"]: i["quantity"] for i in resp.json()["data"]["items"]}
        assert items == {a.id: 3, b.id: 1}
        assert db.query(CartItemModel).filter_by(owner_key="guest:guest-1").count() == 0

    def test_merge_is_idempotent(self, client, make_user, make_product):
        make_user(1)
        a = make_product()
        _add(client, a.id, 2, session_id="guest-1")

        first = client.post("/cart/merge", params={"user_id": 1}, json={"session_id": "guest-1"})
        second = client.post("/cart/merge", params={"user_id": 1}, json={"session_id": "guest-1"})

        assert first.json()["data"]["item_count"] == 2
        assert second.json()["data"]["item_count"] == 2

    def test_merge_requires_user(self, client):
        resp = client.post("/cart/merge", params={"session_id": "x"}, json={"session_id": "guest-1"})
        assert resp.status_code == 401

    def test_merge_also_moves_wishlist(self, client, make_user, make_product):
        make_user(1)
        a = make_product()
        client.post("/wishlist/items", params={"session_id": "guest-1"}, json={"product_id": a.id})

        client.post("/cart/merge", params={"user_id": 1}, json={"session_id": "guest-1"})

        resp = client.get("/wishlist/count", params={"user_id": 1})
        assert resp.json()["data"] == {"wishlist_count": 1}

    def test_merged_line_takes_current_price(self, client, db, make_user, make_product):
        make_user(1)
        product = make_product(price="25.00")
        _add(client, product.id, 1, user_id=1)
        _add(client, product.id, 1, session_id="guest-1")
        product.price = 30
        db.commit()

        resp = client.post("/cart/merge", params={"user_id": 1}, json={"session_id": "guest-1"})

        line = resp.json()["data"]["items"][0]
        assert line["quantity"] == 2
        assert line["price"] == "30.00"

    def test_wishlist_merge_conflict_rolls_back(self, db, lock_service, make_product):
        product = make_product()
        user, guest = Owner.user(1), Owner.guest("guest-1")
        db.add_all(
            [
                WishlistItemModel(owner_key=user.key, product_id=product.id),
                WishlistItemModel(owner_key=guest.key, product_id=product.id),
            ]
        )
        db.commit()
        svc = WishlistService(db, CartService(db, lock_service))
        # wiersz usera dodany rownolegle, niewidoczny dla sprawdzenia duplikatu
        svc.repo.find = lambda owner_key, product_id: None

        with pytest.raises(CartBusy):
            svc.merge_guest_into(user, guest)

        db.expire_all()
        assert db.query(WishlistItemModel).filter_by(owner_key=guest.key).count() == 1
        assert lock_service.held == set()
