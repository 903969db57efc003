"""Cart ledger tests."""

import pytest


class TestCart:

    def test_requires_auth(self, client):
        assert client.get("/cart").status_code == 401

    def test_empty_cart(self, client, client_headers):
        resp = client.get("/cart", headers=client_headers)
        assert resp.status_code == 200
        assert resp.json() == {"items": [], "total_cents": 0}

    def test_upsert_adds_line_with_live_product_data(self, client, client_headers, make_product):
        pid = make_product(name="Cumin Seeds", price_cents=449, stock_count=5)

        resp = client.post("/cart", json={"product_id": pid, "quantity": 2}, headers=client_headers)
        assert resp.status_code == 200
        body = resp.json()
        assert body["total_cents"] == 898
        assert body["items"] == [{
            "product_id": pid, "name": "Cumin Seeds", "quantity": 2,
            "price_cents": 449, "line_total_cents": 898, "image_url": None,
        }]

    def test_upsert_replaces_quantity(self, client, client_headers, make_product):
        pid = make_product()
        client.post("/cart", json={"product_id": pid, "quantity": 2}, headers=client_headers)
        resp = client.post("/cart", json={"product_id": pid, "quantity": 5}, headers=client_headers)

        items = resp.json()["items"]
        assert len(items) == 1
        assert items[0]["quantity"] == 5

    @pytest.mark.parametrize("quantity", [0, -3])
    def test_non_positive_quantity_removes_line(self, client, client_headers, make_product, quantity):
        pid = make_product()
        client.post("/cart", json={"product_id": pid, "quantity": 2}, headers=client_headers)
        resp = client.post("/cart", json={"product_id": pid, "quantity": quantity}, headers=client_headers)
        assert resp.json()["items"] == []

    def test_unknown_product_is_404(self, client, client_headers):
        resp = client.post("/cart", json={"product_id": 424242, "quantity": 1}, headers=client_headers)
        assert resp.status_code == 404

    def test_quantity_may_exceed_stock_until_checkout(self, client, client_headers, make_product):
        pid = make_product(stock_count=1)
        resp = client.post("/cart", json={"product_id": pid, "quantity": 3}, headers=client_headers)
        assert resp.status_code == 200

    def test_remove_single_line(self, client, client_headers, make_product):
        keep = make_product(name="Keep")
        drop = make_product(name="Drop")
        client.post("/cart", json={"product_id": keep, "quantity": 1}, headers=client_headers)
        client.post("/cart", json={"product_id": drop, "quantity": 1}, headers=client_headers)

        assert client.delete(f"/cart/{drop}", headers=client_headers).status_code == 204
        items = client.get("/cart", headers=client_headers).json()["items"]
        assert [i["product_id"] for i in items] == [keep]

    def test_clear(self, client, client_headers, make_product):
        for name in ("A", "B", "C"):
            client.post("/cart", json={"product_id": make_product(name=name), "quantity": 1}, headers=client_headers)

        assert client.delete("/cart", headers=client_headers).status_code == 204
        assert client.get("/cart", headers=client_headers).json()["items"] == []

    def test_carts_are_per_principal(self, client, client_headers, make_principal, login, make_product):
        pid = make_product()
        client.post("/cart", json={"product_id": pid, "quantity": 1}, headers=client_headers)

        make_principal("other@example.com")
        other = login("other@example.com")
        assert client.get("/cart", headers=other).json()["items"] == []

    def test_cart_shows_current_price(self, client, client_headers, operator_headers, make_product):
        pid = make_product(price_cents=1000)
        client.post("/cart", json={"product_id": pid, "quantity": 2}, headers=client_headers)

        client.patch(f"/products/{pid}", json={"price_cents": 1500}, headers=operator_headers)
        assert client.get("/cart", headers=client_headers).json()["total_cents"] == 3000

    @pytest.mark.parametrize("payload", [
        {"product_id": 1, "quantity": 10**20},
        {"product_id": 10**20, "quantity": 1},
        {"product_id": 0, "quantity": 1},
    ])
    def test_out_of_range_values_are_400(self, client, client_headers, make_product, payload):
        make_product()
        resp = client.post("/cart", json=payload, headers=client_headers)
        assert resp.status_code == 400
        assert resp.json()["message"]
        assert client.get("/cart", headers=client_headers).json()["items"] == []

    def test_out_of_range_path_id_is_400(self, client, client_headers):
        resp = client.delete(f"/cart/{10**20}", headers=client_headers)
        assert resp.status_code == 400
