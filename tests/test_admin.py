"""
Administrative tests.

Verifies:
- Ban / unban / activate / deactivate and their effect on live sessions
- Operators manage clients; only superoperators manage operators
- Product catalog management is operator-only
- Audit log listing and filters
- Health endpoint
"""

import pytest

from storefront.models.users import Role

from tests.conftest import PASSWORD


def _login_full(client, email):
    resp = client.post("/auth/login", json={"email": email, "password": PASSWORD})
    return resp, {"Authorization": f"Bearer {resp.json().get('access_token')}"}


# =============================================================================
# PRINCIPAL STATUS
# =============================================================================


class TestBan:

    def test_ban_kills_access_and_refresh(self, client, make_principal, operator_headers):
        target = make_principal("victim@example.com")
        login_resp, headers = _login_full(client, "victim@example.com")
        refresh = login_resp.cookies["refresh_token"]

        resp = client.patch(f"/admin/principals/{target}/ban", headers=operator_headers)
        assert resp.status_code == 200
        assert resp.json()["is_banned"] is True

        assert client.get("/auth/me", headers=headers).status_code == 403
        client.cookies.clear()
        assert client.post("/auth/refresh", headers={"Cookie": f"refresh_token={refresh}"}).status_code == 401
        assert client.post("/auth/login", json={"email": "victim@example.com", "password": PASSWORD}).status_code == 403

    def test_unban_restores_login(self, client, make_principal, operator_headers):
        target = make_principal("victim@example.com")
        client.patch(f"/admin/principals/{target}/ban", headers=operator_headers)
        resp = client.patch(f"/admin/principals/{target}/unban", headers=operator_headers)
        assert resp.json()["is_banned"] is False

        login_resp, _ = _login_full(client, "victim@example.com")
        assert login_resp.status_code == 200

    def test_deactivate_and_activate(self, client, make_principal, operator_headers):
        target = make_principal("sleeper@example.com")
        resp = client.patch(f"/admin/principals/{target}/deactivate", headers=operator_headers)
        assert resp.json()["is_active"] is False
        assert _login_full(client, "sleeper@example.com")[0].status_code == 403

        client.patch(f"/admin/principals/{target}/activate", headers=operator_headers)
        assert _login_full(client, "sleeper@example.com")[0].status_code == 200

    def test_cannot_change_self(self, client, superoperator_headers):
        me = client.get("/auth/me", headers=superoperator_headers).json()
        resp = client.patch(f"/admin/principals/{me['id']}/ban", headers=superoperator_headers)
        assert resp.status_code == 400

    def test_operator_cannot_ban_operator(self, client, make_principal, operator_headers):
        other = make_principal("peer@example.com", role=Role.OPERATOR.value)
        resp = client.patch(f"/admin/principals/{other}/ban", headers=operator_headers)
        assert resp.status_code == 403

    def test_superoperator_can_ban_operator(self, client, make_principal, superoperator_headers):
        other = make_principal("peer@example.com", role=Role.OPERATOR.value)
        resp = client.patch(f"/admin/principals/{other}/ban", headers=superoperator_headers)
        assert resp.status_code == 200

    def test_unknown_principal_is_404(self, client, operator_headers):
        assert client.patch("/admin/principals/9999/ban", headers=operator_headers).status_code == 404

    def test_client_cannot_ban(self, client, make_principal, client_headers):
        other = make_principal("other@example.com")
        assert client.patch(f"/admin/principals/{other}/ban", headers=client_headers).status_code == 403


class TestPrincipalList:

    def test_search_and_role_filter(self, client, make_principal, operator_headers):
        make_principal("alice@example.com")
        make_principal("bob@example.com")

        page = client.get("/admin/principals?q=ALICE", headers=operator_headers).json()
        assert [p["email"] for p in page["items"]] == ["alice@example.com"]

        page = client.get("/admin/principals?role=operator", headers=operator_headers).json()
        assert [p["email"] for p in page["items"]] == ["operator@example.com"]

    def test_response_never_contains_password_hash(self, client, operator_headers):
        page = client.get("/admin/principals", headers=operator_headers).json()
        assert all("password_hash" not in p for p in page["items"])


# =============================================================================
# PRODUCTS
# =============================================================================


class TestProducts:

    def test_public_listing(self, client, make_product):
        make_product(name="Cumin Seeds", stock_count=0)
        make_product(name="Saffron Threads")

        assert client.get("/products").json()["total"] == 2
        in_stock = client.get("/products?in_stock=true").json()
        assert [p["name"] for p in in_stock["items"]] == ["Saffron Threads"]

    def test_operator_creates_product(self, client, operator_headers):
        resp = client.post("/products", json={"name": "Star Anise", "price_cents": 350, "stock_count": 12},
                           headers=operator_headers)
        assert resp.status_code == 201
        assert client.get(f"/products/{resp.json()['id']}").json()["name"] == "Star Anise"

    def test_client_cannot_create_product(self, client, client_headers):
        resp = client.post("/products", json={"name": "Fake", "price_cents": 1, "stock_count": 1},
                           headers=client_headers)
        assert resp.status_code == 403

    @pytest.mark.parametrize("payload", [
        {"name": "Bad", "price_cents": -1, "stock_count": 1},
        {"name": "Bad", "price_cents": 1, "stock_count": -1},
        {"name": "", "price_cents": 1, "stock_count": 1},
    ])
    def test_invalid_product_is_400(self, client, operator_headers, payload):
        assert client.post("/products", json=payload, headers=operator_headers).status_code == 400

    @pytest.mark.parametrize("payload", [
        {"name": None},
        {"price_cents": None},
        {"stock_count": None},
        {"name": None, "price_cents": None},
    ])
    def test_null_for_required_field_is_400(self, client, operator_headers, make_product, payload):
        pid = make_product(name="Cumin Seeds", price_cents=449, stock_count=5)
        resp = client.patch(f"/products/{pid}", json=payload, headers=operator_headers)
        assert resp.status_code == 400

        product = client.get(f"/products/{pid}").json()
        assert (product["name"], product["price_cents"], product["stock_count"]) == ("Cumin Seeds", 449, 5)

    def test_nullable_fields_can_be_cleared(self, client, operator_headers, make_product):
        pid = make_product()
        client.patch(f"/products/{pid}", json={"category": "Spices"}, headers=operator_headers)
        resp = client.patch(f"/products/{pid}", json={"category": None}, headers=operator_headers)
        assert resp.status_code == 200
        assert resp.json()["category"] is None

    def test_price_beyond_column_range_is_400(self, client, operator_headers):
        resp = client.post("/products", json={"name": "Gold Saffron", "price_cents": 2**40, "stock_count": 1},
                           headers=operator_headers)
        assert resp.status_code == 400

    def test_negative_stock_edit_is_400(self, client, operator_headers, make_product):
        pid = make_product()
        resp = client.patch(f"/products/{pid}", json={"stock_count": -5}, headers=operator_headers)
        assert resp.status_code == 400

    def test_unknown_product_is_404(self, client):
        assert client.get("/products/9999").status_code == 404


# =============================================================================
# AUDIT LOG / HEALTH
# =============================================================================


class TestLogs:

    def test_operator_reads_filtered_logs(self, client, make_principal, operator_headers):
        make_principal("someone@example.com")
        client.post("/auth/login", json={"email": "someone@example.com", "password": "wrong-pass"})

        page = client.get("/logs?action=LOGIN&status=fail", headers=operator_headers).json()
        assert page["total"] == 1
        assert page["items"][0]["status"] == "FAIL"

    def test_bad_date_is_400(self, client, operator_headers):
        resp = client.get("/logs?date_from=yesterday", headers=operator_headers)
        assert resp.status_code == 400
        assert resp.json()["message"] == "Invalid date 'yesterday'"


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok", "db": True}
