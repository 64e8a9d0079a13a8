"""
HTTP-level tests through the Flask test client.

Covers authentication and role guards on every protected area, the
login/refresh/logout token flow, vendor approval unlocking product writes,
checkout over HTTP and super-admin user deletion.
"""

import pytest

from storefront.models import AuditLog, Order, Product, RefreshToken, User, Vendor
from storefront.services.audit_service import AuditLogError, AuditLogger

from conftest import PASSWORD, auth_headers


class TestAuthentication:
    @pytest.mark.parametrize(
        "method,path",
        [
            ("get", "/auth/me"),
            ("get", "/auth/cart"),
            ("post", "/auth/orders"),
            ("get", "/auth/wishlist"),
            ("post", "/vendors/apply"),
            ("get", "/super-admin/vendors"),
            ("get", "/super-admin/users"),
            ("post", "/api/v1/products"),
        ],
    )
    def test_protected_routes_require_token(self, client, db_session, method, path):
        response = getattr(client, method)(path)
        assert response.status_code == 401
        assert response.get_json()["error"] == "Authentication required"

    def test_garbage_token(self, client, db_session):
        response = client.get("/auth/me", headers=auth_headers("not-a-jwt"))
        assert response.status_code == 401

    def test_token_for_deactivated_user(self, client, db_session, customer, token_for):
        headers = token_for(customer)
        customer.is_active = False
        db_session.commit()

        assert client.get("/auth/me", headers=headers).status_code == 401

    def test_register_login_refresh_logout(self, client, db_session, setup_roles):
        response = client.post(
            "/register",
            json={"name": "Ana", "email": "ana@shop.test", "password": PASSWORD},
        )
        assert response.status_code == 201
        assert [r["slug"] for r in response.get_json()["user"]["roles"]] == ["user"]

        response = client.post("/login", json={"email": "ana@shop.test", "password": PASSWORD})
        assert response.status_code == 200
        body = response.get_json()
        assert body["expires_in"] == 15 * 60
        cookie = client.get_cookie("refresh_token")
        assert cookie is not None and cookie.http_only
        assert cookie.value == body["refresh_token"]

        me = client.get("/auth/me", headers=auth_headers(body["access_token"]))
        assert me.status_code == 200
        assert me.get_json()["user"]["email"] == "ana@shop.test"

        refreshed = client.post("/refresh")
        assert refreshed.status_code == 200
        assert client.get("/auth/me", headers=auth_headers(refreshed.get_json()["access_token"])).status_code == 200

        assert client.post("/logout").status_code == 200
        assert client.get_cookie("refresh_token") is None
        assert db_session.query(RefreshToken).count() == 0

        stale = client.post("/refresh", json={"refresh_token": body["refresh_token"]})
        assert stale.status_code == 401

    def test_login_rejects_bad_password(self, client, customer):
        response = client.post("/login", json={"email": customer.email, "password": "Wrong123!"})
        assert response.status_code == 401
        assert response.get_json()["error"] == "Invalid credentials"

    def test_register_weak_password(self, client, setup_roles):
        response = client.post("/register", json={"email": "weak@shop.test", "password": "short"})
        assert response.status_code == 400

    def test_register_duplicate_email(self, client, customer):
        response = client.post("/register", json={"email": customer.email, "password": PASSWORD})
        assert response.status_code == 409

    def test_logout_without_token_is_idempotent(self, client, db_session):
        assert client.post("/logout").status_code == 200


class TestPublicCatalog:
    def test_list_and_get(self, client, make_product):
        live = make_product("Live")
        hidden = make_product("Hidden", status="inactive")

        listing = client.get("/api/v1/products").get_json()
        assert [p["id"] for p in listing["items"]] == [live.id]

        assert client.get(f"/api/v1/products/{live.id}").status_code == 200
        assert client.get(f"/api/v1/products/{hidden.id}").status_code == 404

    def test_categories(self, client, category):
        body = client.get("/categories").get_json()
        assert [c["name"] for c in body["items"]] == ["Laptop"]

    def test_health(self, client, setup_roles):
        response = client.get("/health")
        body = response.get_json()
        assert response.status_code == 200
        assert body["status"] == "healthy"
        assert body["checks"]["database"]["status"] == "healthy"

    def test_health_degraded_without_roles(self, client, db_session):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.get_json()["status"] == "degraded"


class TestProductWrites:
    def test_plain_user_cannot_create(self, client, customer, category, token_for):
        response = client.post(
            "/api/v1/products",
            json={"name": "X", "price_cents": 100, "stock": 1, "category_id": category.id},
            headers=token_for(customer),
        )
        assert response.status_code == 403
        assert response.get_json() == {"error": "Access denied", "required_roles": ["admin"]}

    def test_seller_creates_updates_deletes(self, client, db_session, seller, category, token_for):
        headers = token_for(seller)

        created = client.post(
            "/api/v1/products",
            json={"name": "Phone", "price_cents": "49999", "stock": 3, "category_id": category.id},
            headers=headers,
        )
        assert created.status_code == 201
        product_id = created.get_json()["data"]["id"]
        assert created.get_json()["data"]["price_cents"] == 49999

        updated = client.put(f"/api/v1/products/{product_id}", json={"stock": 9}, headers=headers)
        assert updated.status_code == 200
        assert updated.get_json()["data"]["stock"] == 9

        assert client.delete(f"/api/v1/products/{product_id}", headers=headers).status_code == 200
        assert db_session.get(Product, product_id) is None

    def test_invalid_payloads(self, client, seller, category, token_for):
        headers = token_for(seller)

        missing = client.post("/api/v1/products", json={"name": "X"}, headers=headers)
        assert missing.status_code == 400

        negative = client.post(
            "/api/v1/products",
            json={"name": "X", "price_cents": -5, "stock": 1, "category_id": category.id},
            headers=headers,
        )
        assert negative.status_code == 400

        smuggled = client.post(
            "/api/v1/products",
            json={"name": "X", "price_cents": 5, "stock": 1, "category_id": category.id, "user_id": 1},
            headers=headers,
        )
        assert smuggled.status_code == 400

    def test_other_sellers_product_is_forbidden(self, client, make_user, make_product, token_for):
        product = make_product("Theirs")
        rival = make_user("rival@shop.test", roles_=("user", "admin"))

        response = client.delete(f"/api/v1/products/{product.id}", headers=token_for(rival))
        assert response.status_code == 403


class TestVendorApproval:
    def test_approval_unlocks_product_creation(self, client, db_session, customer, superadmin, category, token_for):
        user_headers = token_for(customer)

        applied = client.post("/vendors/apply", json={"shop_name": "Ana's Shop"}, headers=user_headers)
        assert applied.status_code == 201
        vendor_id = applied.get_json()["data"]["id"]

        payload = {"name": "Lamp", "price_cents": 1500, "stock": 2, "category_id": category.id}
        assert client.post("/api/v1/products", json=payload, headers=user_headers).status_code == 403

        admin_headers = token_for(superadmin)
        pending = client.get("/super-admin/vendors?status=pending", headers=admin_headers).get_json()
        assert [v["id"] for v in pending["items"]] == [vendor_id]

        approved = client.put(f"/super-admin/vendors/{vendor_id}/approve", headers=admin_headers)
        assert approved.status_code == 200
        assert approved.get_json()["old_status"] == "pending"
        assert approved.get_json()["new_status"] == "active"

        # Roles are read per request, so the token issued before approval now passes.
        created = client.post("/api/v1/products", json=payload, headers=user_headers)
        assert created.status_code == 201
        assert created.get_json()["data"]["vendor_id"] == vendor_id

        again = client.put(f"/super-admin/vendors/{vendor_id}/approve", headers=admin_headers)
        assert again.status_code == 409

        suspended = client.put(f"/super-admin/vendors/{vendor_id}/suspend", headers=admin_headers)
        assert suspended.status_code == 200
        assert client.post("/api/v1/products", json=payload, headers=user_headers).status_code == 403

    def test_admin_role_cannot_review_vendors(self, client, seller, token_for):
        response = client.get("/super-admin/vendors", headers=token_for(seller))
        assert response.status_code == 403

    def test_audit_failure_is_reported_not_fatal(self, client, db_session, customer, superadmin, token_for, monkeypatch):
        vendor = Vendor(user_id=customer.id, shop_name="Ana's Shop", status="pending")
        db_session.add(vendor)
        db_session.commit()

        def broken_append(self, **kwargs):
            raise AuditLogError("audit store unavailable")

        monkeypatch.setattr(AuditLogger, "append", broken_append)

        response = client.put(f"/super-admin/vendors/{vendor.id}/approve", headers=token_for(superadmin))

        assert response.status_code == 200
        body = response.get_json()
        assert body["message"] == "Vendor status updated but audit log failed"
        assert "audit store unavailable" in body["warning"]
        db_session.expire_all()
        assert db_session.get(Vendor, vendor.id).status == "active"
        assert db_session.query(AuditLog).count() == 0

    def test_generic_status_route_validates(self, client, db_session, customer, superadmin, token_for):
        vendor = Vendor(user_id=customer.id, shop_name="Ana's Shop", status="pending")
        db_session.add(vendor)
        db_session.commit()

        response = client.put(
            f"/super-admin/vendors/{vendor.id}/status",
            json={"status": "approved"},
            headers=token_for(superadmin),
        )
        assert response.status_code == 400


class TestCheckoutOverHttp:
    def test_cart_to_order(self, client, db_session, customer, make_product, token_for):
        headers = token_for(customer)
        product = make_product("Mug", price_cents=800, stock=4)

        added = client.post("/auth/cart", json={"product_id": product.id, "quantity": 3}, headers=headers)
        assert added.status_code == 200

        placed = client.post(
            "/auth/orders",
            json={"shipping_address": "12 Market Street", "payment_method": "cod"},
            headers=headers,
        )
        assert placed.status_code == 201
        order = placed.get_json()["data"]
        assert order["total_amount_cents"] == 2400
        assert order["status"] == "pending"

        db_session.expire_all()
        assert db_session.get(Product, product.id).stock == 1
        assert client.get("/auth/cart", headers=headers).get_json()["data"]["items"] == []

        listed = client.get("/auth/orders", headers=headers).get_json()
        assert [o["id"] for o in listed["items"]] == [order["id"]]

        cancelled = client.put(f"/auth/orders/{order['id']}/cancel", headers=headers)
        assert cancelled.status_code == 200
        assert cancelled.get_json()["data"]["status"] == "cancelled"

    def test_insufficient_stock_is_conflict(self, client, db_session, customer, make_product, fill_cart, token_for):
        product = make_product("Rare", stock=1)
        fill_cart(customer, [(product, 2)])

        response = client.post(
            "/auth/orders",
            json={"shipping_address": "12 Market Street", "payment_method": "cod"},
            headers=token_for(customer),
        )

        assert response.status_code == 409
        assert response.get_json()["error"] == "Not enough stock for Rare"
        assert db_session.query(Order).count() == 0

    def test_invalid_quantity(self, client, customer, make_product, token_for):
        product = make_product("Mug")
        response = client.post(
            "/auth/cart",
            json={"product_id": product.id, "quantity": 0},
            headers=token_for(customer),
        )
        assert response.status_code == 400

    def test_order_status_route_is_role_guarded(self, client, customer, seller, make_product, fill_cart, token_for):
        fill_cart(customer, [(make_product("Mug"), 1)])
        placed = client.post(
            "/auth/orders",
            json={"shipping_address": "12 Market Street", "payment_method": "cod"},
            headers=token_for(customer),
        ).get_json()["data"]

        path = f"/auth/orders/{placed['id']}/status"
        assert client.put(path, json={"status": "shipped"}, headers=token_for(customer)).status_code == 403

        shipped = client.put(path, json={"status": "shipped"}, headers=token_for(seller))
        assert shipped.status_code == 200
        assert shipped.get_json()["data"]["status"] == "shipped"


class TestWishlistRoutes:
    def test_import(self, client, customer, make_product, token_for):
        headers = token_for(customer)
        a = make_product("A")
        b = make_product("B")

        response = client.post(
            "/auth/wishlist/import",
            json=[{"product_id": a.id}, {"product_id": b.id}, {"product_id": 99999}],
            headers=headers,
        )
        assert response.status_code == 200
        assert response.get_json()["count"] == 2

        duplicate = client.post("/auth/wishlist", json={"product_id": a.id}, headers=headers)
        assert duplicate.status_code == 409


class TestUserAdministration:
    def test_delete_user_cascades(self, client, db_session, customer, superadmin, make_product, fill_cart, token_for):
        customer_id = customer.id
        fill_cart(customer, [(make_product("Mug"), 1)])
        client.post(
            "/auth/orders",
            json={"shipping_address": "12 Market Street", "payment_method": "cod"},
            headers=token_for(customer),
        )

        response = client.delete(f"/super-admin/users/{customer_id}", headers=token_for(superadmin))

        assert response.status_code == 200
        db_session.expire_all()
        assert db_session.get(User, customer_id) is None
        assert db_session.query(Order).filter_by(user_id=customer_id).count() == 0

    def test_cannot_delete_self(self, client, superadmin, token_for):
        response = client.delete(f"/super-admin/users/{superadmin.id}", headers=token_for(superadmin))
        assert response.status_code == 403

    def test_unknown_user(self, client, superadmin, token_for):
        response = client.delete("/super-admin/users/4242", headers=token_for(superadmin))
        assert response.status_code == 404

    def test_seller_delete_removes_products(self, client, db_session, seller, superadmin, make_product, token_for):
        product_id = make_product("Mug").id

        response = client.delete(f"/super-admin/users/{seller.id}", headers=token_for(superadmin))

        assert response.status_code == 200
        db_session.expire_all()
        assert db_session.get(Product, product_id) is None


class TestMalformedBodies:
    """Wrong JSON types answer 400 with a message, never a 500."""

    def test_register_with_array_body(self, client, setup_roles):
        response = client.post("/register", json=[1])
        assert response.status_code == 400
        assert response.get_json()["error"] == "Invalid JSON payload"

    def test_register_with_numeric_password(self, client, setup_roles):
        response = client.post("/register", json={"email": "ana@shop.test", "password": 12345678})
        assert response.status_code == 400
        assert response.get_json()["error"] == "Password must be a string"

    def test_login_with_non_text_fields(self, client, customer):
        assert client.post("/login", json=["x"]).status_code == 400
        assert client.post("/login", json={"email": 42, "password": PASSWORD}).status_code == 400
        assert client.post("/login", json={"email": customer.email, "password": 12345678}).status_code == 400

    def test_refresh_with_non_text_token(self, client, db_session):
        assert client.post("/refresh", json={"refresh_token": 42}).status_code == 401
        assert client.post("/logout", json={"refresh_token": ["x"]}).status_code == 200

    def test_order_with_numeric_address(self, client, db_session, customer, make_product, fill_cart, token_for):
        fill_cart(customer, [(make_product("Mug"), 1)])

        response = client.post(
            "/auth/orders",
            json={"shipping_address": 123, "payment_method": "cod"},
            headers=token_for(customer),
        )

        assert response.status_code == 400
        assert response.get_json()["error"] == "shipping_address must be a string"
        assert db_session.query(Order).count() == 0

    def test_vendor_apply_with_list_shop_name(self, client, db_session, customer, token_for):
        response = client.post("/vendors/apply", json={"shop_name": ["x"]}, headers=token_for(customer))

        assert response.status_code == 400
        assert response.get_json()["error"] == "shop_name must be a string"
        assert db_session.query(Vendor).count() == 0

    @pytest.mark.parametrize(
        "method,path",
        [
            ("post", "/auth/cart"),
            ("post", "/auth/orders"),
            ("post", "/vendors/apply"),
        ],
    )
    def test_array_bodies_on_user_routes(self, client, customer, token_for, method, path):
        response = getattr(client, method)(path, json=[1, 2], headers=token_for(customer))
        assert response.status_code == 400

    def test_array_bodies_on_admin_routes(self, client, db_session, customer, superadmin, token_for):
        vendor = Vendor(user_id=customer.id, shop_name="Ana's Shop", status="pending")
        db_session.add(vendor)
        db_session.commit()
        headers = token_for(superadmin)

        assert client.put(f"/super-admin/vendors/{vendor.id}/status", json=["active"], headers=headers).status_code == 400
        assert client.put("/auth/orders/1/status", json=["shipped"], headers=headers).status_code == 400


class TestVendorAuditLogging:
    def test_audit_failure_is_logged_by_route(self, client, db_session, customer, token_for, monkeypatch, caplog):
        def broken_append(self, **kwargs):
            raise AuditLogError("audit store unavailable")

        monkeypatch.setattr(AuditLogger, "append", broken_append)

        with caplog.at_level("WARNING", logger="storefront"):
            response = client.post("/vendors/apply", json={"shop_name": "Ana's Shop"}, headers=token_for(customer))

        assert response.status_code == 201
        assert "application stored but audit log failed" in caplog.text
