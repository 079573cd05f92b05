"""Integration tests for the ordering FastAPI routes."""

import inspect

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from ordering.access.profile import Profile, Role
from ordering.api.dependencies import get_lifecycle
from ordering.api.errors import register_error_handlers
from ordering.api.routes import (
    admin_router,
    admin_update_status,
    auth_router,
    farm_router,
    farm_update_status,
    order_router,
    place_order,
    retry_outbox,
)
from ordering.audit.order_event import OrderEvent
from ordering.order.lifecycle import OrderLifecycle
from ordering.order.order import Order
from protean import current_domain

ADMIN = {"X-User-Id": "user-ops", "X-User-Email": "ops@farmlink.uk"}


@pytest.fixture()
def app():
    app = FastAPI()
    app.include_router(farm_router)
    app.include_router(admin_router)
    app.include_router(order_router)
    app.include_router(auth_router)
    register_error_handlers(app)
    return app


@pytest.fixture()
def client(app):
    return TestClient(app)


@pytest.fixture()
def farm_headers(farm_owner_id):
    return {"X-User-Id": farm_owner_id, "X-User-Email": "owner@hillside.example", "X-User-Role": "farm"}


def _status(order):
    return current_domain.repository_for(Order).get(order.id).status


class TestFarmStatusEndpoint:
    def test_confirm_order(self, client, order, farm_headers, outbox_only):
        response = client.post(f"/farm/orders/{order.id}/status", json={"status": "confirmed"}, headers=farm_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["order"] == {"id": str(order.id), "status": "confirmed", "previous_status": "processing"}
        assert data["event_id"]
        assert data["secondary_failures"] == []
        assert _status(order) == "confirmed"

    def test_invalid_status_literal(self, client, order, farm_headers):
        response = client.post(f"/farm/orders/{order.id}/status", json={"status": "shipped"}, headers=farm_headers)

        assert response.status_code == 400
        assert response.json()["detail"] == "Invalid status: shipped"
        assert current_domain.repository_for(OrderEvent).for_order(str(order.id)) == []

    def test_illegal_transition(self, client, make_order, farm, farm_headers):
        delivered = make_order(farm, status="delivered")

        response = client.post(
            f"/farm/orders/{delivered.id}/status", json={"status": "cancelled"}, headers=farm_headers
        )

        assert response.status_code == 400
        assert response.json()["detail"] == "Order is delivered and can no longer change status"

    def test_missing_body_field(self, client, order, farm_headers):
        response = client.post(f"/farm/orders/{order.id}/status", json={}, headers=farm_headers)

        assert response.status_code == 400
        assert response.json()["detail"] == "Invalid request"

    def test_unauthenticated(self, client, order):
        response = client.post(f"/farm/orders/{order.id}/status", json={"status": "confirmed"})

        assert response.status_code == 401
        assert response.json()["detail"] == "Authentication required"

    def test_customer_role_is_forbidden(self, client, order):
        response = client.post(
            f"/farm/orders/{order.id}/status", json={"status": "confirmed"}, headers={"X-User-Id": "user-stranger"}
        )

        assert response.status_code == 403
        assert response.json()["detail"] == "Farm access required"

    def test_farm_role_without_farm(self, client, order):
        response = client.post(
            f"/farm/orders/{order.id}/status",
            json={"status": "confirmed"},
            headers={"X-User-Id": "user-stranger", "X-User-Role": "farm"},
        )

        assert response.status_code == 403
        assert response.json()["detail"] == "You don't have a farm associated with your account"

    def test_demoted_owner_cannot_change_status(self, client, order, farm_owner_id):
        current_domain.repository_for(Profile).add(Profile(user_id=farm_owner_id, role=Role.CUSTOMER.value))

        response = client.post(
            f"/farm/orders/{order.id}/status",
            json={"status": "confirmed"},
            headers={"X-User-Id": farm_owner_id, "X-User-Role": "farm"},
        )

        assert response.status_code == 403
        assert _status(order) == "processing"
        assert current_domain.repository_for(OrderEvent).for_order(str(order.id)) == []

    def test_other_farms_order(self, client, make_order, other_farm, farm, farm_headers):
        foreign = make_order(other_farm)

        response = client.post(f"/farm/orders/{foreign.id}/status", json={"status": "confirmed"}, headers=farm_headers)

        assert response.status_code == 404
        assert response.json()["detail"] == "Order not found or doesn't belong to your farm"
        assert _status(foreign) == "processing"

    def test_unexpected_failure(self, app, client, order, farm_headers):
        class _Broken(OrderLifecycle):
            def change_status(self, *args, **kwargs):
                raise RuntimeError("connection reset")

        app.dependency_overrides[get_lifecycle] = lambda: _Broken()

        response = client.post(f"/farm/orders/{order.id}/status", json={"status": "confirmed"}, headers=farm_headers)

        assert response.status_code == 500
        assert response.json()["detail"] == "Failed to update order status"

    def test_secondary_failure_reported(self, client, make_order, farm, farm_headers, fake_email):
        fake_email.configure(should_succeed=False, failure_reason="Domain not verified")
        shipped = make_order(farm, status="out_for_delivery")

        response = client.post(f"/farm/orders/{shipped.id}/status", json={"status": "delivered"}, headers=farm_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["secondary_failures"][0]["step"] == "notification"
        assert _status(shipped) == "delivered"


class TestFarmOrderDetail:
    def test_detail_includes_timeline(self, client, order, farm_headers, outbox_only):
        client.post(f"/farm/orders/{order.id}/status", json={"status": "confirmed"}, headers=farm_headers)

        response = client.get(f"/farm/orders/{order.id}", headers=farm_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "confirmed"
        assert data["total"] == 3595
        assert len(data["items"]) == 2
        assert [e["status_to"] for e in data["events"]] == ["confirmed"]
        assert "internal_notes" not in data


class TestAdminStatusEndpoint:
    def test_admin_cancels(self, client, order, outbox_only):
        response = client.post(
            f"/admin/orders/{order.id}/status", json={"status": "cancelled", "note": "Farm closed"}, headers=ADMIN
        )

        assert response.status_code == 200
        [event] = current_domain.repository_for(OrderEvent).for_order(str(order.id))
        assert event.actor_role == "admin"
        assert event.note == "Farm closed"

    def test_non_admin_forbidden(self, client, order, farm_headers):
        response = client.post(f"/admin/orders/{order.id}/status", json={"status": "cancelled"}, headers=farm_headers)

        assert response.status_code == 403
        assert response.json()["detail"] == "Admin access required"

    def test_unknown_order(self, client):
        response = client.post("/admin/orders/missing/status", json={"status": "cancelled"}, headers=ADMIN)

        assert response.status_code == 404
        assert response.json()["detail"] == "Order not found"

    def test_note_too_long(self, client, order):
        response = client.post(
            f"/admin/orders/{order.id}/status", json={"status": "cancelled", "note": "x" * 2001}, headers=ADMIN
        )

        assert response.status_code == 400


class TestInternalNotesEndpoint:
    def test_add_and_read_note(self, client, order):
        response = client.post(f"/admin/orders/{order.id}/notes", json={"note": "Gate code 1234"}, headers=ADMIN)

        assert response.status_code == 201
        note_id = response.json()["note_id"]

        detail = client.get(f"/admin/orders/{order.id}", headers=ADMIN).json()
        assert [n["id"] for n in detail["internal_notes"]] == [note_id]
        assert detail["internal_notes"][0]["note"] == "Gate code 1234"

    def test_note_on_unknown_order(self, client):
        response = client.post("/admin/orders/missing/notes", json={"note": "Hello"}, headers=ADMIN)

        assert response.status_code == 404


class TestFarmStatusAdministration:
    def test_suspend_farm(self, client, farm):
        response = client.post(f"/admin/farms/{farm.id}/status", json={"status": "suspended"}, headers=ADMIN)

        assert response.status_code == 200
        assert response.json() == {"status": "suspended"}

    def test_reinstate_requires_suspension(self, client, farm):
        response = client.post(f"/admin/farms/{farm.id}/status", json={"status": "reinstated"}, headers=ADMIN)

        assert response.status_code == 400

    def test_unknown_farm(self, client):
        response = client.post("/admin/farms/missing/status", json={"status": "approved"}, headers=ADMIN)

        assert response.status_code == 404


class TestUserRoleEndpoint:
    def test_change_role(self, client):
        current_domain.repository_for(Profile).add(Profile(user_id="user-jo", role=Role.CUSTOMER.value))

        response = client.put("/admin/users/user-jo/role", json={"role": "farm"}, headers=ADMIN)

        assert response.status_code == 200
        assert response.json() == {"user_id": "user-jo", "role": "farm"}
        assert current_domain.repository_for(Profile).get("user-jo").role == "farm"

    def test_invalid_role(self, client):
        current_domain.repository_for(Profile).add(Profile(user_id="user-jo", role=Role.CUSTOMER.value))

        response = client.put("/admin/users/user-jo/role", json={"role": "superuser"}, headers=ADMIN)

        assert response.status_code == 400
        assert response.json()["detail"] == "Invalid role: superuser"

    def test_unknown_user(self, client):
        response = client.put("/admin/users/user-missing/role", json={"role": "farm"}, headers=ADMIN)

        assert response.status_code == 404

    def test_cannot_demote_self(self, client):
        response = client.put("/admin/users/user-ops/role", json={"role": "customer"}, headers=ADMIN)

        assert response.status_code == 403
        assert response.json()["detail"] == "Cannot change your own admin role"
        assert current_domain.repository_for(Profile).get("user-ops").role == "admin"

    def test_requires_admin(self, client, farm_owner_id):
        response = client.put(
            "/admin/users/user-jo/role", json={"role": "admin"}, headers={"X-User-Id": farm_owner_id}
        )

        assert response.status_code == 403


class TestOutboxEndpoints:
    def test_list_and_retry(self, client, make_order, farm, outbox_only):
        delivered = make_order(farm, status="out_for_delivery")
        client.post(f"/admin/orders/{delivered.id}/status", json={"status": "delivered"}, headers=ADMIN)

        listed = client.get("/admin/emails", params={"status": "pending"}, headers=ADMIN)
        assert listed.status_code == 200
        assert [r["template_name"] for r in listed.json()] == ["order_status_update"]

        from ordering.notification.channel import set_email_channel
        from ordering.notification.channel.fake_email import FakeEmailAdapter

        set_email_channel(FakeEmailAdapter())
        retried = client.post("/admin/emails/retry", headers=ADMIN)

        assert retried.status_code == 200
        assert retried.json() == {"attempted": 1, "sent": 1, "failed": 0}

    def test_list_requires_admin(self, client):
        response = client.get("/admin/emails", headers={"X-User-Id": "user-customer"})

        assert response.status_code == 403


class TestPlaceOrderEndpoint:
    def test_place_order(self, client, farm, outbox_only):
        response = client.post(
            "/orders",
            json={
                "farm_id": str(farm.id),
                "items": [{"product_id": "prod-1", "name": "Ribeye Steak", "price": 1250, "quantity": 2}],
                "delivery_address": "1 Market Street\nYork\nYO1 7HH",
            },
            headers={"X-User-Id": "user-customer", "X-User-Email": "jo@example.com"},
        )

        assert response.status_code == 201
        data = response.json()
        assert data["status"] == "processing"
        assert data["order_number"].startswith("FD-")

        order = current_domain.repository_for(Order).get(data["order_id"])
        assert order.customer_email == "jo@example.com"
        assert order.total == 2995

    def test_below_minimum(self, client, farm):
        response = client.post(
            "/orders",
            json={
                "farm_id": str(farm.id),
                "items": [{"name": "Eggs", "price": 300, "quantity": 1}],
                "delivery_address": "1 Market Street",
            },
            headers={"X-User-Id": "user-customer"},
        )

        assert response.status_code == 400
        assert response.json()["detail"].startswith("Minimum order value is £10.00")


class TestSyncRoleEndpoint:
    def test_allowlisted_admin(self, client):
        response = client.post("/auth/sync-role", headers=ADMIN)

        assert response.status_code == 200
        assert response.json() == {"role": "admin", "redirect_path": "/admin"}

    def test_farm_hint(self, client):
        response = client.post("/auth/sync-role", headers={"X-User-Id": "user-new", "X-User-Role": "farm"})

        assert response.json() == {"role": "farm", "redirect_path": "/farm-portal"}

    def test_defaults_to_customer(self, client):
        response = client.post("/auth/sync-role", headers={"X-User-Id": "user-new"})

        assert response.json() == {"role": "customer", "redirect_path": "/farms"}


class TestEmailSendingRoutes:
    @pytest.mark.parametrize("endpoint", [farm_update_status, admin_update_status, place_order, retry_outbox])
    def test_run_in_threadpool(self, endpoint):
        assert not inspect.iscoroutinefunction(endpoint)
