import pytest
from datetime import datetime
from decimal import Decimal
from types import SimpleNamespace
from fastapi.testclient import TestClient
from unittest.mock import patch, AsyncMock
from uuid import uuid4

from mealorder.main import app
from mealorder.core.errors import InvalidTransitionError, OrderLimitReached, ShopNotFound
from mealorder.core.security import Role
from mealorder.models.order import OrderStatus, PaymentMethod, PaymentStatus
from mealorder.models.shop import CustomizationType

CUSTOMER = {"X-User-Id": "cust-1", "X-User-Role": "customer", "X-User-Name": "Demo Customer"}
MERCHANT = {"X-User-Id": "merch-1", "X-User-Role": "merchant", "X-User-Name": "Demo Owner"}
PENDING_MERCHANT = {**MERCHANT, "X-User-Approved": "false"}
ADMIN = {"X-User-Id": "admin-1", "X-User-Role": "admin"}


@pytest.fixture
def client():
    return TestClient(app)


def fake_order(**overrides):
    """Order-shaped object with prefetched items, as the services return."""
    item = SimpleNamespace(
        position=0,
        meal_type_id=uuid4(), meal_type_name="Chicken Rice", meal_type_price=Decimal("350"),
        curries=[SimpleNamespace(curry_id=uuid4(), curry_name="Dhal Curry")],
        customizations=[SimpleNamespace(
            customization_id=uuid4(), name="Extra Rice", price=Decimal("30"),
            type=CustomizationType.EXTRA, quantity=1,
        )],
        subtotal=Decimal("380"),
        special_instructions=None,
    )
    values = dict(
        id=uuid4(), order_number="ORD1234560001",
        customer_id="cust-1", customer_name="Demo Customer", customer_phone=None,
        merchant_id="merch-1", merchant_name="Spice Garden", shop_id=uuid4(),
        items=[item], total=Decimal("380"),
        status=OrderStatus.PENDING, payment_status=PaymentStatus.PENDING, payment_method=PaymentMethod.CASH,
        notes=None, confirmed_at=None, preparing_at=None, ready_at=None, completed_at=None, cancelled_at=None,
        estimated_pickup_time=None, cancellation_reason=None, rating=None, review=None,
        created_at=datetime(2024, 1, 1, 12, 0),
    )
    values.update(overrides)
    return SimpleNamespace(**values)


def order_body():
    return {
        "shop_id": str(uuid4()),
        "items": [{
            "meal_type_id": str(uuid4()),
            "curry_ids": [str(uuid4())],
            "customizations": [{"customization_id": str(uuid4()), "quantity": 1}],
            "subtotal": "380",
        }],
        "total": "380",
        "payment_method": "cash",
    }


class TestOrderRoutes:
    def test_create_order_success(self, client):
        """Test order creation returns 201 with the order number"""
        with patch('mealorder.api.v1.orders.create_order', new_callable=AsyncMock) as mock_create:
            mock_create.return_value = fake_order()

            response = client.post("/api/v1/orders/", json=order_body(), headers=CUSTOMER)

            assert response.status_code == 201
            data = response.json()["data"]
            assert data["order_number"] == "ORD1234560001"
            assert data["status"] == "pending"
            assert data["items"][0]["meal_type"]["name"] == "Chicken Rice"

            caller, _, candidate = mock_create.call_args.args
            assert caller.user_id == "cust-1"
            assert caller.role == Role.CUSTOMER
            assert candidate.total == Decimal("380")
            assert len(candidate.items[0].curry_ids) == 1

    def test_create_order_requires_identity(self, client):
        response = client.post("/api/v1/orders/", json=order_body())
        assert response.status_code == 401
        assert response.json()["success"] is False

    def test_merchant_cannot_place_orders(self, client):
        response = client.post("/api/v1/orders/", json=order_body(), headers=MERCHANT)
        assert response.status_code == 403
        assert response.json()["error"]["code"] == "forbidden"

    def test_admission_rejection_is_reported(self, client):
        with patch('mealorder.api.v1.orders.create_order', new_callable=AsyncMock) as mock_create:
            mock_create.side_effect = OrderLimitReached()

            response = client.post("/api/v1/orders/", json=order_body(), headers=CUSTOMER)

            assert response.status_code == 400
            assert response.json()["error"]["code"] == "order_limit_reached"

    def test_unknown_shop_is_404(self, client):
        with patch('mealorder.api.v1.orders.create_order', new_callable=AsyncMock) as mock_create:
            mock_create.side_effect = ShopNotFound()
            response = client.post("/api/v1/orders/", json=order_body(), headers=CUSTOMER)
            assert response.status_code == 404

    def test_malformed_body_is_422(self, client):
        response = client.post("/api/v1/orders/", json={"items": []}, headers=CUSTOMER)
        assert response.status_code == 422
        assert response.json()["error"]["code"] == "validation_error"

    def test_get_order_success(self, client):
        """Test order retrieval"""
        order = fake_order()
        with patch('mealorder.api.v1.orders.get_order_for_caller', new_callable=AsyncMock) as mock_get:
            mock_get.return_value = order
            response = client.get(f"/api/v1/orders/{order.id}", headers=CUSTOMER)
            assert response.status_code == 200
            assert response.json()["data"]["id"] == str(order.id)

    def test_my_orders_pagination(self, client):
        with patch('mealorder.api.v1.orders.list_customer_orders', new_callable=AsyncMock) as mock_list:
            mock_list.return_value = ([fake_order()], {"page": 1, "limit": 10, "total": 1, "pages": 1})
            response = client.get("/api/v1/orders/my-orders", headers=CUSTOMER)
            assert response.status_code == 200
            data = response.json()["data"]
            assert len(data["orders"]) == 1
            assert data["pagination"]["total"] == 1

    def test_merchant_orders_status_filter(self, client):
        with patch('mealorder.api.v1.orders.list_merchant_orders', new_callable=AsyncMock) as mock_list:
            mock_list.return_value = ([], {"page": 1, "limit": 20, "total": 0, "pages": 0})
            response = client.get("/api/v1/orders/merchant/orders?status=ready", headers=MERCHANT)
            assert response.status_code == 200
            assert mock_list.call_args.kwargs["status"] == "ready"

    def test_unapproved_merchant_forbidden(self, client):
        response = client.get("/api/v1/orders/merchant/orders", headers=PENDING_MERCHANT)
        assert response.status_code == 403

    def test_update_status(self, client):
        order = fake_order(status=OrderStatus.CONFIRMED)
        with patch('mealorder.api.v1.orders.transition', new_callable=AsyncMock) as mock_transition:
            mock_transition.return_value = order
            response = client.put(
                f"/api/v1/orders/{order.id}/status",
                json={"status": "confirmed", "estimated_pickup_time": "2030-05-01T12:30:00"},
                headers=MERCHANT,
            )
            assert response.status_code == 200
            assert response.json()["data"]["status"] == "confirmed"
            assert mock_transition.call_args.args[2] == OrderStatus.CONFIRMED
            assert mock_transition.call_args.kwargs["estimated_pickup_time"] == datetime(2030, 5, 1, 12, 30)

    def test_invalid_transition_is_400(self, client):
        with patch('mealorder.api.v1.orders.transition', new_callable=AsyncMock) as mock_transition:
            mock_transition.side_effect = InvalidTransitionError("pending", "ready")
            response = client.put(f"/api/v1/orders/{uuid4()}/status", json={"status": "ready"}, headers=ADMIN)
            assert response.status_code == 400
            body = response.json()
            assert body["error"]["code"] == "invalid_transition"
            assert "pending" in body["error"]["message"]

    def test_customer_cannot_update_status(self, client):
        response = client.put(f"/api/v1/orders/{uuid4()}/status", json={"status": "cancelled"}, headers=CUSTOMER)
        assert response.status_code == 403

    def test_review(self, client):
        order = fake_order(status=OrderStatus.COMPLETED, rating=5, review="Great")
        with patch('mealorder.api.v1.orders.submit_review', new_callable=AsyncMock) as mock_review:
            mock_review.return_value = order
            response = client.put(f"/api/v1/orders/{order.id}/review", json={"rating": 5, "review": "Great"}, headers=CUSTOMER)
            assert response.status_code == 200
            assert response.json()["data"]["rating"] == 5


class TestShopRoutes:
    def test_update_settings_passes_only_given_fields(self, client):
        shop = SimpleNamespace(id=uuid4())
        updated = SimpleNamespace(
            id=shop.id, merchant_id="merch-1", name="Spice Garden", location="", phone="", description=None,
            is_open=True, accepting_orders=True, closing_time=None, order_limit=30, orders_received=0,
            total_orders=0, total_revenue=Decimal("0"), rating=0.0, review_count=0, created_at=None,
        )
        with patch('mealorder.api.v1.shops.shop_directory') as mock_directory:
            mock_directory.get_shop_by_merchant = AsyncMock(return_value=shop)
            mock_directory.update_settings = AsyncMock(return_value=updated)

            response = client.put(
                "/api/v1/shops/merchant/settings",
                json={"is_open": True, "order_limit": 30},
                headers=MERCHANT,
            )

            assert response.status_code == 200
            assert response.json()["data"]["order_limit"] == 30
            mock_directory.update_settings.assert_called_once_with(shop.id, {"is_open": True, "order_limit": 30})

    def test_reset_daily_orders_requires_admin(self, client):
        response = client.post("/api/v1/shops/reset-daily-orders", headers=MERCHANT)
        assert response.status_code == 403

    def test_reset_daily_orders(self, client):
        with patch('mealorder.api.v1.shops.shop_directory') as mock_directory:
            mock_directory.reset_daily_counters = AsyncMock(return_value=3)
            response = client.post("/api/v1/shops/reset-daily-orders", headers=ADMIN)
            assert response.status_code == 200
            assert response.json()["data"]["shops_reset"] == 3
