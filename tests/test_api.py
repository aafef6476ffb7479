"""Tests for API endpoints"""
from unittest.mock import AsyncMock, Mock, patch

import pytest
from fastapi.testclient import TestClient

from api.index import app
from conftest import PRODUCT_1, VARIANT_1, make_line

AUTH_HEADERS = {"Authorization": "Bearer valid-token"}
ITEM = {"productId": PRODUCT_1, "variantId": VARIANT_1, "quantity": 2}


@pytest.fixture
def client():
    """Test client"""
    return TestClient(app)


@pytest.fixture
def mock_db():
    """Database with a valid token for user-123"""
    db = Mock()
    db.get_user_id_from_token = AsyncMock(
        side_effect=lambda token: "user-123" if token == "valid-token" else None
    )
    db.get_cart_items = AsyncMock(return_value=[])
    db.add_cart_item = AsyncMock()
    db.set_cart_item_quantity = AsyncMock()
    db.delete_cart_item = AsyncMock()
    with patch("storefront.auth.get_database", return_value=db), \
         patch("storefront.routers.cart.get_database", return_value=db):
        yield db


def test_health_check(client):
    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_get_cart_anonymous(client, mock_db):
    response = client.get("/api/cart")

    assert response.status_code == 200
    assert response.json() == {"items": []}
    mock_db.get_cart_items.assert_not_called()


def test_get_cart_invalid_token_is_anonymous(client, mock_db):
    response = client.get("/api/cart", headers={"Authorization": "Bearer expired"})

    assert response.status_code == 200
    assert response.json() == {"items": []}


def test_get_cart(client, mock_db):
    mock_db.get_cart_items.return_value = [make_line(quantity=2, stock=5, is_active=True)]

    response = client.get("/api/cart", headers=AUTH_HEADERS)

    assert response.status_code == 200
    items = response.json()["items"]
    assert items[0]["productId"] == PRODUCT_1
    assert items[0]["quantity"] == 2
    assert items[0]["stock"] == 5
    assert items[0]["isActive"] is True
    mock_db.get_cart_items.assert_awaited_once_with("user-123")


def test_get_cart_storage_failure(client, mock_db):
    mock_db.get_cart_items.side_effect = Exception("connection reset")

    response = client.get("/api/cart", headers=AUTH_HEADERS)

    assert response.status_code == 500
    assert response.json() == {"error": "connection reset"}


def test_add_item_unauthorized(client, mock_db):
    response = client.post("/api/cart", json=ITEM)

    assert response.status_code == 401
    assert response.json() == {"error": "Unauthorized"}
    mock_db.add_cart_item.assert_not_called()


def test_add_item(client, mock_db):
    response = client.post("/api/cart", json=ITEM, headers=AUTH_HEADERS)

    assert response.status_code == 200
    assert response.json() == {"success": True}
    mock_db.add_cart_item.assert_awaited_once_with("user-123", PRODUCT_1, VARIANT_1, 2)


@pytest.mark.parametrize("body", [
    {**ITEM, "productId": "not-a-uuid"},
    {**ITEM, "quantity": 0},
    {**ITEM, "quantity": -1},
    {**ITEM, "quantity": 1.5},
    {"productId": PRODUCT_1, "quantity": 1},
])
def test_add_item_validation(client, mock_db, body):
    response = client.post("/api/cart", json=body, headers=AUTH_HEADERS)

    assert response.status_code == 400
    assert isinstance(response.json()["error"], list)
    mock_db.add_cart_item.assert_not_called()


def test_update_item(client, mock_db):
    response = client.put("/api/cart", json={**ITEM, "quantity": 5}, headers=AUTH_HEADERS)

    assert response.status_code == 200
    mock_db.set_cart_item_quantity.assert_awaited_once_with("user-123", PRODUCT_1, VARIANT_1, 5)


def test_update_item_zero_rejected(client, mock_db):
    response = client.put("/api/cart", json={**ITEM, "quantity": 0}, headers=AUTH_HEADERS)

    assert response.status_code == 400
    mock_db.set_cart_item_quantity.assert_not_called()


def test_update_item_storage_failure(client, mock_db):
    mock_db.set_cart_item_quantity.side_effect = Exception("timeout")

    response = client.put("/api/cart", json=ITEM, headers=AUTH_HEADERS)

    assert response.status_code == 500
    assert response.json()["error"] == "timeout"


def test_delete_item(client, mock_db):
    response = client.delete(
        "/api/cart", params={"productId": PRODUCT_1, "variantId": VARIANT_1}, headers=AUTH_HEADERS
    )

    assert response.status_code == 200
    assert response.json() == {"success": True}
    mock_db.delete_cart_item.assert_awaited_once_with("user-123", PRODUCT_1, VARIANT_1)


def test_delete_item_missing_params(client, mock_db):
    response = client.delete("/api/cart", params={"productId": PRODUCT_1}, headers=AUTH_HEADERS)

    assert response.status_code == 400
    assert response.json() == {"error": "productId and variantId are required"}
    mock_db.delete_cart_item.assert_not_called()


def test_delete_item_unauthorized(client, mock_db):
    response = client.delete("/api/cart", params={"productId": PRODUCT_1, "variantId": VARIANT_1})

    assert response.status_code == 401
