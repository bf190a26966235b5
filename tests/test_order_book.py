"""Tests for resting orders: place, update and cancel."""
import pytest
from fastapi import status

from app.models import PaperAccount

ORDERS = "/api/paper-trading/orders"


def limit_order(account_id, asset_id, **overrides):
    body = {
        "paperAccountId": account_id,
        "assetId": asset_id,
        "orderType": "limit",
        "side": "buy",
        "quantity": 10,
        "limitPrice": 42.5,
    }
    body.update(overrides)
    return body


@pytest.mark.asyncio
async def test_place_order_rests_without_moving_cash(client, session_factory, make_account, make_asset):
    account = await make_account(cash_balance=10_000.0)
    asset = await make_asset("AAPL", "Apple Inc.")

    response = await client.post(ORDERS, json=limit_order(account.id, asset.id))

    assert response.status_code == status.HTTP_201_CREATED
    order = response.json()
    assert order["status"] == "pending"
    assert order["orderType"] == "limit"
    assert order["limitPrice"] == 42.5
    assert order["filledQuantity"] == 0
    assert order["filledPrice"] is None
    async with session_factory() as session:
        assert (await session.get(PaperAccount, account.id)).cash_balance == 10_000.0


@pytest.mark.asyncio
@pytest.mark.parametrize("overrides,code", [
    ({"quantity": None}, "MISSING_REQUIRED_FIELDS"),
    ({"limitPrice": None}, "MISSING_LIMIT_PRICE"),
    ({"orderType": "stop", "limitPrice": None}, "MISSING_STOP_PRICE"),
    ({"orderType": "trailing"}, "INVALID_ORDER_TYPE"),
    ({"side": "short"}, "INVALID_SIDE"),
    ({"quantity": 0}, "INVALID_QUANTITY"),
    ({"marketPrice": 40}, "INVALID_REQUEST_BODY"),
])
async def test_place_order_validation(client, make_account, make_asset, overrides, code):
    account = await make_account()
    asset = await make_asset()

    response = await client.post(ORDERS, json=limit_order(account.id, asset.id, **overrides))

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["code"] == code


@pytest.mark.asyncio
async def test_place_order_checks_account_and_asset(client, make_account, make_asset):
    inactive = await make_account(is_active=False)
    asset = await make_asset()

    response = await client.post(ORDERS, json=limit_order(inactive.id, asset.id))
    assert response.json()["code"] == "ACCOUNT_NOT_ACTIVE"

    active = await make_account(user_id="trader-2")
    response = await client.post(ORDERS, json=limit_order(active.id, 777))
    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json()["code"] == "ASSET_NOT_FOUND"


@pytest.mark.asyncio
async def test_partial_then_full_fill(client, make_account, make_asset):
    account = await make_account()
    asset = await make_asset()
    order = (await client.post(ORDERS, json=limit_order(account.id, asset.id))).json()

    response = await client.put(f"{ORDERS}/{order['id']}", json={
        "status": "partial",
        "filledQuantity": 4,
        "filledPrice": 42.4,
    })
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["status"] == "partial"
    assert response.json()["filledQuantity"] == 4
    assert response.json()["filledAt"] is None

    response = await client.put(f"{ORDERS}/{order['id']}", json={"status": "filled", "filledQuantity": "10"})
    data = response.json()
    assert data["status"] == "filled"
    assert data["filledQuantity"] == 10
    assert data["filledPrice"] == 42.4
    assert data["filledAt"] is not None
    assert data["limitPrice"] == 42.5


@pytest.mark.asyncio
@pytest.mark.parametrize("body,code", [
    ({"filledQuantity": 11}, "FILLED_QUANTITY_EXCEEDS_QUANTITY"),
    ({"filledQuantity": -1}, "INVALID_FILLED_QUANTITY"),
    ({"filledQuantity": "some"}, "INVALID_FILLED_QUANTITY"),
    ({"status": "archived"}, "INVALID_STATUS"),
    ({"filledPrice": -3}, "INVALID_REQUEST_BODY"),
    ({"quantity": 5}, "INVALID_REQUEST_BODY"),
])
async def test_update_order_validation(client, make_account, make_asset, body, code):
    account = await make_account()
    asset = await make_asset()
    order = (await client.post(ORDERS, json=limit_order(account.id, asset.id))).json()

    response = await client.put(f"{ORDERS}/{order['id']}", json=body)

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["code"] == code


@pytest.mark.asyncio
async def test_cancel_order(client, make_account, make_asset):
    account = await make_account()
    asset = await make_asset()
    order = (await client.post(ORDERS, json=limit_order(account.id, asset.id))).json()

    response = await client.delete(f"{ORDERS}/{order['id']}")

    assert response.status_code == status.HTTP_200_OK
    assert response.json()["message"] == "Paper order canceled successfully"
    assert response.json()["order"]["status"] == "canceled"

    # Still on record, just closed
    response = await client.get(f"{ORDERS}/{order['id']}")
    assert response.json()["status"] == "canceled"


@pytest.mark.asyncio
async def test_closed_orders_are_final(client, make_account, make_asset):
    account = await make_account()
    asset = await make_asset()
    order = (await client.post(ORDERS, json=limit_order(account.id, asset.id))).json()
    await client.delete(f"{ORDERS}/{order['id']}")

    response = await client.delete(f"{ORDERS}/{order['id']}")
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["code"] == "ORDER_NOT_OPEN"

    response = await client.put(f"{ORDERS}/{order['id']}", json={"status": "pending"})
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["code"] == "ORDER_NOT_OPEN"


@pytest.mark.asyncio
async def test_unknown_order(client):
    response = await client.put(f"{ORDERS}/9999", json={"status": "filled"})
    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json()["code"] == "ORDER_NOT_FOUND"

    response = await client.delete(f"{ORDERS}/9999")
    assert response.status_code == status.HTTP_404_NOT_FOUND


@pytest.mark.asyncio
async def test_reset_cancels_open_orders(client, make_account, make_asset):
    account = await make_account()
    asset = await make_asset()
    pending = (await client.post(ORDERS, json=limit_order(account.id, asset.id))).json()
    partial = (await client.post(ORDERS, json=limit_order(account.id, asset.id))).json()
    await client.put(f"{ORDERS}/{partial['id']}", json={"status": "partial", "filledQuantity": 2})

    response = await client.post(f"/api/paper-trading/accounts/{account.id}/reset")

    assert response.json()["canceledOrders"] == 2
    for order_id in (pending["id"], partial["id"]):
        assert (await client.get(f"{ORDERS}/{order_id}")).json()["status"] == "canceled"
