"""Tests for order history, position listing and asset endpoints."""
import pytest
from fastapi import status

ORDERS = "/api/paper-trading/orders"


async def buy(client, account_id, asset_id, quantity=1, market_price=50):
    response = await client.post(f"{ORDERS}/execute", json={
        "paperAccountId": account_id,
        "assetId": asset_id,
        "orderType": "market",
        "side": "buy",
        "quantity": quantity,
        "marketPrice": market_price,
    })
    assert response.status_code == status.HTTP_201_CREATED
    return response.json()


@pytest.mark.asyncio
async def test_list_orders_newest_first_with_filters(client, make_account, make_asset):
    account = await make_account(cash_balance=100_000.0)
    other = await make_account(cash_balance=100_000.0, user_id="other")
    asset = await make_asset("AAPL", "Apple Inc.")

    first = await buy(client, account.id, asset.id)
    second = await buy(client, account.id, asset.id)
    await buy(client, other.id, asset.id)

    response = await client.get(ORDERS, params={"paperAccountId": account.id})
    assert response.status_code == status.HTTP_200_OK
    ids = [order["id"] for order in response.json()]
    assert ids == [second["order"]["id"], first["order"]["id"]]

    response = await client.get(ORDERS, params={"paperAccountId": account.id, "status": "pending"})
    assert response.json() == []

    response = await client.get(ORDERS, params={"side": "buy", "limit": 500})
    assert len(response.json()) == 3


@pytest.mark.asyncio
async def test_list_orders_rejects_unknown_status(client):
    response = await client.get(ORDERS, params={"status": "archived"})

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["code"] == "INVALID_STATUS"


@pytest.mark.asyncio
async def test_get_order(client, make_account, make_asset):
    account = await make_account(cash_balance=100_000.0)
    asset = await make_asset("AAPL", "Apple Inc.")
    placed = await buy(client, account.id, asset.id, quantity=3)

    response = await client.get(f"{ORDERS}/{placed['order']['id']}")
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["quantity"] == 3
    assert response.json()["side"] == "buy"

    response = await client.get(f"{ORDERS}/9999")
    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json()["code"] == "ORDER_NOT_FOUND"


@pytest.mark.asyncio
async def test_list_positions_for_account(client, make_account, make_asset):
    account = await make_account(cash_balance=100_000.0)
    aapl = await make_asset("AAPL", "Apple Inc.")
    msft = await make_asset("MSFT", "Microsoft Corp.")
    await buy(client, account.id, aapl.id, quantity=2)
    await buy(client, account.id, msft.id, quantity=5)

    response = await client.get("/api/paper-trading/positions", params={"paperAccountId": account.id})

    assert response.status_code == status.HTTP_200_OK
    positions = response.json()
    assert {p["assetId"]: p["quantity"] for p in positions} == {aapl.id: 2, msft.id: 5}
    assert all(p["paperAccountId"] == account.id for p in positions)


@pytest.mark.asyncio
async def test_create_and_fetch_asset(client):
    response = await client.post("/api/assets", json={"symbol": "qqq", "name": "Invesco QQQ", "currentPrice": 480.5})

    assert response.status_code == status.HTTP_201_CREATED
    asset = response.json()
    assert asset["symbol"] == "QQQ"
    assert asset["currentPrice"] == 480.5

    response = await client.get(f"/api/assets/{asset['id']}")
    assert response.json()["name"] == "Invesco QQQ"

    response = await client.get("/api/assets", params={"symbol": "QQQ"})
    assert [a["id"] for a in response.json()] == [asset["id"]]


@pytest.mark.asyncio
async def test_duplicate_symbol_conflicts(client):
    await client.post("/api/assets", json={"symbol": "QQQ", "name": "Invesco QQQ"})
    response = await client.post("/api/assets", json={"symbol": "QQQ", "name": "Again"})

    assert response.status_code == status.HTTP_409_CONFLICT
    assert response.json()["code"] == "DUPLICATE_SYMBOL"


@pytest.mark.asyncio
async def test_missing_asset(client):
    response = await client.get("/api/assets/12345")

    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json()["code"] == "ASSET_NOT_FOUND"


@pytest.mark.asyncio
async def test_asset_body_is_validated(client):
    response = await client.post("/api/assets", json={"name": "No symbol"})

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["code"] == "INVALID_REQUEST_BODY"
