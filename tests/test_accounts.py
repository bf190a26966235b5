"""Tests for paper account endpoints."""
from datetime import UTC, datetime, timedelta

import pytest
from fastapi import status
from sqlalchemy import select

from app.models import OrderSide, OrderStatus, OrderType, PaperOrder, PaperPosition
from app.services.paper_trading.accounts import count_wins_and_losses

BASE = "/api/paper-trading/accounts"


@pytest.mark.asyncio
async def test_initialize_account(client):
    response = await client.post(f"{BASE}/initialize", json={"userId": "trader-9", "initialBalance": 25_000})

    assert response.status_code == status.HTTP_201_CREATED
    data = response.json()
    assert data["message"] == "Paper trading account initialized successfully"
    account = data["account"]
    assert account["userId"] == "trader-9"
    assert account["cashBalance"] == 25_000
    assert account["initialBalance"] == 25_000
    assert account["totalEquity"] == 25_000
    assert account["totalPnl"] == 0
    assert account["isActive"] is True


@pytest.mark.asyncio
@pytest.mark.parametrize("balance", [999, 10_000_001, "lots", -5])
async def test_initialize_rejects_out_of_range_balance(client, balance):
    response = await client.post(f"{BASE}/initialize", json={"userId": "trader-9", "initialBalance": balance})

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["code"] == "INVALID_INITIAL_BALANCE"


@pytest.mark.asyncio
async def test_initialize_requires_fields(client):
    response = await client.post(f"{BASE}/initialize", json={"userId": "trader-9"})

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["code"] == "MISSING_REQUIRED_FIELDS"


@pytest.mark.asyncio
async def test_one_active_account_per_user(client):
    first = await client.post(f"{BASE}/initialize", json={"userId": "trader-9", "initialBalance": 5_000})
    second = await client.post(f"{BASE}/initialize", json={"userId": "trader-9", "initialBalance": 5_000})

    assert first.status_code == status.HTTP_201_CREATED
    assert second.status_code == status.HTTP_400_BAD_REQUEST
    assert second.json()["code"] == "ACCOUNT_ALREADY_EXISTS"

    # Deactivating frees the user to open another
    account_id = first.json()["account"]["id"]
    await client.patch(f"{BASE}/{account_id}", json={"isActive": False})
    third = await client.post(f"{BASE}/initialize", json={"userId": "trader-9", "initialBalance": 5_000})
    assert third.status_code == status.HTTP_201_CREATED


@pytest.mark.asyncio
async def test_list_and_get_accounts(client, make_account):
    mine = await make_account(user_id="alice")
    await make_account(user_id="bob")

    response = await client.get(BASE, params={"userId": "alice"})
    assert response.status_code == status.HTTP_200_OK
    assert [a["id"] for a in response.json()] == [mine.id]

    response = await client.get(f"{BASE}/{mine.id}")
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["userId"] == "alice"


@pytest.mark.asyncio
async def test_get_missing_account(client):
    response = await client.get(f"{BASE}/404")

    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json()["code"] == "ACCOUNT_NOT_FOUND"


@pytest.mark.asyncio
async def test_non_numeric_account_id(client):
    response = await client.get(f"{BASE}/abc")

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["code"] == "INVALID_PARAMETER"


@pytest.mark.asyncio
async def test_deactivate_account(client, make_account):
    account = await make_account()

    response = await client.patch(f"{BASE}/{account.id}", json={"isActive": False})

    assert response.status_code == status.HTTP_200_OK
    assert response.json()["isActive"] is False


@pytest.mark.asyncio
async def test_reset_restores_balances(client, session_factory, make_account, make_asset, make_position):
    account = await make_account(cash_balance=4_000.0, initial_balance=10_000.0)
    asset = await make_asset()
    await make_position(account.id, asset.id, quantity=3, average_cost=5.0)
    async with session_factory() as session:
        session.add_all([
            PaperOrder(paper_account_id=account.id, asset_id=asset.id, order_type=OrderType.LIMIT,
                       side=OrderSide.BUY, quantity=1, limit_price=1.0, status=OrderStatus.PENDING),
            PaperOrder(paper_account_id=account.id, asset_id=asset.id, order_type=OrderType.MARKET,
                       side=OrderSide.BUY, quantity=1, filled_quantity=1, filled_price=5.0,
                       status=OrderStatus.FILLED),
        ])
        await session.commit()

    response = await client.post(f"{BASE}/{account.id}/reset")

    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["deletedPositions"] == 1
    assert data["canceledOrders"] == 1
    assert data["account"]["cashBalance"] == 10_000
    assert data["account"]["totalEquity"] == 10_000
    assert data["account"]["totalPnl"] == 0

    async with session_factory() as session:
        statuses = (await session.execute(select(PaperOrder.status).order_by(PaperOrder.id))).scalars().all()
    assert statuses == [OrderStatus.CANCELED, OrderStatus.FILLED]


@pytest.mark.asyncio
async def test_portfolio_summary(client, make_account, make_asset, make_position):
    account = await make_account(cash_balance=9_000.0, initial_balance=10_000.0)
    call = await make_asset("SPY250117C00100000", "SPY 100 Call")
    stock = await make_asset("AAPL", "Apple Inc.")
    await make_position(account.id, call.id, quantity=2, average_cost=4.0, current_price=5.0)
    await make_position(account.id, stock.id, quantity=10, average_cost=50.0, current_price=45.0, multiplier=1)

    response = await client.get(f"{BASE}/{account.id}/portfolio")

    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    by_symbol = {p["symbol"]: p for p in data["positions"]}
    assert by_symbol["SPY250117C00100000"]["marketValue"] == pytest.approx(1_000.0)
    assert by_symbol["SPY250117C00100000"]["percentageReturn"] == pytest.approx(25.0)
    assert by_symbol["AAPL"]["marketValue"] == pytest.approx(450.0)
    assert by_symbol["AAPL"]["percentageReturn"] == pytest.approx(-10.0)

    summary = data["summary"]
    assert summary["totalPositionValue"] == pytest.approx(1_450.0)
    assert summary["totalCashBalance"] == 9_000.0
    assert summary["totalEquity"] == pytest.approx(10_450.0)
    assert summary["percentageReturn"] == pytest.approx(4.5)
    assert summary["numberOfPositions"] == 2


def filled(asset_id, side, quantity, price, created_at=None, account_id=1):
    order = PaperOrder(
        paper_account_id=account_id,
        asset_id=asset_id,
        order_type=OrderType.MARKET,
        side=side,
        quantity=quantity,
        filled_quantity=quantity,
        filled_price=price,
        status=OrderStatus.FILLED,
    )
    if created_at is not None:
        order.created_at = created_at
    return order


def test_sells_are_scored_against_average_buy():
    orders = [
        filled(1, OrderSide.BUY, 10, 50.0),
        filled(1, OrderSide.BUY, 10, 60.0),
        filled(1, OrderSide.SELL, 5, 56.0),   # above 55 average
        filled(1, OrderSide.SELL, 5, 54.0),
        filled(1, OrderSide.SELL, 5, 55.0),   # flat, not scored
        filled(2, OrderSide.SELL, 1, 10.0),   # never bought
    ]

    assert count_wins_and_losses(orders) == (1, 1)


@pytest.fixture
async def traded_account(session_factory, make_account, make_asset):
    account = await make_account(cash_balance=9_000.0, initial_balance=10_000.0)
    aapl = await make_asset("AAPL", "Apple Inc.")
    msft = await make_asset("MSFT", "Microsoft Corp.")
    now = datetime.now(UTC)

    async with session_factory() as session:
        session.add_all([
            filled(aapl.id, OrderSide.BUY, 10, 50.0, now - timedelta(days=3), account.id),
            filled(aapl.id, OrderSide.SELL, 5, 55.0, now - timedelta(days=2, hours=1), account.id),
            filled(msft.id, OrderSide.BUY, 2, 100.0, now - timedelta(days=2), account.id),
            filled(msft.id, OrderSide.SELL, 2, 90.0, now - timedelta(days=1), account.id),
            PaperOrder(paper_account_id=account.id, asset_id=aapl.id, order_type=OrderType.LIMIT,
                       side=OrderSide.BUY, quantity=3, limit_price=45.0, status=OrderStatus.PENDING,
                       created_at=now),
            PaperPosition(paper_account_id=account.id, asset_id=aapl.id, quantity=5, average_cost=50.0,
                          current_price=52.0, multiplier=1, unrealized_pnl=10.0, realized_pnl=25.0),
        ])
        await session.commit()

    return account


@pytest.mark.asyncio
async def test_history_summary(client, traded_account):
    response = await client.get(f"{BASE}/{traded_account.id}/history")

    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["account"]["id"] == traded_account.id
    assert data["pagination"] == {"limit": 50, "offset": 0, "total": 5}

    first = data["orders"][0]
    assert first["status"] == "pending"
    assert first["symbol"] == "AAPL"
    assert first["name"] == "Apple Inc."
    assert [o["symbol"] for o in data["orders"][1:]] == ["MSFT", "MSFT", "AAPL", "AAPL"]

    assert data["pnlSummary"] == {
        "totalRealizedPnl": 25.0,
        "totalUnrealizedPnl": 10.0,
        "totalPnl": 35.0,
        "totalTrades": 4,
        "winningTrades": 1,
        "losingTrades": 1,
        "winRate": 50.0,
        "totalCommission": 2.0,
        "netPnl": 33.0,
    }


@pytest.mark.asyncio
async def test_history_filters_and_pagination(client, traded_account):
    url = f"{BASE}/{traded_account.id}/history"

    response = await client.get(url, params={"status": "filled", "side": "sell"})
    assert response.json()["pagination"]["total"] == 2
    assert {o["side"] for o in response.json()["orders"]} == {"sell"}

    since = (datetime.now(UTC) - timedelta(hours=36)).isoformat()
    response = await client.get(url, params={"startDate": since})
    assert response.json()["pagination"]["total"] == 2

    until = (datetime.now(UTC) - timedelta(hours=60)).isoformat()
    response = await client.get(url, params={"endDate": until})
    assert [o["side"] for o in response.json()["orders"]] == ["buy"]

    response = await client.get(url, params={"limit": 2, "offset": 1})
    data = response.json()
    assert len(data["orders"]) == 2
    assert data["pagination"] == {"limit": 2, "offset": 1, "total": 5}

    response = await client.get(url, params={"limit": 1000})
    assert response.json()["pagination"]["limit"] == 200


@pytest.mark.asyncio
@pytest.mark.parametrize("params,code", [
    ({"status": "archived"}, "INVALID_STATUS"),
    ({"side": "hold"}, "INVALID_SIDE"),
    ({"startDate": "last tuesday"}, "INVALID_PARAMETER"),
])
async def test_history_rejects_bad_filters(client, make_account, params, code):
    account = await make_account()

    response = await client.get(f"{BASE}/{account.id}/history", params=params)

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["code"] == code


@pytest.mark.asyncio
async def test_history_for_missing_account(client):
    response = await client.get(f"{BASE}/404/history")

    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json()["code"] == "ACCOUNT_NOT_FOUND"
