"""Shared fixtures: in-memory database, app wired to it, and seed factories."""
import httpx
import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.config.settings import Settings
from app.dependencies import AppContext
from app.main import create_app
from app.models import Asset, Base, PaperAccount, PaperPosition


@pytest.fixture
def settings():
    return Settings(DATABASE_URL="sqlite+aiosqlite://", ENVIRONMENT="test")


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def app(settings, engine, session_factory):
    app = create_app(settings)
    app.state.context = AppContext(settings=settings, engine=engine, session_factory=session_factory)
    return app


@pytest.fixture
async def client(app):
    async with httpx.AsyncClient(base_url="http://test", transport=httpx.ASGITransport(app=app)) as client:
        yield client


@pytest.fixture
def make_account(session_factory):
    async def _make(cash_balance=10_000.0, initial_balance=None, is_active=True, user_id="trader-1"):
        initial = cash_balance if initial_balance is None else initial_balance
        async with session_factory() as session:
            account = PaperAccount(
                user_id=user_id,
                cash_balance=cash_balance,
                initial_balance=initial,
                total_equity=cash_balance,
                total_pnl=0.0,
                is_active=is_active,
            )
            session.add(account)
            await session.commit()
            return account

    return _make


@pytest.fixture
def make_asset(session_factory):
    async def _make(symbol="SPY250117C00100000", name="SPY Jan 2025 100 Call", current_price=None):
        async with session_factory() as session:
            asset = Asset(symbol=symbol, name=name, current_price=current_price, is_active=True)
            session.add(asset)
            await session.commit()
            return asset

    return _make


@pytest.fixture
def make_position(session_factory):
    async def _make(account_id, asset_id, quantity, average_cost, multiplier=100, current_price=None):
        async with session_factory() as session:
            position = PaperPosition(
                paper_account_id=account_id,
                asset_id=asset_id,
                quantity=quantity,
                average_cost=average_cost,
                current_price=average_cost if current_price is None else current_price,
                multiplier=multiplier,
                unrealized_pnl=0.0,
                realized_pnl=0.0,
            )
            session.add(position)
            await session.commit()
            return position

    return _make
