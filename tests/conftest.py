import pytest_asyncio

from services.order_service.service import OrderService
from shared.config.database import create_engine, create_session_factory
from shared.config.schema import initialize


@pytest_asyncio.fixture
async def engine(tmp_path):
    engine = create_engine(f"sqlite+aiosqlite:///{tmp_path / 'erp.db'}")
    await initialize(engine)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def db(engine):
    """A bare session; repository writes are flushed into it but never committed."""
    async with create_session_factory(engine)() as session:
        yield session


@pytest_asyncio.fixture
async def service(engine):
    yield OrderService(engine)
