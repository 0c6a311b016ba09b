import structlog
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine

from shared.config.database import Base
from shared.exceptions import SchemaInitializationError

# IMPORTANT: import models so they register with Base
from services.customer_service.models import CustomerModel  # noqa: F401
from services.product_service.models import ProductModel  # noqa: F401
from services.order_service.models import OrderModel, OrderLineModel  # noqa: F401

logger = structlog.get_logger(__name__)


async def initialize(engine: AsyncEngine, drop_existing: bool = False):
    """Create customers, products, orders and order_lines with their constraints.

    Tables that already exist are left alone unless ``drop_existing`` is set,
    in which case everything is dropped and recreated empty. Any failure is
    fatal for the process and raised as ``SchemaInitializationError``.
    """
    try:
        async with engine.begin() as conn:
            if drop_existing:
                await conn.run_sync(Base.metadata.drop_all)
            await conn.run_sync(Base.metadata.create_all)

            if engine.dialect.name == "sqlite":
                result = await conn.execute(text("PRAGMA foreign_keys"))
                if result.scalar() != 1:
                    raise SchemaInitializationError(
                        "SQLite foreign key enforcement is off", operation="schema.initialize"
                    )
    except SchemaInitializationError:
        logger.critical("schema_initialization_failed", reason="foreign_keys_disabled")
        raise
    except Exception as e:
        logger.critical("schema_initialization_failed", error=str(e))
        raise SchemaInitializationError(
            f"Could not initialize the database schema: {e}", operation="schema.initialize"
        ) from e

    logger.info("schema_initialized", tables=sorted(Base.metadata.tables.keys()), dropped=drop_existing)
