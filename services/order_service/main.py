from typing import Optional

from shared.config.database import DATABASE_URL, create_engine
from shared.config.schema import initialize
from shared.observability import setup_observability
from .service import OrderService


async def create_order_service(database_url: Optional[str] = None, reset: bool = False) -> OrderService:
    """Start-up: observability, engine, schema. Returns a service that owns the engine."""
    # --- OBSERVABILITY BOOTSTRAP ---
    setup_observability("order_service")

    engine = create_engine(database_url or DATABASE_URL)
    try:
        await initialize(engine, drop_existing=reset)
    except Exception:
        await engine.dispose()
        raise
    return OrderService(engine)
