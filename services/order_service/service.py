from decimal import Decimal
from pathlib import Path
from typing import List, Optional

import structlog
from opentelemetry import trace
from sqlalchemy.ext.asyncio import AsyncEngine

from services.customer_service.repository import CustomerRepository
from services.customer_service.schemas import Customer
from services.product_service.repository import ProductRepository
from services.product_service.schemas import Product
from shared.config.database import create_session_factory, session_scope
from shared.exceptions import RemovalResult
from shared.observability.metrics import erp_orders_written_total, erp_removals_blocked_total

from .export import write_report_csv
from .repository import OrderRepository
from .schemas import Order, OrderReport, ReportRow

logger = structlog.get_logger(__name__)
tracer = trace.get_tracer(__name__)


class OrderService:
    """Business rules over the three stores.

    The service owns the engine: every public method opens its own session
    scope, so each logical operation is exactly one transaction. Call
    ``aclose`` when done to release the connection pool.
    """

    def __init__(self, engine: AsyncEngine):
        self._engine = engine
        self._session_factory = create_session_factory(engine)

    async def aclose(self):
        await self._engine.dispose()
        logger.info("database_connection_closed")

    # --- Customers ---
    async def add_customer(self, customer: Customer) -> Customer:
        async with session_scope(self._session_factory) as db:
            return await CustomerRepository.create(db, customer)

    async def update_customer(self, customer: Customer) -> bool:
        async with session_scope(self._session_factory) as db:
            return await CustomerRepository.update(db, customer)

    async def get_customer(self, customer_id: int) -> Optional[Customer]:
        async with session_scope(self._session_factory) as db:
            return await CustomerRepository.get_by_id(db, customer_id)

    async def list_customers(self) -> List[Customer]:
        async with session_scope(self._session_factory) as db:
            return await CustomerRepository.list_all(db)

    async def remove_customer(self, customer_id: int) -> RemovalResult:
        with tracer.start_as_current_span("order_service.remove_customer"):
            async with session_scope(self._session_factory) as db:
                # The foreign key would cascade and silently take the orders with it
                if await OrderRepository.exists_for_customer(db, customer_id):
                    erp_removals_blocked_total.labels(entity="customer").inc()
                    logger.info("removal_blocked", entity="customer", customer_id=customer_id)
                    return RemovalResult.BLOCKED
                deleted = await CustomerRepository.delete(db, customer_id)
            return RemovalResult.DELETED if deleted else RemovalResult.NOT_FOUND

    # --- Products ---
    async def add_product(self, product: Product) -> Product:
        async with session_scope(self._session_factory) as db:
            return await ProductRepository.create(db, product)

    async def update_product(self, product: Product) -> bool:
        async with session_scope(self._session_factory) as db:
            return await ProductRepository.update(db, product)

    async def get_product(self, product_id: int) -> Optional[Product]:
        async with session_scope(self._session_factory) as db:
            return await ProductRepository.get_by_id(db, product_id)

    async def list_products(self) -> List[Product]:
        async with session_scope(self._session_factory) as db:
            return await ProductRepository.list_all(db)

    async def remove_product(self, product_id: int) -> RemovalResult:
        with tracer.start_as_current_span("order_service.remove_product"):
            async with session_scope(self._session_factory) as db:
                if await OrderRepository.exists_for_product(db, product_id):
                    erp_removals_blocked_total.labels(entity="product").inc()
                    logger.info("removal_blocked", entity="product", product_id=product_id)
                    return RemovalResult.BLOCKED
                deleted = await ProductRepository.delete(db, product_id)
            return RemovalResult.DELETED if deleted else RemovalResult.NOT_FOUND

    # --- Orders ---
    # The caller assembles a valid order (customer set, at least one line)
    async def add_order(self, order: Order) -> Order:
        with tracer.start_as_current_span("order_service.add_order"):
            async with session_scope(self._session_factory) as db:
                saved = await OrderRepository.create(db, order)
            erp_orders_written_total.labels(action="create").inc()
            logger.info("order_created", order_id=saved.id, lines=len(saved.lines), total=str(saved.total))
            return saved

    async def update_order(self, order: Order) -> bool:
        with tracer.start_as_current_span("order_service.update_order"):
            async with session_scope(self._session_factory) as db:
                updated = await OrderRepository.update(db, order)
            if updated:
                erp_orders_written_total.labels(action="update").inc()
                logger.info("order_updated", order_id=order.id, lines=len(order.lines), total=str(order.total))
            return updated

    async def get_order(self, order_id: int) -> Optional[Order]:
        async with session_scope(self._session_factory) as db:
            return await OrderRepository.get_by_id(db, order_id)

    async def list_orders(self) -> List[Order]:
        async with session_scope(self._session_factory) as db:
            return await OrderRepository.list_all(db)

    async def remove_order(self, order_id: int) -> RemovalResult:
        async with session_scope(self._session_factory) as db:
            deleted = await OrderRepository.delete(db, order_id)
        return RemovalResult.DELETED if deleted else RemovalResult.NOT_FOUND

    # --- Reporting ---
    async def build_report(self) -> OrderReport:
        """Flatten every line of every order into report rows, plus the grand total."""
        with tracer.start_as_current_span("order_service.build_report"):
            rows = []
            grand_total = Decimal("0")
            for order in await self.list_orders():
                for line in order.lines:
                    rows.append(ReportRow(
                        customer_name=order.customer.name,
                        product_name=line.product.name,
                        quantity=line.quantity,
                        subtotal=line.subtotal,
                    ))
                    grand_total += line.subtotal
            return OrderReport(rows=rows, grand_total=grand_total)

    async def export_report_csv(self, path) -> Path:
        report = await self.build_report()
        written = write_report_csv(report, path)
        logger.info("report_exported", path=str(written), rows=len(report.rows))
        return written
