from typing import Iterable, List, Optional

import structlog
from sqlalchemy import delete, insert, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from services.customer_service.repository import CustomerRepository
from services.product_service.repository import ProductRepository
from shared.exceptions import DataIntegrityError, storage_operation
from shared.observability.metrics import erp_order_lines_skipped_total

from .models import OrderLineModel, OrderModel
from .schemas import Order, OrderLine, merge_line_quantities

logger = structlog.get_logger(__name__)


class OrderRepository:
    """Orders and their lines, written and read as one unit.

    ``create`` and ``update`` issue several statements inside the caller's
    transaction and never commit or roll it back themselves. When one of
    them fails the error propagates and the caller must roll back;
    ``session_scope`` does so, so an order is never persisted without its
    lines or the other way round.
    """

    @staticmethod
    @storage_operation("order.create")
    async def create(db: AsyncSession, order: Order) -> Order:
        row = OrderModel(customer_id=order.customer.id)
        db.add(row)
        await db.flush()
        await OrderRepository._insert_lines(db, row.id, order.lines)

        order.id = row.id
        return order

    @staticmethod
    @storage_operation("order.get_by_id")
    async def get_by_id(db: AsyncSession, order_id: int) -> Optional[Order]:
        result = await db.execute(select(OrderModel).where(OrderModel.id == order_id))
        row = result.scalars().first()
        if not row:
            return None

        customer = await CustomerRepository.get_by_id(db, row.customer_id)
        if customer is None:
            raise DataIntegrityError(
                f"Order {row.id} references missing customer {row.customer_id}",
                operation="order.get_by_id",
            )
        order = Order(id=row.id, customer=customer)
        order.lines = await OrderRepository._load_lines(db, row.id)
        return order

    @staticmethod
    @storage_operation("order.list_all")
    async def list_all(db: AsyncSession) -> List[Order]:
        result = await db.execute(select(OrderModel).order_by(OrderModel.id))
        orders = []
        for row in result.scalars().all():
            customer = await CustomerRepository.get_by_id(db, row.customer_id)
            if customer is None:
                logger.warning("order_skipped_missing_customer", order_id=row.id, customer_id=row.customer_id)
                continue
            order = Order(id=row.id, customer=customer)
            order.lines = await OrderRepository._load_lines(db, row.id)
            orders.append(order)
        return orders

    @staticmethod
    @storage_operation("order.update")
    async def update(db: AsyncSession, order: Order) -> bool:
        """Point the order at ``order.customer`` and replace its whole line set."""
        result = await db.execute(
            update(OrderModel)
            .where(OrderModel.id == order.id)
            .values(customer_id=order.customer.id)
        )
        if result.rowcount == 0:
            return False

        await db.execute(delete(OrderLineModel).where(OrderLineModel.order_id == order.id))
        await OrderRepository._insert_lines(db, order.id, order.lines)
        return True

    @staticmethod
    @storage_operation("order.delete")
    async def delete(db: AsyncSession, order_id: int) -> bool:
        # order_lines rows go with the ON DELETE CASCADE foreign key
        result = await db.execute(delete(OrderModel).where(OrderModel.id == order_id))
        return result.rowcount > 0

    @staticmethod
    @storage_operation("order.exists_for_customer")
    async def exists_for_customer(db: AsyncSession, customer_id: int) -> bool:
        result = await db.execute(
            select(OrderModel.id).where(OrderModel.customer_id == customer_id).limit(1)
        )
        return result.first() is not None

    @staticmethod
    @storage_operation("order.exists_for_product")
    async def exists_for_product(db: AsyncSession, product_id: int) -> bool:
        result = await db.execute(
            select(OrderLineModel.id).where(OrderLineModel.product_id == product_id).limit(1)
        )
        return result.first() is not None

    @staticmethod
    async def _insert_lines(db: AsyncSession, order_id: int, lines: Iterable[OrderLine]):
        quantities = merge_line_quantities(list(lines))
        if not quantities:
            return
        await db.execute(
            insert(OrderLineModel),
            [
                {"order_id": order_id, "product_id": product_id, "quantity": quantity}
                for product_id, quantity in quantities.items()
            ],
        )

    @staticmethod
    async def _load_lines(db: AsyncSession, order_id: int) -> List[OrderLine]:
        result = await db.execute(
            select(OrderLineModel.product_id, OrderLineModel.quantity)
            .where(OrderLineModel.order_id == order_id)
            .order_by(OrderLineModel.id)
        )
        lines = []
        for product_id, quantity in result.all():
            product = await ProductRepository.get_by_id(db, product_id)
            if product is None:
                # Lenient read: keep the rest of the order, but leave a trace
                erp_order_lines_skipped_total.inc()
                logger.warning("order_line_skipped_missing_product", order_id=order_id, product_id=product_id)
                continue
            lines.append(OrderLine(product=product, quantity=quantity))
        return lines
