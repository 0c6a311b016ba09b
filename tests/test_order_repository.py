"""Tests for the order store and its replace-all line protocol."""

from decimal import Decimal

import pytest
from prometheus_client import REGISTRY
from sqlalchemy import func, insert, select
from sqlalchemy.exc import IntegrityError

from factories import make_customer, make_product
from services.customer_service.repository import CustomerRepository
from services.order_service.models import OrderLineModel
from services.order_service.repository import OrderRepository
from services.order_service.schemas import Order
from services.product_service.repository import ProductRepository
from services.product_service.schemas import Product
from shared.exceptions import DataIntegrityError, StorageFailure


async def count_lines(db, order_id):
    result = await db.execute(
        select(func.count()).select_from(OrderLineModel).where(OrderLineModel.order_id == order_id)
    )
    return result.scalar()


async def seed(db):
    ana = await CustomerRepository.create(db, make_customer("Ana", "ana@x.com"))
    widget = await ProductRepository.create(db, make_product("Widget", "9.99"))
    gadget = await ProductRepository.create(db, make_product("Gadget", "15.00"))
    return ana, widget, gadget


class TestCreateOrder:
    """Tests for OrderRepository.create and the read back."""

    @pytest.mark.asyncio
    async def test_total_is_sum_of_quantity_times_price(self, db):
        ana, widget, gadget = await seed(db)
        order = Order(customer=ana)
        order.add_line(widget, 2)
        order.add_line(gadget, 3)

        saved = await OrderRepository.create(db, order)

        assert saved.id > 0
        assert saved.total == 2 * Decimal("9.99") + 3 * Decimal("15.00")
        fetched = await OrderRepository.get_by_id(db, saved.id)
        assert fetched.customer == ana
        assert fetched.total == saved.total
        assert [(l.product.name, l.quantity) for l in fetched.lines] == [("Widget", 2), ("Gadget", 3)]

    @pytest.mark.asyncio
    async def test_repeated_product_accumulates_into_one_row(self, db):
        ana, widget, _ = await seed(db)
        order = Order(customer=ana)
        order.add_line(widget, 1)
        order.add_line(widget, 4)

        saved = await OrderRepository.create(db, order)

        assert len(saved.lines) == 1
        assert await count_lines(db, saved.id) == 1
        fetched = await OrderRepository.get_by_id(db, saved.id)
        assert fetched.lines[0].quantity == 5

    @pytest.mark.asyncio
    async def test_failed_create_leaves_the_transaction_to_the_caller(self, db):
        """Earlier writes in the same session survive until the caller rolls back."""
        ana, _, _ = await seed(db)
        order = Order(customer=ana)
        order.add_line(Product(id=9999, name="Ghost", price=Decimal("1.00")), 1)

        with pytest.raises(StorageFailure):
            await OrderRepository.create(db, order)

        assert await CustomerRepository.get_by_id(db, ana.id) == ana

        await db.rollback()
        assert await OrderRepository.list_all(db) == []
        assert await CustomerRepository.list_all(db) == []

    @pytest.mark.asyncio
    async def test_missing_order_returns_none(self, db):
        assert await OrderRepository.get_by_id(db, 31337) is None


class TestUpdateOrder:
    """Tests for the replace-all update."""

    @pytest.mark.asyncio
    async def test_update_is_idempotent(self, db):
        ana, widget, gadget = await seed(db)
        order = Order(customer=ana)
        order.add_line(widget, 1)
        saved = await OrderRepository.create(db, order)

        edited = Order(id=saved.id, customer=ana)
        edited.add_line(gadget, 2)
        edited.add_line(widget, 7)
        assert await OrderRepository.update(db, edited) is True
        assert await OrderRepository.update(db, edited) is True

        assert await count_lines(db, saved.id) == 2
        fetched = await OrderRepository.get_by_id(db, saved.id)
        assert [(l.product.id, l.quantity) for l in fetched.lines] == [(gadget.id, 2), (widget.id, 7)]

    @pytest.mark.asyncio
    async def test_update_can_move_order_to_another_customer(self, db):
        ana, widget, _ = await seed(db)
        bia = await CustomerRepository.create(db, make_customer("Bia", "bia@x.com"))
        order = Order(customer=ana)
        order.add_line(widget, 1)
        saved = await OrderRepository.create(db, order)

        saved.customer = bia
        assert await OrderRepository.update(db, saved) is True

        assert (await OrderRepository.get_by_id(db, saved.id)).customer == bia

    @pytest.mark.asyncio
    async def test_update_unknown_order_writes_nothing(self, db):
        ana, widget, _ = await seed(db)
        ghost = Order(id=404, customer=ana)
        ghost.add_line(widget, 1)

        assert await OrderRepository.update(db, ghost) is False
        assert await count_lines(db, 404) == 0


class TestDeleteOrder:
    """Tests for OrderRepository.delete."""

    @pytest.mark.asyncio
    async def test_delete_cascades_to_lines(self, db):
        ana, widget, gadget = await seed(db)
        order = Order(customer=ana)
        order.add_line(widget, 1)
        order.add_line(gadget, 1)
        saved = await OrderRepository.create(db, order)
        assert await count_lines(db, saved.id) == 2

        assert await OrderRepository.delete(db, saved.id) is True

        assert await count_lines(db, saved.id) == 0
        assert await OrderRepository.get_by_id(db, saved.id) is None
        assert await OrderRepository.delete(db, saved.id) is False


class TestReferenceQueries:
    """Tests for the existence queries used by the removal vetoes."""

    @pytest.mark.asyncio
    async def test_exists_for_customer_and_product(self, db):
        ana, widget, gadget = await seed(db)
        bia = await CustomerRepository.create(db, make_customer("Bia", "bia@x.com"))
        order = Order(customer=ana)
        order.add_line(widget, 1)
        await OrderRepository.create(db, order)

        assert await OrderRepository.exists_for_customer(db, ana.id) is True
        assert await OrderRepository.exists_for_customer(db, bia.id) is False
        assert await OrderRepository.exists_for_product(db, widget.id) is True
        assert await OrderRepository.exists_for_product(db, gadget.id) is False


class TestTolerantReads:
    """Unresolvable references on read."""

    @pytest.mark.asyncio
    async def test_line_with_unresolved_product_is_skipped_and_counted(self, db, monkeypatch):
        ana, widget, gadget = await seed(db)
        order = Order(customer=ana)
        order.add_line(widget, 1)
        order.add_line(gadget, 2)
        saved = await OrderRepository.create(db, order)

        original = ProductRepository.get_by_id

        async def without_gadget(session, product_id):
            if product_id == gadget.id:
                return None
            return await original(session, product_id)

        monkeypatch.setattr(ProductRepository, "get_by_id", staticmethod(without_gadget))
        before = REGISTRY.get_sample_value("erp_order_lines_skipped_total") or 0

        fetched = await OrderRepository.get_by_id(db, saved.id)

        assert [l.product.name for l in fetched.lines] == ["Widget"]
        assert fetched.total == Decimal("9.99")
        assert REGISTRY.get_sample_value("erp_order_lines_skipped_total") == before + 1

    @pytest.mark.asyncio
    async def test_missing_customer_fails_single_read_and_is_dropped_from_list(self, db, monkeypatch):
        ana, widget, _ = await seed(db)
        order = Order(customer=ana)
        order.add_line(widget, 1)
        saved = await OrderRepository.create(db, order)

        async def no_customer(session, customer_id):
            return None

        monkeypatch.setattr(CustomerRepository, "get_by_id", staticmethod(no_customer))

        with pytest.raises(DataIntegrityError):
            await OrderRepository.get_by_id(db, saved.id)
        assert await OrderRepository.list_all(db) == []


class TestSchemaConstraints:
    """Constraints enforced by the backend itself."""

    @pytest.mark.asyncio
    async def test_duplicate_order_product_row_is_rejected(self, db):
        ana, widget, _ = await seed(db)
        order = Order(customer=ana)
        order.add_line(widget, 1)
        saved = await OrderRepository.create(db, order)

        with pytest.raises(IntegrityError):
            await db.execute(
                insert(OrderLineModel),
                [{"order_id": saved.id, "product_id": widget.id, "quantity": 3}],
            )
