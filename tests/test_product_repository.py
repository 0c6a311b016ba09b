"""Tests for the product store."""

from decimal import Decimal

import pytest
from pydantic import ValidationError

from factories import make_product
from services.product_service.repository import ProductRepository
from services.product_service.schemas import Product
from shared.exceptions import DuplicateKeyError


class TestCreateProduct:
    """Tests for ProductRepository.create."""

    @pytest.mark.asyncio
    async def test_create_round_trips_price_exactly(self, db):
        product = await ProductRepository.create(db, make_product("Widget", "9.99"))

        assert product.id > 0
        fetched = await ProductRepository.get_by_id(db, product.id)
        assert fetched.name == "Widget"
        assert fetched.price == Decimal("9.99")

    @pytest.mark.asyncio
    async def test_duplicate_name_is_rejected(self, db):
        await ProductRepository.create(db, make_product("Widget", "9.99"))

        with pytest.raises(DuplicateKeyError) as exc_info:
            await ProductRepository.create(db, make_product("Widget", "1.00"))

        assert exc_info.value.field == "name"
        products = await ProductRepository.list_all(db)
        assert len(products) == 1
        assert products[0].price == Decimal("9.99")

    @pytest.mark.parametrize("price", ["0", "-1.50"])
    def test_non_positive_price_is_invalid(self, price):
        with pytest.raises(ValidationError):
            Product(name="Freebie", price=Decimal(price))

    @pytest.mark.parametrize("price", ["9.999", "1.005", "0.001"])
    def test_price_beyond_cents_is_invalid(self, price):
        """A price the column would round is rejected up front."""
        with pytest.raises(ValidationError):
            make_product("Widget", price)

    @pytest.mark.asyncio
    async def test_smallest_price_round_trips_exactly(self, db):
        product = await ProductRepository.create(db, make_product("Washer", "0.01"))

        fetched = await ProductRepository.get_by_id(db, product.id)

        assert fetched.model_dump() == product.model_dump()
        assert fetched.price == Decimal("0.01")


class TestLookupProduct:
    """Tests for the lookup operations."""

    @pytest.mark.asyncio
    async def test_get_by_name(self, db):
        created = await ProductRepository.create(db, make_product("Gadget", "15.00"))

        assert await ProductRepository.get_by_name(db, "Gadget") == created
        assert await ProductRepository.get_by_name(db, "Nothing") is None
        assert await ProductRepository.get_by_id(db, 999) is None


class TestUpdateDeleteProduct:
    """Tests for update and delete."""

    @pytest.mark.asyncio
    async def test_update_changes_price(self, db):
        product = await ProductRepository.create(db, make_product("Widget", "9.99"))
        product.price = Decimal("12.50")

        assert await ProductRepository.update(db, product) is True
        assert (await ProductRepository.get_by_id(db, product.id)).price == Decimal("12.50")

    @pytest.mark.asyncio
    async def test_rename_onto_existing_name_is_rejected(self, db):
        await ProductRepository.create(db, make_product("Widget"))
        gadget = await ProductRepository.create(db, make_product("Gadget"))
        gadget.name = "Widget"

        with pytest.raises(DuplicateKeyError):
            await ProductRepository.update(db, gadget)

    @pytest.mark.asyncio
    async def test_delete(self, db):
        product = await ProductRepository.create(db, make_product())

        assert await ProductRepository.delete(db, product.id) is True
        assert await ProductRepository.delete(db, product.id) is False
        assert await ProductRepository.list_all(db) == []
