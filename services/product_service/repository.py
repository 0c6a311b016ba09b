from typing import List, Optional

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from shared.exceptions import DuplicateKeyError, storage_operation

from .models import ProductModel
from .schemas import Product


class ProductRepository:

    @staticmethod
    @storage_operation("product.create")
    async def create(db: AsyncSession, product: Product) -> Product:
        if await ProductRepository.get_by_name(db, product.name) is not None:
            raise DuplicateKeyError("product", "name", product.name)

        row = ProductModel(name=product.name, price=product.price)
        db.add(row)
        await db.flush()
        product.id = row.id
        return product

    @staticmethod
    @storage_operation("product.get_by_id")
    async def get_by_id(db: AsyncSession, product_id: int) -> Optional[Product]:
        result = await db.execute(select(ProductModel).where(ProductModel.id == product_id))
        row = result.scalars().first()
        return Product.model_validate(row) if row else None

    @staticmethod
    @storage_operation("product.get_by_name")
    async def get_by_name(db: AsyncSession, name: str) -> Optional[Product]:
        result = await db.execute(select(ProductModel).where(ProductModel.name == name))
        row = result.scalars().first()
        return Product.model_validate(row) if row else None

    @staticmethod
    @storage_operation("product.list_all")
    async def list_all(db: AsyncSession) -> List[Product]:
        result = await db.execute(select(ProductModel).order_by(ProductModel.id))
        return [Product.model_validate(row) for row in result.scalars().all()]

    @staticmethod
    @storage_operation("product.update")
    async def update(db: AsyncSession, product: Product) -> bool:
        owner = await ProductRepository.get_by_name(db, product.name)
        if owner is not None and owner.id != product.id:
            raise DuplicateKeyError("product", "name", product.name)

        result = await db.execute(
            update(ProductModel)
            .where(ProductModel.id == product.id)
            .values(name=product.name, price=product.price)
        )
        return result.rowcount > 0

    @staticmethod
    @storage_operation("product.delete")
    async def delete(db: AsyncSession, product_id: int) -> bool:
        result = await db.execute(delete(ProductModel).where(ProductModel.id == product_id))
        return result.rowcount > 0
