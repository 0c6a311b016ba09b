from typing import List, Optional

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from shared.exceptions import DuplicateKeyError, storage_operation

from .models import CustomerModel
from .schemas import Customer

_MUTABLE_FIELDS = {"name", "email", "phone", "address", "city", "region", "country"}


class CustomerRepository:
    """Mechanical CRUD over the customers table.

    Writes are flushed, never committed: the caller's session scope owns the
    transaction. Deleting a customer that still has orders is vetoed one
    layer up, in ``OrderService.remove_customer``.
    """

    @staticmethod
    @storage_operation("customer.create")
    async def create(db: AsyncSession, customer: Customer) -> Customer:
        if await CustomerRepository.get_by_email(db, customer.email) is not None:
            raise DuplicateKeyError("customer", "email", customer.email)

        row = CustomerModel(**customer.model_dump(include=_MUTABLE_FIELDS))
        db.add(row)
        await db.flush()
        customer.id = row.id
        return customer

    @staticmethod
    @storage_operation("customer.get_by_id")
    async def get_by_id(db: AsyncSession, customer_id: int) -> Optional[Customer]:
        result = await db.execute(select(CustomerModel).where(CustomerModel.id == customer_id))
        row = result.scalars().first()
        return Customer.model_validate(row) if row else None

    @staticmethod
    @storage_operation("customer.get_by_email")
    async def get_by_email(db: AsyncSession, email: str) -> Optional[Customer]:
        result = await db.execute(select(CustomerModel).where(CustomerModel.email == email))
        row = result.scalars().first()
        return Customer.model_validate(row) if row else None

    @staticmethod
    @storage_operation("customer.list_all")
    async def list_all(db: AsyncSession) -> List[Customer]:
        result = await db.execute(select(CustomerModel).order_by(CustomerModel.id))
        return [Customer.model_validate(row) for row in result.scalars().all()]

    @staticmethod
    @storage_operation("customer.update")
    async def update(db: AsyncSession, customer: Customer) -> bool:
        owner = await CustomerRepository.get_by_email(db, customer.email)
        if owner is not None and owner.id != customer.id:
            raise DuplicateKeyError("customer", "email", customer.email)

        result = await db.execute(
            update(CustomerModel)
            .where(CustomerModel.id == customer.id)
            .values(**customer.model_dump(include=_MUTABLE_FIELDS))
        )
        return result.rowcount > 0

    @staticmethod
    @storage_operation("customer.delete")
    async def delete(db: AsyncSession, customer_id: int) -> bool:
        result = await db.execute(delete(CustomerModel).where(CustomerModel.id == customer_id))
        return result.rowcount > 0
