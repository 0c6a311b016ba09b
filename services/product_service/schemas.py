from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field


class Product(BaseModel):
    id: Optional[int] = None
    name: str
    # Same precision as the Numeric(10, 2) column, so a stored price reads back unchanged
    price: Decimal = Field(gt=0, max_digits=10, decimal_places=2)

    class Config:
        from_attributes = True

    def __eq__(self, other):
        if not isinstance(other, Product):
            return NotImplemented
        return self.id == other.id

    def __hash__(self):
        return hash(self.id)

    def __str__(self):
        return f"{self.name} ({self.price:.2f})"
