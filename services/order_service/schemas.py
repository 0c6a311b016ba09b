from decimal import Decimal
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from services.customer_service.schemas import Customer
from services.product_service.schemas import Product


class OrderLine(BaseModel):
    product: Product
    quantity: int = Field(gt=0)

    @property
    def subtotal(self) -> Decimal:
        return self.quantity * self.product.price


class Order(BaseModel):
    id: Optional[int] = None
    customer: Customer
    lines: List[OrderLine] = Field(default_factory=list)

    def add_line(self, product: Product, quantity: int) -> OrderLine:
        """Add ``quantity`` of ``product``, folding into an existing line for the same product."""
        if quantity <= 0:
            raise ValueError(f"Quantity must be positive, got {quantity}")
        for line in self.lines:
            if line.product.id == product.id:
                line.quantity += quantity
                return line
        line = OrderLine(product=product, quantity=quantity)
        self.lines.append(line)
        return line

    @property
    def total(self) -> Decimal:
        return sum((line.subtotal for line in self.lines), Decimal("0"))

    def __eq__(self, other):
        if not isinstance(other, Order):
            return NotImplemented
        return self.id == other.id

    def __hash__(self):
        return hash(self.id)


def merge_line_quantities(lines: List[OrderLine]) -> Dict[int, int]:
    """Collapse lines to ``{product_id: quantity}`` in first-seen order."""
    quantities: Dict[int, int] = {}
    for line in lines:
        quantities[line.product.id] = quantities.get(line.product.id, 0) + line.quantity
    return quantities


class ReportRow(BaseModel):
    customer_name: str
    product_name: str
    quantity: int
    subtotal: Decimal


class OrderReport(BaseModel):
    rows: List[ReportRow] = Field(default_factory=list)
    grand_total: Decimal = Decimal("0")
