from sqlalchemy import CheckConstraint, Column, ForeignKey, Integer, UniqueConstraint
from shared.config.database import Base

class OrderModel(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, autoincrement=True)
    # Cascades at the database level; OrderService vetoes the customer delete first
    customer_id = Column(Integer, ForeignKey("customers.id", ondelete="CASCADE"), nullable=False, index=True)


class OrderLineModel(Base):
    __tablename__ = "order_lines"
    __table_args__ = (
        # One row per product per order: repeated additions accumulate quantity
        UniqueConstraint("order_id", "product_id", name="uq_order_lines_order_product"),
        CheckConstraint("quantity > 0", name="ck_order_lines_quantity_positive"),
    )

    # Surrogate key only to keep lines in insertion order
    id = Column(Integer, primary_key=True, autoincrement=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False, index=True)
    quantity = Column(Integer, nullable=False)
