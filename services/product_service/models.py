from sqlalchemy import CheckConstraint, Column, Integer, Numeric, String
from shared.config.database import Base

class ProductModel(Base):
    __tablename__ = "products"
    __table_args__ = (CheckConstraint("price > 0", name="ck_products_price_positive"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String, nullable=False, unique=True)
    price = Column(Numeric(10, 2), nullable=False)
