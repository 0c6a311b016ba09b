from sqlalchemy import Column, Integer, String
from shared.config.database import Base

class CustomerModel(Base):
    __tablename__ = "customers"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String, nullable=False)
    email = Column(String, nullable=False, unique=True)
    phone = Column(String)
    address = Column(String)
    city = Column(String)
    region = Column(String) # state/province
    country = Column(String)
