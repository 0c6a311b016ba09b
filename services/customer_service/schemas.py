from typing import Optional

from pydantic import BaseModel


class Customer(BaseModel):
    id: Optional[int] = None # assigned by the store on create
    name: str
    email: str
    phone: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    region: Optional[str] = None
    country: Optional[str] = None

    class Config:
        from_attributes = True

    # Identity is the id alone; two snapshots of the same row are the same customer
    def __eq__(self, other):
        if not isinstance(other, Customer):
            return NotImplemented
        return self.id == other.id

    def __hash__(self):
        return hash(self.id)

    def __str__(self):
        return self.name
