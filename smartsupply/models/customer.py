# smartsupply/models/customer.py
"""
Customer model for the local customer cache.
"""
from typing import Optional
from sqlmodel import Field, SQLModel


class Customer(SQLModel, table=True):
    """
    Cached projection of a customer from the remote directory.

    Fields:
    - id: Directory-assigned primary key (immutable)
    - name, phone: Display/identity fields (required)
    - whatsapp, house_no, street_no, area, city, address: Contact/location
    - bottle_count: Bottles held by the customer
    - avg_days_to_refill: Average days between refills
    - is_active: Soft-delete flag mirrored from the directory
    - current_balance: Balance snapshot, only trustworthy right after a fetch
    - balance_last_updated: Epoch seconds of that fetch (None = never fetched)
    """

    __tablename__ = "customers"

    id: str = Field(primary_key=True)
    name: str = Field(nullable=False, index=True)
    phone: str = Field(nullable=False, index=True)
    whatsapp: Optional[str] = Field(default=None, index=True)
    house_no: Optional[str] = Field(default=None, index=True)
    street_no: Optional[str] = Field(default=None)
    area: Optional[str] = Field(default=None)
    city: Optional[str] = Field(default=None)
    address: Optional[str] = Field(default=None)
    bottle_count: Optional[int] = Field(default=None)
    avg_days_to_refill: Optional[int] = Field(default=None)
    is_active: bool = Field(default=True, nullable=False)
    current_balance: Optional[float] = Field(default=None)
    balance_last_updated: Optional[float] = Field(default=None)

    def copy_detached(self) -> "Customer":
        """Fresh instance with the same field values, not bound to any session."""
        return Customer(**self.model_dump())
