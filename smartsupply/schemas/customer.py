# smartsupply/schemas/customer.py
"""
Wire format of customers returned by the remote directory API.
The API speaks camelCase JSON; the cache stores snake_case Customer rows.
"""
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from ..models import Customer


class CustomerPayload(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        coerce_numbers_to_str=True,
        extra="ignore",
    )

    id: str
    name: str
    phone: str = ""
    whatsapp: str | None = None
    house_no: str | None = None
    street_no: str | None = None
    area: str | None = None
    city: str | None = None
    address: str | None = None
    bottle_count: int | None = None
    avg_days_to_refill: int | None = None
    is_active: bool = True
    current_balance: float | None = None

    def to_customer(self, balance_fetched_at: float | None = None) -> Customer:
        """
        Build a cache row from this payload.

        Without `balance_fetched_at` the balance is dropped entirely: bulk
        listings are never trusted to carry a verified balance.
        """
        data = self.model_dump(exclude={"current_balance"})
        if balance_fetched_at is None:
            return Customer(**data, current_balance=None, balance_last_updated=None)
        return Customer(
            **data,
            current_balance=self.current_balance,
            balance_last_updated=balance_fetched_at,
        )
