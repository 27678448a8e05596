from datetime import datetime
from decimal import Decimal
from typing import Annotated, Optional
from pydantic import BaseModel, ConfigDict, Field, PlainSerializer
from pydantic.alias_generators import to_camel

from trotropay.src.constants import DEFAULT_PAYMENT_METHOD, MAX_PASSENGERS_PER_PAYMENT

# Monetary values travel as two-decimal strings, e.g. "3.50"
Money = Annotated[Decimal, PlainSerializer(lambda value: f"{value:.2f}", return_type=str)]


class CamelModel(BaseModel):
    """Base for request and response bodies exchanged as camelCase JSON."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, from_attributes=True
    )


class RequestInfo(BaseModel):
    method: str
    path: str


class HealthStatus(BaseModel):
    status: str
    version: str


class ErrorResponse(BaseModel):
    detail: str
    message: str


## Payment
class PaymentRequest(CamelModel):
    vehicle_id: str = Field(max_length=16)
    destination: str = Field(min_length=1, max_length=64)
    amount: Optional[Decimal] = None
    passenger_count: int = Field(default=1, ge=1, le=MAX_PASSENGERS_PER_PAYMENT)
    payment_method: str = Field(default=DEFAULT_PAYMENT_METHOD, max_length=16)
    boarding_stop: Optional[str] = Field(default=None, max_length=64)


class TransactionSchema(CamelModel):
    id: int
    passenger_id: int
    vehicle_id: int
    mate_id: Optional[int]
    driver_id: Optional[int]
    owner_id: Optional[int]
    amount: Money
    passenger_count: int
    boarding_stop: Optional[str]
    destination: str
    route: str
    status: str
    payment_method: str
    created_on: datetime


class PaidTransaction(TransactionSchema):
    individual_fare: Money
    is_group_payment: bool


class CrewTransaction(PaidTransaction):
    passenger_phone: str


class PaymentNotification(CamelModel):
    type: str = "payment_received"
    transaction: CrewTransaction
