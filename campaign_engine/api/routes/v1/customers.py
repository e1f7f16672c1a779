"""
Customer and Order API Routes (v1)

Endpoints:
    POST /customers  - Create customer
    GET  /customers  - List customers
    POST /orders     - Ingest order (updates the customer's spend and visits)
    GET  /orders     - List orders (most recent first)
"""

from typing import List, Optional
from uuid import UUID
from datetime import datetime

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, ConfigDict, Field

from campaign_engine.api.dependencies import get_customer_service, get_order_service
from campaign_engine.core.domain.customer import Customer, Order
from campaign_engine.core.services.customer_service import CustomerService, OrderService


router = APIRouter(tags=["Customers"])


# Request/Response Models
class CreateCustomerRequest(BaseModel):
    """Request to create a customer"""
    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(..., min_length=1, max_length=255)
    email: str = Field(..., min_length=3, max_length=320)
    phone: Optional[str] = None
    total_spends: float = Field(0.0, ge=0, alias="totalSpends")
    visits: int = Field(0, ge=0)
    last_visit: Optional[datetime] = Field(None, alias="lastVisit")


class CustomerResponse(BaseModel):
    """Customer response"""
    model_config = ConfigDict(populate_by_name=True)

    id: UUID
    name: str
    email: str
    phone: Optional[str]
    total_spends: float = Field(alias="totalSpends")
    visits: int
    last_visit: datetime = Field(alias="lastVisit")
    created_at: datetime = Field(alias="createdAt")

    @classmethod
    def from_domain(cls, customer: Customer) -> "CustomerResponse":
        return cls(
            id=customer.id,
            name=customer.name,
            email=customer.email,
            phone=customer.phone,
            total_spends=customer.total_spends,
            visits=customer.visits,
            last_visit=customer.last_visit,
            created_at=customer.created_at,
        )


class CreateOrderRequest(BaseModel):
    """Request to ingest an order"""
    model_config = ConfigDict(populate_by_name=True)

    customer_email: str = Field(..., min_length=3, alias="customerEmail")
    amount: float = Field(..., gt=0)
    date: Optional[datetime] = None
    items: List[str] = []


class OrderResponse(BaseModel):
    """Order response"""
    model_config = ConfigDict(populate_by_name=True)

    id: UUID
    customer_email: str = Field(alias="customerEmail")
    amount: float
    date: datetime
    items: List[str]
    created_at: datetime = Field(alias="createdAt")

    @classmethod
    def from_domain(cls, order: Order) -> "OrderResponse":
        return cls(
            id=order.id,
            customer_email=order.customer_email,
            amount=order.amount,
            date=order.date,
            items=order.items,
            created_at=order.created_at,
        )


# Endpoints
@router.post(
    "/customers",
    response_model=CustomerResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_customer(
    request: CreateCustomerRequest,
    service: CustomerService = Depends(get_customer_service),
):
    """Create a customer"""
    customer = await service.create_customer(
        name=request.name,
        email=request.email,
        phone=request.phone,
        total_spends=request.total_spends,
        visits=request.visits,
        last_visit=request.last_visit,
    )
    return CustomerResponse.from_domain(customer)


@router.get("/customers", response_model=List[CustomerResponse])
async def list_customers(
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    service: CustomerService = Depends(get_customer_service),
):
    """List customers"""
    customers = await service.list_customers(limit=limit, offset=offset)
    return [CustomerResponse.from_domain(c) for c in customers]


@router.post(
    "/orders",
    response_model=OrderResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_order(
    request: CreateOrderRequest,
    service: OrderService = Depends(get_order_service),
):
    """
    Ingest an order

    When the email belongs to a customer, the customer's total spend and
    visit count grow and their last visit becomes now.
    """
    order = await service.ingest_order(
        customer_email=request.customer_email,
        amount=request.amount,
        date=request.date,
        items=request.items,
    )
    return OrderResponse.from_domain(order)


@router.get("/orders", response_model=List[OrderResponse])
async def list_orders(
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    service: OrderService = Depends(get_order_service),
):
    """List orders, most recent first"""
    orders = await service.list_orders(limit=limit, offset=offset)
    return [OrderResponse.from_domain(o) for o in orders]
