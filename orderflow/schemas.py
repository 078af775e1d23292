"""
Pydantic Schemas for Request/Response Validation

Request shapes never carry prices: item, option and variant prices always
come from the catalog. Money in responses is Decimal internally and is
rendered as a JSON number.
"""

from datetime import datetime
from decimal import Decimal
from typing import Annotated, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer

from orderflow.models import OrderStatus, OrderType, PaymentMethod, PaymentStatus

Money = Annotated[
    Decimal,
    PlainSerializer(float, return_type=float, when_used="json"),
]


# =============================================================================
# REQUEST SCHEMAS
# =============================================================================

class VariantSelection(BaseModel):
    variant_id: str = Field(..., min_length=1)


class OptionSelection(BaseModel):
    option_id: str = Field(..., min_length=1)
    variants: List[VariantSelection] = Field(default_factory=list)


class OrderItemCreate(BaseModel):
    """Single line of a new order."""
    item_id: str = Field(..., min_length=1, examples=["3f6c1d2e-..."])
    quantity: int = Field(..., ge=1, le=999, examples=[2])
    special_instructions: Optional[str] = Field(None, max_length=500)
    options: List[OptionSelection] = Field(default_factory=list)


class OrderCreate(BaseModel):
    """Request schema for creating a new order."""
    business_id: str = Field(..., min_length=1)
    type: OrderType = Field(default=OrderType.DINE_IN, examples=["dine_in"])
    order_items: List[OrderItemCreate] = Field(..., min_length=1)

    discount: Decimal = Field(default=Decimal("0"), ge=0)
    tip_amount: Decimal = Field(default=Decimal("0"), ge=0)

    table_id: Optional[str] = None
    customer_id: Optional[str] = None
    customer_name: Optional[str] = Field(None, max_length=100)
    customer_phone: Optional[str] = Field(None, max_length=20)
    notes: Optional[str] = Field(None, max_length=1000)
    estimated_time: Optional[int] = Field(None, ge=0, description="Minutes")


class OrderUpdate(BaseModel):
    """Partial update; only fields present in the request are applied."""
    status: Optional[OrderStatus] = None
    table_id: Optional[str] = None
    customer_id: Optional[str] = None
    customer_name: Optional[str] = Field(None, max_length=100)
    customer_phone: Optional[str] = Field(None, max_length=20)
    notes: Optional[str] = Field(None, max_length=1000)
    estimated_time: Optional[int] = Field(None, ge=0)
    discount: Optional[Decimal] = Field(None, ge=0)
    tip_amount: Optional[Decimal] = Field(None, ge=0)


class OrderCancel(BaseModel):
    reason: Optional[str] = Field(None, max_length=500)


class PaymentCreate(BaseModel):
    amount: Decimal = Field(..., gt=0, examples=["20.00"])
    payment_method: PaymentMethod = Field(default=PaymentMethod.CASH)
    transaction_id: Optional[str] = Field(None, max_length=100)
    reference: Optional[str] = Field(None, max_length=100)


class OrderFilter(BaseModel):
    """Listing filters, pagination and sorting."""
    business_id: Optional[str] = None
    status: Optional[OrderStatus] = None
    type: Optional[OrderType] = None
    payment_status: Optional[PaymentStatus] = None
    table_id: Optional[str] = None
    customer_id: Optional[str] = None
    date_from: Optional[datetime] = None
    date_to: Optional[datetime] = None
    search: Optional[str] = None
    page: int = Field(default=1, ge=1)
    limit: Optional[int] = Field(default=None, ge=1)
    sort_by: Literal["created_at", "order_number", "grand_total"] = "created_at"
    sort_order: Literal["asc", "desc"] = "desc"


# =============================================================================
# RESPONSE SCHEMAS
# =============================================================================

class OrderItemOptionVariantResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    variant_id: str
    variant_name: str
    variant_price: Money


class OrderItemOptionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    option_id: str
    option_name: str
    variants: List[OrderItemOptionVariantResponse]


class OrderItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    item_id: str
    item_name: str
    base_price: Money
    quantity: int
    total_price: Money
    special_instructions: Optional[str]
    options: List[OrderItemOptionResponse]


class PaymentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    order_id: str
    amount: Money
    payment_method: PaymentMethod
    status: PaymentStatus
    transaction_id: Optional[str]
    reference: Optional[str]
    processed_at: Optional[datetime]
    created_at: datetime


class OrderResponse(BaseModel):
    """Full order aggregate."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    business_id: str
    order_number: str
    type: OrderType
    status: OrderStatus
    table_id: Optional[str]
    customer_id: Optional[str]
    customer_name: Optional[str]
    customer_phone: Optional[str]
    subtotal: Money
    tax: Money
    delivery_fee: Money
    discount: Money
    tip_amount: Money
    grand_total: Money
    payment_status: PaymentStatus
    payment_method: Optional[str]
    notes: Optional[str]
    estimated_time: Optional[int]
    created_at: datetime
    updated_at: datetime
    items: List[OrderItemResponse]
    payments: List[PaymentResponse]


class OrderSummary(BaseModel):
    """Order row for listings."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    order_number: str
    customer_name: Optional[str]
    type: OrderType
    status: OrderStatus
    grand_total: Money
    payment_status: PaymentStatus
    estimated_time: Optional[int]
    created_at: datetime
    item_count: int = 0


class OrderListResponse(BaseModel):
    """Response for listing multiple orders."""
    orders: List[OrderSummary]
    total: int
    page: int
    total_pages: int


class PaymentAddedResponse(BaseModel):
    payment: PaymentResponse
    order_payment_status: PaymentStatus
    remaining_balance: Money


class TopSellingItem(BaseModel):
    item_id: str
    item_name: str
    quantity: int
    revenue: Money


class OrderStats(BaseModel):
    total_orders: int
    pending_orders: int
    completed_orders: int
    cancelled_orders: int
    orders_by_status: dict[OrderStatus, int]
    total_revenue: Money
    average_order_value: Money
    top_selling_items: List[TopSellingItem]


class DashboardStats(BaseModel):
    today: OrderStats
    this_week: OrderStats
    this_month: OrderStats
    recent_orders: List[OrderSummary]


class ErrorResponse(BaseModel):
    """Standard error response."""
    success: bool = False
    error: str
    detail: Optional[str] = None
    field: Optional[str] = None


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    database: str
    timestamp: datetime
