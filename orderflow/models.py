"""
SQLAlchemy Database Models

Two groups of tables:
- Business and menu catalog tables, owned by other services and only read
  here (except the business order counter)
- The order aggregate: orders with their items, selected options and
  variants, and payments

Money columns are Numeric(10, 2) and map to decimal.Decimal.
"""

import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from orderflow.database import Base


def _uuid() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _values(enum_cls):
    return [member.value for member in enum_cls]


class OrderType(str, enum.Enum):
    """How the order is fulfilled."""
    DINE_IN = "dine_in"
    TAKEAWAY = "takeaway"
    DELIVERY = "delivery"


class OrderStatus(str, enum.Enum):
    """Order fulfillment workflow."""
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PREPARING = "preparing"
    READY = "ready"
    OUT_FOR_DELIVERY = "out_for_delivery"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class PaymentStatus(str, enum.Enum):
    """Status of a single payment, and the derived status of an order."""
    PENDING = "pending"
    PARTIAL = "partial"
    PAID = "paid"
    REFUNDED = "refunded"


class PaymentMethod(str, enum.Enum):
    CASH = "cash"
    CARD = "card"
    DIGITAL_WALLET = "digital_wallet"
    BANK_TRANSFER = "bank_transfer"
    CREDIT = "credit"


# =============================================================================
# BUSINESS & CATALOG (read-only for the order engine)
# =============================================================================

class Business(Base):
    """
    Tenant record. The engine reads the tax rate and increments the
    order counter; everything else belongs to business management.
    """
    __tablename__ = "businesses"

    id = Column(String(36), primary_key=True, default=_uuid)
    name = Column(String(150), nullable=False)
    tax_rate = Column(Numeric(5, 4), nullable=False, default=0)
    order_counter = Column(Integer, nullable=False, default=0)
    currency = Column(String(3), nullable=False, default="USD")
    created_at = Column(DateTime(timezone=True), default=utcnow)

    menu_items = relationship("MenuItem", back_populates="business")

    def __repr__(self):
        return f"<Business {self.id} - {self.name}>"


class MenuItem(Base):
    __tablename__ = "menu_items"

    id = Column(String(36), primary_key=True, default=_uuid)
    business_id = Column(String(36), ForeignKey("businesses.id"), nullable=False, index=True)
    name = Column(String(150), nullable=False)
    price = Column(Numeric(10, 2), nullable=False)
    is_available = Column(Boolean, nullable=False, default=True)

    business = relationship("Business", back_populates="menu_items")
    options = relationship(
        "MenuItemOption",
        back_populates="item",
        order_by="MenuItemOption.name",
    )


class MenuItemOption(Base):
    __tablename__ = "menu_item_options"

    id = Column(String(36), primary_key=True, default=_uuid)
    item_id = Column(String(36), ForeignKey("menu_items.id"), nullable=False, index=True)
    name = Column(String(100), nullable=False)

    item = relationship("MenuItem", back_populates="options")
    variants = relationship(
        "MenuItemOptionVariant",
        back_populates="option",
        order_by="MenuItemOptionVariant.name",
    )


class MenuItemOptionVariant(Base):
    __tablename__ = "menu_item_option_variants"

    id = Column(String(36), primary_key=True, default=_uuid)
    option_id = Column(String(36), ForeignKey("menu_item_options.id"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    price = Column(Numeric(10, 2), nullable=False, default=0)
    is_available = Column(Boolean, nullable=False, default=True)

    option = relationship("MenuItemOption", back_populates="variants")


# =============================================================================
# ORDER AGGREGATE
# =============================================================================

class Order(Base):
    """
    Aggregate root. Items, options and variants are written once together
    with the order; payments are appended later. ``version`` guards
    concurrent writers (optimistic locking).
    """
    __tablename__ = "orders"
    __table_args__ = (
        UniqueConstraint("business_id", "order_number", name="uq_orders_business_number"),
    )

    id = Column(String(36), primary_key=True, default=_uuid)
    business_id = Column(String(36), ForeignKey("businesses.id"), nullable=False, index=True)
    order_number = Column(String(20), nullable=False)

    # =========================================================================
    # CLASSIFICATION
    # =========================================================================
    type = Column(
        Enum(OrderType, values_callable=_values, native_enum=False),
        default=OrderType.DINE_IN,
        nullable=False,
        index=True,
    )
    status = Column(
        Enum(OrderStatus, values_callable=_values, native_enum=False),
        default=OrderStatus.PENDING,
        nullable=False,
        index=True,
    )

    # =========================================================================
    # CUSTOMER / TABLE
    # =========================================================================
    table_id = Column(String(36), nullable=True)
    customer_id = Column(String(36), nullable=True, index=True)
    customer_name = Column(String(100), nullable=True)
    customer_phone = Column(String(20), nullable=True)

    # =========================================================================
    # PRICING
    # =========================================================================
    subtotal = Column(Numeric(10, 2), nullable=False, default=0)
    tax = Column(Numeric(10, 2), nullable=False, default=0)
    delivery_fee = Column(Numeric(10, 2), nullable=False, default=0)
    discount = Column(Numeric(10, 2), nullable=False, default=0)
    tip_amount = Column(Numeric(10, 2), nullable=False, default=0)
    grand_total = Column(Numeric(10, 2), nullable=False, default=0)

    # =========================================================================
    # PAYMENT
    # =========================================================================
    payment_status = Column(
        Enum(PaymentStatus, values_callable=_values, native_enum=False),
        default=PaymentStatus.PENDING,
        nullable=False,
    )
    payment_method = Column(String(30), nullable=True)

    notes = Column(Text, nullable=True)
    estimated_time = Column(Integer, nullable=True)  # minutes

    # =========================================================================
    # TIMESTAMPS
    # =========================================================================
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    version = Column(Integer, nullable=False)

    items = relationship(
        "OrderItem",
        back_populates="order",
        order_by="OrderItem.position",
        cascade="all, delete-orphan",
    )
    payments = relationship(
        "Payment",
        back_populates="order",
        order_by="Payment.position",
        cascade="all, delete-orphan",
    )

    __mapper_args__ = {"version_id_col": version}

    def __repr__(self):
        return f"<Order {self.order_number} - {self.type.value} - {self.status.value}>"


class OrderItem(Base):
    """Catalog item snapshot taken when the order was placed."""
    __tablename__ = "order_items"

    id = Column(String(36), primary_key=True, default=_uuid)
    order_id = Column(String(36), ForeignKey("orders.id"), nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)
    item_id = Column(String(36), nullable=False, index=True)
    item_name = Column(String(150), nullable=False)
    base_price = Column(Numeric(10, 2), nullable=False)
    quantity = Column(Integer, nullable=False)
    total_price = Column(Numeric(10, 2), nullable=False)
    special_instructions = Column(Text, nullable=True)

    order = relationship("Order", back_populates="items")
    options = relationship(
        "OrderItemOption",
        back_populates="order_item",
        order_by="OrderItemOption.position",
        cascade="all, delete-orphan",
    )


class OrderItemOption(Base):
    __tablename__ = "order_item_options"

    id = Column(String(36), primary_key=True, default=_uuid)
    order_item_id = Column(String(36), ForeignKey("order_items.id"), nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)
    option_id = Column(String(36), nullable=False)
    option_name = Column(String(100), nullable=False)

    order_item = relationship("OrderItem", back_populates="options")
    variants = relationship(
        "OrderItemOptionVariant",
        back_populates="order_item_option",
        order_by="OrderItemOptionVariant.position",
        cascade="all, delete-orphan",
    )


class OrderItemOptionVariant(Base):
    __tablename__ = "order_item_option_variants"

    id = Column(String(36), primary_key=True, default=_uuid)
    order_item_option_id = Column(
        String(36), ForeignKey("order_item_options.id"), nullable=False, index=True
    )
    position = Column(Integer, nullable=False, default=0)
    variant_id = Column(String(36), nullable=False)
    variant_name = Column(String(100), nullable=False)
    variant_price = Column(Numeric(10, 2), nullable=False)

    order_item_option = relationship("OrderItemOption", back_populates="variants")


class Payment(Base):
    """Append-only payment record."""
    __tablename__ = "payments"

    id = Column(String(36), primary_key=True, default=_uuid)
    order_id = Column(String(36), ForeignKey("orders.id"), nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)
    amount = Column(Numeric(10, 2), nullable=False)
    payment_method = Column(
        Enum(PaymentMethod, values_callable=_values, native_enum=False),
        nullable=False,
    )
    status = Column(
        Enum(PaymentStatus, values_callable=_values, native_enum=False),
        default=PaymentStatus.PENDING,
        nullable=False,
    )
    transaction_id = Column(String(100), nullable=True)
    reference = Column(String(100), nullable=True)
    processed_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    order = relationship("Order", back_populates="payments")

    def __repr__(self):
        return f"<Payment {self.id} - {self.amount} - {self.status.value}>"
