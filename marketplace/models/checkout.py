"""Checkout (customer order) model."""
from sqlalchemy import Column, BigInteger, String, Text, Boolean, Numeric, DateTime, Enum, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from marketplace.database import Base, BigIntPK
import enum


class OrderStatus(str, enum.Enum):
    """Order status shared by customer and partner orders."""
    PENDING = 'pending'
    DELIVERED = 'delivered'
    CANCELLED = 'cancelled'
    REFUNDED = 'refunded'


def order_status_type(name):
    """Column type storing OrderStatus by value ('pending'), not by member name."""
    return Enum(OrderStatus, name=name, values_callable=lambda e: [m.value for m in e])


class Checkout(Base):
    """
    Checkout (order placed by a customer).

    Immutable after creation except for admin status transitions and
    line-item corrections (order_service).
    """

    __tablename__ = 'checkout'

    id = Column(BigIntPK, primary_key=True, autoincrement=True)
    user_id = Column(BigInteger, ForeignKey('app_user.id'), nullable=False, index=True)

    city = Column(String(120), nullable=False)
    province = Column(String(120), nullable=True)
    address = Column(Text, nullable=False)
    shipping_address = Column(String(120), nullable=False)  # contact / mobile number
    payment_method = Column(String(20), nullable=False)

    shipment_charges = Column(Numeric(10, 2), nullable=False, default=0, server_default='0')
    total = Column(Numeric(12, 2), nullable=False)
    status = Column(order_status_type('order_status'), nullable=False, default=OrderStatus.PENDING)

    # Idempotency key to make a retried checkout return the original order
    idempotency_key = Column(String(64), unique=True, nullable=True, index=True)
    is_manual = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    # Relationships
    user = relationship('AppUser', back_populates='orders')
    items = relationship('CheckoutItem', back_populates='checkout', cascade='all, delete-orphan',
                         order_by='CheckoutItem.id')

    def __repr__(self):
        return f"<Checkout(id={self.id}, total={self.total}, status={self.status.value})>"
