"""
Defines the Order and OrderItem models.

Line items capture the menu item's name and price at ordering time so later
catalog edits never rewrite historical orders.
"""

from sqlalchemy import (
    Column, Integer, String, Float, Date, DateTime, ForeignKey, JSON, Text,
    CheckConstraint, Index,
)
from sqlalchemy.orm import relationship
from lineup.extensions import Base
from lineup.utils.helpers.clock import utcnow, isoformat, minutes_between

STATUSES = ("ordered", "confirmed", "preparing", "ready", "completed", "cancelled")
TERMINAL_STATUSES = ("completed", "cancelled")
PAYMENT_METHODS = ("cash", "card", "upi", "wallet")
PAYMENT_STATUSES = ("pending", "paid", "failed", "refunded")


class Order(Base):
    """
    Represents a pre-order placed by a customer with one vendor.
    """

    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, autoincrement=True)

    # queue number, unique only within token_date
    token_id = Column(Integer, nullable=False, index=True)
    token_date = Column(Date, nullable=False, index=True)

    customer_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    vendor_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    total_amount = Column(Float, nullable=False)
    status = Column(String(20), nullable=False, default="ordered", index=True)

    estimated_time = Column(Integer, nullable=True)
    actual_time = Column(Integer, nullable=True)

    payment_method = Column(String(20), nullable=False, default="cash")
    payment_status = Column(String(20), nullable=False, default="pending")

    customer_note = Column(Text, nullable=True)
    vendor_note = Column(Text, nullable=True)
    admin_note = Column(Text, nullable=True)

    ordered_at = Column(DateTime, nullable=True)
    confirmed_at = Column(DateTime, nullable=True)
    preparing_at = Column(DateTime, nullable=True)
    ready_at = Column(DateTime, nullable=True)
    completed_at = Column(DateTime, nullable=True)
    cancelled_at = Column(DateTime, nullable=True)

    rating_food = Column(Integer, nullable=True)
    rating_service = Column(Integer, nullable=True)
    rating_overall = Column(Integer, nullable=True)
    rating_comment = Column(Text, nullable=True)
    rated_at = Column(DateTime, nullable=True)

    delivery = Column(JSON, nullable=True)
    discounts = Column(JSON, nullable=True, default=list)
    tax = Column(JSON, nullable=True)

    created_at = Column(DateTime, default=utcnow, nullable=False, index=True)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    items = relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="OrderItem.id",
    )
    customer = relationship("User", foreign_keys=[customer_id])
    vendor = relationship("User", foreign_keys=[vendor_id])

    __table_args__ = (
        CheckConstraint("total_amount >= 0", name="ck_orders_total_non_negative"),
        Index("idx_orders_vendor_status", "vendor_id", "status", "created_at"),
        Index("idx_orders_token_day", "token_date", "token_id"),
    )

    def status_timestamp(self, status):
        return getattr(self, f"{status}_at")

    def set_status_timestamp(self, status, moment):
        setattr(self, f"{status}_at", moment)

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def duration(self):
        if self.completed_at and self.ordered_at:
            return minutes_between(self.ordered_at, self.completed_at)
        return None

    def rating_dict(self):
        if self.rated_at is None:
            return None
        return {
            "food": self.rating_food,
            "service": self.rating_service,
            "overall": self.rating_overall,
            "comment": self.rating_comment,
            "ratedAt": isoformat(self.rated_at),
        }

    def to_dict(self, include_parties=False):
        data = {
            "id": self.id,
            "tokenId": self.token_id,
            "tokenDate": self.token_date.isoformat() if self.token_date else None,
            "customerId": self.customer_id,
            "vendorId": self.vendor_id,
            "items": [item.to_dict() for item in self.items],
            "totalAmount": self.total_amount,
            "formattedTotal": f"₹{self.total_amount:g}",
            "status": self.status,
            "estimatedTime": self.estimated_time,
            "actualTime": self.actual_time,
            "duration": self.duration,
            "paymentMethod": self.payment_method,
            "paymentStatus": self.payment_status,
            "notes": {
                "customer": self.customer_note,
                "vendor": self.vendor_note,
                "admin": self.admin_note,
            },
            "timestamps": {
                status: isoformat(self.status_timestamp(status)) for status in STATUSES
            },
            "rating": self.rating_dict(),
            "delivery": self.delivery or {"type": "pickup", "fee": 0},
            "discounts": self.discounts or [],
            "tax": self.tax or {"cgst": 0, "sgst": 0, "total": 0},
            "createdAt": isoformat(self.created_at),
            "updatedAt": isoformat(self.updated_at),
        }
        if include_parties:
            data["customer"] = self.customer.summary() if self.customer else None
            data["vendor"] = self.vendor.summary() if self.vendor else None
        return data


class OrderItem(Base):
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True, autoincrement=True)
    order_id = Column(
        Integer,
        ForeignKey("orders.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    menu_item_id = Column(
        Integer,
        ForeignKey("menu_items.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    name = Column(String(100), nullable=False)
    price = Column(Float, nullable=False)
    quantity = Column(Integer, nullable=False)
    subtotal = Column(Float, nullable=False)
    special_instructions = Column(String(500), nullable=True)

    order = relationship("Order", back_populates="items")

    __table_args__ = (
        CheckConstraint("quantity >= 1", name="ck_order_items_quantity_positive"),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "menuItem": self.menu_item_id,
            "name": self.name,
            "price": self.price,
            "quantity": self.quantity,
            "subtotal": self.subtotal,
            "specialInstructions": self.special_instructions,
        }
