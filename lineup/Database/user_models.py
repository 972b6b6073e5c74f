"""
Defines the User model shared by customers, vendors and admins.
"""

from sqlalchemy import Column, Integer, String, DateTime, Boolean, JSON
from sqlalchemy.orm import relationship
from lineup.extensions import Base
from lineup.utils.helpers.clock import utcnow, isoformat

ROLES = ("customer", "vendor", "admin")


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)

    email = Column(String(320), nullable=False, unique=True, index=True)
    password_hash = Column(String(256), nullable=False)
    name = Column(String(100), nullable=False)
    restaurant_name = Column(String(100), nullable=True)

    role = Column(String(20), nullable=False, default="customer", index=True)
    phone = Column(String(32), nullable=True)
    address = Column(JSON, nullable=True, default=dict)

    is_active = Column(Boolean, nullable=False, default=True)
    is_approved = Column(Boolean, nullable=False, default=True)
    last_login = Column(DateTime, nullable=True)
    preferences = Column(JSON, nullable=True, default=dict)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(
        DateTime,
        default=utcnow,
        onupdate=utcnow,
        nullable=False,
    )

    menu_items = relationship(
        "MenuItem",
        back_populates="vendor",
        passive_deletes=True,
    )

    @property
    def full_address(self) -> str:
        if not self.address:
            return ""
        parts = [self.address.get(k) for k in ("street", "city", "state", "zipCode")]
        return ", ".join(p for p in parts if p)

    def summary(self) -> dict:
        """Short form embedded in menu items and orders."""
        data = {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
        }
        if self.role == "vendor":
            data["restaurantName"] = self.restaurant_name
        return data

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "restaurantName": self.restaurant_name,
            "role": self.role,
            "phone": self.phone,
            "address": self.address or {},
            "fullAddress": self.full_address,
            "isActive": self.is_active,
            "isApproved": self.is_approved,
            "lastLogin": isoformat(self.last_login),
            "preferences": self.preferences or {},
            "createdAt": isoformat(self.created_at),
            "updatedAt": isoformat(self.updated_at),
        }
