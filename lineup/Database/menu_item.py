"""
Defines the MenuItem model for vendor menu inventory.
"""

from sqlalchemy import (
    Column, Integer, String, Float, Boolean, DateTime, ForeignKey, JSON,
    CheckConstraint, Index, case, event, update,
)
from sqlalchemy.orm import relationship
from lineup.extensions import Base
from lineup.utils.helpers.clock import utcnow, isoformat

CATEGORIES = (
    "Main Course",
    "Bread",
    "Rice",
    "Beverage",
    "Dessert",
    "Appetizer",
    "Snacks",
)

STATE_ACTIVE = "active"
STATE_ARCHIVED = "archived"


class MenuItem(Base):
    """
    Represents a dish offered by a vendor.

    ``state`` is the soft-delete lifecycle: archived items drop out of every
    customer listing but stay addressable by id so the vendor can restore them.
    """

    __tablename__ = "menu_items"

    id = Column(Integer, primary_key=True, autoincrement=True)
    vendor_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    name = Column(String(100), nullable=False)
    description = Column(String(500), nullable=True)
    price = Column(Float, nullable=False)
    category = Column(String(40), nullable=False, default="Main Course", index=True)
    image = Column(JSON, nullable=True)

    stock = Column(Integer, nullable=False, default=0)
    available = Column(Boolean, nullable=False, default=True)
    state = Column(String(20), nullable=False, default=STATE_ACTIVE)

    ingredients = Column(JSON, nullable=True, default=list)
    nutritional_info = Column(JSON, nullable=True)
    dietary = Column(JSON, nullable=True, default=dict)
    tags = Column(JSON, nullable=True, default=list)
    preparation_time = Column(Integer, nullable=True)

    rating_average = Column(Float, nullable=False, default=0.0)
    rating_count = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    vendor = relationship("User", back_populates="menu_items")

    __table_args__ = (
        CheckConstraint("stock >= 0", name="ck_menu_items_stock_non_negative"),
        CheckConstraint("price >= 0", name="ck_menu_items_price_non_negative"),
        Index("idx_menu_items_listing", "available", "state"),
        Index("idx_menu_items_vendor_name", "vendor_id", "name"),
    )

    @property
    def is_active(self) -> bool:
        return self.state == STATE_ACTIVE

    @property
    def is_available(self) -> bool:
        return bool(self.available and self.is_active and (self.stock or 0) > 0)

    @property
    def stock_status(self) -> str:
        if self.stock == 0:
            return "out-of-stock"
        if self.stock <= 5:
            return "low-stock"
        if self.stock <= 10:
            return "medium-stock"
        return "in-stock"

    # -------------------------------
    # DB-LEVEL STOCK OPERATIONS
    # -------------------------------
    # Each is a single UPDATE so concurrent requests cannot interleave a read
    # and a write. SET expressions see the pre-update row.

    @staticmethod
    def reserve(session, item_id: int, quantity: int) -> bool:
        """Take quantity from an orderable item; False when it cannot be served."""
        result = session.execute(
            update(MenuItem)
            .where(
                MenuItem.id == item_id,
                MenuItem.stock >= quantity,
                MenuItem.available.is_(True),
                MenuItem.state == STATE_ACTIVE,
            )
            .values(
                stock=MenuItem.stock - quantity,
                available=case((MenuItem.stock == quantity, False), else_=MenuItem.available),
                updated_at=utcnow(),
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    @staticmethod
    def drain(session, item_id: int, quantity: int) -> bool:
        """Remove up to quantity, flooring at zero."""
        result = session.execute(
            update(MenuItem)
            .where(MenuItem.id == item_id)
            .values(
                stock=case((MenuItem.stock > quantity, MenuItem.stock - quantity), else_=0),
                available=case((MenuItem.stock > quantity, MenuItem.available), else_=False),
                updated_at=utcnow(),
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    @staticmethod
    def replenish(session, item_id: int, quantity: int) -> bool:
        """Add quantity back; active items become available again."""
        result = session.execute(
            update(MenuItem)
            .where(MenuItem.id == item_id)
            .values(
                stock=MenuItem.stock + quantity,
                available=case((MenuItem.state == STATE_ACTIVE, True), else_=MenuItem.available),
                updated_at=utcnow(),
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    @staticmethod
    def add_rating(session, item_id: int, score: float) -> bool:
        result = session.execute(
            update(MenuItem)
            .where(MenuItem.id == item_id)
            .values(
                rating_average=(MenuItem.rating_average * MenuItem.rating_count + score)
                / (MenuItem.rating_count + 1),
                rating_count=MenuItem.rating_count + 1,
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    def to_dict(self, include_vendor=False):
        data = {
            "id": self.id,
            "vendorId": self.vendor_id,
            "name": self.name,
            "description": self.description,
            "price": self.price,
            "formattedPrice": f"₹{self.price:g}",
            "category": self.category,
            "image": self.image,
            "stock": self.stock,
            "stockStatus": self.stock_status,
            "available": self.available,
            "isActive": self.is_active,
            "isAvailable": self.is_available,
            "ingredients": self.ingredients or [],
            "nutritionalInfo": self.nutritional_info,
            "dietary": self.dietary or {},
            "tags": self.tags or [],
            "preparationTime": self.preparation_time,
            "rating": {
                "average": self.rating_average,
                "count": self.rating_count,
            },
            "createdAt": isoformat(self.created_at),
            "updatedAt": isoformat(self.updated_at),
        }
        if include_vendor and self.vendor is not None:
            data["vendor"] = self.vendor.summary()
        return data


@event.listens_for(MenuItem, "before_insert")
@event.listens_for(MenuItem, "before_update")
def _out_of_stock_is_unavailable(mapper, connection, target):
    if target.stock is not None and target.stock <= 0:
        target.available = False
