# backend/models/cart.py
from decimal import Decimal
from typing import Optional

from sqlalchemy import Column, Integer, ForeignKey, DateTime, Numeric, UniqueConstraint, CheckConstraint, func
from sqlalchemy.orm import relationship
from database import Base
from utils.money import money

# Represents the user's shopping cart (exactly one per user)
class Cart(Base):
    __tablename__ = "carts" # Table name

    id = Column(Integer, primary_key=True, index=True) # Primary key
    user_id = Column(Integer, ForeignKey("users.id"), unique=True, index=True, nullable=False) # One cart per user
    total = Column(Numeric(10, 2), nullable=False, default=Decimal("0.00")) # Derived, see recalculate()
    created_at = Column(DateTime(timezone=True), server_default=func.now()) # Creation timestamp
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
    # Bumped on every write; a stale writer fails with StaleDataError
    version = Column(Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version}

    # One-to-many relationship with cart lines, kept in insertion order
    items = relationship(
        "CartItem",
        back_populates="cart",
        cascade="all, delete-orphan",
        order_by="CartItem.id",
    )

    def find_line(self, line_id: int) -> Optional["CartItem"]:
        return next((it for it in self.items if it.id == line_id), None)

    def line_for_book(self, book_id: int) -> Optional["CartItem"]:
        return next((it for it in self.items if it.book_id == book_id), None)

    def add_line(self, book_id: int, quantity: int, unit_price) -> "CartItem":
        line = CartItem(book_id=book_id, quantity=quantity, unit_price=money(unit_price))
        self.items.append(line)
        return line

    def remove_line(self, line_id: int) -> bool:
        line = self.find_line(line_id)
        if line is None:
            return False
        self.items.remove(line)
        return True

    def clear(self):
        self.items.clear()

    def recalculate(self) -> Decimal:
        # Total is never set directly, always derived from the lines
        self.total = money(sum((it.line_total for it in self.items), Decimal("0")))
        # Line changes alone do not UPDATE the cart row, force one so the version moves
        self.updated_at = func.now()
        return self.total

    @property
    def item_count(self) -> int:
        return sum(it.quantity for it in self.items)


# Represents a single line (book + quantity + locked-in price) within a cart
class CartItem(Base):
    __tablename__ = "cart_items" # Table name

    id = Column(Integer, primary_key=True, index=True) # Stable line identifier
    cart_id = Column(Integer, ForeignKey("carts.id"), index=True, nullable=False) # Foreign key to parent cart
    book_id = Column(Integer, ForeignKey("books.id"), index=True, nullable=False) # Foreign key to book
    quantity = Column(Integer, CheckConstraint("quantity >= 1"), nullable=False, default=1)
    unit_price = Column(Numeric(10, 2), CheckConstraint("unit_price >= 0"), nullable=False) # Price at the moment of addition

    cart = relationship("Cart", back_populates="items") # Relationship back to Cart
    book = relationship("Book") # Relationship to Book

    __table_args__ = (
        # One line per book in the same cart, quantities are merged instead
        UniqueConstraint("cart_id", "book_id", name="uq_cartitem_cart_book"),
    )

    @property
    def line_total(self) -> Decimal:
        return money(Decimal(self.unit_price) * self.quantity)
