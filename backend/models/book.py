# backend/models/book.py
from sqlalchemy import Column, Integer, String, Boolean, Numeric, DateTime, CheckConstraint, func
from database import Base

# Model Book
# Catalog entry owned by the catalog service. The cart and order services
# only read it and debit `stock`, which must never drop below zero.
class Book(Base):
    __tablename__ = "books"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String, nullable=False, index=True)
    author = Column(String, nullable=False)
    category = Column(String, default="other")

    price = Column(Numeric(10, 2), CheckConstraint("price >= 0"), nullable=False)
    stock = Column(Integer, CheckConstraint("stock >= 0"), nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
