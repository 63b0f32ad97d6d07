# backend/services/catalog.py
"""
Book catalog access used by the cart and order services.

The catalog itself (CRUD, pricing) is managed elsewhere; here we only look
books up, lock their rows for the duration of a checkout and debit stock.
Stock is debited with a conditional UPDATE so that it can never go negative,
even when two checkouts read the same stock value.
"""
import logging
from typing import Dict, Iterable

from sqlalchemy import update
from sqlalchemy.orm import Session

from errors import NotFoundError
from models.book import Book

logger = logging.getLogger(__name__)


def get_active_book(db: Session, book_id: int) -> Book:
    book = db.query(Book).filter(Book.id == book_id).first()
    if not book or not book.is_active:
        raise NotFoundError("Book")
    return book


def lock_books(db: Session, book_ids: Iterable[int]) -> Dict[int, Book]:
    """
    Load and row-lock the given books, always in ascending id order so two
    checkouts touching the same books cannot deadlock. On backends without
    SELECT ... FOR UPDATE (SQLite) the lock clause is dropped and the
    conditional debit below is the only guard.
    """
    ids = sorted(set(book_ids))
    if not ids:
        return {}
    rows = (
        db.query(Book)
        .filter(Book.id.in_(ids))
        .order_by(Book.id)
        .with_for_update()
        .populate_existing()
        .all()
    )
    return {b.id: b for b in rows}


def debit_stock(db: Session, book: Book, quantity: int) -> bool:
    """
    Atomically decrement stock only if enough remains.

    Returns False when the row no longer has `quantity` units available;
    the caller must then abort its transaction.
    """
    result = db.execute(
        update(Book)
        .where(Book.id == book.id, Book.stock >= quantity)
        .values(stock=Book.stock - quantity)
        .execution_options(synchronize_session=False)
    )
    # In-memory copy is stale after a SQL-side update
    db.expire(book, ["stock"])
    if result.rowcount != 1:
        logger.info("Stock debit refused for book %s (qty=%s)", book.id, quantity)
        return False
    return True
