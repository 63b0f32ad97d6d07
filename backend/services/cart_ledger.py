# backend/services/cart_ledger.py
"""
CART LEDGER

Per-user staging area of intended purchases.

Rules:
- One cart per user (unique user_id), created lazily on first access.
- Each line captures the catalog price at the moment it is added.
- Per-line quantity is capped (MAX_LINE_QUANTITY), also after merging.
- Stock is only *checked* here; it is debited at order placement.
- The cart total is recomputed from the lines before every commit.
- Writers lock the cart row (FOR UPDATE) and the row carries a version
  counter, so two writes to one cart never silently overwrite each other.
"""
import functools
import logging
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload
from sqlalchemy.orm.exc import StaleDataError

from config import settings
from errors import (
    InsufficientStockError,
    InternalError,
    NotFoundError,
    QuantityLimitError,
    ValidationError,
)
from models.cart import Cart
from models.users import User
from services.catalog import get_active_book

logger = logging.getLogger(__name__)


def _validate_quantity(quantity) -> int:
    # bool is an int subclass; reject it explicitly
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise ValidationError("Quantity must be a whole number")
    if quantity < 1:
        raise ValidationError("Quantity must be at least 1")
    return quantity


def find_cart(db: Session, user_id: int) -> Optional[Cart]:
    return db.query(Cart).filter(Cart.user_id == user_id).first()


def lock_cart(db: Session, user_id: int) -> Optional[Cart]:
    """
    Load the user's cart fresh from the database with its row locked.

    Callers that modify the cart take this lock first (and checkout takes it
    before any book lock). Where FOR UPDATE is unavailable (SQLite) the
    version counter on Cart still rejects a write based on a stale read.
    """
    return (
        db.query(Cart)
        .filter(Cart.user_id == user_id)
        .options(selectinload(Cart.items))
        .with_for_update()
        .populate_existing()
        .first()
    )


def get_cart(db: Session, user: User, for_update: bool = False) -> Cart:
    """Return the user's cart, creating and persisting an empty one if absent."""
    cart = lock_cart(db, user.id) if for_update else find_cart(db, user.id)
    if cart:
        return cart

    cart = Cart(user_id=user.id)
    cart.recalculate()
    db.add(cart)
    try:
        db.commit()
    except IntegrityError:
        # Another request created it first
        db.rollback()
        cart = lock_cart(db, user.id) if for_update else find_cart(db, user.id)
        if cart is None:
            raise
        return cart
    db.refresh(cart)
    logger.info("Created cart %s for user %s", cart.id, user.id)
    return cart


def _save(db: Session, cart: Cart) -> Cart:
    cart.recalculate()
    db.commit()
    db.refresh(cart)
    return cart


def retry_on_conflict(operation):
    """Re-run a cart write from a fresh read when another request changed the cart first."""
    @functools.wraps(operation)
    def wrapper(db: Session, user: User, *args, **kwargs):
        attempts = settings.CART_WRITE_MAX_ATTEMPTS
        for attempt in range(1, attempts + 1):
            try:
                return operation(db, user, *args, **kwargs)
            except StaleDataError:
                db.rollback()
                logger.warning("Cart of user %s changed concurrently during %s (attempt %s/%s)",
                               user.id, operation.__name__, attempt, attempts)
        raise InternalError("Cart is being modified by another request, please retry")
    return wrapper


@retry_on_conflict
def add_item(db: Session, user: User, book_id: int, quantity: int = 1) -> Cart:
    quantity = _validate_quantity(quantity)
    limit = settings.MAX_LINE_QUANTITY

    book = get_active_book(db, book_id)
    if book.stock < quantity:
        raise InsufficientStockError(book.title, book.id)
    if quantity > limit:
        raise QuantityLimitError(limit)

    cart = get_cart(db, user, for_update=True)
    line = cart.line_for_book(book.id)
    if line:
        merged = line.quantity + quantity
        if merged > limit:
            raise QuantityLimitError(limit, merged=True)
        line.quantity = merged
    else:
        cart.add_line(book.id, quantity, book.price)

    cart = _save(db, cart)
    logger.info("User %s added book %s x%s to cart %s", user.id, book.id, quantity, cart.id)
    return cart


@retry_on_conflict
def update_item(db: Session, user: User, line_id: int, quantity: int) -> Cart:
    quantity = _validate_quantity(quantity)
    limit = settings.MAX_LINE_QUANTITY
    if quantity > limit:
        raise ValidationError(f"Maximum quantity is {limit} per item")

    cart = lock_cart(db, user.id)
    if not cart:
        raise NotFoundError("Cart")
    line = cart.find_line(line_id)
    if not line:
        raise NotFoundError("Cart item")

    book = get_active_book(db, line.book_id)
    if book.stock < quantity:
        raise InsufficientStockError(book.title, book.id)

    line.quantity = quantity
    return _save(db, cart)


@retry_on_conflict
def remove_item(db: Session, user: User, line_id: int) -> Cart:
    # Removing a line that is not there is a no-op
    cart = get_cart(db, user, for_update=True)
    if not cart.remove_line(line_id):
        logger.debug("Cart %s has no line %s, nothing removed", cart.id, line_id)
        db.commit()
        return cart
    return _save(db, cart)


@retry_on_conflict
def clear_cart(db: Session, user: User) -> Cart:
    cart = get_cart(db, user, for_update=True)
    cart.clear()
    return _save(db, cart)
