# backend/services/order_placement.py
"""
ORDER PLACEMENT ENGINE

Purpose:
- Turn the user's cart into an immutable Order while debiting book stock.

Hard rules:
- Every validation and stock check happens before any write; failures
  leave the cart, the stock and the order table untouched.
- Order insert, stock debits and cart clear share ONE database transaction.
  Stock is debited with a conditional UPDATE (stock >= qty), so a stale
  verification can never push stock below zero.
- Order lines snapshot title, unit price and quantity; later catalog edits
  never change historical orders.
- Order numbers collide only under concurrent placement; the UNIQUE
  constraint detects it and the whole placement is retried (bounded).
- The cart is locked before the books and its version is checked when it is
  emptied; a cart changed mid-checkout makes the placement start over, so
  lines added meanwhile are never cleared without being ordered.

Notes:
- If the final COMMIT itself fails, nothing is applied, but the failure is
  logged and audited with the order number, book ids and quantities so it
  can be reconciled.
"""
import logging
from decimal import Decimal
from typing import Dict, List, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, selectinload
from sqlalchemy.orm.exc import StaleDataError

from config import settings
from errors import (
    AccessDeniedError,
    EmptyCartError,
    InsufficientStockError,
    InternalError,
    NotFoundError,
    StoreError,
    ValidationError,
)
from models.book import Book
from models.cart import Cart
from models.order import Order, OrderItem, OrderStatus, PaymentMethod, ORDER_STATUS_TRANSITIONS
from models.users import User
from services.cart_ledger import lock_cart
from services.catalog import debit_stock, lock_books
from services.order_numbers import generate_order_number
from utils.audit import write_log
from utils.money import money

logger = logging.getLogger(__name__)


class _OrderNumberTaken(Exception):
    """Internal signal: the generated order number already exists."""


class _CartChanged(Exception):
    """Internal signal: another request changed the cart while it was being checked out."""


def _validate_checkout_input(delivery_address, payment_method) -> PaymentMethod:
    if not delivery_address or not str(delivery_address).strip():
        raise ValidationError("Delivery address and payment method are required")
    if not payment_method:
        raise ValidationError("Delivery address and payment method are required")
    try:
        return PaymentMethod(payment_method)
    except ValueError:
        raise ValidationError("Invalid payment method")


def verify_stock(cart: Cart, books: Dict[int, Book]) -> None:
    """Abort on the first line whose book is gone, inactive or short on stock."""
    for line in cart.items:
        book = books.get(line.book_id)
        if book is None or not book.is_active:
            title = line.book.title if line.book else None
            raise InsufficientStockError(title, line.book_id)
        if book.stock < line.quantity:
            raise InsufficientStockError(book.title, book.id)


def build_order(user: User, cart: Cart, books: Dict[int, Book], delivery_address: str,
                payment_method: PaymentMethod) -> Order:
    items: List[OrderItem] = []
    for line in cart.items:
        price = money(line.unit_price)
        items.append(OrderItem(
            book_id=line.book_id,
            title=books[line.book_id].title,
            unit_price=price,
            quantity=line.quantity,
            subtotal=money(price * line.quantity),
        ))

    subtotal = money(sum((it.subtotal for it in items), Decimal("0")))
    shipping_fee = money(settings.SHIPPING_FEE)
    delivery_fee = money(settings.DELIVERY_FEE)

    return Order(
        user_id=user.id,
        status=OrderStatus.PENDING.value,
        delivery_address=delivery_address.strip(),
        payment_method=payment_method.value,
        subtotal=subtotal,
        shipping_fee=shipping_fee,
        delivery_fee=delivery_fee,
        total=money(subtotal + shipping_fee + delivery_fee),
        items=items,
    )


def _reconciliation_details(order: Order) -> dict:
    return {
        "order_number": order.order_number,
        "user_id": order.user_id,
        "lines": [{"book_id": it.book_id, "quantity": it.quantity} for it in order.items],
    }


def _place_once(db: Session, user: User, delivery_address: str,
                payment_method: PaymentMethod, attempt: int, ip: Optional[str]) -> Order:
    # Cart first, then books: every writer takes locks in this order
    cart = lock_cart(db, user.id)
    if not cart or not cart.items:
        raise EmptyCartError()

    # 1. Lock + verify stock; nothing has been written yet
    books = lock_books(db, [line.book_id for line in cart.items])
    verify_stock(cart, books)

    # 2. Materialize the snapshot
    order = build_order(user, cart, books, delivery_address, payment_method)
    order.order_number = generate_order_number(db, attempt)

    # 3. Insert; the UNIQUE constraint on order_number is the collision guard
    db.add(order)
    try:
        db.flush()
    except IntegrityError:
        number = order.order_number
        db.rollback()
        if db.query(Order.id).filter(Order.order_number == number).first():
            raise _OrderNumberTaken(number)
        raise

    # 4. Debit stock, conditionally
    for item in order.items:
        if not debit_stock(db, books[item.book_id], item.quantity):
            raise InsufficientStockError(item.title, item.book_id)

    cart_id = cart.id

    # 5. Empty the cart
    cart.clear()
    cart.recalculate()
    try:
        db.flush()
    except StaleDataError:
        # The cart version moved since it was read; nothing of this attempt survives
        db.rollback()
        raise _CartChanged(cart_id)

    details = _reconciliation_details(order)
    try:
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Order commit failed, needs reconciliation: %s", details)
        write_log(db, user_id=user.id, action="ORDER_COMMIT", resource="orders",
                  status="FAIL", ip=ip, meta=details)
        raise InternalError("Error creating order")

    db.refresh(order)
    return order


def place_order(db: Session, user: User, delivery_address: str, payment_method: str,
                ip: Optional[str] = None) -> Order:
    method = _validate_checkout_input(delivery_address, payment_method)

    for attempt in range(settings.ORDER_NUMBER_MAX_ATTEMPTS):
        try:
            order = _place_once(db, user, delivery_address, method, attempt, ip)
        except _OrderNumberTaken as exc:
            logger.warning("Order number %s already taken (attempt %s), retrying", exc, attempt + 1)
            continue
        except _CartChanged as exc:
            logger.warning("Cart %s changed during checkout (attempt %s), retrying", exc, attempt + 1)
            continue
        except StoreError:
            db.rollback()
            raise
        except SQLAlchemyError:
            db.rollback()
            logger.exception("Storage error while placing order for user %s", user.id)
            raise InternalError("Error creating order")

        logger.info("Order %s placed by user %s, total=%s", order.order_number, user.id, order.total)
        write_log(db, user_id=user.id, action="ORDER_CREATE", resource="orders", ip=ip,
                  meta={**_reconciliation_details(order), "order_id": order.id, "total": str(order.total)})
        return order

    logger.error("Could not place order for user %s after %s attempts",
                 user.id, settings.ORDER_NUMBER_MAX_ATTEMPTS)
    raise InternalError("Error creating order")


def _order_query(db: Session):
    return db.query(Order).options(selectinload(Order.items))


def list_orders_for_user(db: Session, user: User) -> List[Order]:
    return (
        _order_query(db)
        .filter(Order.user_id == user.id)
        .order_by(Order.created_at.desc(), Order.id.desc())
        .all()
    )


def list_all_orders(db: Session) -> List[Order]:
    return _order_query(db).order_by(Order.created_at.desc(), Order.id.desc()).all()


def get_order(db: Session, order_id: int) -> Order:
    order = _order_query(db).filter(Order.id == order_id).first()
    if not order:
        raise NotFoundError("Order")
    return order


def get_order_for_user(db: Session, user: User, order_id: int) -> Order:
    order = get_order(db, order_id)
    if order.user_id != user.id and not user.is_admin:
        raise AccessDeniedError()
    return order


def update_order_status(db: Session, order_id: int, new_status: str) -> Order:
    try:
        target = OrderStatus(new_status)
    except ValueError:
        raise ValidationError("Invalid status")

    order = get_order(db, order_id)
    current = OrderStatus(order.status)
    if target not in ORDER_STATUS_TRANSITIONS[current]:
        raise ValidationError(f"Cannot change status from {current.value} to {target.value}")

    order.status = target.value
    db.commit()
    db.refresh(order)
    logger.info("Order %s status %s -> %s", order.order_number, current.value, target.value)
    return order
