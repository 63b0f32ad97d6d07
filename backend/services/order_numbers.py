# backend/services/order_numbers.py
"""
Human-readable order numbers: ``AKLAT-<epoch millis>-<4-digit sequence>``.

The sequence comes from the current order count, which concurrent checkouts
can read at the same time. The UNIQUE constraint on ``orders.order_number``
catches such collisions and order placement retries with a fresh number
(``attempt`` shifts the sequence so a retry never reuses the same value).
"""
import threading
import time

from sqlalchemy import func
from sqlalchemy.orm import Session

from config import settings
from models.order import Order

_clock_lock = threading.Lock()
_last_millis = 0


def next_timestamp_millis() -> int:
    """Wall-clock milliseconds that never go backwards within this process."""
    global _last_millis
    with _clock_lock:
        now = time.time_ns() // 1_000_000
        if now < _last_millis:
            now = _last_millis
        _last_millis = now
        return now


def format_order_number(millis: int, sequence: int, prefix: str = None) -> str:
    prefix = prefix or settings.ORDER_NUMBER_PREFIX
    return f"{prefix}-{millis}-{sequence:04d}"


def generate_order_number(db: Session, attempt: int = 0) -> str:
    count = db.query(func.count(Order.id)).scalar() or 0
    return format_order_number(next_timestamp_millis(), count + 1 + attempt)
