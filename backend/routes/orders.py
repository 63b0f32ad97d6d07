# backend/routes/orders.py
import logging
from typing import List

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from database import get_db
from utils.tokenJWT import get_current_user, role_required
from utils.audit import write_log
from utils.http import client_ip
from models.users import User
from models.order import Order
from schemas.order import (
    OrderResponse, OrderItemOut, OrderCreatePayload, OrderStatusPatch,
    OrderEnvelope, OrdersEnvelope,
)
from services import order_placement

router = APIRouter(prefix="/orders", tags=["Orders"])
logger = logging.getLogger(__name__)

# Map Order model to OrderResponse schema
def _order_to_out(order: Order) -> OrderResponse:
    items: List[OrderItemOut] = [
        OrderItemOut(
            book_id=it.book_id,
            title=it.title,
            unit_price=float(it.unit_price),
            quantity=it.quantity,
            subtotal=float(it.subtotal),
        )
        for it in order.items
    ]
    return OrderResponse(
        id=order.id,
        order_number=order.order_number,
        user_id=order.user_id,
        status=order.status,
        delivery_address=order.delivery_address,
        payment_method=order.payment_method,
        subtotal=float(order.subtotal),
        shipping_fee=float(order.shipping_fee),
        delivery_fee=float(order.delivery_fee),
        total=float(order.total),
        created_at=order.created_at,
        updated_at=order.updated_at,
        items=items,
    )

def _list_envelope(orders: List[Order]) -> OrdersEnvelope:
    return OrdersEnvelope(success=True, count=len(orders), orders=[_order_to_out(o) for o in orders])

# Place an order from the caller's cart
@router.post("", response_model=OrderEnvelope, status_code=status.HTTP_201_CREATED)
def create_order(
    payload: OrderCreatePayload,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    order = order_placement.place_order(
        db, current_user, payload.delivery_address, payload.payment_method, ip=client_ip(request)
    )
    return OrderEnvelope(success=True, message="Order placed successfully", order=_order_to_out(order))

# List the caller's orders, newest first
@router.get("/my-orders", response_model=OrdersEnvelope)
def list_my_orders(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return _list_envelope(order_placement.list_orders_for_user(db, current_user))

# List every order (admin only)
@router.get("", response_model=OrdersEnvelope)
def list_all_orders(
    db: Session = Depends(get_db),
    current_user: User = Depends(role_required("admin"))
):
    return _list_envelope(order_placement.list_all_orders(db))

# Get details of a specific order (owner or admin)
@router.get("/{order_id}", response_model=OrderEnvelope)
def get_order_detail(
    order_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    order = order_placement.get_order_for_user(db, current_user, order_id)
    return OrderEnvelope(success=True, order=_order_to_out(order))

# Advance order status (admin only)
@router.put("/{order_id}/status", response_model=OrderEnvelope)
def update_order_status(
    order_id: int,
    payload: OrderStatusPatch,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(role_required("admin"))
):
    old_status = None
    try:
        old_status = order_placement.get_order(db, order_id).status
        order = order_placement.update_order_status(db, order_id, payload.status)
    except Exception:
        db.rollback()
        logger.warning("Status change for order %s to %r rejected", order_id, payload.status)
        write_log(db, user_id=current_user.id, action="ORDER_STATUS_CHANGE", resource="orders", status="FAIL",
                  ip=client_ip(request), meta={"order_id": order_id, "old": old_status, "new": payload.status})
        raise

    write_log(db, user_id=current_user.id, action="ORDER_STATUS_CHANGE", resource="orders", status="SUCCESS",
              ip=client_ip(request), meta={"order_id": order.id, "old": old_status, "new": order.status})
    return OrderEnvelope(success=True, message="Order status updated", order=_order_to_out(order))
