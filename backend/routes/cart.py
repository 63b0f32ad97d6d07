# backend/routes/cart.py
from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session
from database import get_db
from utils.tokenJWT import get_current_user
from utils.audit import write_log
from utils.http import client_ip
from models.users import User
from models.cart import Cart
from schemas.cart import CartAddItem, CartUpdateItem, CartOut, CartItemOut, CartEnvelope
from services import cart_ledger

router = APIRouter(prefix="/cart", tags=["Cart"])

def _cart_to_out(cart: Cart) -> CartOut:
    items_out = []
    for it in cart.items:
        items_out.append(CartItemOut(
            id=it.id,
            book_id=it.book_id,
            title=it.book.title if it.book else "",
            author=it.book.author if it.book else None,
            quantity=it.quantity,
            unit_price=float(it.unit_price), # Price captured when the line was added
            line_total=float(it.line_total),
        ))
    return CartOut(
        id=cart.id,
        user_id=cart.user_id,
        items=items_out,
        item_count=cart.item_count,
        total=float(cart.total or 0),
    )

def _envelope(cart: Cart, message: str = None) -> CartEnvelope:
    return CartEnvelope(success=True, message=message, cart=_cart_to_out(cart))

@router.get("", response_model=CartEnvelope)
def get_cart(
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    cart = cart_ledger.get_cart(db, current_user)
    out = _envelope(cart)

    # Log cart view action
    write_log(
        db,
        user_id=current_user.id,
        action="CART_VIEW",
        resource="cart",
        status="SUCCESS",
        ip=client_ip(request),
        meta={"items": len(out.cart.items), "total": out.cart.total},
    )
    return out

@router.post("/add", response_model=CartEnvelope)
def add_to_cart(
    payload: CartAddItem,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    cart = cart_ledger.add_item(db, current_user, payload.book_id, payload.quantity)
    out = _envelope(cart, "Item added to cart")
    write_log(
        db,
        user_id=current_user.id,
        action="CART_ADD",
        resource="cart",
        status="SUCCESS",
        ip=client_ip(request),
        meta={"book_id": payload.book_id, "quantity": payload.quantity, "cart_items": len(out.cart.items), "total": out.cart.total},
    )
    return out

@router.put("/update/{line_id}", response_model=CartEnvelope)
def update_cart_item(
    line_id: int,
    payload: CartUpdateItem,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    cart = cart_ledger.update_item(db, current_user, line_id, payload.quantity)
    out = _envelope(cart, "Cart updated")
    write_log(
        db,
        user_id=current_user.id,
        action="CART_UPDATE",
        resource="cart",
        status="SUCCESS",
        ip=client_ip(request),
        meta={"line_id": line_id, "quantity": payload.quantity, "total": out.cart.total},
    )
    return out

@router.delete("/remove/{line_id}", response_model=CartEnvelope)
def remove_cart_item(
    line_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    cart = cart_ledger.remove_item(db, current_user, line_id)
    out = _envelope(cart, "Item removed from cart")
    write_log(
        db,
        user_id=current_user.id,
        action="CART_REMOVE",
        resource="cart",
        status="SUCCESS",
        ip=client_ip(request),
        meta={"line_id": line_id, "cart_items": len(out.cart.items), "total": out.cart.total},
    )
    return out

@router.delete("/clear", response_model=CartEnvelope)
def clear_cart(
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    cart = cart_ledger.clear_cart(db, current_user)
    out = _envelope(cart, "Cart cleared")
    write_log(
        db,
        user_id=current_user.id,
        action="CART_CLEAR",
        resource="cart",
        status="SUCCESS",
        ip=client_ip(request),
        meta={"cart_id": cart.id},
    )
    return out
