from pydantic import BaseModel, Field, ConfigDict
from pydantic.alias_generators import to_camel
from typing import List, Optional
from datetime import datetime


# Output schema for an individual order line (snapshot values)
class OrderItemOut(BaseModel):
    book_id: int
    title: str
    unit_price: float
    quantity: int
    subtotal: float

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# Input schema for placing an order from the current cart
class OrderCreatePayload(BaseModel):
    delivery_address: Optional[str] = Field(default=None, alias="deliveryAddress")
    payment_method: Optional[str] = Field(default=None, alias="paymentMethod")

    model_config = ConfigDict(populate_by_name=True)

# Output schema representing the full order details
class OrderResponse(BaseModel):
    id: int
    order_number: str
    user_id: int
    status: str
    delivery_address: str
    payment_method: str
    subtotal: float
    shipping_fee: float
    delivery_fee: float
    total: float
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    items: List[OrderItemOut]

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

# Schema for updating order status
class OrderStatusPatch(BaseModel):
    status: Optional[str] = None

# Envelope for a single order
class OrderEnvelope(BaseModel):
    success: bool = True
    message: Optional[str] = None
    order: OrderResponse

# Envelope for order listings
class OrdersEnvelope(BaseModel):
    success: bool = True
    count: int
    orders: List[OrderResponse]
