from pydantic import BaseModel, Field, ConfigDict
from pydantic.alias_generators import to_camel
from typing import List, Optional

# Request schema for adding an item to the cart
class CartAddItem(BaseModel):
    book_id: int = Field(alias="bookId")
    quantity: int = Field(default=1, ge=1)

    model_config = ConfigDict(populate_by_name=True)

# Request schema for updating cart line quantity (range is enforced by the cart service)
class CartUpdateItem(BaseModel):
    quantity: int

# Response schema for a single cart line
class CartItemOut(BaseModel):
    id: int
    book_id: int
    title: str
    author: Optional[str] = None
    quantity: int
    unit_price: float
    line_total: float

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

# Response schema for the entire cart
class CartOut(BaseModel):
    id: int
    user_id: int
    items: List[CartItemOut]
    item_count: int
    total: float

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

# Envelope returned by every cart endpoint
class CartEnvelope(BaseModel):
    success: bool = True
    message: Optional[str] = None
    cart: CartOut
