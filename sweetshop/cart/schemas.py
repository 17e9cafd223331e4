# sweetshop/cart/schemas.py
from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field
from sweetshop.catalog.schemas import Sweet


class CartItemBase(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    sweet_id: int = Field(alias="sweetId")
    quantity: int


class CartItemQuantity(BaseModel):
    quantity: int


class CartItemResponse(BaseModel):
    sweet_id: int
    quantity: int
    # None when the sweet was deleted after being added
    sweet: Optional[Sweet] = None


class CartResponse(BaseModel):
    id: int
    user_id: int
    items: List[CartItemResponse]
    total: float
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class CheckoutResponse(BaseModel):
    message: str
    cart: CartResponse
