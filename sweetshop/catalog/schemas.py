# sweetshop/catalog/schemas.py
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict


class SweetBase(BaseModel):
    name: str
    category: str
    price: float
    quantity: int
    description: Optional[str] = None
    image_url: Optional[str] = None


class Sweet(SweetBase):
    model_config = ConfigDict(from_attributes=True)

    id: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


# Required fields are checked by validate_sweet_fields so that every
# rule reports through the same error messages on create and update.
class SweetCreate(BaseModel):
    name: Optional[str] = None
    category: Optional[str] = None
    price: Optional[float] = None
    quantity: Optional[int] = None
    description: Optional[str] = None
    image_url: Optional[str] = None


class SweetUpdate(SweetCreate):
    pass


class QuantityRequest(BaseModel):
    quantity: int
