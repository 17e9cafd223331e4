# sweetshop/cart/routes.py
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from sweetshop.database import get_db
from sweetshop.auth.auth_utils import Identity
from sweetshop.auth.dependencies import get_current_user
from sweetshop.cart.functions import (
    get_cart_view,
    add_sweet_to_cart,
    update_sweet_quantity_in_cart,
    remove_sweet_from_cart,
    clear_user_cart,
    checkout_cart,
)
from sweetshop.cart.schemas import CartItemBase, CartItemQuantity, CartResponse, CheckoutResponse

router = APIRouter(prefix="/cart", tags=["cart"])


@router.get("", response_model=CartResponse)
async def get_cart(identity: Identity = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    return await get_cart_view(db, identity.user_id)


@router.post("/add", response_model=CartResponse)
async def add_to_cart(item: CartItemBase, identity: Identity = Depends(get_current_user),
                      db: AsyncSession = Depends(get_db)):
    return await add_sweet_to_cart(db, identity.user_id, item.sweet_id, item.quantity)


@router.put("/update/{sweet_id}", response_model=CartResponse)
async def update_cart_item_quantity(sweet_id: int, payload: CartItemQuantity,
                                    identity: Identity = Depends(get_current_user),
                                    db: AsyncSession = Depends(get_db)):
    return await update_sweet_quantity_in_cart(db, identity.user_id, sweet_id, payload.quantity)


@router.delete("/remove/{sweet_id}", response_model=CartResponse)
async def remove_from_cart(sweet_id: int, identity: Identity = Depends(get_current_user),
                           db: AsyncSession = Depends(get_db)):
    return await remove_sweet_from_cart(db, identity.user_id, sweet_id)


@router.delete("/clear", response_model=CartResponse)
async def clear_cart(identity: Identity = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    return await clear_user_cart(db, identity.user_id)


@router.post("/checkout", response_model=CheckoutResponse)
async def checkout(identity: Identity = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    return await checkout_cart(db, identity.user_id)
