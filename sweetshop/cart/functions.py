# sweetshop/cart/functions.py
"""Cart aggregate and checkout.

A cart holds at most one line per sweet. Line quantities are checked against
the sweet's stock whenever they are written, and checked again at checkout
since stock may have dropped in the meantime.
"""
import logging
from sqlalchemy import update, delete
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy.orm import selectinload

from sweetshop.cart.models import Cart, CartItem
from sweetshop.cart.schemas import CartResponse, CartItemResponse
from sweetshop.catalog.functions import get_sweet_by_id, get_sweets_by_ids, adjust_quantity
from sweetshop.catalog.models import utcnow
from sweetshop.catalog.schemas import Sweet as SweetSchema
from sweetshop.errors import InvalidArgument, NotFound, InsufficientStock, EmptyCart

logger = logging.getLogger(__name__)


def _insert(db: AsyncSession, model):
    """Dialect-specific INSERT supporting ON CONFLICT clauses."""
    if db.get_bind().dialect.name == "postgresql":
        return postgresql.insert(model)
    return sqlite.insert(model)


def _require_line_quantity(quantity: int):
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
        raise InvalidArgument("Quantity must be at least 1")


async def get_cart_by_user_id(db: AsyncSession, user_id: int):
    result = await db.execute(
        select(Cart)
        .filter(Cart.user_id == user_id)
        .options(selectinload(Cart.items))
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def get_or_create_cart(db: AsyncSession, user_id: int):
    cart = await get_cart_by_user_id(db, user_id)
    if cart:
        return cart

    # a concurrent request may create the same cart; the unique user_id keeps one
    await db.execute(
        _insert(db, Cart).values(user_id=user_id).on_conflict_do_nothing(index_elements=["user_id"])
    )
    await db.commit()
    return await get_cart_by_user_id(db, user_id)


async def _touch(db: AsyncSession, cart: Cart):
    await db.execute(update(Cart).where(Cart.id == cart.id).values(updated_at=utcnow()))


def _find_line(cart: Cart, sweet_id: int):
    return next((item for item in cart.items if item.sweet_id == sweet_id), None)


async def build_cart_response(db: AsyncSession, cart: Cart) -> CartResponse:
    """Join the cart lines with the current sweet records."""
    sweets = await get_sweets_by_ids(db, {item.sweet_id for item in cart.items})
    items = []
    total = 0.0
    for item in cart.items:
        sweet = sweets.get(item.sweet_id)
        if sweet is not None:
            total += sweet.price * item.quantity
        items.append(CartItemResponse(
            sweet_id=item.sweet_id,
            quantity=item.quantity,
            sweet=SweetSchema.model_validate(sweet) if sweet is not None else None,
        ))
    return CartResponse(
        id=cart.id,
        user_id=cart.user_id,
        items=items,
        total=round(total, 2),
        created_at=cart.created_at,
        updated_at=cart.updated_at,
    )


async def get_cart_view(db: AsyncSession, user_id: int) -> CartResponse:
    cart = await get_or_create_cart(db, user_id)
    return await build_cart_response(db, cart)


async def add_sweet_to_cart(db: AsyncSession, user_id: int, sweet_id: int, quantity: int = 1):
    _require_line_quantity(quantity)
    sweet = await get_sweet_by_id(db, sweet_id)
    cart = await get_or_create_cart(db, user_id)

    existing = _find_line(cart, sweet_id)
    new_quantity = quantity + (existing.quantity if existing else 0)
    if new_quantity > sweet.quantity:
        raise InsufficientStock(f"Only {sweet.quantity} items available in stock")

    stmt = _insert(db, CartItem).values(cart_id=cart.id, sweet_id=sweet_id, quantity=new_quantity)
    await db.execute(stmt.on_conflict_do_update(
        index_elements=["cart_id", "sweet_id"],
        set_={"quantity": new_quantity},
    ))
    await _touch(db, cart)
    await db.commit()
    logger.debug("user %s cart: sweet #%s -> %d", user_id, sweet_id, new_quantity)
    return await get_cart_view(db, user_id)


async def update_sweet_quantity_in_cart(db: AsyncSession, user_id: int, sweet_id: int, quantity: int):
    _require_line_quantity(quantity)

    cart = await get_cart_by_user_id(db, user_id)
    if not cart:
        raise NotFound("Cart not found")
    if not _find_line(cart, sweet_id):
        raise NotFound("Item not found in cart")

    sweet = await get_sweet_by_id(db, sweet_id)
    if quantity > sweet.quantity:
        raise InsufficientStock(f"Only {sweet.quantity} items available in stock")

    await db.execute(
        update(CartItem)
        .where(CartItem.cart_id == cart.id, CartItem.sweet_id == sweet_id)
        .values(quantity=quantity)
    )
    await _touch(db, cart)
    await db.commit()
    return await get_cart_view(db, user_id)


async def remove_sweet_from_cart(db: AsyncSession, user_id: int, sweet_id: int):
    cart = await get_or_create_cart(db, user_id)
    if _find_line(cart, sweet_id):
        await db.execute(delete(CartItem).where(CartItem.cart_id == cart.id, CartItem.sweet_id == sweet_id))
        await _touch(db, cart)
        await db.commit()
    return await get_cart_view(db, user_id)


async def clear_user_cart(db: AsyncSession, user_id: int):
    cart = await get_cart_by_user_id(db, user_id)
    if not cart:
        raise NotFound("Cart not found")

    await db.execute(delete(CartItem).where(CartItem.cart_id == cart.id))
    await _touch(db, cart)
    await db.commit()
    return await get_cart_view(db, user_id)


async def checkout_cart(db: AsyncSession, user_id: int):
    """Turn the cart into stock decrements, all or nothing.

    Every line is validated against current stock before anything is
    written. The decrements and the emptying of the cart then share one
    transaction, so a decrement rejected by a concurrent purchase rolls
    back the ones already applied.
    """
    cart = await get_cart_by_user_id(db, user_id)
    if not cart or not cart.items:
        raise EmptyCart("Cart is empty")

    lines = [(item.sweet_id, item.quantity) for item in cart.items]
    sweets = await get_sweets_by_ids(db, {sweet_id for sweet_id, _ in lines})
    for sweet_id, quantity in lines:
        sweet = sweets.get(sweet_id)
        if sweet is None:
            raise NotFound(f"Sweet #{sweet_id} no longer exists")
        if sweet.quantity < quantity:
            raise InsufficientStock(
                f'Not enough stock for "{sweet.name}". Only {sweet.quantity} available.'
            )

    try:
        for sweet_id, quantity in lines:
            await adjust_quantity(db, sweet_id, -quantity, commit=False)
        await db.execute(delete(CartItem).where(CartItem.cart_id == cart.id))
        await _touch(db, cart)
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info("user %s checked out %d line(s)", user_id, len(lines))
    return {"message": "Checkout successful", "cart": await get_cart_view(db, user_id)}
