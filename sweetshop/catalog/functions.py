# sweetshop/catalog/functions.py
"""Inventory store: sweet records and the stock-mutating operations.

Every change to ``Sweet.quantity`` after creation goes through
``adjust_quantity``, a single conditional UPDATE that refuses to drive the
stock below zero.
"""
import logging
import math
from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from sweetshop.catalog.models import Sweet, utcnow
from sweetshop.errors import ValidationError, InvalidArgument, NotFound, InsufficientStock

logger = logging.getLogger(__name__)

SWEET_FIELDS = ("name", "category", "price", "quantity", "description", "image_url")


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def validate_sweet_fields(fields: dict):
    """Raise ValidationError for the first field that breaks a catalog rule."""
    name = fields.get("name")
    if not isinstance(name, str) or not name.strip():
        raise ValidationError("Sweet name is required")
    category = fields.get("category")
    if not isinstance(category, str) or not category.strip():
        raise ValidationError("Category is required")
    price = fields.get("price")
    if not _is_number(price) or not math.isfinite(price) or price < 0:
        raise ValidationError("Price must be a non-negative number")
    quantity = fields.get("quantity")
    if not isinstance(quantity, int) or isinstance(quantity, bool) or quantity < 0:
        raise ValidationError("Quantity must be a non-negative integer")


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


async def find_sweet(db: AsyncSession, sweet_id: int):
    result = await db.execute(
        select(Sweet).filter(Sweet.id == sweet_id).execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def get_sweet_by_id(db: AsyncSession, sweet_id: int):
    sweet = await find_sweet(db, sweet_id)
    if not sweet:
        raise NotFound("Sweet not found")
    return sweet


async def get_sweets_by_ids(db: AsyncSession, sweet_ids):
    if not sweet_ids:
        return {}
    result = await db.execute(
        select(Sweet).filter(Sweet.id.in_(list(sweet_ids))).execution_options(populate_existing=True)
    )
    return {sweet.id: sweet for sweet in result.scalars().all()}


async def search_sweets(db: AsyncSession, name: str = None, category: str = None,
                        min_price: float = None, max_price: float = None):
    query = select(Sweet)
    if name:
        query = query.filter(Sweet.name.ilike(f"%{_escape_like(name)}%", escape="\\"))
    if category:
        query = query.filter(Sweet.category.ilike(f"%{_escape_like(category)}%", escape="\\"))
    if min_price is not None:
        query = query.filter(Sweet.price >= min_price)
    if max_price is not None:
        query = query.filter(Sweet.price <= max_price)

    result = await db.execute(query.order_by(Sweet.created_at.desc(), Sweet.id.desc()))
    sweets = result.scalars().all()
    logger.debug("search name=%r category=%r price=[%s, %s] -> %d sweets",
                 name, category, min_price, max_price, len(sweets))
    return sweets


async def get_all_sweets(db: AsyncSession):
    return await search_sweets(db)


async def create_sweet(db: AsyncSession, fields: dict):
    fields = {key: fields.get(key) for key in SWEET_FIELDS}
    validate_sweet_fields(fields)
    fields["name"] = fields["name"].strip()
    fields["category"] = fields["category"].strip()

    new_sweet = Sweet(**fields)
    db.add(new_sweet)
    await db.commit()
    await db.refresh(new_sweet)
    logger.debug("Created sweet #%s %r", new_sweet.id, new_sweet.name)
    return new_sweet


async def update_sweet(db: AsyncSession, sweet_id: int, changes: dict):
    sweet = await get_sweet_by_id(db, sweet_id)

    merged = {key: getattr(sweet, key) for key in SWEET_FIELDS}
    merged.update({key: value for key, value in changes.items() if key in SWEET_FIELDS})
    validate_sweet_fields(merged)
    merged["name"] = merged["name"].strip()
    merged["category"] = merged["category"].strip()

    # stock changes by the difference from the value read here, via adjust_quantity
    delta = merged.pop("quantity") - sweet.quantity
    for key, value in merged.items():
        setattr(sweet, key, value)
    try:
        await db.flush()
        if delta:
            await adjust_quantity(db, sweet_id, delta, commit=False)
        await db.commit()
    except Exception:
        await db.rollback()
        raise
    await db.refresh(sweet)
    return sweet


async def delete_sweet(db: AsyncSession, sweet_id: int):
    sweet = await get_sweet_by_id(db, sweet_id)
    await db.delete(sweet)
    await db.commit()
    logger.info("Deleted sweet #%s %r", sweet_id, sweet.name)
    return sweet


async def adjust_quantity(db: AsyncSession, sweet_id: int, delta: int, commit: bool = True):
    """Atomically apply ``quantity += delta`` unless the result would be negative.

    With ``commit=False`` the update joins the caller's open transaction and
    the caller decides whether to commit or roll back.
    """
    result = await db.execute(
        update(Sweet)
        .where(Sweet.id == sweet_id, Sweet.quantity + delta >= 0)
        .values(quantity=Sweet.quantity + delta, updated_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        sweet = await get_sweet_by_id(db, sweet_id)
        logger.warning("Rejected stock change %+d on sweet #%s (available %s)",
                       delta, sweet_id, sweet.quantity)
        raise InsufficientStock(
            f'Insufficient quantity in stock for "{sweet.name}". Only {sweet.quantity} available.'
        )
    if commit:
        await db.commit()
    return await get_sweet_by_id(db, sweet_id)


def _require_positive(quantity: int):
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
        raise InvalidArgument("Quantity must be a positive number")


async def purchase_sweet(db: AsyncSession, sweet_id: int, quantity: int):
    _require_positive(quantity)
    return await adjust_quantity(db, sweet_id, -quantity)


async def restock_sweet(db: AsyncSession, sweet_id: int, quantity: int):
    _require_positive(quantity)
    sweet = await adjust_quantity(db, sweet_id, quantity)
    logger.info("Restocked sweet #%s by %d (now %d)", sweet_id, quantity, sweet.quantity)
    return sweet
