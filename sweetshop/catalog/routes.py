# sweetshop/catalog/routes.py
from typing import List, Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from sweetshop.database import get_db
from sweetshop.auth.auth_utils import Identity
from sweetshop.auth.dependencies import get_current_user, require_admin
from sweetshop.catalog.functions import (
    get_all_sweets,
    search_sweets,
    get_sweet_by_id,
    create_sweet,
    update_sweet,
    delete_sweet,
    purchase_sweet,
    restock_sweet,
)
from sweetshop.catalog.schemas import Sweet as SweetSchema, SweetCreate, SweetUpdate, QuantityRequest

router = APIRouter(prefix="/sweets", tags=["sweets"])


@router.get("", response_model=List[SweetSchema])
async def read_sweets(identity: Identity = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    return await get_all_sweets(db)


@router.get("/search", response_model=List[SweetSchema])
async def search(
    name: Optional[str] = None,
    category: Optional[str] = None,
    min_price: Optional[float] = Query(default=None, alias="minPrice"),
    max_price: Optional[float] = Query(default=None, alias="maxPrice"),
    identity: Identity = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await search_sweets(db, name=name, category=category, min_price=min_price, max_price=max_price)


@router.post("", response_model=SweetSchema, status_code=201)
async def create_new_sweet(payload: SweetCreate, identity: Identity = Depends(get_current_user),
                           db: AsyncSession = Depends(get_db)):
    return await create_sweet(db, payload.model_dump())


@router.get("/{sweet_id}", response_model=SweetSchema)
async def read_sweet(sweet_id: int, identity: Identity = Depends(get_current_user),
                     db: AsyncSession = Depends(get_db)):
    return await get_sweet_by_id(db, sweet_id)


@router.put("/{sweet_id}", response_model=SweetSchema)
async def update_existing_sweet(sweet_id: int, payload: SweetUpdate,
                                identity: Identity = Depends(get_current_user),
                                db: AsyncSession = Depends(get_db)):
    return await update_sweet(db, sweet_id, payload.model_dump(exclude_unset=True))


@router.delete("/{sweet_id}")
async def delete_existing_sweet(sweet_id: int, identity: Identity = Depends(require_admin),
                                db: AsyncSession = Depends(get_db)):
    await delete_sweet(db, sweet_id)
    return {"message": "Sweet deleted successfully"}


@router.post("/{sweet_id}/purchase", response_model=SweetSchema)
async def purchase(sweet_id: int, payload: QuantityRequest, identity: Identity = Depends(get_current_user),
                   db: AsyncSession = Depends(get_db)):
    return await purchase_sweet(db, sweet_id, payload.quantity)


@router.post("/{sweet_id}/restock", response_model=SweetSchema)
async def restock(sweet_id: int, payload: QuantityRequest, identity: Identity = Depends(require_admin),
                  db: AsyncSession = Depends(get_db)):
    return await restock_sweet(db, sweet_id, payload.quantity)
