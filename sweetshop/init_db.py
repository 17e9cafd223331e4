# sweetshop/init_db.py
import logging
import os
from sweetshop.database import engine, Base, SessionLocal
from sweetshop.auth.functions import create_user, get_user_by_email
from sweetshop.auth.models import User, RoleEnum
from sweetshop.catalog.models import Sweet
from sweetshop.cart.models import Cart, CartItem

logger = logging.getLogger(__name__)


async def init_db():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def drop_db():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


async def seed_admin():
    """Create the admin named by SWEETSHOP_ADMIN_EMAIL if it does not exist yet."""
    email = os.getenv("SWEETSHOP_ADMIN_EMAIL")
    password = os.getenv("SWEETSHOP_ADMIN_PASSWORD")
    if not email or not password:
        return None

    async with SessionLocal() as db:
        existing = await get_user_by_email(db, email)
        if existing:
            return existing
        admin = await create_user(
            db,
            name=os.getenv("SWEETSHOP_ADMIN_NAME", "Administrator"),
            email=email,
            password=password,
            role=RoleEnum.admin,
        )
        logger.info("Seeded admin account %s", email)
        return admin
