# sweetshop/auth/functions.py
import logging
import re
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from sweetshop.auth.auth_utils import hash_password, verify_password, create_access_token
from sweetshop.auth.models import User, RoleEnum
from sweetshop.errors import ValidationError, Unauthorized

logger = logging.getLogger(__name__)

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
MIN_PASSWORD_LENGTH = 6


async def get_user_by_email(db: AsyncSession, email: str):
    result = await db.execute(select(User).filter(User.email == email.lower()))
    return result.scalar_one_or_none()


def validate_registration(name: str, email: str, password: str):
    if not name or not name.strip():
        raise ValidationError("Name is required")
    if not email or not EMAIL_RE.match(email):
        raise ValidationError("Please provide a valid email address")
    if not password or len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")


async def create_user(db: AsyncSession, name: str, email: str, password: str, role: RoleEnum = RoleEnum.user):
    validate_registration(name, email, password)
    email = email.lower()
    if await get_user_by_email(db, email):
        raise ValidationError("User already exists with this email")

    db_user = User(
        name=name.strip(),
        email=email,
        hashed_password=hash_password(password),
        role=role,
    )
    db.add(db_user)
    try:
        await db.commit()
    except IntegrityError:
        # lost a race against a concurrent registration with the same email
        await db.rollback()
        raise ValidationError("User already exists with this email")
    await db.refresh(db_user)
    logger.info("Registered user %s (role=%s)", db_user.email, db_user.role.value)
    return db_user


async def authenticate_user(db: AsyncSession, email: str, password: str):
    if not email or not password:
        raise ValidationError("Email and password are required")
    user = await get_user_by_email(db, email)
    if not user or not verify_password(password, user.hashed_password):
        raise Unauthorized("Invalid email or password")
    return user


def issue_token(user: User) -> str:
    return create_access_token({"sub": user.email, "id": user.id, "role": user.role.value})
