# sweetshop/auth/models.py
from enum import Enum as PyEnum
from sqlalchemy import Column, Integer, String, DateTime, Enum
from sweetshop.database import Base
from sweetshop.catalog.models import utcnow


class RoleEnum(str, PyEnum):
    user = "user"
    admin = "admin"


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)
    hashed_password = Column(String, nullable=False)
    role = Column(Enum(RoleEnum), nullable=False, default=RoleEnum.user)
    created_at = Column(DateTime(timezone=True), default=utcnow)
