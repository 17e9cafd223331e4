# sweetshop/auth/routes.py
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from sweetshop.database import get_db
from sweetshop.auth.functions import create_user, authenticate_user, issue_token
from sweetshop.auth.schemas import RegisterRequest, LoginRequest, AuthResponse, UserOut

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/register", response_model=AuthResponse, status_code=201)
async def register(payload: RegisterRequest, db: AsyncSession = Depends(get_db)):
    user = await create_user(db, name=payload.name, email=payload.email, password=payload.password)
    return AuthResponse(token=issue_token(user), user=UserOut.model_validate(user))


@router.post("/login", response_model=AuthResponse)
async def login(payload: LoginRequest, db: AsyncSession = Depends(get_db)):
    user = await authenticate_user(db, payload.email, payload.password)
    return AuthResponse(token=issue_token(user), user=UserOut.model_validate(user))
