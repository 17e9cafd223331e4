# sweetshop/auth/schemas.py
from pydantic import BaseModel, ConfigDict
from sweetshop.auth.models import RoleEnum


class RegisterRequest(BaseModel):
    name: str
    email: str
    password: str


class LoginRequest(BaseModel):
    email: str
    password: str


class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    email: str
    role: RoleEnum


class AuthResponse(BaseModel):
    token: str
    user: UserOut
