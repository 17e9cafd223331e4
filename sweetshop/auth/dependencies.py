# sweetshop/auth/dependencies.py
from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer

from sweetshop.auth.auth_utils import Identity, verify_token, has_role
from sweetshop.errors import Forbidden

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login")


def get_current_user(token: str = Depends(oauth2_scheme)) -> Identity:
    return verify_token(token)


def require_admin(identity: Identity = Depends(get_current_user)) -> Identity:
    if not has_role(identity, "admin"):
        raise Forbidden("Admin access required")
    return identity
