# sweetshop/auth/auth_utils.py
import hashlib
import hmac
import os
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
import jwt
from dotenv import load_dotenv

from sweetshop.errors import Unauthorized

load_dotenv()

SECRET_KEY = os.getenv("JWT_SECRET", "default_secret_key")
ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", str(7 * 24 * 60)))
HASH_ITERATIONS = 100_000


@dataclass(frozen=True)
class Identity:
    """Caller identity extracted from a bearer token."""
    user_id: int
    email: str
    role: str


def has_role(identity: Identity, role: str) -> bool:
    return identity.role == role


def hash_password(password: str, salt: str = None) -> str:
    """Hash a password with a per-user salt; the result is ``salt$hexdigest``."""
    if salt is None:
        salt = secrets.token_hex(16)
    digest = hashlib.pbkdf2_hmac("sha256", password.encode(), salt.encode(), HASH_ITERATIONS)
    return f"{salt}${digest.hex()}"


def verify_password(plain_password: str, hashed_password: str) -> bool:
    salt, _, _ = hashed_password.partition("$")
    return hmac.compare_digest(hash_password(plain_password, salt), hashed_password)


def create_access_token(data: dict, expires_delta: timedelta = None):
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


def verify_token(token: str) -> Identity:
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise Unauthorized("Token has expired")
    except jwt.InvalidTokenError:
        raise Unauthorized("Invalid token")

    user_id = payload.get("id")
    role = payload.get("role")
    if user_id is None or role is None:
        raise Unauthorized("Invalid token")
    return Identity(user_id=int(user_id), email=payload.get("sub", ""), role=role)
