"""API Dependencies - Authentication and role lookup"""
from functools import lru_cache
from typing import Dict, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer

from domain.auth import User, UserInDB
from domain.enums import UserRole
from infrastructure.security import decode_access_token, get_password_hash
from api.schemas import TokenData

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="token")

# Demo accounts, one per role; passwords are hashed on first access
fake_users_db: Dict[str, dict] = {
    "admin": {
        "username": "admin",
        "full_name": "Admin User",
        "email": "admin@example.com",
        "plain_password": "admin123",
        "role": UserRole.ADMIN,
        "disabled": False,
        "user_id": "123e4567-e89b-12d3-a456-426614174000",
    },
    "manager": {
        "username": "manager",
        "full_name": "Hotel Manager",
        "email": "manager@example.com",
        "plain_password": "manager123",
        "role": UserRole.HOTEL_MANAGER,
        "disabled": False,
        "user_id": "123e4567-e89b-12d3-a456-426614174001",
    },
    "staff": {
        "username": "staff",
        "full_name": "Front Desk",
        "email": "staff@example.com",
        "plain_password": "staff123",
        "role": UserRole.STAFF,
        "disabled": False,
        "user_id": "123e4567-e89b-12d3-a456-426614174002",
    },
    "guest": {
        "username": "guest",
        "full_name": "Guest Customer",
        "email": "guest@example.com",
        "plain_password": "guest123",
        "role": UserRole.CUSTOMER,
        "disabled": False,
        "user_id": "123e4567-e89b-12d3-a456-426614174003",
    },
}


@lru_cache(maxsize=None)
def _hashed_password(plain_password: str) -> str:
    return get_password_hash(plain_password)


def get_user(db, username: str) -> Optional[UserInDB]:
    if username not in db:
        return None
    user_dict = dict(db[username])
    if "plain_password" in user_dict:
        user_dict["hashed_password"] = _hashed_password(user_dict.pop("plain_password"))
    return UserInDB(**user_dict)


async def get_current_user(token: str = Depends(oauth2_scheme)) -> UserInDB:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    claims = decode_access_token(token)
    if claims is None or claims.get("sub") is None:
        raise credentials_exception
    token_data = TokenData(username=claims["sub"])

    user = get_user(fake_users_db, username=token_data.username)
    if user is None:
        raise credentials_exception
    return user


async def get_current_active_user(current_user: User = Depends(get_current_user)) -> User:
    if current_user.disabled:
        raise HTTPException(status_code=400, detail="Inactive user")
    return current_user
