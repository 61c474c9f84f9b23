from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import jwt

from examhall.core.config import settings
from examhall.core.constants import RoleEnum

ALGORITHM = "HS256"


def create_access_token(user_id: int, role: RoleEnum, expires_delta: Optional[timedelta] = None) -> str:
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode = {"user_id": user_id, "role": RoleEnum(role).value, "exp": expire}
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=ALGORITHM)


def decode_access_token(token: str) -> dict:
    return jwt.decode(token, settings.SECRET_KEY, algorithms=[ALGORITHM])
