import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from bson import ObjectId
from bson.errors import InvalidId
from fastapi import Depends, HTTPException, Request, Response
from passlib.context import CryptContext
from pydantic import BaseModel

import config
from database import get_db

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

SESSION_MAX_AGE = timedelta(days=config.SESSION_MAX_AGE_DAYS)


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, hashed: Optional[str]) -> bool:
    if not hashed:
        return False
    return pwd_context.verify(password, hashed)


def random_password_hash() -> str:
    """Hash of a throwaway password for accounts created without one."""
    return hash_password(secrets.token_urlsafe(12))


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (expires_delta or SESSION_MAX_AGE)
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, config.JWT_SECRET, algorithm=config.JWT_ALG)


def set_session_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        config.SESSION_COOKIE,
        token,
        max_age=int(SESSION_MAX_AGE.total_seconds()),
        httponly=True,
        secure=config.SESSION_COOKIE_SECURE,
        samesite="lax",
    )


def clear_session_cookie(response: Response) -> None:
    response.delete_cookie(config.SESSION_COOKIE)


class TokenData(BaseModel):
    user_id: str
    role: str
    email: Optional[str] = None
    name: Optional[str] = None


def _token_from_request(request: Request) -> Optional[str]:
    authorization = request.headers.get("authorization")
    if authorization:
        scheme, _, token = authorization.partition(" ")
        if scheme.lower() == "bearer" and token.strip():
            return token.strip()
    return request.cookies.get(config.SESSION_COOKIE)


def _load_session(token: str) -> TokenData:
    try:
        payload = jwt.decode(token, config.JWT_SECRET, algorithms=[config.JWT_ALG])
        user_id = ObjectId(str(payload["sub"]))
    except (jwt.PyJWTError, InvalidId, KeyError):
        raise HTTPException(status_code=401, detail="Invalid token")
    # the stored role wins over whatever the token carries
    user = get_db()["user"].find_one({"_id": user_id})
    if not user:
        raise HTTPException(status_code=401, detail="Account no longer exists")
    return TokenData(user_id=str(user["_id"]), role=user.get("role", "MODEL"),
                     email=user.get("email"), name=user.get("name"))


async def get_optional_user(request: Request) -> Optional[TokenData]:
    token = _token_from_request(request)
    if not token:
        return None
    try:
        return _load_session(token)
    except HTTPException:
        return None


async def get_current_user(request: Request) -> TokenData:
    token = _token_from_request(request)
    if not token:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return _load_session(token)


def require_role(*roles: str):
    """Dependency factory guarding a route by account role."""

    async def guard(user: TokenData = Depends(get_current_user)) -> TokenData:
        if roles and user.role not in roles:
            logger.warning("Account %s with role %s denied, needs %s", user.user_id, user.role, "/".join(roles))
            raise HTTPException(status_code=403, detail="Not authorized")
        return user

    return guard


require_admin = require_role("ADMIN")
require_model = require_role("MODEL")
require_brand = require_role("BRAND")
