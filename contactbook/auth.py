"""Authentication routes and helpers: registration, login, logout and the
current-user dependency."""

import logging
import time
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any

from fastapi import APIRouter, Depends, Request, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from passlib.context import CryptContext
import redis.asyncio as redis
from redis.exceptions import RedisError
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from . import crud, schemas
from .core import get_settings
from .database import get_db
from .errors import AuthenticationError, UnexpectedError, ValidationError
from .models import User
from .payload import read_payload
from .responses import envelope
from .validation import validate_login, validate_registration

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/login", auto_error=False)
router = APIRouter(tags=["auth"])


class MemoryCache:
    """Simple in-memory cache used when Redis is unavailable."""

    def __init__(self):
        self.store: dict[str, tuple[str, float | None]] = {}

    async def get(self, key: str) -> str | None:
        """
        Retrieve a value from in-memory cache.

        Args:
            key (str): Cache key.

        Returns:
            str | None: Cached value if present and not expired.
        """
        entry = self.store.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if expires_at is not None and expires_at <= time.monotonic():
            self.store.pop(key, None)
            return None
        return value

    async def set(self, key: str, value: str, ex: int | None = None):
        """
        Store a value in in-memory cache.

        Args:
            key (str): Cache key.
            value (str): Value to store.
            ex (int | None): Expiration time in seconds.
        """
        now = time.monotonic()
        for stale in [
            k for k, (_, exp) in self.store.items() if exp is not None and exp <= now
        ]:
            del self.store[stale]
        expires_at = now + ex if ex else None
        self.store[key] = (value, expires_at)


_cache_client: Any | None = None


async def get_cache_client():
    """
    Return a Redis client or an in-memory fallback cache.

    Returns:
        Redis | MemoryCache: Cache backend instance.
    """
    global _cache_client
    if _cache_client is not None:
        return _cache_client
    settings = get_settings()
    try:
        client = redis.from_url(
            settings.REDIS_URL,
            encoding="utf-8",
            decode_responses=True,
            socket_connect_timeout=1,
        )
        await client.ping()
        _cache_client = client
    except (RedisError, OSError):
        logger.warning("Redis unavailable at %s; using in-memory cache", settings.REDIS_URL)
        _cache_client = MemoryCache()
    return _cache_client


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Compare a plain password with its hashed value."""
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    """Generate a password hash using the configured context."""
    return pwd_context.hash(password)


def create_access_token(data: dict, expires_delta: timedelta | None = None) -> str:
    """Create a signed JWT access token with a unique ``jti``."""
    settings = get_settings()
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    to_encode.update({"exp": expire, "scope": "access", "jti": uuid.uuid4().hex})
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_token(token: str) -> schemas.TokenData:
    """
    Decode and check an access token.

    Raises:
        AuthenticationError: If the token is malformed, expired or not an
            access token.
    """
    settings = get_settings()
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        raise AuthenticationError("Unauthenticated.")
    token_data = schemas.TokenData(**payload)
    if token_data.sub is None or token_data.scope != "access" or not token_data.jti:
        raise AuthenticationError("Unauthenticated.")
    return token_data


async def revoke_token(token: str) -> None:
    """Put the token on the denylist until it would have expired anyway."""
    token_data = decode_token(token)
    ttl = 1
    if token_data.exp is not None:
        ttl = max(1, int(token_data.exp.timestamp() - time.time()))
    client = await get_cache_client()
    await client.set(f"revoked:{token_data.jti}", "1", ex=ttl)


async def is_revoked(token_data: schemas.TokenData) -> bool:
    client = await get_cache_client()
    return await client.get(f"revoked:{token_data.jti}") is not None


async def get_current_user(
    token: str | None = Depends(oauth2_scheme), db: Session = Depends(get_db)
) -> User:
    """Dependency that returns authenticated user from a bearer token."""

    if not token:
        raise AuthenticationError("Unauthenticated.")
    token_data = decode_token(token)
    if await is_revoked(token_data):
        raise AuthenticationError("Unauthenticated.")
    user = crud.get_user_by_email(db, email=token_data.sub)
    if user is None:
        raise AuthenticationError("Unauthenticated.")
    return user


def _user_payload(user: User) -> dict:
    return schemas.UserOut.model_validate(user).model_dump()


def _token_payload(user: User) -> dict:
    return {
        "user": _user_payload(user),
        "token": create_access_token({"sub": user.email}),
        "token_type": "Bearer",
    }


@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(request: Request, db: Session = Depends(get_db)):
    """Register a new user and return it with an access token."""

    data, _ = await read_payload(request)
    user_in = validate_registration(data)
    if crud.get_user_by_email(db, user_in.email):
        raise ValidationError({"email": ["The email has already been taken."]})
    try:
        user = crud.create_user(db, user_in, get_password_hash(user_in.password))
    except IntegrityError:
        db.rollback()
        raise ValidationError({"email": ["The email has already been taken."]})
    except Exception as exc:
        logger.exception("Registration failed for %s", user_in.email)
        db.rollback()
        raise UnexpectedError("Failed to register user") from exc
    logger.info("Registered user %s", user.id)
    return envelope(
        data=_token_payload(user),
        message="User registered successfully",
        status_code=status.HTTP_201_CREATED,
    )


@router.post("/login")
async def login(request: Request, db: Session = Depends(get_db)):
    """Authenticate user and return it with an access token."""

    data, _ = await read_payload(request)
    credentials = validate_login(data)
    try:
        user = crud.get_user_by_email(db, credentials.email)
    except Exception as exc:
        logger.exception("Login lookup failed")
        raise UnexpectedError("Failed to log in") from exc
    if not user or not verify_password(credentials.password, user.hashed_password):
        logger.warning("Failed login attempt for %s", credentials.email)
        raise AuthenticationError("Invalid credentials")
    return envelope(data=_token_payload(user), message="Login successful")


@router.post("/logout")
async def logout(
    token: str | None = Depends(oauth2_scheme),
    current_user: User = Depends(get_current_user),
):
    """Revoke the bearer token used for this request."""

    await revoke_token(token)
    logger.info("User %s logged out", current_user.id)
    return envelope(message="Logout successful")


@router.get("/me")
@router.get("/user")
def read_me(current_user: User = Depends(get_current_user)):
    """
    Retrieve details of the currently authenticated user.

    Args:
        current_user (User): Authenticated user obtained from the token.

    Returns:
        JSONResponse: Envelope with the user profile.
    """
    return envelope(data=_user_payload(current_user))
