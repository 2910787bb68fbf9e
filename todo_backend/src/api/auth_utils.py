import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from fastapi import Depends, Header, HTTPException, Request, status
from jose import JWTError, jwt
from passlib.context import CryptContext

from src.api import config
from src.api.errors import AuthError
from src.api.models import TokenEntry, UserDocument

AUTH_ACCESS = "auth"
AUTH_HEADER = "x-auth"

_pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


# PUBLIC_INTERFACE
def hash_password(password: str) -> str:
    """Hash a plaintext password. The salt is random, so equal inputs hash differently."""
    return _pwd_context.hash(password)


# PUBLIC_INTERFACE
def verify_password(password: str, password_hash: str) -> bool:
    """Verify a plaintext password against a stored hash. Malformed hashes verify as False."""
    try:
        return _pwd_context.verify(password, password_hash)
    except (ValueError, TypeError):
        return False


def _create_access_token(payload: Dict[str, Any], expires_delta: timedelta) -> str:
    to_encode = payload.copy()
    expire = datetime.now(timezone.utc) + expires_delta
    # jti keeps two tokens minted in the same second distinct
    to_encode.update({"exp": expire, "jti": uuid.uuid4().hex})
    return jwt.encode(to_encode, config.jwt_secret(), algorithm=config.jwt_algorithm())


# PUBLIC_INTERFACE
def issue_token(user_id: str) -> str:
    """Create a signed session token for a user."""
    return _create_access_token(
        {"_id": str(user_id), "access": AUTH_ACCESS},
        expires_delta=timedelta(minutes=config.jwt_exp_minutes()),
    )


# PUBLIC_INTERFACE
def verify_token(token: str) -> str:
    """Return the user id encoded in ``token`` or raise AuthError."""
    try:
        payload = jwt.decode(token, config.jwt_secret(), algorithms=[config.jwt_algorithm()])
    except JWTError:
        raise AuthError("Invalid token")

    user_id = payload.get("_id")
    if not isinstance(user_id, str) or not user_id:
        raise AuthError("Invalid token payload")
    if payload.get("access") != AUTH_ACCESS:
        raise AuthError("Invalid token payload")
    return user_id


# Token-list helpers. They never touch the store; UserStore applies the same
# changes atomically with $push / $pull.

# PUBLIC_INTERFACE
def append_token(tokens: List[TokenEntry], token: str) -> List[TokenEntry]:
    """Return a new token list with ``token`` appended as an auth entry."""
    return list(tokens) + [TokenEntry(access=AUTH_ACCESS, token=token)]


# PUBLIC_INTERFACE
def has_token(tokens: List[TokenEntry], token: str) -> bool:
    """Revocation check: True only while the exact token is still held."""
    return any(t.access == AUTH_ACCESS and t.token == token for t in tokens)


# PUBLIC_INTERFACE
def remove_token(tokens: List[TokenEntry], token: str) -> List[TokenEntry]:
    """Return a new token list without ``token``. An absent token is not an error."""
    return [t for t in tokens if t.token != token]


def _unauthorized(detail: str = "Not authenticated") -> HTTPException:
    return HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)


# PUBLIC_INTERFACE
def get_token(x_auth: Optional[str] = Header(None, alias=AUTH_HEADER)) -> str:
    """Dependency that returns the raw token from the x-auth header."""
    if not x_auth:
        raise _unauthorized()
    return x_auth


# PUBLIC_INTERFACE
async def get_current_user(request: Request, token: str = Depends(get_token)) -> UserDocument:
    """Dependency that returns the user owning a live session token."""
    try:
        return await request.app.state.user_store.authenticate(token)
    except AuthError as e:
        raise _unauthorized(e.message)
