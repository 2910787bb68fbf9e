import logging
from typing import Optional, Tuple

from beanie import PydanticObjectId
from bson import ObjectId
from email_validator import EmailNotValidError, validate_email
from passlib.utils import MAX_PASSWORD_SIZE
from pymongo.errors import DuplicateKeyError

from src.api.auth_utils import (
    AUTH_ACCESS,
    append_token,
    has_token,
    hash_password,
    issue_token,
    remove_token,
    verify_password,
    verify_token,
)
from src.api.db import Database
from src.api.errors import AuthError, ConflictError, ValidationError
from src.api.models import TokenEntry, UserDocument

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6


def normalize_email(email: Optional[str]) -> str:
    """Trim and lower-case an email; lookups and uniqueness are case-insensitive."""
    if not isinstance(email, str):
        return ""
    return email.strip().lower()


def _validated_email(email: Optional[str]) -> str:
    normalized = normalize_email(email)
    try:
        validate_email(normalized, check_deliverability=False)
    except EmailNotValidError:
        raise ValidationError(f"{normalized or email!r} is not a valid email")
    return normalized


def _validated_password(password: Optional[str]) -> str:
    if not isinstance(password, str) or len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    # passlib refuses to hash anything longer
    if len(password.encode("utf-8")) > MAX_PASSWORD_SIZE:
        raise ValidationError(f"Password must be at most {MAX_PASSWORD_SIZE} bytes")
    return password


class UserStore:
    """
    Persistence and authentication for user accounts.

    Session tokens live inside the user document. A new account is inserted
    with its first token already in place; later tokens are appended with
    ``$push`` and removed with ``$pull`` so concurrent logins never drop each
    other's tokens. The in-memory copy is kept in step with the pure helpers
    from ``auth_utils``.
    """

    def __init__(self, database: Database):
        self.database = database

    # PUBLIC_INTERFACE
    async def count(self) -> int:
        return await self.database.users.find_all().count()

    # PUBLIC_INTERFACE
    async def find_by_email(self, email: Optional[str]) -> Optional[UserDocument]:
        users = self.database.users
        return await users.find_one(users.email == normalize_email(email))

    async def _issue_auth_token(self, user: UserDocument) -> str:
        users = self.database.users
        token = issue_token(str(user.id))
        entry = TokenEntry(access=AUTH_ACCESS, token=token)
        await users.find_one(users.id == user.id).update(
            {"$push": {"tokens": entry.model_dump()}}
        )
        user.tokens = append_token(user.tokens, token)
        return token

    # PUBLIC_INTERFACE
    async def register(self, email: Optional[str], password: Optional[str]) -> Tuple[UserDocument, str]:
        """Create an account and its first session token in one insert."""
        email = _validated_email(email)
        password = _validated_password(password)

        if await self.find_by_email(email) is not None:
            raise ConflictError("Email already registered")

        user_id = PydanticObjectId()
        token = issue_token(str(user_id))
        user = self.database.users(
            id=user_id,
            email=email,
            password_hash=hash_password(password),
            tokens=append_token([], token),
        )
        try:
            await user.insert()
        except DuplicateKeyError:
            # Lost a race with a concurrent registration.
            raise ConflictError("Email already registered")

        logger.info("Registered user %s", user.id)
        return user, token

    # PUBLIC_INTERFACE
    async def login(self, email: Optional[str], password: Optional[str]) -> Tuple[UserDocument, str]:
        """
        Check credentials and open an additional session.

        Unknown email and wrong password raise the same AuthError.
        """
        user = await self.find_by_email(email)
        if user is None or not isinstance(password, str) or not verify_password(password, user.password_hash):
            logger.warning("Failed login attempt")
            raise AuthError("Invalid credentials")

        token = await self._issue_auth_token(user)
        logger.info("User %s logged in", user.id)
        return user, token

    # PUBLIC_INTERFACE
    async def authenticate(self, token: str) -> UserDocument:
        """Return the user for a signed token that has not been revoked."""
        user_id = verify_token(token)
        if not ObjectId.is_valid(user_id):
            raise AuthError("Invalid token payload")

        user = await self.database.users.get(ObjectId(user_id))
        if user is None or not has_token(user.tokens, token):
            raise AuthError("Invalid token")
        return user

    # PUBLIC_INTERFACE
    async def logout(self, user: UserDocument, token: str) -> None:
        """Revoke one session token. Removing an absent token is a no-op."""
        users = self.database.users
        await users.find_one(users.id == user.id).update(
            {"$pull": {"tokens": {"token": token}}}
        )
        user.tokens = remove_token(user.tokens, token)
        logger.info("User %s logged out one session", user.id)
