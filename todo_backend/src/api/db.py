import logging
from typing import Any, Optional, Type

from beanie import init_beanie
from motor.motor_asyncio import AsyncIOMotorClient

from src.api import config
from src.api.models import DOCUMENT_MODELS, TodoDocument, UserDocument

logger = logging.getLogger(__name__)

# init_beanie binds the document classes process-wide, so only one handle
# may own them at a time.
_bound: Optional["Database"] = None


class Database:
    """
    Handle on the document store shared by the entity stores.

    The Motor client is created (or injected) up front; Beanie is bound to the
    database on ``open()`` and the client is released on ``close()``. Stores
    reach the document classes through ``todos`` / ``users``, which refuse to
    hand them out unless this handle is the one they are bound to.

    Example:
        db = Database("mongodb://localhost:27017", "TodoApp")
        await db.open()
        ...
        db.close()
    """

    def __init__(self, uri: Optional[str] = None, name: Optional[str] = None, client: Any = None):
        self.uri = uri or config.mongodb_uri()
        self.name = name or config.mongodb_db()
        # Any Motor-compatible client works here (tests pass an in-memory one).
        self.client = client if client is not None else AsyncIOMotorClient(self.uri)
        self._is_initialized = False

    @property
    def is_open(self) -> bool:
        return self._is_initialized and _bound is self

    # PUBLIC_INTERFACE
    async def open(self) -> None:
        """
        Bind the document models to this database. Safe to call more than once.

        Raises RuntimeError while another open handle still owns the models.
        """
        global _bound
        if self.is_open:
            return
        if _bound is not None and _bound.is_open:
            raise RuntimeError(
                f"Document models are already bound to database '{_bound.name}'; close that handle first."
            )
        await init_beanie(database=self.client[self.name], document_models=DOCUMENT_MODELS)
        self._is_initialized = True
        _bound = self
        logger.info("Connected to document store database '%s'", self.name)

    # PUBLIC_INTERFACE
    def close(self) -> None:
        """Close the client and release the models. Motor's close() is not async."""
        global _bound
        self.client.close()
        self._is_initialized = False
        if _bound is self:
            _bound = None
        logger.info("Closed document store connection")

    # PUBLIC_INTERFACE
    async def drop(self) -> None:
        """Drop the whole database. Used for test teardown."""
        await self.client.drop_database(self.name)

    def _require_open(self) -> None:
        if not self.is_open:
            raise RuntimeError(f"Database handle '{self.name}' is not open")

    @property
    def todos(self) -> Type[TodoDocument]:
        self._require_open()
        return TodoDocument

    @property
    def users(self) -> Type[UserDocument]:
        self._require_open()
        return UserDocument
