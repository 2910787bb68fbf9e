import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from beanie import PydanticObjectId, UpdateResponse
from bson import ObjectId

from src.api.db import Database
from src.api.errors import NotFoundError, ValidationError
from src.api.models import TodoDocument

logger = logging.getLogger(__name__)


def _now_ms() -> int:
    return int(datetime.now(timezone.utc).timestamp() * 1000)


def _clean_text(text: Optional[str]) -> str:
    if not isinstance(text, str) or not text.strip():
        raise ValidationError("Todo text is required")
    return text.strip()


def to_object_id(raw_id: str, entity: str = "Todo") -> PydanticObjectId:
    """Parse a path id. Malformed ids are reported exactly like missing ones."""
    if not isinstance(raw_id, str) or not ObjectId.is_valid(raw_id):
        raise NotFoundError(f"{entity} not found")
    return PydanticObjectId(raw_id)


class TodoStore:
    """
    Persistence for todo items.

    Every mutation is a single-document operation, so the completedAt
    invariant is applied in the same write that changes ``completed``.
    """

    def __init__(self, database: Database):
        self.database = database

    # PUBLIC_INTERFACE
    async def create(self, text: Optional[str], creator: Optional[PydanticObjectId] = None) -> TodoDocument:
        """Insert a new todo. Raises ValidationError for blank text."""
        todo = self.database.todos(text=_clean_text(text), creator=creator)
        await todo.insert()
        logger.debug("Created todo %s", todo.id)
        return todo

    # PUBLIC_INTERFACE
    async def list_all(self) -> List[TodoDocument]:
        return await self.database.todos.find_all().to_list()

    # PUBLIC_INTERFACE
    async def count(self) -> int:
        return await self.database.todos.find_all().count()

    # PUBLIC_INTERFACE
    async def get_by_id(self, todo_id: str) -> TodoDocument:
        oid = to_object_id(todo_id)
        todo = await self.database.todos.get(oid)
        if todo is None:
            raise NotFoundError("Todo not found")
        return todo

    # PUBLIC_INTERFACE
    async def update(
        self,
        todo_id: str,
        text: Optional[str] = None,
        completed: Optional[bool] = None,
    ) -> TodoDocument:
        """
        Apply a partial update and return the new document.

        completed=True stamps completedAt with the current time, completed=False
        clears it; when completed is omitted both fields are left alone. A
        missing todo is reported as NotFoundError even when the text is blank.
        """
        oid = to_object_id(todo_id)
        todos = self.database.todos

        changes: Dict[str, Any] = {}
        if text is not None:
            try:
                changes["text"] = _clean_text(text)
            except ValidationError:
                await self.get_by_id(todo_id)
                raise
        if completed is not None:
            changes["completed"] = completed
            changes["completed_at"] = _now_ms() if completed else None

        if not changes:
            return await self.get_by_id(todo_id)

        todo = await todos.find_one(todos.id == oid).update(
            {"$set": changes},
            response_type=UpdateResponse.NEW_DOCUMENT,
        )
        if todo is None:
            raise NotFoundError("Todo not found")
        logger.debug("Updated todo %s fields=%s", oid, sorted(changes))
        return todo

    # PUBLIC_INTERFACE
    async def delete_by_id(self, todo_id: str) -> TodoDocument:
        """Physically remove a todo and return what was stored."""
        todo = await self.get_by_id(todo_id)
        result = await todo.delete()
        # Someone else removed it between the read and the delete.
        if result is not None and result.deleted_count == 0:
            raise NotFoundError("Todo not found")
        logger.debug("Deleted todo %s", todo.id)
        return todo
