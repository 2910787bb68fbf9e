from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from src.api.models import TodoDocument, UserDocument


class APIMessage(BaseModel):
    message: str = Field(..., description="Human readable message")


class Todo(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(..., alias="_id", description="24-char hex ObjectId")
    text: str
    completed: bool = False
    completed_at: Optional[int] = Field(None, alias="completedAt", description="Epoch ms; set iff completed")
    creator: Optional[str] = None

    @classmethod
    def from_document(cls, doc: TodoDocument) -> "Todo":
        return cls(
            id=str(doc.id),
            text=doc.text,
            completed=doc.completed,
            completed_at=doc.completed_at,
            creator=str(doc.creator) if doc.creator else None,
        )


class TodoEnvelope(BaseModel):
    todo: Todo


class TodoList(BaseModel):
    todos: List[Todo] = []


class TodoCreate(BaseModel):
    # Optional so a missing text reaches the store and fails there as a 400.
    text: Optional[str] = Field(None, description="Todo text (non-empty after trimming)")


class TodoUpdate(BaseModel):
    text: Optional[str] = None
    completed: Optional[bool] = None


class User(BaseModel):
    """Public view of an account; never carries the password hash or tokens."""

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(..., alias="_id")
    email: str

    @classmethod
    def from_document(cls, doc: UserDocument) -> "User":
        return cls(id=str(doc.id), email=doc.email)


class UserCredentials(BaseModel):
    email: Optional[str] = Field(None, description="User email address")
    password: Optional[str] = Field(None, description="Password (min 6 chars)")
