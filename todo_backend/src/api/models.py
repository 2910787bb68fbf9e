"""
Beanie document models for the todos and users collections.
"""
from typing import Annotated, List, Optional

from beanie import Document, Indexed, PydanticObjectId
from pydantic import BaseModel, Field


class TokenEntry(BaseModel):
    access: str = "auth"
    token: str


class TodoDocument(Document):
    text: str
    completed: bool = False
    # epoch milliseconds; set iff completed
    completed_at: Optional[int] = None
    creator: Optional[PydanticObjectId] = None

    class Settings:
        name = "todos"
        use_cache = False


class UserDocument(Document):
    email: Annotated[str, Indexed(unique=True)]
    password_hash: str = Field(repr=False)
    tokens: List[TokenEntry] = Field(default_factory=list, repr=False)

    class Settings:
        name = "users"
        use_cache = False


DOCUMENT_MODELS = [TodoDocument, UserDocument]
