from __future__ import annotations

from datetime import date
from typing import Any, Optional

from pydantic import BaseModel


class ErrorEnvelope(BaseModel):
    code: str
    message: str
    details: Optional[dict[str, Any]] = None
    requestId: Optional[str] = None


class Health(BaseModel):
    status: str = "ok"


class Version(BaseModel):
    version: str


class UserOut(BaseModel):
    id: int
    name: str
    email: str


class BoardOut(BaseModel):
    id: int
    name: str
    adminUserId: int


class ListOut(BaseModel):
    id: int
    name: str
    boardId: int


class CardOut(BaseModel):
    id: int
    title: str
    description: str
    due_date: date
    listId: int


class CardDetailOut(CardOut):
    owner: Optional[UserOut] = None


class CardUserOut(BaseModel):
    cardId: int
    userId: int
    isOwner: bool


class CardAssignee(BaseModel):
    userId: int
    isOwner: bool
