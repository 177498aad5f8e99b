from __future__ import annotations

import re
from datetime import date
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, StrictBool, StrictInt, field_validator


ISO_DATE = re.compile(r"\d{4}-\d{2}-\d{2}")


# === Entity input schemas ===
# Each model is the rule table for one payload; taskboard.validation applies it.


class EntityIn(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True, extra="ignore")


class UserCreate(EntityIn):
    name: str = Field(min_length=1, max_length=140)
    email: str = Field(max_length=320, pattern=r"^[^@\s]+@[^@\s]+$")


class BoardCreate(EntityIn):
    name: str = Field(min_length=1, max_length=140)
    adminUserId: StrictInt


class ListCreate(EntityIn):
    name: str = Field(min_length=1, max_length=140)
    boardId: int


class CardCreate(EntityIn):
    title: str = Field(min_length=5, max_length=50)
    description: str = Field(default="", max_length=255)
    due_date: date
    listId: int
    ownerUserId: Optional[StrictInt] = None

    @field_validator("due_date", mode="before")
    @classmethod
    def due_date_is_iso_string(cls, value):
        # plain YYYY-MM-DD only; no timestamps or datetimes
        if not isinstance(value, str) or not ISO_DATE.fullmatch(value.strip()):
            raise ValueError("due_date must be an ISO-8601 date string (YYYY-MM-DD)")
        return value.strip()


class CardUserCreate(EntityIn):
    cardId: int
    userId: int
    isOwner: StrictBool = False
