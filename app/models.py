import uuid
from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from sqlalchemy import DateTime
from sqlmodel import Column, Field, SQLModel


def get_utc_now():
    """Helper function to get current UTC time with timezone"""
    return datetime.now(timezone.utc)


class Task(SQLModel, table=True):
    """Database model"""

    __tablename__ = "tasks"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    title: str
    description: str = Field(default="")
    category: str = Field(index=True)
    created_at: datetime = Field(
        default_factory=get_utc_now,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )


class User(SQLModel, table=True):
    __tablename__ = "users"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    uid: str | None = Field(default=None, index=True)
    email: str | None = None
    display_name: str | None = None
    created_at: datetime = Field(
        default_factory=get_utc_now,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )


class CamelModel(BaseModel):
    """Wire schema: camelCase on the way out, either case on the way in."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class TaskPayload(CamelModel):
    """Body of POST and PUT /tasks.

    Fields are optional here so that missing values surface as the API's own
    400 response instead of a schema error.
    """

    title: str | None = None
    description: str | None = None
    category: str | None = None


class TaskCategoryPayload(CamelModel):
    """Body of PATCH /tasks/{id}"""

    category: str | None = None


class TaskResponse(CamelModel):
    id: uuid.UUID
    title: str
    description: str
    category: str
    created_at: datetime


class UserPayload(CamelModel):
    """Body of POST /auth/google"""

    uid: str | None = None
    email: str | None = None
    display_name: str | None = None


class UserResponse(CamelModel):
    id: uuid.UUID
    uid: str | None = None
    email: str | None = None
    display_name: str | None = None
    created_at: datetime


class MessageResponse(BaseModel):
    message: str
