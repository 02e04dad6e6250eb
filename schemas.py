"""
Database Schemas for the Store Directory

MongoDB collections are defined below using Pydantic models. Each class name is
converted to lowercase for the collection name (User -> "user").

We will use these collections:
- user: registered accounts, with the stores they hearted
- store: store listings with geolocation, tags and an optional photo
- review: ratings left by users on stores

References between collections are stored as ObjectIds so the aggregation
pipelines can join on them.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from bson import ObjectId
from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _strip(value: Any) -> Any:
    return value.strip() if isinstance(value, str) else value


class User(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    email: EmailStr = Field(..., description="Unique, stored lowercased")
    name: str = Field(..., description="Display name")
    photo: Optional[str] = Field(None, description="Filename under the upload directory")
    password_hash: str = Field(..., description="BCrypt hash of password")
    reset_password_token: Optional[str] = None
    reset_password_expires: Optional[datetime] = None
    hearts: List[ObjectId] = Field(default_factory=list, description="Hearted store ids")

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, value: Any) -> Any:
        value = _strip(value)
        return value.lower() if isinstance(value, str) else value

    @field_validator("name", mode="before")
    @classmethod
    def trim_name(cls, value: Any) -> Any:
        return _strip(value)

    @field_validator("name")
    @classmethod
    def require_name(cls, value: str) -> str:
        if not value:
            raise ValueError("Please supply a name.")
        return value


class Location(BaseModel):
    type: str = Field("Point")
    coordinates: List[float] = Field(..., description="[lng, lat]")
    address: str = Field(...)

    @field_validator("coordinates")
    @classmethod
    def require_coordinates(cls, value: List[float]) -> List[float]:
        if len(value) != 2:
            raise ValueError("You must supply coordinates!")
        return value

    @field_validator("address", mode="before")
    @classmethod
    def trim_address(cls, value: Any) -> Any:
        return _strip(value)

    @field_validator("address")
    @classmethod
    def require_address(cls, value: str) -> str:
        if not value:
            raise ValueError("You must supply an address!")
        return value


class Store(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    name: str = Field(...)
    slug: Optional[str] = None
    description: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    created: datetime = Field(default_factory=_now)
    location: Location
    photo: Optional[str] = None
    author: ObjectId

    @field_validator("name", "description", mode="before")
    @classmethod
    def trim(cls, value: Any) -> Any:
        return _strip(value)

    @field_validator("name")
    @classmethod
    def require_name(cls, value: str) -> str:
        if not value:
            raise ValueError("Please enter a store name!")
        return value

    @field_validator("tags")
    @classmethod
    def drop_blank_tags(cls, value: List[str]) -> List[str]:
        return [t.strip() for t in value if t and t.strip()]


class Review(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    author: ObjectId
    store: ObjectId
    text: str = Field(..., min_length=1)
    rating: int = Field(..., ge=1, le=5)
    created: datetime = Field(default_factory=_now)

    @field_validator("text", mode="before")
    @classmethod
    def trim_text(cls, value: Any) -> Any:
        return _strip(value)


# Request/Response Models

class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: Dict[str, Any]


class ReviewRequest(BaseModel):
    text: str
    rating: int = Field(..., ge=1, le=5)
