"""User domain entity."""

from typing import Any, Final

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Largest value a signed 64-bit INTEGER column holds
MAX_INTEGER: Final = 2**63 - 1


class UserFields(BaseModel):
    """Mutable attributes shared by the stored record and the create payload."""

    name: str = Field(min_length=1, description="User's display name")
    email: str = Field(min_length=1, description="User's email address")
    age: int = Field(ge=0, le=MAX_INTEGER, description="User's age in years")
    address: str = Field(min_length=1, description="User's postal address")

    @field_validator("age", mode="before")
    @classmethod
    def _reject_bool(cls, v: Any) -> Any:
        # JSON true/false must not be read as 1/0
        if isinstance(v, bool):
            raise ValueError("Input should be a valid integer, not a boolean")
        return v


class UserCreate(UserFields):
    """Payload accepted when creating a user.

    Any ``id`` sent by the caller is ignored; the store assigns it.
    """

    model_config = ConfigDict(
        extra="ignore",
        json_schema_extra={
            "examples": [
                {
                    "name": "Ann",
                    "email": "a@x.com",
                    "age": 30,
                    "address": "1 Main St",
                }
            ]
        },
    )


class User(UserFields):
    """User record as held by the store.

    ``id`` is assigned on creation and never changes afterwards.
    """

    id: int = Field(description="Unique identifier assigned by the store")

    def mutable_fields(self) -> dict:
        return self.model_dump(exclude={"id"})
