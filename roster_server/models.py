# roster_server/models.py

from typing import Any, Dict, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class PresenceRecord(BaseModel):
    """One live connection that has joined the roster."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    connection_id: str = Field(alias="connectionId")
    email: str
    display_name: str = Field(alias="displayName")

    def to_wire(self) -> Dict[str, str]:
        return self.model_dump(by_alias=True)


class UserSummary(BaseModel):
    """Public projection of a newly stored user, announced to viewers."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    email: str
    first_name: str = Field(alias="firstName")
    last_name: str = Field(alias="lastName")
    created_at: Optional[str] = Field(default=None, alias="createdAt")

    @classmethod
    def from_user(cls, user: Mapping[str, Any]) -> "UserSummary":
        return cls(
            id=user["id"],
            email=user["email"],
            first_name=user["firstName"],
            last_name=user["lastName"],
            created_at=user.get("createdAt"),
        )

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)


class Joined(BaseModel):
    """The join was accepted and this record is now on the roster."""

    model_config = ConfigDict(frozen=True)

    record: PresenceRecord


class Rejected(BaseModel):
    """The join was refused; the roster was not touched."""

    model_config = ConfigDict(frozen=True)

    reason: str


JoinResult = Union[Joined, Rejected]


def normalize_email(email: str) -> str:
    return email.strip().lower()


def make_display_name(first_name: Optional[str], last_name: Optional[str]) -> str:
    return f"{first_name or ''} {last_name or ''}".strip()
