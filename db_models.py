from datetime import datetime
from enum import Enum
from typing import Optional, List

from pydantic import BaseModel, field_validator


class LinkPrecedence(str, Enum):
    PRIMARY = "primary"
    SECONDARY = "secondary"


class Contact(BaseModel):
    """One row of the Contact table."""

    id: int
    phoneNumber: Optional[str] = None
    email: Optional[str] = None
    linkedId: Optional[int] = None
    linkPrecedence: LinkPrecedence = LinkPrecedence.PRIMARY
    createdAt: datetime
    updatedAt: datetime
    deletedAt: Optional[datetime] = None

    @property
    def is_primary(self) -> bool:
        return self.linkPrecedence == LinkPrecedence.PRIMARY


class IdentifyRequest(BaseModel):
    email: Optional[str] = None
    phoneNumber: Optional[str] = None

    @field_validator("email", mode="before")
    @classmethod
    def blank_email_is_absent(cls, value):
        if isinstance(value, str) and not value:
            return None
        return value

    @field_validator("phoneNumber", mode="before")
    @classmethod
    def phone_number_as_string(cls, value):
        # clients send phone numbers as JSON numbers too
        if isinstance(value, bool):
            raise ValueError("phoneNumber must be a string or a number")
        if isinstance(value, int):
            return str(value)
        if isinstance(value, str) and not value:
            return None
        return value


class ResolvedIdentity(BaseModel):
    primaryContactId: int
    emails: List[str]
    phoneNumbers: List[str]
    secondaryContactIds: List[int]


class FinalResponse(BaseModel):
    contact: ResolvedIdentity
