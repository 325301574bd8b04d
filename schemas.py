"""
Database Schemas for the creator marketplace

Each Pydantic model represents an in-memory collection held by
``database.Database``. The collection name is the lowercase of the class
name (e.g., User -> "user").

Fields are snake_case in Python and camelCase on the wire, so the JSON
shape stays ``{"brandId": ..., "firstPaidCollabDone": ...}``.
"""
from datetime import datetime, timezone
from typing import Any, Optional, Dict, Literal, Union
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, EmailStr, NonNegativeInt
from pydantic.alias_generators import to_camel

Role = Literal["brand", "creator"]
CampaignStatus = Literal["open", "closed"]
CollaborationStatus = Literal["proposed", "accepted", "paid"]
Money = Union[int, float]

ROLES = ("brand", "creator")


def new_id() -> str:
    return str(uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Profile(CamelModel):
    """
    Free-form profile attributes
    Unknown keys (e.g. a brand's ``company``) are kept as-is.
    """
    model_config = ConfigDict(extra="allow")

    niche: Optional[str] = None
    platform: Optional[str] = None
    followers: Optional[Any] = None
    engagement: Optional[Any] = None
    age_distribution: Dict[str, NonNegativeInt] = Field(
        default_factory=dict, description="Audience histogram, bucket label -> count"
    )
    location: Optional[str] = None
    bio: Optional[str] = None


class PublicUser(CamelModel):
    """
    Users collection schema, as shown to other users
    Never carries the password hash.
    """
    id: str = Field(default_factory=new_id)
    name: str
    email: EmailStr = Field(..., description="Email address (unique)")
    role: Role
    profile: Profile = Field(default_factory=Profile)
    verified: bool = Field(False, description="Set manually, no workflow drives it")
    first_paid_collab_done: bool = False
    created_at: datetime = Field(default_factory=utcnow)


class User(PublicUser):
    password_hash: str = Field(..., description="BCrypt hash of the user's password")

    def public(self) -> PublicUser:
        return PublicUser.model_validate(self.model_dump(exclude={"password_hash"}))


class Message(BaseModel):
    """
    Messages collection
    Append-only directed text between two users.
    """
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(default_factory=new_id)
    from_id: str = Field(..., alias="from")
    to_id: str = Field(..., alias="to")
    text: str
    at: datetime = Field(default_factory=utcnow)


class Thread(BaseModel):
    other: str = Field(..., description="Id of the counterparty")
    last: Message
    count: int


class Campaign(CamelModel):
    id: str = Field(default_factory=new_id)
    brand_id: str
    title: str
    niche: str
    budget: Money = 0
    description: str = ""
    created_at: datetime = Field(default_factory=utcnow)
    status: CampaignStatus = "open"


class Collaboration(CamelModel):
    id: str = Field(default_factory=new_id)
    campaign_id: Optional[str] = None
    brand_id: str
    creator_id: str
    amount: Money = 0
    status: CollaborationStatus = "proposed"
    created_at: datetime = Field(default_factory=utcnow)
