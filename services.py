"""
Marketplace operations over the in-memory ``Database``.

Every function takes the database first and raises an ``errors`` exception
when the operation is not allowed; the HTTP layer only translates.
"""
import logging
from typing import Dict, List, Optional, Tuple

from pydantic import ValidationError as PydanticValidationError

from database import Database
from errors import (
    AuthError,
    ConflictError,
    InvalidCredentialsError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from schemas import ROLES, Campaign, Collaboration, Message, Profile, Thread, User
from security import create_token, decode_token, hash_password, verify_password

logger = logging.getLogger(__name__)


# ---------------------- Identity ----------------------

def find_by_id(db: Database, user_id: str) -> Optional[User]:
    return db.find_one("user", {"id": user_id})


def find_by_email(db: Database, email: str) -> Optional[User]:
    if not email:
        return None
    email = email.lower()
    return next((u for u in db.users if u.email.lower() == email), None)


def register(db: Database, name, email, password, role, profile=None) -> Tuple[User, str]:
    if not name or not email or not password or not role:
        raise ValidationError("Missing fields")
    if role not in ROLES:
        raise ValidationError("Role must be 'brand' or 'creator'")
    if find_by_email(db, email):
        raise ConflictError("Email exists")

    try:
        if isinstance(profile, dict):
            profile = Profile.model_validate(profile)
        user = User(
            name=name,
            email=email,
            password_hash=hash_password(password),
            role=role,
            profile=profile or Profile(),
        )
    except PydanticValidationError as exc:
        raise ValidationError(f"Invalid user: {exc.errors()[0]['msg']}") from exc

    # re-checked atomically, another request may have taken the email while hashing
    if db.insert_unique_user(user) is None:
        raise ConflictError("Email exists")
    logger.info("Registered %s %s", user.role, user.id)
    return user, create_token(user)


def login(db: Database, email, password) -> Tuple[User, str]:
    user = find_by_email(db, email)
    if not user or not verify_password(password, user.password_hash):
        raise InvalidCredentialsError()
    logger.info("Login for %s", user.id)
    return user, create_token(user)


def resolve_token(db: Database, token: str) -> User:
    """Verify a bearer token and return the user it names."""
    payload = decode_token(token)
    user = find_by_id(db, payload["id"])
    if not user:
        # token outlived the user, e.g. after a reset
        raise AuthError("Invalid token")
    return user


# ---------------------- Directory ----------------------

def dominant_age_bucket(distribution: Optional[Dict[str, int]]) -> Optional[str]:
    """Bucket with the highest count; on a tie the first bucket listed wins."""
    if not distribution:
        return None
    return max(distribution, key=distribution.get)


def _niche(user: User) -> str:
    return (user.profile.niche or "").lower()


def list_creators(db: Database, niche: Optional[str] = None, q: Optional[str] = None,
                  age: Optional[str] = None) -> List[User]:
    creators = db.get_documents("user", {"role": "creator"})
    if niche:
        creators = [c for c in creators if _niche(c) == niche.lower()]
    if q:
        term = q.lower()
        creators = [c for c in creators if term in f"{c.name} {c.profile.niche or ''}".lower()]
    if age:
        creators = [c for c in creators if dominant_age_bucket(c.profile.age_distribution) == age]
    return creators


def list_brands(db: Database) -> List[User]:
    return db.get_documents("user", {"role": "brand"})


def get_user(db: Database, user_id: str) -> User:
    user = find_by_id(db, user_id)
    if not user:
        raise NotFoundError("Not found")
    return user


# ---------------------- Messaging ----------------------

def send_message(db: Database, sender: User, to_id, text) -> Message:
    if not to_id or not text:
        raise ValidationError("Missing toId/text")
    if to_id == sender.id:
        raise ValidationError("You can't message yourself")
    if not find_by_id(db, to_id):
        raise NotFoundError("Recipient not found")
    message = Message(from_id=sender.id, to_id=to_id, text=text)
    return db.create_document("message", message, newest_first=True)


def list_messages(db: Database, user_id: str) -> List[Message]:
    return [m for m in db.messages if m.from_id == user_id or m.to_id == user_id]


def group_threads(messages: List[Message], me: str) -> List[Thread]:
    """Group messages by counterparty, most recently active conversation first."""
    by_other: Dict[str, List[Message]] = {}
    for m in messages:
        other = m.to_id if m.from_id == me else m.from_id
        by_other.setdefault(other, []).append(m)
    threads = [
        Thread(other=other, last=max(msgs, key=lambda m: m.at), count=len(msgs))
        for other, msgs in by_other.items()
    ]
    threads.sort(key=lambda t: t.last.at, reverse=True)
    return threads


def thread_with(messages: List[Message], me: str, other: str) -> List[Message]:
    pair = [
        m for m in messages
        if (m.from_id == me and m.to_id == other) or (m.from_id == other and m.to_id == me)
    ]
    # storage is newest-first; reverse so equal timestamps keep send order
    return sorted(reversed(pair), key=lambda m: m.at)


# ---------------------- Campaigns ----------------------

def create_campaign(db: Database, brand: User, title, niche, budget=None, description=None) -> Campaign:
    if brand.role != "brand":
        raise PermissionDeniedError("Only brands can create campaigns")
    if not title or not niche:
        raise ValidationError("Missing fields")
    campaign = Campaign(
        brand_id=brand.id,
        title=title,
        niche=niche,
        budget=budget or 0,
        description=description or "",
    )
    db.create_document("campaign", campaign, newest_first=True)
    logger.info("Brand %s opened campaign %s", brand.id, campaign.id)
    return campaign


def list_campaigns(db: Database) -> List[Campaign]:
    return db.get_documents("campaign")


def visible_campaigns(db: Database, viewer: Optional[User] = None, niche: Optional[str] = None) -> List[Campaign]:
    """
    Campaigns as a given viewer should see them.

    Brands see only their own campaigns, closed ones included. Creators and
    anonymous viewers see every campaign that is still open. ``niche`` (other
    than "All") narrows either list by case-insensitive equality.
    """
    if viewer is not None and viewer.role == "brand":
        campaigns = db.get_documents("campaign", {"brand_id": viewer.id})
    else:
        campaigns = [c for c in db.campaigns if c.status != "closed"]
    if niche and niche != "All":
        campaigns = [c for c in campaigns if c.niche.lower() == niche.lower()]
    return campaigns


def close_campaign(db: Database, campaign_id: str, caller: User) -> Campaign:
    if caller.role != "brand":
        raise PermissionDeniedError("Only brands")
    # a campaign owned by someone else is reported as missing
    campaign = db.find_one("campaign", {"id": campaign_id, "brand_id": caller.id})
    if not campaign:
        raise NotFoundError("Campaign not found")
    if campaign.status != "closed":
        campaign.status = "closed"
        logger.info("Brand %s closed campaign %s", caller.id, campaign.id)
    return campaign


def campaign_matches(db: Database, campaign_id: str) -> List[User]:
    campaign = db.find_one("campaign", {"id": campaign_id})
    if not campaign:
        raise NotFoundError("Campaign not found")
    return [c for c in db.get_documents("user", {"role": "creator"}) if _niche(c) == campaign.niche.lower()]


# ---------------------- Collaborations ----------------------

def propose_collaboration(db: Database, brand: User, creator_id, campaign_id=None, amount=None) -> Collaboration:
    if brand.role != "brand":
        raise PermissionDeniedError("Only brands")
    creator = db.find_one("user", {"id": creator_id, "role": "creator"})
    if not creator:
        raise NotFoundError("Creator not found")
    if campaign_id and not db.find_one("campaign", {"id": campaign_id}):
        raise NotFoundError("Campaign not found")
    collab = Collaboration(
        campaign_id=campaign_id or None,
        brand_id=brand.id,
        creator_id=creator.id,
        amount=amount or 0,
    )
    db.create_document("collaboration", collab, newest_first=True)
    logger.info("Brand %s proposed collaboration %s to %s", brand.id, collab.id, creator.id)
    return collab


def accept_collaboration(db: Database, collab_id: str, caller: User) -> Collaboration:
    collab = db.find_one("collaboration", {"id": collab_id})
    if not collab:
        raise NotFoundError("Not found")
    if collab.creator_id != caller.id:
        raise PermissionDeniedError("Only the proposed creator can accept")

    if collab.status != "paid":
        # payment stub: acceptance settles immediately
        collab.status = "paid"
        logger.info("Collaboration %s accepted and paid", collab.id)

    creator = find_by_id(db, collab.creator_id)
    if creator and not creator.first_paid_collab_done:
        creator.first_paid_collab_done = True
        logger.info("Creator %s completed first paid collaboration", creator.id)
    return collab


def list_collaborations(db: Database, user_id: str) -> List[Collaboration]:
    return [c for c in db.collaborations if c.brand_id == user_id or c.creator_id == user_id]
