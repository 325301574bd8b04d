"""
In-memory storage for the marketplace.

One ``Database`` is built when the app starts and handed to request
handlers through a dependency. Nothing is persisted; ``reset`` clears every
collection and loads the demo data again.
"""
import logging
import threading
from typing import Any, Dict, List, Optional

from schemas import User, Message, Campaign, Collaboration, Profile
from security import hash_password

logger = logging.getLogger(__name__)

DEMO_PASSWORD = "pass123"


class Database:
    def __init__(self, seed: bool = True):
        # handlers run in a threadpool; guards check-then-insert sequences
        self.lock = threading.RLock()
        self.users: List[User] = []
        self.messages: List[Message] = []
        self.campaigns: List[Campaign] = []
        self.collaborations: List[Collaboration] = []
        if seed:
            self.reset()

    def collection(self, name: str) -> list:
        collections = {
            "user": self.users,
            "message": self.messages,
            "campaign": self.campaigns,
            "collaboration": self.collaborations,
        }
        if name not in collections:
            raise KeyError(f"Unknown collection: {name}")
        return collections[name]

    def create_document(self, collection_name: str, document, newest_first: bool = False):
        docs = self.collection(collection_name)
        with self.lock:
            if newest_first:
                docs.insert(0, document)
            else:
                docs.append(document)
        return document

    def insert_unique_user(self, user: User) -> Optional[User]:
        """Add ``user`` unless the email is taken; returns None on a clash."""
        email = user.email.lower()
        with self.lock:
            if any(u.email.lower() == email for u in self.users):
                return None
            self.users.append(user)
        return user

    def get_documents(self, collection_name: str, filter_dict: Optional[Dict[str, Any]] = None) -> list:
        docs = self.collection(collection_name)
        if not filter_dict:
            return list(docs)
        return [d for d in docs if all(getattr(d, k) == v for k, v in filter_dict.items())]

    def find_one(self, collection_name: str, filter_dict: Dict[str, Any]):
        for doc in self.collection(collection_name):
            if all(getattr(doc, k) == v for k, v in filter_dict.items()):
                return doc
        return None

    def clear(self):
        self.users.clear()
        self.messages.clear()
        self.campaigns.clear()
        self.collaborations.clear()

    def reset(self):
        """Drop everything and load the demo creators, brand and campaign."""
        password_hash = hash_password(DEMO_PASSWORD)
        with self.lock:
            self._load_demo(password_hash)
        logger.info("Seeded %d users and %d campaigns", len(self.users), len(self.campaigns))

    def _load_demo(self, password_hash: str):
        self.clear()

        creators = [
            User(
                name="Riya Sharma", email="riya@demo.com", password_hash=password_hash,
                role="creator", verified=True,
                profile=Profile(
                    niche="Fashion", platform="Instagram", followers=52000, engagement=3.4,
                    age_distribution={"13-18": 12, "19-24": 55, "25-34": 28, "35+": 5},
                    location="Delhi",
                ),
            ),
            User(
                name="Tech with Mohan", email="mohan@demo.com", password_hash=password_hash,
                role="creator", verified=True,
                profile=Profile(
                    niche="Tech", platform="YouTube", followers=120000, engagement=4.1,
                    age_distribution={"13-18": 6, "19-24": 40, "25-34": 45, "35+": 9},
                    location="Bengaluru",
                ),
            ),
            User(
                name="Village Voice", email="village@demo.com", password_hash=password_hash,
                role="creator", verified=False,
                profile=Profile(
                    niche="Social Cause", platform="Facebook", followers=8000, engagement=6.8,
                    age_distribution={"13-18": 20, "19-24": 35, "25-34": 30, "35+": 15},
                    location="Rural UP",
                ),
            ),
        ]
        brand = User(
            name="Acme Brand", email="brand@demo.com", password_hash=password_hash,
            role="brand", verified=True, profile=Profile(company="Acme"),
        )
        for user in creators + [brand]:
            self.create_document("user", user)

        self.create_document("campaign", Campaign(
            brand_id=brand.id,
            title="Tech Gadget Launch",
            niche="Tech",
            budget=50000,
            description="Need tech creators for 30s review",
        ))
