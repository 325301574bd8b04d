import logging
from typing import Optional, List

from fastapi import FastAPI, APIRouter, Depends, Header, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, EmailStr

import services
from config import CORS_ORIGINS, PORT, SEED_ON_STARTUP
from database import Database
from errors import AuthError, MarketplaceError
from logging_config import setup_logging
from schemas import CamelModel, Campaign, Collaboration, Message, Money, Profile, PublicUser, Thread, User

logger = logging.getLogger(__name__)

router = APIRouter()


class RegisterRequest(BaseModel):
    name: Optional[str] = None
    email: Optional[EmailStr] = None
    password: Optional[str] = None
    role: Optional[str] = None
    profile: Optional[Profile] = None


class LoginRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None


class AuthResponse(BaseModel):
    token: str
    user: PublicUser


class MessageIn(CamelModel):
    to_id: Optional[str] = None
    text: Optional[str] = None


class CampaignIn(CamelModel):
    title: Optional[str] = None
    niche: Optional[str] = None
    budget: Optional[Money] = None
    description: Optional[str] = None


class CampaignClosed(BaseModel):
    ok: bool = True
    campaign: Campaign


class CollaborationIn(CamelModel):
    campaign_id: Optional[str] = None
    creator_id: Optional[str] = None
    amount: Optional[Money] = None


def get_db(request: Request) -> Database:
    return request.app.state.db


def _bearer_token(authorization: str) -> Optional[str]:
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def get_current_user(authorization: Optional[str] = Header(None), db: Database = Depends(get_db)) -> User:
    if not authorization:
        raise AuthError("No token")
    token = _bearer_token(authorization)
    if not token:
        raise AuthError("Invalid token")
    return services.resolve_token(db, token)


def get_optional_user(authorization: Optional[str] = Header(None), db: Database = Depends(get_db)) -> Optional[User]:
    if not authorization:
        return None
    return get_current_user(authorization, db)


@router.get("/")
def root():
    return {"message": "Creator Marketplace Backend Running"}


@router.get("/health")
def health():
    return {"ok": True}


# -------- Auth --------

@router.post("/auth/register", response_model=AuthResponse)
def register(payload: RegisterRequest, db: Database = Depends(get_db)):
    user, token = services.register(
        db, payload.name, payload.email, payload.password, payload.role, payload.profile
    )
    return {"token": token, "user": user.public()}


@router.post("/auth/login", response_model=AuthResponse)
def login(payload: LoginRequest, db: Database = Depends(get_db)):
    user, token = services.login(db, payload.email, payload.password)
    return {"token": token, "user": user.public()}


@router.get("/me", response_model=PublicUser)
def me(user: User = Depends(get_current_user)):
    return user.public()


# -------- Directory --------

@router.get("/creators", response_model=List[PublicUser])
def list_creators(niche: Optional[str] = None, q: Optional[str] = None, age: Optional[str] = None,
                  db: Database = Depends(get_db)):
    return [u.public() for u in services.list_creators(db, niche=niche, q=q, age=age)]


@router.get("/brands", response_model=List[PublicUser])
def list_brands(db: Database = Depends(get_db)):
    return [u.public() for u in services.list_brands(db)]


@router.get("/users/{user_id}", response_model=PublicUser)
def get_user(user_id: str, db: Database = Depends(get_db)):
    return services.get_user(db, user_id).public()


# -------- Messages --------

@router.post("/messages", response_model=Message)
def send_message(payload: MessageIn, user: User = Depends(get_current_user), db: Database = Depends(get_db)):
    return services.send_message(db, user, payload.to_id, payload.text)


@router.get("/messages", response_model=List[Message])
def list_messages(user: User = Depends(get_current_user), db: Database = Depends(get_db)):
    return services.list_messages(db, user.id)


@router.get("/messages/threads", response_model=List[Thread])
def list_threads(user: User = Depends(get_current_user), db: Database = Depends(get_db)):
    return services.group_threads(services.list_messages(db, user.id), user.id)


@router.get("/messages/threads/{other_id}", response_model=List[Message])
def get_thread(other_id: str, user: User = Depends(get_current_user), db: Database = Depends(get_db)):
    return services.thread_with(services.list_messages(db, user.id), user.id, other_id)


# -------- Campaigns --------

@router.post("/campaigns", response_model=Campaign)
def create_campaign(payload: CampaignIn, user: User = Depends(get_current_user), db: Database = Depends(get_db)):
    return services.create_campaign(
        db, user, payload.title, payload.niche, budget=payload.budget, description=payload.description
    )


@router.get("/campaigns", response_model=List[Campaign])
def list_campaigns(db: Database = Depends(get_db)):
    return services.list_campaigns(db)


@router.get("/campaigns/visible", response_model=List[Campaign])
def visible_campaigns(niche: Optional[str] = None, user: Optional[User] = Depends(get_optional_user),
                      db: Database = Depends(get_db)):
    return services.visible_campaigns(db, viewer=user, niche=niche)


@router.get("/campaigns/{campaign_id}/matches", response_model=List[PublicUser])
def campaign_matches(campaign_id: str, db: Database = Depends(get_db)):
    return [u.public() for u in services.campaign_matches(db, campaign_id)]


@router.post("/campaigns/{campaign_id}/close", response_model=CampaignClosed)
def close_campaign(campaign_id: str, user: User = Depends(get_current_user), db: Database = Depends(get_db)):
    return {"ok": True, "campaign": services.close_campaign(db, campaign_id, user)}


# -------- Collaborations --------

@router.post("/collaborations", response_model=Collaboration)
def propose_collaboration(payload: CollaborationIn, user: User = Depends(get_current_user),
                          db: Database = Depends(get_db)):
    return services.propose_collaboration(
        db, user, payload.creator_id, campaign_id=payload.campaign_id, amount=payload.amount
    )


@router.post("/collaborations/{collab_id}/accept", response_model=Collaboration)
def accept_collaboration(collab_id: str, user: User = Depends(get_current_user), db: Database = Depends(get_db)):
    return services.accept_collaboration(db, collab_id, user)


@router.get("/collaborations", response_model=List[Collaboration])
def list_collaborations(user: User = Depends(get_current_user), db: Database = Depends(get_db)):
    return services.list_collaborations(db, user.id)


# -------- Demo data --------

@router.post("/seed")
def seed(db: Database = Depends(get_db)):
    db.reset()
    return {"ok": True}


async def marketplace_error_handler(request: Request, exc: MarketplaceError):
    return JSONResponse({"error": exc.message}, status_code=exc.status_code)


async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    if not errors:
        return JSONResponse({"error": "Invalid request"}, status_code=400)
    first = errors[0]
    field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    return JSONResponse({"error": f"Invalid {field or 'request'}: {first.get('msg')}"}, status_code=400)


def create_app(db: Optional[Database] = None) -> FastAPI:
    setup_logging()
    app = FastAPI(title="Creator Marketplace API")
    app.state.db = db if db is not None else Database(seed=SEED_ON_STARTUP)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(MarketplaceError, marketplace_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.include_router(router)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=PORT)
