# comebookus/routers/users_routes.py

from fastapi import APIRouter, Depends, HTTPException
from sqlmodel import Session, select

from comebookus.db import get_session
from comebookus.models import User
from comebookus.schemas import UserCreate, UserPublic, UserUpdate
from comebookus.auth import get_current_user, hash_password

router = APIRouter(
    tags=["users"],
)

NOT_NULLABLE = ("timezone", "booking_page_enabled", "email_notifications", "sms_notifications")


def _slug_taken(session: Session, slug: str, user_id=None) -> bool:
    existing = session.exec(
        select(User).where(User.booking_page_slug == slug)
    ).first()
    return existing is not None and existing.id != user_id


@router.get("/me", response_model=UserPublic)
def me(
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    return session.get(User, current_user["id"])


@router.patch("/me", response_model=UserPublic)
def update_me(
    changes: UserUpdate,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    user = session.get(User, current_user["id"])
    data = changes.model_dump(exclude_unset=True)

    slug = data.get("booking_page_slug")
    if slug and _slug_taken(session, slug, user.id):
        raise HTTPException(status_code=409, detail="Booking page slug already taken")

    for key, value in data.items():
        if value is None and key in NOT_NULLABLE:
            continue
        setattr(user, key, value)

    session.add(user)
    session.commit()
    session.refresh(user)
    return user


@router.post("/users", status_code=201, response_model=UserPublic)
def create_user(
    user: UserCreate,
    session: Session = Depends(get_session),
):
    # 1) Check if email or booking page slug already exists
    existing = session.exec(
        select(User).where(User.email == user.email)
    ).first()
    if existing is not None:
        raise HTTPException(status_code=409, detail="Email already registered")
    if user.booking_page_slug and _slug_taken(session, user.booking_page_slug):
        raise HTTPException(status_code=409, detail="Booking page slug already taken")

    # 2) Create provider in DB
    db_user = User(
        email=user.email,
        password_hash=hash_password(user.password),
        name=user.name,
        business_name=user.business_name,
        business_address=user.business_address,
        booking_page_slug=user.booking_page_slug,
    )

    session.add(db_user)
    session.commit()
    session.refresh(db_user)  # fills db_user.id

    return db_user
