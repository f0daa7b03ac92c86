# comebookus/routers/clients_routes.py

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import func
from sqlmodel import Session, col, select

from comebookus.auth import get_current_user
from comebookus.db import get_session
from comebookus.models import Booking, Client
from comebookus.schemas import ClientCreate, ClientDetail, ClientPublic, ClientUpdate

router = APIRouter(
    prefix="/clients",
    tags=["clients"],
)


def _client_stats(session: Session, user_id: int, client_id: Optional[int] = None) -> dict:
    stmt = (
        select(
            Booking.client_id,
            func.count(Booking.id),
            func.coalesce(func.sum(Booking.total_amount), 0),
            func.max(Booking.created_at),
        )
        .where(Booking.user_id == user_id)
        .group_by(Booking.client_id)
    )
    if client_id is not None:
        stmt = stmt.where(Booking.client_id == client_id)
    return {
        cid: (count, spent, last)
        for cid, count, spent, last in session.exec(stmt).all()
    }


def _client_out(c: Client, stats: dict) -> dict:
    count, spent, last = stats.get(c.id, (0, 0, None))
    return {
        "id": c.id,
        "email": c.email,
        "name": c.name,
        "phone": c.phone,
        "notes": c.notes,
        "total_bookings": count,
        "total_spent": spent,
        "last_booking": last,
        "created_at": c.created_at,
    }


def _get_owned_client(session: Session, client_id: int, user_id: int) -> Client:
    client = session.get(Client, client_id)
    if client is None or client.user_id != user_id:
        raise HTTPException(status_code=404, detail="Client not found")
    return client


def _email_taken(session: Session, user_id: int, email: str, exclude_id: Optional[int] = None) -> bool:
    stmt = select(Client).where(Client.user_id == user_id).where(Client.email == email)
    if exclude_id is not None:
        stmt = stmt.where(Client.id != exclude_id)
    return session.exec(stmt).first() is not None


@router.get("", response_model=List[ClientPublic])
def list_clients(
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    user_id = current_user["id"]
    clients = session.exec(
        select(Client)
        .where(Client.user_id == user_id)
        .order_by(col(Client.created_at).desc())
    ).all()

    stats = _client_stats(session, user_id)
    return [_client_out(c, stats) for c in clients]


@router.post("", response_model=ClientPublic, status_code=201)
def create_client(
    client: ClientCreate,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    if _email_taken(session, current_user["id"], client.email):
        raise HTTPException(status_code=409, detail="Client with this email already exists")

    db_client = Client(user_id=current_user["id"], **client.model_dump())
    session.add(db_client)
    session.commit()
    session.refresh(db_client)

    return _client_out(db_client, {})


@router.get("/{client_id}", response_model=ClientDetail)
def get_client(
    client_id: int,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    user_id = current_user["id"]
    client = _get_owned_client(session, client_id, user_id)

    bookings = session.exec(
        select(Booking)
        .where(Booking.client_id == client.id)
        .order_by(col(Booking.start_time).desc())
    ).all()

    out = _client_out(client, _client_stats(session, user_id, client.id))
    out["bookings"] = bookings
    return out


@router.put("/{client_id}", response_model=ClientPublic)
def update_client(
    client_id: int,
    changes: ClientUpdate,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    user_id = current_user["id"]
    client = _get_owned_client(session, client_id, user_id)

    data = changes.model_dump(exclude_unset=True)
    if data.get("email") is None:
        data.pop("email", None)
    elif _email_taken(session, user_id, data["email"], exclude_id=client.id):
        raise HTTPException(status_code=409, detail="Client with this email already exists")

    for key, value in data.items():
        setattr(client, key, value)
    session.add(client)
    session.commit()
    session.refresh(client)

    return _client_out(client, _client_stats(session, user_id, client.id))


@router.delete("/{client_id}")
def delete_client(
    client_id: int,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    client = _get_owned_client(session, client_id, current_user["id"])

    has_bookings = session.exec(
        select(Booking.id).where(Booking.client_id == client.id)
    ).first()
    if has_bookings is not None:
        raise HTTPException(
            status_code=400,
            detail="Cannot delete client with existing bookings",
        )

    session.delete(client)
    session.commit()
    return {"message": "Client deleted"}
