"""Organization scoping shared by the staff routers."""

from sqlalchemy import select
from sqlalchemy.orm import Session

from dietconnect.core.errors import not_found
from dietconnect.models.models import Client, User, UserRole


def _client_conditions(user: User) -> list:
    """Own organization, not deleted; dietitians only see their own clients."""
    conditions = [Client.org_id == user.org_id, Client.deleted_at.is_(None)]
    if user.role == UserRole.DIETITIAN:
        conditions.append(Client.primary_dietitian_id == user.id)
    return conditions


def client_query(db: Session, user: User):
    return db.query(Client).filter(*_client_conditions(user))


def visible_client_ids(user: User):
    """SELECT of client ids the staff user may see, for use in ``in_()``."""
    return select(Client.id).where(*_client_conditions(user))


def get_client_for_staff(db: Session, user: User, client_id: str) -> Client:
    client = client_query(db, user).filter(Client.id == client_id).first()
    if not client:
        raise not_found("Client", "CLIENT_NOT_FOUND")
    return client


def initials(full_name: str) -> str:
    parts = [p for p in full_name.split() if p]
    return "".join(p[0].upper() for p in parts[:2])
