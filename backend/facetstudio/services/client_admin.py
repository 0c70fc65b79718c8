"""Client accounts and their users."""

from typing import List, Optional
from uuid import UUID

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from facetstudio.core.exceptions import NotFoundError, ValidationError
from facetstudio.core.logging import get_logger
from facetstudio.models.client import Client
from facetstudio.models.user import UserProfile, UserRole

logger = get_logger(__name__)


def normalize_name(name: str) -> str:
    """Collapse whitespace and case so near-identical names compare equal."""
    return " ".join((name or "").split()).lower()


async def _ensure_unique_name(db: AsyncSession, name: str, exclude_id: Optional[UUID] = None) -> None:
    result = await db.execute(select(Client.id, Client.name))
    target = normalize_name(name)
    for client_id, existing in result.all():
        if client_id != exclude_id and normalize_name(existing) == target:
            raise ValidationError(f'A client named "{existing}" already exists.')


async def list_clients(db: AsyncSession) -> List[Client]:
    result = await db.execute(select(Client).order_by(Client.name))
    return list(result.scalars().all())


async def get_client(db: AsyncSession, client_id: UUID) -> Client:
    client = await db.get(Client, client_id)
    if not client:
        raise NotFoundError("Client not found")
    return client


async def create_client(
    db: AsyncSession,
    name: str,
    contact_email: Optional[str] = None,
    created_by: Optional[UUID] = None,
) -> Client:
    name = " ".join((name or "").split())
    if not name:
        raise ValidationError("Client name is required.")
    await _ensure_unique_name(db, name)

    client = Client(name=name, contact_email=contact_email, is_active=True, created_by=created_by)
    db.add(client)
    await db.commit()
    await db.refresh(client)
    logger.info("Client created", client_id=str(client.id), name=name)
    return client


async def update_client(
    db: AsyncSession,
    client_id: UUID,
    name: Optional[str] = None,
    contact_email: Optional[str] = None,
    is_active: Optional[bool] = None,
) -> Client:
    client = await get_client(db, client_id)
    if name is not None:
        name = " ".join(name.split())
        if not name:
            raise ValidationError("Client name is required.")
        await _ensure_unique_name(db, name, exclude_id=client.id)
        client.name = name
    if contact_email is not None:
        client.contact_email = contact_email
    if is_active is not None:
        client.is_active = is_active
    await db.commit()
    await db.refresh(client)
    return client


async def delete_client(db: AsyncSession, client_id: UUID) -> None:
    client = await get_client(db, client_id)
    await db.delete(client)
    await db.commit()
    logger.info("Client deleted", client_id=str(client_id))


async def count_users(db: AsyncSession, client_id: UUID) -> int:
    return await db.scalar(
        select(func.count()).select_from(UserProfile).where(UserProfile.client_id == client_id)
    ) or 0


async def list_users(db: AsyncSession, client_id: UUID) -> List[UserProfile]:
    result = await db.execute(
        select(UserProfile).where(UserProfile.client_id == client_id).order_by(UserProfile.email)
    )
    return list(result.scalars().all())


async def set_user_active(db: AsyncSession, user_id: UUID, is_active: bool) -> UserProfile:
    """Block (False) or unblock (True) a user."""
    user = await db.get(UserProfile, user_id)
    if not user:
        raise NotFoundError("User not found")
    user.is_active = is_active
    await db.commit()
    await db.refresh(user)
    logger.info("User access changed", user_id=str(user_id), is_active=is_active)
    return user


async def invite_user(
    db: AsyncSession,
    email: str,
    role: str,
    client_id: Optional[UUID],
    full_name: Optional[str] = None,
) -> UserProfile:
    """Create an inactive profile; the user activates it by setting a password."""
    email = (email or "").strip().lower()
    if not email or "@" not in email:
        raise ValidationError("A valid email address is required.")
    try:
        user_role = UserRole(role)
    except ValueError as e:
        raise ValidationError(f"Unknown role: {role}") from e

    existing = await db.scalar(select(UserProfile).where(func.lower(UserProfile.email) == email))
    if existing:
        raise ValidationError("A user with this email address has already been registered")

    if client_id is not None:
        await get_client(db, client_id)

    user = UserProfile(
        email=email,
        full_name=full_name,
        role=user_role,
        client_id=client_id,
        is_active=False,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    logger.info("User invited", user_id=str(user.id), role=user_role.value)
    return user
