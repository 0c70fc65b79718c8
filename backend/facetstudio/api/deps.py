"""Shared router dependencies."""

from typing import Optional
from uuid import UUID

from fastapi import Depends, Header, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from facetstudio.core.context import ClientContext
from facetstudio.core.database import get_db
from facetstudio.core.exceptions import DuplicateJobFound, FacetStudioError, GenerationFailed
from facetstudio.models.user import UserProfile, UserRole


def _parse_uuid(value: str, header: str) -> UUID:
    try:
        return UUID(value)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Invalid {header} header")


async def get_client_context(
    x_user_id: Optional[str] = Header(None),
    x_client_id: Optional[str] = Header(None),
    db: AsyncSession = Depends(get_db),
) -> ClientContext:
    """Acting user and client for this request.

    Only super admins may act for another client via ``X-Client-Id``.
    """
    if not x_user_id:
        raise HTTPException(status_code=401, detail="Missing X-User-Id header")

    user = await db.get(UserProfile, _parse_uuid(x_user_id, "X-User-Id"))
    if not user:
        raise HTTPException(status_code=401, detail="Unknown user")
    if not user.is_active:
        raise HTTPException(status_code=403, detail="User is blocked or has not accepted the invitation")

    client_id = user.client_id
    if x_client_id and user.role == UserRole.SUPER_ADMIN:
        client_id = _parse_uuid(x_client_id, "X-Client-Id")

    return ClientContext(user_id=user.id, client_id=client_id, role=user.role)


async def require_admin(context: ClientContext = Depends(get_client_context)) -> ClientContext:
    if not context.is_admin:
        raise HTTPException(status_code=403, detail="Admin access required")
    return context


async def require_super_admin(context: ClientContext = Depends(get_client_context)) -> ClientContext:
    if not context.is_super_admin:
        raise HTTPException(status_code=403, detail="Super admin access required")
    return context


def require_client(context: ClientContext) -> UUID:
    """The context's client id, 400 when the user has none."""
    if context.client_id is None:
        raise HTTPException(status_code=400, detail="Your account is not associated with a client.")
    return context.client_id


def to_http(error: FacetStudioError) -> HTTPException:
    """HTTPException carrying a domain error's status and message."""
    if isinstance(error, DuplicateJobFound):
        return HTTPException(
            status_code=error.status_code,
            detail={"message": error.message, "job_id": str(error.job.id)},
        )
    if isinstance(error, GenerationFailed) and error.job_id is not None:
        return HTTPException(
            status_code=error.status_code,
            detail={"message": error.message, "job_id": str(error.job_id)},
        )
    return HTTPException(status_code=error.status_code, detail=error.message)
