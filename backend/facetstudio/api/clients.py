"""Client and user management API endpoints."""

from typing import List
from uuid import UUID
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from facetstudio.api.deps import require_admin, require_super_admin, to_http
from facetstudio.api.generation import get_functions_client
from facetstudio.core.context import ClientContext
from facetstudio.core.database import get_db
from facetstudio.core.exceptions import FacetStudioError
from facetstudio.core.logging import get_logger
from facetstudio.models.user import UserProfile
from facetstudio.schemas.client import (
    ClientCreate,
    ClientResponse,
    ClientUpdate,
    ClientUsersResponse,
    InviteRequest,
    UserAccessUpdate,
    UserResponse,
)
from facetstudio.schemas.common import MessageResponse
from facetstudio.services import client_admin
from facetstudio.services.functions_client import FunctionsClient

logger = get_logger(__name__)
router = APIRouter()


def _check_client_access(context: ClientContext, client_id: UUID) -> None:
    if not context.is_super_admin and context.client_id != client_id:
        raise HTTPException(status_code=404, detail="Client not found")


async def _client_response(db: AsyncSession, client) -> ClientResponse:
    response = ClientResponse.model_validate(client)
    response.user_count = await client_admin.count_users(db, client.id)
    return response


@router.get("/", response_model=List[ClientResponse])
async def list_clients(
    context: ClientContext = Depends(require_super_admin),
    db: AsyncSession = Depends(get_db),
):
    """List all clients with their user counts."""
    return [await _client_response(db, c) for c in await client_admin.list_clients(db)]


@router.post("/", response_model=ClientResponse)
async def create_client(
    request: ClientCreate,
    context: ClientContext = Depends(require_super_admin),
    db: AsyncSession = Depends(get_db),
):
    """Create a client; names equal after whitespace and case folding are rejected."""
    try:
        client = await client_admin.create_client(db, request.name, request.contact_email, context.user_id)
    except FacetStudioError as e:
        raise to_http(e)
    return await _client_response(db, client)


@router.patch("/{client_id}", response_model=ClientResponse)
async def update_client(
    client_id: UUID,
    request: ClientUpdate,
    context: ClientContext = Depends(require_super_admin),
    db: AsyncSession = Depends(get_db),
):
    try:
        client = await client_admin.update_client(
            db, client_id, request.name, request.contact_email, request.is_active
        )
    except FacetStudioError as e:
        raise to_http(e)
    return await _client_response(db, client)


@router.delete("/{client_id}", response_model=MessageResponse)
async def delete_client(
    client_id: UUID,
    context: ClientContext = Depends(require_super_admin),
    db: AsyncSession = Depends(get_db),
):
    try:
        await client_admin.delete_client(db, client_id)
    except FacetStudioError as e:
        raise to_http(e)
    return MessageResponse(message="Client deleted successfully")


@router.get("/{client_id}/users", response_model=ClientUsersResponse)
async def list_users(
    client_id: UUID,
    context: ClientContext = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    _check_client_access(context, client_id)
    users = await client_admin.list_users(db, client_id)
    return ClientUsersResponse(users=[UserResponse.model_validate(u) for u in users], total=len(users))


@router.post("/{client_id}/users/invite", response_model=dict)
async def invite_user(
    client_id: UUID,
    request: InviteRequest,
    context: ClientContext = Depends(require_admin),
    functions: FunctionsClient = Depends(get_functions_client),
):
    """Invite a user to a client through the invite-user function."""
    _check_client_access(context, client_id)
    response = await functions.invite_user(request.email, request.role, str(client_id), request.full_name)
    if not response.ok:
        raise HTTPException(status_code=400, detail=response.error)
    logger.info("User invitation sent", client_id=str(client_id))
    return response.body


@router.patch("/{client_id}/users/{user_id}", response_model=UserResponse)
async def set_user_access(
    client_id: UUID,
    user_id: UUID,
    request: UserAccessUpdate,
    context: ClientContext = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Block or unblock a user."""
    _check_client_access(context, client_id)
    user = await db.get(UserProfile, user_id)
    if not user or user.client_id != client_id:
        raise HTTPException(status_code=404, detail="User not found")
    try:
        user = await client_admin.set_user_active(db, user_id, request.is_active)
    except FacetStudioError as e:
        raise to_http(e)
    return UserResponse.model_validate(user)
