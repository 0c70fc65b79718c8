"""Background task status API endpoints."""

from fastapi import APIRouter, Depends
from celery.result import AsyncResult

from facetstudio.api.deps import get_client_context
from facetstudio.core.celery_app import celery_app
from facetstudio.schemas.common import TaskStatus

router = APIRouter(dependencies=[Depends(get_client_context)])


@router.get("/{task_id}", response_model=TaskStatus)
async def get_task_status(task_id: str):
    """Get the status of a background import task."""
    result = AsyncResult(task_id, app=celery_app)

    response = TaskStatus(task_id=task_id, status=result.status, ready=result.ready())

    if result.ready():
        if result.successful():
            response.result = result.result
        else:
            response.error = str(result.result)
    elif result.status == "PROGRESS":
        response.progress = result.info

    return response


@router.delete("/{task_id}", response_model=TaskStatus)
async def cancel_task(task_id: str):
    """Cancel a running task."""
    result = AsyncResult(task_id, app=celery_app)
    result.revoke(terminate=True)

    return TaskStatus(task_id=task_id, status="REVOKED", ready=True)
