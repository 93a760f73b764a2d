from celery.result import AsyncResult
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.features.auth.models.user import User
from app.features.auth.routes.auth import get_current_user
from app.features.scan.schemas.scan import (
    ScanQueuedResponse,
    ScanStartRequest,
    ScanTaskStatusResponse,
)
from app.features.scan.services.orchestration.history import get_scan_detail, get_user_scan_history
from app.features.scan.services.orchestration.scan_pipeline import run_accessibility_scan
from app.features.scan.workers.tasks import run_accessibility_scan_task
from app.platform.celery_app import celery_app
from app.platform.db.session import get_db
from app.platform.logger import get_logger
from app.platform.response import api_response
from app.platform.utils.url_validator import validate_url

logger = get_logger(__name__)

router = APIRouter(tags=["scan"])


def _validated_url(url: str) -> str:
    is_valid, url_str, error_message = validate_url(url)
    if not is_valid:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid URL: {error_message}"
        )
    return url_str


@router.post("/scan", response_model=dict)
async def start_scan(
    data: ScanStartRequest,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """
    Audit a URL and return once the scan is saved.

    - **single-page**: audits exactly the given URL
    - **multi-page**: also audits same-origin pages, up to max_pages (default 10)
    """
    url_str = _validated_url(data.url)
    logger.info(f"[scan] Scan request: url={url_str}, type={data.scan_type.value}, user_id={current_user.id}")

    result = await run_accessibility_scan(
        db,
        user_id=current_user.id,
        url=url_str,
        mode=data.scan_type,
        page_budget=data.max_pages,
    )

    return api_response(
        data=result.to_response().model_dump(by_alias=True),
        message="Scan completed",
    )


@router.post("/scan/queue", response_model=dict, status_code=status.HTTP_202_ACCEPTED)
async def queue_scan(
    data: ScanStartRequest,
    current_user: User = Depends(get_current_user),
):
    """Queue a scan on the worker pool; poll /scan/tasks/{task_id} for the result."""
    url_str = _validated_url(data.url)

    task = run_accessibility_scan_task.delay(
        current_user.id, url_str, data.scan_type.value, data.max_pages
    )
    logger.info(f"[scan] Queued task {task.id} for {url_str} (user_id={current_user.id})")

    return api_response(
        data=ScanQueuedResponse(task_id=task.id, status="queued"),
        message="Scan queued",
        status_code=status.HTTP_202_ACCEPTED,
    )


@router.get("/scan/tasks/{task_id}", response_model=dict)
async def get_scan_task_status(
    task_id: str,
    current_user: User = Depends(get_current_user),
):
    """
    State of a queued scan. A finished task owned by another user is
    reported as not found, like a foreign scan.
    """
    task = AsyncResult(task_id, app=celery_app)
    payload = ScanTaskStatusResponse(task_id=task_id, state=task.state)

    if task.successful():
        result = task.result if isinstance(task.result, dict) else {}
        if result.get("user_id") != current_user.id:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Task not found")
        payload.result = result
    elif task.failed():
        # The owner of a crashed task is unknown, so its exception stays in the worker log
        payload.error = "Scan task failed"

    return api_response(data=payload, message="Task status retrieved")


@router.get("/scans", response_model=dict)
async def list_scans(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """The current user's scans, newest first."""
    history = await get_user_scan_history(current_user.id, db)
    return api_response(data=history, message="Scan history retrieved")


@router.get("/scans/{scan_id}", response_model=dict)
async def get_scan(
    scan_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """One scan with its violations, most severe first."""
    detail = await get_scan_detail(scan_id, current_user.id, db)
    if detail is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Scan not found")

    return api_response(data=detail, message="Scan retrieved")
