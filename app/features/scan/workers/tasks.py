import asyncio
from typing import Any, Dict, Optional

from app.features.scan.exceptions import ScanError
from app.features.scan.services.crawl.crawl_planner import ScanMode
from app.features.scan.services.orchestration.scan_pipeline import run_accessibility_scan
from app.platform.async_db_helper import get_async_db
from app.platform.celery_app import celery_app
from app.platform.logger import get_logger

logger = get_logger(__name__)


async def _run_scan_async(
    user_id: str, url: str, scan_type: str, max_pages: Optional[int]
) -> Dict[str, Any]:
    async with get_async_db() as db:
        result = await run_accessibility_scan(
            db,
            user_id=user_id,
            url=url,
            mode=ScanMode(scan_type),
            page_budget=max_pages,
        )
    return result.to_response().model_dump(by_alias=True)


@celery_app.task(
    bind=True,
    name="app.features.scan.workers.tasks.run_accessibility_scan_task"
)
def run_accessibility_scan_task(
    self,
    user_id: str,
    url: str,
    scan_type: str = ScanMode.single_page.value,
    max_pages: Optional[int] = None,
) -> Dict[str, Any]:
    """
    Run one full scan inside a worker.

    Scan failures are returned as a failed payload rather than raised,
    so the poller sees the stage that stopped the scan.

    Returns:
        {"status": "completed", "user_id": ..., "result": {...}} or
        {"status": "failed", "user_id": ..., "error": ..., "stage": ..., "url": ...}
    """
    logger.info(f"[task {self.request.id}] Starting {scan_type} scan for {url} (user_id={user_id})")

    try:
        result = asyncio.run(_run_scan_async(user_id, url, scan_type, max_pages))
    except ScanError as e:
        logger.error(f"[task {self.request.id}] Scan failed at {e.stage} for {url}: {e.message}")
        return {"status": "failed", "user_id": user_id, "error": e.message, **e.to_dict()}

    logger.info(f"[task {self.request.id}] Scan {result['scanId']} completed for {url}")
    return {"status": "completed", "user_id": user_id, "result": result}
