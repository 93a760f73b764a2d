from typing import List

from sqlalchemy import desc, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.features.scan.models.scan import Scan
from app.features.scan.schemas.scan import ScanDetailResponse, ScanHistoryItem, ViolationResponse
from app.features.scan.services.persistence.scan_persistor import ScanPersistor
from app.features.scan.services.scoring.compliance_scorer import calculate_compliance_score
from app.platform.config import settings
from app.platform.logger import get_logger

logger = get_logger(__name__)


def scan_score(scan: Scan) -> int:
    return calculate_compliance_score(
        critical=scan.critical_count,
        serious=scan.serious_count,
        moderate=scan.moderate_count,
        minor=scan.minor_count,
    )


def to_history_item(scan: Scan) -> ScanHistoryItem:
    return ScanHistoryItem(
        id=scan.id,
        url=scan.url,
        scan_type=scan.scan_type,
        status=scan.status,
        total_violations=scan.total_violations,
        critical_count=scan.critical_count,
        serious_count=scan.serious_count,
        moderate_count=scan.moderate_count,
        minor_count=scan.minor_count,
        pages_scanned=scan.pages_scanned,
        compliance_score=scan_score(scan),
        created_at=scan.created_at,
    )


async def get_user_scan_history(
    user_id: str, db: AsyncSession, limit: int = settings.SCAN_HISTORY_LIMIT
) -> List[ScanHistoryItem]:
    query = (
        select(Scan)
        .where(Scan.user_id == user_id)
        .order_by(desc(Scan.created_at), desc(Scan.id))
        .limit(limit)
    )
    result = await db.execute(query)
    scans = result.scalars().all()

    logger.info(f"Found {len(scans)} scans for user {user_id}")

    return [to_history_item(scan) for scan in scans]


async def get_scan_detail(scan_id: str, user_id: str, db: AsyncSession):
    """
    Scan header plus its violations in severity order, or None when the
    scan does not exist or belongs to someone else.
    """
    scan = await ScanPersistor.get_scan(db, scan_id, user_id)
    if scan is None:
        return None

    violations = await ScanPersistor.list_violations(db, scan_id)
    if len(violations) != scan.total_violations:
        logger.warning(
            f"[{scan_id}] Consistency warning: header reports {scan.total_violations} "
            f"violations, store holds {len(violations)}"
        )

    item = to_history_item(scan)
    return ScanDetailResponse(
        **item.model_dump(),
        unknown_count=scan.unknown_count,
        scan_duration=scan.scan_duration,
        violations=[ViolationResponse.model_validate(v) for v in violations],
    )
