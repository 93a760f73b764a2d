from sqlalchemy import desc, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.features.scan.models.scan import Scan
from app.features.scan.schemas.page_audit import SeverityCounts
from app.features.scan.schemas.scan import DashboardStats, RecentScan
from app.features.scan.services.orchestration.history import scan_score
from app.features.scan.services.scoring.compliance_scorer import ComplianceScorer

RECENT_SCANS_LIMIT = 5


async def get_dashboard_stats(user_id: str, db: AsyncSession) -> DashboardStats:
    """
    Totals, average compliance and the latest scans for one user.

    The average score is the score of the averaged severity counts,
    not the average of each scan's score.
    """
    totals = await db.execute(
        select(
            func.count(Scan.id),
            func.coalesce(func.sum(Scan.total_violations), 0),
            func.avg(Scan.critical_count),
            func.avg(Scan.serious_count),
            func.avg(Scan.moderate_count),
            func.avg(Scan.minor_count),
        ).where(Scan.user_id == user_id)
    )
    total_scans, total_issues, avg_critical, avg_serious, avg_moderate, avg_minor = totals.one()

    average_counts = SeverityCounts(
        critical=float(avg_critical or 0),
        serious=float(avg_serious or 0),
        moderate=float(avg_moderate or 0),
        minor=float(avg_minor or 0),
    )

    recent = await db.execute(
        select(Scan)
        .where(Scan.user_id == user_id)
        .order_by(desc(Scan.created_at), desc(Scan.id))
        .limit(RECENT_SCANS_LIMIT)
    )

    return DashboardStats(
        total_scans=int(total_scans or 0),
        total_issues=int(total_issues or 0),
        average_score=ComplianceScorer.score(average_counts),
        recent_scans=[
            RecentScan(
                id=scan.id,
                url=scan.url,
                score=scan_score(scan),
                date=scan.created_at,
                violations=scan.total_violations,
            )
            for scan in recent.scalars().all()
        ],
    )
