from dataclasses import dataclass
from typing import Iterable, List, Optional

from sqlalchemy import case, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.features.scan.exceptions import PersistenceError, ScanConsistencyError
from app.features.scan.models.scan import Scan
from app.features.scan.models.violation import Violation
from app.features.scan.schemas.page_audit import NAMED_SEVERITIES, SEVERITY_RANK, SeverityCounts
from app.features.scan.services.aggregation.scan_aggregator import AggregatedScan, ViolationOccurrence
from app.platform.logger import get_logger

logger = get_logger(__name__)

SCAN_STATUS_COMPLETED = "completed"

# critical=1 ... minor=4, anything else last
SEVERITY_RANK_ORDER = case(
    *[(Violation.impact == severity.value, SEVERITY_RANK[severity]) for severity in NAMED_SEVERITIES],
    else_=len(NAMED_SEVERITIES) + 1,
)


@dataclass
class ScanHeader:
    """Everything the `scans` row needs, fixed once aggregation is done."""
    user_id: str
    url: str
    scan_type: str
    duration_ms: int
    pages_scanned: int
    severity_counts: SeverityCounts
    total_violations: int

    @classmethod
    def from_aggregate(
        cls, user_id: str, scan_type: str, duration_ms: int, aggregated: AggregatedScan
    ) -> "ScanHeader":
        return cls(
            user_id=user_id,
            url=aggregated.start_url,
            scan_type=scan_type,
            duration_ms=duration_ms,
            pages_scanned=aggregated.pages_audited,
            severity_counts=aggregated.severity_counts,
            total_violations=aggregated.total_violations,
        )


def build_violation_row(scan_id: str, position: int, occurrence: ViolationOccurrence) -> Violation:
    rule, node = occurrence.rule, occurrence.node
    return Violation(
        scan_id=scan_id,
        position=position,
        violation_id=rule.id,
        description=rule.description,
        impact=rule.impact.value,
        help=rule.help,
        help_url=rule.help_url,
        page_url=occurrence.page_url,
        selector=node.selector,
        html=node.html,
        target=list(node.target),
        failure_summary=node.failure_summary,
    )


class ScanPersistor:
    """
    Writes a finished scan and reads it back in severity order.

    The header is committed on its own first; violation rows follow in
    one batch. A failed batch is reported, never retried or hidden.
    """

    @staticmethod
    async def persist(
        db: AsyncSession,
        header: ScanHeader,
        occurrences: Iterable[ViolationOccurrence],
    ) -> str:
        counts = header.severity_counts
        scan = Scan(
            user_id=header.user_id,
            url=header.url,
            scan_type=header.scan_type,
            status=SCAN_STATUS_COMPLETED,
            total_violations=header.total_violations,
            critical_count=counts.critical,
            serious_count=counts.serious,
            moderate_count=counts.moderate,
            minor_count=counts.minor,
            unknown_count=counts.unknown,
            pages_scanned=header.pages_scanned,
            scan_duration=header.duration_ms,
        )

        try:
            db.add(scan)
            await db.flush()
            scan_id = scan.id
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error(f"[scan] Failed to save scan header for {header.url}: {e}", exc_info=True)
            raise PersistenceError(
                f"Failed to save scan: {e}", url=header.url, stage="scan_header"
            ) from e

        rows = [
            build_violation_row(scan_id, position, occurrence)
            for position, occurrence in enumerate(occurrences)
        ]

        try:
            if rows:
                db.add_all(rows)
                await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error(
                f"[{scan_id}] Consistency warning: scan saved but {len(rows)} violation rows "
                f"were not (expected {header.total_violations}): {e}",
                exc_info=True,
            )
            raise ScanConsistencyError(
                f"Failed to save violations: {e}", url=header.url, scan_id=scan_id
            ) from e

        logger.info(f"[{scan_id}] Saved scan for {header.url}: {len(rows)} violations")
        return scan_id

    @staticmethod
    async def get_scan(db: AsyncSession, scan_id: str, user_id: str) -> Optional[Scan]:
        """Scan header, only when it belongs to user_id."""
        result = await db.execute(
            select(Scan).where(Scan.id == scan_id, Scan.user_id == user_id)
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def list_violations(db: AsyncSession, scan_id: str) -> List[Violation]:
        """Violations ranked critical -> minor -> other, insertion order within a rank."""
        result = await db.execute(
            select(Violation)
            .where(Violation.scan_id == scan_id)
            .order_by(SEVERITY_RANK_ORDER, Violation.position)
        )
        return list(result.scalars().all())

    @staticmethod
    async def count_violations(db: AsyncSession, scan_id: str) -> int:
        result = await db.execute(
            select(func.count(Violation.id)).where(Violation.scan_id == scan_id)
        )
        return result.scalar_one()
