import asyncio
import time
from dataclasses import dataclass
from typing import Callable, List, Optional

from selenium.common.exceptions import WebDriverException
from sqlalchemy.ext.asyncio import AsyncSession

from app.features.scan.schemas.page_audit import SeverityCounts
from app.features.scan.schemas.scan import ScanStartResponse, ScanSummary
from app.features.scan.services.aggregation.scan_aggregator import ScanAggregator
from app.features.scan.services.auditing.page_auditor import AxePageAuditor, PageAuditor
from app.features.scan.services.crawl.crawl_planner import CrawlPlanner, ScanMode
from app.features.scan.services.crawl.page_discovery import PageDiscoveryService
from app.features.scan.services.persistence.scan_persistor import ScanHeader, ScanPersistor
from app.platform.logger import get_logger

logger = get_logger(__name__)

LinkDiscovery = Callable[[str, int], List[str]]


@dataclass
class ScanRunResult:
    scan_id: str
    severity_counts: SeverityCounts
    total_violations: int
    pages_audited: int
    duration_ms: int

    def to_response(self) -> ScanStartResponse:
        counts = self.severity_counts
        return ScanStartResponse(
            scan_id=self.scan_id,
            summary=ScanSummary(
                total_violations=self.total_violations,
                critical=counts.critical,
                serious=counts.serious,
                moderate=counts.moderate,
                minor=counts.minor,
            ),
            pages_audited=self.pages_audited,
            duration_ms=self.duration_ms,
        )


async def _discover(discover: LinkDiscovery, url: str, budget: int) -> List[str]:
    try:
        return await asyncio.to_thread(discover, url, budget)
    except WebDriverException as e:
        logger.warning(f"[scan] Link discovery failed for {url}, auditing start page only: {e}")
        return []


async def run_accessibility_scan(
    db: AsyncSession,
    user_id: str,
    url: str,
    mode: ScanMode = ScanMode.single_page,
    page_budget: Optional[int] = None,
    auditor: Optional[PageAuditor] = None,
    discover: LinkDiscovery = PageDiscoveryService.discover_links,
) -> ScanRunResult:
    """
    Plan, audit, aggregate and persist one scan.

    Nothing is written until every planned page has finished, so a
    cancelled run leaves no Scan behind. Duration covers planning
    through aggregation.

    Raises:
        InvalidInputError: url is not an absolute http(s) URL
        ScanExecutionError: every planned page failed
        PersistenceError: the scan could not be saved
    """
    started = time.monotonic()
    mode = ScanMode(mode)

    # Validates the start URL before any browser work
    plan = CrawlPlanner.plan(url, mode, page_budget)

    if mode == ScanMode.multi_page:
        budget = CrawlPlanner.effective_budget(mode, page_budget)
        discovered = await _discover(discover, url, budget) if budget > 1 else []
        plan = CrawlPlanner.plan(url, mode, page_budget, discovered=discovered)

    logger.info(f"[scan] Auditing {len(plan)} page(s) for {url} (mode={mode.value}, user_id={user_id})")

    aggregator = ScanAggregator(auditor or AxePageAuditor())
    aggregated = await aggregator.run(plan)

    duration_ms = int((time.monotonic() - started) * 1000)

    header = ScanHeader.from_aggregate(
        user_id=user_id,
        scan_type=mode.value,
        duration_ms=duration_ms,
        aggregated=aggregated,
    )
    scan_id = await ScanPersistor.persist(db, header, aggregated.occurrences)

    return ScanRunResult(
        scan_id=scan_id,
        severity_counts=aggregated.severity_counts,
        total_violations=aggregated.total_violations,
        pages_audited=aggregated.pages_audited,
        duration_ms=duration_ms,
    )
