import asyncio
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence, Tuple

from app.features.scan.exceptions import ScanExecutionError
from app.features.scan.schemas.page_audit import (
    AffectedNode,
    PageAuditResult,
    RuleViolation,
    Severity,
    SeverityCounts,
)
from app.features.scan.services.auditing.page_auditor import PageAuditor
from app.platform.config import settings
from app.platform.logger import get_logger

logger = get_logger(__name__)


@dataclass
class PageAuditOutcome:
    """Either a page's audit result or the reason it has none."""
    url: str
    page_index: int
    result: Optional[PageAuditResult] = None
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.result is not None


@dataclass(frozen=True)
class ViolationOccurrence:
    """One rule failure at one DOM node, tagged with where it came from."""
    page_url: str
    page_index: int
    rule_index: int
    node_index: int
    rule: RuleViolation
    node: AffectedNode

    @property
    def severity(self) -> Severity:
        return self.rule.impact

    @property
    def sort_key(self) -> Tuple[int, int, int]:
        return (self.page_index, self.rule_index, self.node_index)


@dataclass
class AggregatedScan:
    start_url: str
    occurrences: List[ViolationOccurrence]
    severity_counts: SeverityCounts
    pages_audited: int
    pages_planned: int
    failed_pages: List[str] = field(default_factory=list)

    @property
    def total_violations(self) -> int:
        return len(self.occurrences)


def flatten_outcomes(outcomes: Iterable[PageAuditOutcome]) -> List[ViolationOccurrence]:
    """Page -> rule -> node nesting becomes one flat list in canonical order."""
    occurrences = [
        ViolationOccurrence(
            page_url=outcome.url,
            page_index=outcome.page_index,
            rule_index=rule_index,
            node_index=node_index,
            rule=rule,
            node=node,
        )
        for outcome in outcomes
        if outcome.succeeded
        for rule_index, rule in enumerate(outcome.result.violations)
        for node_index, node in enumerate(rule.nodes)
    ]
    occurrences.sort(key=lambda occurrence: occurrence.sort_key)
    return occurrences


def count_severities(occurrences: Iterable[ViolationOccurrence]) -> SeverityCounts:
    counts = SeverityCounts()
    for occurrence in occurrences:
        counts.tally(occurrence.severity)
    return counts


class ScanAggregator:
    """
    Audits every planned page and folds the outcomes into one result.

    Pages run concurrently up to `max_concurrency`, each bounded by
    `page_timeout` seconds. A failed or timed-out page contributes
    nothing; the scan only fails when every page does.
    """

    def __init__(
        self,
        auditor: PageAuditor,
        page_timeout: float = settings.SCAN_PAGE_TIMEOUT_SECONDS,
        max_concurrency: int = settings.SCAN_MAX_CONCURRENT_PAGES,
    ):
        self.auditor = auditor
        self.page_timeout = page_timeout
        self.max_concurrency = max(1, max_concurrency)

    async def audit_page(
        self,
        url: str,
        page_index: int,
        semaphore: asyncio.Semaphore,
        executor: ThreadPoolExecutor,
    ) -> PageAuditOutcome:
        loop = asyncio.get_running_loop()
        await semaphore.acquire()
        audit = loop.run_in_executor(executor, self.auditor.audit, url)
        # The slot is held until the audit thread returns, not until we stop waiting
        audit.add_done_callback(lambda finished: self._release_slot(finished, url, semaphore))

        try:
            result = await asyncio.wait_for(asyncio.shield(audit), timeout=self.page_timeout)
        except asyncio.TimeoutError:
            logger.warning(f"[aggregate] Page audit timed out after {self.page_timeout}s: {url}")
            return PageAuditOutcome(url=url, page_index=page_index, error="timeout")
        except Exception as e:
            logger.warning(f"[aggregate] Page audit failed for {url}: {e}")
            return PageAuditOutcome(url=url, page_index=page_index, error=str(e) or type(e).__name__)

        return PageAuditOutcome(url=url, page_index=page_index, result=result)

    @staticmethod
    def _release_slot(finished: asyncio.Future, url: str, semaphore: asyncio.Semaphore) -> None:
        semaphore.release()
        if not finished.cancelled() and finished.exception() is not None:
            logger.debug(f"[aggregate] Audit thread for {url} ended with: {finished.exception()}")

    async def run(self, plan: Sequence[str]) -> AggregatedScan:
        if not plan:
            raise ScanExecutionError("Crawl plan is empty", stage="planning")

        semaphore = asyncio.Semaphore(self.max_concurrency)
        executor = ThreadPoolExecutor(max_workers=self.max_concurrency, thread_name_prefix="page-audit")
        try:
            outcomes = await asyncio.gather(
                *(self.audit_page(url, index, semaphore, executor) for index, url in enumerate(plan))
            )
        finally:
            # Timed-out audits keep their thread; don't block the scan on them
            executor.shutdown(wait=False)
        return self.fold(plan[0], outcomes)

    @staticmethod
    def fold(start_url: str, outcomes: Iterable[PageAuditOutcome]) -> AggregatedScan:
        """
        Combine page outcomes, in plan order regardless of completion order.

        Raises:
            ScanExecutionError: no page was audited successfully
        """
        ordered = sorted(outcomes, key=lambda outcome: outcome.page_index)
        succeeded = [outcome for outcome in ordered if outcome.succeeded]
        failed = [outcome.url for outcome in ordered if not outcome.succeeded]

        if not succeeded:
            raise ScanExecutionError(
                f"All {len(ordered)} planned pages failed to audit",
                url=start_url,
            )

        occurrences = flatten_outcomes(succeeded)
        counts = count_severities(occurrences)

        logger.info(
            f"[aggregate] {start_url}: {len(succeeded)}/{len(ordered)} pages audited, "
            f"{len(occurrences)} violations ({counts.unknown} with unknown severity)"
        )

        return AggregatedScan(
            start_url=start_url,
            occurrences=occurrences,
            severity_counts=counts,
            pages_audited=len(succeeded),
            pages_planned=len(ordered),
            failed_pages=failed,
        )
