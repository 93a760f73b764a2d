import enum
from typing import Iterable, List, Optional

from app.features.scan.exceptions import InvalidInputError
from app.platform.config import settings
from app.platform.utils.url_validator import is_absolute_http_url, strip_fragment


class ScanMode(str, enum.Enum):
    """How many pages a scan may visit"""
    single_page = "single-page"
    multi_page = "multi-page"


class CrawlPlanner:
    """
    Decides which pages a scan audits, and in what order.

    Link discovery itself happens elsewhere (PageDiscoveryService); the
    planner only enforces the page budget and the ordering guarantee:
    start URL first, then discovery order, no duplicates.
    """

    DEFAULT_PAGE_BUDGET: int = settings.SCAN_DEFAULT_PAGE_BUDGET

    @classmethod
    def effective_budget(cls, mode: ScanMode, page_budget: Optional[int] = None) -> int:
        if ScanMode(mode) == ScanMode.single_page:
            return 1
        if page_budget is None or page_budget <= 0:
            return cls.DEFAULT_PAGE_BUDGET
        return page_budget

    @classmethod
    def plan(
        cls,
        start_url: str,
        mode: ScanMode = ScanMode.single_page,
        page_budget: Optional[int] = None,
        discovered: Iterable[str] = (),
    ) -> List[str]:
        """
        Build the ordered list of page URLs to audit.

        Args:
            start_url: Absolute http(s) URL the scan starts from
            mode: single-page or multi-page
            page_budget: Max pages for multi-page scans (default 10 when unset or <= 0)
            discovered: Same-origin URLs in discovery order (multi-page only)

        Returns:
            Plan with start_url first and at most page_budget entries

        Raises:
            InvalidInputError: start_url is not an absolute http(s) URL,
                or mode is not a known scan mode
        """
        if not is_absolute_http_url(start_url):
            raise InvalidInputError(f"Invalid start URL: {start_url!r}", url=str(start_url))

        try:
            mode = ScanMode(mode)
        except ValueError:
            raise InvalidInputError(f"Unknown scan mode: {mode!r}", url=start_url)

        if mode == ScanMode.single_page:
            return [start_url]

        budget = cls.effective_budget(mode, page_budget)
        plan = [start_url]
        seen = {strip_fragment(start_url)}

        for url in discovered:
            if len(plan) >= budget:
                break
            if not is_absolute_http_url(url):
                continue
            key = strip_fragment(url)
            if key in seen:
                continue
            seen.add(key)
            plan.append(url)

        return plan
