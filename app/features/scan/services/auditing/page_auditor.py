from typing import Any, Dict, Protocol

from axe_selenium_python import Axe
from selenium.common.exceptions import TimeoutException, WebDriverException

from app.features.scan.exceptions import PageAuditFailure
from app.features.scan.schemas.page_audit import PageAuditResult, RuleViolation
from app.features.scan.services.auditing.browser import build_driver, quit_driver
from app.platform.config import settings
from app.platform.logger import get_logger

logger = get_logger(__name__)


class PageAuditor(Protocol):
    """Anything that can render one URL and report its rule violations."""

    def audit(self, url: str) -> PageAuditResult:
        ...


class AxePageAuditor:
    """
    Renders a page in headless Chrome and runs axe-core against its DOM.

    A fresh browser is used per page so one crashed renderer never
    poisons the rest of a multi-page scan.
    """

    def __init__(self, page_load_timeout: int = settings.SCAN_PAGE_LOAD_TIMEOUT_SECONDS):
        self.page_load_timeout = page_load_timeout

    def audit(self, url: str) -> PageAuditResult:
        driver = None
        try:
            driver = build_driver(self.page_load_timeout)
            driver.get(url)

            axe = Axe(driver)
            axe.inject()
            raw_results = axe.run()

            result = self.result_from_axe(url, raw_results)
            logger.info(f"[audit] {url}: {len(result.violations)} failing rules")
            return result

        except TimeoutException as e:
            raise PageAuditFailure(f"Timeout loading page: {e}", url=url)
        except WebDriverException as e:
            raise PageAuditFailure(f"WebDriver error: {e}", url=url)
        finally:
            quit_driver(driver)

    @staticmethod
    def result_from_axe(url: str, raw_results: Dict[str, Any]) -> PageAuditResult:
        """Map the raw axe-core result object onto PageAuditResult."""
        if not isinstance(raw_results, dict):
            raise PageAuditFailure("Unexpected axe result", url=url)
        if raw_results.get("error"):
            raise PageAuditFailure(f"axe-core error: {raw_results['error']}", url=url)

        return PageAuditResult(
            url=url,
            violations=[RuleViolation.from_axe(item) for item in raw_results.get("violations") or []],
        )
