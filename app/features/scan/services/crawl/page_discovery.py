from typing import List
from urllib.parse import urlparse

from selenium.common.exceptions import TimeoutException, WebDriverException
from selenium.webdriver.common.by import By

from app.features.scan.services.auditing.browser import build_driver, quit_driver
from app.platform.logger import get_logger
from app.platform.utils.url_validator import origin_of, strip_fragment

logger = get_logger(__name__)


class PageDiscoveryService:

    @staticmethod
    def discover_links(url: str, max_pages: int = 10) -> List[str]:
        """
        Discover same-origin pages breadth-first using Selenium.

        Pages are only loaded until enough candidates are known, so a
        budget of N loads at most N pages and usually far fewer.

        Args:
            url: Start URL (always returned first)
            max_pages: Maximum number of URLs to return

        Returns:
            Same-origin URLs in discovery order, fragments removed
        """
        start = strip_fragment(url)
        found = [start]
        if max_pages <= 1:
            return found

        base_domain = origin_of(start)
        to_visit = [start]
        driver = build_driver()

        try:
            while to_visit and len(found) < max_pages:
                current = to_visit.pop(0)  # BFS

                try:
                    driver.get(current)
                    links = driver.find_elements(By.TAG_NAME, "a")
                    hrefs = [link.get_attribute("href") for link in links]
                except (TimeoutException, WebDriverException) as e:
                    logger.warning(f"[discovery] Failed to load page {current}: {e}")
                    continue

                for href in hrefs:
                    if not href or not PageDiscoveryService._is_same_domain(href, base_domain):
                        continue
                    candidate = strip_fragment(href)
                    if candidate in found:
                        continue
                    found.append(candidate)
                    to_visit.append(candidate)
                    if len(found) >= max_pages:
                        break

            logger.info(f"[discovery] Discovered {len(found)} pages from {url}")
            return found
        finally:
            quit_driver(driver)

    @staticmethod
    def _is_same_domain(url: str, base_domain: str) -> bool:
        """
        Check if URL belongs to the same origin as base.

        Args:
            url: URL to check
            base_domain: Base origin (e.g., "https://example.com")

        Returns:
            True if URL is from same origin, False otherwise
        """
        try:
            parsed = urlparse(url)
            if not parsed.scheme or not parsed.netloc:
                return False
            url_domain = f"{parsed.scheme}://{parsed.netloc}"
            return url_domain == base_domain
        except ValueError:
            return False
