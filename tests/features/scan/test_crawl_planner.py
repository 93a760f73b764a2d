import pytest

from app.features.scan.exceptions import InvalidInputError
from app.features.scan.services.crawl.crawl_planner import CrawlPlanner, ScanMode


class TestCrawlPlanner:

    def test_single_page_plans_only_start_url(self):
        plan = CrawlPlanner.plan(
            "https://example.com",
            ScanMode.single_page,
            page_budget=5,
            discovered=["https://example.com/about"],
        )
        assert plan == ["https://example.com"]

    def test_multi_page_keeps_discovery_order_and_budget(self):
        discovered = [
            "https://example.com/a",
            "https://example.com/b",
            "https://example.com/c",
            "https://example.com/d",
        ]
        plan = CrawlPlanner.plan("https://example.com", ScanMode.multi_page, 3, discovered)
        assert plan == [
            "https://example.com",
            "https://example.com/a",
            "https://example.com/b",
        ]

    def test_multi_page_with_nothing_discovered(self):
        assert CrawlPlanner.plan("https://example.com", ScanMode.multi_page, 5) == [
            "https://example.com"
        ]

    @pytest.mark.parametrize("budget", [None, 0, -3])
    def test_default_budget_when_unset_or_not_positive(self, budget):
        discovered = [f"https://example.com/page-{i}" for i in range(30)]
        plan = CrawlPlanner.plan("https://example.com", ScanMode.multi_page, budget, discovered)
        assert len(plan) == CrawlPlanner.DEFAULT_PAGE_BUDGET == 10

    def test_duplicates_and_fragments_are_dropped(self):
        discovered = [
            "https://example.com/#main",
            "https://example.com/about",
            "https://example.com/about#team",
            "https://example.com/contact",
        ]
        plan = CrawlPlanner.plan("https://example.com/", ScanMode.multi_page, 10, discovered)
        assert plan == [
            "https://example.com/",
            "https://example.com/about",
            "https://example.com/contact",
        ]

    def test_relative_discovered_urls_are_skipped(self):
        plan = CrawlPlanner.plan(
            "https://example.com",
            ScanMode.multi_page,
            5,
            ["/about", "mailto:a@example.com", "https://example.com/ok"],
        )
        assert plan == ["https://example.com", "https://example.com/ok"]

    def test_mode_accepts_wire_value(self):
        assert CrawlPlanner.plan("https://example.com", "single-page") == ["https://example.com"]

    @pytest.mark.parametrize(
        "url",
        ["", "example.com", "/relative/path", "ftp://example.com", "https://", "http://exa mple.com"],
    )
    def test_invalid_start_url_rejected(self, url):
        with pytest.raises(InvalidInputError) as exc:
            CrawlPlanner.plan(url)
        assert exc.value.stage == "validation"

    def test_unknown_mode_rejected(self):
        with pytest.raises(InvalidInputError):
            CrawlPlanner.plan("https://example.com", "everything")


class TestEffectiveBudget:

    def test_single_page_is_always_one(self):
        assert CrawlPlanner.effective_budget(ScanMode.single_page, 25) == 1

    def test_explicit_budget_kept(self):
        assert CrawlPlanner.effective_budget(ScanMode.multi_page, 4) == 4

    def test_missing_budget_defaults(self):
        assert CrawlPlanner.effective_budget(ScanMode.multi_page) == 10
