from unittest.mock import MagicMock, patch

import pytest
from selenium.common.exceptions import TimeoutException, WebDriverException

from review_insights.services.browser_pool import BrowserPool
from review_insights.services.errors import (
    LaunchError,
    NavigationTimeout,
    SelectorNotFound,
    UnexpectedFault,
)
from review_insights.services.scraper import (
    REVIEW_SELECTOR,
    ReviewScraper,
    _SCROLL_SCRIPT,
    parse_rating,
)


def _raw_review(idx: int, label: str = "5 stars") -> dict:
    return {"text": f"  Review {idx}  ", "rating_label": label, "date": " 2 weeks ago "}


def _fake_driver(raw_reviews: list[dict]) -> MagicMock:
    driver = MagicMock()

    def execute_script(script, *args):
        if script == _SCROLL_SCRIPT:
            return None
        return raw_reviews

    driver.execute_script.side_effect = execute_script
    return driver


def _scraper(driver: MagicMock, **kwargs) -> tuple[ReviewScraper, BrowserPool]:
    pool = BrowserPool(driver_factory=lambda: driver, pool_size=1, acquire_timeout=1)
    scraper = ReviewScraper(pool, scroll_settle_seconds=0, sleep=lambda _: None, **kwargs)
    return scraper, pool


class TestParseRating:
    def test_first_integer_wins(self):
        assert parse_rating("4 stars") == 4

    def test_first_integer_even_in_localized_label(self):
        assert parse_rating("별표 5개 만점에 3개") == 5

    def test_no_integer_yields_zero(self):
        assert parse_rating("stars") == 0
        assert parse_rating("") == 0

    def test_out_of_range_is_clamped(self):
        assert parse_rating("10 out of 10") == 5


class TestReviewScraper:
    def test_extracts_records_in_dom_order(self):
        raw = [
            _raw_review(1, "5 stars"),
            _raw_review(2, "4 stars"),
            _raw_review(3, "Rated"),
        ]
        driver = _fake_driver(raw)
        scraper, _ = _scraper(driver)

        reviews = scraper.scrape("https://maps.google.com/place/test")

        assert [r.text for r in reviews] == ["Review 1", "Review 2", "Review 3"]
        assert [r.rating for r in reviews] == [5, 4, 0]
        assert reviews[0].date == "2 weeks ago"
        driver.get.assert_called_once_with("https://maps.google.com/place/test")
        driver.find_element.assert_called_with("css selector", REVIEW_SELECTOR)

    def test_missing_fields_become_empty(self):
        driver = _fake_driver([{"text": None, "rating_label": None, "date": None}])
        scraper, _ = _scraper(driver)

        [review] = scraper.scrape("https://maps.google.com/place/test")
        assert review.text == ""
        assert review.rating == 0
        assert review.date == ""

    def test_never_returns_more_than_twenty(self):
        driver = _fake_driver([_raw_review(i) for i in range(35)])
        scraper, _ = _scraper(driver)

        reviews = scraper.scrape("https://maps.google.com/place/test")

        assert len(reviews) == 20
        extract_call = driver.execute_script.call_args_list[-1]
        assert extract_call.args[-1] == 20

    def test_scrolls_fixed_number_of_times(self):
        driver = _fake_driver([])
        sleeps = []
        pool = BrowserPool(driver_factory=lambda: driver, pool_size=1)
        scraper = ReviewScraper(pool, scroll_count=3, scroll_settle_seconds=5.0, sleep=sleeps.append)

        assert scraper.scrape("https://maps.google.com/place/test") == []
        scroll_calls = [c for c in driver.execute_script.call_args_list if c.args[0] == _SCROLL_SCRIPT]
        assert len(scroll_calls) == 3
        assert sleeps == [5.0, 5.0, 5.0]

    def test_success_returns_session_to_pool(self):
        driver = _fake_driver([_raw_review(1)])
        scraper, pool = _scraper(driver)

        scraper.scrape("https://maps.google.com/place/test")

        driver.quit.assert_not_called()
        assert pool.stats()["in_use"] == 0
        assert pool.stats()["idle"] == 1

    @patch("review_insights.services.scraper.WebDriverWait")
    def test_selector_not_found_releases_session(self, mock_wait):
        mock_wait.return_value.until.side_effect = TimeoutException()
        driver = _fake_driver([])
        scraper, pool = _scraper(driver)

        with pytest.raises(SelectorNotFound):
            scraper.scrape("https://maps.google.com/place/test")

        driver.quit.assert_called_once()
        assert pool.stats() == {"pool_size": 1, "in_use": 0, "idle": 0, "status": "healthy"}

    def test_navigation_timeout(self):
        driver = _fake_driver([])
        driver.get.side_effect = TimeoutException("page load")
        scraper, pool = _scraper(driver)

        with pytest.raises(NavigationTimeout):
            scraper.scrape("https://maps.google.com/place/test")
        driver.quit.assert_called_once()
        assert pool.stats()["in_use"] == 0

    def test_launch_error(self):
        def factory():
            raise WebDriverException("chrome not reachable")

        pool = BrowserPool(driver_factory=factory, pool_size=1)
        scraper = ReviewScraper(pool, sleep=lambda _: None)

        with pytest.raises(LaunchError):
            scraper.scrape("https://maps.google.com/place/test")
        assert pool.stats()["in_use"] == 0

    def test_unexpected_error_is_wrapped(self):
        driver = _fake_driver([])
        driver.execute_script.side_effect = WebDriverException("tab crashed")
        scraper, _ = _scraper(driver)

        with pytest.raises(UnexpectedFault) as excinfo:
            scraper.scrape("https://maps.google.com/place/test")

        assert isinstance(excinfo.value.__cause__, WebDriverException)
        driver.quit.assert_called_once()

    def test_successful_scrape_survives_dead_driver_cleanup(self):
        driver = _fake_driver([_raw_review(1)])
        driver.delete_all_cookies.side_effect = ConnectionResetError("gone")
        driver.quit.side_effect = ConnectionResetError("gone")
        scraper, pool = _scraper(driver)

        reviews = scraper.scrape("https://maps.google.com/place/test")

        assert [r.text for r in reviews] == ["Review 1"]
        driver.quit.assert_called_once()
        assert pool.stats()["in_use"] == 0
