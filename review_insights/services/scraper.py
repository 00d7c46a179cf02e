import logging
import re
import time
from typing import Callable

from selenium import webdriver
from selenium.common.exceptions import TimeoutException, WebDriverException
from selenium.webdriver.chrome.options import Options
from selenium.webdriver.chrome.service import Service
from selenium.webdriver.common.by import By
from selenium.webdriver.remote.webdriver import WebDriver
from selenium.webdriver.support import expected_conditions as EC
from selenium.webdriver.support.ui import WebDriverWait
from selenium_stealth import stealth
from webdriver_manager.chrome import ChromeDriverManager

from review_insights.models.review import ReviewRecord
from review_insights.services.browser_pool import BrowserPool
from review_insights.services.errors import (
    NavigationTimeout,
    ReviewInsightError,
    SelectorNotFound,
    UnexpectedFault,
)

logger = logging.getLogger(__name__)

# Google Maps place page markup. Bump the version whenever a selector changes.
SELECTOR_CONTRACT_VERSION = "2024.1"
REVIEW_SELECTOR = "div.jJc9Ad"
TEXT_SELECTOR = "span.wiI7pd"
RATING_SELECTOR = 'span.kvMYJc[role="img"]'
DATE_SELECTOR = "span.rsqaWe"

_SCROLL_SCRIPT = "window.scrollBy(0, document.body.scrollHeight);"

_EXTRACT_SCRIPT = """
const [reviewSelector, textSelector, ratingSelector, dateSelector, limit] = arguments;
return Array.from(document.querySelectorAll(reviewSelector))
  .slice(0, limit)
  .map((element) => {
    const text = element.querySelector(textSelector);
    const rating = element.querySelector(ratingSelector);
    const date = element.querySelector(dateSelector);
    return {
      text: text ? text.textContent : "",
      rating_label: rating ? (rating.getAttribute("aria-label") || "") : "",
      date: date ? date.textContent : "",
    };
  });
"""

_RATING_PATTERN = re.compile(r"\d+")


def build_driver(headless: bool = True, page_load_timeout: int = 120) -> webdriver.Chrome:
    """Create a stealth Chrome driver that returns from get() once the DOM is parsed."""
    options = Options()
    if headless:
        options.add_argument("--headless=new")
    options.add_argument("--no-sandbox")
    options.add_argument("--disable-setuid-sandbox")
    options.add_argument("--disable-dev-shm-usage")
    options.add_argument("--disable-blink-features=AutomationControlled")
    options.add_argument("--window-size=1920,1080")
    options.add_argument("--lang=en-US")
    options.add_experimental_option("excludeSwitches", ["enable-automation"])
    options.add_experimental_option("useAutomationExtension", False)
    options.page_load_strategy = "eager"

    service = Service(ChromeDriverManager().install())
    driver = webdriver.Chrome(service=service, options=options)
    driver.set_page_load_timeout(page_load_timeout)

    stealth(
        driver,
        languages=["en-US", "en"],
        vendor="Google Inc.",
        platform="Win32",
        webgl_vendor="Intel Inc.",
        renderer="Intel Iris OpenGL Engine",
        fix_hairline=True,
    )
    return driver


def parse_rating(label: str) -> int:
    """
    Extract a star rating from an accessibility label such as "4 stars".

    The first integer token wins; a label without one yields 0. Values above
    five are clamped so a stray number can never break the record model.
    """
    match = _RATING_PATTERN.search(label or "")
    if not match:
        return 0
    return max(0, min(5, int(match.group(0))))


def _to_record(raw: dict) -> ReviewRecord:
    return ReviewRecord(
        text=(raw.get("text") or "").strip(),
        rating=parse_rating(raw.get("rating_label") or ""),
        date=(raw.get("date") or "").strip(),
    )


class ReviewScraper:
    """
    Reads up to ``max_reviews`` reviews from a place page.

    A scrape walks Launch -> Navigate -> AwaitReviewSection -> ScrollExpand ->
    Extract and never steps back. The browser session comes from ``pool`` and
    is handed back (or quit) on every exit path, including failures.
    """

    def __init__(
        self,
        pool: BrowserPool,
        review_section_timeout: float = 60,
        scroll_count: int = 3,
        scroll_settle_seconds: float = 5.0,
        max_reviews: int = 20,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.pool = pool
        self.review_section_timeout = review_section_timeout
        self.scroll_count = scroll_count
        self.scroll_settle_seconds = scroll_settle_seconds
        self.max_reviews = max_reviews
        self._sleep = sleep

    def scrape(self, url: str) -> list[ReviewRecord]:
        """
        Scrape reviews from ``url`` in DOM order.

        Returns:
            Between 0 and ``max_reviews`` records. An empty list is a valid
            result here; callers decide whether it is an error.

        Raises:
            LaunchError, ScraperBusy: No browser session could be obtained.
            NavigationTimeout: The page did not load in time.
            SelectorNotFound: The review list never appeared.
            UnexpectedFault: Anything else, wrapping the underlying error.
        """
        logger.info("Crawling reviews for URL: %s", url)
        try:
            with self.pool.session() as driver:
                self._navigate(driver, url)
                self._await_review_section(driver)
                self._scroll_expand(driver)
                reviews = self._extract(driver)
        except ReviewInsightError:
            raise
        except Exception as exc:
            logger.exception("Unexpected error while crawling %s", url)
            raise UnexpectedFault(f"{type(exc).__name__}: {exc}") from exc

        logger.info("Extracted %d reviews from %s", len(reviews), url)
        return reviews

    def _navigate(self, driver: WebDriver, url: str) -> None:
        logger.info("Navigating to page...")
        try:
            driver.get(url)
        except TimeoutException as exc:
            logger.warning("Navigation to %s timed out", url)
            raise NavigationTimeout(f"page load exceeded deadline: {url}") from exc
        logger.info("Page loaded.")

    def _await_review_section(self, driver: WebDriver) -> None:
        logger.info("Waiting for review section selector %r...", REVIEW_SELECTOR)
        wait = WebDriverWait(driver, self.review_section_timeout)
        try:
            wait.until(EC.presence_of_element_located((By.CSS_SELECTOR, REVIEW_SELECTOR)))
        except TimeoutException as exc:
            logger.warning(
                "Review section %r not found (selector contract %s)",
                REVIEW_SELECTOR,
                SELECTOR_CONTRACT_VERSION,
            )
            raise SelectorNotFound(
                f"{REVIEW_SELECTOR} absent after {self.review_section_timeout}s"
            ) from exc
        logger.info("Review section found.")

    def _scroll_expand(self, driver: WebDriver) -> None:
        # Lazy-loaded list: a fixed number of scrolls, no adaptive stopping.
        for attempt in range(self.scroll_count):
            driver.execute_script(_SCROLL_SCRIPT)
            logger.debug("Scroll %d/%d", attempt + 1, self.scroll_count)
            self._sleep(self.scroll_settle_seconds)

    def _extract(self, driver: WebDriver) -> list[ReviewRecord]:
        raw_reviews = driver.execute_script(
            _EXTRACT_SCRIPT,
            REVIEW_SELECTOR,
            TEXT_SELECTOR,
            RATING_SELECTOR,
            DATE_SELECTOR,
            self.max_reviews,
        ) or []
        if not isinstance(raw_reviews, list):
            raise WebDriverException(f"unexpected extraction result: {type(raw_reviews).__name__}")
        return [_to_record(raw) for raw in raw_reviews[: self.max_reviews]]
